"""Replicate records and estimate extraction."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import pandas as pd

from ..data.types import ReplicateStatus
from ..models.joint import JointFit
from ..models.longitudinal import LongitudinalFit
from ..models.survival import SurvivalFit

# Design column -> reported parameter name
FIXED_EFFECT_NAMES = {
    "Intercept": "beta0",
    "x1l": "beta1",
    "x2l[2]": "beta22",
    "x2l[3]": "beta23",
    "x3l": "beta3",
    "time": "beta_time",
}

HAZARD_NAMES = {
    "x1": "beta1s",
    "x3": "beta3s",
}

ASSOCIATION_NAMES = {
    "u_intercept": "gamma_i",
    "u_slope": "gamma_s",
}

RECORD_FIELDS = [
    "replicate",
    "status",
    "pc_events",
    "event_rate",
    "converged",
    "failure_reason",
    "started_at",
    "completed_at",
    "duration_seconds",
]


def longitudinal_estimates(fit: LongitudinalFit) -> Dict[str, float]:
    """Named fixed effects and variance components of a mixed model."""
    estimates = {
        FIXED_EFFECT_NAMES.get(column, column): float(value)
        for column, value in fit.fixed_effects.items()
    }
    estimates["sigma_e"] = fit.sigma_e
    estimates["sigma_u"] = fit.sigma_u
    if fit.sigma_s is not None:
        estimates["sigma_s"] = fit.sigma_s
        estimates["rho"] = fit.re_correlation
    return estimates


def survival_estimates(fit: SurvivalFit) -> Dict[str, float]:
    """Named log hazard ratios of the baseline covariates."""
    return {
        HAZARD_NAMES[column]: float(value)
        for column, value in fit.coefficients.items()
        if column in HAZARD_NAMES
    }


def separate_estimates(
    long_fit: LongitudinalFit, surv_fit: SurvivalFit
) -> Dict[str, float]:
    """Estimates from independently fitted submodels."""
    estimates = longitudinal_estimates(long_fit)
    estimates.update(survival_estimates(surv_fit))
    return estimates


def joint_estimates(fit: JointFit) -> Dict[str, float]:
    """Estimates from the two-stage joint model."""
    estimates = separate_estimates(fit.longitudinal, fit.survival)
    for column, value in fit.association.items():
        estimates[ASSOCIATION_NAMES[column]] = float(value)
    return estimates


@dataclass
class ReplicateResult:
    """Outcome of one simulate-and-fit iteration.

    Attributes:
        index: Replicate number within the study.
        status: Current replicate status.
        estimates: Parameter estimates keyed by parameter name.
        pc_events: Percentage of subjects with an event before tau.
        event_rate: Proportion of subjects with an observed event.
        converged: Mixed model convergence flag.
        failure_reason: Reason if FAILED.
        started_at: Start timestamp.
        completed_at: Completion timestamp.
    """

    index: int
    status: ReplicateStatus = ReplicateStatus.PENDING
    estimates: Dict[str, float] = field(default_factory=dict)
    pc_events: Optional[float] = None
    event_rate: Optional[float] = None
    converged: Optional[bool] = None
    failure_reason: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def start(self) -> None:
        """Mark replicate as started."""
        self.status = ReplicateStatus.RUNNING
        self.started_at = datetime.now()

    def complete(
        self,
        estimates: Dict[str, float],
        pc_events: float,
        event_rate: float,
        converged: bool = True,
    ) -> None:
        """Mark replicate as completed.

        Args:
            estimates: Parameter estimates.
            pc_events: Percentage of events before tau.
            event_rate: Proportion of observed events.
            converged: Mixed model convergence flag.
        """
        self.status = ReplicateStatus.COMPLETED
        self.completed_at = datetime.now()
        self.estimates = dict(estimates)
        self.pc_events = pc_events
        self.event_rate = event_rate
        self.converged = converged

    def fail(self, reason: str, pc_events: Optional[float] = None) -> None:
        """Mark replicate as failed.

        Args:
            reason: Failure reason.
            pc_events: Percentage of events, if the data were generated.
        """
        self.status = ReplicateStatus.FAILED
        self.completed_at = datetime.now()
        self.failure_reason = reason
        self.pc_events = pc_events

    @property
    def is_complete(self) -> bool:
        """Check if replicate is finished (success or failure)."""
        return self.status in (ReplicateStatus.COMPLETED, ReplicateStatus.FAILED)

    @property
    def succeeded(self) -> bool:
        """Check if replicate produced estimates."""
        return self.status == ReplicateStatus.COMPLETED

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get replicate duration in seconds."""
        if self.started_at is None:
            return None
        end = self.completed_at or datetime.now()
        return (end - self.started_at).total_seconds()

    def to_row(self, parameter_names: Sequence[str]) -> dict:
        """Flatten to a CSV row.

        Args:
            parameter_names: Estimate columns, in output order.

        Returns:
            Dictionary of record fields followed by estimates.
        """
        duration = self.duration_seconds if self.is_complete else None
        row = {
            "replicate": self.index,
            "status": self.status.name,
            "pc_events": self.pc_events if self.pc_events is not None else "",
            "event_rate": self.event_rate if self.event_rate is not None else "",
            "converged": self.converged if self.converged is not None else "",
            "failure_reason": self.failure_reason or "",
            "started_at": self.started_at.isoformat() if self.started_at else "",
            "completed_at": self.completed_at.isoformat() if self.completed_at else "",
            "duration_seconds": round(duration, 3) if duration is not None else "",
        }
        for name in parameter_names:
            value = self.estimates.get(name)
            row[name] = value if value is not None else ""
        return row

    @classmethod
    def from_row(cls, row: dict, parameter_names: Sequence[str]) -> "ReplicateResult":
        """Rebuild a record from a row written by :meth:`to_row`.

        Args:
            row: Mapping of column name to value (strings or numbers).
            parameter_names: Estimate columns to read.

        Returns:
            ReplicateResult instance.
        """
        def _float(value) -> Optional[float]:
            if value is None or value == "":
                return None
            value = float(value)
            return None if math.isnan(value) else value

        def _time(value) -> Optional[datetime]:
            if isinstance(value, str) and value:
                return datetime.fromisoformat(value)
            return None

        converged = row.get("converged")
        if isinstance(converged, str):
            converged = {"True": True, "False": False}.get(converged)
        elif converged is not None and not isinstance(converged, bool):
            converged = None if pd.isna(converged) else bool(converged)

        estimates = {}
        for name in parameter_names:
            value = _float(row.get(name))
            if value is not None:
                estimates[name] = value

        reason = row.get("failure_reason")
        if not isinstance(reason, str) or not reason:
            reason = None

        return cls(
            index=int(row["replicate"]),
            status=ReplicateStatus[row["status"]],
            estimates=estimates,
            pc_events=_float(row.get("pc_events")),
            event_rate=_float(row.get("event_rate")),
            converged=converged,
            failure_reason=reason,
            started_at=_time(row.get("started_at")),
            completed_at=_time(row.get("completed_at")),
        )


def results_to_frame(
    results: List[ReplicateResult],
    parameter_names: Sequence[str],
    completed_only: bool = True,
) -> pd.DataFrame:
    """Convert accumulated replicate records to a table.

    Args:
        results: Records in replicate order.
        parameter_names: Estimate columns.
        completed_only: Drop failed replicates.

    Returns:
        DataFrame with one row per replicate, parameter columns numeric.
    """
    records = [r for r in results if r.succeeded or not completed_only]
    frame = pd.DataFrame(
        [r.to_row(parameter_names) for r in records],
        columns=RECORD_FIELDS + list(parameter_names),
    )
    numeric = ["pc_events", "event_rate", "duration_seconds", *parameter_names]
    frame[numeric] = frame[numeric].apply(pd.to_numeric, errors="coerce")
    return frame.sort_values("replicate").reset_index(drop=True)
