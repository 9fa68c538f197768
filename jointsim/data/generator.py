"""Synthetic joint longitudinal and survival data generator."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np
import pandas as pd

from .scenarios import JointScenario

X2_LEVELS = [1, 2, 3]

LONGITUDINAL_COLUMNS = ["id", "time", "x1l", "x2l", "x3l", "Y"]
SURVIVAL_COLUMNS = ["id", "x1", "x3", "survtime", "status"]


@dataclass
class JointData:
    """Container for one simulated joint dataset.

    Attributes:
        longitudinal: One row per (subject, occasion) with columns
            id, time, x1l, x2l, x3l, Y.
        survival: One row per subject with columns
            id, x1, x3, survtime, status.
        pc_events: Percentage of subjects whose observed time falls
            before the administrative horizon.
        random_effects: Latent random effects of shape (m, 1) or (m, 2).
        tau: Administrative end of follow-up.
        scenario_name: Name of the generating scenario.
    """

    longitudinal: pd.DataFrame
    survival: pd.DataFrame
    pc_events: float
    random_effects: np.ndarray
    tau: float
    scenario_name: str = ""

    @property
    def n_subjects(self) -> int:
        """Number of subjects."""
        return len(self.survival)

    @property
    def event_rate(self) -> float:
        """Proportion of subjects with an observed event."""
        return float(self.survival["status"].mean())

    def at_risk_longitudinal(self) -> pd.DataFrame:
        """Longitudinal rows observed at or before each subject's survival time.

        Returns:
            Subset of the longitudinal table with the same columns.
        """
        merged = self.longitudinal.merge(
            self.survival[["id", "survtime"]], on="id", how="left"
        )
        keep = (merged["time"] <= merged["survtime"]).to_numpy()
        return self.longitudinal.loc[keep].reset_index(drop=True)

    def save(self, directory: Union[str, Path]) -> None:
        """Save tables as CSV plus metadata.

        Args:
            directory: Output directory (created if missing).
        """
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)

        self.longitudinal.to_csv(directory / "longitudinal.csv", index=False)
        self.survival.to_csv(directory / "survival.csv", index=False)
        np.save(directory / "random_effects.npy", self.random_effects)

        meta = {
            "scenario": self.scenario_name,
            "pc_events": self.pc_events,
            "tau": self.tau,
            "n_subjects": self.n_subjects,
            "event_rate": self.event_rate,
        }
        with open(directory / "metadata.json", "w") as f:
            json.dump(meta, f, indent=2)

    @classmethod
    def load(cls, directory: Union[str, Path]) -> "JointData":
        """Load data saved with :meth:`save`.

        Args:
            directory: Directory containing the saved files.

        Returns:
            JointData instance.
        """
        directory = Path(directory)

        longitudinal = pd.read_csv(directory / "longitudinal.csv")
        longitudinal["x2l"] = pd.Categorical(
            longitudinal["x2l"], categories=X2_LEVELS, ordered=True
        )
        survival = pd.read_csv(directory / "survival.csv")

        with open(directory / "metadata.json", "r") as f:
            meta = json.load(f)

        return cls(
            longitudinal=longitudinal,
            survival=survival,
            pc_events=meta["pc_events"],
            random_effects=np.load(directory / "random_effects.npy"),
            tau=meta["tau"],
            scenario_name=meta.get("scenario", ""),
        )


class JointDataGenerator:
    """Generator for correlated longitudinal and time-to-event data.

    Subjects share latent random effects between a linear mixed
    longitudinal model and an exponential proportional hazards model.
    Event times use inverse transform sampling; observed times are
    truncated by independent exponential censoring and by the last
    measurement occasion.

    Args:
        scenario: Data scenario configuration.
        seed: Random seed, used when ``rng`` is not given.
        rng: Random generator to draw from. Lets a caller thread one
            source through several generators.
    """

    def __init__(
        self,
        scenario: JointScenario,
        seed: int = 42,
        rng: Optional[np.random.Generator] = None,
    ):
        self.scenario = scenario
        self.seed = seed
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def generate(self) -> JointData:
        """Generate one joint dataset.

        Returns:
            JointData with both tables and the event percentage.
        """
        scenario = self.scenario

        covariates = self._generate_covariates()
        random_effects = self._generate_random_effects()

        longitudinal = self._simulate_longitudinal(covariates, random_effects)
        survival = self._simulate_survival(covariates, random_effects)

        n_before_tau = np.count_nonzero(survival["survtime"].to_numpy() < scenario.tau)
        pc_events = 100 * n_before_tau / scenario.m

        return JointData(
            longitudinal=longitudinal,
            survival=survival,
            pc_events=float(pc_events),
            random_effects=random_effects,
            tau=scenario.tau,
            scenario_name=scenario.name,
        )

    def _generate_covariates(self) -> pd.DataFrame:
        """Draw baseline covariates, one row per subject."""
        m = self.scenario.m

        x1 = self.rng.binomial(1, 0.5, size=m)
        # Round-robin over the three levels
        x2 = np.arange(m) % len(X2_LEVELS) + 1
        x3 = np.floor(
            self.rng.normal(self.scenario.age_mean, self.scenario.age_sd, size=m)
        ).astype(int)

        return pd.DataFrame({
            "id": np.arange(1, m + 1),
            "x1": x1,
            "x2": x2,
            "x3": x3,
        })

    def _generate_random_effects(self) -> np.ndarray:
        """Draw subject random effects, shape (m, 1) or (m, 2)."""
        m = self.scenario.m

        if not self.scenario.has_random_slope:
            return self.rng.normal(0.0, self.scenario.sigma_i, size=(m, 1))

        return self.rng.multivariate_normal(
            np.zeros(2), self.scenario.covariance_matrix(), size=m
        )

    @staticmethod
    def _longitudinal_design(covariates: pd.DataFrame) -> np.ndarray:
        """Intercept, x1, dummy-coded x2 (level 1 reference) and x3."""
        x2 = covariates["x2"].to_numpy()
        return np.column_stack([
            np.ones(len(covariates)),
            covariates["x1"].to_numpy(dtype=float),
            (x2 == 2).astype(float),
            (x2 == 3).astype(float),
            covariates["x3"].to_numpy(dtype=float),
        ])

    def _simulate_longitudinal(
        self, covariates: pd.DataFrame, random_effects: np.ndarray
    ) -> pd.DataFrame:
        """Expand to long form and compute the response."""
        m = self.scenario.m
        n_i = self.scenario.n_i

        time = np.tile(np.arange(n_i), m)
        X_long = np.repeat(self._longitudinal_design(covariates), n_i, axis=0)
        U_long = np.repeat(random_effects, n_i, axis=0)

        epsilon = self.rng.normal(0.0, self.scenario.sigma_e, size=m * n_i)

        Y = X_long @ np.asarray(self.scenario.Bl) + U_long[:, 0] + epsilon
        if self.scenario.has_random_slope:
            Y = Y + U_long[:, 1] * time

        return pd.DataFrame({
            "id": np.repeat(covariates["id"].to_numpy(), n_i),
            "time": time,
            "x1l": np.repeat(covariates["x1"].to_numpy(), n_i),
            "x2l": pd.Categorical(
                np.repeat(covariates["x2"].to_numpy(), n_i),
                categories=X2_LEVELS,
                ordered=True,
            ),
            "x3l": np.repeat(covariates["x3"].to_numpy(), n_i),
            "Y": Y,
        })

    def _draw_event_times(
        self, covariates: pd.DataFrame, random_effects: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Latent event times and censoring times, one per subject."""
        m = self.scenario.m

        X_surv = covariates[["x1", "x3"]].to_numpy(dtype=float)
        # All random effects enter the hazard with unit association
        linear_predictor = X_surv @ np.asarray(self.scenario.Bs) + random_effects.sum(axis=1)

        # Inverse transform of the exponential survival function
        u = self.rng.uniform(0.0, 1.0, size=m)
        tt = -np.log(u) / (self.scenario.lambda_ * np.exp(linear_predictor))

        censor = self.rng.exponential(scale=1.0 / self.scenario.censoring_rate, size=m)
        return tt, censor

    def _simulate_survival(
        self, covariates: pd.DataFrame, random_effects: np.ndarray
    ) -> pd.DataFrame:
        """Simulate event, censoring and observed times."""
        tt, censor = self._draw_event_times(covariates, random_effects)

        survtime = np.minimum(np.minimum(tt, censor), self.scenario.tau)
        # Same float as the draw, so equality is exact
        status = (survtime == tt).astype(int)

        return pd.DataFrame({
            "id": covariates["id"].to_numpy(),
            "x1": covariates["x1"].to_numpy(),
            "x3": covariates["x3"].to_numpy(),
            "survtime": survtime,
            "status": status,
        })


def generate(
    scenario: JointScenario,
    rng: Optional[np.random.Generator] = None,
    seed: int = 42,
) -> Tuple[pd.DataFrame, pd.DataFrame, float]:
    """Generate one dataset and return its tables.

    Args:
        scenario: Data scenario configuration.
        rng: Random generator to draw from.
        seed: Seed used when ``rng`` is not given.

    Returns:
        Tuple of (longitudinal table, survival table, pc_events).
    """
    data = JointDataGenerator(scenario, seed=seed, rng=rng).generate()
    return data.longitudinal, data.survival, data.pc_events
