"""Cox proportional hazards fits via lifelines."""

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from lifelines import CoxPHFitter
from lifelines.exceptions import ConvergenceError

from .errors import ModelFitError
from .specs import SurvivalModelSpec


@dataclass
class SurvivalFit:
    """Estimates from a Cox proportional hazards model.

    Attributes:
        coefficients: Log hazard ratios indexed by covariate.
        standard_errors: Standard errors of the coefficients.
        concordance: Harrell's C on the fitting data.
        n_events: Number of observed events.
    """

    coefficients: pd.Series
    standard_errors: pd.Series
    concordance: float
    n_events: int


def fit_survival(
    df: pd.DataFrame,
    spec: Optional[SurvivalModelSpec] = None,
    extra_covariates: Sequence[str] = (),
    penalizer: float = 0.0,
) -> SurvivalFit:
    """Fit a Cox proportional hazards model.

    Args:
        df: Survival table.
        spec: Model description (default: x1 + x3).
        extra_covariates: Additional columns entering the linear predictor.
        penalizer: lifelines L2 penalizer.

    Returns:
        SurvivalFit with log hazard ratio estimates.

    Raises:
        ModelFitError: If no events are observed or lifelines fails.
    """
    if spec is None:
        spec = SurvivalModelSpec()

    frame = spec.frame(df, extra_covariates)
    n_events = int(frame[spec.event].sum())
    if n_events == 0:
        raise ModelFitError("survival", "no events observed")

    cph = CoxPHFitter(penalizer=penalizer)
    try:
        cph.fit(frame, duration_col=spec.duration, event_col=spec.event)
    except (ConvergenceError, np.linalg.LinAlgError, ValueError) as e:
        raise ModelFitError("survival", f"{type(e).__name__}: {e}") from e

    return SurvivalFit(
        coefficients=cph.params_.astype(float),
        standard_errors=cph.standard_errors_.astype(float),
        concordance=float(cph.concordance_index_),
        n_events=n_events,
    )
