"""Two-stage joint model of longitudinal and survival outcomes.

Stage one fits the linear mixed model to the longitudinal measurements
taken while each subject is still at risk. Stage two adds the predicted
subject random effects (BLUPs) to the Cox linear predictor, so their
coefficients estimate the association between the latent trajectory
and the hazard.
"""

from dataclasses import dataclass
from typing import Optional

import pandas as pd

from ..data.generator import JointData
from .errors import ModelFitError
from .longitudinal import LongitudinalFit, fit_longitudinal
from .specs import LongitudinalModelSpec, SurvivalModelSpec
from .survival import SurvivalFit, fit_survival


@dataclass
class JointFit:
    """Estimates from the two-stage joint model.

    Attributes:
        longitudinal: Mixed model fitted to the at-risk rows.
        survival: Cox model including the random-effect covariates.
        association: Log hazard ratio per unit of each random effect,
            indexed by ``u_intercept`` (and ``u_slope``).
        n_at_risk_rows: Longitudinal rows kept after truncation.
    """

    longitudinal: LongitudinalFit
    survival: SurvivalFit
    association: pd.Series
    n_at_risk_rows: int


def fit_joint(
    data: JointData,
    long_spec: Optional[LongitudinalModelSpec] = None,
    surv_spec: Optional[SurvivalModelSpec] = None,
) -> JointFit:
    """Fit the joint model to one simulated dataset.

    Args:
        data: Longitudinal and survival tables of the same subjects.
        long_spec: Longitudinal model description.
        surv_spec: Survival model description.

    Returns:
        JointFit with both submodels and the association estimates.

    Raises:
        ModelFitError: If either stage fails.
    """
    if long_spec is None:
        long_spec = LongitudinalModelSpec()
    if surv_spec is None:
        surv_spec = SurvivalModelSpec()

    at_risk = data.at_risk_longitudinal()
    if at_risk.empty:
        raise ModelFitError("joint", "no longitudinal rows before survival times")

    long_fit = fit_longitudinal(at_risk, long_spec)

    blups = long_fit.random_effects
    blups.index = blups.index.astype(data.survival[long_spec.group].dtype)
    re_columns = list(blups.columns)

    survival = data.survival.join(blups, on=long_spec.group)
    # Subjects without measurements get the prior mean
    survival[re_columns] = survival[re_columns].fillna(0.0)

    surv_fit = fit_survival(survival, surv_spec, extra_covariates=re_columns)

    return JointFit(
        longitudinal=long_fit,
        survival=surv_fit,
        association=surv_fit.coefficients[re_columns],
        n_at_risk_rows=len(at_risk),
    )
