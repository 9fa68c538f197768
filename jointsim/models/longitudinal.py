"""Linear mixed model fits via statsmodels MixedLM."""

import warnings
from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd
from statsmodels.regression.mixed_linear_model import MixedLM

from .errors import ModelFitError
from .specs import LongitudinalModelSpec


@dataclass
class LongitudinalFit:
    """Estimates from a linear mixed model.

    Attributes:
        fixed_effects: Fixed-effect estimates indexed by design column.
        sigma_e: Residual SD.
        sigma_u: Random intercept SD.
        sigma_s: Random slope SD, None without a random slope.
        re_correlation: Intercept-slope correlation, None without a
            random slope.
        random_effects: Predicted random effects (BLUPs), one row per
            subject, columns ``u_intercept`` and optionally ``u_slope``.
        converged: Optimizer convergence flag.
        n_obs: Number of rows used.
        n_groups: Number of subjects.
    """

    fixed_effects: pd.Series
    sigma_e: float
    sigma_u: float
    sigma_s: Optional[float]
    re_correlation: Optional[float]
    random_effects: pd.DataFrame
    converged: bool
    n_obs: int
    n_groups: int


def fit_longitudinal(
    df: pd.DataFrame,
    spec: Optional[LongitudinalModelSpec] = None,
    reml: bool = True,
    max_iter: int = 200,
) -> LongitudinalFit:
    """Fit a linear mixed model with a per-subject random intercept.

    A random slope on the occasion index is added when
    ``spec.random_slope`` is set. The statsmodels default optimizer is
    tried first. A fit that fails with a singular covariance or does not
    converge is retried with other optimizers; the final convergence flag
    is reported, not raised.

    Args:
        df: Longitudinal table.
        spec: Model description (default: random intercept model).
        reml: Use REML rather than maximum likelihood.
        max_iter: Iterations for the fallback optimizers.

    Returns:
        LongitudinalFit with fixed effects and variance components.

    Raises:
        ModelFitError: If statsmodels cannot fit the model.
    """
    if spec is None:
        spec = LongitudinalModelSpec()

    model = MixedLM(
        endog=df[spec.response].to_numpy(dtype=float),
        exog=spec.design(df),
        groups=df[spec.group].to_numpy(),
        exog_re=spec.random_design(df),
    )

    # statsmodels defaults first, then other optimizers with more iterations
    attempts = (
        {},
        {"method": ["bfgs", "lbfgs", "cg"], "maxiter": max_iter},
        {"method": "nm", "maxiter": max_iter * 5},
    )

    result = None
    last_error = None
    for options in attempts:
        try:
            with warnings.catch_warnings():
                # Convergence is reported through the returned flag
                warnings.simplefilter("ignore")
                attempt = model.fit(reml=reml, **options)
        except (np.linalg.LinAlgError, ValueError) as e:
            last_error = e
            continue

        if result is None or getattr(attempt, "converged", True):
            result = attempt
        if getattr(result, "converged", True):
            break

    if result is None:
        raise ModelFitError(
            "longitudinal", f"{type(last_error).__name__}: {last_error}"
        ) from last_error

    cov_re = np.asarray(result.cov_re, dtype=float)
    sigma_u = float(np.sqrt(cov_re[0, 0]))
    sigma_s = None
    re_correlation = None
    if spec.random_slope:
        sigma_s = float(np.sqrt(cov_re[1, 1]))
        denom = sigma_u * sigma_s
        re_correlation = float(cov_re[0, 1] / denom) if denom > 0 else np.nan

    random_effects = pd.DataFrame.from_dict(result.random_effects, orient="index")
    random_effects.columns = ["u_intercept", "u_slope"][: random_effects.shape[1]]
    random_effects.index.name = spec.group

    return LongitudinalFit(
        fixed_effects=pd.Series(result.fe_params, dtype=float),
        sigma_e=float(np.sqrt(result.scale)),
        sigma_u=sigma_u,
        sigma_s=sigma_s,
        re_correlation=re_correlation,
        random_effects=random_effects,
        converged=bool(getattr(result, "converged", True)),
        n_obs=int(len(df)),
        n_groups=int(df[spec.group].nunique()),
    )
