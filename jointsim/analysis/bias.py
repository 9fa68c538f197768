"""Bias testing for Monte-Carlo estimates.

Provides functions for checking whether the estimates collected across
replicates are centred on the generating value.
"""

from typing import Dict

import numpy as np
from scipy import stats


def monte_carlo_standard_error(values: np.ndarray) -> float:
    """Monte-Carlo standard error of the mean of replicate estimates.

    Args:
        values: Estimates, one per replicate.

    Returns:
        Empirical SD divided by sqrt(n); NaN with fewer than two values.
    """
    values = np.asarray(values, dtype=float)
    n = len(values)
    if n < 2:
        return float("nan")
    return float(np.std(values, ddof=1) / np.sqrt(n))


def bias_test(
    values: np.ndarray,
    true_value: float,
    alternative: str = "two-sided",
    confidence: float = 0.95,
) -> Dict[str, float]:
    """One-sample t-test of the estimates against the true value.

    Args:
        values: Estimates, one per replicate.
        true_value: Generating value of the parameter.
        alternative: "two-sided", "less", or "greater".
        confidence: Confidence level for the interval on the bias.

    Returns:
        Dictionary with:
            - bias: Mean estimate minus true value
            - t_statistic: t-test statistic
            - p_value: p-value
            - ci_lower, ci_upper: Confidence interval for the bias
            - n: Number of estimates

    Raises:
        ValueError: If fewer than two estimates are given.
    """
    values = np.asarray(values, dtype=float)
    n = len(values)
    if n < 2:
        raise ValueError("At least two estimates are needed for a bias test")

    bias = float(np.mean(values) - true_value)
    t_stat, p_value = stats.ttest_1samp(values, true_value, alternative=alternative)

    se = monte_carlo_standard_error(values)
    t_crit = stats.t.ppf(0.5 + confidence / 2, df=n - 1)

    return {
        "bias": bias,
        "t_statistic": float(t_stat),
        "p_value": float(p_value),
        "ci_lower": bias - t_crit * se,
        "ci_upper": bias + t_crit * se,
        "n": int(n),
    }
