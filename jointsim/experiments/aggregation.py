"""Summaries of estimates across replicates and studies."""

import json
from pathlib import Path
from typing import Dict, Optional, Union

import numpy as np
import pandas as pd

from ..analysis.bias import bias_test, monte_carlo_standard_error

SUMMARY_COLUMNS = [
    "true_value",
    "mean",
    "bias",
    "relative_bias",
    "empirical_sd",
    "rmse",
    "mcse_bias",
    "p_value",
    "n",
]


def summarize_estimates(
    estimates: pd.DataFrame,
    truth: Dict[str, float],
) -> pd.DataFrame:
    """Bias and variability of each parameter across replicates.

    Args:
        estimates: One row per replicate, one column per parameter.
        truth: Generating value of each parameter.

    Returns:
        DataFrame indexed by parameter with the columns in
        ``SUMMARY_COLUMNS``; ``p_value`` is the two-sided bias t-test.
        Parameters absent from ``estimates`` are skipped; parameters with
        no finite estimate get NaN statistics.
    """
    rows = []
    for name, true_value in truth.items():
        if name not in estimates.columns:
            continue

        values = pd.to_numeric(estimates[name], errors="coerce").to_numpy(dtype=float)
        values = values[np.isfinite(values)]
        n = len(values)

        if n == 0:
            rows.append({"parameter": name, "true_value": true_value, "n": 0})
            continue

        mean = float(np.mean(values))
        bias = mean - true_value
        empirical_sd = float(np.std(values, ddof=1)) if n > 1 else 0.0
        # A t-test needs spread among the estimates
        p_value = bias_test(values, true_value)["p_value"] if empirical_sd > 0 else np.nan
        rows.append({
            "parameter": name,
            "true_value": true_value,
            "mean": mean,
            "bias": bias,
            "relative_bias": bias / true_value if true_value != 0 else np.nan,
            "empirical_sd": empirical_sd,
            "rmse": float(np.sqrt(np.mean((values - true_value) ** 2))),
            "mcse_bias": monte_carlo_standard_error(values),
            "p_value": p_value,
            "n": n,
        })

    summary = pd.DataFrame(rows, columns=["parameter"] + SUMMARY_COLUMNS)
    return summary.set_index("parameter")


def load_study_summary(study_dir: Union[str, Path]) -> Optional[pd.DataFrame]:
    """Load summary.csv from a study output directory.

    Args:
        study_dir: Path to study output directory.

    Returns:
        Summary DataFrame indexed by parameter. None if not found.
    """
    summary_path = Path(study_dir) / "results" / "summary.csv"
    if not summary_path.exists():
        return None
    return pd.read_csv(summary_path, index_col="parameter")


def load_ground_truth(study_dir: Union[str, Path]) -> Dict[str, float]:
    """Load the generating parameter values saved with a study.

    Args:
        study_dir: Path to study output directory.

    Returns:
        Mapping of parameter name to true value.

    Raises:
        FileNotFoundError: If the study has no ground truth file.
    """
    path = Path(study_dir) / "results" / "ground_truth.json"
    if not path.exists():
        raise FileNotFoundError(f"Ground truth file not found: {path}")
    with open(path) as f:
        return json.load(f)["parameters"]


def compare_studies(
    study_dirs: Dict[str, Union[str, Path]],
    statistic: str = "bias",
) -> pd.DataFrame:
    """Put one summary statistic of several studies side by side.

    Typical use compares a separate-fit study with a joint-fit study of
    the same scenario.

    Args:
        study_dirs: Mapping of label to study output directory.
        statistic: Summary column to compare (e.g., "bias", "rmse").

    Returns:
        DataFrame indexed by parameter with one column per label.
        Studies without a summary are skipped.
    """
    columns = {}
    for label, study_dir in study_dirs.items():
        summary = load_study_summary(study_dir)
        if summary is None:
            continue
        columns[label] = summary[statistic]

    return pd.DataFrame(columns)
