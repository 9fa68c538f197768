"""Unit tests for bias summaries and the bias test."""

import json

import numpy as np
import pandas as pd
import pytest

from jointsim.analysis.bias import bias_test, monte_carlo_standard_error
from jointsim.experiments.aggregation import (
    SUMMARY_COLUMNS,
    compare_studies,
    load_ground_truth,
    load_study_summary,
    summarize_estimates,
)


class TestSummarizeEstimates:
    """Tests for per-parameter summaries."""

    def test_statistics(self):
        """Test the summary statistics on hand-checked values."""
        estimates = pd.DataFrame({"beta0": [39.0, 41.0, 43.0], "beta1": [-10.0, -10.0, -10.0]})
        truth = {"beta0": 40.0, "beta1": -10.0}

        summary = summarize_estimates(estimates, truth)

        assert list(summary.columns) == SUMMARY_COLUMNS
        row = summary.loc["beta0"]
        assert row["mean"] == pytest.approx(41.0)
        assert row["bias"] == pytest.approx(1.0)
        assert row["relative_bias"] == pytest.approx(1.0 / 40.0)
        assert row["empirical_sd"] == pytest.approx(2.0)
        assert row["rmse"] == pytest.approx(np.sqrt((1 + 1 + 9) / 3))
        assert row["mcse_bias"] == pytest.approx(2.0 / np.sqrt(3))
        assert row["n"] == 3
        assert summary.loc["beta1", "bias"] == pytest.approx(0.0)

    def test_p_value_from_bias_test(self):
        """Test the summary p-value matches a one-sample t-test of the estimates."""
        estimates = pd.DataFrame({"beta0": [39.0, 41.0, 43.0], "beta1": [-10.0, -10.0, -10.0]})

        summary = summarize_estimates(estimates, {"beta0": 40.0, "beta1": -10.0})

        expected = bias_test([39.0, 41.0, 43.0], 40.0)["p_value"]
        assert summary.loc["beta0", "p_value"] == pytest.approx(expected)
        # Identical estimates have no spread to test
        assert np.isnan(summary.loc["beta1", "p_value"])

    def test_zero_truth_relative_bias(self):
        """Test that relative bias is undefined for a zero true value."""
        summary = summarize_estimates(pd.DataFrame({"beta_time": [0.1, -0.1]}), {"beta_time": 0.0})
        assert np.isnan(summary.loc["beta_time", "relative_bias"])

    def test_missing_and_empty_parameters(self):
        """Test absent columns are skipped and all-NaN columns kept with n=0."""
        estimates = pd.DataFrame({"beta0": [40.0, 41.0], "rho": [np.nan, np.nan]})
        summary = summarize_estimates(estimates, {"beta0": 40.0, "rho": 0.3, "gamma_i": 1.0})

        assert "gamma_i" not in summary.index
        assert summary.loc["rho", "n"] == 0
        assert np.isnan(summary.loc["rho", "bias"])


class TestBiasTest:
    """Tests for the one-sample bias test."""

    def test_unbiased_estimates(self):
        """Test that draws centred on the truth are not flagged."""
        rng = np.random.default_rng(1)
        values = rng.normal(5.0, 1.0, size=2000)

        result = bias_test(values, 5.0)

        assert abs(result["bias"]) < 0.1
        assert result["ci_lower"] < 0 < result["ci_upper"]
        assert result["n"] == 2000

    def test_biased_estimates(self):
        """Test that a shifted mean gives a small p-value."""
        rng = np.random.default_rng(1)
        values = rng.normal(5.5, 1.0, size=500)

        result = bias_test(values, 5.0)

        assert result["bias"] == pytest.approx(0.5, abs=0.15)
        assert result["p_value"] < 1e-6
        assert result["t_statistic"] > 0

    def test_one_sided(self):
        """Test the direction of a one-sided alternative."""
        values = np.array([4.0, 4.1, 3.9, 4.2, 3.8])
        assert bias_test(values, 5.0, alternative="less")["p_value"] < 0.01
        assert bias_test(values, 5.0, alternative="greater")["p_value"] > 0.99

    def test_too_few_values(self):
        """Test that a single estimate cannot be tested."""
        with pytest.raises(ValueError):
            bias_test(np.array([1.0]), 0.0)

    def test_mcse(self):
        """Test the Monte-Carlo standard error."""
        assert monte_carlo_standard_error(np.array([1.0, 3.0])) == pytest.approx(1.0)
        assert np.isnan(monte_carlo_standard_error(np.array([1.0])))


class TestStudyFiles:
    """Tests for loading and comparing saved study results."""

    def _write_study(self, study_dir, bias):
        results = study_dir / "results"
        results.mkdir(parents=True)
        summary = summarize_estimates(
            pd.DataFrame({"beta0": [40.0 + bias, 40.0 + bias]}), {"beta0": 40.0}
        )
        summary.to_csv(results / "summary.csv")
        with open(results / "ground_truth.json", "w") as f:
            json.dump({"parameters": {"beta0": 40.0}}, f)

    def test_load_summary_and_truth(self, tmp_path):
        """Test round trip through the results directory."""
        self._write_study(tmp_path / "a", 0.5)

        summary = load_study_summary(tmp_path / "a")
        assert summary.loc["beta0", "bias"] == pytest.approx(0.5)
        assert load_ground_truth(tmp_path / "a") == {"beta0": 40.0}

    def test_missing_files(self, tmp_path):
        """Test behaviour for a study without results."""
        assert load_study_summary(tmp_path) is None
        with pytest.raises(FileNotFoundError):
            load_ground_truth(tmp_path)

    def test_compare_studies(self, tmp_path):
        """Test side-by-side comparison of two studies."""
        self._write_study(tmp_path / "separate", 0.5)
        self._write_study(tmp_path / "joint", -0.25)

        table = compare_studies({
            "separate": tmp_path / "separate",
            "joint": tmp_path / "joint",
            "missing": tmp_path / "missing",
        })

        assert list(table.columns) == ["separate", "joint"]
        assert table.loc["beta0", "separate"] == pytest.approx(0.5)
        assert table.loc["beta0", "joint"] == pytest.approx(-0.25)
