"""Unit tests for the estimate density figure."""

import numpy as np
import pandas as pd
import pytest

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from jointsim.visualization.densities import PlotStyle, plot_estimate_densities


@pytest.fixture
def estimates():
    """Estimates of three parameters plus event percentages."""
    rng = np.random.default_rng(3)
    return pd.DataFrame({
        "beta0": rng.normal(40, 0.5, size=50),
        "beta1": rng.normal(-10, 0.5, size=50),
        "sigma_e": rng.normal(2.5, 0.1, size=50),
        "pc_events": rng.uniform(40, 55, size=50),
    })


TRUTH = {"beta0": 40.0, "beta1": -10.0, "sigma_e": 2.5, "gamma_i": 1.0}


class TestPlotEstimateDensities:
    """Tests for plot_estimate_densities."""

    def test_returns_figure(self, estimates):
        """Test default panels: truth keys present, then pc_events."""
        fig = plot_estimate_densities(estimates, TRUTH)

        visible = [ax for ax in fig.axes if ax.get_visible()]
        assert len(visible) == 4
        assert visible[-1].get_title() == "Events"
        plt.close(fig)

    def test_truth_line(self, estimates):
        """Test that a panel draws a vertical line at the true value."""
        fig = plot_estimate_densities(estimates, TRUTH, parameters=["beta0"])

        ax = fig.axes[0]
        xs = [line.get_xdata()[0] for line in ax.get_lines() if line.get_linestyle() == ":"]
        assert xs == [40.0]
        plt.close(fig)

    def test_unused_panels_hidden(self, estimates):
        """Test that an odd panel count hides the spare axis."""
        fig = plot_estimate_densities(
            estimates, TRUTH, parameters=["beta0", "beta1", "sigma_e"]
        )

        assert len(fig.axes) == 4
        assert not fig.axes[3].get_visible()
        plt.close(fig)

    def test_constant_values(self):
        """Test that estimates without spread still plot."""
        estimates = pd.DataFrame({"beta0": [40.0] * 5})
        fig = plot_estimate_densities(estimates, {"beta0": 40.0})
        assert fig is not None
        plt.close(fig)

    def test_nothing_to_plot(self):
        """Test error when no parameter is available."""
        with pytest.raises(ValueError):
            plot_estimate_densities(pd.DataFrame({"other": [1.0]}), {"beta0": 40.0})

    def test_save_formats(self, estimates, tmp_path):
        """Test saving one file per configured format."""
        output = tmp_path / "figures" / "density"
        style = PlotStyle(dpi=50, formats=("png", "pdf"))

        result = plot_estimate_densities(
            estimates, TRUTH, output_path=output, title="Separate investigation", style=style
        )

        assert result is None
        assert (tmp_path / "figures" / "density.png").exists()
        assert (tmp_path / "figures" / "density.pdf").exists()
