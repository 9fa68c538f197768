"""Density plots of parameter estimates across replicates."""

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from scipy import stats

import matplotlib
matplotlib.use("Agg")  # Non-interactive backend
import matplotlib.pyplot as plt

# Mathtext labels for the reported parameters
PARAMETER_LABELS = {
    "beta0": r"$\beta_0$",
    "beta1": r"$\beta_1$",
    "beta22": r"$\beta_{22}$",
    "beta23": r"$\beta_{23}$",
    "beta3": r"$\beta_3$",
    "beta_time": r"$\beta_t$",
    "sigma_e": r"$\sigma_e$",
    "sigma_u": r"$\sigma_u$",
    "sigma_s": r"$\sigma_s$",
    "rho": r"$\rho$",
    "beta1s": r"$\beta_{1S}$",
    "beta3s": r"$\beta_{3S}$",
    "gamma_i": r"$\gamma_0$",
    "gamma_s": r"$\gamma_1$",
    "pc_events": "Events",
}


@dataclass
class PlotStyle:
    """Display settings for density plots.

    Attributes:
        ncols: Panels per row.
        panel_size: Width and height of one panel in inches.
        fill_color: Density fill colour.
        fill_alpha: Density fill transparency.
        truth_color: Colour of the true-value line.
        truth_alpha: Transparency of the true-value line.
        truth_linestyle: Line style of the true-value line.
        dpi: Resolution for raster formats.
        formats: File formats written when saving.
        grid_points: Evaluation points of each density curve.
    """

    ncols: int = 2
    panel_size: Tuple[float, float] = (4.0, 2.2)
    fill_color: str = "0.12"
    fill_alpha: float = 0.2
    truth_color: str = "blue"
    truth_alpha: float = 0.5
    truth_linestyle: str = ":"
    dpi: int = 300
    formats: Tuple[str, ...] = ("png", "pdf")
    grid_points: int = 256


def _density_curve(
    values: np.ndarray, grid_points: int
) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    """Gaussian KDE evaluated on a grid spanning the values.

    Returns None when the values have no spread, where a KDE is undefined.
    """
    if len(values) < 2 or np.ptp(values) == 0:
        return None

    kde = stats.gaussian_kde(values)
    pad = 0.1 * np.ptp(values)
    grid = np.linspace(values.min() - pad, values.max() + pad, grid_points)
    return grid, kde(grid)


def plot_estimate_densities(
    estimates: pd.DataFrame,
    truth: Dict[str, float],
    parameters: Optional[Sequence[str]] = None,
    output_path: Optional[Union[str, Path]] = None,
    title: Optional[str] = None,
    style: Optional[PlotStyle] = None,
) -> Optional[plt.Figure]:
    """Plot the empirical distribution of each parameter's estimates.

    One panel per parameter with a filled density and a dotted line at
    the true value. Parameters without a true value (e.g. ``pc_events``)
    get no reference line.

    Args:
        estimates: One row per replicate, one column per parameter.
        truth: Generating value of each parameter.
        parameters: Columns to plot, in panel order. Defaults to the
            parameters in ``truth`` followed by ``pc_events`` if present.
        output_path: Path to save figure (without extension).
            If None, returns figure without saving.
        title: Figure title.
        style: Display settings.

    Returns:
        Matplotlib figure if output_path is None.
    """
    if style is None:
        style = PlotStyle()

    if parameters is None:
        parameters = [p for p in truth if p in estimates.columns]
        if "pc_events" in estimates.columns:
            parameters.append("pc_events")
    parameters = list(parameters)
    if not parameters:
        raise ValueError("No parameters to plot")

    ncols = min(style.ncols, len(parameters))
    nrows = math.ceil(len(parameters) / ncols)
    fig, axes = plt.subplots(
        nrows,
        ncols,
        figsize=(style.panel_size[0] * ncols, style.panel_size[1] * nrows),
        squeeze=False,
    )

    for ax, name in zip(axes.flat, parameters):
        values = pd.to_numeric(estimates[name], errors="coerce").to_numpy(dtype=float)
        values = values[np.isfinite(values)]

        curve = _density_curve(values, style.grid_points)
        if curve is not None:
            grid, density = curve
            ax.fill_between(grid, density, color=style.fill_color, alpha=style.fill_alpha)
            ax.plot(grid, density, color=style.fill_color, linewidth=1)
        elif len(values) > 0:
            ax.axvline(values[0], color=style.fill_color, linewidth=1)

        true_value = truth.get(name)
        if true_value is not None:
            ax.axvline(
                true_value,
                color=style.truth_color,
                alpha=style.truth_alpha,
                linestyle=style.truth_linestyle,
                linewidth=1.5,
            )

        ax.set_title(PARAMETER_LABELS.get(name, name), fontsize=11)
        ax.set_xlabel("Estimate", fontsize=9)
        ax.set_ylabel("Density", fontsize=9)
        ax.grid(True, alpha=0.3)

    # Hide unused panels
    for ax in list(axes.flat)[len(parameters):]:
        ax.set_visible(False)

    if title:
        fig.suptitle(title, fontsize=14)

    plt.tight_layout()

    # Save or return
    if output_path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        for fmt in style.formats:
            fig.savefig(f"{output_path}.{fmt}", dpi=style.dpi, bbox_inches="tight")
        plt.close(fig)
        return None

    return fig
