"""Visualization of simulation study results."""

from .densities import PlotStyle, PARAMETER_LABELS, plot_estimate_densities

__all__ = [
    "PlotStyle",
    "PARAMETER_LABELS",
    "plot_estimate_densities",
]
