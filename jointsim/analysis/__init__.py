"""Statistical analysis of simulation estimates."""

from .bias import bias_test, monte_carlo_standard_error

__all__ = [
    "bias_test",
    "monte_carlo_standard_error",
]
