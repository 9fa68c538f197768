"""CLI for regenerating figures from study results."""

import argparse
import sys
from pathlib import Path

import pandas as pd

from ..experiments.aggregation import load_ground_truth
from ..visualization.densities import PlotStyle, plot_estimate_densities


def main() -> int:
    """Main entry point for visualize CLI.

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(
        prog="python -m jointsim.cli.visualize",
        description="Plot estimate densities from a finished study.",
    )

    parser.add_argument(
        "--study",
        type=Path,
        required=True,
        help="Path to study output directory",
    )

    parser.add_argument(
        "--output",
        type=Path,
        help="Output path without extension (default: {study}/figures/estimates_density)",
    )

    parser.add_argument(
        "--format",
        type=str,
        default="png,pdf",
        help="Output formats, comma-separated (default: png,pdf)",
    )

    parser.add_argument(
        "--parameters",
        type=str,
        help="Comma-separated parameters to plot (default: all)",
    )

    parser.add_argument(
        "--title",
        type=str,
        help="Figure title",
    )

    parser.add_argument(
        "--dpi",
        type=int,
        default=300,
        help="Resolution for raster formats (default: 300)",
    )

    args = parser.parse_args()

    # Validate study directory
    if not args.study.exists():
        print(f"ERROR: Study not found: {args.study}", file=sys.stderr)
        return 1

    estimates_path = args.study / "results" / "estimates.csv"
    if not estimates_path.exists():
        print("ERROR: No results found. Run the study first.", file=sys.stderr)
        return 1

    try:
        truth = load_ground_truth(args.study)
    except FileNotFoundError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    estimates = pd.read_csv(estimates_path)
    estimates = estimates[estimates["status"] == "COMPLETED"]
    if estimates.empty:
        print("ERROR: No completed replicates to plot.", file=sys.stderr)
        return 1

    parameters = args.parameters.split(",") if args.parameters else None
    output_path = args.output or (args.study / "figures" / "estimates_density")
    style = PlotStyle(dpi=args.dpi, formats=tuple(args.format.split(",")))

    print(f"Generating density plot for study: {args.study.name}")
    plot_estimate_densities(
        estimates,
        truth,
        parameters=parameters,
        output_path=output_path,
        title=args.title,
        style=style,
    )
    for fmt in style.formats:
        print(f"  Saved: {output_path}.{fmt}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
