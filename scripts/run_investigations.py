#!/usr/bin/env python3
"""Separate versus joint investigation of one scenario.

Runs the same scenario and seed twice, once fitting the mixed model and
the Cox model independently and once with the two-stage joint model,
then prints the bias of each parameter side by side.

Usage:
    python scripts/run_investigations.py --scenario random_intercept --replicates 1000
    python scripts/run_investigations.py --scenario random_slope --replicates 200 --seed 7
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from jointsim.data.scenarios import get_scenario, PREDEFINED_SCENARIOS
from jointsim.data.types import FitMode
from jointsim.experiments.aggregation import compare_studies
from jointsim.experiments.config import SimulationStudy
from jointsim.experiments.runner import run_loaded_study


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Compare separate and joint fits on one scenario.",
    )

    parser.add_argument(
        "--scenario",
        type=str,
        choices=list(PREDEFINED_SCENARIOS.keys()),
        default="random_intercept",
        help="Predefined scenario name (default: random_intercept)",
    )

    parser.add_argument(
        "--replicates",
        type=int,
        default=1000,
        help="Replicates per study (default: 1000)",
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Root random seed shared by both studies (default: 42)",
    )

    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("outputs/studies"),
        help="Base output directory (default: outputs/studies/)",
    )

    parser.add_argument(
        "--resume",
        action="store_true",
        help="Continue previously started studies",
    )

    parser.add_argument(
        "--statistic",
        type=str,
        default="bias",
        choices=["bias", "relative_bias", "empirical_sd", "rmse"],
        help="Summary statistic to compare (default: bias)",
    )

    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress non-error output",
    )

    return parser.parse_args()


def main() -> int:
    """Main entry point."""
    args = parse_args()
    verbose = not args.quiet
    scenario = get_scenario(args.scenario)

    study_dirs = {}
    exit_codes = []
    for fit_mode in (FitMode.SEPARATE, FitMode.JOINT):
        label = fit_mode.name.lower()
        study = SimulationStudy(
            name=f"{label.capitalize()} investigation ({scenario.name})",
            seed=args.seed,
            scenario=scenario,
            n_replicates=args.replicates,
            fit_mode=fit_mode,
            study_id=f"{scenario.name}_{label}_seed{args.seed}",
        )

        if verbose:
            print(f"\n{'='*60}", file=sys.stderr)
            print(study.name, file=sys.stderr)
            print(f"{'='*60}\n", file=sys.stderr)

        exit_codes.append(
            run_loaded_study(study, args.output_dir, resume=args.resume, verbose=verbose)
        )
        study_dirs[label] = args.output_dir / study.study_id

    if all(code == 2 for code in exit_codes):
        print("ERROR: Both studies failed", file=sys.stderr)
        return 2

    comparison = compare_studies(study_dirs, statistic=args.statistic)
    print(f"\n{args.statistic} by parameter:")
    print(comparison.to_string(float_format=lambda v: f"{v:+.4f}"))

    return 0 if all(code == 0 for code in exit_codes) else 3


if __name__ == "__main__":
    sys.exit(main())
