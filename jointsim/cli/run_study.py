"""CLI for running simulation studies."""

import argparse
import dataclasses
import sys
from pathlib import Path

from ..data.scenarios import get_scenario, PREDEFINED_SCENARIOS
from ..data.types import FitMode
from ..experiments.config import SimulationStudy
from ..experiments.runner import run_loaded_study, run_study


def main() -> int:
    """Main entry point for run_study CLI.

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(
        prog="python -m jointsim.cli.run_study",
        description="Simulate and fit repeated joint datasets.",
    )

    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument(
        "--config",
        type=Path,
        help="Path to study JSON config",
    )
    group.add_argument(
        "--scenario",
        type=str,
        choices=list(PREDEFINED_SCENARIOS.keys()),
        help="Predefined scenario name (builds a study on the fly)",
    )

    parser.add_argument(
        "--fit-mode",
        type=str,
        choices=["separate", "joint"],
        default="separate",
        help="Analysis of each replicate (with --scenario, default: separate)",
    )

    parser.add_argument(
        "--replicates",
        type=int,
        default=1000,
        help="Number of replicates (with --scenario, default: 1000)",
    )

    parser.add_argument(
        "--subjects",
        type=int,
        help="Override number of subjects (with --scenario)",
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Root random seed (with --scenario, default: 42)",
    )

    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("outputs/studies"),
        help="Output directory (default: outputs/studies/)",
    )

    parser.add_argument(
        "--resume",
        action="store_true",
        help="Skip replicates already written by a previous run",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate config without running",
    )

    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress non-error output",
    )

    args = parser.parse_args()
    verbose = not args.quiet

    if args.config is not None:
        # Check config exists
        if not args.config.exists():
            print(f"ERROR: Config file not found: {args.config}", file=sys.stderr)
            return 1

        return run_study(
            config_path=args.config,
            output_dir=args.output_dir,
            resume=args.resume,
            dry_run=args.dry_run,
            verbose=verbose,
        )

    try:
        scenario = get_scenario(args.scenario)
        if args.subjects:
            scenario = dataclasses.replace(scenario, m=args.subjects)

        fit_mode = FitMode[args.fit_mode.upper()]
        study = SimulationStudy(
            name=f"{args.fit_mode.capitalize()} investigation ({scenario.name})",
            seed=args.seed,
            scenario=scenario,
            n_replicates=args.replicates,
            fit_mode=fit_mode,
            study_id=f"{scenario.name}_{args.fit_mode}_seed{args.seed}",
        )
    except ValueError as e:
        print(f"ERROR: Invalid study: {e}", file=sys.stderr)
        return 1

    if args.dry_run:
        print(f"Config validation successful: {study.name}")
        print(f"  Study ID: {study.study_id}")
        print(f"  Replicates: {study.n_replicates}")
        return 0

    return run_loaded_study(study, args.output_dir, resume=args.resume, verbose=verbose)


if __name__ == "__main__":
    sys.exit(main())
