"""CLI for generating one joint dataset without fitting."""

import argparse
import dataclasses
import sys
from pathlib import Path

from ..data.generator import JointDataGenerator
from ..data.scenarios import (
    InvalidConfigurationError,
    JointScenario,
    get_scenario,
    PREDEFINED_SCENARIOS,
)


def main() -> int:
    """Main entry point for generate_data CLI.

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(
        prog="python -m jointsim.cli.generate_data",
        description="Generate one joint longitudinal/survival dataset.",
    )

    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument(
        "--scenario",
        type=str,
        choices=list(PREDEFINED_SCENARIOS.keys()),
        help="Predefined scenario name",
    )
    group.add_argument(
        "--config",
        type=Path,
        help="Path to custom scenario config file",
    )

    parser.add_argument(
        "--output",
        type=Path,
        required=True,
        help="Output directory",
    )

    parser.add_argument(
        "--subjects",
        type=int,
        help="Override number of subjects (m)",
    )

    parser.add_argument(
        "--occasions",
        type=int,
        help="Override number of occasions per subject (n_i)",
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed (default: 42)",
    )

    args = parser.parse_args()

    # Load scenario
    try:
        if args.scenario:
            scenario = get_scenario(args.scenario)
        else:
            if not args.config.exists():
                print(f"ERROR: Config file not found: {args.config}", file=sys.stderr)
                return 1
            scenario = JointScenario.from_json(args.config)

        overrides = {}
        if args.subjects:
            overrides["m"] = args.subjects
        if args.occasions:
            overrides["n_i"] = args.occasions
        if overrides:
            scenario = dataclasses.replace(scenario, **overrides)
    except InvalidConfigurationError as e:
        print(f"ERROR: Invalid scenario: {e}", file=sys.stderr)
        return 1

    print(f"Generating {scenario.name} data with {scenario.m} subjects "
          f"x {scenario.n_i} occasions...")
    data = JointDataGenerator(scenario, seed=args.seed).generate()
    data.save(args.output)

    print(f"Data saved to: {args.output}")
    print(f"  Longitudinal rows: {len(data.longitudinal)}")
    print(f"  Subjects: {data.n_subjects}")
    print(f"  Event rate: {data.event_rate:.1%}")
    print(f"  Events before tau: {data.pc_events:.1f}%")

    return 0


if __name__ == "__main__":
    sys.exit(main())
