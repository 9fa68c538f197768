"""CLI for checking simulation study status."""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from ..experiments.aggregation import load_study_summary


def get_study_status(study_dir: Path) -> dict:
    """Get status of a single study.

    Args:
        study_dir: Path to study directory.

    Returns:
        Status dictionary.
    """
    status = {
        "study_dir": str(study_dir),
        "study_id": study_dir.name,
        "status": "UNKNOWN",
    }

    # Load config
    config_path = study_dir / "config.json"
    if config_path.exists():
        with open(config_path, "r") as f:
            config = json.load(f)
        status["name"] = config.get("name", "Unknown")
        status["status"] = config.get("status", "UNKNOWN")
        status["fit_mode"] = config.get("fit_mode")

    # Load progress
    progress_path = study_dir / "progress.json"
    if progress_path.exists():
        with open(progress_path, "r") as f:
            progress = json.load(f)
        n_total = max(progress.get("n_total", 1), 1)
        status["progress"] = {
            "completed": progress.get("n_completed", 0),
            "failed": progress.get("n_failed", 0),
            "total": progress.get("n_total", 0),
            "percentage": 100 * progress.get("n_completed", 0) / n_total,
        }
        status["last_updated"] = progress.get("last_updated")
    else:
        status["progress"] = {"completed": 0, "failed": 0, "total": 0, "percentage": 0}

    summary = load_study_summary(study_dir)
    if summary is not None:
        status["bias"] = {
            name: float(value) for name, value in summary["bias"].items()
        }

    return status


def format_status(status: dict) -> str:
    """Format a status dictionary for terminal output."""
    progress = status["progress"]
    lines = [
        f"Study: {status.get('name', status['study_id'])} [{status['study_id']}]",
        f"  Status: {status['status']}",
        f"  Progress: {progress['completed']}/{progress['total']} "
        f"({progress['percentage']:.1f}%), {progress['failed']} failed",
    ]
    if status.get("last_updated"):
        lines.append(f"  Last updated: {status['last_updated']}")
    if "bias" in status:
        lines.append("  Bias:")
        for name, value in status["bias"].items():
            lines.append(f"    {name:<10} {value:+.4f}")
    return "\n".join(lines)


def main(argv: Optional[list] = None) -> int:
    """Main entry point for status CLI.

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(
        prog="python -m jointsim.cli.status",
        description="Show the status of simulation studies.",
    )

    parser.add_argument(
        "studies",
        type=Path,
        nargs="+",
        help="Study output directories",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Print machine-readable JSON",
    )

    args = parser.parse_args(argv)

    statuses = []
    for study_dir in args.studies:
        if not study_dir.exists():
            print(f"ERROR: Study not found: {study_dir}", file=sys.stderr)
            return 1
        statuses.append(get_study_status(study_dir))

    if args.json:
        print(json.dumps(statuses, indent=2))
    else:
        print("\n\n".join(format_status(s) for s in statuses))

    return 0


if __name__ == "__main__":
    sys.exit(main())
