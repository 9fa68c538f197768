"""Study logging utilities for console, text log and CSV."""

import csv
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

from .replicate import RECORD_FIELDS, ReplicateResult


class CSVEstimatesWriter:
    """CSV writer for per-replicate estimates.

    Writes one row per replicate as soon as it finishes, so an
    interrupted study keeps everything completed so far.

    Args:
        output_path: Path to CSV file.
        parameter_names: Estimate columns written after the record fields.
        append: If True, append to existing file.
    """

    def __init__(
        self,
        output_path: Union[str, Path],
        parameter_names: Sequence[str],
        append: bool = False,
    ):
        self.output_path = Path(output_path)
        self.parameter_names = list(parameter_names)
        self.fieldnames: List[str] = RECORD_FIELDS + self.parameter_names
        self.output_path.parent.mkdir(parents=True, exist_ok=True)

        mode = "a" if append and self.output_path.exists() else "w"
        self.file = open(self.output_path, mode, newline="")
        self.writer = csv.DictWriter(self.file, fieldnames=self.fieldnames)

        # Write header if new file
        if mode == "w":
            self.writer.writeheader()

    def write(self, result: ReplicateResult) -> None:
        """Write a replicate record to CSV.

        Args:
            result: ReplicateResult to write.
        """
        self.writer.writerow(result.to_row(self.parameter_names))
        self.file.flush()

    def close(self) -> None:
        """Close the CSV file."""
        self.file.close()


class StudyLogger:
    """Combined logger for console messages, a text log and estimates CSV.

    Args:
        study_dir: Directory of the study outputs.
        parameter_names: Estimate columns.
        append: Continue existing log and CSV files.
        verbose: Echo messages to stderr.
    """

    def __init__(
        self,
        study_dir: Union[str, Path],
        parameter_names: Sequence[str],
        append: bool = False,
        verbose: bool = True,
    ):
        self.study_dir = Path(study_dir)
        self.verbose = verbose
        self.study_dir.mkdir(parents=True, exist_ok=True)

        self.csv_writer = CSVEstimatesWriter(
            self.study_dir / "results" / "estimates.csv",
            parameter_names,
            append=append,
        )
        self.log_file = open(self.study_dir / "study.log", "a" if append else "w")

    def message(self, text: str) -> None:
        """Record a message in the text log and, if verbose, on stderr.

        Args:
            text: Message to record.
        """
        self.log_file.write(f"{datetime.now().isoformat()} {text}\n")
        self.log_file.flush()
        if self.verbose:
            print(text, file=sys.stderr)

    def log_replicate(self, result: ReplicateResult) -> None:
        """Persist a finished replicate; failures are also logged as messages.

        Args:
            result: Finished replicate record.
        """
        self.csv_writer.write(result)
        if not result.succeeded:
            self.message(f"  Replicate {result.index} FAILED: {result.failure_reason}")

    def log_study_info(self, info: Dict[str, Any]) -> None:
        """Write study information to JSON file.

        Args:
            info: Dictionary of study information.
        """
        with open(self.study_dir / "study_info.json", "w") as f:
            json.dump(info, f, indent=2, default=str)

    def close(self) -> None:
        """Close all writers."""
        self.csv_writer.close()
        self.log_file.close()
