"""Simulation runner for the replicate loop of a study."""

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple, Union

import numpy as np
import pandas as pd

from .aggregation import summarize_estimates
from .config import SimulationStudy
from .logging import StudyLogger
from .replicate import (
    ReplicateResult,
    joint_estimates,
    results_to_frame,
    separate_estimates,
)
from ..data.generator import JointData, JointDataGenerator
from ..data.types import FitMode, StudyStatus
from ..models.errors import ModelFitError
from ..models.joint import fit_joint
from ..models.longitudinal import fit_longitudinal
from ..models.specs import LongitudinalModelSpec, SurvivalModelSpec
from ..models.survival import fit_survival
from ..visualization.densities import PlotStyle, plot_estimate_densities


class SimulationRunner:
    """Orchestrates a simulation study.

    Handles:
    - Data generation from per-replicate random streams
    - Separate or joint model fits for each replicate
    - Isolation of failed replicates
    - Progress tracking and resumption
    - Bias summaries and the density figure

    Args:
        study: Study configuration.
        output_dir: Output directory for results.
        verbose: Whether to print progress.
        progress_every: Replicates between progress messages.
        plot_style: Display settings for the density figure.
    """

    def __init__(
        self,
        study: SimulationStudy,
        output_dir: Union[str, Path],
        verbose: bool = True,
        progress_every: int = 50,
        plot_style: Optional[PlotStyle] = None,
    ):
        self.study = study
        self.output_dir = Path(output_dir) / study.study_id
        self.verbose = verbose
        self.progress_every = max(1, progress_every)
        self.plot_style = plot_style or PlotStyle()

        self.long_spec = LongitudinalModelSpec.for_scenario(study.scenario)
        self.surv_spec = SurvivalModelSpec()

        self.truth = study.scenario.true_parameters(study.fit_mode)
        self.parameter_names = list(self.truth)

        # Create output directories
        self._setup_directories()

        # Results storage, in completion order
        self.results: List[ReplicateResult] = []
        self.completed: Set[int] = set()

        self._logger: Optional[StudyLogger] = None

    def _setup_directories(self) -> None:
        """Create output directory structure."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        (self.output_dir / "data").mkdir(exist_ok=True)
        (self.output_dir / "results").mkdir(exist_ok=True)
        (self.output_dir / "figures").mkdir(exist_ok=True)

    @property
    def n_failed(self) -> int:
        """Number of failed replicates so far."""
        return sum(1 for r in self.results if not r.succeeded)

    def run(self, resume: bool = False) -> StudyStatus:
        """Execute the full study.

        Args:
            resume: If True, skip replicates already in estimates.csv.

        Returns:
            Final study status.
        """
        try:
            # Save study config
            self.study.to_json(self.output_dir / "config.json")

            if resume:
                self._load_progress()

            self._logger = StudyLogger(
                self.output_dir,
                self.parameter_names,
                append=resume and bool(self.completed),
                verbose=self.verbose,
            )

            self.study.start()
            self._log(f"Starting study: {self.study.name}")
            self._log(f"Scenario: {self.study.scenario.name} "
                      f"({self.study.scenario.m} subjects, {self.study.scenario.n_i} occasions)")
            self._log(f"Fit mode: {self.study.fit_mode.name.lower()}")
            self._log(f"Replicates: {self.study.n_replicates}")
            if self.completed:
                self._log(f"Resuming: {len(self.completed)}/{self.study.n_replicates} already completed")

            try:
                for index, seed_seq in enumerate(self.study.seed_sequences()):
                    if index in self.completed:
                        continue

                    result = self.run_replicate(index, np.random.default_rng(seed_seq))
                    self.results.append(result)
                    self.completed.add(index)
                    self._logger.log_replicate(result)

                    if len(self.completed) % self.progress_every == 0:
                        self._save_progress()
                        self._log(f"[{self.progress_string()}] "
                                  f"{self.n_failed} failed")
            finally:
                self._save_progress()

            # Aggregate results
            n_succeeded = len(self.results) - self.n_failed
            if n_succeeded > 0:
                self._aggregate_results()

            # Determine final status
            if self.n_failed == 0:
                self.study.complete()
                self._log("\nStudy completed successfully!")
            elif n_succeeded > 0:
                self.study.complete()
                self._log(f"\nStudy completed with {self.n_failed} failed replicates")
            else:
                self.study.fail()
                self._log("\nStudy failed: all replicates failed")

            # Save final config
            self.study.to_json(self.output_dir / "config.json")
            self._logger.log_study_info(self._study_info())

            return self.study.status

        except Exception as e:
            self.study.fail()
            self._log(f"\nStudy failed with error: {e}")
            self.study.to_json(self.output_dir / "config.json")
            return StudyStatus.FAILED

        finally:
            if self._logger is not None:
                self._logger.close()
                self._logger = None

    def run_replicate(self, index: int, rng: np.random.Generator) -> ReplicateResult:
        """Simulate one dataset and fit it.

        Fit failures are recorded on the returned record rather than
        raised. Data generation errors propagate.

        Args:
            index: Replicate number.
            rng: Random generator for this replicate.

        Returns:
            Finished ReplicateResult.
        """
        result = ReplicateResult(index=index)
        result.start()

        data = JointDataGenerator(self.study.scenario, rng=rng).generate()
        if index == 0:
            data.save(self.output_dir / "data" / "replicate_0000")

        try:
            estimates, converged = self.fit(data)
        except (ModelFitError, np.linalg.LinAlgError, ValueError) as e:
            result.fail(f"{type(e).__name__}: {e}", pc_events=data.pc_events)
            return result

        result.complete(
            estimates,
            pc_events=data.pc_events,
            event_rate=data.event_rate,
            converged=converged,
        )
        return result

    def fit(self, data: JointData) -> Tuple[Dict[str, float], bool]:
        """Fit one dataset according to the study's fit mode.

        Args:
            data: Simulated dataset.

        Returns:
            Tuple of (named estimates, mixed model convergence flag).
        """
        if self.study.fit_mode == FitMode.JOINT:
            joint_fit = fit_joint(data, self.long_spec, self.surv_spec)
            return joint_estimates(joint_fit), joint_fit.longitudinal.converged

        long_fit = fit_longitudinal(data.longitudinal, self.long_spec)
        surv_fit = fit_survival(data.survival, self.surv_spec)
        return separate_estimates(long_fit, surv_fit), long_fit.converged

    def results_frame(self) -> pd.DataFrame:
        """Completed replicates as a table, in replicate order."""
        return results_to_frame(self.results, self.parameter_names)

    def progress_string(self) -> str:
        """Human-readable progress string."""
        n_total = self.study.n_replicates
        return f"{len(self.completed)}/{n_total} ({len(self.completed) / n_total:.1%})"

    def _save_progress(self) -> None:
        """Save current progress for resumption."""
        progress = {
            "n_completed": len(self.completed),
            "n_failed": self.n_failed,
            "n_total": self.study.n_replicates,
            "last_updated": datetime.now().isoformat(),
        }
        with open(self.output_dir / "progress.json", "w") as f:
            json.dump(progress, f, indent=2)

    def _load_progress(self) -> None:
        """Load finished replicates from a previous run.

        Rows beyond ``n_replicates`` are dropped from estimates.csv so a
        study resumed with fewer replicates reports only its own.
        """
        estimates_path = self.output_dir / "results" / "estimates.csv"
        if not estimates_path.exists():
            return

        rows = pd.read_csv(estimates_path, dtype=str, keep_default_na=False)
        in_range = []
        for row in rows.to_dict(orient="records"):
            result = ReplicateResult.from_row(row, self.parameter_names)
            in_range.append(result.index < self.study.n_replicates)
            if not in_range[-1]:
                continue
            if result.is_complete and result.index not in self.completed:
                self.results.append(result)
                self.completed.add(result.index)

        if not all(in_range):
            rows[in_range].to_csv(estimates_path, index=False)

    def _study_info(self) -> dict:
        """Run summary written to study_info.json."""
        durations = [
            r.duration_seconds for r in self.results if r.duration_seconds is not None
        ]
        return {
            "study": self.study.to_dict(),
            "output_dir": str(self.output_dir),
            "n_completed": len(self.completed),
            "n_succeeded": len(self.results) - self.n_failed,
            "n_failed": self.n_failed,
            "mean_replicate_seconds": float(np.mean(durations)) if durations else None,
            "total_replicate_seconds": float(np.sum(durations)) if durations else None,
        }

    def _aggregate_results(self) -> None:
        """Write the bias summary, ground truth and density figure."""
        results_dir = self.output_dir / "results"
        estimates = self.results_frame()

        summary = summarize_estimates(estimates, self.truth)
        summary.to_csv(results_dir / "summary.csv")

        ground_truth = {
            "scenario": self.study.scenario.to_dict(),
            "fit_mode": self.study.fit_mode.name.lower(),
            "parameters": self.truth,
            "n_replicates": self.study.n_replicates,
            "n_succeeded": int(len(estimates)),
            "mean_pc_events": float(estimates["pc_events"].mean()),
        }
        with open(results_dir / "ground_truth.json", "w") as f:
            json.dump(ground_truth, f, indent=2)

        mode_label = "Joint" if self.study.fit_mode == FitMode.JOINT else "Separate"
        plot_estimate_densities(
            estimates,
            self.truth,
            output_path=self.output_dir / "figures" / "estimates_density",
            title=f"{mode_label} investigation: {self.study.scenario.name}",
            style=self.plot_style,
        )

    def _log(self, message: str) -> None:
        """Log a message to the study log, echoed when verbose."""
        if self._logger is not None:
            self._logger.message(message)
        elif self.verbose:
            print(message, file=sys.stderr)


def run_study(
    config_path: Union[str, Path],
    output_dir: Union[str, Path] = "outputs/studies",
    resume: bool = False,
    dry_run: bool = False,
    verbose: bool = True,
) -> int:
    """Run a simulation study from a config file.

    Args:
        config_path: Path to study config JSON.
        output_dir: Base output directory.
        resume: Whether to continue a previous run.
        dry_run: If True, validate config without running.
        verbose: Whether to print progress.

    Returns:
        Exit code (0=success, 1=config error, 2=runtime error, 3=partial).
    """
    # Load config
    try:
        study = SimulationStudy.from_json(config_path)
    except Exception as e:
        print(f"ERROR: Failed to load config: {e}", file=sys.stderr)
        return 1

    if dry_run:
        print(f"Config validation successful: {study.name}")
        print(f"  Study ID: {study.study_id}")
        print(f"  Scenario: {study.scenario.name}")
        print(f"  Replicates: {study.n_replicates}")
        return 0

    return run_loaded_study(study, output_dir, resume=resume, verbose=verbose)


def run_loaded_study(
    study: SimulationStudy,
    output_dir: Union[str, Path] = "outputs/studies",
    resume: bool = False,
    verbose: bool = True,
) -> int:
    """Run an in-memory study and map its status to an exit code.

    Args:
        study: Study configuration.
        output_dir: Base output directory.
        resume: Whether to continue a previous run.
        verbose: Whether to print progress.

    Returns:
        Exit code (0=success, 2=runtime error, 3=partial).
    """
    runner = SimulationRunner(study=study, output_dir=output_dir, verbose=verbose)
    status = runner.run(resume=resume)

    # Map status to exit code
    if status == StudyStatus.COMPLETED and runner.n_failed == 0:
        return 0
    elif status == StudyStatus.FAILED:
        return 2
    else:
        return 3
