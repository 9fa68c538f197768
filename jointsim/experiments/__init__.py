"""Simulation study orchestration and management."""

from .config import SimulationStudy
from .replicate import ReplicateResult, results_to_frame
from .logging import CSVEstimatesWriter, StudyLogger
from .runner import SimulationRunner, run_study, run_loaded_study
from .aggregation import (
    summarize_estimates,
    load_study_summary,
    load_ground_truth,
    compare_studies,
)

__all__ = [
    "SimulationStudy",
    "ReplicateResult",
    "results_to_frame",
    "CSVEstimatesWriter",
    "StudyLogger",
    "SimulationRunner",
    "run_study",
    "run_loaded_study",
    "summarize_estimates",
    "load_study_summary",
    "load_ground_truth",
    "compare_studies",
]
