"""Simulation study configuration and management."""

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

import numpy as np

from ..data.scenarios import JointScenario
from ..data.types import FitMode, StudyStatus


@dataclass
class SimulationStudy:
    """Complete simulation study configuration.

    Attributes:
        name: Human-readable study name.
        seed: Root seed; each replicate draws from its own child stream.
        scenario: Data generation configuration.
        n_replicates: Number of simulate-and-fit iterations.
        fit_mode: Separate submodels or the joint model.
        study_id: Unique identifier (auto-generated if not provided).
        description: Optional description.
        created_at: Creation timestamp.
        started_at: Start timestamp.
        completed_at: Completion timestamp.
        status: Current study status.
    """

    # Identity
    name: str
    seed: int

    # Data
    scenario: JointScenario

    # Replication
    n_replicates: int = 1000
    fit_mode: FitMode = FitMode.SEPARATE

    # Identity (auto-generated)
    study_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    description: str = ""

    # Timestamps
    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Status
    status: StudyStatus = StudyStatus.PENDING

    def __post_init__(self) -> None:
        """Validate after initialization."""
        self.validate()

    def validate(self) -> None:
        """Validate the study configuration.

        Raises:
            ValueError: If configuration is invalid.
        """
        if self.n_replicates < 1:
            raise ValueError(f"n_replicates must be >= 1, got {self.n_replicates}")

    def seed_sequences(self) -> List[np.random.SeedSequence]:
        """Independent child seed sequences, one per replicate."""
        return np.random.SeedSequence(self.seed).spawn(self.n_replicates)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "study_id": self.study_id,
            "name": self.name,
            "description": self.description,
            "seed": self.seed,
            "scenario": self.scenario.to_dict(),
            "n_replicates": self.n_replicates,
            "fit_mode": self.fit_mode.name.lower(),
            "status": self.status.name,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SimulationStudy":
        """Create from dictionary.

        Args:
            data: Dictionary with study configuration. ``scenario`` may be
                a full scenario dictionary or a predefined scenario name.

        Returns:
            SimulationStudy instance.
        """
        scenario_config = data.get("scenario", "random_intercept")
        if isinstance(scenario_config, dict):
            scenario = JointScenario.from_dict(scenario_config)
        else:
            from ..data.scenarios import get_scenario
            scenario = get_scenario(scenario_config)

        fit_mode = FitMode[data.get("fit_mode", "separate").upper()]
        status = StudyStatus[data.get("status", "PENDING").upper()]

        created_at = data.get("created_at")
        if created_at and isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        else:
            created_at = datetime.now()

        started_at = data.get("started_at")
        if started_at and isinstance(started_at, str):
            started_at = datetime.fromisoformat(started_at)

        completed_at = data.get("completed_at")
        if completed_at and isinstance(completed_at, str):
            completed_at = datetime.fromisoformat(completed_at)

        return cls(
            study_id=data.get("study_id", str(uuid.uuid4())[:8]),
            name=data.get("name", "Unnamed Study"),
            description=data.get("description", ""),
            seed=data["seed"],
            scenario=scenario,
            n_replicates=data.get("n_replicates", 1000),
            fit_mode=fit_mode,
            status=status,
            created_at=created_at,
            started_at=started_at,
            completed_at=completed_at,
        )

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "SimulationStudy":
        """Load study from JSON file.

        Args:
            path: Path to JSON file.

        Returns:
            SimulationStudy instance.
        """
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)

    def to_json(self, path: Union[str, Path]) -> None:
        """Save study to JSON file.

        Args:
            path: Path to save JSON file.
        """
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    def start(self) -> None:
        """Mark study as started."""
        self.status = StudyStatus.RUNNING
        self.started_at = datetime.now()

    def complete(self) -> None:
        """Mark study as completed."""
        self.status = StudyStatus.COMPLETED
        self.completed_at = datetime.now()

    def fail(self) -> None:
        """Mark study as failed."""
        self.status = StudyStatus.FAILED
        self.completed_at = datetime.now()
