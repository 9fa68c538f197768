"""Core enumerations for the simulation framework."""

from enum import Enum, auto


class RandomEffectsStructure(Enum):
    """Shared latent random effects linking the two submodels."""

    INTERCEPT = auto()  # Random intercept only
    INTERCEPT_SLOPE = auto()  # Correlated random intercept and slope


class FitMode(Enum):
    """How each simulated dataset is analysed."""

    SEPARATE = auto()  # Mixed model and Cox model fitted independently
    JOINT = auto()  # Two-stage joint model


class StudyStatus(Enum):
    """Status of a simulation study."""

    PENDING = auto()
    RUNNING = auto()
    COMPLETED = auto()
    FAILED = auto()


class ReplicateStatus(Enum):
    """Status of a single simulate-and-fit replicate."""

    PENDING = auto()
    RUNNING = auto()
    COMPLETED = auto()
    FAILED = auto()
