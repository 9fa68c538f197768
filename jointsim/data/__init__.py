"""Data generation for joint longitudinal and survival simulations."""

from .types import RandomEffectsStructure, FitMode, StudyStatus, ReplicateStatus
from .scenarios import (
    JointScenario,
    InvalidConfigurationError,
    get_scenario,
    PREDEFINED_SCENARIOS,
)
from .generator import JointDataGenerator, JointData, generate

__all__ = [
    # Types
    "RandomEffectsStructure",
    "FitMode",
    "StudyStatus",
    "ReplicateStatus",
    # Scenarios
    "JointScenario",
    "InvalidConfigurationError",
    "get_scenario",
    "PREDEFINED_SCENARIOS",
    # Generator
    "JointDataGenerator",
    "JointData",
    "generate",
]
