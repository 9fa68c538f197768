"""Scenario configuration for joint longitudinal and survival data generation."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Tuple, Union

import numpy as np

from .types import FitMode, RandomEffectsStructure


class InvalidConfigurationError(ValueError):
    """Raised when a scenario cannot describe a valid generating process."""


@dataclass
class JointScenario:
    """Configuration of the joint data-generating process.

    Longitudinal submodel for subject i at occasion t::

        Y_it = Bl . (1, x1, x2==2, x2==3, x3) + U_i0 [+ U_i1 * t] + e_it

    Survival submodel, exponential hazard with shared random effects::

        h_i(t) = lambda * exp(Bs . (x1, x3) + U_i0 [+ U_i1])

    Attributes:
        name: Unique identifier (e.g., "random_intercept").
        description: Human-readable description.
        structure: Random intercept only, or correlated intercept and slope.
        m: Number of subjects.
        n_i: Number of longitudinal occasions per subject.
        Bl: Longitudinal coefficients (intercept, x1, x2 level 2,
            x2 level 3, x3).
        Bs: Survival log hazard ratios (x1, x3).
        sigma_i: Random intercept SD.
        sigma_e: Measurement error SD.
        sigma_s: Random slope SD (intercept-slope structure only).
        rho: Intercept-slope correlation (intercept-slope structure only).
        lambda_: Baseline hazard rate.
        censoring_rate: Rate of the exponential censoring distribution.
        age_mean: Mean of the age covariate before flooring.
        age_sd: SD of the age covariate before flooring.
    """

    # Identity
    name: str
    description: str = ""

    # Random effects
    structure: RandomEffectsStructure = RandomEffectsStructure.INTERCEPT

    # Design
    m: int = 200
    n_i: int = 6

    # Coefficients
    Bl: Tuple[float, ...] = (40.0, -10.0, 5.0, 15.0, 0.1)
    Bs: Tuple[float, ...] = (-0.3, 0.05)

    # Variance components
    sigma_i: float = 1.5
    sigma_e: float = 2.5
    sigma_s: float = 2.0
    rho: float = 0.3

    # Event and censoring processes
    lambda_: float = 0.005
    censoring_rate: float = 0.001

    # Age covariate
    age_mean: float = 65.0
    age_sd: float = 7.0

    def __post_init__(self) -> None:
        """Normalise coefficient vectors and validate."""
        self.Bl = tuple(float(b) for b in self.Bl)
        self.Bs = tuple(float(b) for b in self.Bs)
        self.validate()

    def validate(self) -> None:
        """Validate the scenario configuration.

        Only the structural constraints are checked here; ``rho`` is
        checked only when the structure carries a random slope.
        Out-of-range SDs or rates are left to numpy's random generators.

        Raises:
            InvalidConfigurationError: If configuration is invalid.
        """
        if len(self.Bl) != 5:
            raise InvalidConfigurationError(
                f"Bl must have 5 coefficients (intercept, x1, x2[2], x2[3], x3), "
                f"got {len(self.Bl)}"
            )

        if len(self.Bs) != 2:
            raise InvalidConfigurationError(
                f"Bs must have 2 coefficients (x1, x3), got {len(self.Bs)}"
            )

        if self.has_random_slope and not -1.0 <= self.rho <= 1.0:
            raise InvalidConfigurationError(
                f"rho must be in [-1, 1], got {self.rho}"
            )

    @property
    def has_random_slope(self) -> bool:
        """Whether subjects carry a random slope on the occasion index."""
        return self.structure == RandomEffectsStructure.INTERCEPT_SLOPE

    @property
    def tau(self) -> float:
        """Administrative end of follow-up (last occasion index)."""
        return float(self.n_i - 1)

    def covariance_matrix(self) -> np.ndarray:
        """Covariance matrix of the subject random effects."""
        if not self.has_random_slope:
            return np.array([[self.sigma_i ** 2]])

        cov = self.rho * self.sigma_i * self.sigma_s
        return np.array([
            [self.sigma_i ** 2, cov],
            [cov, self.sigma_s ** 2],
        ])

    def true_parameters(self, fit_mode: FitMode = FitMode.SEPARATE) -> Dict[str, float]:
        """Generating values of every parameter the fitters estimate.

        Args:
            fit_mode: Analysis applied to each replicate. Joint fits also
                estimate the association of the random effects with the
                hazard, which is 1 by construction.

        Returns:
            Ordered mapping of parameter name to true value.
        """
        b0, b1, b22, b23, b3 = self.Bl
        b1s, b3s = self.Bs

        truth = {
            "beta0": b0,
            "beta1": b1,
            "beta22": b22,
            "beta23": b23,
            "beta3": b3,
            "beta_time": 0.0,
            "sigma_e": self.sigma_e,
            "sigma_u": self.sigma_i,
        }
        if self.has_random_slope:
            truth["sigma_s"] = self.sigma_s
            truth["rho"] = self.rho

        truth["beta1s"] = b1s
        truth["beta3s"] = b3s

        if fit_mode == FitMode.JOINT:
            truth["gamma_i"] = 1.0
            if self.has_random_slope:
                truth["gamma_s"] = 1.0

        return truth

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "description": self.description,
            "structure": self.structure.name.lower(),
            "m": self.m,
            "n_i": self.n_i,
            "Bl": list(self.Bl),
            "Bs": list(self.Bs),
            "sigma_i": self.sigma_i,
            "sigma_e": self.sigma_e,
            "sigma_s": self.sigma_s,
            "rho": self.rho,
            "lambda": self.lambda_,
            "censoring_rate": self.censoring_rate,
            "age_mean": self.age_mean,
            "age_sd": self.age_sd,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "JointScenario":
        """Create from dictionary.

        Args:
            data: Dictionary with scenario configuration.

        Returns:
            JointScenario instance.
        """
        structure_str = data.get("structure", "intercept")
        structure = RandomEffectsStructure[structure_str.upper()]

        return cls(
            name=data["name"],
            description=data.get("description", ""),
            structure=structure,
            m=data.get("m", 200),
            n_i=data.get("n_i", 6),
            Bl=tuple(data.get("Bl", (40.0, -10.0, 5.0, 15.0, 0.1))),
            Bs=tuple(data.get("Bs", (-0.3, 0.05))),
            sigma_i=data.get("sigma_i", 1.5),
            sigma_e=data.get("sigma_e", 2.5),
            sigma_s=data.get("sigma_s", 2.0),
            rho=data.get("rho", 0.3),
            lambda_=data.get("lambda", 0.005),
            censoring_rate=data.get("censoring_rate", 0.001),
            age_mean=data.get("age_mean", 65.0),
            age_sd=data.get("age_sd", 7.0),
        )

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "JointScenario":
        """Load scenario from JSON file.

        Args:
            path: Path to JSON file.

        Returns:
            JointScenario instance.
        """
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)

    def to_json(self, path: Union[str, Path]) -> None:
        """Save scenario to JSON file.

        Args:
            path: Path to save JSON file.
        """
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)


# Predefined scenarios
PREDEFINED_SCENARIOS = {
    "random_intercept": JointScenario(
        name="random_intercept",
        description="Shared random intercept, 200 subjects, six occasions",
    ),
    "random_slope": JointScenario(
        name="random_slope",
        description=(
            "Correlated random intercept and slope (rho=0.3), "
            "250 subjects, six occasions"
        ),
        structure=RandomEffectsStructure.INTERCEPT_SLOPE,
        m=250,
        n_i=6,
        sigma_i=3.0,
        sigma_s=2.0,
        sigma_e=1.5,
        rho=0.3,
        lambda_=0.05,
        censoring_rate=0.01,
        age_sd=10.0,
    ),
}


def get_scenario(name: str) -> JointScenario:
    """Get a predefined scenario by name.

    Args:
        name: Scenario name.

    Returns:
        JointScenario instance.

    Raises:
        ValueError: If scenario name is not found.
    """
    if name not in PREDEFINED_SCENARIOS:
        raise ValueError(
            f"Unknown scenario: {name}. "
            f"Available: {list(PREDEFINED_SCENARIOS.keys())}"
        )
    return PREDEFINED_SCENARIOS[name]
