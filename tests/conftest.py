"""Shared pytest fixtures for the joint simulation framework tests."""

import numpy as np
import pytest

from jointsim.data.scenarios import JointScenario
from jointsim.data.types import RandomEffectsStructure


@pytest.fixture
def random_seed():
    """Fixed random seed for reproducibility."""
    return 42


@pytest.fixture
def rng(random_seed):
    """Seeded random generator."""
    return np.random.default_rng(random_seed)


@pytest.fixture
def small_scenario():
    """Random intercept scenario small enough for repeated fits."""
    return JointScenario(name="small_intercept", m=60, n_i=4)


@pytest.fixture
def slope_scenario():
    """Random intercept and slope scenario."""
    return JointScenario(
        name="small_slope",
        structure=RandomEffectsStructure.INTERCEPT_SLOPE,
        m=120,
        n_i=6,
        sigma_i=3.0,
        sigma_s=2.0,
        sigma_e=1.5,
        rho=0.3,
        lambda_=0.05,
        censoring_rate=0.01,
        age_sd=10.0,
    )


@pytest.fixture
def tmp_study_dir(tmp_path):
    """Create a temporary study output directory."""
    study_dir = tmp_path / "studies"
    study_dir.mkdir()
    return study_dir
