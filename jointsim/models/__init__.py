"""Model descriptors and wrappers around the fitting libraries."""

from .errors import ModelFitError
from .specs import LongitudinalModelSpec, SurvivalModelSpec
from .longitudinal import LongitudinalFit, fit_longitudinal
from .survival import SurvivalFit, fit_survival
from .joint import JointFit, fit_joint

__all__ = [
    "ModelFitError",
    # Descriptors
    "LongitudinalModelSpec",
    "SurvivalModelSpec",
    # Fitters
    "LongitudinalFit",
    "fit_longitudinal",
    "SurvivalFit",
    "fit_survival",
    "JointFit",
    "fit_joint",
]
