"""backpropnet public API."""

from .core import activations, strategies, types  # noqa: F401
from .core.errors import (
    InvalidConfigurationError,
    NetworkError,
    NumericInstabilityError,
    ShapeMismatchError,
)
from .core.network import Network
from .core.strategies import MomentumDescent, Rprop
from .core.types import TrainingOptions, TrainResult
from .core.weights import WeightMatrix
from .training.pipelines import load_preset, presets, run_pipeline
from .training.trainer import Trainer

__all__ = [
    "InvalidConfigurationError",
    "MomentumDescent",
    "Network",
    "NetworkError",
    "NumericInstabilityError",
    "Rprop",
    "ShapeMismatchError",
    "Trainer",
    "TrainResult",
    "TrainingOptions",
    "WeightMatrix",
    "activations",
    "load_preset",
    "presets",
    "run_pipeline",
    "strategies",
    "types",
]
