"""Core typing contracts for backpropnet."""

from __future__ import annotations

import dataclasses
import math
import numbers
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Sequence, Tuple

import numpy as np

from .errors import InvalidConfigurationError

Array = np.ndarray

Vector = Sequence[float]
Sample = Tuple[Vector, Vector]

STRATEGY_NAMES = ("rprop", "momentum")

_OPTION_ALIASES = {
    "maxIterations": "max_iterations",
    "errorThreshold": "error_threshold",
    "logEvery": "log_every",
    "learningRate": "learning_rate",
}


@dataclass(frozen=True)
class TrainingOptions:
    """Options consumed by :meth:`backpropnet.core.network.Network.train`.

    Attributes
    ----------
    max_iterations:
        Cap on the number of full-batch weight updates.
    error_threshold:
        Training stops as soon as the batch MSE drops below this value.
        ``None`` disables the check.
    log_every:
        Emit a progress line every ``log_every`` iterations (``None`` is silent).
    learning_rate, momentum:
        Only consumed by the momentum strategy.
    strategy:
        ``"rprop"`` or ``"momentum"``.
    """

    max_iterations: int = 1000
    error_threshold: float | None = 0.01
    log_every: int | None = None
    learning_rate: float = 0.7
    momentum: float = 0.3
    strategy: str = "rprop"

    def __post_init__(self) -> None:
        _require_int("max_iterations", self.max_iterations)
        if self.max_iterations <= 0:
            raise InvalidConfigurationError(
                f"max_iterations must be positive, got {self.max_iterations}"
            )
        if self.log_every is not None:
            _require_int("log_every", self.log_every)
            if self.log_every <= 0:
                raise InvalidConfigurationError(f"log_every must be positive, got {self.log_every}")
        _require_real("learning_rate", self.learning_rate)
        _require_real("momentum", self.momentum)
        if self.error_threshold is not None:
            _require_real("error_threshold", self.error_threshold)
        if self.learning_rate <= 0:
            raise InvalidConfigurationError(
                f"learning_rate must be positive, got {self.learning_rate}"
            )
        if self.momentum < 0:
            raise InvalidConfigurationError(f"momentum must be non-negative, got {self.momentum}")
        if self.strategy not in STRATEGY_NAMES:
            available = ", ".join(STRATEGY_NAMES)
            raise InvalidConfigurationError(
                f"Unknown strategy {self.strategy!r}. Available strategies: {available}"
            )

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> "TrainingOptions":
        """Build options from a config mapping using snake_case or camelCase keys."""

        if not mapping:
            return cls()
        return cls(**_normalise(mapping))

    def merge(self, overrides: Mapping[str, Any] | None) -> "TrainingOptions":
        """Return a copy with ``overrides`` applied on top of these options."""

        if not overrides:
            return self
        return dataclasses.replace(self, **_normalise(overrides))


@dataclass(frozen=True)
class TrainResult:
    """Summary returned by :meth:`Network.train`."""

    final_error: float
    iterations: int
    reached_threshold: bool

    def as_dict(self) -> Dict[str, Any]:
        return {
            "final_error": round(self.final_error, 5),
            "iterations": self.iterations,
            "reached_threshold": self.reached_threshold,
        }


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`backpropnet.training.pipelines.run_pipeline`."""

    iterations: int
    final_error: float
    reached_threshold: bool
    accuracy: float
    metrics_path: str
    manifest_path: str


def _normalise(mapping: Mapping[str, Any]) -> Dict[str, Any]:
    known = {f.name for f in dataclasses.fields(TrainingOptions)}
    values: Dict[str, Any] = {}
    for key, value in mapping.items():
        name = _OPTION_ALIASES.get(key, key)
        if name not in known:
            raise InvalidConfigurationError(f"Unknown training option: {key!r}")
        values[name] = value
    return values


def _require_int(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidConfigurationError(f"{name} must be an integer, got {value!r}")


def _require_real(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Real) or not math.isfinite(value):
        raise InvalidConfigurationError(f"{name} must be a finite number, got {value!r}")
