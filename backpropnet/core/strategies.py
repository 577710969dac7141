"""Weight-update strategies for backpropnet."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Protocol

import numpy as np

from .activations import ZERO_TOLERANCE, sign
from .errors import InvalidConfigurationError
from .types import TrainingOptions
from .weights import WeightMatrix


@dataclass
class StrategyState:
    """Per-weight state persisted by a strategy between iterations."""

    matrices: Dict[str, WeightMatrix] = field(default_factory=dict)

    def __getitem__(self, name: str) -> WeightMatrix:
        return self.matrices[name]


class UpdateStrategy(Protocol):
    """Protocol implemented by weight-update strategies."""

    name: str

    def init(self, weights: WeightMatrix) -> StrategyState:
        """Return fresh state shaped like ``weights``."""

    def reset(self, state: StrategyState) -> None:
        """Forget the history of previous iterations before a new training run."""

    def step(
        self,
        weights: WeightMatrix,
        gradients: WeightMatrix,
        state: StrategyState,
    ) -> None:
        """Apply one batch update to ``weights`` in place."""


@dataclass
class MomentumDescent:
    """Gradient descent with a momentum term.

    ``gradients`` hold the negated error derivative, so adding
    ``learning_rate * gradient`` descends the error surface.
    """

    learning_rate: float = 0.7
    momentum: float = 0.3
    name: str = field(default="momentum", init=False)

    def __post_init__(self) -> None:
        if self.learning_rate <= 0:
            raise InvalidConfigurationError(
                f"learning_rate must be positive, got {self.learning_rate}"
            )
        if self.momentum < 0:
            raise InvalidConfigurationError(f"momentum must be non-negative, got {self.momentum}")

    def init(self, weights: WeightMatrix) -> StrategyState:
        return StrategyState(matrices={"changes": weights.zeros_like()})

    def reset(self, state: StrategyState) -> None:
        state["changes"].fill(0.0)

    def step(
        self,
        weights: WeightMatrix,
        gradients: WeightMatrix,
        state: StrategyState,
    ) -> None:
        changes = state["changes"]
        for layer in weights.layers():
            change = self.learning_rate * gradients[layer] + self.momentum * changes[layer]
            weights[layer] += change
            changes[layer] = change


@dataclass
class Rprop:
    """Resilient backpropagation driven by gradient sign agreement only."""

    initial_step: float = 0.1
    increase: float = 1.2
    decrease: float = 0.5
    min_step: float = math.exp(-6)
    max_step: float = 50.0
    tolerance: float = ZERO_TOLERANCE
    name: str = field(default="rprop", init=False)

    def __post_init__(self) -> None:
        if not 0 < self.decrease < 1 < self.increase:
            raise InvalidConfigurationError(
                "Rprop requires 0 < decrease < 1 < increase, "
                f"got decrease={self.decrease}, increase={self.increase}"
            )
        if not 0 < self.min_step <= self.initial_step <= self.max_step:
            raise InvalidConfigurationError(
                "Rprop requires 0 < min_step <= initial_step <= max_step"
            )

    def init(self, weights: WeightMatrix) -> StrategyState:
        return StrategyState(
            matrices={
                "step_sizes": WeightMatrix.filled(weights.shape, self.initial_step),
                "changes": weights.zeros_like(),
                "previous_gradients": weights.zeros_like(),
            }
        )

    def reset(self, state: StrategyState) -> None:
        # Step sizes carry over so a resumed run keeps its adapted magnitudes.
        state["changes"].fill(0.0)
        state["previous_gradients"].fill(0.0)

    def step(
        self,
        weights: WeightMatrix,
        gradients: WeightMatrix,
        state: StrategyState,
    ) -> None:
        step_sizes = state["step_sizes"]
        changes = state["changes"]
        previous = state["previous_gradients"]
        for layer in weights.layers():
            # Negate so that ``gradient`` is dE/dw.
            gradient = -gradients[layer]
            agreement = sign(gradient * previous[layer], self.tolerance)
            grow = agreement > 0
            flip = agreement < 0

            steps = step_sizes[layer]
            steps = np.where(grow, np.minimum(steps * self.increase, self.max_step), steps)
            steps = np.where(flip, np.maximum(steps * self.decrease, self.min_step), steps)

            change = np.where(flip, -changes[layer], -sign(gradient, self.tolerance) * steps)
            # Zero before persisting so the next iteration sees no second flip.
            gradient = np.where(flip, 0.0, gradient)

            weights[layer] += change
            changes[layer] = change
            step_sizes[layer] = steps
            previous[layer] = gradient


def build_strategy(options: TrainingOptions) -> UpdateStrategy:
    """Return the strategy named by ``options.strategy``."""

    if options.strategy == "rprop":
        return Rprop()
    if options.strategy == "momentum":
        return MomentumDescent(learning_rate=options.learning_rate, momentum=options.momentum)
    raise InvalidConfigurationError(f"Unknown strategy: {options.strategy}")


__all__ = [
    "StrategyState",
    "UpdateStrategy",
    "MomentumDescent",
    "Rprop",
    "build_strategy",
]
