"""Full-batch training loop for :class:`backpropnet.core.network.Network`."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Iterable, List, Mapping, Sequence, Tuple

import numpy as np

from ..core.errors import InvalidConfigurationError, NumericInstabilityError, ShapeMismatchError
from ..core.strategies import StrategyState, UpdateStrategy, build_strategy
from ..core.types import Array, Sample, TrainingOptions, TrainResult

if TYPE_CHECKING:  # pragma: no cover
    from ..core.network import Network

logger = logging.getLogger(__name__)


class Trainer:
    """Drive repeated forward/backward passes and one update per batch."""

    def __init__(
        self,
        network: "Network",
        strategy: UpdateStrategy | None = None,
        callbacks: Sequence[object] | None = None,
    ) -> None:
        self.network = network
        self.strategy = strategy
        self.callbacks = list(callbacks or [])

    def run(self, data: Iterable[Sample], options: TrainingOptions | None = None) -> TrainResult:
        options = options or TrainingOptions()
        samples = self._prepare(data)
        strategy, state = self._resolve_strategy(options)

        network = self.network
        threshold = options.error_threshold
        iteration = 0
        error = math.inf
        while iteration < options.max_iterations:
            iteration += 1
            gradients, error = network.compute_gradients(samples)
            if not math.isfinite(error):
                raise NumericInstabilityError(
                    f"Batch error became {error} at iteration {iteration}"
                )
            strategy.step(network.weights, gradients, state)
            self._emit(iteration, {"error": error})

            if options.log_every and iteration % options.log_every == 0:
                logger.info("[%d] error: %.5f", iteration, error)

            if threshold is not None and error < threshold:
                break

        reached = threshold is not None and error < threshold
        logger.debug(
            "Training stopped after %d iterations (error=%.5f, reached_threshold=%s)",
            iteration,
            error,
            reached,
        )
        return TrainResult(final_error=float(error), iterations=iteration, reached_threshold=reached)

    # ------------------------------------------------------------------
    # Internal helpers

    def _prepare(self, data: Iterable[Sample]) -> List[Tuple[Array, Array]]:
        shape = self.network.shape
        samples: List[Tuple[Array, Array]] = []
        for inputs, target in data:
            x = np.asarray(inputs, dtype=np.float64).reshape(-1)
            t = np.asarray(target, dtype=np.float64).reshape(-1)
            if x.shape[0] != shape[0]:
                raise ShapeMismatchError("input", shape[0], x.shape[0])
            if t.shape[0] != shape[-1]:
                raise ShapeMismatchError("target", shape[-1], t.shape[0])
            samples.append((x, t))
        if not samples:
            raise InvalidConfigurationError("Training data must contain at least one sample")
        return samples

    def _resolve_strategy(self, options: TrainingOptions) -> Tuple[UpdateStrategy, StrategyState]:
        network = self.network
        strategy = self.strategy or build_strategy(options)
        previous = network.strategy
        state = network.strategy_state
        if state is not None and previous is not None and previous.name == strategy.name:
            strategy.reset(state)
        else:
            state = strategy.init(network.weights)
        network.strategy = strategy
        network.strategy_state = state
        return strategy, state

    def _emit(self, iteration: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_step"):
                callback.on_step(iteration, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(iteration, metrics)


__all__ = ["Trainer"]
