"""Fully connected sigmoid network trained by full-batch backpropagation."""

from __future__ import annotations

from typing import Iterable, List, Mapping, Sequence, Tuple

import numpy as np

from .activations import sigmoid, sigmoid_derivative
from .errors import InvalidConfigurationError, ShapeMismatchError
from .strategies import StrategyState, UpdateStrategy
from .types import Array, Sample, TrainingOptions, TrainResult
from .weights import WeightMatrix, nguyen_widrow, validate_shape


class Network:
    """Feed-forward network with one implicit bias input per neuron.

    Parameters
    ----------
    shape:
        Layer sizes, input layer first and output layer last.
    rng:
        Generator used for the initial weight draws. Built from ``seed`` when
        omitted.
    init_range:
        Bounds of the uniform distribution the initial weights are drawn from.
    nguyen_widrow:
        Rescale the first hidden layer's weights after the random draw.
    """

    def __init__(
        self,
        shape: Sequence[int],
        *,
        rng: np.random.Generator | None = None,
        seed: int | None = None,
        init_range: Tuple[float, float] = (-0.5, 0.5),
        nguyen_widrow: bool = True,
    ) -> None:
        self.shape = validate_shape(shape)
        self.output_layer = len(self.shape) - 1
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.init_range = (float(init_range[0]), float(init_range[1]))
        self.use_nguyen_widrow = nguyen_widrow
        self.outputs: List[Array] = []
        self.strategy: UpdateStrategy | None = None
        self.strategy_state: StrategyState | None = None
        self.reset_weights()

    def reset_weights(self) -> None:
        """Draw a fresh random weight matrix and forget any strategy state."""

        low, high = self.init_range
        self.weights = WeightMatrix.random(self.shape, self.rng, low, high)
        if self.use_nguyen_widrow:
            nguyen_widrow(self.weights)
        self.strategy = None
        self.strategy_state = None

    # ------------------------------------------------------------------
    # Forward and backward passes

    def run(self, inputs: Sequence[float]) -> Array:
        """Propagate ``inputs`` through the network and return the output layer."""

        x = np.asarray(inputs, dtype=np.float64).reshape(-1)
        if x.shape[0] != self.shape[0]:
            raise ShapeMismatchError("input", self.shape[0], x.shape[0])
        outputs = [x]
        for layer in range(1, self.output_layer + 1):
            W = self.weights[layer]
            outputs.append(sigmoid(W[:, :-1] @ outputs[-1] + W[:, -1]))
        self.outputs = outputs
        return outputs[-1].copy()

    def training_error(self, target: Sequence[float]) -> Array:
        """Return ``output - target`` for the most recent :meth:`run`."""

        t = np.asarray(target, dtype=np.float64).reshape(-1)
        if t.shape[0] != self.shape[-1]:
            raise ShapeMismatchError("target", self.shape[-1], t.shape[0])
        return self.outputs[self.output_layer] - t

    def backpropagate(self, target: Sequence[float], gradients: WeightMatrix) -> float:
        """Accumulate the gradient contribution of the last :meth:`run` call.

        ``gradients`` receives ``source_output * delta`` for every weight, where
        the delta already carries the negated training error. Returns the mean
        squared error of this example.
        """

        if not self.outputs:
            raise RuntimeError("backpropagate() called before run()")
        error = self.training_error(target)
        outputs = self.outputs
        delta = -error * sigmoid_derivative(outputs[self.output_layer])
        for layer in range(self.output_layer, 0, -1):
            source = np.append(outputs[layer - 1], 1.0)
            gradients[layer] += np.outer(delta, source)
            if layer > 1:
                # Hidden deltas need layer ``layer``'s weights before any update.
                weighted = self.weights[layer][:, :-1].T @ delta
                delta = sigmoid_derivative(outputs[layer - 1]) * weighted
        return float(np.mean(error**2))

    def compute_gradients(self, data: Iterable[Sample]) -> Tuple[WeightMatrix, float]:
        """Run one full batch without updating; return gradients and mean error."""

        samples = list(data)
        if not samples:
            raise InvalidConfigurationError("Training data must contain at least one sample")
        gradients = self.weights.zeros_like()
        total = 0.0
        for inputs, target in samples:
            self.run(inputs)
            total += self.backpropagate(target, gradients)
        return gradients, total / len(samples)

    # ------------------------------------------------------------------
    # Training

    def train(
        self,
        data: Iterable[Sample],
        options: TrainingOptions | Mapping[str, object] | None = None,
        *,
        strategy: UpdateStrategy | str | None = None,
        callbacks: Sequence[object] = (),
        **overrides: object,
    ) -> TrainResult:
        """Train on ``data`` until the iteration cap or the error threshold.

        ``options`` may be a :class:`TrainingOptions` or a mapping of option
        names; keyword ``overrides`` are applied on top. An explicit
        ``strategy`` instance takes precedence over ``options.strategy``.
        """

        from ..training.trainer import Trainer

        if not isinstance(options, TrainingOptions):
            options = TrainingOptions.from_mapping(options)
        if isinstance(strategy, str):
            overrides["strategy"] = strategy
            strategy = None
        if overrides:
            options = options.merge(overrides)
        trainer = Trainer(self, strategy=strategy, callbacks=callbacks)
        return trainer.run(data, options)

    def train_xy(
        self,
        inputs: Sequence[Sequence[float]],
        targets: Sequence[Sequence[float]],
        options: TrainingOptions | Mapping[str, object] | None = None,
        **kwargs: object,
    ) -> TrainResult:
        """Variant of :meth:`train` taking parallel input and target sequences."""

        if len(inputs) != len(targets):
            raise InvalidConfigurationError(
                f"Got {len(inputs)} inputs but {len(targets)} targets"
            )
        return self.train(list(zip(inputs, targets)), options, **kwargs)

    # ------------------------------------------------------------------
    # State

    def state_dict(self) -> Mapping[str, Array]:
        return {f"W{layer}": self.weights[layer].copy() for layer in self.weights.layers()}

    def load_state_dict(self, state: Mapping[str, Array]) -> None:
        layers = []
        for layer in self.weights.layers():
            key = f"W{layer}"
            if key not in state:
                raise KeyError(f"Missing weight {key} in state dict")
            layers.append(state[key])
        self.weights = WeightMatrix(self.shape, layers)
        # Step sizes and previous changes belong to the replaced weights.
        self.strategy = None
        self.strategy_state = None

    def __repr__(self) -> str:
        return f"Network(shape={self.shape})"
