"""Layered weight storage with an implicit bias column per neuron."""

from __future__ import annotations

from typing import Callable, Iterator, List, Sequence

import numpy as np

from .errors import InvalidConfigurationError
from .types import Array


def validate_shape(shape: Sequence[int]) -> List[int]:
    """Return ``shape`` as a list of ints or raise if it cannot build a network."""

    dims = [int(size) for size in shape]
    if len(dims) < 2:
        raise InvalidConfigurationError(
            f"A network needs at least an input and an output layer, got shape {dims}"
        )
    if any(size <= 0 for size in dims):
        raise InvalidConfigurationError(f"Layer sizes must be positive, got shape {dims}")
    return dims


class WeightMatrix:
    """Per-layer matrices indexed as ``matrix[layer][neuron, source]``.

    Layer ``0`` is the input layer and owns no weights, so valid indices run
    from ``1`` to ``len(shape) - 1``. Each layer is a ``(shape[l], shape[l-1] + 1)``
    array whose final column holds the bias weight.
    """

    def __init__(self, shape: Sequence[int], layers: Sequence[Array]) -> None:
        self.shape = validate_shape(shape)
        if len(layers) != len(self.shape) - 1:
            raise InvalidConfigurationError(
                f"Expected {len(self.shape) - 1} weight layers, got {len(layers)}"
            )
        arrays: List[Array] = []
        for layer, values in enumerate(layers, start=1):
            arr = np.array(values, dtype=np.float64)
            expected = (self.shape[layer], self.shape[layer - 1] + 1)
            if arr.shape != expected:
                raise InvalidConfigurationError(
                    f"Layer {layer} weights have shape {arr.shape}, expected {expected}"
                )
            arrays.append(arr)
        self._layers = arrays

    @classmethod
    def build(cls, shape: Sequence[int], fill: Callable[[tuple[int, int]], Array]) -> "WeightMatrix":
        dims = validate_shape(shape)
        layers = [fill((dims[layer], dims[layer - 1] + 1)) for layer in range(1, len(dims))]
        return cls(dims, layers)

    @classmethod
    def filled(cls, shape: Sequence[int], value: float) -> "WeightMatrix":
        return cls.build(shape, lambda size: np.full(size, float(value)))

    @classmethod
    def zeros(cls, shape: Sequence[int]) -> "WeightMatrix":
        return cls.filled(shape, 0.0)

    @classmethod
    def random(
        cls,
        shape: Sequence[int],
        rng: np.random.Generator,
        low: float = -0.5,
        high: float = 0.5,
    ) -> "WeightMatrix":
        if not low < high:
            raise InvalidConfigurationError(f"Invalid init range ({low}, {high})")
        return cls.build(shape, lambda size: rng.uniform(low, high, size=size))

    @property
    def output_layer(self) -> int:
        return len(self.shape) - 1

    def __getitem__(self, layer: int) -> Array:
        if not 1 <= layer <= self.output_layer:
            raise IndexError(f"Layer {layer} has no weights (valid: 1..{self.output_layer})")
        return self._layers[layer - 1]

    def __setitem__(self, layer: int, values: Array) -> None:
        current = self[layer]
        arr = np.asarray(values, dtype=np.float64)
        if arr.shape != current.shape:
            raise InvalidConfigurationError(
                f"Layer {layer} weights have shape {arr.shape}, expected {current.shape}"
            )
        self._layers[layer - 1] = arr.copy()

    def __iter__(self) -> Iterator[Array]:
        return iter(self._layers)

    def __len__(self) -> int:
        return len(self._layers)

    def layers(self) -> range:
        """Indices of the layers carrying weights."""

        return range(1, self.output_layer + 1)

    def copy(self) -> "WeightMatrix":
        return WeightMatrix(self.shape, [arr.copy() for arr in self._layers])

    def zeros_like(self) -> "WeightMatrix":
        return WeightMatrix.zeros(self.shape)

    def fill(self, value: float) -> None:
        for arr in self._layers:
            arr.fill(value)

    def parameter_count(self) -> int:
        return int(sum(arr.size for arr in self._layers))

    def allclose(self, other: "WeightMatrix", **kwargs) -> bool:
        if self.shape != other.shape:
            return False
        return all(np.allclose(a, b, **kwargs) for a, b in zip(self, other))

    def __repr__(self) -> str:
        return f"WeightMatrix(shape={self.shape})"


def nguyen_widrow(weights: WeightMatrix) -> None:
    """Rescale the first hidden layer's incoming weights in place.

    Each hidden neuron's non-bias weight vector is scaled to length
    ``beta = 0.7 * hidden ** (1 / inputs)``. Networks without a hidden layer
    are left untouched.
    """

    shape = weights.shape
    if len(shape) < 3:
        return
    beta = 0.7 * shape[1] ** (1.0 / shape[0])
    layer = weights[1]
    for neuron in range(shape[1]):
        incoming = layer[neuron, :-1]
        norm = float(np.sqrt(np.sum(incoming**2)))
        if norm == 0.0:
            continue
        layer[neuron, :-1] = beta * incoming / norm
