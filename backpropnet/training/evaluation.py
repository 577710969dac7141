"""Evaluation helpers for trained networks."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

import numpy as np

from ..core.errors import InvalidConfigurationError
from ..core.types import Array, Sample

if TYPE_CHECKING:  # pragma: no cover
    from ..core.network import Network


def mean_squared_error(errors: Array) -> float:
    return float(np.mean(np.square(errors)))


def dataset_error(network: "Network", data: Iterable[Sample]) -> float:
    """Average per-sample MSE of ``network`` over ``data``."""

    errors = [
        mean_squared_error(network.run(inputs) - np.asarray(target, dtype=np.float64))
        for inputs, target in data
    ]
    if not errors:
        raise InvalidConfigurationError("Cannot evaluate an empty dataset")
    return float(np.mean(errors))


def round_accuracy(network: "Network", data: Iterable[Sample]) -> float:
    """Fraction of samples whose rounded outputs all equal the target."""

    hits = []
    for inputs, target in data:
        output = network.run(inputs)
        hits.append(bool(np.array_equal(np.round(output), np.asarray(target, dtype=np.float64))))
    if not hits:
        raise InvalidConfigurationError("Cannot evaluate an empty dataset")
    return float(np.mean(hits))


def argmax_accuracy(network: "Network", data: Iterable[Sample]) -> float:
    """Fraction of samples whose largest output matches the one-hot target."""

    hits = []
    for inputs, target in data:
        output = network.run(inputs)
        hits.append(int(np.argmax(output)) == int(np.argmax(target)))
    if not hits:
        raise InvalidConfigurationError("Cannot evaluate an empty dataset")
    return float(np.mean(hits))


__all__ = ["mean_squared_error", "dataset_error", "round_accuracy", "argmax_accuracy"]
