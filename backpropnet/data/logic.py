"""Two-input logic gate truth tables."""

from __future__ import annotations

from typing import Callable

from .registry import DatasetSpec, register_dataset

_INPUTS = [[1, 0], [0, 0], [0, 1], [1, 1]]


def _gate(name: str, fn: Callable[[int, int], bool]):
    def _factory(**_: object) -> DatasetSpec:
        samples = [([float(a), float(b)], [1.0 if fn(a, b) else 0.0]) for a, b in _INPUTS]
        return DatasetSpec(
            name=name,
            samples=samples,
            d_in=2,
            d_out=1,
            provenance={"type": "logic", "gate": name},
        )

    return _factory


register_dataset("xor", _gate("xor", lambda a, b: a != b))
register_dataset("or", _gate("or", lambda a, b: bool(a or b)))
register_dataset("and", _gate("and", lambda a, b: bool(a and b)))
register_dataset("nand", _gate("nand", lambda a, b: not (a and b)))
