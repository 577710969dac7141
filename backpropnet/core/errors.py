"""Exception hierarchy for the network engine."""

from __future__ import annotations


class NetworkError(ValueError):
    """Base class for precondition violations raised by the engine."""


class ShapeMismatchError(NetworkError):
    """An input or target vector does not match the configured layer size."""

    def __init__(self, kind: str, expected: int, observed: int) -> None:
        super().__init__(f"{kind} vector has length {observed}, expected {expected}")
        self.kind = kind
        self.expected = expected
        self.observed = observed


class InvalidConfigurationError(NetworkError):
    """A shape, dataset or training option is unusable."""


class NumericInstabilityError(NetworkError):
    """The batch error stopped being a finite number."""


__all__ = [
    "NetworkError",
    "ShapeMismatchError",
    "InvalidConfigurationError",
    "NumericInstabilityError",
]
