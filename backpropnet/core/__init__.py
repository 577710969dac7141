"""Core numerical primitives for backpropnet."""

from . import activations, errors, strategies, types, weights
from .network import Network

__all__ = ["Network", "activations", "errors", "strategies", "types", "weights"]
