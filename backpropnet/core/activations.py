"""Activation utilities for the network engine."""

from __future__ import annotations

import math

import numpy as np

from .types import Array

# exp(36) keeps 1 / (1 + exp(-x)) strictly below 1.0 in float64.
SIGMOID_CLAMP = 36.0

ZERO_TOLERANCE = math.exp(-16)


def sigmoid(x: Array) -> Array:
    """Return the logistic activation, clamped to stay inside ``(0, 1)``."""

    z = np.clip(np.asarray(x, dtype=np.float64), -SIGMOID_CLAMP, SIGMOID_CLAMP)
    return 1.0 / (1.0 + np.exp(-z))


def sigmoid_derivative(output: Array) -> Array:
    """Derivative of the sigmoid expressed through its own output."""

    return output * (1.0 - output)


def sign(x: Array, tolerance: float = ZERO_TOLERANCE) -> Array:
    """Elementwise sign that treats values within ``tolerance`` of zero as zero."""

    x = np.asarray(x, dtype=np.float64)
    return np.where(np.abs(x) < tolerance, 0.0, np.sign(x))
