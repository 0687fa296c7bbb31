"""Activation utilities for fruitnet."""

from __future__ import annotations

import numpy as np

from .types import Array


def relu(x: Array) -> Array:
    """Return the ReLU activation."""

    return np.maximum(x, 0.0)


def relu_deriv(z: Array) -> Array:
    return (z > 0).astype(np.float64)


def softmax(z: Array) -> Array:
    """Row-wise softmax, shifted by the row maximum for numerical stability."""

    shifted = z - np.max(z, axis=1, keepdims=True)
    exp = np.exp(shifted)
    return exp / np.sum(exp, axis=1, keepdims=True)


__all__ = ["relu", "relu_deriv", "softmax"]
