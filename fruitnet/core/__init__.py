"""Core numerical primitives for fruitnet."""

from . import activations, network, types

__all__ = ["activations", "network", "types"]
