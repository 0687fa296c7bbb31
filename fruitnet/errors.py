"""Exception hierarchy for fruitnet."""

from __future__ import annotations


class FruitNetError(Exception):
    """Base class for errors raised by fruitnet."""


class DatasetError(FruitNetError, ValueError):
    """Invalid or missing input data (empty set, bad measurement, missing file)."""


class ShapeError(FruitNetError, ValueError):
    """A matrix or partition does not satisfy the caller's contract."""


__all__ = ["FruitNetError", "DatasetError", "ShapeError"]
