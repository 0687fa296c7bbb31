"""Core typing contracts for fruitnet."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

Array = np.ndarray

FEATURE_NAMES: Tuple[str, ...] = ("weight", "size", "width", "height")


@dataclass(frozen=True)
class Sample:
    """One labelled fruit measurement."""

    weight: float
    size: float
    width: float
    height: float
    label: str

    def features(self) -> Tuple[float, float, float, float]:
        return (self.weight, self.size, self.width, self.height)


@dataclass(frozen=True)
class ModelDescription:
    """Description of the single-hidden-layer architecture."""

    input_size: int
    hidden_size: int
    output_size: int


@dataclass(frozen=True)
class EpochStats:
    """Outcome of :meth:`fruitnet.core.network.NeuralNet.train_one_epoch`."""

    loss: float
    accuracy: float
    batches: int


@dataclass(frozen=True)
class Prediction:
    """Predicted label for a single sample.

    ``class_index`` is ``None`` when the confidence fell below the unknown
    threshold and the label was replaced by the catch-all class.
    """

    label: str
    confidence: float
    class_index: int | None = None
