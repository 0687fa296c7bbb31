"""Feature standardisation, label encoding and train/eval splitting."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Sequence, Tuple, TypeVar

import numpy as np

from ..core.types import FEATURE_NAMES, Array, Sample
from ..errors import ShapeError

STD_FLOOR = 1e-8
TRANSFORM_EPS = 1e-8
UNKNOWN_LABEL = "unknown"

T = TypeVar("T")


def _as_matrix(data: Sequence[Sample] | Array) -> Array:
    if isinstance(data, np.ndarray):
        matrix = np.asarray(data, dtype=np.float64)
    else:
        rows = [s.features() if isinstance(s, Sample) else s for s in data]
        matrix = np.asarray(rows, dtype=np.float64)
        if matrix.size == 0:
            matrix = matrix.reshape(0, len(FEATURE_NAMES))
    if matrix.ndim != 2:
        raise ShapeError(f"Expected a 2-D feature matrix, got shape {matrix.shape}")
    return matrix


@dataclass(frozen=True, eq=False)
class FeatureNormalizer:
    """Per-feature standardisation fitted once from a reference set.

    Variance uses Bessel's correction (``n - 1``) whenever the reference set
    holds more than one sample and falls back to the population variance for
    a single sample. Standard deviations below ``STD_FLOOR`` are replaced
    with ``1.0`` so constant features pass through centred but unscaled.
    """

    mean: Array
    std: Array

    @classmethod
    def fit(cls, data: Sequence[Sample] | Array) -> "FeatureNormalizer":
        matrix = _as_matrix(data)
        n = matrix.shape[0]
        if n == 0:
            raise ShapeError("Cannot fit a normalizer on an empty sample set")
        mean = matrix.mean(axis=0)
        ddof = 1 if n > 1 else 0
        std = np.sqrt(matrix.var(axis=0, ddof=ddof))
        return cls.from_state(mean, std)

    @classmethod
    def from_state(cls, mean: Iterable[float], std: Iterable[float]) -> "FeatureNormalizer":
        mean_arr = np.array(mean, dtype=np.float64).reshape(-1)
        std_arr = np.array(std, dtype=np.float64).reshape(-1)
        if mean_arr.shape != std_arr.shape:
            raise ShapeError(f"mean {mean_arr.shape} and std {std_arr.shape} differ")
        if not (np.all(np.isfinite(mean_arr)) and np.all(np.isfinite(std_arr))):
            raise ShapeError("Normalizer state must be finite")
        std_arr = np.where(std_arr < STD_FLOOR, 1.0, std_arr)
        mean_arr.setflags(write=False)
        std_arr.setflags(write=False)
        return cls(mean=mean_arr, std=std_arr)

    @property
    def n_features(self) -> int:
        return int(self.mean.shape[0])

    def transform(self, data: Sequence[Sample] | Array) -> Array:
        matrix = _as_matrix(data)
        if matrix.shape[0] and matrix.shape[1] != self.n_features:
            raise ShapeError(
                f"Expected {self.n_features} features per row, got {matrix.shape[1]}"
            )
        if matrix.shape[0] == 0:
            return np.zeros((0, self.n_features))
        return (matrix - self.mean) / (self.std + TRANSFORM_EPS)

    def state_dict(self) -> Mapping[str, Array]:
        return {"mean": self.mean.copy(), "std": self.std.copy()}


def build_vocabulary(
    labels: Iterable[str], *, unknown_label: str | None = UNKNOWN_LABEL
) -> Tuple[str, ...]:
    """Sorted distinct labels, with ``unknown_label`` (if seen) moved last."""

    classes = sorted(set(labels))
    if not classes:
        raise ShapeError("Cannot build a vocabulary from zero labels")
    if unknown_label is not None and unknown_label in classes:
        classes.remove(unknown_label)
        classes.append(unknown_label)
    return tuple(classes)


def encode_labels(labels: Sequence[str], vocabulary: Sequence[str]) -> Array:
    """One-hot encode ``labels``; labels outside ``vocabulary`` give zero rows."""

    index = {name: pos for pos, name in enumerate(vocabulary)}
    encoded = np.zeros((len(labels), len(vocabulary)), dtype=np.float64)
    for row, label in enumerate(labels):
        pos = index.get(label)
        if pos is not None:
            encoded[row, pos] = 1.0
    return encoded


def split_point(n_rows: int, train_fraction: float) -> int:
    if n_rows == 0:
        raise ShapeError("Cannot split an empty dataset")
    point = int(math.floor(n_rows * train_fraction))
    if point < 1 or point >= n_rows:
        raise ShapeError(
            f"train_fraction={train_fraction} leaves an empty partition for {n_rows} rows"
        )
    return point


def split_dataset(
    features: Array, targets: Array, train_fraction: float
) -> Tuple[Array, Array, Array, Array]:
    """Split aligned rows at ``floor(n * train_fraction)``."""

    features = np.asarray(features)
    targets = np.asarray(targets)
    if features.shape[0] != targets.shape[0]:
        raise ShapeError(
            f"Row count mismatch: {features.shape[0]} features vs {targets.shape[0]} targets"
        )
    point = split_point(features.shape[0], train_fraction)
    return features[:point], targets[:point], features[point:], targets[point:]


def shuffle_samples(samples: Sequence[T], rng: np.random.Generator) -> List[T]:
    order = rng.permutation(len(samples))
    return [samples[i] for i in order]


__all__ = [
    "FeatureNormalizer",
    "STD_FLOOR",
    "TRANSFORM_EPS",
    "UNKNOWN_LABEL",
    "build_vocabulary",
    "encode_labels",
    "shuffle_samples",
    "split_dataset",
    "split_point",
]
