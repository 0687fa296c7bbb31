"""Classification metrics for held-out reporting."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping

import numpy as np

from ..core.network import accuracy, cross_entropy_loss
from ..core.types import Array


@dataclass(frozen=True)
class MetricResult:
    name: str
    value: float


def default_metrics(num_classes: int | None = None) -> List[str]:
    metrics = ["loss", "accuracy"]
    if num_classes and num_classes <= 20:
        metrics.append("macro_f1")
    return metrics


def confusion_matrix(probs: Array, targets: Array) -> Array:
    """Counts indexed ``[true, predicted]``; unrepresented target rows are skipped."""

    num_classes = targets.shape[1]
    represented = np.any(targets != 0, axis=1)
    true_idx = np.argmax(targets[represented], axis=1)
    pred_idx = np.argmax(probs[represented], axis=1)
    matrix = np.zeros((num_classes, num_classes), dtype=np.int64)
    np.add.at(matrix, (true_idx, pred_idx), 1)
    return matrix


def compute_metric(name: str, probs: Array, targets: Array) -> MetricResult:
    key = name.lower()
    if key == "loss":
        value = cross_entropy_loss(probs, targets)
    elif key == "accuracy":
        value = accuracy(probs, targets)
    elif key == "macro_f1":
        matrix = confusion_matrix(probs, targets)
        tp = np.diag(matrix).astype(np.float64)
        fp = matrix.sum(axis=0) - tp
        fn = matrix.sum(axis=1) - tp
        precision = tp / (tp + fp + 1e-9)
        recall = tp / (tp + fn + 1e-9)
        f1 = 2 * precision * recall / (precision + recall + 1e-9)
        value = float(np.mean(f1))
    else:
        raise KeyError(f"Unknown metric: {name}")
    return MetricResult(name=key, value=float(value))


def compute_metrics(names: Iterable[str], probs: Array, targets: Array) -> Mapping[str, float]:
    results: Dict[str, float] = {}
    for name in names:
        metric = compute_metric(name, probs, targets)
        results[metric.name] = metric.value
    return results


__all__ = [
    "MetricResult",
    "compute_metric",
    "compute_metrics",
    "confusion_matrix",
    "default_metrics",
]
