"""Epoch loop driving a :class:`~fruitnet.core.network.NeuralNet`."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Sequence, Tuple

from ..core.network import NeuralNet
from ..core.types import Array
from ..errors import ShapeError
from .metrics import compute_metrics, default_metrics


@dataclass(frozen=True)
class TrainerReport:
    """Histories and held-out accuracy produced by :meth:`Trainer.run`."""

    final_accuracy: float
    losses: Tuple[float, ...]
    accuracies: Tuple[float, ...]
    steps: int
    eval_history: Tuple[Tuple[int, Mapping[str, float]], ...] = ()


class Trainer:
    """Run a fixed number of epochs and report metrics to callbacks.

    Callbacks receive ``on_epoch(epoch, metrics)`` (or are called directly)
    once per epoch with the full-training-set ``loss`` and ``accuracy``.
    Every ``eval_every`` epochs, counting from the first, and on the last
    epoch the held-out set is scored as well and ``eval_*`` keys are added.
    """

    def __init__(
        self,
        model: NeuralNet,
        *,
        epochs: int,
        batch_size: int,
        eval_every: int = 50,
        callbacks: Sequence[object] | None = None,
    ) -> None:
        if epochs < 1:
            raise ValueError(f"epochs must be positive, got {epochs}")
        if batch_size < 1:
            raise ShapeError(f"batch_size must be positive, got {batch_size}")
        self.model = model
        self.epochs = int(epochs)
        self.batch_size = int(batch_size)
        self.eval_every = max(1, int(eval_every))
        self.callbacks = list(callbacks or [])

    def run(
        self,
        train_X: Array,
        train_Y: Array,
        eval_X: Array | None = None,
        eval_Y: Array | None = None,
    ) -> TrainerReport:
        if (eval_X is None) != (eval_Y is None):
            raise ValueError("eval_X and eval_Y must be provided together")

        metric_names = default_metrics(self.model.output_size)
        start_steps = self.model.steps
        eval_history: List[Tuple[int, Mapping[str, float]]] = []

        for epoch in range(1, self.epochs + 1):
            stats = self.model.train_one_epoch(train_X, train_Y, self.batch_size)
            metrics: Dict[str, float] = {
                "loss": stats.loss,
                "accuracy": stats.accuracy,
                "batches": float(stats.batches),
            }
            if eval_X is not None and self.should_eval(epoch):
                probs = self.model.predict_proba(eval_X)
                held_out = compute_metrics(metric_names, probs, eval_Y)
                metrics.update({f"eval_{name}": value for name, value in held_out.items()})
                eval_history.append((epoch, dict(held_out)))
            self._emit_epoch(epoch, metrics)

        if eval_X is not None:
            final_accuracy = self.model.evaluate(eval_X, eval_Y)
        else:
            final_accuracy = self.model.accuracies[-1]

        return TrainerReport(
            final_accuracy=float(final_accuracy),
            losses=self.model.losses,
            accuracies=self.model.accuracies,
            steps=self.model.steps - start_steps,
            eval_history=tuple(eval_history),
        )

    def should_eval(self, epoch: int) -> bool:
        return (epoch - 1) % self.eval_every == 0 or epoch == self.epochs

    def _emit_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(epoch, metrics)


__all__ = ["Trainer", "TrainerReport"]
