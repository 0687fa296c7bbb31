"""Single-hidden-layer softmax classifier trained with manual backprop."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Tuple

import numpy as np

from ..errors import ShapeError
from .activations import relu, relu_deriv, softmax
from .types import Array, EpochStats, ModelDescription

L2_LAMBDA = 0.001
LOSS_EPS = 1e-15

Gradients = Dict[str, Array]

_PARAM_NAMES = ("W1", "b1", "W2", "b2")


def cross_entropy_loss(probs: Array, targets: Array) -> float:
    """Mean categorical cross-entropy; ``LOSS_EPS`` guards ``log(0)``."""

    _check_pair(probs, targets)
    return float(-np.mean(np.sum(targets * np.log(probs + LOSS_EPS), axis=1)))


def accuracy(probs: Array, targets: Array) -> float:
    """Fraction of rows whose argmax matches the one-hot target.

    ``np.argmax`` picks the lowest index among ties for both predictions and
    targets. All-zero target rows (labels outside the vocabulary) can never
    be correct but still count towards the denominator.
    """

    _check_pair(probs, targets)
    predicted = np.argmax(probs, axis=1)
    expected = np.argmax(targets, axis=1)
    represented = np.any(targets != 0, axis=1)
    return float(np.mean((predicted == expected) & represented))


def _check_pair(probs: Array, targets: Array) -> None:
    if probs.ndim != 2 or probs.shape != targets.shape:
        raise ShapeError(
            f"Predictions {probs.shape} and targets {targets.shape} must be equal 2-D shapes"
        )
    if probs.shape[0] == 0:
        raise ShapeError("Cannot score an empty batch")


@dataclass(eq=False)
class NeuralNet:
    """Feed-forward network ``input -> ReLU hidden -> softmax output``.

    Weights are drawn once at construction from ``rng`` (or a generator
    seeded with ``seed``) using Glorot-style uniform scaling; biases start at
    zero. Parameters are only mutated by :meth:`apply`.
    """

    input_size: int
    hidden_size: int
    output_size: int
    learning_rate: float = 0.01
    l2_lambda: float = L2_LAMBDA
    seed: int = 0
    rng: np.random.Generator | None = field(default=None, repr=False)
    W1: Array = field(init=False, repr=False)
    b1: Array = field(init=False, repr=False)
    W2: Array = field(init=False, repr=False)
    b2: Array = field(init=False, repr=False)
    steps: int = field(init=False, default=0)
    _losses: List[float] = field(init=False, default_factory=list, repr=False)
    _accuracies: List[float] = field(init=False, default_factory=list, repr=False)

    def __post_init__(self) -> None:
        for name in ("input_size", "hidden_size", "output_size"):
            if int(getattr(self, name)) < 1:
                raise ShapeError(f"{name} must be positive, got {getattr(self, name)}")
        rng = self.rng if self.rng is not None else np.random.default_rng(self.seed)
        d, h, c = self.input_size, self.hidden_size, self.output_size
        self.W1 = rng.uniform(-1.0, 1.0, size=(d, h)) * np.sqrt(2.0 / (d + h))
        self.b1 = np.zeros(h)
        self.W2 = rng.uniform(-1.0, 1.0, size=(h, c)) * np.sqrt(1.0 / (h + c))
        self.b2 = np.zeros(c)

    def describe(self) -> ModelDescription:
        return ModelDescription(self.input_size, self.hidden_size, self.output_size)

    @property
    def losses(self) -> Tuple[float, ...]:
        return tuple(self._losses)

    @property
    def accuracies(self) -> Tuple[float, ...]:
        return tuple(self._accuracies)

    # ------------------------------------------------------------------
    # Computation

    def forward(self, X: Array) -> Tuple[Array, Array, Array]:
        X = self._check_inputs(X)
        hidden_pre = X @ self.W1 + self.b1
        hidden = relu(hidden_pre)
        output = softmax(hidden @ self.W2 + self.b2)
        return hidden_pre, hidden, output

    def predict_proba(self, X: Array) -> Array:
        return self.forward(X)[2]

    def gradients(self, X: Array, Y: Array) -> Gradients:
        """Batch-averaged, L2-penalised gradients for one mini-batch."""

        X = self._check_inputs(X)
        Y = self._check_targets(X, Y)
        n = X.shape[0]
        hidden_pre, hidden, output = self.forward(X)
        output_error = output - Y
        hidden_error = (output_error @ self.W2.T) * relu_deriv(hidden_pre)
        return {
            "W1": X.T @ hidden_error / n + self.l2_lambda * self.W1,
            "b1": hidden_error.mean(axis=0),
            "W2": hidden.T @ output_error / n + self.l2_lambda * self.W2,
            "b2": output_error.mean(axis=0),
        }

    def apply(self, grads: Mapping[str, Array]) -> None:
        self.W1 -= self.learning_rate * grads["W1"]
        self.b1 -= self.learning_rate * grads["b1"]
        self.W2 -= self.learning_rate * grads["W2"]
        self.b2 -= self.learning_rate * grads["b2"]
        self.steps += 1

    def train_one_epoch(self, X: Array, Y: Array, batch_size: int) -> EpochStats:
        """Run one pass of contiguous mini-batches, then score the full set.

        Only full batches update the parameters: the trailing
        ``rows % batch_size`` rows never receive a gradient step.
        """

        X = self._check_inputs(X)
        Y = self._check_targets(X, Y)
        if batch_size < 1:
            raise ShapeError(f"batch_size must be positive, got {batch_size}")
        batches = X.shape[0] // batch_size
        for idx in range(batches):
            window = slice(idx * batch_size, (idx + 1) * batch_size)
            self.apply(self.gradients(X[window], Y[window]))

        probs = self.predict_proba(X)
        loss = cross_entropy_loss(probs, Y)
        acc = accuracy(probs, Y)
        self._losses.append(loss)
        self._accuracies.append(acc)
        return EpochStats(loss=loss, accuracy=acc, batches=batches)

    def evaluate(self, X: Array, Y: Array) -> float:
        X = self._check_inputs(X)
        Y = self._check_targets(X, Y)
        return accuracy(self.predict_proba(X), Y)

    def loss(self, X: Array, Y: Array) -> float:
        X = self._check_inputs(X)
        Y = self._check_targets(X, Y)
        return cross_entropy_loss(self.predict_proba(X), Y)

    # ------------------------------------------------------------------
    # Persistence

    def state_dict(self) -> Mapping[str, Array]:
        return {name: getattr(self, name).copy() for name in _PARAM_NAMES}

    def load_state_dict(self, state: Mapping[str, Array]) -> None:
        for name in _PARAM_NAMES:
            if name not in state:
                raise KeyError(f"Missing parameter {name} in state dict")
            current = getattr(self, name)
            value = np.asarray(state[name], dtype=np.float64)
            if value.shape != current.shape:
                raise ShapeError(
                    f"Parameter {name} has shape {value.shape}, expected {current.shape}"
                )
            setattr(self, name, value.copy())

    def parameter_count(self) -> int:
        return int(sum(getattr(self, name).size for name in _PARAM_NAMES))

    # ------------------------------------------------------------------
    # Internal helpers

    def _check_inputs(self, X: Array) -> Array:
        X = np.asarray(X, dtype=np.float64)
        if X.ndim != 2 or X.shape[1] != self.input_size:
            raise ShapeError(
                f"Expected inputs of shape (n, {self.input_size}), got {X.shape}"
            )
        if X.shape[0] == 0:
            raise ShapeError("Inputs must contain at least one row")
        return X

    def _check_targets(self, X: Array, Y: Array) -> Array:
        Y = np.asarray(Y, dtype=np.float64)
        if Y.ndim != 2 or Y.shape[1] != self.output_size:
            raise ShapeError(
                f"Expected targets of shape (n, {self.output_size}), got {Y.shape}"
            )
        if Y.shape[0] != X.shape[0]:
            raise ShapeError(
                f"Row count mismatch: {X.shape[0]} inputs vs {Y.shape[0]} targets"
            )
        return Y


__all__ = ["L2_LAMBDA", "LOSS_EPS", "NeuralNet", "accuracy", "cross_entropy_loss"]
