"""Prediction entry point and model checkpoints."""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Tuple

import numpy as np

from .core.network import NeuralNet
from .core.types import FEATURE_NAMES, Array, Prediction
from .data.preprocessing import UNKNOWN_LABEL, FeatureNormalizer
from .errors import DatasetError, ShapeError

logger = logging.getLogger(__name__)

UNKNOWN_THRESHOLD = 0.5


@dataclass(frozen=True, eq=False)
class FruitClassifier:
    """A trained network bundled with the normalizer and vocabulary it was fit with."""

    network: NeuralNet
    normalizer: FeatureNormalizer
    class_names: Tuple[str, ...]
    unknown_threshold: float = UNKNOWN_THRESHOLD
    unknown_label: str = UNKNOWN_LABEL

    def __post_init__(self) -> None:
        if len(self.class_names) != self.network.output_size:
            raise ShapeError(
                f"{len(self.class_names)} class names for {self.network.output_size} outputs"
            )
        if self.normalizer.n_features != self.network.input_size:
            raise ShapeError(
                f"Normalizer has {self.normalizer.n_features} features, "
                f"network expects {self.network.input_size}"
            )

    def predict(self, weight: float, size: float, width: float, height: float) -> Prediction:
        """Classify one fruit from raw measurements.

        A top probability below ``unknown_threshold`` is reported as
        ``unknown_label`` rather than the highest-scoring trained class.
        """

        return self.predict_many([(weight, size, width, height)])[0]

    def predict_many(self, rows: Sequence[Sequence[float]]) -> list[Prediction]:
        raw = np.asarray(rows, dtype=np.float64)
        if raw.ndim != 2 or raw.shape[1] != len(FEATURE_NAMES):
            raise ShapeError(f"Expected rows of {len(FEATURE_NAMES)} measurements, got {raw.shape}")
        for row_idx, row in enumerate(raw, start=1):
            for name, value in zip(FEATURE_NAMES, row):
                if not np.isfinite(value) or value <= 0.0:
                    raise DatasetError(
                        f"Invalid measurement in row {row_idx}: {name}={value!r} must be positive"
                    )
        probs = self.predict_proba(raw)
        predictions: list[Prediction] = []
        for row in probs:
            idx = int(np.argmax(row))
            confidence = float(row[idx])
            if confidence < self.unknown_threshold:
                predictions.append(Prediction(self.unknown_label, confidence, None))
            else:
                predictions.append(Prediction(self.class_names[idx], confidence, idx))
        return predictions

    def predict_proba(self, raw: Array) -> Array:
        return self.network.predict_proba(self.normalizer.transform(raw))

    # ------------------------------------------------------------------
    # Checkpoints

    def save(self, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        desc = self.network.describe()
        payload = dict(self.network.state_dict())
        payload.update(
            mean=self.normalizer.mean,
            std=self.normalizer.std,
            class_names=np.array(self.class_names, dtype=str),
            dims=np.array([desc.input_size, desc.hidden_size, desc.output_size]),
            unknown_threshold=np.array(self.unknown_threshold),
        )
        with path.open("wb") as handle:
            np.savez_compressed(handle, **payload)
        logger.info("Saved classifier checkpoint to %s", path)
        return path

    @classmethod
    def load(cls, path: str | Path) -> "FruitClassifier":
        path = Path(path)
        if not path.exists():
            raise DatasetError(f"Checkpoint not found: {path}")
        try:
            with np.load(path, allow_pickle=False) as data:
                input_size, hidden_size, output_size = (int(v) for v in data["dims"])
                network = NeuralNet(input_size, hidden_size, output_size)
                network.load_state_dict({name: data[name] for name in ("W1", "b1", "W2", "b2")})
                normalizer = FeatureNormalizer.from_state(data["mean"], data["std"])
                class_names = tuple(str(name) for name in data["class_names"])
                threshold = float(data["unknown_threshold"])
        except (KeyError, ValueError, OSError, zipfile.BadZipFile) as exc:
            logger.error("Failed to load classifier checkpoint from %s: %s", path, exc)
            raise DatasetError(f"Invalid checkpoint {path}: {exc}") from exc
        logger.info("Loaded classifier checkpoint from %s", path)
        return cls(network, normalizer, class_names, unknown_threshold=threshold)


__all__ = ["FruitClassifier", "UNKNOWN_THRESHOLD"]
