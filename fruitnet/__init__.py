"""fruitnet public API."""

from .core import activations  # noqa: F401
from .core import types  # noqa: F401
from .core.network import NeuralNet
from .data.preprocessing import FeatureNormalizer, build_vocabulary, encode_labels, split_dataset
from .errors import DatasetError, FruitNetError, ShapeError
from .inference import FruitClassifier
from .training.pipelines import (
    TrainingResult,
    load_preset,
    presets,
    run_pipeline,
    train_from_csv,
    train_from_samples,
)
from .training.trainer import Trainer

__all__ = [
    "DatasetError",
    "FeatureNormalizer",
    "FruitClassifier",
    "FruitNetError",
    "NeuralNet",
    "ShapeError",
    "Trainer",
    "TrainingResult",
    "activations",
    "build_vocabulary",
    "encode_labels",
    "load_preset",
    "presets",
    "run_pipeline",
    "split_dataset",
    "train_from_csv",
    "train_from_samples",
    "types",
]
