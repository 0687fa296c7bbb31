"""Sample sources, dataset registry and preprocessing helpers."""

from .preprocessing import (
    FeatureNormalizer,
    build_vocabulary,
    encode_labels,
    shuffle_samples,
    split_dataset,
)
from .registry import FruitDataset, available_datasets, get_dataset, register_dataset
from .samples import load_samples, samples_from_records

__all__ = [
    "FeatureNormalizer",
    "FruitDataset",
    "available_datasets",
    "build_vocabulary",
    "encode_labels",
    "get_dataset",
    "load_samples",
    "register_dataset",
    "samples_from_records",
    "shuffle_samples",
    "split_dataset",
]
