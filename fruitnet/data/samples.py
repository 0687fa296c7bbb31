"""CSV sample source with measurement validation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Mapping, Sequence

import numpy as np
import pandas as pd

from ..core.types import FEATURE_NAMES, Array, Sample
from ..errors import DatasetError

logger = logging.getLogger(__name__)

LABEL_COLUMN = "label"
REQUIRED_COLUMNS = (*FEATURE_NAMES, LABEL_COLUMN)


def load_samples(path: str | Path) -> List[Sample]:
    """Read and validate fruit samples from ``path``.

    The file must carry a header with ``weight,size,width,height,label``;
    extra columns are ignored.
    """

    path = Path(path)
    if not path.exists():
        raise DatasetError(f"Dataset file not found: {path}")
    try:
        df = pd.read_csv(path)
    except pd.errors.EmptyDataError as exc:
        raise DatasetError(f"Dataset file is empty: {path}") from exc
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise DatasetError(f"Dataset {path.name} is missing columns: {', '.join(missing)}")
    samples = _frame_to_samples(df, source=path.name)
    logger.info("Loaded %d samples from %s", len(samples), path)
    return samples


def samples_from_records(records: Iterable[Mapping[str, object]]) -> List[Sample]:
    """Validate in-memory records with the same rules as :func:`load_samples`."""

    df = pd.DataFrame(list(records))
    if df.empty:
        raise DatasetError("Empty dataset")
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise DatasetError(f"Records are missing fields: {', '.join(missing)}")
    return _frame_to_samples(df, source="records")


def validate_samples(samples: Sequence[Sample]) -> None:
    if not samples:
        raise DatasetError("Empty dataset")
    for row, sample in enumerate(samples, start=1):
        _check_measurements(sample.features(), row)


def features_matrix(samples: Sequence[Sample]) -> Array:
    return np.array([s.features() for s in samples], dtype=np.float64).reshape(
        len(samples), len(FEATURE_NAMES)
    )


def labels_of(samples: Sequence[Sample]) -> List[str]:
    return [s.label for s in samples]


def _frame_to_samples(df: pd.DataFrame, *, source: str) -> List[Sample]:
    if df.empty:
        raise DatasetError(f"Empty dataset: {source}")
    numeric = df[list(FEATURE_NAMES)].apply(pd.to_numeric, errors="coerce")
    bad_rows = numeric.isna().any(axis=1)
    if bad_rows.any():
        first = int(np.flatnonzero(bad_rows.to_numpy())[0]) + 1
        raise DatasetError(f"Non-numeric or missing measurement in {source} row {first}")
    labels = df[LABEL_COLUMN]
    if labels.isna().any():
        first = int(np.flatnonzero(labels.isna().to_numpy())[0]) + 1
        raise DatasetError(f"Missing label in {source} row {first}")

    samples: List[Sample] = []
    values = numeric.to_numpy(dtype=np.float64)
    for row, (measurements, label) in enumerate(zip(values, labels.astype(str)), start=1):
        _check_measurements(measurements, row)
        weight, size, width, height = (float(v) for v in measurements)
        samples.append(Sample(weight, size, width, height, label.strip()))
    return samples


def _check_measurements(measurements: Iterable[float], row: int) -> None:
    for name, value in zip(FEATURE_NAMES, measurements):
        if not np.isfinite(value) or value <= 0.0:
            raise DatasetError(
                f"Invalid measurement in row {row}: {name}={value!r} must be positive"
            )


__all__ = [
    "LABEL_COLUMN",
    "REQUIRED_COLUMNS",
    "features_matrix",
    "labels_of",
    "load_samples",
    "samples_from_records",
    "validate_samples",
]
