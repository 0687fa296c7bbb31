"""Dataset registry and metadata contracts."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, MutableMapping, Tuple

from ..core.types import Sample
from .samples import load_samples, validate_samples
from .synthetic import make_samples

FIXTURE_DIR = Path(__file__).resolve().parent / "_fixtures"


@dataclass(frozen=True)
class FruitDataset:
    """Validated samples plus a description of where they came from."""

    name: str
    samples: Tuple[Sample, ...]
    provenance: Dict[str, Any]

    def __len__(self) -> int:
        return len(self.samples)


DatasetFactory = Callable[..., FruitDataset]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("fruits_csv")
        def load_fruits(**kwargs):
            ...

    or directly::

        register_dataset("synthetic", make_synthetic)
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    if name is None:
        raise TypeError("register_dataset requires a name when used without a decorator")
    return _decorator


def get_dataset(name: str, /, **options: Any) -> FruitDataset:
    """Return the :class:`FruitDataset` registered under ``name``."""

    if name not in _REGISTRY:
        available = ", ".join(available_datasets())
        raise KeyError(f"Unknown dataset {name!r}. Available datasets: {available}")
    dataset = _REGISTRY[name](**options)
    validate_samples(dataset.samples)
    return dataset


def available_datasets() -> Iterable[str]:
    """Return the sorted list of available dataset identifiers."""

    return sorted(_REGISTRY)


@register_dataset("fruits_csv")
def load_fruits_csv(*, path: str | Path | None = None) -> FruitDataset:
    """Samples from a CSV file; defaults to the bundled fixture."""

    csv_path = Path(path) if path else FIXTURE_DIR / "fruits_fixture.csv"
    samples = load_samples(csv_path)
    return FruitDataset(
        name="fruits_csv",
        samples=tuple(samples),
        provenance={"type": "csv", "path": str(csv_path), "rows": len(samples)},
    )


@register_dataset("synthetic")
def load_synthetic(
    *, n_per_class: int = 40, spread: float = 0.05, seed: int = 0
) -> FruitDataset:
    samples = make_samples(n_per_class, spread=spread, seed=seed)
    return FruitDataset(
        name="synthetic",
        samples=tuple(samples),
        provenance={
            "type": "synthetic",
            "n_per_class": n_per_class,
            "spread": spread,
            "seed": seed,
        },
    )


__all__ = [
    "FIXTURE_DIR",
    "FruitDataset",
    "available_datasets",
    "get_dataset",
    "load_fruits_csv",
    "load_synthetic",
    "register_dataset",
]
