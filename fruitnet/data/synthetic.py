"""Seeded synthetic fruit measurements for demos and tests."""

from __future__ import annotations

from typing import List, Mapping, Sequence

import numpy as np

from ..core.types import Sample

# weight (g), size (cm), width (cm), height (cm)
DEFAULT_CENTERS: Mapping[str, Sequence[float]] = {
    "apple": (160.0, 7.5, 7.0, 7.2),
    "grape": (5.0, 2.0, 1.6, 2.0),
    "orange": (130.0, 6.5, 6.5, 6.3),
    "watermelon": (4000.0, 30.0, 25.0, 22.0),
}


def make_samples(
    n_per_class: int = 40,
    *,
    centers: Mapping[str, Sequence[float]] | None = None,
    spread: float = 0.05,
    seed: int = 0,
    rng: np.random.Generator | None = None,
) -> List[Sample]:
    """Draw ``n_per_class`` samples around each class centre.

    Noise is multiplicative (``centre * (1 + spread * N(0, 1))``) and clipped
    so every measurement stays strictly positive.
    """

    if n_per_class < 1:
        raise ValueError("n_per_class must be positive")
    rng = rng if rng is not None else np.random.default_rng(seed)
    centers = centers or DEFAULT_CENTERS
    samples: List[Sample] = []
    for label, center in centers.items():
        base = np.asarray(center, dtype=np.float64)
        if base.shape != (4,):
            raise ValueError(f"Centre for {label!r} must have four measurements")
        noise = rng.standard_normal((n_per_class, 4))
        values = np.maximum(base * (1.0 + spread * noise), 1e-3)
        for w, s, wd, h in values:
            samples.append(Sample(float(w), float(s), float(wd), float(h), label))
    return samples


__all__ = ["DEFAULT_CENTERS", "make_samples"]
