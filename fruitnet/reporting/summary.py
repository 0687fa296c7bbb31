"""Deterministic run summarisation helpers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Mapping, Sequence

import numpy as np


def summarise_history(values: Sequence[float], *, tail: int = 32) -> Mapping[str, float]:
    if not values:
        return {}
    arr = np.asarray(values, dtype=np.float64)
    tail_window = min(tail, arr.size)
    return {
        "min": float(np.min(arr)),
        "max": float(np.max(arr)),
        "mean": float(np.mean(arr)),
        "last": float(arr[-1]),
        "tail_mean": float(np.mean(arr[-tail_window:])),
    }


def write_summary(
    out_summary_json: str | Path,
    *,
    losses: Sequence[float],
    accuracies: Sequence[float],
    final_accuracy: float,
    class_names: Sequence[str],
    steps: int,
    tail: int = 32,
) -> str:
    """Write a deterministic JSON summary of a finished run."""

    out_path = Path(out_summary_json)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    summary = {
        "version": 1,
        "epochs": len(losses),
        "steps": int(steps),
        "final_accuracy": float(final_accuracy),
        "class_names": list(class_names),
        "metrics": {
            "loss": summarise_history(losses, tail=tail),
            "accuracy": summarise_history(accuracies, tail=tail),
        },
    }
    out_path.write_text(json.dumps(summary, sort_keys=True, indent=2))
    return str(out_path)


__all__ = ["summarise_history", "write_summary"]
