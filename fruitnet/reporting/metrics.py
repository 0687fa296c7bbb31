"""Metrics sinks for training runs."""

from __future__ import annotations

import csv
import json
import sys
from pathlib import Path
from typing import Mapping, Sequence, TextIO

CSV_FIELDS: Sequence[str] = (
    "epoch",
    "loss",
    "accuracy",
    "eval_loss",
    "eval_accuracy",
    "eval_macro_f1",
)


class JsonlSink:
    """Append-only JSONL writer for per-epoch metrics."""

    def __init__(self, path: str | Path, *, split: str = "train", seed: int | None = None) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self.split = split
        self.seed = seed

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        record = {"epoch": int(epoch), "split": self.split, "seed": self.seed}
        record.update({k: float(v) for k, v in metrics.items() if isinstance(v, (int, float))})
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record) + "\n")

    __call__ = on_epoch


class CsvSink:
    """Write metrics to CSV with a fixed column schema.

    Epochs without a held-out evaluation leave the ``eval_*`` cells empty.
    """

    def __init__(self, path: str | Path, *, fields: Sequence[str] = CSV_FIELDS) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.fields = list(fields)
        with self.path.open("w", encoding="utf-8", newline="") as handle:
            csv.DictWriter(handle, fieldnames=self.fields).writeheader()

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        row = {"epoch": int(epoch)}
        row.update({k: float(v) for k, v in metrics.items() if k in self.fields})
        with self.path.open("a", encoding="utf-8", newline="") as handle:
            writer = csv.DictWriter(
                handle, fieldnames=self.fields, restval="", extrasaction="ignore"
            )
            writer.writerow(row)


class ConsoleProgress:
    """Print a progress line on evaluation epochs."""

    def __init__(self, total_epochs: int, stream: TextIO | None = None) -> None:
        self.total_epochs = int(total_epochs)
        self.stream = stream

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        if "eval_accuracy" not in metrics and epoch != self.total_epochs:
            return
        line = (
            f"Epoch {epoch}/{self.total_epochs} - Loss: {metrics['loss']:.4f}"
            f" - Train Acc: {metrics['accuracy'] * 100:.2f}%"
        )
        if "eval_accuracy" in metrics:
            line += f" - Test Acc: {metrics['eval_accuracy'] * 100:.2f}%"
        print(line, file=self.stream or sys.stdout)


__all__ = ["CSV_FIELDS", "ConsoleProgress", "CsvSink", "JsonlSink"]
