"""Headless-safe plotting of training histories."""

from __future__ import annotations

from pathlib import Path
from typing import List, Mapping, Sequence


def plot_training_history(
    losses: Sequence[float],
    accuracies: Sequence[float],
    path: str | Path,
    *,
    title: str = "Training Metrics",
) -> Path:
    """Render loss and accuracy curves against the epoch index to ``path``."""

    import matplotlib

    matplotlib.use("Agg", force=True)
    import matplotlib.pyplot as plt  # imported lazily for headless safety

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig, ax = plt.subplots(figsize=(12, 8))
    ax.plot(range(len(accuracies)), accuracies, color="red", label="Accuracy")
    ax.plot(range(len(losses)), losses, color="blue", label="Loss")
    ax.set_xlabel("Epoch")
    ax.set_ylabel("Value")
    ax.set_title(title)
    ax.legend()
    fig.savefig(path)
    plt.close(fig)
    return path


class PlotAdapter:
    """Collect per-epoch metrics and optionally emit a matplotlib figure."""

    def __init__(self, run_dir: str | Path, enable_plots: bool = False):
        self.enable_plots = enable_plots
        self.run_dir = Path(run_dir)
        self._losses: List[float] = []
        self._accuracies: List[float] = []
        if self.enable_plots:
            self.run_dir.mkdir(parents=True, exist_ok=True)

    @property
    def plot_path(self) -> Path:
        return self.run_dir / "training_plots.png"

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]):
        if not self.enable_plots:
            return
        self._losses.append(float(metrics.get("loss", 0.0)))
        self._accuracies.append(float(metrics.get("accuracy", 0.0)))

    def close(self) -> Path | None:
        if not self.enable_plots or not self._losses:
            return None
        return plot_training_history(self._losses, self._accuracies, self.plot_path)

    __call__ = on_epoch


__all__ = ["PlotAdapter", "plot_training_history"]
