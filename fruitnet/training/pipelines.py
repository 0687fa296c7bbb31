"""Pipeline assembly: presets, configuration and the training entry points."""

from __future__ import annotations

import json
import logging
import time
from copy import deepcopy
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Mapping, Sequence, Tuple

import numpy as np

from ..core.network import L2_LAMBDA, NeuralNet
from ..core.types import FEATURE_NAMES, Sample
from ..data import registry
from ..data.preprocessing import (
    FeatureNormalizer,
    build_vocabulary,
    encode_labels,
    shuffle_samples,
    split_dataset,
)
from ..data.samples import features_matrix, labels_of, load_samples, validate_samples
from ..inference import UNKNOWN_THRESHOLD, FruitClassifier
from ..reporting.metrics import ConsoleProgress, CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from ..reporting.summary import write_summary
from .trainer import Trainer

logger = logging.getLogger(__name__)

_PRESETS: Dict[str, Mapping[str, object]] = {
    "fruits-default": {
        "data": {"name": "fruits_csv", "options": {}},
        "model": {"hidden": 16, "lr": 0.01, "l2": L2_LAMBDA},
        "train": {
            "epochs": 5000,
            "batch_size": 32,
            "train_fraction": 0.8,
            "seed": 0,
            "eval_every": 50,
            "run_dir": "runs/fruits-default",
            "enable_plots": False,
            "unknown_threshold": UNKNOWN_THRESHOLD,
            "verbose": True,
        },
    },
    "fruits-quick": {
        "data": {"name": "fruits_csv", "options": {}},
        "model": {"hidden": 16, "lr": 0.05, "l2": L2_LAMBDA},
        "train": {
            "epochs": 300,
            "batch_size": 8,
            "train_fraction": 0.8,
            "seed": 1,
            "eval_every": 25,
            "run_dir": "runs/fruits-quick",
            "enable_plots": False,
            "unknown_threshold": UNKNOWN_THRESHOLD,
            "verbose": True,
        },
    },
    "synthetic-smoke": {
        "data": {"name": "synthetic", "options": {"n_per_class": 20, "seed": 0}},
        "model": {"hidden": 8, "lr": 0.05, "l2": L2_LAMBDA},
        "train": {
            "epochs": 40,
            "batch_size": 16,
            "train_fraction": 0.8,
            "seed": 7,
            "eval_every": 10,
            "run_dir": "runs/synthetic-smoke",
            "enable_plots": False,
            "unknown_threshold": UNKNOWN_THRESHOLD,
            "verbose": False,
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[1] / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None
_REQUIRED_SECTIONS = {"data", "model", "train"}


@dataclass(frozen=True)
class TrainingResult:
    """Owned outcome of a training run.

    ``losses`` and ``accuracies`` hold one entry per epoch, measured on the
    full training set; ``final_accuracy`` is measured on the held-out set.
    """

    final_accuracy: float
    losses: Tuple[float, ...]
    accuracies: Tuple[float, ...]
    class_names: Tuple[str, ...]
    steps: int
    classifier: FruitClassifier
    run_dir: str = ""


def read_config_file(path: str | Path) -> Mapping[str, object]:
    """Decode a JSON or YAML configuration file into a mapping."""

    path = Path(path)
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        import yaml

        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        found: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = read_config_file(file)
                missing = _REQUIRED_SECTIONS - set(data)
                if missing:
                    missing_str = ", ".join(sorted(missing))
                    raise KeyError(f"Preset {file.name} is missing required sections: {missing_str}")
                found[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = found
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    file_overrides = _file_presets()
    if name in file_overrides:
        return file_overrides[name]
    try:
        return deepcopy(_PRESETS[name])
    except KeyError as exc:
        raise KeyError(f"Unknown preset: {name}") from exc


# ----------------------------------------------------------------------
# Training entry points


def train_from_samples(
    samples: Sequence[Sample],
    *,
    epochs: int,
    batch_size: int,
    hidden_size: int = 16,
    learning_rate: float = 0.01,
    l2_lambda: float = L2_LAMBDA,
    train_fraction: float = 0.8,
    seed: int = 0,
    rng: np.random.Generator | None = None,
    shuffle: bool = True,
    eval_every: int = 50,
    unknown_threshold: float = UNKNOWN_THRESHOLD,
    callbacks: Sequence[object] | None = None,
) -> TrainingResult:
    """Shuffle, split, standardise, encode and train on in-memory samples.

    The same generator shuffles the samples and initialises the network, so
    a fixed ``seed`` (or generator state) reproduces the whole run.
    """

    validate_samples(samples)
    gen = rng if rng is not None else np.random.default_rng(seed)
    ordered = shuffle_samples(samples, gen) if shuffle else list(samples)

    raw = features_matrix(ordered)
    labels = np.array(labels_of(ordered), dtype=object)
    train_raw, train_labels, eval_raw, eval_labels = split_dataset(raw, labels, train_fraction)

    normalizer = FeatureNormalizer.fit(train_raw)
    class_names = build_vocabulary(train_labels.tolist())
    train_X = normalizer.transform(train_raw)
    eval_X = normalizer.transform(eval_raw)
    train_Y = encode_labels(train_labels.tolist(), class_names)
    eval_Y = encode_labels(eval_labels.tolist(), class_names)

    unrepresented = int(np.sum(~eval_Y.any(axis=1)))
    if unrepresented:
        logger.warning(
            "%d evaluation rows carry labels unseen in training and can never score", unrepresented
        )
    if batch_size > train_X.shape[0]:
        logger.warning(
            "batch_size=%d exceeds %d training rows; no gradient updates will run",
            batch_size,
            train_X.shape[0],
        )

    network = NeuralNet(
        len(FEATURE_NAMES),
        int(hidden_size),
        len(class_names),
        learning_rate=float(learning_rate),
        l2_lambda=float(l2_lambda),
        rng=gen,
    )
    trainer = Trainer(
        network,
        epochs=epochs,
        batch_size=batch_size,
        eval_every=eval_every,
        callbacks=callbacks,
    )
    report = trainer.run(train_X, train_Y, eval_X, eval_Y)

    classifier = FruitClassifier(
        network, normalizer, class_names, unknown_threshold=float(unknown_threshold)
    )
    return TrainingResult(
        final_accuracy=report.final_accuracy,
        losses=report.losses,
        accuracies=report.accuracies,
        class_names=class_names,
        steps=report.steps,
        classifier=classifier,
    )


def train_from_csv(
    path: str | Path, *, epochs: int, batch_size: int, **kwargs
) -> TrainingResult:
    """Load ``path`` and delegate to :func:`train_from_samples`."""

    return train_from_samples(load_samples(path), epochs=epochs, batch_size=batch_size, **kwargs)


def run_pipeline(config: Mapping[str, object]) -> TrainingResult:
    """Train from a ``data``/``model``/``train`` config and write run artifacts."""

    missing = _REQUIRED_SECTIONS - set(config)
    if missing:
        raise KeyError(f"Config is missing required sections: {', '.join(sorted(missing))}")
    data_cfg = dict(config["data"])
    model_cfg = dict(config["model"])
    train_cfg = dict(config["train"])

    dataset = registry.get_dataset(str(data_cfg["name"]), **dict(data_cfg.get("options", {})))

    epochs = int(train_cfg.get("epochs", 1))
    batch_size = int(train_cfg.get("batch_size", 32))
    seed = int(train_cfg.get("seed", 0))
    hidden = int(model_cfg.get("hidden", 16))
    verbose = bool(train_cfg.get("verbose", True))

    run_dir = _resolve_run_dir(train_cfg, dataset.name)
    run_dir.mkdir(parents=True, exist_ok=True)

    if verbose:
        _print_startup_summary(
            dataset_name=dataset.name,
            n_samples=len(dataset),
            dims=[len(FEATURE_NAMES), hidden],
            epochs=epochs,
            batch_size=batch_size,
            learning_rate=float(model_cfg.get("lr", 0.01)),
            seed=seed,
        )

    jsonl = JsonlSink(run_dir / "metrics_train.jsonl", split="train", seed=seed)
    csv_sink = CsvSink(run_dir / "metrics_train.csv")
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))
    callbacks: list[object] = [jsonl, csv_sink, plots]
    if verbose:
        callbacks.append(ConsoleProgress(epochs))

    result = train_from_samples(
        dataset.samples,
        epochs=epochs,
        batch_size=batch_size,
        hidden_size=hidden,
        learning_rate=float(model_cfg.get("lr", 0.01)),
        l2_lambda=float(model_cfg.get("l2", L2_LAMBDA)),
        train_fraction=float(train_cfg.get("train_fraction", 0.8)),
        seed=seed,
        eval_every=int(train_cfg.get("eval_every", 50)),
        unknown_threshold=float(train_cfg.get("unknown_threshold", UNKNOWN_THRESHOLD)),
        callbacks=callbacks,
    )

    plots.close()
    result.classifier.save(run_dir / "model.npz")
    write_summary(
        run_dir / "summary.json",
        losses=result.losses,
        accuracies=result.accuracies,
        final_accuracy=result.final_accuracy,
        class_names=result.class_names,
        steps=result.steps,
        tail=int(train_cfg.get("summary_tail", 32)),
    )
    safe_config = json.loads(json.dumps(config))
    safe_config["provenance"] = dataset.provenance
    (run_dir / "config.json").write_text(json.dumps(safe_config, indent=2))

    if verbose:
        print(f"Training completed. Final test accuracy: {result.final_accuracy * 100:.2f}%")
    return replace(result, run_dir=str(run_dir))


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str) -> Path:
    if train_cfg.get("run_dir"):
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset


def _print_startup_summary(
    *,
    dataset_name: str,
    n_samples: int,
    dims: Sequence[int],
    epochs: int,
    batch_size: int,
    learning_rate: float,
    seed: int,
) -> None:
    print("=== fruitnet run ===")
    print(f"Dataset       : {dataset_name} ({n_samples} samples)")
    print(f"Dimensions    : {list(dims)} -> classes")
    print(f"Epochs        : {epochs}")
    print(f"Batch size    : {batch_size}")
    print(f"Learning rate : {learning_rate}")
    print(f"Seed          : {seed}")
    print("====================")


__all__ = [
    "TrainingResult",
    "load_preset",
    "presets",
    "read_config_file",
    "run_pipeline",
    "train_from_csv",
    "train_from_samples",
]
