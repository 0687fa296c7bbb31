"""Command line entry point for training and querying fruit classifiers."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Iterable, TextIO

from fruitnet.data import registry
from fruitnet.errors import FruitNetError
from fruitnet.inference import FruitClassifier
from fruitnet.training import pipelines

MAX_WEIGHT_G = 10000.0
MAX_LENGTH_CM = 50.0


def _format_result(result) -> str:
    payload = {
        "final_accuracy": result.final_accuracy,
        "epochs": len(result.losses),
        "steps": result.steps,
        "classes": list(result.class_names),
        "run_dir": result.run_dir,
    }
    return json.dumps(payload, sort_keys=True)


def _format_prediction(prediction) -> str:
    payload = {"label": prediction.label, "confidence": prediction.confidence}
    return json.dumps(payload, sort_keys=True)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="fruits-default",
        help="Preset configuration to execute",
    )
    parser.add_argument("--config", type=Path, help="Optional JSON/YAML config override")
    parser.add_argument(
        "--dataset",
        choices=list(registry.available_datasets()),
        help="Override the dataset used by the run",
    )
    parser.add_argument("--csv-path", help="Path to a fruit CSV file (implies --dataset fruits_csv)")
    parser.add_argument("--epochs", type=int, help="Number of training epochs")
    parser.add_argument("--batch-size", type=int, help="Mini-batch size")
    parser.add_argument("--seed", type=int, help="Seed used for shuffling and initialisation")
    parser.add_argument("--run-dir", help="Directory for metrics, summary and checkpoint")
    parser.add_argument("--enable-plots", action="store_true", help="Write training_plots.png")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    parser.add_argument(
        "--interactive",
        action="store_true",
        help="Enter the manual prediction loop after training (or after --model)",
    )
    parser.add_argument("--model", type=Path, help="Load a saved model.npz instead of training")
    parser.add_argument(
        "--predict",
        nargs=4,
        type=float,
        metavar=("WEIGHT", "SIZE", "WIDTH", "HEIGHT"),
        help="Predict one sample with the model given by --model",
    )
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument("--dump-config", type=Path, help="Dump the resolved config to a JSON file")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for library messages",
    )
    return parser.parse_args(argv)


def _merge(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _merge(dict(base[key]), value)
        else:
            base[key] = value
    return base


def resolve_config(args: argparse.Namespace) -> dict:
    config = json.loads(json.dumps(pipelines.load_preset(args.preset)))

    if args.config:
        override = dict(pipelines.read_config_file(args.config))
        if {"data", "model", "train"} <= set(override.keys()):
            config = json.loads(json.dumps(override))
        else:
            config = _merge(config, override)

    train_cfg = config.setdefault("train", {})
    if args.csv_path:
        config["data"] = {"name": "fruits_csv", "options": {"path": args.csv_path}}
    elif args.dataset:
        config["data"] = {"name": args.dataset, "options": {}}
    if args.epochs is not None:
        train_cfg["epochs"] = int(args.epochs)
    if args.batch_size is not None:
        train_cfg["batch_size"] = int(args.batch_size)
    if args.seed is not None:
        train_cfg["seed"] = int(args.seed)
    if args.run_dir:
        train_cfg["run_dir"] = args.run_dir
    if args.enable_plots:
        train_cfg["enable_plots"] = True
    if args.quiet:
        train_cfg["verbose"] = False
    return config


def interactive_loop(
    classifier: FruitClassifier,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> int:
    """Read ``weight size width height`` lines until ``q`` or EOF.

    Returns the number of predictions made.
    """

    stdin = stdin or sys.stdin
    out = stdout or sys.stdout
    print("\nManual Testing Mode", file=out)
    print("Format: weight(g) size(cm) width(cm) height(cm)", file=out)
    print("Example: 150 7 6 6", file=out)
    print("Enter 'q' to quit\n", file=out)

    made = 0
    while True:
        out.write("Enter measurements > ")
        out.flush()
        line = stdin.readline()
        if not line:
            break
        text = line.strip()
        if text == "q":
            break
        try:
            parts = [float(token) for token in text.split()]
        except ValueError:
            print("Error: Please enter valid numbers", file=out)
            continue
        if len(parts) != 4:
            print("Error: Please enter exactly 4 numbers", file=out)
            continue
        if parts[0] > MAX_WEIGHT_G or any(value > MAX_LENGTH_CM for value in parts[1:]):
            print(
                "Warning: Values seem unusually large - expected weight(g), size/cm",
                file=out,
            )
        try:
            prediction = classifier.predict(*parts)
        except FruitNetError as exc:
            print(f"Error: {exc}", file=out)
            continue
        made += 1
        print(
            f"Prediction: {prediction.label} ({prediction.confidence * 100:.1f}% confidence)\n",
            file=out,
        )
    return made


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    if args.predict and not args.model:
        raise SystemExit("--predict requires --model PATH")

    try:
        if args.model:
            classifier = FruitClassifier.load(args.model)
            if args.predict:
                print(_format_prediction(classifier.predict(*args.predict)))
            if args.interactive:
                interactive_loop(classifier)
            return

        config = resolve_config(args)
        if args.dump_config:
            args.dump_config.parent.mkdir(parents=True, exist_ok=True)
            args.dump_config.write_text(json.dumps(config, indent=2))

        result = pipelines.run_pipeline(config)
    except FruitNetError as exc:
        raise SystemExit(f"error: {exc}") from None

    print(_format_result(result))
    if args.interactive:
        interactive_loop(result.classifier)


if __name__ == "__main__":
    main()
