"""Command line entry point for mlpnet training runs."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Iterable

from mlpnet.core.errors import Instability
from mlpnet.data import available_datasets
from mlpnet.training import pipelines


def _format_result(result) -> str:
    payload = {
        "epochs": result.epochs,
        "converged": result.converged,
        "max_error": result.final_max_error,
        "avg_error": result.final_avg_error,
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
    }
    if getattr(result, "summary_path", ""):
        payload["summary"] = result.summary_path
    return json.dumps(payload, sort_keys=True)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="xor-sigmoid",
        help="Preset configuration to execute",
    )
    parser.add_argument(
        "--config", type=Path, help="Optional JSON/YAML config override"
    )
    parser.add_argument("--epochs", type=int, help="Override the maximum number of epochs")
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed used for weight initialisation and noisy datasets",
    )
    parser.add_argument("--run-dir", help="Directory receiving metrics and manifests")
    parser.add_argument(
        "--enable-plots", action="store_true", help="Render the training error curve"
    )
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument(
        "--list-datasets", action="store_true", help="List registered datasets and exit"
    )
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    return parser.parse_args(argv)


def _merge(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _merge(dict(base[key]), value)
        else:
            base[key] = value
    return base


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    if args.list_datasets:
        for name in available_datasets():
            print(name)
        raise SystemExit(0)

    config = json.loads(json.dumps(pipelines.load_preset(args.preset)))

    if args.config:
        override = json.loads(json.dumps(pipelines.read_config_file(args.config)))
        if {"data", "model", "train"} <= set(override.keys()):
            config = override
        else:
            config = _merge(config, override)

    train_cfg = config.setdefault("train", {})
    if args.epochs is not None:
        train_cfg["epochs"] = int(args.epochs)
    if args.seed is not None:
        train_cfg["seed"] = int(args.seed)
        config.setdefault("model", {})["seed"] = int(args.seed)
        options = config.setdefault("data", {}).setdefault("options", {})
        if "seed" in options:
            options["seed"] = int(args.seed)
    if args.run_dir:
        train_cfg["run_dir"] = args.run_dir
    if args.enable_plots:
        train_cfg["enable_plots"] = True

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    try:
        result = pipelines.run_pipeline(config)
    except Instability as exc:
        raise SystemExit(f"Training diverged: {exc}") from exc

    if isinstance(result, list):
        for item in result:
            print(_format_result(item))
    else:
        print(_format_result(result))


if __name__ == "__main__":
    main()
