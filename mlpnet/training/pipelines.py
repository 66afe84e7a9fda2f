"""Pipeline assembly: dataset -> network -> teacher -> epochs -> artifacts."""

from __future__ import annotations

import json
import time
from copy import deepcopy
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

from ..core.network import MultilayerPerceptron
from ..core.types import RunResult
from ..data import registry
from ..reporting.artifacts import write_manifest
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from ..reporting.summary import write_summary
from .epoch import fit

_PRESETS: Dict[str, Mapping[str, object]] = {
    "xor-sigmoid": {
        "data": {"name": "xor", "options": {}},
        "model": {"hidden": [3], "activation": "sigmoid", "seed": 7},
        "train": {
            "epochs": 5000,
            "rho": 0.5,
            "inertial_factor": 0.5,
            "target_error": 0.005,
            "seed": 7,
            "run_dir": "runs/xor-sigmoid",
            "enable_plots": False,
        },
    },
    "digits-5x7": {
        "data": {"name": "digits", "options": {"copies": 1}},
        "model": {"hidden": [15], "activation": "sigmoid", "seed": 1},
        "train": {
            "epochs": 5000,
            "rho": 0.3,
            "inertial_factor": 0.0,
            "target_error": 0.001,
            "seed": 1,
            "run_dir": "runs/digits-5x7",
            "enable_plots": False,
        },
    },
    "sine-tanh": {
        "data": {"name": "sine", "options": {"freq": 1.0, "n_points": 32, "seed": 0}},
        "model": {"hidden": [8], "activation": ["tanh", "sigmoid"], "seed": 3},
        "train": {
            "epochs": 400,
            "rho": 0.1,
            "inertial_factor": 0.3,
            "patience": 50,
            "restore_best": True,
            "seed": 3,
            "run_dir": "runs/sine-tanh",
            "enable_plots": False,
        },
    },
    "xor-hidden-sweep": {
        "sweep": {"hidden": [[2], [3], [4]], "seeds": [0, 1]},
        "data": {"name": "xor", "options": {}},
        "model": {"activation": "sigmoid"},
        "train": {
            "epochs": 2000,
            "rho": 0.5,
            "inertial_factor": 0.5,
            "target_error": 0.01,
            "run_dir": "runs/xor-sweep",
            "enable_plots": False,
        },
    },
}

_REQUIRED_SECTIONS = {"data", "model", "train"}
_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None


def read_config_file(path: str | Path) -> Mapping[str, object]:
    """Load a JSON or YAML mapping from ``path``."""

    path = Path(path)
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        try:
            import yaml  # type: ignore
        except Exception as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("PyYAML is required to load YAML configs") from exc
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
                    raise KeyError(
                        f"Preset {file.name} is missing required sections: {missing_str}"
                    )
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
        available = ", ".join(sorted(presets()))
        raise KeyError(f"Unknown preset: {name}. Available presets: {available}") from exc


def run_pipeline(config: Mapping[str, object]) -> RunResult | List[RunResult]:
    if "sweep" in config:
        return _run_sweep(config)
    return _train_single(config)


def _run_sweep(config: Mapping[str, object]) -> List[RunResult]:
    sweep_cfg = config["sweep"]
    base_dir = Path(str(config.get("train", {}).get("run_dir", "runs/sweep")))
    results: List[RunResult] = []
    for hidden in sweep_cfg.get("hidden", [config.get("model", {}).get("hidden", [])]):
        for seed in sweep_cfg.get("seeds", [0]):
            cfg = deepcopy(dict(config))
            cfg.pop("sweep", None)
            cfg.setdefault("model", {}).update({"hidden": list(hidden), "seed": seed})
            train_cfg = cfg.setdefault("train", {})
            train_cfg["seed"] = seed
            tag = "x".join(str(h) for h in hidden) or "none"
            train_cfg["run_dir"] = str(base_dir / f"hidden-{tag}" / f"seed-{seed}")
            results.append(_train_single(cfg))
    return results


def _train_single(config: Mapping[str, object]) -> RunResult:
    missing = _REQUIRED_SECTIONS - set(config)
    if missing:
        raise KeyError(f"Config is missing required sections: {', '.join(sorted(missing))}")
    data_cfg = dict(config["data"])
    model_cfg = dict(config["model"])
    train_cfg = dict(config["train"])

    dataset = registry.get(str(data_cfg["name"]), **dict(data_cfg.get("options", {})))
    seed = int(train_cfg.get("seed", 0))
    hidden = [int(h) for h in model_cfg.get("hidden", [])]
    network = MultilayerPerceptron.from_layout(
        dataset.inputs_count,
        [*hidden, dataset.outputs_count],
        activations=_build_activations(model_cfg, len(hidden) + 1),
        seed=int(model_cfg.get("seed", seed)),
    )
    teacher = network.create_teacher(
        rho=float(train_cfg.get("rho", 0.2)),
        inertial_factor=float(train_cfg.get("inertial_factor", 0.0)),
    )

    run_dir = _resolve_run_dir(train_cfg, dataset.name)
    run_dir.mkdir(parents=True, exist_ok=True)

    target_error = train_cfg.get("target_error")
    patience = train_cfg.get("patience")
    max_epochs = int(train_cfg.get("epochs", 1))
    _print_startup_summary(
        dataset_name=dataset.name,
        examples=len(dataset),
        dims=network.describe().layer_dims,
        activations=network.describe().activations,
        rho=teacher.rho,
        inertial_factor=teacher.inertial_factor,
        max_epochs=max_epochs,
        param_count=network.parameter_count(),
    )

    jsonl = JsonlSink(run_dir / "metrics.jsonl", split="train", seed=seed)
    csv_sink = CsvSink(run_dir / "metrics.csv", split="train")
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))

    history = fit(
        teacher,
        dataset.examples,
        max_epochs=max_epochs,
        target_error=float(target_error) if target_error is not None else None,
        patience=int(patience) if patience is not None else None,
        callbacks=[jsonl, csv_sink, plots],
        restore_best=bool(train_cfg.get("restore_best", False)),
    )
    plots.close()

    summary_path = write_summary(
        jsonl.path,
        run_dir / "summary.json",
        tail=int(train_cfg.get("summary_tail", 32)),
        extra={"converged": history.converged, "best_error": teacher.best_error},
    )
    safe_config = json.loads(json.dumps(config))
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=safe_config,
        dataset_provenance=dataset.provenance,
        model=network.describe(),
    )
    (run_dir / "config.json").write_text(json.dumps(safe_config, indent=2))

    return RunResult(
        epochs=len(history),
        converged=history.converged,
        final_max_error=history.last.max_error,
        final_avg_error=history.last.avg_error,
        metrics_path=str(jsonl.path),
        manifest_path=manifest,
        summary_path=summary_path,
    )


def _build_activations(model_cfg: Mapping[str, object], layers: int):
    activation = model_cfg.get("activation", "sigmoid")
    if isinstance(activation, (list, tuple)):
        names = [str(a) for a in activation]
        if len(names) == 2 and layers != 2:
            # [hidden, output] shorthand for deeper networks
            return [names[0]] * (layers - 1) + [names[1]]
        return names
    return str(activation)


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str) -> Path:
    if "run_dir" in train_cfg:
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset


def _print_startup_summary(
    *,
    dataset_name: str,
    examples: int,
    dims: Sequence[int],
    activations: Sequence[str],
    rho: float,
    inertial_factor: float,
    max_epochs: int,
    param_count: int,
) -> None:
    print("=== mlpnet run ===")
    print(f"Dataset       : {dataset_name} ({examples} examples)")
    print(f"Dimensions    : {list(dims)}")
    print(f"Activations   : {list(activations)}")
    print(f"Rho           : {rho}")
    print(f"Inertia       : {inertial_factor}")
    print(f"Max epochs    : {max_epochs}")
    print(f"Parameters    : {param_count}")
    print("==================")


__all__ = ["load_preset", "presets", "read_config_file", "run_pipeline"]
