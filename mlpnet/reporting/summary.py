"""Deterministic summaries of per-epoch error curves."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Mapping

import numpy as np

_SKIPPED = {"epoch", "seed"}


def error_area(points: Iterable[float]) -> float:
    """Area under an error curve sampled once per epoch (trapezoid rule)."""

    y = np.asarray(list(points), dtype=np.float64)
    if y.size < 2:
        return 0.0
    return float(np.sum((y[1:] + y[:-1]) * 0.5))


def _series(records: Iterable[Mapping[str, object]]) -> dict[str, list[float]]:
    series: dict[str, list[float]] = {}
    for record in records:
        for key, value in record.items():
            if key in _SKIPPED or isinstance(value, bool):
                continue
            if isinstance(value, (int, float)):
                series.setdefault(key, []).append(float(value))
    return series


def summarise(records: list[Mapping[str, object]], *, tail: int = 32) -> dict[str, object]:
    tail_window = min(tail, len(records))
    metrics: dict[str, Mapping[str, float]] = {}
    for name, values in _series(records).items():
        arr = np.asarray(values, dtype=np.float64)
        tail_arr = arr[-tail_window:] if tail_window else arr[:0]
        metrics[name] = {
            "first": float(arr[0]),
            "last": float(arr[-1]),
            "min": float(np.min(arr)),
            "max": float(np.max(arr)),
            "mean": float(np.mean(arr)),
            "tail_mean": float(np.mean(tail_arr)) if tail_arr.size else 0.0,
            "area": error_area(arr),
        }
    return {
        "version": 1,
        "epochs": len(records),
        "tail_window": tail_window,
        "metrics": metrics,
    }


def write_summary(
    metrics_jsonl: str | Path,
    out_summary_json: str | Path,
    *,
    tail: int = 32,
    extra: Mapping[str, object] | None = None,
) -> str:
    """Summarise the epochs recorded in ``metrics_jsonl`` into a JSON file."""

    metrics_path = Path(metrics_jsonl)
    out_path = Path(out_summary_json)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    records: list[Mapping[str, object]] = []
    if metrics_path.exists():
        for line in metrics_path.read_text().splitlines():
            line = line.strip()
            if line:
                records.append(json.loads(line))

    summary = summarise(records, tail=tail)
    if extra:
        summary.update(extra)
    out_path.write_text(json.dumps(summary, sort_keys=True, indent=2))
    return str(out_path)


__all__ = ["error_area", "summarise", "write_summary"]
