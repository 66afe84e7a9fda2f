"""Per-epoch metric sinks for training runs."""

from __future__ import annotations

import csv
import json
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Mapping


def git_sha() -> str:
    try:
        out = subprocess.check_output(["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL)
        return out.decode().strip()
    except Exception:  # pragma: no cover - git may be unavailable in tests
        return "unknown"


class _EpochSink(ABC):
    """Base for file sinks fed by :func:`mlpnet.training.epoch.fit` callbacks.

    The target file is truncated on creation so a rerun into the same run
    directory never mixes records of two runs.
    """

    def __init__(self, path: str | Path, split: str) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self.split = split

    def _row(self, epoch: int, metrics: Mapping[str, object]) -> Dict[str, object]:
        row: Dict[str, object] = {"epoch": int(epoch), "split": self.split}
        for key, value in metrics.items():
            # flags such as ``converged`` are not curve values
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                row[key] = float(value)
        return row

    @abstractmethod
    def _append(self, row: Dict[str, object]) -> None:
        ...

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        self._append(self._row(epoch, metrics))

    def __call__(self, epoch: int, metrics: Mapping[str, float]) -> None:
        self.on_epoch(epoch, metrics)


class JsonlSink(_EpochSink):
    """One JSON record per epoch, tagged with the run seed and git sha."""

    def __init__(
        self,
        path: str | Path,
        *,
        split: str = "train",
        seed: int | None = None,
        sha: str | None = None,
    ) -> None:
        super().__init__(path, split)
        self.seed = seed
        self.sha = sha or git_sha()

    def _row(self, epoch: int, metrics: Mapping[str, object]) -> Dict[str, object]:
        row = super()._row(epoch, {})
        row.update(seed=self.seed, sha=self.sha)
        row.update(super()._row(epoch, metrics))
        return row

    def _append(self, row: Dict[str, object]) -> None:
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(row) + "\n")


class CsvSink(_EpochSink):
    """Epoch errors as CSV; the header is written with the first row, sorted."""

    def __init__(self, path: str | Path, *, split: str = "train") -> None:
        super().__init__(path, split)

    def _append(self, row: Dict[str, object]) -> None:
        with self.path.open("a", encoding="utf-8", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=sorted(row))
            if handle.tell() == 0:
                writer.writeheader()
            writer.writerow(row)


__all__ = ["CsvSink", "JsonlSink", "git_sha"]
