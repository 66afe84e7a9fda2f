"""Headless-safe error-curve plotting."""

from __future__ import annotations

from pathlib import Path
from typing import List, Mapping, Tuple


class PlotAdapter:
    """Collect per-epoch errors and optionally render them with matplotlib."""

    def __init__(self, run_dir: str | Path, enable_plots: bool = False):
        self.enable_plots = enable_plots
        self.run_dir = Path(run_dir)
        self._history: List[Tuple[int, float, float]] = []
        if self.enable_plots:
            self.run_dir.mkdir(parents=True, exist_ok=True)

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        if not self.enable_plots:
            return
        self._history.append(
            (
                int(epoch),
                float(metrics.get("max_error", 0.0)),
                float(metrics.get("avg_error", 0.0)),
            )
        )

    __call__ = on_epoch

    def close(self) -> Path | None:
        if not self.enable_plots or not self._history:
            return None
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # imported lazily for headless safety

        epochs, max_errors, avg_errors = zip(*self._history)
        fig, ax = plt.subplots()
        ax.plot(epochs, max_errors, label="max error")
        ax.plot(epochs, avg_errors, label="mean error")
        ax.set_yscale("log")
        ax.set_xlabel("Epoch")
        ax.set_ylabel("Error")
        ax.set_title("Training error")
        ax.legend()
        plot_path = self.run_dir / "error.png"
        fig.savefig(plot_path)
        plt.close(fig)
        return plot_path
