import csv
import json

import pytest

from mlpnet.core.types import ModelDescription
from mlpnet.reporting import CsvSink, JsonlSink, PlotAdapter, write_manifest, write_summary
from mlpnet.reporting.summary import error_area, summarise


def test_jsonl_sink_writes_one_record_per_epoch(tmp_path):
    path = tmp_path / "metrics.jsonl"
    path.write_text("stale\n")
    sink = JsonlSink(path, seed=3, sha="abc")
    sink.on_epoch(1, {"max_error": 0.5, "avg_error": 0.25})
    sink(2, {"max_error": 0.4, "avg_error": 0.2, "note": "ignored"})

    records = [json.loads(line) for line in path.read_text().splitlines()]
    assert records == [
        {"epoch": 1, "split": "train", "seed": 3, "sha": "abc", "max_error": 0.5, "avg_error": 0.25},
        {"epoch": 2, "split": "train", "seed": 3, "sha": "abc", "max_error": 0.4, "avg_error": 0.2},
    ]


def test_csv_sink_writes_header_once(tmp_path):
    path = tmp_path / "metrics.csv"
    sink = CsvSink(path)
    sink.on_epoch(1, {"max_error": 0.5, "avg_error": 0.25})
    sink.on_epoch(2, {"max_error": 0.4, "avg_error": 0.2})

    with path.open(newline="") as handle:
        rows = list(csv.reader(handle))
    assert rows[0] == ["avg_error", "epoch", "max_error", "split"]
    assert len(rows) == 3
    assert rows[2] == ["0.2", "2", "0.4", "train"]


def test_error_area_uses_trapezoid_rule():
    assert error_area([]) == 0.0
    assert error_area([1.0]) == 0.0
    assert error_area([1.0, 0.5, 0.0]) == pytest.approx(1.0)


def test_summarise_skips_bookkeeping_fields():
    records = [
        {"epoch": 1, "seed": 0, "max_error": 0.8, "avg_error": 0.4, "done": False},
        {"epoch": 2, "seed": 0, "max_error": 0.6, "avg_error": 0.3, "done": True},
        {"epoch": 3, "seed": 0, "max_error": 0.2, "avg_error": 0.1, "done": True},
    ]
    summary = summarise(records, tail=2)
    assert summary["epochs"] == 3
    assert summary["tail_window"] == 2
    assert set(summary["metrics"]) == {"max_error", "avg_error"}
    max_error = summary["metrics"]["max_error"]
    assert max_error["first"] == 0.8 and max_error["last"] == 0.2
    assert max_error["min"] == 0.2 and max_error["max"] == 0.8
    assert max_error["tail_mean"] == pytest.approx(0.4)


def test_write_summary_merges_extra_fields(tmp_path):
    metrics = tmp_path / "metrics.jsonl"
    sink = JsonlSink(metrics, sha="abc")
    sink.on_epoch(1, {"max_error": 0.3, "avg_error": 0.1})
    out = write_summary(metrics, tmp_path / "summary.json", extra={"converged": True})
    summary = json.loads((tmp_path / "summary.json").read_text())
    assert out == str(tmp_path / "summary.json")
    assert summary["converged"] is True
    assert summary["metrics"]["avg_error"]["last"] == 0.1


def test_manifest_records_topology_not_weights(tmp_path):
    path = write_manifest(
        tmp_path / "nested" / "manifest.json",
        config={"train": {"rho": 0.5}},
        dataset_provenance={"type": "xor"},
        model=ModelDescription(layer_dims=(2, 3, 1), activations=("sigmoid", "sigmoid")),
    )
    manifest = json.loads(open(path).read())
    assert manifest["model"] == {"layer_dims": [2, 3, 1], "activations": ["sigmoid", "sigmoid"]}
    assert manifest["dataset"] == {"type": "xor"}
    assert manifest["config"] == {"train": {"rho": 0.5}}
    assert "numpy" in manifest["environment"]
    assert "weights" not in json.dumps(manifest)


def test_plot_adapter_is_inert_when_disabled(tmp_path):
    adapter = PlotAdapter(tmp_path / "run", enable_plots=False)
    adapter.on_epoch(1, {"max_error": 0.5, "avg_error": 0.2})
    assert adapter.close() is None
    assert not (tmp_path / "run").exists()


def test_plot_adapter_renders_error_curve(tmp_path):
    pytest.importorskip("matplotlib")
    adapter = PlotAdapter(tmp_path, enable_plots=True)
    for epoch, error in enumerate([0.5, 0.3, 0.1], start=1):
        adapter.on_epoch(epoch, {"max_error": error, "avg_error": error / 2})
    path = adapter.close()
    assert path == tmp_path / "error.png"
    assert path.stat().st_size > 0


def test_epoch_sink_base_requires_append(tmp_path):
    from mlpnet.reporting.metrics import _EpochSink

    with pytest.raises(TypeError):
        _EpochSink(tmp_path / "rows.txt", "train")

    class ListSink(_EpochSink):
        def __init__(self, path):
            super().__init__(path, "train")
            self.rows = []

        def _append(self, row):
            self.rows.append(row)

    sink = ListSink(tmp_path / "rows.txt")
    sink(3, {"max_error": 1, "converged": True})
    assert sink.rows == [{"epoch": 3, "split": "train", "max_error": 1.0}]
