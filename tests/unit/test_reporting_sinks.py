import csv
import json
from pathlib import Path

from descentlab.reporting.artifacts import write_manifest
from descentlab.reporting.metrics import CsvSink, JsonlSink, ProgressPrinter
from descentlab.reporting.plots import PlotAdapter
from descentlab.reporting.summary import write_summary


def test_jsonl_sink_records_step_and_metadata(tmp_path):
    sink = JsonlSink(tmp_path / "m.jsonl", variant="linear1d", seed=4, sha="abc")
    sink.on_step(0, {"loss": 2.0, "w": 0.0, "activation": "relu", "in_saturation_zone": True})
    sink.on_step(1, {"loss": 1.0, "w": 0.5})
    lines = [json.loads(line) for line in sink.path.read_text().splitlines()]
    assert lines[0] == {
        "step": 0,
        "variant": "linear1d",
        "seed": 4,
        "sha": "abc",
        "loss": 2.0,
        "w": 0.0,
    }
    assert lines[1]["step"] == 1


def test_csv_sink_keeps_header_stable(tmp_path):
    sink = CsvSink(tmp_path / "m.csv")
    sink.on_step(0, {"loss": 2.0, "w": 0.0})
    sink.on_step(1, {"loss": 1.0, "w": 0.5})
    with sink.path.open() as handle:
        rows = list(csv.DictReader(handle))
    assert list(rows[0]) == ["step", "loss", "w"]
    assert [row["step"] for row in rows] == ["0", "1"]


def test_progress_printer_every_n_steps(capsys):
    printer = ProgressPrinter(every=2)
    for step in range(4):
        printer.on_step(step, {"loss": 1.0, "w1": 0.25, "w2": 0.5, "grad_w1": 3.0})
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 2
    assert lines[0] == "Step   0: w1=0.2500, w2=0.5000, loss=1.0000"


def test_plot_adapter_headless(tmp_path):
    adapter = PlotAdapter(tmp_path, enable_plots=True)
    adapter.on_step(0, {"loss": 1.0})
    adapter.on_step(1, {"loss": 0.5})
    adapter.close()
    assert (tmp_path / "loss.png").exists()


def test_plot_adapter_disabled_writes_nothing(tmp_path):
    adapter = PlotAdapter(tmp_path / "none", enable_plots=False)
    adapter.on_step(0, {"loss": 1.0})
    assert adapter.close() is None
    assert not (tmp_path / "none").exists()


def test_manifest_and_summary(tmp_path):
    path = write_manifest(
        tmp_path / "manifest.json",
        config={"train": {"lr": 0.1}},
        dataset_provenance={"type": "synthetic", "seed": 1},
    )
    manifest = json.loads(Path(path).read_text())
    assert manifest["dataset"]["seed"] == 1
    assert {"git_sha", "generated_at", "config", "environment"} <= set(manifest)

    metrics = tmp_path / "m.jsonl"
    metrics.write_text(
        "\n".join(json.dumps({"step": i, "seed": 1, "loss": float(4 - i)}) for i in range(4))
    )
    summary = json.loads(Path(write_summary(metrics, tmp_path / "s.json", tail=2)).read_text())
    assert summary["records"] == 4
    assert set(summary["metrics"]) == {"loss"}
    assert summary["metrics"]["loss"]["tail_auc"] == 1.5


def test_jsonl_sink_writes_nan_loss_as_null(tmp_path):
    sink = JsonlSink(tmp_path / "m.jsonl", sha="abc")
    sink.on_step(0, {"loss": float("nan"), "w": 1.0})
    text = sink.path.read_text()
    assert "NaN" not in text
    assert json.loads(text)["loss"] is None
