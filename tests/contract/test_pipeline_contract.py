import json
from pathlib import Path

import pytest

from descentlab.training import pipelines


def _config(run_dir, **train):
    cfg = {
        "data": {
            "name": "linear2d",
            "options": {"num_points": 12, "noise_level": 0.5, "seed": 42},
        },
        "model": {"variant": "linear2d", "init": [0.0, 0.0]},
        "train": {"lr": 0.01, "steps": 30, "run_dir": str(run_dir), "enable_plots": False},
        "surface": {"bounds": [[-1.0, 4.0], [-1.0, 4.0]], "resolution": 6},
    }
    cfg["train"].update(train)
    return cfg


def test_pipeline_produces_artifacts(tmp_path):
    result = pipelines.run_pipeline(_config(tmp_path / "run"))
    run_dir = tmp_path / "run"
    assert result.steps == 30
    for name in (
        "dataset.json",
        "snapshots.json",
        "metrics.jsonl",
        "metrics.csv",
        "manifest.json",
        "summary.json",
        "loss_grid.json",
    ):
        assert (run_dir / name).exists(), name

    snapshots = json.loads(Path(result.snapshots_path).read_text())
    assert snapshots["variant"] == "linear2d"
    assert len(snapshots["snapshots"]) == 30
    assert snapshots["snapshots"][0]["w1"] == 0.0

    grid = json.loads(Path(result.surface_path).read_text())
    assert grid["resolution"] == 6
    assert len(grid["points"]) == 36

    manifest = json.loads(Path(result.manifest_path).read_text())
    assert manifest["dataset"]["seed"] == 42
    assert manifest["config"]["train"]["lr"] == 0.01
    assert "snapshots" in manifest["artifacts"]

    metrics = [json.loads(line) for line in Path(result.metrics_path).read_text().splitlines()]
    assert len(metrics) == 30
    assert metrics[0]["step"] == 0
    assert metrics[0]["seed"] == 42
    assert "sha" in metrics[0]
    assert all("loss" in entry for entry in metrics)

    summary = json.loads(Path(result.summary_path).read_text())
    assert summary["run"]["steps"] == 30
    assert summary["metrics"]["loss"]["last"] == pytest.approx(metrics[-1]["loss"])


def test_pipeline_determinism(tmp_path):
    first = pipelines.run_pipeline(_config(tmp_path / "a"))
    second = pipelines.run_pipeline(_config(tmp_path / "b"))
    assert Path(first.metrics_path).read_text() == Path(second.metrics_path).read_text()
    assert Path(first.snapshots_path).read_text() == Path(second.snapshots_path).read_text()
    assert Path(first.summary_path).read_bytes() == Path(second.summary_path).read_bytes()


def test_invalid_custom_dataset_is_rejected_before_training(tmp_path):
    cfg = {
        "data": {"name": "records", "options": {"points": []}},
        "model": {"variant": "linear1d"},
        "train": {"lr": 0.01, "steps": 5, "run_dir": str(tmp_path / "bad")},
    }
    with pytest.raises(ValueError, match="Invalid dataset: Dataset is empty"):
        pipelines.run_pipeline(cfg)


def test_presets_cover_case_library():
    names = set(pipelines.presets())
    for name in (
        "default",
        "perfect-start",
        "start-far-away",
        "lr-small",
        "zigzag-convergence",
        "sigmoid-vanishing",
        "lr-saturation-interaction",
    ):
        assert name in names
    preset = pipelines.load_preset("anisotropic-hard")
    assert preset["data"]["options"]["x2_max"] == 20.0
    assert preset["surface"]["resolution"] == 50
    with pytest.raises(KeyError, match="Available presets"):
        pipelines.load_preset("no-such-case")


def test_load_preset_returns_a_copy():
    preset = pipelines.load_preset("perfect-start")
    preset["train"]["lr"] = 99.0
    assert pipelines.load_preset("perfect-start")["train"]["lr"] == 0.001


def test_sweep_runs_each_activation(tmp_path):
    cfg = pipelines.load_preset("activation-sweep")
    cfg["train"].update({"steps": 3, "run_dir": str(tmp_path / "sweep"), "log_every": 0})
    results = pipelines.run_pipeline(cfg)
    assert [Path(r.snapshots_path).parent.name for r in results] == ["sigmoid", "relu", "tanh"]
    relu = json.loads(Path(results[1].snapshots_path).read_text())
    assert relu["activation"] == "relu"
    assert relu["snapshots"][0]["activation"] == "relu"
