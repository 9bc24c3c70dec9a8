import json
from pathlib import Path

import pytest

from cli.main import main


def test_cli_default_preset(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    main(["--run-dir", "runs/default", "--steps", "10"])
    run_dir = Path("runs/default")
    assert (run_dir / "metrics.jsonl").exists()
    assert (run_dir / "manifest.json").exists()
    payload = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert payload["steps"] == 10
    snapshots = json.loads((run_dir / "snapshots.json").read_text())
    assert snapshots["dataset"][0] == {"x": 1.0, "y_true": 2.1}


def test_cli_overrides_and_dump_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    override = tmp_path / "override.json"
    override.write_text(json.dumps({"train": {"log_every": 0}}))
    main(
        [
            "--preset",
            "lr-optimal",
            "--config",
            str(override),
            "--seed",
            "7",
            "--lr",
            "0.02",
            "--steps",
            "5",
            "--run-dir",
            "out",
            "--dump-config",
            "resolved.json",
        ]
    )
    resolved = json.loads(Path("resolved.json").read_text())
    assert resolved["data"]["options"]["seed"] == 7
    assert resolved["train"]["lr"] == 0.02
    assert resolved["train"]["log_every"] == 0
    assert resolved["surface"]["resolution"] == 50
    assert Path("out/loss_grid.json").exists()


def test_cli_yaml_override(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    override = tmp_path / "override.yaml"
    override.write_text("model:\n  activation: tanh\ntrain:\n  steps: 4\n  log_every: 0\n")
    main(["--preset", "sigmoid-optimal", "--config", str(override), "--run-dir", "tanh"])
    record = json.loads(Path("tanh/snapshots.json").read_text())
    assert record["activation"] == "tanh"
    assert len(record["snapshots"]) == 4


def test_cli_plots(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    override = tmp_path / "short.json"
    override.write_text(json.dumps({"train": {"log_every": 0}, "surface": {"resolution": 10}}))
    main(
        [
            "--preset",
            "saddle-point",
            "--config",
            str(override),
            "--steps",
            "15",
            "--run-dir",
            "plots",
            "--enable-plots",
        ]
    )
    assert Path("plots/loss.png").exists()
    assert Path("plots/contour.png").exists()


def test_cli_list_presets(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--list-presets"])
    assert excinfo.value.code == 0
    out = capsys.readouterr().out
    assert "perfect-start" in out
    assert "Optimal Learning Rate" in out
    assert "quick-neuron-tanh" in out


def test_cli_seed_rejected_for_fixed_dataset(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(SystemExit, match="synthetic"):
        main(["--seed", "3"])
