import json
from pathlib import Path

import numpy as np
import pytest

from descentlab.core.types import DataPoint, Dataset
from descentlab.data import make_linear2d, make_neuron
from descentlab.reporting.artifacts import write_json
from descentlab.reporting.records import (
    dataset_record,
    loss_grid_record,
    run_record,
    snapshot_record,
)
from descentlab.reporting.summary import compute_auc, summarize_run
from descentlab.training.surface import compute_loss_grid
from descentlab.training.trainer import SGDOptimizer, Trainer, train
from descentlab.training.variants import Linear1D, Linear2D, Neuron


def test_linear1d_record_shape():
    data = Dataset.from_points([DataPoint((1.0,), 2.0), DataPoint((2.0,), 4.0)])
    (snap,) = train(data, Linear1D(), 0.1, 1)
    record = snapshot_record(snap)
    assert set(record) == {"step", "w", "grad_w", "loss", "point_details", "update_components"}
    assert record["point_details"][1] == {
        "x": 2.0,
        "y_true": 4.0,
        "y_pred": 0.0,
        "point_loss": 16.0,
        "point_grad": -16.0,
    }
    assert record["update_components"] == {
        "w_old": 0.0,
        "lr": 0.1,
        "grad_w": -10.0,
        "delta_w": 1.0,
        "w_new": 1.0,
    }


def test_linear2d_record_shape():
    data = make_linear2d(num_points=4, seed=2)
    snap = train(data, Linear2D(), 0.01, 2)[1]
    record = snapshot_record(snap)
    assert record["step"] == 1
    assert {"w1", "w2", "gradient_magnitude", "gradient_direction"} <= set(record)
    assert set(record["point_details"][0]) == {
        "x1", "x2", "y_true", "y_pred", "point_loss", "grad_w1", "grad_w2"
    }
    assert record["update_components"]["w1_old"] == record["w1"]


def test_neuron_record_shape_is_json_serialisable():
    data = make_neuron(num_points=6, seed=101)
    run = Trainer(Neuron("relu"), SGDOptimizer(0.1)).run(data, 3, [0.1, 0.1, 0.5])
    record = snapshot_record(run[0])
    assert record["params"] == {"w": [0.1, 0.1], "b": 0.5}
    assert set(record["grads"]) == {"grad_w", "grad_b"}
    assert record["activation"] == "relu"
    point = record["point_details"][0]
    assert point["index"] == 0
    assert len(point["x"]) == 2 and len(point["dz_dw"]) == 2 and len(point["dL_dw"]) == 2
    assert isinstance(point["in_saturation"], bool)
    names = [c["param_name"] for c in record["chain_rule_breakdown"]["components"]]
    assert names == ["w1", "w2", "b"]
    assert record["update_components"]["step_size"] == pytest.approx(
        float(np.hypot(np.hypot(*record["update_components"]["update_w"]),
                       record["update_components"]["update_b"]))
    )

    bundle = run_record(run, data, case_id="demo")
    text = json.dumps(bundle)
    assert json.loads(text)["case_id"] == "demo"
    assert bundle["dataset"][0].keys() == {"x", "y"}
    assert bundle["final_params"]["b"] == run.final_params["b"]


def test_loss_grid_record_uses_axis_names():
    data = make_linear2d(num_points=3, seed=4)
    grid = compute_loss_grid(data, Linear2D(), bounds=[[-1, 4], [-1, 4]], resolution=2)
    record = loss_grid_record(grid)
    assert record["w1_min"] == -1.0 and record["w2_max"] == 4.0
    assert record["resolution"] == 2
    assert record["points"][1].keys() == {"w1", "w2", "loss"}


def test_dataset_record_for_linear_variants():
    data = make_linear2d(num_points=2, seed=4)
    rows = dataset_record(data, "linear2d")
    assert rows[0].keys() == {"x1", "x2", "y_true"}


def test_summarize_run_flags_divergence():
    data = Dataset.from_points([DataPoint((1.0,), 2.0), DataPoint((2.0,), 4.0)])
    calm = Trainer(Linear1D(), SGDOptimizer(0.05)).run(data, 10)
    wild = Trainer(Linear1D(), SGDOptimizer(1.0)).run(data, 10)
    assert summarize_run(calm)["diverged"] is False
    assert summarize_run(wild)["diverged"] is True
    assert compute_auc([1.0, 1.0, 1.0]) == pytest.approx(2.0)


def _strict(text):
    def reject(token):
        raise ValueError(f"non-standard JSON token {token}")

    return json.loads(text, parse_constant=reject)


def test_non_finite_values_are_written_as_null(tmp_path):
    empty = Dataset.from_points([], input_names=("x1", "x2"))
    run = Trainer(Linear2D(), SGDOptimizer(0.1)).run(empty, 2)
    path = write_json(tmp_path / "snapshots.json", run_record(run, empty))
    record = _strict(Path(path).read_text())
    first = record["snapshots"][0]
    assert first["loss"] is None
    assert first["grad_w1"] is None
    assert first["w1"] == 0.0

    path = write_json(tmp_path / "values.json", {"values": (1.0, float("inf"), -float("inf"))})
    assert _strict(Path(path).read_text()) == {"values": [1.0, None, None]}
