"""Plain-JSON renderings of engine records.

The presentation layer diffs against trajectories stored in these shapes, so
field names here are part of the external interface.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Sequence

from ..core.types import Dataset, LossGrid, PointSnapshot, Snapshot, TrainingRun

Record = Dict[str, Any]


def _linear1d_point(point: PointSnapshot) -> Record:
    return {
        "x": point.inputs[0],
        "y_true": point.target,
        "y_pred": point.prediction,
        "point_loss": point.loss,
        "point_grad": point.grads["w"],
    }


def _linear1d_record(snapshot: Snapshot) -> Record:
    update = snapshot.update_components
    return {
        "step": snapshot.step,
        "w": snapshot.params["w"],
        "grad_w": snapshot.grads["w"],
        "loss": snapshot.loss,
        "point_details": [_linear1d_point(p) for p in snapshot.point_details],
        "update_components": {
            "w_old": update.old_params["w"],
            "lr": update.learning_rate,
            "grad_w": update.grads["w"],
            "delta_w": update.deltas["w"],
            "w_new": update.new_params["w"],
        },
    }


def _linear2d_point(point: PointSnapshot) -> Record:
    return {
        "x1": point.inputs[0],
        "x2": point.inputs[1],
        "y_true": point.target,
        "y_pred": point.prediction,
        "point_loss": point.loss,
        "grad_w1": point.grads["w1"],
        "grad_w2": point.grads["w2"],
    }


def _linear2d_record(snapshot: Snapshot) -> Record:
    update = snapshot.update_components
    return {
        "step": snapshot.step,
        "w1": snapshot.params["w1"],
        "w2": snapshot.params["w2"],
        "grad_w1": snapshot.grads["w1"],
        "grad_w2": snapshot.grads["w2"],
        "loss": snapshot.loss,
        "gradient_magnitude": snapshot.diagnostics["gradient_magnitude"],
        "gradient_direction": snapshot.diagnostics["gradient_direction"],
        "point_details": [_linear2d_point(p) for p in snapshot.point_details],
        "update_components": {
            "w1_old": update.old_params["w1"],
            "w2_old": update.old_params["w2"],
            "lr": update.learning_rate,
            "grad_w1": update.grads["w1"],
            "grad_w2": update.grads["w2"],
            "delta_w1": update.deltas["w1"],
            "delta_w2": update.deltas["w2"],
            "w1_new": update.new_params["w1"],
            "w2_new": update.new_params["w2"],
        },
    }


def _weights(values: Mapping[str, float]) -> List[float]:
    return [value for name, value in values.items() if name != "b"]


def _neuron_params(values: Mapping[str, float]) -> Record:
    return {"w": _weights(values), "b": values["b"]}


def _neuron_point(point: PointSnapshot) -> Record:
    detail = point.detail
    return {
        "index": point.index,
        "x": list(point.inputs),
        "y_true": point.target,
        "z": detail["z"],
        "a": detail["a"],
        "loss": point.loss,
        "dL_da": detail["dL_da"],
        "da_dz": detail["da_dz"],
        "dL_dz": detail["dL_dz"],
        "dz_dw": list(detail["dz_dw"]),
        "dL_dw": _weights(point.grads),
        "dL_db": point.grads["b"],
        "in_saturation": detail["in_saturation"],
    }


def _neuron_record(snapshot: Snapshot) -> Record:
    diag = snapshot.diagnostics
    update = snapshot.update_components
    return {
        "step": snapshot.step,
        "params": _neuron_params(snapshot.params),
        "grads": {"grad_w": _weights(snapshot.grads), "grad_b": snapshot.grads["b"]},
        "z": diag["z"],
        "a": diag["a"],
        "dL_dz": diag["dL_dz"],
        "dL_da": diag["dL_da"],
        "local_derivative": diag["local_derivative"],
        "activation": diag["activation"],
        "in_saturation_zone": diag["in_saturation_zone"],
        "loss": snapshot.loss,
        "point_details": [_neuron_point(p) for p in snapshot.point_details],
        "update_components": {
            "learning_rate": update.learning_rate,
            "gradient_magnitude": diag["gradient_magnitude"],
            "update_w": _weights(update.deltas),
            "update_b": update.deltas["b"],
            "step_size": update.step_size,
        },
        "chain_rule_breakdown": {
            "components": [
                {
                    "param_name": c.param_name,
                    "dL_da": c.dL_da,
                    "da_dz": c.da_dz,
                    "dz_dparam": c.dz_dparam,
                    "dL_dparam": c.dL_dparam,
                }
                for c in snapshot.chain_rule_breakdown
            ]
        },
    }


_FORMATTERS: Dict[str, Callable[[Snapshot], Record]] = {
    "linear1d": _linear1d_record,
    "linear2d": _linear2d_record,
    "neuron": _neuron_record,
}


def snapshot_record(snapshot: Snapshot) -> Record:
    """Render ``snapshot`` in the reference JSON shape of its variant."""

    try:
        formatter = _FORMATTERS[snapshot.variant]
    except KeyError:
        available = ", ".join(sorted(_FORMATTERS))
        raise KeyError(
            f"No record format for variant {snapshot.variant!r}. Available: {available}"
        ) from None
    return formatter(snapshot)


def snapshot_records(snapshots: Sequence[Snapshot]) -> List[Record]:
    return [snapshot_record(snapshot) for snapshot in snapshots]


def dataset_record(dataset: Dataset, variant: str | None = None) -> List[Record]:
    """Neuron datasets use ``{"x": [...], "y": ..}``; linear ones use named inputs."""

    if variant == "neuron":
        return [
            {"x": list(point.inputs), "y": point.target} for point in dataset
        ]
    return dataset.to_records()


def loss_grid_record(grid: LossGrid) -> Record:
    a1, a2 = grid.axes
    return {
        f"{a1}_min": grid.mins[0],
        f"{a1}_max": grid.maxs[0],
        f"{a2}_min": grid.mins[1],
        f"{a2}_max": grid.maxs[1],
        "resolution": grid.resolution,
        "points": [{a1: p1, a2: p2, "loss": loss} for p1, p2, loss in grid.points],
    }


def run_record(run: TrainingRun, dataset: Dataset | None = None, **extra: Any) -> Record:
    """Bundle a run the way precomputed cases are stored."""

    if run.variant == "neuron":
        init: Any = _neuron_params(run.initial_params)
        final: Any = _neuron_params(run.final_params)
    else:
        init, final = dict(run.initial_params), dict(run.final_params)
    record: Record = dict(extra)
    record.update(
        {
            "variant": run.variant,
            "learning_rate": run.learning_rate,
            "num_steps": len(run),
            "init_params": init,
            "final_params": final,
        }
    )
    if dataset is not None:
        record["dataset"] = dataset_record(dataset, run.variant)
    record["snapshots"] = snapshot_records(run.snapshots)
    return record


__all__ = [
    "dataset_record",
    "loss_grid_record",
    "run_record",
    "snapshot_record",
    "snapshot_records",
]
