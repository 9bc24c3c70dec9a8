"""Deterministic full-batch gradient descent over a :class:`ModelVariant`."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Sequence, Tuple

import numpy as np

from ..core.types import (
    Array,
    DataPoint,
    Dataset,
    PointSnapshot,
    Snapshot,
    TrainingRun,
    UpdateDetails,
)
from .losses import l2_norm
from .variants import ModelVariant, ParamValues, PointTrace


@dataclass
class SGDOptimizer:
    """Plain SGD: ``delta = -lr * grad`` and ``new = old + delta``."""

    lr: float

    def step(self, params: Array, grads: Array) -> Tuple[Array, Array]:
        deltas = -self.lr * grads
        return deltas, params + deltas


def _as_dataset(dataset: Dataset | Sequence[DataPoint]) -> Dataset:
    if isinstance(dataset, Dataset):
        return dataset
    return Dataset.from_points(dataset)


def _named(names: Sequence[str], values: Array) -> Dict[str, float]:
    return {name: float(value) for name, value in zip(names, values)}


def _plain(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.bool_):
        return bool(value)
    if isinstance(value, np.generic):
        return value.item()
    return value


class Trainer:
    """Replay gradient descent one step at a time, recording every step."""

    def __init__(
        self,
        variant: ModelVariant,
        optimizer: SGDOptimizer,
        callbacks: Sequence[object] | None = None,
    ) -> None:
        self.variant = variant
        self.optimizer = optimizer
        self.callbacks = list(callbacks or [])

    def run(
        self,
        dataset: Dataset | Sequence[DataPoint],
        steps: int,
        initial_params: ParamValues = None,
    ) -> TrainingRun:
        """Run ``steps`` updates and return the ordered snapshots.

        The dataset is not validated here; an empty one yields NaN losses and
        gradients. A zero or negative ``steps`` produces no snapshots.
        """

        data = _as_dataset(dataset)
        width = len(self.variant.input_names)
        if not len(data):
            data = Dataset(np.empty((0, width)), np.empty(0), self.variant.input_names)
        elif data.dim != width:
            raise ValueError(
                f"{self.variant.name} expects {width} inputs, dataset has {data.dim}"
            )

        names = self.variant.param_names
        start = self.variant.initial_params(initial_params)
        params = start.copy()
        snapshots = []
        for step in range(steps):
            snapshot, params = self._step(step, data, params)
            snapshots.append(snapshot)
            self._emit_step(step, snapshot)

        return TrainingRun(
            variant=self.variant.name,
            learning_rate=self.optimizer.lr,
            initial_params=_named(names, start),
            final_params=_named(names, params),
            snapshots=tuple(snapshots),
        )

    # ------------------------------------------------------------------
    # Internal helpers

    def _step(self, step: int, data: Dataset, params: Array) -> Tuple[Snapshot, Array]:
        variant = self.variant
        names = variant.param_names
        trace = variant.trace(params, data.inputs, data.targets)
        loss = float(variant.aggregate(trace.losses))
        grads = np.asarray(variant.aggregate(trace.grads), dtype=np.float64).reshape(len(names))
        diagnostics = {key: _plain(value) for key, value in variant.diagnostics(trace, grads).items()}
        deltas, new_params = self.optimizer.step(params, grads)

        snapshot = Snapshot(
            step=step,
            variant=variant.name,
            params=_named(names, params),
            grads=_named(names, grads),
            loss=loss,
            diagnostics=diagnostics,
            point_details=self._point_details(data, trace),
            update_components=UpdateDetails(
                old_params=_named(names, params),
                learning_rate=self.optimizer.lr,
                grads=_named(names, grads),
                deltas=_named(names, deltas),
                new_params=_named(names, new_params),
                step_size=l2_norm(deltas.tolist()),
            ),
            chain_rule_breakdown=variant.chain_rule_breakdown(trace, data.inputs),
        )
        return snapshot, new_params

    def _point_details(self, data: Dataset, trace: PointTrace) -> Tuple[PointSnapshot, ...]:
        names = self.variant.param_names
        details = []
        for idx in range(len(data)):
            details.append(
                PointSnapshot(
                    index=idx,
                    inputs=tuple(data.inputs[idx].tolist()),
                    target=float(data.targets[idx]),
                    prediction=float(trace.predictions[idx]),
                    loss=float(trace.losses[idx]),
                    grads=_named(names, trace.grads[idx]),
                    detail={key: _plain(values[idx]) for key, values in trace.detail.items()},
                )
            )
        return tuple(details)

    def _emit_step(self, step: int, snapshot: Snapshot) -> None:
        metrics = step_metrics(snapshot)
        for callback in self.callbacks:
            if hasattr(callback, "on_step"):
                callback.on_step(step, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(step, metrics)


def step_metrics(snapshot: Snapshot) -> Mapping[str, float]:
    """Flatten a snapshot into the scalar metrics sinks record."""

    metrics: Dict[str, float] = {"loss": snapshot.loss}
    metrics.update(snapshot.params)
    metrics.update({f"grad_{name}": value for name, value in snapshot.grads.items()})
    metrics["step_size"] = snapshot.update_components.step_size
    for key, value in snapshot.diagnostics.items():
        if isinstance(value, bool):
            metrics[key] = float(value)
        elif isinstance(value, (int, float)):
            metrics[key] = value
    return metrics


def train(
    dataset: Dataset | Sequence[DataPoint],
    variant: ModelVariant,
    learning_rate: float,
    steps: int,
    initial_params: ParamValues = None,
) -> Tuple[Snapshot, ...]:
    """Functional entry point returning only the snapshots."""

    trainer = Trainer(variant, SGDOptimizer(learning_rate))
    return trainer.run(dataset, steps, initial_params).snapshots


__all__ = ["SGDOptimizer", "Trainer", "step_metrics", "train"]
