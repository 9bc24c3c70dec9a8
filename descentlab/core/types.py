"""Core record types for descentlab.

Every record produced by the engine is a frozen dataclass holding plain Python
floats, tuples and read-only mappings, so completed snapshots can be shared
between callers without copying.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Sequence, Tuple

import numpy as np

Array = np.ndarray

TARGET_FIELD = "y_true"


def default_input_names(dim: int) -> Tuple[str, ...]:
    """Return ``("x",)`` for one input and ``("x1", ..., "xk")`` otherwise."""

    if dim == 1:
        return ("x",)
    return tuple(f"x{idx + 1}" for idx in range(dim))


def _readonly(values: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(values))


def _freeze(instance: object, *names: str) -> None:
    for name in names:
        object.__setattr__(instance, name, _readonly(getattr(instance, name)))


@dataclass(frozen=True)
class DataPoint:
    """A single labelled training example."""

    inputs: Tuple[float, ...]
    target: float


@dataclass(frozen=True, eq=False)
class Dataset:
    """An ordered, read-only collection of training examples.

    Attributes
    ----------
    inputs:
        ``float64`` array of shape ``(n, d)``.
    targets:
        ``float64`` array of shape ``(n,)``.
    input_names:
        Field names of the input columns, ``("x",)`` for one input and
        ``("x1", "x2", ...)`` otherwise unless given explicitly.
    """

    inputs: Array
    targets: Array
    input_names: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        inputs = np.array(self.inputs, dtype=np.float64)
        if inputs.ndim != 2:
            inputs = inputs.reshape(-1, len(self.input_names) or 1)
        targets = np.array(self.targets, dtype=np.float64).reshape(-1)
        if inputs.shape[0] != targets.shape[0]:
            raise ValueError(
                f"inputs have {inputs.shape[0]} rows but targets have {targets.shape[0]}"
            )
        names = tuple(self.input_names) or default_input_names(inputs.shape[1])
        if len(names) != inputs.shape[1]:
            raise ValueError(
                f"{len(names)} input names given for {inputs.shape[1]} input columns"
            )
        inputs.setflags(write=False)
        targets.setflags(write=False)
        object.__setattr__(self, "inputs", inputs)
        object.__setattr__(self, "targets", targets)
        object.__setattr__(self, "input_names", names)

    def __len__(self) -> int:
        return int(self.targets.shape[0])

    def __iter__(self) -> Iterator[DataPoint]:
        for idx in range(len(self)):
            yield self.point(idx)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dataset):
            return NotImplemented
        return (
            self.input_names == other.input_names
            and np.array_equal(self.inputs, other.inputs, equal_nan=True)
            and np.array_equal(self.targets, other.targets, equal_nan=True)
        )

    __hash__ = None  # type: ignore[assignment]

    @property
    def dim(self) -> int:
        return int(self.inputs.shape[1])

    def point(self, idx: int) -> DataPoint:
        return DataPoint(
            inputs=tuple(self.inputs[idx].tolist()), target=float(self.targets[idx])
        )

    @classmethod
    def from_points(
        cls, points: Iterable[DataPoint], input_names: Sequence[str] | None = None
    ) -> "Dataset":
        points = list(points)
        names = tuple(input_names or ())
        if points:
            inputs = np.array([p.inputs for p in points], dtype=np.float64)
        else:
            inputs = np.empty((0, len(names) or 1), dtype=np.float64)
        targets = np.array([p.target for p in points], dtype=np.float64)
        return cls(inputs=inputs, targets=targets, input_names=names)

    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, Any]],
        input_names: Sequence[str] | None = None,
    ) -> "Dataset":
        """Build a dataset from mappings such as ``{"x1": .., "x2": .., "y_true": ..}``.

        Neuron-style records ``{"x": [x1, x2], "y": ..}`` are accepted too.
        """

        records = list(records)
        names = resolve_input_names(records, input_names)
        points = []
        for record in records:
            values, _ = record_inputs(record, names or None)
            points.append(DataPoint(inputs=tuple(values), target=record_target(record)))
        return cls.from_points(points, input_names=names or None)

    def to_records(self) -> List[Dict[str, float]]:
        records = []
        for row, target in zip(self.inputs.tolist(), self.targets.tolist()):
            record = dict(zip(self.input_names, row))
            record[TARGET_FIELD] = target
            records.append(record)
        return records


def record_inputs(
    record: Mapping[str, Any], input_names: Sequence[str] | None = None
) -> Tuple[List[Any], Tuple[str, ...]]:
    """Extract the raw input values and their field names from ``record``.

    With explicit ``input_names`` every name yields a value; fields the record
    lacks come back as ``None``.
    """

    x = record.get("x")
    if isinstance(x, (list, tuple, np.ndarray)):
        values = list(x)
        names = tuple(input_names or default_input_names(len(values)))
        return [values[k] if k < len(values) else None for k in range(len(names))], names
    if input_names:
        return [record.get(name) for name in input_names], tuple(input_names)
    if "x" in record:
        return [x], ("x",)
    names = []
    idx = 1
    while f"x{idx}" in record:
        names.append(f"x{idx}")
        idx += 1
    return [record[name] for name in names], tuple(names)


def resolve_input_names(
    records: Sequence[Any], input_names: Sequence[str] | None = None
) -> Tuple[str, ...]:
    """Input field names shared by every record, taken from the first one."""

    if input_names:
        return tuple(input_names)
    if records and isinstance(records[0], Mapping):
        return record_inputs(records[0])[1]
    return ()


def record_target(record: Mapping[str, Any]) -> Any:
    if TARGET_FIELD in record:
        return record[TARGET_FIELD]
    return record.get("y")


@dataclass(frozen=True)
class PointSnapshot:
    """Per-example diagnostics for one training step."""

    index: int
    inputs: Tuple[float, ...]
    target: float
    prediction: float
    loss: float
    grads: Mapping[str, float]
    detail: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _freeze(self, "grads", "detail")


@dataclass(frozen=True)
class UpdateDetails:
    """Arithmetic trace of one parameter update."""

    old_params: Mapping[str, float]
    learning_rate: float
    grads: Mapping[str, float]
    deltas: Mapping[str, float]
    new_params: Mapping[str, float]
    step_size: float

    def __post_init__(self) -> None:
        _freeze(self, "old_params", "grads", "deltas", "new_params")


@dataclass(frozen=True)
class ChainRuleComponent:
    """``dL/da * da/dz * dz/dparam`` for one neuron parameter."""

    param_name: str
    dL_da: float
    da_dz: float
    dz_dparam: float
    dL_dparam: float


@dataclass(frozen=True)
class Snapshot:
    """Complete record of one gradient-descent step.

    ``params`` hold the values *before* the update; the values after it live
    in ``update_components.new_params``.
    """

    step: int
    variant: str
    params: Mapping[str, float]
    grads: Mapping[str, float]
    loss: float
    diagnostics: Mapping[str, Any]
    point_details: Tuple[PointSnapshot, ...]
    update_components: UpdateDetails
    chain_rule_breakdown: Tuple[ChainRuleComponent, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, "params", "grads", "diagnostics")
        object.__setattr__(self, "point_details", tuple(self.point_details))
        object.__setattr__(self, "chain_rule_breakdown", tuple(self.chain_rule_breakdown))


@dataclass(frozen=True)
class TrainingRun:
    """Ordered snapshots of a run together with its start and end parameters."""

    variant: str
    learning_rate: float
    initial_params: Mapping[str, float]
    final_params: Mapping[str, float]
    snapshots: Tuple[Snapshot, ...]

    def __post_init__(self) -> None:
        _freeze(self, "initial_params", "final_params")
        object.__setattr__(self, "snapshots", tuple(self.snapshots))

    def __len__(self) -> int:
        return len(self.snapshots)

    def __iter__(self) -> Iterator[Snapshot]:
        return iter(self.snapshots)

    def __getitem__(self, idx: int) -> Snapshot:
        return self.snapshots[idx]

    @property
    def losses(self) -> Array:
        return np.array([snap.loss for snap in self.snapshots], dtype=np.float64)

    def trajectory(self, name: str) -> Array:
        """Pre-update values of parameter ``name`` across all steps."""

        return np.array([snap.params[name] for snap in self.snapshots], dtype=np.float64)


@dataclass(frozen=True)
class LossGrid:
    """Aggregate loss sampled on a uniform grid over two parameter axes.

    ``points`` is ordered axis-1 outer, axis-2 inner: the triple for node
    ``(i, j)`` sits at position ``i * resolution + j``.
    """

    axes: Tuple[str, str]
    mins: Tuple[float, float]
    maxs: Tuple[float, float]
    resolution: int
    points: Tuple[Tuple[float, float, float], ...]

    def __len__(self) -> int:
        return len(self.points)

    def as_array(self) -> Array:
        losses = np.array([p[2] for p in self.points], dtype=np.float64)
        return losses.reshape(self.resolution, self.resolution)

    def axis_values(self, axis: int) -> Array:
        r = self.resolution
        if axis == 0:
            return np.array([self.points[i * r][0] for i in range(r)], dtype=np.float64)
        return np.array([self.points[j][1] for j in range(r)], dtype=np.float64)


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`descentlab.training.pipelines.run_pipeline`."""

    steps: int
    snapshots_path: str
    metrics_path: str
    manifest_path: str
    summary_path: str = ""
    surface_path: str = ""
