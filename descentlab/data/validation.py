"""Numeric well-formedness checks run before a dataset reaches the trainer."""

from __future__ import annotations

import math
import numbers
from typing import Any, Iterable, Iterator, List, Mapping, Sequence, Tuple

import numpy as np

from ..core.types import (
    TARGET_FIELD,
    DataPoint,
    Dataset,
    default_input_names,
    record_inputs,
    record_target,
    resolve_input_names,
)

Fields = List[Tuple[str, Any]]


def is_finite_number(value: Any) -> bool:
    """Return ``True`` for real, finite, non-boolean numbers."""

    if isinstance(value, (bool, np.bool_)):
        return False
    if not isinstance(value, numbers.Real):
        return False
    try:
        return math.isfinite(float(value))
    except OverflowError:
        return False


def _dataset_fields(dataset: Dataset) -> Iterator[Fields]:
    for row, target in zip(dataset.inputs, dataset.targets):
        fields = list(zip(dataset.input_names, row))
        fields.append((TARGET_FIELD, target))
        yield fields


def _point_fields(point: Any, input_names: Sequence[str] | None) -> Fields | None:
    if isinstance(point, DataPoint):
        names = tuple(input_names or default_input_names(len(point.inputs)))
        fields = list(zip(names, point.inputs))
        fields.append((TARGET_FIELD, point.target))
        return fields
    if isinstance(point, Mapping):
        values, names = record_inputs(point, input_names)
        fields = list(zip(names, values))
        fields.append((TARGET_FIELD, record_target(point)))
        return fields
    return None


def validate_dataset(
    dataset: Dataset | Iterable[DataPoint] | Iterable[Mapping[str, Any]],
    *,
    input_names: Sequence[str] | None = None,
) -> str | None:
    """Return ``None`` for a usable dataset or a diagnostic for the first problem.

    The dataset must be non-empty and, scanning points in order and each
    point's inputs before its target, every value must be a finite number.
    The diagnostic names the point index and the field. Field names come
    from ``input_names`` or the first record and apply to every record, so a
    record missing one of them is reported. Problems are reported as a value
    rather than raised so callers can show them next to the data.
    """

    if isinstance(dataset, Dataset):
        if len(dataset) == 0:
            return "Dataset is empty"
        return _first_invalid(enumerate(_dataset_fields(dataset)))

    points = list(dataset)
    if not points:
        return "Dataset is empty"
    names = resolve_input_names(points, input_names) or None
    for idx, point in enumerate(points):
        fields = _point_fields(point, names)
        if fields is None:
            return f"Point {idx} has unsupported type {type(point).__name__}"
        problem = _first_invalid([(idx, fields)])
        if problem is not None:
            return problem
    return None


def _first_invalid(rows: Iterable[Tuple[int, Fields]]) -> str | None:
    for idx, fields in rows:
        for name, value in fields:
            if not is_finite_number(value):
                return f"Point {idx} has invalid {name} value: {value}"
    return None


__all__ = ["is_finite_number", "validate_dataset"]
