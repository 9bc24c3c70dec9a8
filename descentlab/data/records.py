"""User-supplied datasets from inline records, JSON files or CSV files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Mapping, Sequence

import pandas as pd

from ..core.types import TARGET_FIELD, Dataset
from .registry import DatasetSpec, register_dataset
from .validation import validate_dataset


def _load_json(path: Path) -> List[Mapping[str, Any]]:
    payload = json.loads(path.read_text())
    if isinstance(payload, Mapping):
        payload = payload.get("dataset", payload.get("data", payload.get("points")))
    if not isinstance(payload, list):
        raise TypeError(f"{path.name} must contain a list of point records")
    return payload


def _load_csv(path: Path, target_col: str) -> List[Mapping[str, Any]]:
    df = pd.read_csv(path)
    if target_col not in df.columns:
        raise KeyError(f"Target column {target_col!r} not found in CSV")
    df = df.rename(columns={target_col: TARGET_FIELD})
    return df.to_dict(orient="records")


def load_records(
    points: Sequence[Mapping[str, Any]] | None = None,
    path: str | Path | None = None,
    *,
    input_names: Sequence[str] | None = None,
    target_col: str = TARGET_FIELD,
) -> Dataset:
    """Load a custom dataset and reject it if it fails validation."""

    if points is None and path is None:
        raise TypeError("load_records requires either points or path")
    if points is None:
        path = Path(path)  # type: ignore[arg-type]
        if path.suffix.lower() == ".csv":
            points = _load_csv(path, target_col)
        else:
            points = _load_json(path)

    problem = validate_dataset(points, input_names=input_names)
    if problem is not None:
        raise ValueError(f"Invalid dataset: {problem}")
    return Dataset.from_records(points, input_names=input_names)


@register_dataset("records")
def _records_factory(
    *,
    points: Sequence[Mapping[str, Any]] | None = None,
    path: str | Path | None = None,
    input_names: Sequence[str] | None = None,
    target_col: str = TARGET_FIELD,
    variant: str | None = None,
) -> DatasetSpec:
    dataset = load_records(points, path, input_names=input_names, target_col=target_col)
    provenance = {
        "type": "records",
        "path": str(path) if path is not None else None,
        "num_points": len(dataset),
        "input_names": list(dataset.input_names),
    }
    if variant is None:
        variant = "linear1d" if dataset.dim == 1 else "linear2d"
    return DatasetSpec(name="records", dataset=dataset, provenance=provenance, variant=variant)


__all__ = ["load_records"]
