"""Deterministic run summarisation helpers."""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Iterable, List, Mapping, Sequence

import numpy as np

from ..core.types import TrainingRun
from .artifacts import write_json

_SKIP_KEYS = {"step", "seed"}


def _area(y: np.ndarray, x: np.ndarray) -> float:
    trapezoid = getattr(np, "trapezoid", None)
    if callable(trapezoid):
        return float(trapezoid(y, x))
    return float(np.trapz(y, x))


def compute_auc(points: Sequence[float]) -> float:
    """Return the area-under-curve of ``points`` along an implicit step axis."""

    if not points:
        return 0.0
    y = np.asarray(points, dtype=np.float64)
    x = np.arange(len(points), dtype=np.float64)
    return _area(y, x)


def _extract_numeric(records: Iterable[Mapping[str, object]]) -> Mapping[str, List[float]]:
    metrics: dict[str, list[float]] = {}
    for record in records:
        for key, value in record.items():
            if key in _SKIP_KEYS or isinstance(value, bool):
                continue
            if isinstance(value, (int, float)):
                metrics.setdefault(key, []).append(float(value))
    return metrics


def summarize_records(records: Sequence[Mapping[str, object]], tail: int = 32) -> dict:
    """Min/max/mean/last and tail AUC for every numeric metric in ``records``."""

    metrics = _extract_numeric(records)
    tail_window = min(tail, len(records)) if records else 0
    summary_metrics: dict[str, Mapping[str, float]] = {}
    for name, values in metrics.items():
        arr = np.asarray(values, dtype=np.float64)
        tail_arr = arr[-tail_window:] if tail_window else arr[:0]
        summary_metrics[name] = {
            "min": float(np.min(arr)),
            "max": float(np.max(arr)),
            "mean": float(np.mean(arr)),
            "last": float(arr[-1]),
            "tail_auc": compute_auc(tail_arr.tolist()) if tail_window else 0.0,
        }
    return {
        "version": 1,
        "records": len(records),
        "tail_window": tail_window,
        "metrics": summary_metrics,
    }


def summarize_run(run: TrainingRun) -> dict:
    """Outcome of a run: start/end loss and whether it diverged or saturated."""

    losses = run.losses
    if not len(losses):
        return {"steps": 0, "initial_loss": None, "final_loss": None, "diverged": False}
    initial, final = float(losses[0]), float(losses[-1])
    outcome = {
        "steps": len(run),
        "initial_loss": initial,
        "final_loss": final,
        "best_loss": float(np.nanmin(losses)) if np.isfinite(losses).any() else None,
        "loss_reduction": initial - final,
        "diverged": not math.isfinite(final) or final > initial,
        "final_params": dict(run.final_params),
    }
    flags = [snap.diagnostics.get("in_saturation_zone") for snap in run]
    if any(flag is not None for flag in flags):
        outcome["saturated_steps"] = sum(1 for flag in flags if flag)
    return outcome


def write_summary(
    metrics_jsonl: str | Path,
    out_summary_json: str | Path,
    *,
    tail: int = 32,
    run: TrainingRun | None = None,
) -> str:
    """Write a deterministic summary for ``metrics_jsonl``."""

    metrics_path = Path(metrics_jsonl)
    out_path = Path(out_summary_json)

    records: list[Mapping[str, object]] = []
    if metrics_path.exists():
        for line in metrics_path.read_text().splitlines():
            line = line.strip()
            if not line:
                continue
            records.append(json.loads(line))

    summary = summarize_records(records, tail)
    if run is not None:
        summary["run"] = summarize_run(run)
    return write_json(out_path, summary, sort_keys=True)


__all__ = ["compute_auc", "summarize_records", "summarize_run", "write_summary"]
