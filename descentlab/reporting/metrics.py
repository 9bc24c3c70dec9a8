"""Per-step metric sinks attached to the trainer as callbacks."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import List, Mapping

from .artifacts import git_sha, json_safe


def _numeric(metrics: Mapping[str, object]) -> dict:
    return {
        k: float(v)
        for k, v in metrics.items()
        if isinstance(v, (int, float)) and not isinstance(v, bool)
    }


class JsonlSink:
    """Append one JSON object per training step."""

    def __init__(
        self,
        path: str | Path,
        *,
        variant: str = "",
        seed: int | None = None,
        sha: str | None = None,
    ) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self.variant = variant
        self.seed = seed
        self.sha = sha or git_sha()

    def on_step(self, step: int, metrics: Mapping[str, float]) -> None:
        record = {
            "step": int(step),
            "variant": self.variant,
            "seed": self.seed,
            "sha": self.sha,
        }
        record.update(_numeric(metrics))
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(json_safe(record), allow_nan=False) + "\n")

    __call__ = on_step


class CsvSink:
    """Write per-step metrics to CSV with a header fixed by the first row."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self._fieldnames: List[str] | None = None

    def on_step(self, step: int, metrics: Mapping[str, float]) -> None:
        row = {"step": int(step)}
        row.update(_numeric(metrics))
        if self._fieldnames is None:
            self._fieldnames = ["step"] + sorted(k for k in row if k != "step")
        with self.path.open("a", encoding="utf-8", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=self._fieldnames, extrasaction="ignore")
            if handle.tell() == 0:
                writer.writeheader()
            writer.writerow(row)

    __call__ = on_step


class ProgressPrinter:
    """Print a one-line progress report every ``every`` steps."""

    def __init__(self, every: int = 20) -> None:
        self.every = int(every)

    def on_step(self, step: int, metrics: Mapping[str, float]) -> None:
        if self.every <= 0 or step % self.every:
            return
        # parameter keys are w, w1..wk and b
        params = ", ".join(
            f"{k}={v:.4f}" for k, v in metrics.items() if k.startswith("w") or k == "b"
        )
        print(f"Step {step:3d}: {params}, loss={metrics.get('loss', float('nan')):.4f}")


__all__ = ["CsvSink", "JsonlSink", "ProgressPrinter"]
