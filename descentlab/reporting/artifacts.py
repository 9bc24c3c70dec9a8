"""Run artifact helpers: manifests and JSON documents."""

from __future__ import annotations

import json
import platform
import subprocess
import math
import time
from pathlib import Path
from typing import Any, Mapping


def git_sha() -> str:
    try:
        out = subprocess.check_output(["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL)
        return out.decode().strip()
    except (OSError, subprocess.CalledProcessError):  # pragma: no cover - git may be unavailable
        return "unknown"


def json_safe(payload: Any) -> Any:
    """Replace NaN and infinities with ``None`` so the output is strict JSON."""

    if isinstance(payload, float):
        return payload if math.isfinite(payload) else None
    if isinstance(payload, Mapping):
        return {key: json_safe(value) for key, value in payload.items()}
    if isinstance(payload, (list, tuple)):
        return [json_safe(value) for value in payload]
    return payload


def write_json(
    path: str | Path, payload: Any, *, indent: int | None = 2, sort_keys: bool = False
) -> str:
    """Write ``payload`` as strict JSON, creating parent directories."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(json_safe(payload), indent=indent, sort_keys=sort_keys, allow_nan=False)
    )
    return str(path)


def write_manifest(
    path: str | Path,
    *,
    config: Mapping[str, object],
    dataset_provenance: Mapping[str, object],
    artifacts: Mapping[str, str] | None = None,
) -> str:
    """Write a manifest JSON file capturing reproducibility metadata."""

    manifest = {
        "git_sha": git_sha(),
        "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "config": config,
        "dataset": dict(dataset_provenance),
        "artifacts": dict(artifacts or {}),
        "environment": {"python": platform.python_version()},
    }
    return write_json(path, manifest)


__all__ = ["git_sha", "json_safe", "write_json", "write_manifest"]
