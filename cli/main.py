"""Command line entry point for descentlab training runs."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Iterable

from descentlab.training import pipelines


def _format_result(result) -> str:
    payload = {
        "steps": result.steps,
        "snapshots": result.snapshots_path,
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
    }
    if getattr(result, "summary_path", ""):
        payload["summary"] = result.summary_path
    if getattr(result, "surface_path", ""):
        payload["loss_grid"] = result.surface_path
    return json.dumps(payload, sort_keys=True)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="default",
        help="Preset configuration to execute",
    )
    parser.add_argument(
        "--config", type=Path, help="Optional JSON/YAML config override"
    )
    parser.add_argument(
        "--enable-plots", action="store_true", help="Write loss and contour plots"
    )
    parser.add_argument(
        "--seed", type=int, help="Seed for the synthetic dataset builder"
    )
    parser.add_argument("--lr", type=float, help="Override the learning rate")
    parser.add_argument("--steps", type=int, help="Override the number of steps")
    parser.add_argument("--run-dir", type=Path, help="Directory for run artifacts")
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    parser.add_argument(
        "--generate-cases",
        type=Path,
        metavar="DIR",
        help="Run every case preset into DIR and write a case manifest",
    )
    return parser.parse_args(argv)


def _load_override(path: Path) -> dict:
    text = path.read_text()
    if path.suffix in {".yml", ".yaml"}:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("PyYAML is required to load YAML configs") from exc
        return yaml.safe_load(text) or {}
    return json.loads(text)


def _merge(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _merge(dict(base[key]), value)
        else:
            base[key] = value
    return base


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)

    if args.list_presets:
        for name, cfg in sorted(pipelines.presets().items()):
            title = cfg.get("meta", {}).get("title", "")
            print(f"{name:28s} {title}".rstrip())
        raise SystemExit(0)

    if args.generate_cases:
        print(pipelines.generate_cases(args.generate_cases))
        return

    config = json.loads(json.dumps(pipelines.load_preset(args.preset)))

    if args.config:
        override = _load_override(args.config)
        if {"data", "model", "train"} <= set(override.keys()):
            config = json.loads(json.dumps(override))
        else:
            config = _merge(config, override)

    train_cfg = config.setdefault("train", {})
    if args.enable_plots:
        train_cfg["enable_plots"] = True
    if args.lr is not None:
        train_cfg["lr"] = float(args.lr)
    if args.steps is not None:
        train_cfg["steps"] = int(args.steps)
    if args.run_dir is not None:
        train_cfg["run_dir"] = str(args.run_dir)
    if args.seed is not None:
        data_cfg = config.setdefault("data", {})
        if data_cfg.get("name") == "records":
            raise SystemExit("--seed only applies to synthetic datasets")
        data_cfg.setdefault("options", {})["seed"] = int(args.seed)

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    result = pipelines.run_pipeline(config)

    if isinstance(result, list):
        for item in result:
            print(_format_result(item))
    else:
        print(_format_result(result))


if __name__ == "__main__":
    main()
