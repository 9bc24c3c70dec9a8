"""Pipeline assembly: presets, single runs, sweeps and the case library."""

from __future__ import annotations

import json
import time
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from ..core.types import LossGrid, RunResult, TrainingRun
from ..data import registry
from ..data.validation import validate_dataset
from ..reporting.artifacts import write_json, write_manifest
from ..reporting.metrics import CsvSink, JsonlSink, ProgressPrinter
from ..reporting.plots import PlotAdapter, plot_loss_grid
from ..reporting.records import dataset_record, loss_grid_record, run_record
from ..reporting.summary import write_summary
from .surface import compute_loss_grid
from .trainer import SGDOptimizer, Trainer
from .variants import ModelVariant, get_variant

# Ten points near y = 2x, the dataset the walkthrough opens with.
_DEFAULT_POINTS = [
    {"x": 1.0, "y_true": 2.1},
    {"x": 2.0, "y_true": 3.9},
    {"x": 3.0, "y_true": 6.2},
    {"x": 4.0, "y_true": 7.8},
    {"x": 5.0, "y_true": 10.1},
    {"x": 6.0, "y_true": 11.9},
    {"x": 7.0, "y_true": 14.2},
    {"x": 8.0, "y_true": 15.8},
    {"x": 9.0, "y_true": 18.1},
    {"x": 10.0, "y_true": 19.9},
]

_SURFACE_2D = {"axes": ["w1", "w2"], "bounds": [[-1.0, 4.0], [-1.0, 4.0]], "resolution": 50}


def _meta(title: str, description: str, category: str, insights: Sequence[str]) -> dict:
    return {
        "title": title,
        "description": description,
        "category": category,
        "insights": list(insights),
    }


def _linear1d_case(
    meta: dict, *, noise: float, seed: int, init: float, lr: float, steps: int
) -> dict:
    return {
        "data": {
            "name": "linear1d",
            "options": {
                "num_points": 10,
                "x_min": 1.0,
                "x_max": 10.0,
                "true_slope": 2.0,
                "noise_level": noise,
                "seed": seed,
            },
        },
        "model": {"variant": "linear1d", "init": [init]},
        "train": {"lr": lr, "steps": steps, "enable_plots": False},
        "meta": meta,
    }


def _linear2d_case(
    meta: dict,
    *,
    x1: Sequence[float] = (0.0, 5.0),
    x2: Sequence[float] = (0.0, 5.0),
    true_w2: float = 1.5,
    noise: float = 0.5,
    init: Sequence[float] = (0.0, 0.0),
    lr: float,
    steps: int,
) -> dict:
    return {
        "data": {
            "name": "linear2d",
            "options": {
                "num_points": 20,
                "x1_min": x1[0],
                "x1_max": x1[1],
                "x2_min": x2[0],
                "x2_max": x2[1],
                "true_w1": 2.0,
                "true_w2": true_w2,
                "noise_level": noise,
                "seed": 42,
            },
        },
        "model": {"variant": "linear2d", "init": list(init)},
        "train": {"lr": lr, "steps": steps, "enable_plots": False},
        "surface": deepcopy(_SURFACE_2D),
        "meta": meta,
    }


def _neuron_case(
    meta: dict,
    *,
    seed: int,
    activation: str,
    init_w: Sequence[float],
    init_b: float,
    lr: float,
    steps: int = 200,
) -> dict:
    return {
        "data": {
            "name": "neuron",
            "options": {
                "num_points": 50,
                "x_ranges": [[-1.0, 1.0], [-1.0, 1.0]],
                "true_w": [0.5, 0.8],
                "true_b": 0.3,
                "noise_level": 0.1,
                "seed": seed,
            },
        },
        "model": {
            "variant": "neuron",
            "activation": activation,
            "init": list(init_w) + [init_b],
        },
        "train": {"lr": lr, "steps": steps, "enable_plots": False},
        "meta": meta,
    }


_PRESETS: Dict[str, Mapping[str, object]] = {
    "default": {
        "data": {"name": "records", "options": {"points": _DEFAULT_POINTS}},
        "model": {"variant": "linear1d", "init": [0.0]},
        "train": {"lr": 0.01, "steps": 100, "enable_plots": False},
        "meta": _meta(
            "Hand-Picked Line",
            "Ten fixed points near y = 2x, trained from w = 0.",
            "foundational",
            [],
        ),
    },
    # Single weight, y = w * x
    "perfect-start": _linear1d_case(
        _meta(
            "Perfect Start",
            "Clean data, good learning rate, ideal initialization. Everything goes smoothly!",
            "foundational",
            [
                "Loss decreases smoothly every step",
                "Line quickly moves toward the data points",
                "Final w ≈ 2.0 matches the true slope",
            ],
        ),
        noise=0.1, seed=42, init=0.0, lr=0.001, steps=100,
    ),
    "noisy-but-ok": _linear1d_case(
        _meta(
            "Noisy But OK",
            "Moderate noise in the data. Training still works, but loss won't reach zero.",
            "foundational",
            [
                "Loss decreases but stabilizes above zero",
                "Noise prevents perfect fit",
                "This is normal in real-world data",
            ],
        ),
        noise=0.5, seed=123, init=0.0, lr=0.001, steps=100,
    ),
    "very-noisy": _linear1d_case(
        _meta(
            "Very Noisy",
            "High noise makes training harder. Loss decreases slowly and stays high.",
            "foundational",
            [
                "Loss decreases but remains high",
                "Line struggles to find pattern in noisy data",
                "May need more data or different model",
            ],
        ),
        noise=2.0, seed=456, init=0.0, lr=0.001, steps=100,
    ),
    "lr-too-slow": _linear1d_case(
        _meta(
            "Learning Too Slow",
            "Learning rate is too small. Training barely moves!",
            "learning-rate",
            [
                "Barely moving after 200 steps",
                "Loss decreases extremely slowly",
                "Would need thousands of steps to converge",
            ],
        ),
        noise=0.1, seed=42, init=0.0, lr=0.00001, steps=200,
    ),
    "lr-just-right": _linear1d_case(
        _meta(
            "Learning Just Right",
            "Perfect learning rate. Fast convergence without overshooting.",
            "learning-rate",
            [
                "Converges in ~50 steps",
                "Smooth, steady improvement",
                "This is what good training looks like",
            ],
        ),
        noise=0.1, seed=42, init=0.5, lr=0.002, steps=100,
    ),
    "lr-too-fast": _linear1d_case(
        _meta(
            "Learning Too Fast",
            "Learning rate is too large. Watch the line bounce around!",
            "learning-rate",
            [
                "Converges quickly but overshoots",
                "Shows bouncing behavior in first steps",
                "Eventually stabilizes but less smoothly",
            ],
        ),
        noise=0.1, seed=42, init=0.8, lr=0.008, steps=100,
    ),
    "start-at-zero": _linear1d_case(
        _meta(
            "Start at Zero",
            "Initialize w=0. Line starts completely flat.",
            "initialization",
            [
                "Starts with flat line (w=0)",
                "Gradually tilts upward toward data",
                "Common initialization choice",
            ],
        ),
        noise=0.1, seed=42, init=0.0, lr=0.001, steps=100,
    ),
    "start-far-away": _linear1d_case(
        _meta(
            "Start Far Away",
            "Initialize w=-3. Line starts pointing the wrong direction!",
            "initialization",
            [
                "Starts with negative slope",
                "Takes longer to reach target",
                "Bad initialization wastes training time",
            ],
        ),
        noise=0.1, seed=42, init=-3.0, lr=0.001, steps=150,
    ),
    # Two weights, y = w1 * x1 + w2 * x2
    "lr-small": _linear2d_case(
        _meta(
            "Learning Rate Too Small",
            "Tiny steps make convergence painfully slow. "
            "Watch gradient descent crawl toward the optimum.",
            "learning-rate",
            [
                "Tiny steps: learning rate = 0.0001",
                "Converges very slowly, never reaches optimum",
                "Gradient magnitude stays large even after 200 steps",
            ],
        ),
        lr=0.0001, steps=200,
    ),
    "lr-optimal": _linear2d_case(
        _meta(
            "Optimal Learning Rate",
            "The Goldilocks zone: smooth, efficient steps toward convergence. "
            "This is what you want.",
            "learning-rate",
            [
                "Smooth convergence in ~50 steps",
                "Gradient magnitude decreases steadily",
                "Direct path to optimum with minimal oscillation",
            ],
        ),
        lr=0.01, steps=100,
    ),
    "lr-large": _linear2d_case(
        _meta(
            "Learning Rate Too Large",
            "Big steps overshoot the target. "
            "Watch the zigzag pattern as optimization bounces around.",
            "learning-rate",
            [
                "Overshooting causes zigzag pattern",
                "Eventually converges but inefficiently",
                "Large oscillations in parameter space",
            ],
        ),
        lr=0.1, steps=100,
    ),
    "anisotropic-easy": _linear2d_case(
        _meta(
            "Anisotropic Loss Surface (Mild)",
            "Different scales in x1 vs x2 create an elliptical loss surface. "
            "Faster progress in one direction.",
            "anisotropy",
            [
                "Elliptical contours due to different x1/x2 scales",
                "Faster movement in w2 direction",
                "Still converges with standard learning rate",
            ],
        ),
        x1=(0.0, 1.0), x2=(0.0, 10.0), lr=0.01, steps=150,
    ),
    "anisotropic-hard": _linear2d_case(
        _meta(
            "Anisotropic Loss Surface (Extreme)",
            "Extreme scale difference creates a narrow valley. "
            "Optimization struggles with zigzag motion.",
            "anisotropy",
            [
                "Very elongated ellipse creates narrow valley",
                "Zigzag pattern even with reduced learning rate",
                "Demonstrates why feature scaling matters",
            ],
        ),
        x1=(0.0, 1.0), x2=(0.0, 20.0), true_w2=0.5, noise=0.3, lr=0.008, steps=200,
    ),
    "saddle-point": _linear2d_case(
        _meta(
            "Near-Saddle Geometry",
            "Starting near a saddle-like region shows curved, non-direct trajectory to optimum.",
            "geometry",
            [
                "Gradient direction changes rapidly",
                "Curved trajectory through parameter space",
                "Starting position affects convergence path",
            ],
        ),
        x1=(-2.0, 3.0), x2=(-2.0, 3.0), init=(-1.0, -1.0), lr=0.01, steps=150,
    ),
    "zigzag-convergence": _linear2d_case(
        _meta(
            "Zigzag with High LR + Anisotropy",
            "Combined effect: high learning rate meets anisotropic surface. "
            "Maximum zigzag demonstration.",
            "geometry",
            [
                "Bouncing back and forth dramatically",
                "High LR + anisotropy = worst case scenario",
                "Slow progress despite high learning rate",
            ],
        ),
        x1=(0.0, 1.0), x2=(0.0, 15.0), true_w2=0.8, noise=0.4,
        init=(3.0, -1.5), lr=0.03, steps=200,
    ),
    # Single neuron, a = sigma(w . x + b)
    "sigmoid-vanishing": _neuron_case(
        _meta(
            "Sigmoid Vanishing Gradients",
            "Large initialization leads to saturation and vanishing gradients",
            "saturation",
            [],
        ),
        seed=100, activation="sigmoid", init_w=(5.0, 5.0), init_b=2.0, lr=0.01,
    ),
    "sigmoid-optimal": _neuron_case(
        _meta(
            "Sigmoid Active Region",
            "Small initialization keeps sigmoid in active region",
            "optimal",
            [],
        ),
        seed=101, activation="sigmoid", init_w=(0.1, 0.1), init_b=0.0, lr=0.1,
    ),
    "relu-dying": _neuron_case(
        _meta(
            "Dying ReLU",
            "Negative initialization causes ReLU to die (outputs zero forever)",
            "dying-relu",
            [],
        ),
        seed=102, activation="relu", init_w=(-2.0, -2.0), init_b=-5.0, lr=0.01,
    ),
    "relu-optimal": _neuron_case(
        _meta(
            "ReLU Fast Convergence",
            "Positive initialization allows ReLU to converge quickly",
            "optimal",
            [],
        ),
        seed=103, activation="relu", init_w=(0.1, 0.1), init_b=0.5, lr=0.1,
    ),
    "tanh-saturation": _neuron_case(
        _meta(
            "Tanh Saturation",
            "Large initialization pushes tanh into saturation zones",
            "saturation",
            [],
        ),
        seed=104, activation="tanh", init_w=(4.0, 4.0), init_b=1.0, lr=0.01,
    ),
    "tanh-optimal": _neuron_case(
        _meta(
            "Tanh Centered Start",
            "Centered initialization keeps tanh active and converging",
            "optimal",
            [],
        ),
        seed=105, activation="tanh", init_w=(0.1, 0.1), init_b=0.0, lr=0.1,
    ),
    "activation-comparison": _neuron_case(
        _meta(
            "Activation Comparison",
            "Same data and initialization, different activation functions",
            "comparison",
            [],
        ),
        seed=106, activation="sigmoid", init_w=(0.2, 0.2), init_b=0.1, lr=0.05,
    ),
    "lr-saturation-interaction": _neuron_case(
        _meta(
            "Learning Rate Meets Saturation",
            "High learning rate causes oscillations into saturation",
            "saturation",
            [],
        ),
        seed=107, activation="sigmoid", init_w=(1.0, 1.0), init_b=0.5, lr=0.5,
    ),
    # Sweeps expand into one run per combination
    "activation-sweep": {
        "sweep": {"activations": ["sigmoid", "relu", "tanh"]},
        **_neuron_case(
            _meta(
                "Activation Sweep",
                "The comparison case trained once per activation function",
                "comparison",
                [],
            ),
            seed=106, activation="sigmoid", init_w=(0.2, 0.2), init_b=0.1, lr=0.05,
        ),
    },
    "lr-sweep-2d": {
        "sweep": {"lrs": [0.0001, 0.01, 0.1]},
        **_linear2d_case(
            _meta(
                "Learning Rate Sweep",
                "The same surface descended with small, good and large steps",
                "learning-rate",
                [],
            ),
            lr=0.01, steps=100,
        ),
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None
_REQUIRED_SECTIONS = {"data", "model", "train"}


def _read_preset_file(path: Path) -> Mapping[str, object]:
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("PyYAML is required to load preset files in YAML format") from exc
        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported preset file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Preset {path.name} must decode to a mapping")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        found: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = _read_preset_file(file)
                missing = _REQUIRED_SECTIONS - set(data)
                if missing:
                    missing_str = ", ".join(sorted(missing))
                    raise KeyError(f"Preset {file.name} is missing required sections: {missing_str}")
                found[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = found
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    file_overrides = _file_presets()
    if name in file_overrides:
        return file_overrides[name]
    try:
        return deepcopy(_PRESETS[name])
    except KeyError:
        available = ", ".join(sorted(presets()))
        raise KeyError(f"Unknown preset {name!r}. Available presets: {available}") from None


def run_pipeline(config: Mapping[str, object]) -> RunResult | List[RunResult]:
    """Run ``config`` and write its artifacts; sweeps return one result per run."""

    if "sweep" in config:
        return _run_sweep(config)
    return _train_single(config)


def _run_sweep(config: Mapping[str, object]) -> List[RunResult]:
    sweep_cfg = dict(config["sweep"])
    base_dir = _resolve_run_dir(
        dict(config.get("train", {})),
        str(config["data"]["name"]),
        str(config["model"].get("variant", "")),
    )
    lrs = sweep_cfg.get("lrs") or [None]
    activations = sweep_cfg.get("activations") or [None]
    seeds = sweep_cfg.get("seeds") or [None]
    results: List[RunResult] = []
    for lr in lrs:
        for activation in activations:
            for seed in seeds:
                cfg = deepcopy(dict(config))
                cfg.pop("sweep", None)
                cfg.setdefault("train", {})
                label = []
                if lr is not None:
                    cfg["train"]["lr"] = lr
                    label.append(f"lr{lr:g}")
                if activation is not None:
                    cfg.setdefault("model", {})["activation"] = activation
                    label.append(str(activation))
                if seed is not None:
                    cfg["data"].setdefault("options", {})["seed"] = seed
                    label.append(f"seed{seed}")
                cfg["train"]["run_dir"] = str(base_dir / ("-".join(label) or "run"))
                results.append(_train_single(cfg))
    return results


def _build_variant(model_cfg: Mapping[str, object], default: str | None, dim: int) -> ModelVariant:
    name = str(model_cfg.get("variant") or default or "linear1d")
    if name == "neuron":
        return get_variant(
            name, activation=str(model_cfg.get("activation", "sigmoid")), num_inputs=dim
        )
    return get_variant(name)


def _train_single(config: Mapping[str, object]) -> RunResult:
    data_cfg = dict(config["data"])
    model_cfg = dict(config.get("model", {}))
    train_cfg = dict(config.get("train", {}))
    meta = dict(config.get("meta", {}))

    options = dict(data_cfg.get("options", {}))
    spec = registry.get_dataset(str(data_cfg["name"]), **options)
    problem = validate_dataset(spec.dataset)
    if problem is not None:
        raise ValueError(f"Invalid dataset: {problem}")
    dataset = spec.dataset

    variant = _build_variant(model_cfg, spec.variant, dataset.dim)
    lr = float(train_cfg.get("lr", 0.01))
    steps = int(train_cfg.get("steps", 100))
    seed = options.get("seed")
    run_dir = _resolve_run_dir(train_cfg, spec.name, variant.name)
    run_dir.mkdir(parents=True, exist_ok=True)

    _print_startup_summary(
        title=str(meta.get("title", spec.name)),
        dataset_name=spec.name,
        num_points=len(dataset),
        variant=variant,
        lr=lr,
        steps=steps,
        seed=seed,
    )

    metrics_jsonl = JsonlSink(run_dir / "metrics.jsonl", variant=variant.name, seed=seed)
    metrics_csv = CsvSink(run_dir / "metrics.csv")
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))
    callbacks: List[object] = [metrics_jsonl, metrics_csv, plots]
    log_every = int(train_cfg.get("log_every", 20))
    if log_every > 0:
        callbacks.append(ProgressPrinter(log_every))

    trainer = Trainer(variant=variant, optimizer=SGDOptimizer(lr=lr), callbacks=callbacks)
    run = trainer.run(dataset, steps, model_cfg.get("init"))
    plots.close()

    artifacts: Dict[str, str] = {}
    artifacts["dataset"] = write_json(
        run_dir / "dataset.json", dataset_record(dataset, variant.name)
    )
    extra = {key: meta[key] for key in ("title", "description", "category") if key in meta}
    if "id" in meta:
        extra["case_id"] = meta["id"]
    if variant.name == "neuron":
        extra["activation"] = model_cfg.get("activation", "sigmoid")
    artifacts["snapshots"] = write_json(
        run_dir / "snapshots.json", run_record(run, dataset, **extra)
    )

    surface_path = ""
    surface_cfg = config.get("surface")
    if surface_cfg:
        grid = _build_surface(dataset, variant, surface_cfg)
        surface_path = write_json(run_dir / "loss_grid.json", loss_grid_record(grid))
        artifacts["loss_grid"] = surface_path
        if plots.enable_plots:
            trajectory = list(zip(run.trajectory(grid.axes[0]), run.trajectory(grid.axes[1])))
            trajectory.append(
                (run.final_params[grid.axes[0]], run.final_params[grid.axes[1]])
            )
            artifacts["contour"] = plot_loss_grid(grid, run_dir / "contour.png", trajectory)

    summary_path = write_summary(
        metrics_jsonl.path,
        run_dir / "summary.json",
        tail=int(train_cfg.get("summary_tail", 32)),
        run=run,
    )
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=_safe_config(config),
        dataset_provenance=spec.provenance,
        artifacts=artifacts,
    )
    _print_completion(run)

    return RunResult(
        steps=len(run),
        snapshots_path=artifacts["snapshots"],
        metrics_path=str(metrics_jsonl.path),
        manifest_path=manifest,
        summary_path=summary_path,
        surface_path=surface_path,
    )


def _build_surface(dataset, variant: ModelVariant, surface_cfg: Mapping[str, Any]) -> LossGrid:
    return compute_loss_grid(
        dataset,
        variant,
        bounds=surface_cfg.get("bounds", _SURFACE_2D["bounds"]),
        resolution=int(surface_cfg.get("resolution", 50)),
        axes=surface_cfg.get("axes"),
        params=surface_cfg.get("params"),
    )


def generate_cases(
    out_dir: str | Path, names: Iterable[str] | None = None
) -> str:
    """Run every case preset into ``out_dir/<name>`` and index them in ``manifest.json``.

    Sweep presets are skipped unless requested by name; their runs have no
    single case to index.
    """

    out_dir = Path(out_dir)
    available = presets()
    if names is None:
        selected = [name for name, cfg in available.items() if "sweep" not in cfg]
    else:
        selected = list(names)

    cases = []
    for name in selected:
        cfg = json.loads(json.dumps(load_preset(name)))
        cfg.setdefault("train", {})["run_dir"] = str(out_dir / name)
        cfg.setdefault("meta", {})["id"] = name
        result = run_pipeline(cfg)
        meta = cfg["meta"]
        entry = {
            "id": name,
            "title": meta.get("title", name),
            "description": meta.get("description", ""),
            "category": meta.get("category", ""),
            "variant": cfg.get("model", {}).get("variant"),
            "insights": list(meta.get("insights", [])),
            "data_config": cfg["data"],
            "training_config": cfg["train"],
        }
        if isinstance(result, list):
            entry["runs"] = [Path(r.snapshots_path).parent.name for r in result]
        else:
            entry["steps"] = result.steps
        cases.append(entry)

    path = write_json(out_dir / "manifest.json", {"version": "1.0", "cases": cases})
    print(f"Generated {len(cases)} cases into {out_dir}")
    return path


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str, variant: str) -> Path:
    if train_cfg.get("run_dir"):
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset / variant


def _safe_config(config: Mapping[str, object]) -> Mapping[str, object]:
    return json.loads(json.dumps(config))


def _print_startup_summary(
    *,
    title: str,
    dataset_name: str,
    num_points: int,
    variant: ModelVariant,
    lr: float,
    steps: int,
    seed: int | None,
) -> None:
    print("=== descentlab run ===")
    print(f"Case          : {title}")
    print(f"Dataset       : {dataset_name} ({num_points} points)")
    print(f"Seed          : {seed if seed is not None else 'unseeded'}")
    print(f"Variant       : {variant.name}")
    activation = getattr(variant, "activation", None)
    if activation is not None:
        print(f"Activation    : {activation.name}")
    print(f"Parameters    : {', '.join(variant.param_names)}")
    print(f"Learning rate : {lr:g}")
    print(f"Steps         : {steps}")
    print("======================")


def _print_completion(run: TrainingRun) -> None:
    final = ", ".join(f"{k}={v:.4f}" for k, v in run.final_params.items())
    print(f"Training complete! Final {final}")


__all__ = ["generate_cases", "load_preset", "presets", "run_pipeline"]
