"""descentlab public API."""

from .core import activations  # noqa: F401
from .core import types  # noqa: F401
from .core.errors import InvalidConfiguration
from .core.rng import SeededSequence, random_source
from .core.types import DataPoint, Dataset, LossGrid, Snapshot, TrainingRun
from .data import (
    get_dataset,
    make_linear1d,
    make_linear2d,
    make_neuron,
    validate_dataset,
)
from .training.pipelines import generate_cases, load_preset, presets, run_pipeline
from .training.surface import compute_loss_grid
from .training.trainer import SGDOptimizer, Trainer, train
from .training.variants import Linear1D, Linear2D, Neuron, get_variant

__all__ = [
    "DataPoint",
    "Dataset",
    "InvalidConfiguration",
    "Linear1D",
    "Linear2D",
    "LossGrid",
    "Neuron",
    "SGDOptimizer",
    "SeededSequence",
    "Snapshot",
    "Trainer",
    "TrainingRun",
    "activations",
    "compute_loss_grid",
    "generate_cases",
    "get_dataset",
    "get_variant",
    "load_preset",
    "make_linear1d",
    "make_linear2d",
    "make_neuron",
    "presets",
    "random_source",
    "run_pipeline",
    "train",
    "types",
    "validate_dataset",
]
