"""Training engine: variants, trainer, loss surface and pipelines."""

from .pipelines import generate_cases, load_preset, presets, run_pipeline
from .surface import compute_loss_grid
from .trainer import SGDOptimizer, Trainer, train
from .variants import Linear1D, Linear2D, Neuron, available_variants, get_variant

__all__ = [
    "Linear1D",
    "Linear2D",
    "Neuron",
    "SGDOptimizer",
    "Trainer",
    "available_variants",
    "compute_loss_grid",
    "generate_cases",
    "get_variant",
    "load_preset",
    "presets",
    "run_pipeline",
    "train",
]
