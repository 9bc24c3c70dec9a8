"""Dataset builders, registry and validation."""

# Ensure built-in datasets register themselves when the package is imported.
from . import records as _records  # noqa: F401
from . import synthetic as _synthetic  # noqa: F401
from .records import load_records
from .registry import DatasetSpec, available_datasets, get_dataset, register_dataset
from .synthetic import make_linear1d, make_linear2d, make_neuron
from .validation import validate_dataset

__all__ = [
    "DatasetSpec",
    "available_datasets",
    "get_dataset",
    "load_records",
    "make_linear1d",
    "make_linear2d",
    "make_neuron",
    "register_dataset",
    "validate_dataset",
]
