"""Dataset registry and metadata contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, MutableMapping

from ..core.types import Dataset


@dataclass(frozen=True)
class DatasetSpec:
    """A materialised dataset plus what is needed to reproduce it.

    Attributes
    ----------
    name:
        Registry identifier the dataset was built from.
    dataset:
        The immutable training examples.
    provenance:
        Builder options (seed included) so a run can be regenerated exactly.
    variant:
        Model variant the dataset was shaped for, when the builder knows it.
    """

    name: str
    dataset: Dataset
    provenance: Dict[str, Any] = field(default_factory=dict)
    variant: str | None = None


DatasetFactory = Callable[..., DatasetSpec]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("linear1d")
        def make_linear1d(**kwargs):
            ...

    or directly::

        register_dataset("linear1d", make_linear1d)
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    if name is None:
        raise TypeError("register_dataset requires a name when used without a decorator")
    return _decorator


def get_dataset(dataset: str, /, **options: Any) -> DatasetSpec:
    """Build the registered dataset ``dataset`` with ``options``."""

    if dataset not in _REGISTRY:
        available = ", ".join(available_datasets())
        raise KeyError(f"Unknown dataset {dataset!r}. Available datasets: {available}")

    spec = _REGISTRY[dataset](**options)
    _validate_spec(spec)
    return spec


def available_datasets() -> Iterable[str]:
    """Return the sorted list of available dataset identifiers."""

    return sorted(_REGISTRY)


def _validate_spec(spec: DatasetSpec) -> None:
    if not isinstance(spec, DatasetSpec):
        raise TypeError(f"Dataset factories must return DatasetSpec, got {type(spec).__name__}")
    if not isinstance(spec.dataset, Dataset):
        raise TypeError("DatasetSpec.dataset must be a Dataset")
    if not isinstance(spec.provenance, dict):
        raise TypeError("DatasetSpec.provenance must be a mapping")


__all__ = [
    "DatasetSpec",
    "available_datasets",
    "get_dataset",
    "register_dataset",
]
