"""Activation functions for the single-neuron variant."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable

import numpy as np

from .errors import InvalidConfiguration
from .types import Array

# |sigma'(z)| below 1% of its usual scale counts as saturated.
SATURATION_THRESHOLD = 0.01


def sigmoid(z: Array) -> Array:
    """Return ``1 / (1 + exp(-z))``."""

    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-z))


def sigmoid_deriv(z: Array) -> Array:
    s = sigmoid(z)
    return s * (1.0 - s)


def relu(z: Array) -> Array:
    """Return the ReLU activation."""

    return np.maximum(z, 0.0)


def relu_deriv(z: Array) -> Array:
    return (np.asarray(z) > 0).astype(np.float64)


def tanh(z: Array) -> Array:
    return np.tanh(z)


def tanh_deriv(z: Array) -> Array:
    t = np.tanh(z)
    return 1.0 - t * t


def is_saturated(derivative: Array) -> Array:
    """Flag derivatives whose magnitude is below :data:`SATURATION_THRESHOLD`."""

    return np.abs(derivative) < SATURATION_THRESHOLD


@dataclass(frozen=True)
class Activation:
    """An activation paired with its derivative."""

    name: str
    fn: Callable[[Array], Array]
    deriv: Callable[[Array], Array]

    def __call__(self, z: Array) -> Array:
        return self.fn(z)


ACTIVATIONS: Dict[str, Activation] = {
    "sigmoid": Activation("sigmoid", sigmoid, sigmoid_deriv),
    "relu": Activation("relu", relu, relu_deriv),
    "tanh": Activation("tanh", tanh, tanh_deriv),
}


def get_activation(name: str) -> Activation:
    try:
        return ACTIVATIONS[name]
    except KeyError:
        available = ", ".join(sorted(ACTIVATIONS))
        raise InvalidConfiguration(
            "activation", name, f"must be one of: {available}"
        ) from None


def available_activations() -> Iterable[str]:
    return sorted(ACTIVATIONS)


__all__ = [
    "ACTIVATIONS",
    "Activation",
    "SATURATION_THRESHOLD",
    "available_activations",
    "get_activation",
    "is_saturated",
    "relu",
    "relu_deriv",
    "sigmoid",
    "sigmoid_deriv",
    "tanh",
    "tanh_deriv",
]
