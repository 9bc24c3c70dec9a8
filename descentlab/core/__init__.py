"""Core numerical primitives for descentlab."""

from . import activations, errors, rng, types

__all__ = ["activations", "errors", "rng", "types"]
