"""Synthetic datasets drawn around a known ground-truth model.

Each builder takes an explicit random source, or a seed from which a
:class:`~descentlab.core.rng.SeededSequence` is built. The reference
trajectories depend on the exact order of draws, so that order is fixed per
builder:

* ``make_linear1d`` places inputs evenly across the range and draws only the
  noise, one value per point.
* ``make_linear2d`` draws ``x1``, ``x2`` and then the noise for each point.
* ``make_neuron`` draws every input coordinate in order and then the noise.

Noise is uniform in ``[-noise_level, +noise_level]``.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

from ..core.errors import InvalidConfiguration
from ..core.rng import RandomSource, random_source
from ..core.types import Dataset, default_input_names
from .registry import DatasetSpec, register_dataset

DEFAULT_NEURON_RANGES: Tuple[Tuple[float, float], ...] = ((-1.0, 1.0), (-1.0, 1.0))


def _check_count(num_points: int) -> None:
    if num_points <= 0:
        raise InvalidConfiguration("num_points", num_points, "must be positive")


def _check_range(low_name: str, high_name: str, low: float, high: float) -> None:
    if not high > low:
        raise InvalidConfiguration(high_name, high, f"must be greater than {low_name} ({low!r})")


def _check_noise(noise_level: float) -> None:
    if noise_level < 0:
        raise InvalidConfiguration("noise_level", noise_level, "must be non-negative")


def _resolve_source(seed: int | None, source: RandomSource | None) -> RandomSource:
    return source if source is not None else random_source(seed)


def _noise(source: RandomSource, noise_level: float) -> float:
    return (source() * 2 - 1) * noise_level


def make_linear1d(
    num_points: int = 10,
    x_min: float = 1.0,
    x_max: float = 10.0,
    true_slope: float = 2.0,
    noise_level: float = 0.1,
    seed: int | None = None,
    *,
    source: RandomSource | None = None,
) -> Dataset:
    """Points on ``y = true_slope * x + noise`` with evenly spaced ``x``."""

    _check_count(num_points)
    _check_range("x_min", "x_max", x_min, x_max)
    _check_noise(noise_level)
    draw = _resolve_source(seed, source)

    x_range = x_max - x_min
    xs, ys = [], []
    for idx in range(num_points):
        x = x_min + x_range * idx / (num_points - 1) if num_points > 1 else x_min
        xs.append(x)
        ys.append(true_slope * x + _noise(draw, noise_level))
    return Dataset(inputs=np.array(xs).reshape(-1, 1), targets=np.array(ys), input_names=("x",))


def make_linear2d(
    num_points: int = 20,
    x1_min: float = 0.0,
    x1_max: float = 5.0,
    x2_min: float = 0.0,
    x2_max: float = 5.0,
    true_w1: float = 2.0,
    true_w2: float = 1.5,
    noise_level: float = 0.5,
    seed: int | None = None,
    *,
    source: RandomSource | None = None,
) -> Dataset:
    """Points on ``y = true_w1 * x1 + true_w2 * x2 + noise`` with random inputs."""

    _check_count(num_points)
    _check_range("x1_min", "x1_max", x1_min, x1_max)
    _check_range("x2_min", "x2_max", x2_min, x2_max)
    _check_noise(noise_level)
    draw = _resolve_source(seed, source)

    x1_range = x1_max - x1_min
    x2_range = x2_max - x2_min
    rows, ys = [], []
    for _ in range(num_points):
        x1 = x1_min + draw() * x1_range
        x2 = x2_min + draw() * x2_range
        y = true_w1 * x1 + true_w2 * x2
        rows.append((x1, x2))
        ys.append(y + _noise(draw, noise_level))
    return Dataset(inputs=np.array(rows), targets=np.array(ys), input_names=("x1", "x2"))


def make_neuron(
    num_points: int = 50,
    x_ranges: Sequence[Sequence[float]] = DEFAULT_NEURON_RANGES,
    true_w: Sequence[float] = (0.5, 0.8),
    true_b: float = 0.3,
    noise_level: float = 0.1,
    seed: int | None = None,
    *,
    source: RandomSource | None = None,
) -> Dataset:
    """Points on ``y = true_w . x + true_b + noise`` for the single-neuron variant."""

    _check_count(num_points)
    if len(true_w) != len(x_ranges):
        raise InvalidConfiguration(
            "true_w", list(true_w), f"must have one weight per input range ({len(x_ranges)})"
        )
    names = default_input_names(len(x_ranges))
    for name, bounds in zip(names, x_ranges):
        low, high = bounds
        _check_range(f"{name}_min", f"{name}_max", low, high)
    _check_noise(noise_level)
    draw = _resolve_source(seed, source)

    rows, ys = [], []
    for _ in range(num_points):
        x = [low + draw() * (high - low) for low, high in x_ranges]
        y = 0.0
        for weight, value in zip(true_w, x):
            y += weight * value
        y += true_b
        rows.append(x)
        ys.append(y + _noise(draw, noise_level))
    return Dataset(inputs=np.array(rows), targets=np.array(ys), input_names=names)


@register_dataset("linear1d")
def _linear1d_factory(**options) -> DatasetSpec:
    dataset = make_linear1d(**options)
    return DatasetSpec(
        name="linear1d",
        dataset=dataset,
        provenance={"type": "synthetic", **options},
        variant="linear1d",
    )


@register_dataset("linear2d")
def _linear2d_factory(**options) -> DatasetSpec:
    dataset = make_linear2d(**options)
    return DatasetSpec(
        name="linear2d",
        dataset=dataset,
        provenance={"type": "synthetic", **options},
        variant="linear2d",
    )


@register_dataset("neuron")
def _neuron_factory(**options) -> DatasetSpec:
    dataset = make_neuron(**options)
    provenance = {"type": "synthetic", **options}
    if "x_ranges" in provenance:
        provenance["x_ranges"] = [list(bounds) for bounds in provenance["x_ranges"]]
    return DatasetSpec(name="neuron", dataset=dataset, provenance=provenance, variant="neuron")


__all__ = ["make_linear1d", "make_linear2d", "make_neuron"]
