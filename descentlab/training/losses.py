"""Point-wise squared error and the dataset-mean reducer shared by all variants."""

from __future__ import annotations

import math
from typing import Iterable

import numpy as np

from ..core.types import Array


def squared_error(predictions: Array, targets: Array) -> Array:
    """Per-point loss ``(prediction - target)^2``."""

    diff = predictions - targets
    return diff * diff


def squared_error_grad(predictions: Array, targets: Array) -> Array:
    """``dL/dprediction = 2 * (prediction - target)`` per point."""

    return 2 * (predictions - targets)


def mean_over_points(values: Array) -> float | Array:
    """Average ``values`` over the leading (point) axis.

    Sums left to right before dividing, the same accumulation order the
    reference trajectories were produced with; ``np.mean`` uses pairwise
    summation and drifts in the last bits on larger datasets. An empty
    dataset yields NaN rather than raising.
    """

    values = np.asarray(values, dtype=np.float64)
    count = values.shape[0]
    if count == 0:
        result = np.full(values.shape[1:], np.nan)
    else:
        result = np.cumsum(values, axis=0)[-1] / count
    if result.ndim == 0:
        return float(result)
    return result


def l2_norm(values: Iterable[float]) -> float:
    """Euclidean norm with a left-to-right sum of squares."""

    total = 0.0
    for value in values:
        total += value * value
    return math.sqrt(total)


__all__ = ["l2_norm", "mean_over_points", "squared_error", "squared_error_grad"]
