"""Sample the aggregate loss over a rectangle of two parameters."""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

from ..core.errors import InvalidConfiguration
from ..core.types import DataPoint, Dataset, LossGrid
from .variants import ModelVariant, ParamValues


def compute_loss_grid(
    dataset: Dataset | Sequence[DataPoint],
    variant: ModelVariant,
    bounds: Sequence[Sequence[float]],
    resolution: int,
    axes: Sequence[str] | None = None,
    params: ParamValues = None,
) -> LossGrid:
    """Evaluate ``variant.loss`` on a ``resolution x resolution`` grid.

    ``bounds`` is ``((min1, max1), (min2, max2))`` for the two ``axes``,
    which default to the variant's first two parameters. Any other parameter
    is held at its value in ``params`` (zero by default). Node ``(i, j)`` sits
    at ``min + i * step`` on each axis with ``step = (max - min) / (r - 1)``,
    so both corners are hit exactly at ``i = 0`` and up to rounding at
    ``i = r - 1``.
    """

    if resolution < 2:
        raise InvalidConfiguration("resolution", resolution, "must be at least 2")
    names = variant.param_names
    if len(names) < 2:
        raise InvalidConfiguration(
            "variant", variant.name, "needs at least two parameters for a loss surface"
        )
    axes = tuple(axes or names[:2])
    if len(axes) != 2 or axes[0] == axes[1]:
        raise InvalidConfiguration("axes", list(axes), "must name two distinct parameters")
    unknown = [axis for axis in axes if axis not in names]
    if unknown:
        raise InvalidConfiguration("axes", list(axes), f"must be drawn from {list(names)}")
    (min1, max1), (min2, max2) = ((float(lo), float(hi)) for lo, hi in bounds)

    data = dataset if isinstance(dataset, Dataset) else Dataset.from_points(dataset)
    if not len(data):
        width = len(variant.input_names)
        data = Dataset(np.empty((0, width)), np.empty(0), variant.input_names)
    base = variant.initial_params(params)
    first, second = names.index(axes[0]), names.index(axes[1])
    step1 = (max1 - min1) / (resolution - 1)
    step2 = (max2 - min2) / (resolution - 1)

    points = []
    for i in range(resolution):
        p1 = min1 + i * step1
        for j in range(resolution):
            p2 = min2 + j * step2
            current = base.copy()
            current[first] = p1
            current[second] = p2
            points.append((p1, p2, variant.loss(current, data.inputs, data.targets)))

    mins: Tuple[float, float] = (min1, min2)
    maxs: Tuple[float, float] = (max1, max2)
    return LossGrid(
        axes=(axes[0], axes[1]),
        mins=mins,
        maxs=maxs,
        resolution=int(resolution),
        points=tuple(points),
    )


__all__ = ["compute_loss_grid"]
