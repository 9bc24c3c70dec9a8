"""Reproducible random sources for synthetic datasets."""

from __future__ import annotations

from typing import Callable, Iterator

import numpy as np

from .types import Array

# Reference trajectories were generated with exactly this recurrence.
MULTIPLIER = 9301
INCREMENT = 49297
MODULUS = 233280

RandomSource = Callable[[], float]


class SeededSequence:
    """Linear congruential sequence of floats in ``[0, 1)``.

    ``state <- (state * 9301 + 49297) mod 233280`` and each draw returns
    ``state / 233280``. Integer arithmetic keeps the sequence identical across
    platforms; the only way to restart it is to build a new instance.
    """

    def __init__(self, seed: int) -> None:
        self.seed = int(seed)
        self._state = self.seed

    def __call__(self) -> float:
        self._state = (self._state * MULTIPLIER + INCREMENT) % MODULUS
        return self._state / MODULUS

    def __iter__(self) -> Iterator[float]:
        while True:
            yield self()

    def take(self, count: int) -> Array:
        return np.array([self() for _ in range(count)], dtype=np.float64)


def random_source(seed: int | None = None) -> RandomSource:
    """Return a :class:`SeededSequence` for ``seed`` or an unseeded source.

    Callers that need reproducible data must pass a seed; ``None`` draws from
    a fresh ``numpy`` generator.
    """

    if seed is None:
        return np.random.default_rng().random
    return SeededSequence(seed)


__all__ = ["MODULUS", "RandomSource", "SeededSequence", "random_source"]
