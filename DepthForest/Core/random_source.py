"""
Seedable random source used to draw feature response parameters.
"""

import numpy as np
from typing import Optional


class Random:
    """
    Uniform random numbers backed by a numpy Generator.

    Two instances created with the same seed produce the same sequence,
    which makes feature banks reproducible between experiments.
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    def next(self, min_value: int, max_value: int) -> int:
        """Uniform integer in the closed range [min_value, max_value]."""
        if min_value > max_value:
            raise ValueError(f"min_value ({min_value}) must not exceed max_value ({max_value})")
        return int(self._rng.integers(min_value, max_value, endpoint=True))

    def next_double(self) -> float:
        """Uniform double in [0, 1)."""
        return float(self._rng.random())

    def choice(self, population: int, size: int) -> np.ndarray:
        """Sorted sample of `size` distinct integers from range(population)."""
        return np.sort(self._rng.choice(population, size=size, replace=False))
