"""
Feature Response Functions

Randomized scalar features evaluated at a sample of a DataPointCollection.
A tree node picks one of these, with its offsets fixed at creation time,
and thresholds its response to decide a split.

Exactly two families exist and FeatureKind enumerates them:
- RandomHyperplaneFeatureResponse: sum of intensities at random offsets
- PixelSubtractionResponse: difference of intensities at two random offsets

Both expose create_random(random, dimension) and get_response(data, index),
so a trainer can treat them interchangeably.
"""

import math
import numpy as np
from enum import Enum
from typing import List, Tuple, Union

from .random_source import Random

Offset = Tuple[int, int]


class FeatureKind(Enum):
    """Feature geometry tag; decides how a patch size becomes a feature dimension."""
    RANDOM_HYPERPLANE = "random_hyperplane"
    PIXEL_DIFFERENCE = "pixel_difference"

    def dimension_for_patch(self, patch_size: int) -> int:
        if self is FeatureKind.PIXEL_DIFFERENCE:
            return patch_size * patch_size
        return patch_size


def randn(random: Random, max_attempts: int = 1000) -> float:
    """
    Standard normal variate via the polar Box-Muller transform.

    Candidate points outside the unit circle (or at its centre) are redrawn,
    at most max_attempts times.
    """
    for _ in range(max_attempts):
        u = 2.0 * random.next_double() - 1.0
        v = 2.0 * random.next_double() - 1.0
        w = u * u + v * v
        if w == 0 or w > 1:
            continue
        return u * math.sqrt(-2.0 * math.log(w) / w)
    raise RuntimeError(f"randn: no point inside the unit circle after {max_attempts} attempts")


class RandomHyperplaneFeatureResponse:
    """
    f(x) = sum of I(x + o_k) over `dimensions` random offsets o_k.

    Each offset coordinate lies in [-ub, ub] with ub = int((sqrt(dimensions) - 1) / 2).
    """

    def __init__(self, offsets: List[Offset] = None, dimensions: int = 0):
        self.offsets = list(offsets or [])
        self.dimensions = dimensions

    @classmethod
    def create_random(cls, random: Random, dimensions: int) -> "RandomHyperplaneFeatureResponse":
        ub = int((math.sqrt(dimensions) - 1) / 2)
        lb = -ub
        offsets = [(random.next(lb, ub), random.next(lb, ub)) for _ in range(dimensions)]
        return cls(offsets, dimensions)

    def get_response(self, data, index: int) -> float:
        if not self.offsets:
            return 0.0
        address = data.get_address(index)
        return float(sum(int(data.intensity_at(address, dx, dy)) for dx, dy in self.offsets))

    def get_responses(self, data, indices: np.ndarray) -> np.ndarray:
        addresses = data.get_addresses(indices)
        total = np.zeros(len(addresses), dtype=np.float64)
        for dx, dy in self.offsets:
            total += data.intensity_at(addresses, dx, dy)
        return total

    def __repr__(self):
        return f"RandomHyperplaneFeatureResponse(dimensions={self.dimensions}, offsets={self.offsets})"


class PixelSubtractionResponse:
    """
    f(x) = I(x + u) - I(x + v) for two random offsets u and v.

    The dimension only bounds the offsets: each coordinate lies in [-ub, ub]
    with ub = ceil(sqrt(dimensions) / 2).
    """

    def __init__(self, offset_0: Offset = (0, 0), offset_1: Offset = (0, 0), dimensions: int = 0):
        self.offset_0 = tuple(offset_0)
        self.offset_1 = tuple(offset_1)
        self.dimensions = dimensions

    @classmethod
    def create_random(cls, random: Random, dimensions: int) -> "PixelSubtractionResponse":
        ub = int(math.ceil(math.sqrt(dimensions) / 2))
        lb = -ub
        offset_0 = (random.next(lb, ub), random.next(lb, ub))
        offset_1 = (random.next(lb, ub), random.next(lb, ub))
        return cls(offset_0, offset_1, dimensions)

    @property
    def offsets(self) -> List[Offset]:
        return [self.offset_0, self.offset_1]

    def get_response(self, data, index: int) -> float:
        address = data.get_address(index)
        first = int(data.intensity_at(address, *self.offset_0))
        second = int(data.intensity_at(address, *self.offset_1))
        return float(first - second)

    def get_responses(self, data, indices: np.ndarray) -> np.ndarray:
        addresses = data.get_addresses(indices)
        first = data.intensity_at(addresses, *self.offset_0).astype(np.float64)
        second = data.intensity_at(addresses, *self.offset_1).astype(np.float64)
        return first - second

    def __repr__(self):
        return f"PixelSubtractionResponse(dimensions={self.dimensions}, offset_0={self.offset_0}, offset_1={self.offset_1})"


FeatureResponse = Union[RandomHyperplaneFeatureResponse, PixelSubtractionResponse]

_RESPONSE_TYPES = {
    FeatureKind.RANDOM_HYPERPLANE: RandomHyperplaneFeatureResponse,
    FeatureKind.PIXEL_DIFFERENCE: PixelSubtractionResponse,
}


def create_feature_response(kind: FeatureKind, random: Random, dimensions: int) -> FeatureResponse:
    """Draw one randomized feature response of the given family."""
    return _RESPONSE_TYPES[FeatureKind(kind)].create_random(random, dimensions)
