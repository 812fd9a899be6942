"""
FundWars — Random Sources

Every stochastic engine takes an explicit random source with a single
next() -> float in [0, 1) method. Production uses a numpy Generator
(seeded or OS-entropy); tests use the fixed or scripted sources below.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence, TypeVar

import numpy as np

T = TypeVar("T")


class RandomSource(ABC):
    """Uniform draws in [0, 1)."""

    @abstractmethod
    def next(self) -> float:
        ...


class NumpyRandomSource(RandomSource):
    """numpy default_rng wrapper. seed=None draws entropy from the OS."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    def next(self) -> float:
        return float(self._rng.random())


class FixedRandomSource(RandomSource):
    """Always returns the same value."""

    def __init__(self, value: float):
        if not 0.0 <= value < 1.0:
            raise ValueError(f"Fixed draw must be in [0, 1), got {value}")
        self.value = value

    def next(self) -> float:
        return self.value


class SequenceRandomSource(RandomSource):
    """Replays a scripted list of draws, then repeats `default`."""

    def __init__(self, values: Sequence[float], default: float = 0.5):
        self._values = list(values)
        self._pos = 0
        self.default = default

    @property
    def consumed(self) -> int:
        return self._pos

    def next(self) -> float:
        if self._pos < len(self._values):
            value = self._values[self._pos]
            self._pos += 1
            return value
        self._pos += 1
        return self.default


def default_random_source(seed: Optional[int] = None) -> RandomSource:
    return NumpyRandomSource(seed)


# ---------------------------------------------------------------------------
# Draw helpers
# ---------------------------------------------------------------------------

def uniform(rng: RandomSource, low: float, high: float) -> float:
    """Uniform draw in [low, high)."""
    return low + (high - low) * rng.next()


def chance(rng: RandomSource, probability: float) -> bool:
    """Bernoulli trial: True when the draw falls below `probability`."""
    return rng.next() < probability


def pick(rng: RandomSource, items: Sequence[T]) -> T:
    """Uniform choice from a non-empty sequence."""
    if not items:
        raise ValueError("Cannot pick from an empty sequence")
    index = min(int(rng.next() * len(items)), len(items) - 1)
    return items[index]
