"""
symbolic_gp/random_source.py - Seedable random source used by every stochastic operator
"""
import random
from typing import Optional, Sequence, TypeVar

from .cloner import Cloner, DeepCloneable

T = TypeVar('T')


class MersenneTwister(DeepCloneable):
    """MT19937 generator with an explicit, resettable seed.

    Wraps ``random.Random`` so that a given seed reproduces the same sequence
    in every process and on every run. Operators never touch the global
    ``random`` module state.
    """

    def __init__(self, seed: Optional[int] = None):
        if seed is None:
            seed = random.SystemRandom().randrange(2 ** 31)
        self.seed = seed
        self._rng = random.Random(seed)

    def next(self) -> int:
        """Non-negative 31-bit integer"""
        return self._rng.getrandbits(31)

    def next_int(self, max_value: int) -> int:
        """Integer in [0, max_value)"""
        return self._rng.randrange(max_value)

    def next_range(self, min_value: int, max_value: int) -> int:
        """Integer in [min_value, max_value)"""
        return self._rng.randrange(min_value, max_value)

    def next_double(self) -> float:
        """Float in [0, 1)"""
        return self._rng.random()

    def uniform(self, low: float, high: float) -> float:
        return low + (high - low) * self._rng.random()

    def choice(self, items: Sequence[T]) -> T:
        return items[self.next_int(len(items))]

    def reset(self, seed: Optional[int] = None) -> None:
        """Restart the sequence, optionally from a new seed"""
        if seed is not None:
            self.seed = seed
        self._rng = random.Random(self.seed)

    def clone(self, cloner: Cloner) -> 'MersenneTwister':
        # A clone restarts from the seed rather than copying the stream position
        twin = MersenneTwister.__new__(MersenneTwister)
        cloner.register(self, twin)
        twin.seed = self.seed
        twin._rng = random.Random(self.seed)
        return twin

    def __repr__(self):
        return f"MersenneTwister(seed={self.seed})"
