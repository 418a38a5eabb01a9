"""
Linear congruential PRNG used by every terrain generator.

A tiny LCG (seed * 9301 + 49297) mod 233280 keeps seeded maps reproducible
across platforms. Each generator owns its own instance, seeded with the base
seed plus a per-consumer offset, so adding draws in one stage never shifts the
sequence seen by another.
"""

import random as _stdlib_random
from typing import Callable, Optional, Sequence, TypeVar, Union

T = TypeVar("T")

MULTIPLIER = 9301
INCREMENT = 49297
MODULUS = 233280

# Per-consumer seed offsets
HILLS_SEED_OFFSET = 0
LAKES_SEED_OFFSET = 1000
RIVERS_SEED_OFFSET = 2000
COASTLINE_SEED_OFFSET = 3000
TRIBUTARIES_SEED_OFFSET = 4000

RandomFunc = Callable[[], float]


def _seed_to_int(seed: Union[int, str]) -> int:
    """Convert an int or string seed into a non-negative integer state."""
    if isinstance(seed, int):
        return seed
    text = str(seed)
    if text.lstrip("-").isdigit():
        return int(text)
    # Deterministic string hash, independent of PYTHONHASHSEED
    value = 0
    for char in text:
        value = (value * 31 + ord(char)) % MODULUS
    return value


class LCGPRNG:
    """
    Seeded linear congruential generator returning floats in [0, 1).

    Instances are callable, so they can be passed anywhere a zero-argument
    random function is expected.
    """

    def __init__(self, seed: Union[int, str]):
        self.call_count = 0
        self.initial_seed = _seed_to_int(seed)
        self.state = self.initial_seed

    def random(self) -> float:
        """Generate next random number in [0, 1)."""
        self.call_count += 1
        self.state = (self.state * MULTIPLIER + INCREMENT) % MODULUS
        return self.state / MODULUS

    def __call__(self) -> float:
        return self.random()

    def randint(self, low: int, high: int) -> int:
        """Random integer in [low, high] inclusive."""
        if high < low:
            raise ValueError(f"Empty range [{low}, {high}]")
        return low + int(self.random() * (high - low + 1))

    def choice(self, seq: Sequence[T]) -> T:
        """Choose a random element from a non-empty sequence."""
        if not seq:
            raise IndexError("Cannot choose from an empty sequence")
        return seq[int(self.random() * len(seq))]


def make_rng(seed: Optional[Union[int, str]], offset: int = 0) -> RandomFunc:
    """
    Build the random function for one consumer.

    Args:
        seed: Base seed, or None for an unseeded source
        offset: Consumer offset added to the base seed

    Returns:
        A zero-argument function returning floats in [0, 1)
    """
    if seed is None:
        return _stdlib_random.random
    return LCGPRNG(_seed_to_int(seed) + offset)
