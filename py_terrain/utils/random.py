"""
Random draw helpers shared by the terrain generators.

Generators never hold a global PRNG. They receive a zero-argument random
function (usually an ``LCGPRNG``) and use these helpers so that every stage
turns draws into indices the same way.
"""

from typing import Callable, List, Sequence, TypeVar

RandomFunc = Callable[[], float]

T = TypeVar("T")


def rand_index(rng: RandomFunc, length: int) -> int:
    """
    Pick a random index into a sequence of the given length.

    Args:
        rng: Random function returning [0, 1)
        length: Sequence length, must be positive

    Returns:
        Index in [0, length)
    """
    if length <= 0:
        raise IndexError("Cannot pick an index from an empty sequence")
    return min(int(rng() * length), length - 1)


def rand_choice(rng: RandomFunc, items: Sequence[T]) -> T:
    """Choose a random element from a non-empty sequence."""
    return items[rand_index(rng, len(items))]


def pop_random(rng: RandomFunc, items: List[T]) -> T:
    """Remove and return a random element of a non-empty list."""
    return items.pop(rand_index(rng, len(items)))


def rand_range(rng: RandomFunc, low: float, high: float) -> float:
    """Random float in [low, high)."""
    return low + rng() * (high - low)
