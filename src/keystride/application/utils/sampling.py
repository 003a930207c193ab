"""Selection helpers driven by an injected ``RandomSource``."""

from collections.abc import Sequence
from typing import TypeVar

from keystride.domain.ports import RandomSource

T = TypeVar("T")


def pick(items: Sequence[T], rng: RandomSource) -> T:
    """Uniformly pick one item. ``items`` must be non-empty."""
    return items[min(int(rng.random() * len(items)), len(items) - 1)]


def shuffled(items: Sequence[T], rng: RandomSource) -> list[T]:
    """Fisher-Yates shuffle into a new list; one ``rng`` draw per position from the end."""
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = min(int(rng.random() * (i + 1)), i)
        out[i], out[j] = out[j], out[i]
    return out
