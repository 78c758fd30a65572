"""Deterministic random source seeded from a string."""

from __future__ import annotations

import random
from typing import Sequence, TypeVar

T = TypeVar("T")


class SeededRandom:
    """Every random decision in a game goes through one of these.

    ``random.Random`` hashes string seeds with SHA-512, so the sequence does
    not depend on PYTHONHASHSEED and two instances built from the same seed
    stay bit-identical as long as they are called in the same order.
    """

    def __init__(self, seed: str) -> None:
        self.seed = str(seed)
        self._rng = random.Random(self.seed)

    def next(self) -> float:
        """Return a float in [0, 1)."""
        return self._rng.random()

    def next_int(self, low: int, high: int) -> int:
        """Return an int in [low, high]."""
        return low + int(self.next() * (high - low + 1))

    def choice(self, items: Sequence[T]) -> T | None:
        if not items:
            return None
        return items[int(self.next() * len(items))]

    def shuffle(self, items: Sequence[T]) -> list[T]:
        """Fisher-Yates over a copy; the input is left untouched."""
        out = list(items)
        for i in range(len(out) - 1, 0, -1):
            j = int(self.next() * (i + 1))
            out[i], out[j] = out[j], out[i]
        return out
