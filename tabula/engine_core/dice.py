"""
Dice - Injectable randomness.

The turn controller never touches a global random source; it asks a
DiceSource for one die at a time. Tests supply FixedDice.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Iterable
import itertools
import random


class DiceSource(ABC):
    """Source of die values in 1..faces."""

    faces: int = 6

    @abstractmethod
    def next_die(self) -> int:
        """Return the next die value."""
        pass

    def roll(self, count: int = 2) -> tuple[int, ...]:
        return tuple(self.next_die() for _ in range(count))


class RandomDice(DiceSource):
    """
    Seedable pseudo-random dice.

    Each instance owns its own random.Random, so games never share state.
    """

    def __init__(self, seed: int | None = None, faces: int = 6):
        self.faces = faces
        self.rng = random.Random(seed)

    def next_die(self) -> int:
        return self.rng.randint(1, self.faces)


class FixedDice(DiceSource):
    """
    Predetermined die values, for tests and replays.

    Raises ValueError when exhausted unless `cycle` is set.
    """

    def __init__(self, values: Iterable[int], cycle: bool = False, faces: int = 6):
        self.values = list(values)
        if not self.values:
            raise ValueError("FixedDice needs at least one value")
        self.faces = faces
        self.cycle = cycle
        self._iter = itertools.cycle(self.values) if cycle else iter(self.values)

    @classmethod
    def from_rolls(cls, rolls: Iterable[tuple[int, int]], **kwargs) -> FixedDice:
        """Build from a list of (die, die) rolls."""
        return cls([d for roll in rolls for d in roll], **kwargs)

    def next_die(self) -> int:
        try:
            return next(self._iter)
        except StopIteration:
            raise ValueError("Fixed dice exhausted") from None
