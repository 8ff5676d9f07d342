"""
Moves - Immutable descriptions of state transitions.

A Move relocates one piece and consumes one die. A MoveSequence is the
ordered list of moves making up one turn.

Both are frozen dataclasses: equality is structural and they can be used
in sets and as dict keys. Whether a move hits depends on the state it is
applied to, so it is not part of the move.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator

from .board import BAR, OFF, Location, Side


def location_key(location: Location) -> tuple[int, int]:
    """Sort key for locations: BAR first, then points ascending, then OFF."""
    if location == BAR:
        return (0, 0)
    if location == OFF:
        return (2, 0)
    return (1, int(location))


@dataclass(frozen=True)
class Move:
    """
    A single piece movement.

    origin is a point index or BAR; destination is a point index or OFF.
    """
    player: Side
    origin: Location
    destination: Location
    die: int

    def __post_init__(self):
        object.__setattr__(self, "player", Side(self.player))

    @property
    def is_entry(self) -> bool:
        return self.origin == BAR

    @property
    def is_bear_off(self) -> bool:
        return self.destination == OFF

    def sort_key(self) -> tuple:
        return (location_key(self.origin), location_key(self.destination), self.die)

    def __str__(self) -> str:
        return f"{self.origin}/{self.destination}({self.die})"


@dataclass(frozen=True)
class MoveSequence:
    """
    The ordered moves of one turn.

    Accepts any iterable of moves; stores a tuple.
    """
    moves: tuple[Move, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "moves", tuple(self.moves))

    def __iter__(self) -> Iterator[Move]:
        return iter(self.moves)

    def __len__(self) -> int:
        return len(self.moves)

    def __getitem__(self, index: int) -> Move:
        return self.moves[index]

    @property
    def player(self) -> Side | None:
        return self.moves[0].player if self.moves else None

    @property
    def dice(self) -> tuple[int, ...]:
        """Dice consumed, in order of use."""
        return tuple(m.die for m in self.moves)

    def pairs(self) -> tuple[tuple[Location, Location], ...]:
        return tuple((m.origin, m.destination) for m in self.moves)

    def sort_key(self) -> tuple:
        return tuple(m.sort_key() for m in self.moves)

    def __str__(self) -> str:
        return " ".join(str(m) for m in self.moves) or "(no moves)"
