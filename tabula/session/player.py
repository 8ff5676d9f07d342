"""
Players - Identity, display label and statistics.

The rules layer only knows sides (WHITE/BLACK); a Player binds a side to a
name, an optional adapter and running statistics. A player without an
adapter moves through external submissions (GameManager.submit_move).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..engine_core.board import Side

if TYPE_CHECKING:
    from ..bots.policy import PlayerAdapter


@dataclass
class PlayerStats:
    """Running statistics, updated by the turn controller only."""
    turns_played: int = 0
    turns_skipped: int = 0
    moves_made: int = 0
    pieces_hit: int = 0
    pieces_borne_off: int = 0
    games_won: int = 0


@dataclass
class Player:
    """A seat at the table."""
    player_id: str
    name: str
    side: Side
    adapter: PlayerAdapter | None = None
    stats: PlayerStats = field(default_factory=PlayerStats)

    def __post_init__(self):
        self.side = Side(self.side)

    @property
    def is_automatic(self) -> bool:
        """True if the controller can move for this player on its own."""
        return self.adapter is not None
