"""
Session Module - Hosts games and drives turns.

A game is one TurnController:
- Created by the GameManager with its own board, dice and history
- Advanced turn by turn through the state machine
- Removed from the registry when the host ends it

Games never share mutable state; parallelism, if any, is per game.
"""

from .player import Player, PlayerStats
from .turn_controller import (
    ControllerConfig,
    TurnController,
    TurnOutcome,
    TurnPhase,
    TurnResult,
)
from .manager import Game, GameManager

__all__ = [
    "Player",
    "PlayerStats",
    "ControllerConfig",
    "TurnController",
    "TurnOutcome",
    "TurnPhase",
    "TurnResult",
    "Game",
    "GameManager",
]
