"""
Engine Core - Deterministic board state, rules and move generation.

The engine is the runtime that:
1. Holds BoardState (points, bar, bear-off, active player, dice)
2. Decides legality of single moves (RulesEngine)
3. Enumerates legal move sequences (MoveGenerator)
4. Applies sequences and undoes them (MoveExecutor)
5. Projects state into lossless snapshots
"""

from .board import BAR, OFF, BoardState, BoardTopology, Location, Side, STANDARD_LAYOUT
from .move import Move, MoveSequence
from .rules import RulesEngine
from .move_generator import MoveGenerator
from .executor import MoveExecutor, History, HistoryEntry
from .dice import DiceSource, RandomDice, FixedDice
from .errors import (
    EngineError,
    IllegalStateTransition,
    IllegalChoice,
    EmptyHistory,
    InvalidPhase,
    TurnCancelled,
    GameNotFound,
)
from .snapshot import GameSnapshot, MoveModel, snapshot_state, restore_state

__all__ = [
    "BAR",
    "OFF",
    "BoardState",
    "BoardTopology",
    "Location",
    "Side",
    "STANDARD_LAYOUT",
    "Move",
    "MoveSequence",
    "RulesEngine",
    "MoveGenerator",
    "MoveExecutor",
    "History",
    "HistoryEntry",
    "DiceSource",
    "RandomDice",
    "FixedDice",
    "EngineError",
    "IllegalStateTransition",
    "IllegalChoice",
    "EmptyHistory",
    "InvalidPhase",
    "TurnCancelled",
    "GameNotFound",
    "GameSnapshot",
    "MoveModel",
    "snapshot_state",
    "restore_state",
]
