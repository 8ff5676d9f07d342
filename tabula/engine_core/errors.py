"""
Engine errors.

Every error is local to one game instance and recoverable by the hosting
layer. Rules and move generation never raise for gameplay questions; only
the executor, the turn controller and the game manager do.

Having no legal moves is not an error: the turn controller reports it as a
skipped turn.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for engine errors. Carries a structured error code."""
    error_code = "ENGINE_ERROR"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class IllegalStateTransition(EngineError):
    """
    A mutation contradicts current occupancy.

    Always a programming error: the caller bypassed the rules engine.
    """
    error_code = "ILLEGAL_STATE_TRANSITION"


class IllegalChoice(EngineError):
    """A proposed move sequence is not in the legal set. Re-prompt."""
    error_code = "ILLEGAL_CHOICE"


class EmptyHistory(EngineError):
    """Undo requested with nothing to undo."""
    error_code = "EMPTY_HISTORY"


class InvalidPhase(EngineError):
    """Operation not allowed in the controller's current phase."""
    error_code = "INVALID_PHASE"


class TurnCancelled(EngineError):
    """A pending choice was abandoned; committed state is intact."""
    error_code = "TURN_CANCELLED"


class GameNotFound(EngineError, KeyError):
    """No game registered under the given id."""
    error_code = "GAME_NOT_FOUND"

    def __str__(self) -> str:
        return self.message
