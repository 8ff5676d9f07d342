"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between hosting clients and the engine.
Board state travels as the engine's GameSnapshot.

Error Codes:
- GAME_NOT_FOUND: Game does not exist or has been ended
- ILLEGAL_CHOICE: Submitted sequence is not legal for the current roll
- EMPTY_HISTORY: Nothing to undo
- INVALID_PHASE: Operation not allowed in the game's current phase
- TURN_CANCELLED: The pending turn was abandoned
- VALIDATION_ERROR: Malformed request
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ..engine_core.move import MoveSequence
from ..engine_core.snapshot import GameSnapshot, MoveModel


# =============================================================================
# Enums
# =============================================================================

class GameStatus(str, Enum):
    """Turn controller phase."""
    AWAITING_ROLL = "awaiting_roll"
    AWAITING_CHOICE = "awaiting_choice"
    VALIDATING = "validating"
    APPLYING = "applying"
    CHECKING_END = "checking_end"
    GAME_OVER = "game_over"


class PlayerKind(str, Enum):
    """Who makes the decisions for a seat."""
    EXTERNAL = "external"
    RANDOM = "random"
    FIRST_LEGAL = "first_legal"


class ErrorCode(str, Enum):
    """Structured error codes."""
    GAME_NOT_FOUND = "GAME_NOT_FOUND"
    ILLEGAL_CHOICE = "ILLEGAL_CHOICE"
    EMPTY_HISTORY = "EMPTY_HISTORY"
    INVALID_PHASE = "INVALID_PHASE"
    TURN_CANCELLED = "TURN_CANCELLED"
    ILLEGAL_STATE_TRANSITION = "ILLEGAL_STATE_TRANSITION"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class SequenceModel(BaseModel):
    """An ordered move sequence (one turn)."""
    moves: list[MoveModel] = Field(default_factory=list)

    @classmethod
    def from_sequence(cls, sequence: MoveSequence) -> "SequenceModel":
        return cls(moves=[MoveModel.from_move(m) for m in sequence])

    def to_sequence(self) -> MoveSequence:
        return MoveSequence(m.to_move() for m in self.moves)


class PlayerInfo(BaseModel):
    """Player information for display."""
    player_id: str
    name: str
    side: int = Field(description="0 = white, 1 = black")
    kind: PlayerKind
    is_current_turn: bool = False
    pip_count: int = 0
    turns_played: int = 0
    turns_skipped: int = 0
    moves_made: int = 0
    pieces_hit: int = 0
    pieces_borne_off: int = 0
    games_won: int = 0


# =============================================================================
# Requests
# =============================================================================

class PlayerSpec(BaseModel):
    """Seat configuration for a new game."""
    name: str = "Player"
    kind: PlayerKind = PlayerKind.EXTERNAL
    seed: Optional[int] = Field(None, description="Seed for random players")


class CreateGameRequest(BaseModel):
    """Create a new game. The first player plays white."""
    players: list[PlayerSpec] = Field(
        default_factory=lambda: [PlayerSpec(name="White"), PlayerSpec(name="Black")],
        min_length=2,
        max_length=2,
    )
    dice_seed: Optional[int] = None
    fixed_dice: Optional[list[int]] = Field(
        None, description="Die values to replay in order (cycled)"
    )


class SubmitMoveRequest(BaseModel):
    """Submit the active player's sequence."""
    moves: list[MoveModel] = Field(default_factory=list)

    def to_sequence(self) -> MoveSequence:
        return MoveSequence(m.to_move() for m in self.moves)


# =============================================================================
# Responses
# =============================================================================

class GameResponse(BaseModel):
    """Game status plus the full board snapshot."""
    game_id: str
    status: GameStatus
    turn_number: int = 0
    winner: Optional[int] = None
    players: list[PlayerInfo] = Field(default_factory=list)
    snapshot: GameSnapshot
    last_turns: list[str] = Field(
        default_factory=list, description="Human-readable recent turns"
    )


class LegalMovesResponse(BaseModel):
    """Candidate sequences for the current roll."""
    game_id: str
    dice: list[int] = Field(default_factory=list)
    sequences: list[SequenceModel] = Field(default_factory=list)
    count: int = 0


class GameListResponse(BaseModel):
    games: list[str] = Field(default_factory=list)
    count: int = 0


class EndGameResponse(BaseModel):
    success: bool
    game_id: str


class ErrorResponse(BaseModel):
    """Structured error response."""
    error: str
    error_code: ErrorCode
    details: Optional[dict] = None


class HealthResponse(BaseModel):
    status: str = "healthy"
    service: str = "tabula-engine"
    version: str = "0.1.0"
