"""
API Module - HTTP interface to the game registry.

Exposes hosted games via REST API. A client:
1. Creates a game (choosing external or automatic players)
2. Reads the legal sequences for the current roll
3. Submits one of them
4. Undoes sequences when needed

All state is in memory and game-scoped.
"""

from .schemas import (
    # Requests
    CreateGameRequest,
    PlayerSpec,
    SubmitMoveRequest,
    # Responses
    EndGameResponse,
    ErrorResponse,
    GameListResponse,
    GameResponse,
    HealthResponse,
    LegalMovesResponse,
    # Shared
    ErrorCode,
    GameStatus,
    PlayerInfo,
    PlayerKind,
    SequenceModel,
)
from .service import APIService, service_with_config
from .app import create_app

__all__ = [
    # Requests
    "CreateGameRequest",
    "PlayerSpec",
    "SubmitMoveRequest",
    # Responses
    "EndGameResponse",
    "ErrorResponse",
    "GameListResponse",
    "GameResponse",
    "HealthResponse",
    "LegalMovesResponse",
    # Shared
    "ErrorCode",
    "GameStatus",
    "PlayerInfo",
    "PlayerKind",
    "SequenceModel",
    # Service
    "APIService",
    "service_with_config",
    "create_app",
]
