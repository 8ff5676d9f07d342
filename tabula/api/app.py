"""
FastAPI Application - REST API for hosted games.

Endpoints:
    POST   /api/v1/games                Create a game
    GET    /api/v1/games                List games
    GET    /api/v1/games/{id}           Get game status and board snapshot
    DELETE /api/v1/games/{id}           End a game
    GET    /api/v1/games/{id}/moves     Legal sequences for the current roll
    POST   /api/v1/games/{id}/moves     Submit the active player's sequence
    POST   /api/v1/games/{id}/undo      Revert the last applied sequence
    GET    /health                      Health check

Automatic players (random, first_legal) move as soon as it is their turn,
so every response already includes their turns.

All responses are JSON with explicit Pydantic schemas.
"""

from typing import Annotated, Union
import logging

from .. import __version__
from ..config import Settings


logger = logging.getLogger(__name__)


# Engine error code -> HTTP status
STATUS_BY_ERROR = {
    "GAME_NOT_FOUND": 404,
    "ILLEGAL_CHOICE": 422,
    "VALIDATION_ERROR": 422,
    "EMPTY_HISTORY": 409,
    "INVALID_PHASE": 409,
    "TURN_CANCELLED": 409,
    "ILLEGAL_STATE_TRANSITION": 409,
    "INTERNAL_ERROR": 500,
}


def create_app(service=None, settings: Settings | None = None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)
        settings: Optional Settings (read from the environment if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI, Query
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .service import service_with_config
    from .schemas import (
        CreateGameRequest,
        EndGameResponse,
        ErrorResponse,
        GameListResponse,
        GameResponse,
        HealthResponse,
        LegalMovesResponse,
        SubmitMoveRequest,
    )

    settings = settings or Settings.from_env()

    app = FastAPI(
        title="Tabula Engine API",
        description="""
Deterministic backgammon rules engine with hosted games.

## Turn Flow

1. `POST /api/v1/games` creates a game and rolls for the first player
2. `GET /moves` lists every legal sequence for the current roll
3. `POST /moves` submits one of them; automatic opponents reply at once
4. `POST /undo` reverts the most recent sequence

## Error Codes

| Code | Status | Description |
|------|--------|-------------|
| `GAME_NOT_FOUND` | 404 | Game does not exist or has been ended |
| `ILLEGAL_CHOICE` | 422 | Sequence is not legal for the current roll |
| `EMPTY_HISTORY` | 409 | Nothing to undo |
| `INVALID_PHASE` | 409 | Not waiting for a move |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_service = service or service_with_config(
        choice_timeout=settings.choice_timeout,
        dice_seed=settings.dice_seed,
    )

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(error: ErrorResponse) -> JSONResponse:
        """Render an ErrorResponse with the status code for its error code."""
        return JSONResponse(
            status_code=STATUS_BY_ERROR.get(error.error_code.value, 400),
            content=error.model_dump(mode="json"),
        )

    def respond(result):
        if isinstance(result, ErrorResponse):
            return make_error_response(result)
        return result

    # =========================================================================
    # Game Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/games",
        response_model=GameResponse,
        status_code=201,
        responses={422: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Create a new game",
    )
    async def create_game(request: CreateGameRequest) -> Union[GameResponse, JSONResponse]:
        """
        Create a new game.

        The first player plays white. Pass `fixed_dice` for a reproducible
        sequence of rolls, or `dice_seed` for seeded random dice.
        """
        return respond(api_service.create_game(request))

    @app.get(
        "/api/v1/games",
        response_model=GameListResponse,
        tags=["Games"],
        summary="List games",
    )
    async def list_games() -> GameListResponse:
        return api_service.list_games()

    @app.get(
        "/api/v1/games/{game_id}",
        response_model=GameResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Get game status",
    )
    async def get_game(game_id: str) -> Union[GameResponse, JSONResponse]:
        """Get the current status and board snapshot of a game."""
        return respond(api_service.get_game(game_id))

    @app.delete(
        "/api/v1/games/{game_id}",
        response_model=EndGameResponse,
        tags=["Games"],
        summary="End a game",
    )
    async def end_game(
        game_id: str,
        reason: Annotated[str, Query(description="Reason for ending")] = "user_ended",
    ) -> EndGameResponse:
        """End a game and release resources."""
        return api_service.end_game(game_id, reason)

    # =========================================================================
    # Turn Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/games/{game_id}/moves",
        response_model=LegalMovesResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Turns"],
        summary="List legal sequences for the current roll",
    )
    async def get_legal_moves(game_id: str) -> Union[LegalMovesResponse, JSONResponse]:
        return respond(api_service.get_legal_moves(game_id))

    @app.post(
        "/api/v1/games/{game_id}/moves",
        response_model=GameResponse,
        responses={
            404: {"model": ErrorResponse, "description": "Game not found"},
            409: {"model": ErrorResponse, "description": "Not waiting for a move"},
            422: {"model": ErrorResponse, "description": "Illegal sequence"},
        },
        tags=["Turns"],
        summary="Submit a move sequence",
    )
    async def submit_move(
        game_id: str,
        request: SubmitMoveRequest,
    ) -> Union[GameResponse, JSONResponse]:
        """
        Submit the active player's sequence.

        An illegal sequence leaves the game unchanged; pick one of the
        sequences returned by `GET /moves` and try again.
        """
        return respond(api_service.submit_move(game_id, request))

    @app.post(
        "/api/v1/games/{game_id}/undo",
        response_model=GameResponse,
        responses={
            404: {"model": ErrorResponse},
            409: {"model": ErrorResponse, "description": "Nothing to undo"},
        },
        tags=["Turns"],
        summary="Undo the last sequence",
    )
    async def undo(game_id: str) -> Union[GameResponse, JSONResponse]:
        return respond(api_service.undo(game_id))

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(version=__version__)

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Tabula Engine API",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/health",
        }

    logger.info("API ready (env=%s)", settings.env)
    return app
