"""
API Service - Business logic layer between API and engine.

The service:
1. Translates API requests to GameManager calls
2. Builds players and dice sources from request options
3. Converts engine errors into structured ErrorResponse objects
4. Formats responses

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging

from ..bots import FirstLegalPolicy, RandomPolicy
from ..engine_core.board import Side
from ..engine_core.dice import DiceSource, FixedDice, RandomDice
from ..engine_core.errors import EngineError
from ..session import ControllerConfig, Game, GameManager, Player
from .schemas import (
    CreateGameRequest,
    EndGameResponse,
    ErrorCode,
    ErrorResponse,
    GameListResponse,
    GameResponse,
    GameStatus,
    LegalMovesResponse,
    PlayerInfo,
    PlayerKind,
    PlayerSpec,
    SequenceModel,
    SubmitMoveRequest,
)


logger = logging.getLogger(__name__)


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()

        game = service.create_game(CreateGameRequest())
        moves = service.get_legal_moves(game.game_id)
        game = service.submit_move(game.game_id, SubmitMoveRequest(moves=...))
    """
    game_manager: GameManager = field(default_factory=GameManager)
    default_dice_seed: int | None = None

    def create_game(self, request: CreateGameRequest) -> GameResponse | ErrorResponse:
        players = [
            self._build_player(spec, side, index)
            for index, (spec, side) in enumerate(zip(request.players, Side))
        ]
        try:
            dice = self._build_dice(request)
            game_id, _ = self.game_manager.new_game(
                players,
                dice=dice,
                metadata={"kinds": {p.player_id: s.kind for p, s in zip(players, request.players)}},
            )
        except ValueError as e:
            return ErrorResponse(error=str(e), error_code=ErrorCode.VALIDATION_ERROR)
        except EngineError as e:
            return self._error(e)
        return self._game_response(self.game_manager.get_game(game_id))

    def get_game(self, game_id: str) -> GameResponse | ErrorResponse:
        try:
            game = self.game_manager.get_game(game_id)
        except EngineError as e:
            return self._error(e)
        return self._game_response(game)

    def get_legal_moves(self, game_id: str) -> LegalMovesResponse | ErrorResponse:
        try:
            game = self.game_manager.get_game(game_id)
        except EngineError as e:
            return self._error(e)

        sequences = game.controller.legal_sequences
        return LegalMovesResponse(
            game_id=game_id,
            dice=list(game.controller.state.dice),
            sequences=[SequenceModel.from_sequence(s) for s in sequences],
            count=len(sequences),
        )

    def submit_move(
        self,
        game_id: str,
        request: SubmitMoveRequest,
    ) -> GameResponse | ErrorResponse:
        try:
            self.game_manager.submit_move(game_id, request.to_sequence())
            game = self.game_manager.get_game(game_id)
        except EngineError as e:
            return self._error(e)
        return self._game_response(game)

    def undo(self, game_id: str) -> GameResponse | ErrorResponse:
        try:
            self.game_manager.undo(game_id)
            game = self.game_manager.get_game(game_id)
        except EngineError as e:
            return self._error(e)
        return self._game_response(game)

    def end_game(self, game_id: str, reason: str = "user_ended") -> EndGameResponse:
        success = self.game_manager.end_game(game_id, reason)
        return EndGameResponse(success=success, game_id=game_id)

    def list_games(self) -> GameListResponse:
        games = self.game_manager.list_games()
        return GameListResponse(games=games, count=len(games))

    # =========================================================================
    # Helpers
    # =========================================================================

    def _build_player(self, spec: PlayerSpec, side: Side, index: int) -> Player:
        adapter = None
        if spec.kind == PlayerKind.RANDOM:
            adapter = RandomPolicy(seed=spec.seed)
        elif spec.kind == PlayerKind.FIRST_LEGAL:
            adapter = FirstLegalPolicy()
        return Player(
            player_id=f"player_{index + 1}",
            name=spec.name,
            side=side,
            adapter=adapter,
        )

    def _build_dice(self, request: CreateGameRequest) -> DiceSource:
        faces = self.game_manager.topology.die_faces
        if request.fixed_dice:
            bad = [v for v in request.fixed_dice if not 1 <= v <= faces]
            if bad:
                raise ValueError(f"Die values out of range 1..{faces}: {bad}")
            return FixedDice(request.fixed_dice, cycle=True, faces=faces)
        seed = request.dice_seed if request.dice_seed is not None else self.default_dice_seed
        return RandomDice(seed=seed, faces=faces)

    def _error(self, error: EngineError) -> ErrorResponse:
        try:
            code = ErrorCode(error.error_code)
        except ValueError:
            code = ErrorCode.INTERNAL_ERROR
        if code is not ErrorCode.GAME_NOT_FOUND:
            logger.warning("%s: %s", code.value, error)
        return ErrorResponse(error=str(error), error_code=code)

    def _game_response(self, game: Game) -> GameResponse:
        controller = game.controller
        state = controller.state
        kinds = game.metadata.get("kinds", {})
        players = []
        for side in Side:
            player = controller.players[side]
            default_kind = PlayerKind.EXTERNAL if player.adapter is None else PlayerKind.RANDOM
            players.append(PlayerInfo(
                player_id=player.player_id,
                name=player.name,
                side=int(side),
                kind=kinds.get(player.player_id, default_kind),
                is_current_turn=(state.active_player == side and not controller.is_over),
                pip_count=state.pip_count(side),
                turns_played=player.stats.turns_played,
                turns_skipped=player.stats.turns_skipped,
                moves_made=player.stats.moves_made,
                pieces_hit=player.stats.pieces_hit,
                pieces_borne_off=player.stats.pieces_borne_off,
                games_won=player.stats.games_won,
            ))

        return GameResponse(
            game_id=game.game_id,
            status=GameStatus(controller.phase.value),
            turn_number=controller.turn_number,
            winner=int(controller.winner) if controller.winner is not None else None,
            players=players,
            snapshot=controller.snapshot(),
            last_turns=[r.describe() for r in controller.turn_log[-10:]],
        )


def service_with_config(
    choice_timeout: float | None = None,
    dice_seed: int | None = None,
) -> APIService:
    """Build a service whose games use the given controller settings."""
    manager = GameManager(config=ControllerConfig(choice_timeout=choice_timeout))
    return APIService(game_manager=manager, default_dice_seed=dice_seed)
