"""
Game Manager - Registry of independent games.

Each game is one TurnController owned by one Game record. Games share
nothing: no board, no dice source, no history. The registry lock only
guards the id -> game mapping; turn processing inside a game is
single-threaded.

This is the facade a hosting layer (API, CLI, GUI) talks to:
- new_game(players) -> (game_id, state)
- get_state(game_id) -> snapshot
- get_legal_moves(game_id) -> candidate sequences
- submit_move(game_id, sequence) -> new state | IllegalChoice
- undo(game_id) -> previous state | EmptyHistory
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence
import logging
import threading
import time
import uuid

from ..engine_core.board import BoardState, BoardTopology
from ..engine_core.dice import DiceSource, RandomDice
from ..engine_core.errors import GameNotFound
from ..engine_core.move import MoveSequence
from ..engine_core.snapshot import GameSnapshot, restore_state
from .player import Player
from .turn_controller import ControllerConfig, TurnController


logger = logging.getLogger(__name__)


@dataclass
class Game:
    """
    One hosted game.
    """
    game_id: str
    controller: TurnController
    created_at: float
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def players(self) -> list[Player]:
        return list(self.controller.players.values())

    def is_active(self) -> bool:
        return not self.controller.is_over


class GameManager:
    """
    Manages hosted games.

    Responsibilities:
    - Create games with fresh controllers
    - Route hosting-layer calls to the right controller
    - Clean up finished games

    No persistence: callers keep snapshots if they need them.
    """

    def __init__(
        self,
        topology: BoardTopology | None = None,
        config: ControllerConfig | None = None,
        dice_factory: Callable[[], DiceSource] | None = None,
    ):
        self.topology = topology or BoardTopology()
        self.config = config or ControllerConfig()
        self.dice_factory = dice_factory or (lambda: RandomDice(faces=self.topology.die_faces))
        self._games: dict[str, Game] = {}
        self._lock = threading.Lock()

    def new_game(
        self,
        players: Sequence[Player],
        dice: DiceSource | None = None,
        topology: BoardTopology | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> tuple[str, BoardState]:
        """
        Create a game and play up to the first external decision.

        Returns the game id and the current state: the starting position
        with the opening roll, unless automatic players already moved.
        """
        controller = TurnController(
            players,
            topology=topology or self.topology,
            dice=dice or self.dice_factory(),
            config=self.config,
        )
        return self._register(controller, metadata), controller.state

    def restore_game(
        self,
        snapshot: GameSnapshot,
        players: Sequence[Player],
        dice: DiceSource | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> tuple[str, BoardState]:
        """Host a game rebuilt from a snapshot (history included)."""
        state, history = restore_state(snapshot)
        controller = TurnController(
            players,
            dice=dice or self.dice_factory(),
            config=self.config,
            state=state,
            history=history,
        )
        return self._register(controller, metadata), controller.state

    def get_game(self, game_id: str) -> Game:
        with self._lock:
            game = self._games.get(game_id)
        if game is None:
            raise GameNotFound(f"Game {game_id} not found")
        return game

    def get_state(self, game_id: str) -> GameSnapshot:
        return self.get_game(game_id).controller.snapshot()

    def get_legal_moves(self, game_id: str) -> list[MoveSequence]:
        return self.get_game(game_id).controller.legal_sequences

    def submit_move(self, game_id: str, sequence: MoveSequence) -> BoardState:
        """
        Apply an external player's choice, then run automatic turns.

        Raises IllegalChoice if the sequence is not legal; the game is
        unchanged and waits for another submission.
        """
        controller = self.get_game(game_id).controller
        controller.submit(sequence)
        controller.advance()
        return controller.state

    def advance(self, game_id: str) -> BoardState:
        """Run automatic turns (e.g. after an undo handed the turn to a bot)."""
        controller = self.get_game(game_id).controller
        controller.advance()
        return controller.state

    def undo(self, game_id: str) -> BoardState:
        """
        Revert back to the last decision of an external player.

        Automatic players' replies are reverted along with it, so the
        external player is on turn again with the dice they had. If only
        automatic turns are left in the history, they are replayed instead
        of leaving a bot waiting. Raises EmptyHistory.
        """
        controller = self.get_game(game_id).controller
        state = controller.undo()
        reverted = 1
        while controller.active_player.adapter is not None and controller.history:
            state = controller.undo()
            reverted += 1
        if controller.active_player.adapter is not None:
            controller.advance()
            state = controller.state
        logger.info(
            "Game %s: undo (%d sequences), %s to move",
            game_id, reverted, state.active_player.name,
        )
        return state

    def end_game(self, game_id: str, reason: str = "completed") -> bool:
        """Remove a game from the registry. Returns False if unknown."""
        with self._lock:
            game = self._games.pop(game_id, None)
        if game is None:
            return False
        logger.info("Game %s ended (%s)", game_id, reason)
        return True

    def list_games(self) -> list[str]:
        with self._lock:
            return list(self._games)

    def list_active_games(self) -> list[str]:
        with self._lock:
            return [gid for gid, game in self._games.items() if game.is_active()]

    def cleanup_finished_games(self, max_age_seconds: int = 3600) -> list[str]:
        """
        Drop finished games older than max_age.

        Called periodically to free memory.
        """
        now = time.time()
        with self._lock:
            stale = [
                gid for gid, game in self._games.items()
                if not game.is_active() and now - game.created_at > max_age_seconds
            ]
        for game_id in stale:
            self.end_game(game_id, reason="stale")
        return stale

    def _register(self, controller: TurnController, metadata: dict[str, Any] | None) -> str:
        game_id = str(uuid.uuid4())
        controller.advance()
        game = Game(
            game_id=game_id,
            controller=controller,
            created_at=time.time(),
            metadata=metadata or {},
        )
        with self._lock:
            self._games[game_id] = game
        logger.info(
            "Created game %s (%s)",
            game_id, " vs ".join(p.name for p in game.players),
        )
        return game_id
