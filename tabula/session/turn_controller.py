"""
Turn Controller - The per-game turn state machine.

The loop:
1. AWAITING_ROLL: roll dice, generate the legal sequences
   (no legal sequence -> the turn is skipped, the other player rolls)
2. AWAITING_CHOICE: ask the active player's adapter, or wait for an
   external submit()
3. VALIDATING: reject anything not in the generated set (IllegalChoice)
4. APPLYING: the executor commits the sequence
5. CHECKING_END: winner -> GAME_OVER, otherwise switch player and go to 1

One controller owns one game. It is synchronous; the only blocking point
is an adapter's choose(), which can be bounded with choice_timeout.
Cancelling a turn rolls back to the last committed state, never to the
middle of a sequence.
"""

from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout, wait
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Sequence
import logging

from ..engine_core.board import BoardState, BoardTopology, Side
from ..engine_core.dice import DiceSource, RandomDice
from ..engine_core.errors import IllegalChoice, InvalidPhase, TurnCancelled
from ..engine_core.executor import History, MoveExecutor
from ..engine_core.move import Move, MoveSequence
from ..engine_core.move_generator import MoveGenerator
from ..engine_core.rules import RulesEngine
from ..engine_core.snapshot import GameSnapshot, snapshot_state
from .player import Player


logger = logging.getLogger(__name__)


class TurnPhase(Enum):
    """State of the turn controller."""
    AWAITING_ROLL = "awaiting_roll"
    AWAITING_CHOICE = "awaiting_choice"
    VALIDATING = "validating"
    APPLYING = "applying"
    CHECKING_END = "checking_end"
    GAME_OVER = "game_over"


class TurnOutcome(Enum):
    PLAYED = "played"
    SKIPPED = "skipped"
    GAME_OVER = "game_over"


@dataclass
class TurnResult:
    """
    Result of one completed turn.
    """
    player: Side
    dice: tuple[int, ...]
    outcome: TurnOutcome
    sequence: MoveSequence | None = None
    hits: int = 0
    borne_off: int = 0
    winner: Side | None = None

    def describe(self) -> str:
        if self.outcome is TurnOutcome.SKIPPED:
            return f"{self.player.name} {self.dice}: no legal moves"
        text = f"{self.player.name} {self.dice}: {self.sequence}"
        if self.winner is not None:
            text += f" - {self.winner.name} wins"
        return text


@dataclass
class ControllerConfig:
    """
    Controller limits.

    choice_timeout: seconds an adapter may take to choose (None = no limit)
    max_reprompts: extra attempts after an adapter returns an illegal choice
    max_auto_turns: safety limit for one advance() call
    max_consecutive_skips: stop advance() when both players keep skipping
    """
    choice_timeout: float | None = None
    max_reprompts: int = 3
    max_auto_turns: int = 1000
    max_consecutive_skips: int = 50


class TurnController:
    """
    Drives one game from the starting position to GAME_OVER.

    Usage:
        controller = TurnController([white, black], dice=RandomDice(seed=1))

        # Fully automatic players
        winner = controller.play_game()

        # Or externally driven
        controller.roll()
        candidates = controller.legal_sequences
        controller.submit(candidates[0])
    """

    def __init__(
        self,
        players: Sequence[Player],
        topology: BoardTopology | None = None,
        dice: DiceSource | None = None,
        config: ControllerConfig | None = None,
        state: BoardState | None = None,
        history: History | None = None,
    ):
        if len(players) != 2 or {p.side for p in players} != set(Side):
            raise ValueError("A game needs exactly one WHITE and one BLACK player")

        if state is not None:
            topology = state.topology
        self.topology = topology or BoardTopology()
        self.players: dict[Side, Player] = {p.side: p for p in players}
        self.rules = RulesEngine(self.topology)
        self.generator = MoveGenerator(self.rules)
        self.executor = MoveExecutor(history)
        self.dice_source = dice or RandomDice(faces=self.topology.die_faces)
        self.config = config or ControllerConfig()

        self._state = state if state is not None else BoardState.initial(self.topology)
        self._committed = self._state
        self._legal: list[MoveSequence] = []
        self._legal_set: frozenset[MoveSequence] = frozenset()

        self.turn_number = len(self.executor.history)
        self.turn_log: list[TurnResult] = []
        self.winner: Side | None = self.rules.is_game_over(self._state)

        if self.winner is not None:
            self.phase = TurnPhase.GAME_OVER
        elif self._state.dice:
            # Restored in the middle of a turn
            self._set_candidates(self.generator.legal_sequence_list(self._state))
            self.phase = TurnPhase.AWAITING_CHOICE
        else:
            self.phase = TurnPhase.AWAITING_ROLL

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def state(self) -> BoardState:
        """Copy of the current board (including rolled dice)."""
        return self._state.copy()

    @property
    def history(self) -> History:
        return self.executor.history

    @property
    def active_player(self) -> Player:
        return self.players[self._state.active_player]

    @property
    def legal_sequences(self) -> list[MoveSequence]:
        """Candidates for the current roll (empty unless AWAITING_CHOICE)."""
        return list(self._legal)

    @property
    def is_over(self) -> bool:
        return self.phase is TurnPhase.GAME_OVER

    def snapshot(self) -> GameSnapshot:
        return snapshot_state(self._state, self.executor.history)

    # ------------------------------------------------------------------
    # State machine steps
    # ------------------------------------------------------------------

    def roll(self) -> tuple[int, ...]:
        """
        Roll for the active player and generate the candidate set.

        Returns the expanded dice. If no sequence is legal the turn is
        skipped immediately and the controller is back in AWAITING_ROLL.
        """
        self._require(TurnPhase.AWAITING_ROLL, "roll")

        values = self.dice_source.roll(2)
        for value in values:
            if not 1 <= value <= self.topology.die_faces:
                raise ValueError(f"Dice source returned {value}")
        dice = self.rules.expand_dice(values)

        self._state = self.executor.begin_turn(self._state, dice)
        self._set_candidates(self.generator.legal_sequence_list(self._state))
        self.phase = TurnPhase.AWAITING_CHOICE
        logger.debug(
            "%s rolled %s (%d candidates)",
            self._state.active_player.name, values, len(self._legal),
        )

        if not self._legal:
            self._skip_turn()
        return dice

    def submit(self, sequence: MoveSequence | Iterable[Move]) -> TurnResult:
        """
        Validate and apply the active player's choice.

        Raises IllegalChoice (controller stays in AWAITING_CHOICE) if the
        sequence is neither one of the generated candidates nor a playable
        reordering of one that ends in the same position.
        """
        self._require(TurnPhase.AWAITING_CHOICE, "submit a move")
        if not isinstance(sequence, MoveSequence):
            sequence = MoveSequence(sequence)

        self.phase = TurnPhase.VALIDATING
        if not self._is_candidate(sequence):
            self.phase = TurnPhase.AWAITING_CHOICE
            logger.warning(
                "Rejected %s for %s: not a legal sequence for %s",
                sequence, self._state.active_player.name, self._state.dice,
            )
            raise IllegalChoice(f"{sequence} is not legal for dice {self._state.dice}")

        self.phase = TurnPhase.APPLYING
        before = self._state
        player = self.players[before.active_player]
        try:
            after = self.executor.execute(before, sequence)
        except Exception:
            self.phase = TurnPhase.AWAITING_CHOICE
            raise

        self.phase = TurnPhase.CHECKING_END
        entry = self.executor.history.last
        hits = sum(entry.hits)
        borne_off = after.born_off_count(player.side) - before.born_off_count(player.side)

        player.stats.turns_played += 1
        player.stats.moves_made += len(sequence)
        player.stats.pieces_hit += hits
        player.stats.pieces_borne_off += borne_off
        self.turn_number += 1

        winner = self.rules.is_game_over(after)
        if winner is not None:
            self._state = after
            self.winner = winner
            self.players[winner].stats.games_won += 1
            self.phase = TurnPhase.GAME_OVER
            outcome = TurnOutcome.GAME_OVER
            logger.info("Game over: %s wins after %d turns", winner.name, self.turn_number)
        else:
            self._state = self.executor.pass_turn(after)
            self.phase = TurnPhase.AWAITING_ROLL
            outcome = TurnOutcome.PLAYED

        self._committed = self._state
        self._set_candidates([])

        result = TurnResult(
            player=player.side,
            dice=before.dice,
            outcome=outcome,
            sequence=sequence,
            hits=hits,
            borne_off=borne_off,
            winner=winner,
        )
        self.turn_log.append(result)
        logger.info("Turn %d: %s", self.turn_number, result.describe())
        return result

    def undo(self) -> BoardState:
        """
        Revert the most recently applied sequence.

        The player who made it is back on turn with the same dice. Raises
        EmptyHistory if nothing has been applied.
        """
        if self.phase in (TurnPhase.VALIDATING, TurnPhase.APPLYING, TurnPhase.CHECKING_END):
            raise InvalidPhase(f"Cannot undo while {self.phase.value}")

        restored = self.executor.undo(self._state)
        if self.winner is not None:
            self.players[self.winner].stats.games_won -= 1
            self.winner = None

        self._state = restored
        self._committed = restored
        self._set_candidates(self.generator.legal_sequence_list(restored))
        self.phase = TurnPhase.AWAITING_CHOICE
        self.turn_number = max(0, self.turn_number - 1)
        return self.state

    def cancel_turn(self) -> bool:
        """
        Abandon the pending choice and roll back to the last committed state.

        The active player's adapter is told to give up a pending choose().
        Returns False if there was nothing to cancel.
        """
        if self.phase is not TurnPhase.AWAITING_CHOICE:
            return False

        adapter = self.active_player.adapter
        if adapter is not None:
            adapter.cancel()
        self._state = self._committed
        if self._state.dice:
            self._set_candidates(self.generator.legal_sequence_list(self._state))
            self.phase = TurnPhase.AWAITING_CHOICE
        else:
            self._set_candidates([])
            self.phase = TurnPhase.AWAITING_ROLL
        logger.warning("Turn cancelled for %s", self._state.active_player.name)
        return True

    # ------------------------------------------------------------------
    # Adapter-driven play
    # ------------------------------------------------------------------

    def play_turn(self) -> TurnResult:
        """
        Play one full turn for the active player using their adapter.

        Re-prompts on IllegalChoice up to config.max_reprompts times.
        """
        if self.phase is TurnPhase.AWAITING_ROLL:
            self.roll()
            if self.phase is TurnPhase.AWAITING_ROLL:
                return self.turn_log[-1]

        self._require(TurnPhase.AWAITING_CHOICE, "play a turn")
        if not self._legal:
            return self._skip_turn()

        player = self.active_player
        if player.adapter is None:
            raise InvalidPhase(f"{player.name} has no adapter; submit moves externally")

        attempts = self.config.max_reprompts + 1
        for attempt in range(1, attempts + 1):
            choice = self._ask_adapter(player)
            try:
                return self.submit(choice)
            except IllegalChoice:
                logger.warning(
                    "%s (%s) proposed an illegal sequence (attempt %d/%d)",
                    player.name, player.adapter.get_name(), attempt, attempts,
                )
        raise IllegalChoice(f"{player.name} made no legal choice in {attempts} attempts")

    def advance(self) -> list[TurnResult]:
        """
        Run automatic turns until an external player must choose.

        Rolls for the next player as needed and skips turns without legal
        moves. Stops at GAME_OVER, at a player without adapter, or at the
        configured safety limits.
        """
        results: list[TurnResult] = []
        skips = 0

        while len(results) < self.config.max_auto_turns:
            if self.phase is TurnPhase.GAME_OVER:
                break

            if self.phase is TurnPhase.AWAITING_ROLL:
                self.roll()
                if self.phase is TurnPhase.AWAITING_CHOICE:
                    continue
                result = self.turn_log[-1]
            elif not self._legal:
                result = self._skip_turn()
            elif self.active_player.adapter is None:
                break
            else:
                result = self.play_turn()

            results.append(result)
            if result.outcome is TurnOutcome.SKIPPED:
                skips += 1
                if skips >= self.config.max_consecutive_skips:
                    logger.warning("Stopping after %d consecutive skipped turns", skips)
                    break
            else:
                skips = 0

        return results

    def play_game(self, max_turns: int | None = None) -> Side | None:
        """
        Play until the game ends (or max_turns turns were played).

        Every player needs an adapter. Returns the winner, if any.
        """
        turns = 0
        while self.phase is not TurnPhase.GAME_OVER:
            if max_turns is not None and turns >= max_turns:
                break
            self.play_turn()
            turns += 1
        return self.winner

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, phase: TurnPhase, action: str) -> None:
        if self.phase is not phase:
            raise InvalidPhase(f"Cannot {action} while {self.phase.value}")

    def _set_candidates(self, candidates: list[MoveSequence]) -> None:
        self._legal = candidates
        self._legal_set = frozenset(candidates)

    def _is_candidate(self, sequence: MoveSequence) -> bool:
        """
        A listed candidate, or another playable ordering of one.

        Candidates list one ordering per set of moves and end position.
        """
        if sequence in self._legal_set:
            return True
        if not self._legal or len(sequence) != len(self._legal[0]):
            return False
        key = self.generator.sequence_key(self._state, sequence)
        if key is None:
            return False
        return any(
            self.generator.sequence_key(self._state, candidate) == key
            for candidate in self._legal
        )

    def _skip_turn(self) -> TurnResult:
        player = self.players[self._state.active_player]
        result = TurnResult(
            player=player.side,
            dice=self._state.dice,
            outcome=TurnOutcome.SKIPPED,
        )
        player.stats.turns_skipped += 1

        self._state = self.executor.pass_turn(self._state)
        self._committed = self._state
        self._set_candidates([])
        self.phase = TurnPhase.AWAITING_ROLL

        self.turn_log.append(result)
        logger.info("%s", result.describe())
        return result

    def _ask_adapter(self, player: Player) -> MoveSequence:
        """
        Call the adapter's choose(), bounded by config.choice_timeout.

        On timeout the turn is cancelled (which withdraws the request from
        the adapter) and the worker gets one more timeout period to finish.
        """
        view = self._state.copy()
        candidates = list(self._legal)
        timeout = self.config.choice_timeout
        if timeout is None:
            return player.adapter.choose(view, candidates)

        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tabula-choice")
        future = pool.submit(player.adapter.choose, view, candidates)
        try:
            return future.result(timeout=timeout)
        except FutureTimeout:
            self.cancel_turn()
            wait([future], timeout=timeout)
            if not future.done():
                logger.warning(
                    "%s (%s) ignored cancellation; worker left running",
                    player.name, player.adapter.get_name(),
                )
            raise TurnCancelled(
                f"{player.name} did not choose within {timeout}s"
            ) from None
        finally:
            pool.shutdown(wait=False)
