"""
Move Executor - The single point of state mutation.

All committed state changes go through the executor:
- begin_turn: put rolled dice on the board
- execute: apply a move sequence and record it in the history ledger
- pass_turn: hand the turn to the other player
- undo: pop the ledger and apply the recorded inverse

Design principles:
- Works on copies: the state passed in is never modified
- Atomic: a sequence is applied completely or not at all
- The ledger stores inverse deltas (moves plus hit flags), not snapshots
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Iterator
import logging

from .board import BoardState, Side
from .errors import EmptyHistory, IllegalStateTransition
from .move import MoveSequence


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryEntry:
    """
    One applied turn.

    `dice` are the dice remaining before the sequence was applied;
    `hits[i]` records whether move i sent an opposing piece to the bar.
    """
    player: Side
    dice: tuple[int, ...]
    sequence: MoveSequence
    hits: tuple[bool, ...]


class History:
    """
    Append-only ledger of applied turns.

    Readable by anyone; only the MoveExecutor pushes and pops.
    """

    def __init__(self, entries: Iterable[HistoryEntry] = ()):
        self._entries: list[HistoryEntry] = list(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self._entries)

    @property
    def last(self) -> HistoryEntry | None:
        return self._entries[-1] if self._entries else None

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    def _push(self, entry: HistoryEntry) -> None:
        self._entries.append(entry)

    def _pop(self) -> HistoryEntry:
        return self._entries.pop()


class MoveExecutor:
    """
    Applies validated move sequences and owns the history ledger.

    The executor does not re-derive legality: sequences must come from the
    MoveGenerator for the same state. The board's own occupancy checks still
    run and reject inconsistent moves with IllegalStateTransition.
    """

    def __init__(self, history: History | None = None):
        self.history = history if history is not None else History()

    def begin_turn(self, state: BoardState, dice: Iterable[int]) -> BoardState:
        """Return a new state with the turn's dice set."""
        new_state = state.copy()
        new_state.dice = tuple(dice)
        return new_state

    def execute(self, state: BoardState, sequence: MoveSequence) -> BoardState:
        """
        Apply a full sequence and record it.

        Returns the new committed state; `state` itself is unchanged.
        """
        new_state = state.copy()
        remaining = list(state.dice)
        hits = []

        for move in sequence:
            if move.player != state.active_player:
                raise IllegalStateTransition(
                    f"{move.player.name} moved on {state.active_player.name}'s turn"
                )
            if move.die not in remaining:
                raise IllegalStateTransition(f"Die {move.die} is not available")
            hits.append(new_state.apply_primitive(move))
            remaining.remove(move.die)

        new_state.dice = tuple(remaining)
        self.history._push(HistoryEntry(
            player=state.active_player,
            dice=state.dice,
            sequence=sequence,
            hits=tuple(hits),
        ))
        logger.debug("Executed %s for %s", sequence, state.active_player.name)
        return new_state

    def pass_turn(self, state: BoardState) -> BoardState:
        """Return a new state with the other player on turn and no dice."""
        new_state = state.copy()
        new_state.active_player = state.active_player.opponent
        new_state.dice = ()
        return new_state

    def undo(self, state: BoardState) -> BoardState:
        """
        Revert the most recent entry.

        The restored state has the undone player on turn with the dice they
        held before moving. Raises EmptyHistory if nothing was recorded.
        """
        if not self.history:
            raise EmptyHistory("No move to undo")

        entry = self.history.last
        new_state = state.copy()
        for move, hit in reversed(list(zip(entry.sequence, entry.hits))):
            new_state.revert_primitive(move, hit)
        new_state.active_player = entry.player
        new_state.dice = entry.dice

        self.history._pop()
        logger.info("Undid %s for %s", entry.sequence, entry.player.name)
        return new_state
