"""
Move Generator - Enumerates all legal move sequences for a roll.

The generator is used by:
1. The turn controller to build the candidate set offered to a player
2. Bots to pick a sequence
3. Validation (is this sequence in the legal set?)

Design: depth-first search over the remaining dice on a scratch copy of
the board. Each step applies one primitive, recurses, then reverts it, so
the caller's state is never touched. The rules engine is the only legality
oracle.

Policy:
- Only maximal-length sequences are legal (use as many dice as possible)
- If only one of two different dice can be used, the higher one must be
- Orderings of the same moves that end in the same position are one
  sequence: the first of them in sort order
- Output is sorted by (origin, destination, die) of each move in turn
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Sequence
import logging

from .board import BoardState
from .move import Move, MoveSequence
from .rules import RulesEngine


logger = logging.getLogger(__name__)


def position_key(state: BoardState, moves: Iterable[Move]) -> tuple:
    """
    Identity of a search node: the board reached and the moves used so far.

    The remaining dice follow from the moves used, so two prefixes with the
    same key have exactly the same continuations.
    """
    return (
        tuple(state.points),
        tuple(state.bar),
        tuple(state.borne_off),
        tuple(sorted(moves, key=Move.sort_key)),
    )


@dataclass
class MoveGenerator:
    """
    Generates legal move sequences for the active player.
    """
    rules: RulesEngine = field(default_factory=RulesEngine)

    def legal_sequences(
        self,
        state: BoardState,
        dice: Sequence[int] | None = None,
    ) -> Iterator[MoveSequence]:
        """
        Yield the legal sequences for `dice` (default: state.dice).

        The search runs on the first next() call, not when this is called.
        The iterator is single-use. An empty iterator means the player has
        no legal move.
        """
        yield from self.legal_sequence_list(state, dice)

    def legal_sequence_list(
        self,
        state: BoardState,
        dice: Sequence[int] | None = None,
    ) -> list[MoveSequence]:
        """
        All legal sequences, stably ordered.

        Passing `dice` gives a raw roll which is expanded for doubles;
        otherwise the state's remaining dice are used as-is.
        """
        if dice is None:
            remaining = tuple(state.dice)
        else:
            remaining = self.rules.expand_dice(dice)

        if not remaining or self.rules.is_game_over(state) is not None:
            return []

        scratch = state.copy()
        scratch.dice = remaining
        found: list[tuple[Move, ...]] = []
        self._explore(scratch, [], found, set())

        longest = max(len(seq) for seq in found)
        if longest == 0:
            return []

        candidates = [seq for seq in found if len(seq) == longest]
        if longest == 1 and len(set(remaining)) > 1:
            highest = max(seq[0].die for seq in candidates)
            candidates = [seq for seq in candidates if seq[0].die == highest]

        candidates.sort(key=lambda seq: tuple(m.sort_key() for m in seq))
        logger.debug(
            "Generated %d sequences of length %d for dice %s",
            len(candidates), longest, remaining,
        )
        return [MoveSequence(seq) for seq in candidates]

    def sequence_key(self, state: BoardState, sequence: Iterable[Move]) -> tuple | None:
        """
        Play `sequence` move by move on a copy of `state`.

        Returns the position key of the end node, shared by every ordering
        of the same moves that ends in the same position, or None if a move
        is illegal at the point it is played.
        """
        scratch = state.copy()
        played = []
        for move in sequence:
            if not self.rules.is_legal(scratch, move):
                return None
            scratch.apply_primitive(move)
            remaining = list(scratch.dice)
            remaining.remove(move.die)
            scratch.dice = tuple(remaining)
            played.append(move)
        return position_key(scratch, played)

    def _explore(
        self,
        scratch: BoardState,
        prefix: list[Move],
        found: list[tuple[Move, ...]],
        seen: set[tuple],
    ) -> None:
        """
        Depth-first search; records every sequence that cannot be extended.

        Moves are tried in sort order, so the first prefix to reach a node is
        the smallest one. Later prefixes reaching the same node are dropped.
        """
        key = position_key(scratch, prefix)
        if key in seen:
            return
        seen.add(key)

        moves = self.rules.legal_moves(scratch)
        if not moves:
            found.append(tuple(prefix))
            return

        for move in moves:
            saved_dice = scratch.dice
            hit = scratch.apply_primitive(move)
            remaining = list(saved_dice)
            remaining.remove(move.die)
            scratch.dice = tuple(remaining)
            prefix.append(move)
            try:
                self._explore(scratch, prefix, found, seen)
            finally:
                prefix.pop()
                scratch.dice = saved_dice
                scratch.revert_primitive(move, hit)
