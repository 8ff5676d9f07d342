"""
Tests for the move executor and history ledger.
"""

import random

import pytest

from ..engine_core.board import OFF, BoardState, Side
from ..engine_core.errors import EmptyHistory, IllegalStateTransition
from ..engine_core.executor import History, MoveExecutor
from ..engine_core.move import Move, MoveSequence


def board_fields(state: BoardState):
    return (
        list(state.points), list(state.bar), list(state.borne_off),
        state.active_player, state.dice,
    )


class TestExecute:
    """Tests for applying sequences."""

    def test_execute_returns_new_state(self, start_state):
        executor = MoveExecutor()
        state = executor.begin_turn(start_state, (3, 5))
        seq = MoveSequence((Move(Side.WHITE, 12, 9, 3), Move(Side.WHITE, 12, 7, 5)))

        after = executor.execute(state, seq)

        assert state.piece_count_at(12, Side.WHITE) == 5
        assert after.piece_count_at(12, Side.WHITE) == 3
        assert after.piece_count_at(9, Side.WHITE) == 1
        assert after.piece_count_at(7, Side.WHITE) == 4
        assert after.dice == ()
        assert after.active_player is Side.WHITE

    def test_history_records_entry(self, start_state):
        executor = MoveExecutor()
        state = executor.begin_turn(start_state, (3, 5))
        seq = MoveSequence((Move(Side.WHITE, 23, 20, 3), Move(Side.WHITE, 20, 15, 5)))
        executor.execute(state, seq)

        assert len(executor.history) == 1
        entry = executor.history.last
        assert entry.player is Side.WHITE
        assert entry.dice == (3, 5)
        assert entry.sequence == seq
        assert entry.hits == (False, False)

    def test_records_hits(self, small_topology):
        state = BoardState.from_layout(
            small_topology, white={7: 3}, black={5: 2, 4: 1}, dice=(3, 2),
        )
        executor = MoveExecutor()
        after = executor.execute(state, MoveSequence((
            Move(Side.WHITE, 7, 4, 3),
            Move(Side.WHITE, 4, 2, 2),
        )))
        assert executor.history.last.hits == (True, False)
        assert after.bar_count(Side.BLACK) == 1

    def test_wrong_player_rejected(self, start_state):
        executor = MoveExecutor()
        state = executor.begin_turn(start_state, (3, 5))
        with pytest.raises(IllegalStateTransition):
            executor.execute(state, MoveSequence((Move(Side.BLACK, 11, 14, 3),)))
        assert len(executor.history) == 0

    def test_unavailable_die_rejected(self, start_state):
        executor = MoveExecutor()
        state = executor.begin_turn(start_state, (3, 5))
        with pytest.raises(IllegalStateTransition):
            executor.execute(state, MoveSequence((
                Move(Side.WHITE, 12, 9, 3),
                Move(Side.WHITE, 9, 6, 3),
            )))
        assert len(executor.history) == 0

    def test_pass_turn(self, start_state):
        executor = MoveExecutor()
        state = executor.begin_turn(start_state, (3, 5))
        passed = executor.pass_turn(state)
        assert passed.active_player is Side.BLACK
        assert passed.dice == ()
        assert state.active_player is Side.WHITE


class TestUndo:
    """Tests for reverting sequences."""

    def test_empty_history_raises(self, start_state):
        with pytest.raises(EmptyHistory):
            MoveExecutor().undo(start_state)

    def test_undo_restores_exact_state(self, small_topology):
        state = BoardState.from_layout(
            small_topology, white={7: 3}, black={5: 2, 4: 1}, dice=(3, 2),
        )
        executor = MoveExecutor()
        after = executor.execute(state, MoveSequence((
            Move(Side.WHITE, 7, 4, 3),
            Move(Side.WHITE, 4, 2, 2),
        )))
        passed = executor.pass_turn(after)

        restored = executor.undo(passed)

        assert board_fields(restored) == board_fields(state)
        assert len(executor.history) == 0

    def test_undo_bear_off(self, topology):
        state = BoardState.from_layout(
            topology, white={0: 1, 3: 1}, black={18: 15}, borne_off=(13, 0), dice=(4, 1),
        )
        executor = MoveExecutor()
        after = executor.execute(state, MoveSequence((
            Move(Side.WHITE, 3, OFF, 4),
            Move(Side.WHITE, 0, OFF, 1),
        )))
        assert after.born_off_count(Side.WHITE) == 15
        assert board_fields(executor.undo(after)) == board_fields(state)

    def test_random_play_undo_all(self, generator, start_state):
        """Apply many random sequences, then undo all of them in order."""
        rng = random.Random(11)
        executor = MoveExecutor()
        state = start_state
        seen = []

        for _ in range(30):
            roll = (rng.randint(1, 6), rng.randint(1, 6))
            state = executor.begin_turn(state, generator.rules.expand_dice(roll))
            candidates = generator.legal_sequence_list(state)
            if not candidates:
                state = executor.pass_turn(state)
                continue
            seen.append(board_fields(state))
            state = executor.execute(state, rng.choice(candidates))
            assert state.invariant_violations() == []
            if generator.rules.is_game_over(state) is not None:
                break
            state = executor.pass_turn(state)

        while seen:
            state = executor.undo(state)
            assert board_fields(state) == seen.pop()
        assert len(executor.history) == 0


class TestHistory:
    def test_history_is_read_only_view(self):
        history = History()
        assert len(history) == 0
        assert history.last is None
        assert history.entries == ()
