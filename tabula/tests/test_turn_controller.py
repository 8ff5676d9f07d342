"""
Tests for the turn controller state machine.

Tests:
- Phase transitions (roll, submit, skip, game over)
- Rejection of illegal choices and out-of-phase calls
- Undo through the controller
- Adapter-driven play, re-prompting and timeouts
- Determinism and conservation over whole games
"""

import threading

import pytest

from ..bots import FirstLegalPolicy, HumanInputAdapter, PlayerAdapter, RandomPolicy
from ..engine_core.board import OFF, BoardState, Side
from ..engine_core.dice import FixedDice, RandomDice
from ..engine_core.errors import EmptyHistory, IllegalChoice, InvalidPhase, TurnCancelled
from ..engine_core.move import Move, MoveSequence
from ..session import ControllerConfig, TurnController, TurnOutcome, TurnPhase
from .conftest import make_players


class IllegalThenLegal(PlayerAdapter):
    """Proposes a bogus sequence a fixed number of times before behaving."""

    def __init__(self, bad_attempts: int):
        self.bad_attempts = bad_attempts
        self.calls = 0

    def choose(self, state, candidates):
        self.calls += 1
        if self.calls <= self.bad_attempts:
            return MoveSequence((Move(state.active_player, 12, 11, 1),))
        return candidates[0]


class BlockingAdapter(PlayerAdapter):
    """Never answers until released."""

    def __init__(self):
        self.release = threading.Event()

    def choose(self, state, candidates):
        self.release.wait(5)
        return candidates[0]


class TestPhases:
    """Tests for the basic roll / submit cycle."""

    def test_starts_awaiting_roll(self, external_players):
        controller = TurnController(external_players, dice=FixedDice([3, 5]))
        assert controller.phase is TurnPhase.AWAITING_ROLL
        assert controller.legal_sequences == []
        assert controller.active_player.side is Side.WHITE

    def test_roll_generates_candidates(self, external_players, fixed_dice):
        controller = TurnController(external_players, dice=fixed_dice((3, 5)))
        dice = controller.roll()
        assert dice == (3, 5)
        assert controller.phase is TurnPhase.AWAITING_CHOICE
        assert controller.state.dice == (3, 5)
        assert controller.legal_sequences

    def test_doubles_expand(self, external_players, fixed_dice):
        controller = TurnController(external_players, dice=fixed_dice((6, 6)))
        assert controller.roll() == (6, 6, 6, 6)
        assert all(len(seq) == 4 for seq in controller.legal_sequences)

    def test_submit_switches_player(self, external_players, fixed_dice):
        controller = TurnController(external_players, dice=fixed_dice((3, 5)))
        controller.roll()
        chosen = controller.legal_sequences[0]

        result = controller.submit(chosen)

        assert result.outcome is TurnOutcome.PLAYED
        assert result.sequence == chosen
        assert controller.phase is TurnPhase.AWAITING_ROLL
        assert controller.state.active_player is Side.BLACK
        assert controller.state.dice == ()
        assert len(controller.history) == 1
        assert controller.turn_number == 1
        white = controller.players[Side.WHITE]
        assert white.stats.turns_played == 1
        assert white.stats.moves_made == 2

    def test_submit_accepts_plain_move_list(self, external_players, fixed_dice):
        controller = TurnController(external_players, dice=fixed_dice((3, 5)))
        controller.roll()
        moves = list(controller.legal_sequences[-1])
        assert controller.submit(moves).outcome is TurnOutcome.PLAYED

    def test_reordered_candidate_accepted(self, external_players, fixed_dice):
        controller = TurnController(external_players, dice=fixed_dice((3, 5)))
        controller.roll()
        reordered = MoveSequence((Move(Side.WHITE, 23, 20, 3), Move(Side.WHITE, 12, 7, 5)))
        assert reordered not in controller.legal_sequences

        result = controller.submit(reordered)

        assert result.outcome is TurnOutcome.PLAYED
        assert controller.state.piece_count_at(20, Side.WHITE) == 1
        assert controller.state.piece_count_at(7, Side.WHITE) == 4

    def test_illegal_choice_keeps_state(self, external_players, fixed_dice):
        controller = TurnController(external_players, dice=fixed_dice((3, 5)))
        controller.roll()
        before = controller.state

        with pytest.raises(IllegalChoice):
            controller.submit(MoveSequence((Move(Side.WHITE, 23, 18, 5),)))

        assert controller.phase is TurnPhase.AWAITING_CHOICE
        assert controller.state == before
        assert len(controller.history) == 0

    def test_partial_sequence_rejected(self, external_players, fixed_dice):
        """Using fewer dice than possible is not a legal choice."""
        controller = TurnController(external_players, dice=fixed_dice((3, 5)))
        controller.roll()
        with pytest.raises(IllegalChoice):
            controller.submit(MoveSequence((Move(Side.WHITE, 12, 9, 3),)))

    def test_out_of_phase_calls(self, external_players, fixed_dice):
        controller = TurnController(external_players, dice=fixed_dice((3, 5)))
        with pytest.raises(InvalidPhase):
            controller.submit(MoveSequence())
        controller.roll()
        with pytest.raises(InvalidPhase):
            controller.roll()

    def test_requires_both_sides(self):
        players = make_players()
        players[1].side = Side.WHITE
        with pytest.raises(ValueError):
            TurnController(players)


class TestSkipAndGameOver:
    """Tests for turns without moves and the end of the game."""

    def test_no_legal_moves_skips_turn(self, external_players, topology, fixed_dice):
        state = BoardState.from_layout(
            topology,
            white={5: 14},
            black={18: 3, 19: 2, 20: 2, 21: 2, 22: 2, 23: 2, 0: 2},
            bar=(1, 0),
        )
        controller = TurnController(external_players, dice=fixed_dice((4, 2)), state=state)

        controller.roll()

        assert controller.phase is TurnPhase.AWAITING_ROLL
        assert controller.state.active_player is Side.BLACK
        assert controller.turn_log[-1].outcome is TurnOutcome.SKIPPED
        assert controller.players[Side.WHITE].stats.turns_skipped == 1
        assert len(controller.history) == 0

    def test_last_piece_borne_off_ends_game(self, external_players, topology, fixed_dice):
        state = BoardState.from_layout(
            topology, white={0: 1}, black={18: 15}, borne_off=(14, 0),
        )
        controller = TurnController(external_players, dice=fixed_dice((1, 2)), state=state)
        controller.roll()
        assert controller.legal_sequences == [MoveSequence((Move(Side.WHITE, 0, OFF, 2),))]

        result = controller.submit(controller.legal_sequences[0])

        assert result.outcome is TurnOutcome.GAME_OVER
        assert result.winner is Side.WHITE
        assert controller.is_over
        assert controller.winner is Side.WHITE
        assert controller.players[Side.WHITE].stats.games_won == 1
        with pytest.raises(InvalidPhase):
            controller.roll()

    def test_restored_finished_game_is_over(self, external_players, topology):
        state = BoardState.from_layout(
            topology, white={}, black={18: 15}, borne_off=(15, 0),
        )
        controller = TurnController(external_players, state=state)
        assert controller.phase is TurnPhase.GAME_OVER
        assert controller.winner is Side.WHITE

    def test_restored_mid_turn_awaits_choice(self, external_players, start_state):
        state = start_state.copy()
        state.dice = (3, 5)
        controller = TurnController(external_players, state=state)
        assert controller.phase is TurnPhase.AWAITING_CHOICE
        assert len(controller.legal_sequences) > 0


class TestUndo:
    """Tests for undo through the controller."""

    def test_undo_returns_turn_with_same_dice(self, external_players, fixed_dice):
        controller = TurnController(external_players, dice=fixed_dice((3, 5)))
        controller.roll()
        before = controller.state
        candidates = controller.legal_sequences
        controller.submit(candidates[3])

        restored = controller.undo()

        assert restored == before
        assert controller.phase is TurnPhase.AWAITING_CHOICE
        assert controller.legal_sequences == candidates
        assert controller.turn_number == 0
        assert len(controller.history) == 0

    def test_undo_empty_history(self, external_players):
        controller = TurnController(external_players, dice=FixedDice([3, 5]))
        with pytest.raises(EmptyHistory):
            controller.undo()

    def test_undo_after_game_over(self, external_players, topology, fixed_dice):
        state = BoardState.from_layout(
            topology, white={0: 1}, black={18: 15}, borne_off=(14, 0),
        )
        controller = TurnController(external_players, dice=fixed_dice((1, 2)), state=state)
        controller.roll()
        controller.submit(controller.legal_sequences[0])

        controller.undo()

        assert not controller.is_over
        assert controller.winner is None
        assert controller.players[Side.WHITE].stats.games_won == 0
        assert controller.state.born_off_count(Side.WHITE) == 14
        assert controller.state.dice == (1, 2)


class TestAdapters:
    """Tests for adapter-driven turns."""

    def test_play_turn_uses_adapter(self, fixed_dice):
        players = make_players(FirstLegalPolicy(), FirstLegalPolicy())
        controller = TurnController(players, dice=fixed_dice((3, 5)))
        result = controller.play_turn()
        assert result.outcome is TurnOutcome.PLAYED
        assert controller.history.last.sequence == result.sequence

    def test_play_turn_without_adapter(self, external_players, fixed_dice):
        controller = TurnController(external_players, dice=fixed_dice((3, 5)))
        with pytest.raises(InvalidPhase):
            controller.play_turn()

    def test_reprompts_after_illegal_choice(self, fixed_dice):
        adapter = IllegalThenLegal(bad_attempts=2)
        controller = TurnController(
            make_players(adapter, FirstLegalPolicy()), dice=fixed_dice((3, 5)),
        )
        result = controller.play_turn()
        assert result.outcome is TurnOutcome.PLAYED
        assert adapter.calls == 3

    def test_gives_up_after_max_reprompts(self, fixed_dice):
        adapter = IllegalThenLegal(bad_attempts=100)
        controller = TurnController(
            make_players(adapter, FirstLegalPolicy()),
            dice=fixed_dice((3, 5)),
            config=ControllerConfig(max_reprompts=2),
        )
        with pytest.raises(IllegalChoice):
            controller.play_turn()
        assert adapter.calls == 3
        assert controller.phase is TurnPhase.AWAITING_CHOICE
        assert len(controller.history) == 0

    def test_choice_timeout_cancels_turn(self, fixed_dice):
        adapter = BlockingAdapter()
        controller = TurnController(
            make_players(adapter, FirstLegalPolicy()),
            dice=fixed_dice((3, 5)),
            config=ControllerConfig(choice_timeout=0.05),
        )
        try:
            with pytest.raises(TurnCancelled):
                controller.play_turn()
        finally:
            adapter.release.set()

        assert controller.phase is TurnPhase.AWAITING_ROLL
        assert controller.state.dice == ()
        assert controller.state.active_player is Side.WHITE
        assert len(controller.history) == 0

    def test_human_plays_next_turn_after_timeout(self, fixed_dice):
        """A timed-out choose() must not swallow input meant for the next turn."""
        human = HumanInputAdapter()
        controller = TurnController(
            make_players(human, FirstLegalPolicy()),
            dice=fixed_dice((3, 5), (3, 5)),
            config=ControllerConfig(choice_timeout=0.1),
        )
        with pytest.raises(TurnCancelled):
            controller.play_turn()
        assert controller.phase is TurnPhase.AWAITING_ROLL

        controller.roll()
        wanted = controller.legal_sequences[-1]
        human.submit(wanted)
        result = controller.play_turn()

        assert result.sequence == wanted
        assert controller.state.active_player is Side.BLACK
        assert len(controller.history) == 1

    def test_cancel_turn_releases_waiting_adapter(self, fixed_dice):
        human = HumanInputAdapter()
        controller = TurnController(
            make_players(human, FirstLegalPolicy()), dice=fixed_dice((3, 5)),
        )
        controller.roll()
        errors = []

        def wait_for_choice():
            try:
                human.choose(controller.state, controller.legal_sequences)
            except TurnCancelled as e:
                errors.append(e)

        worker = threading.Thread(target=wait_for_choice)
        worker.start()
        # last_candidates is set once the request is registered
        while not human.last_candidates:
            worker.join(timeout=0.01)
        assert controller.cancel_turn() is True
        worker.join(timeout=5)

        assert not worker.is_alive()
        assert len(errors) == 1

    def test_cancel_turn(self, external_players, fixed_dice):
        controller = TurnController(external_players, dice=fixed_dice((3, 5)))
        assert controller.cancel_turn() is False
        controller.roll()
        assert controller.cancel_turn() is True
        assert controller.phase is TurnPhase.AWAITING_ROLL
        assert controller.state.dice == ()

    def test_human_adapter_reads_queue(self, fixed_dice):
        human = HumanInputAdapter()
        controller = TurnController(
            make_players(human, FirstLegalPolicy()), dice=fixed_dice((3, 5)),
        )
        controller.roll()
        wanted = controller.legal_sequences[-1]
        human.submit(wanted)

        result = controller.play_turn()

        assert result.sequence == wanted
        assert human.last_candidates[-1] == wanted

    def test_advance_stops_at_external_player(self, fixed_dice):
        players = make_players(None, FirstLegalPolicy())
        controller = TurnController(
            players, dice=fixed_dice((3, 5), (6, 4), (2, 1)),
        )
        controller.roll()
        controller.submit(controller.legal_sequences[0])

        results = controller.advance()

        assert [r.player for r in results] == [Side.BLACK]
        assert controller.phase is TurnPhase.AWAITING_CHOICE
        assert controller.active_player.side is Side.WHITE
        assert controller.state.dice == (2, 1)


class TestWholeGames:
    """Tests over complete bot games."""

    def play(self, seed):
        players = make_players(RandomPolicy(seed=seed), RandomPolicy(seed=seed + 1))
        controller = TurnController(players, dice=RandomDice(seed=seed))
        winner = controller.play_game(max_turns=5000)
        return controller, winner

    def test_game_finishes_with_winner(self):
        controller, winner = self.play(3)
        assert winner in (Side.WHITE, Side.BLACK)
        state = controller.state
        assert state.born_off_count(winner) == 15
        assert state.born_off_count(winner.opponent) < 15

    def test_same_seeds_same_game(self):
        first, first_winner = self.play(21)
        second, second_winner = self.play(21)
        assert first_winner == second_winner
        assert [r.describe() for r in first.turn_log] == \
            [r.describe() for r in second.turn_log]

    def test_pieces_conserved_every_turn(self):
        players = make_players(RandomPolicy(seed=8), RandomPolicy(seed=9))
        controller = TurnController(players, dice=RandomDice(seed=8))
        for _ in range(200):
            if controller.is_over:
                break
            controller.play_turn()
            state = controller.state
            assert state.invariant_violations() == []
            for side in Side:
                assert state.bar_count(side) >= 0
                assert state.born_off_count(side) <= 15

    def test_max_turns_limit(self):
        players = make_players(FirstLegalPolicy(), FirstLegalPolicy())
        controller = TurnController(players, dice=RandomDice(seed=1))
        controller.play_game(max_turns=5)
        assert len(controller.turn_log) == 5
