"""
Tests for player adapters.
"""

import threading

import pytest

from ..bots import FirstLegalPolicy, HumanInputAdapter, PlayerAdapter, RandomPolicy
from ..engine_core.dice import FixedDice, RandomDice


@pytest.fixture
def candidates(generator, start_state):
    return generator.legal_sequence_list(start_state, dice=(3, 5))


class TestPolicies:
    """Tests that adapters only pick from the candidates."""

    def test_random_policy_picks_candidate(self, start_state, candidates):
        policy = RandomPolicy(seed=42)
        for _ in range(20):
            assert policy.choose(start_state, candidates) in candidates

    def test_random_policy_is_seeded(self, start_state, candidates):
        first = [RandomPolicy(seed=7).choose(start_state, candidates) for _ in range(3)]
        second = [RandomPolicy(seed=7).choose(start_state, candidates) for _ in range(3)]
        assert first == second

    def test_first_legal_policy(self, start_state, candidates):
        assert FirstLegalPolicy().choose(start_state, candidates) == candidates[0]

    def test_empty_candidates_rejected(self, start_state):
        with pytest.raises(ValueError):
            RandomPolicy().choose(start_state, [])
        with pytest.raises(ValueError):
            FirstLegalPolicy().choose(start_state, [])

    def test_names(self):
        assert RandomPolicy().get_name() == "RandomPolicy"
        assert FirstLegalPolicy().get_name() == "FirstLegalPolicy"

    def test_adapter_is_abstract(self):
        with pytest.raises(TypeError):
            PlayerAdapter()


class TestHumanInput:
    def test_choose_blocks_until_submitted(self, start_state, candidates):
        adapter = HumanInputAdapter()
        chosen = []
        worker = threading.Thread(
            target=lambda: chosen.append(adapter.choose(start_state, candidates))
        )
        worker.start()
        adapter.submit(candidates[2])
        worker.join(timeout=5)

        assert chosen == [candidates[2]]
        assert adapter.last_candidates == candidates

    def test_cancel_after_answer_does_not_leak(self, start_state, candidates):
        """A withdrawal for a request that already returned is ignored later."""
        adapter = HumanInputAdapter()
        adapter.submit(candidates[0])
        assert adapter.choose(start_state, candidates) == candidates[0]
        adapter.cancel()

        adapter.submit(candidates[1])
        assert adapter.choose(start_state, candidates) == candidates[1]

    def test_default_cancel_is_noop(self):
        FirstLegalPolicy().cancel()


class TestDice:
    """Tests for the injectable dice sources."""

    def test_fixed_dice_replay(self):
        dice = FixedDice.from_rolls([(3, 5), (6, 6)])
        assert dice.roll() == (3, 5)
        assert dice.roll() == (6, 6)
        with pytest.raises(ValueError):
            dice.roll()

    def test_fixed_dice_cycle(self):
        dice = FixedDice([1, 2], cycle=True)
        assert [dice.next_die() for _ in range(5)] == [1, 2, 1, 2, 1]

    def test_random_dice_seeded_and_in_range(self):
        first = RandomDice(seed=3)
        second = RandomDice(seed=3)
        rolls = [first.roll() for _ in range(50)]
        assert rolls == [second.roll() for _ in range(50)]
        assert all(1 <= d <= 6 for roll in rolls for d in roll)
