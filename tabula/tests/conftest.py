"""
Pytest fixtures for Tabula tests.
"""

import pytest

from ..bots import FirstLegalPolicy, RandomPolicy
from ..engine_core.board import BoardState, BoardTopology, Side
from ..engine_core.dice import FixedDice
from ..engine_core.move_generator import MoveGenerator
from ..engine_core.rules import RulesEngine
from ..session import Player


@pytest.fixture
def topology() -> BoardTopology:
    """Standard 24-point board."""
    return BoardTopology()


@pytest.fixture
def small_topology() -> BoardTopology:
    """8 points, 2-point home, 3 pieces each, 3-sided dice."""
    return BoardTopology(
        num_points=8,
        home_size=2,
        pieces_per_player=3,
        die_faces=3,
        starting_layout=((7, 1), (4, 1), (2, 1)),
    )


@pytest.fixture
def rules(topology) -> RulesEngine:
    return RulesEngine(topology)


@pytest.fixture
def generator(rules) -> MoveGenerator:
    return MoveGenerator(rules)


@pytest.fixture
def start_state(topology) -> BoardState:
    """Standard starting position, WHITE to move, no dice."""
    return BoardState.initial(topology)


def make_players(white_adapter=None, black_adapter=None) -> list[Player]:
    return [
        Player("white", "White", Side.WHITE, white_adapter),
        Player("black", "Black", Side.BLACK, black_adapter),
    ]


@pytest.fixture
def external_players() -> list[Player]:
    """Two players without adapters (moves are submitted externally)."""
    return make_players()


@pytest.fixture
def bot_players() -> list[Player]:
    """Two seeded random bots."""
    return make_players(RandomPolicy(seed=1), RandomPolicy(seed=2))


@pytest.fixture
def first_legal_players() -> list[Player]:
    return make_players(FirstLegalPolicy(), FirstLegalPolicy())


@pytest.fixture
def fixed_dice():
    """Factory for replayable dice: fixed_dice((3, 5), (6, 6), ...)."""
    def _make(*rolls, cycle=False):
        return FixedDice.from_rolls(rolls, cycle=cycle)
    return _make
