"""
Board State - Point, bar and bear-off counts for both players.

Design principles:
- Compact: one signed integer per point (positive = WHITE, negative = BLACK)
- Topology fixed at construction (BoardTopology is frozen)
- Mutated only through apply_primitive / revert_primitive, which re-check
  occupancy and reject rather than corrupt state
- No rules knowledge beyond occupancy: distance, direction and bear-off
  eligibility live in the RulesEngine
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING, Union
import logging

from .errors import IllegalStateTransition

if TYPE_CHECKING:
    from .move import Move


logger = logging.getLogger(__name__)

BAR = "bar"
OFF = "off"

# A point index, BAR (origin only) or OFF (destination only)
Location = Union[int, str]


class Side(IntEnum):
    """
    The two players.

    WHITE travels from high point indices towards 0 and bears off past 0.
    BLACK travels towards the last point and bears off past it.
    """
    WHITE = 0
    BLACK = 1

    @property
    def opponent(self) -> Side:
        return Side(1 - self.value)

    @property
    def sign(self) -> int:
        """Sign of this side's pieces in the signed point encoding."""
        return 1 if self is Side.WHITE else -1


# Standard backgammon start, WHITE's perspective: (point, count)
STANDARD_LAYOUT: tuple[tuple[int, int], ...] = ((23, 2), (12, 5), (7, 3), (5, 5))


@dataclass(frozen=True)
class BoardTopology:
    """
    Immutable board geometry and piece budget.

    The starting layout is given from WHITE's perspective; BLACK's layout is
    its mirror image (point p -> num_points - 1 - p).
    """
    num_points: int = 24
    home_size: int = 6
    pieces_per_player: int = 15
    die_faces: int = 6
    doubles_multiplicity: int = 4
    starting_layout: tuple[tuple[int, int], ...] = STANDARD_LAYOUT

    def __post_init__(self):
        if self.num_points < 2:
            raise ValueError("Board needs at least 2 points")
        if not 1 <= self.home_size <= self.num_points:
            raise ValueError(f"Invalid home size {self.home_size}")
        if self.pieces_per_player < 1:
            raise ValueError("Each player needs at least one piece")
        if not 1 <= self.die_faces <= self.num_points:
            raise ValueError(f"Invalid die faces {self.die_faces}")
        if self.doubles_multiplicity < 2:
            raise ValueError("Doubles must grant at least two uses")

        # Normalize lists (e.g. from JSON) into hashable tuples
        layout = tuple((int(p), int(c)) for p, c in self.starting_layout)
        object.__setattr__(self, "starting_layout", layout)

        white_points = set()
        for point, count in layout:
            if not 0 <= point < self.num_points:
                raise ValueError(f"Layout point {point} outside the board")
            if count <= 0:
                raise ValueError(f"Layout count at point {point} must be positive")
            if point in white_points:
                raise ValueError(f"Layout point {point} listed twice")
            white_points.add(point)

        if sum(c for _, c in layout) != self.pieces_per_player:
            raise ValueError(
                f"Layout places {sum(c for _, c in layout)} pieces, "
                f"expected {self.pieces_per_player}"
            )

        black_points = {self.mirror(p) for p in white_points}
        if white_points & black_points:
            raise ValueError("Starting layout overlaps with its mirror image")

    def mirror(self, point: int) -> int:
        """Map a point to the same point seen from the other side."""
        return self.num_points - 1 - point

    def is_point(self, location: Location) -> bool:
        return (
            isinstance(location, int)
            and not isinstance(location, bool)
            and 0 <= location < self.num_points
        )

    def home_points(self, player: Side) -> range:
        """Points from which a player may bear off."""
        if player is Side.WHITE:
            return range(0, self.home_size)
        return range(self.num_points - self.home_size, self.num_points)


@dataclass
class BoardState:
    """
    Complete board position at a point in time.

    Holds point counts, bar and bear-off counters, the active player and the
    dice still to be used this turn. Committed states are treated as
    immutable: the MoveExecutor works on copies.
    """
    topology: BoardTopology
    points: list[int]
    bar: list[int] = field(default_factory=lambda: [0, 0])
    borne_off: list[int] = field(default_factory=lambda: [0, 0])
    active_player: Side = Side.WHITE
    dice: tuple[int, ...] = ()

    def __post_init__(self):
        self.active_player = Side(self.active_player)
        self.dice = tuple(self.dice)
        if len(self.points) != self.topology.num_points:
            raise ValueError(
                f"Expected {self.topology.num_points} points, got {len(self.points)}"
            )
        if len(self.bar) != 2 or len(self.borne_off) != 2:
            raise ValueError("Bar and bear-off need one counter per player")

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def initial(
        cls,
        topology: BoardTopology | None = None,
        active_player: Side = Side.WHITE,
    ) -> BoardState:
        """Create the canonical starting position."""
        topology = topology or BoardTopology()
        points = [0] * topology.num_points
        for point, count in topology.starting_layout:
            points[point] = count
            points[topology.mirror(point)] = -count
        return cls(topology=topology, points=points, active_player=active_player)

    @classmethod
    def from_layout(
        cls,
        topology: BoardTopology,
        white: dict[int, int],
        black: dict[int, int],
        bar: tuple[int, int] = (0, 0),
        borne_off: tuple[int, int] = (0, 0),
        active_player: Side = Side.WHITE,
        dice: tuple[int, ...] = (),
    ) -> BoardState:
        """
        Create an arbitrary position from absolute point indices.

        Raises ValueError if the position breaks a board invariant
        (shared points, negative counts, wrong piece totals).
        """
        if any(c < 0 for c in (*white.values(), *black.values(), *bar, *borne_off)):
            raise ValueError("Piece counts must be non-negative")
        for point in (*white, *black):
            if not topology.is_point(point):
                raise ValueError(f"No point {point!r} on a {topology.num_points}-point board")
        points = [0] * topology.num_points
        for point, count in white.items():
            points[point] += count
        for point, count in black.items():
            if point in white and white[point] and count:
                raise ValueError(f"Point {point} holds pieces of both players")
            points[point] -= count
        state = cls(
            topology=topology,
            points=points,
            bar=list(bar),
            borne_off=list(borne_off),
            active_player=active_player,
            dice=tuple(dice),
        )
        violations = state.invariant_violations()
        if violations:
            raise ValueError("; ".join(violations))
        return state

    def copy(self) -> BoardState:
        """Independent copy (the topology is shared, it is immutable)."""
        return BoardState(
            topology=self.topology,
            points=self.points.copy(),
            bar=self.bar.copy(),
            borne_off=self.borne_off.copy(),
            active_player=self.active_player,
            dice=self.dice,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def owner_at(self, point: int) -> Side | None:
        value = self.points[point]
        if value > 0:
            return Side.WHITE
        if value < 0:
            return Side.BLACK
        return None

    def piece_count_at(self, point: int, player: Side) -> int:
        value = self.points[point] * Side(player).sign
        return value if value > 0 else 0

    def bar_count(self, player: Side) -> int:
        return self.bar[player]

    def born_off_count(self, player: Side) -> int:
        return self.borne_off[player]

    def is_point_owned_by(self, point: int, player: Side) -> bool:
        return self.piece_count_at(point, player) > 0

    def is_blocked_for(self, point: int, player: Side) -> bool:
        """A point is blocked when the opponent stacks two or more pieces on it."""
        return self.piece_count_at(point, Side(player).opponent) >= 2

    def occupied_points(self, player: Side) -> list[int]:
        return [p for p in range(self.topology.num_points) if self.piece_count_at(p, player)]

    def pieces_on_board(self, player: Side) -> int:
        return sum(self.piece_count_at(p, player) for p in range(self.topology.num_points))

    def total_pieces(self, player: Side) -> int:
        """Pieces on points + bar + borne off. Constant across a game."""
        return self.pieces_on_board(player) + self.bar[player] + self.borne_off[player]

    def pip_count(self, player: Side) -> int:
        """Total distance the player's pieces must still travel."""
        player = Side(player)
        n = self.topology.num_points
        total = self.bar[player] * (n + 1)
        for point in range(n):
            count = self.piece_count_at(point, player)
            if count:
                distance = point + 1 if player is Side.WHITE else n - point
                total += count * distance
        return total

    def invariant_violations(self) -> list[str]:
        """Return human-readable invariant violations (empty if valid)."""
        errors = []
        expected = self.topology.pieces_per_player
        for player in Side:
            if self.bar[player] < 0:
                errors.append(f"{player.name} bar count is negative")
            if self.borne_off[player] < 0:
                errors.append(f"{player.name} bear-off count is negative")
            total = self.total_pieces(player)
            if total != expected:
                errors.append(f"{player.name} has {total} pieces, expected {expected}")
        for die in self.dice:
            if not 1 <= die <= self.topology.die_faces:
                errors.append(f"Die value {die} out of range")
        return errors

    # ------------------------------------------------------------------
    # Mutation primitives
    # ------------------------------------------------------------------

    def apply_primitive(self, move: Move) -> bool:
        """
        Relocate exactly one piece.

        A lone opposing piece on the destination is sent to its owner's bar.
        Returns True if the move hit.

        Raises IllegalStateTransition if the move contradicts occupancy;
        the state is untouched in that case.
        """
        player = Side(move.player)
        opponent = player.opponent
        origin, destination = move.origin, move.destination

        if origin == BAR:
            if self.bar[player] <= 0:
                raise IllegalStateTransition(f"{player.name} has no piece on the bar")
        elif self.topology.is_point(origin):
            if self.piece_count_at(origin, player) <= 0:
                raise IllegalStateTransition(
                    f"{player.name} has no piece on point {origin}"
                )
        else:
            raise IllegalStateTransition(f"Invalid origin: {origin!r}")

        if destination == OFF:
            pass
        elif self.topology.is_point(destination):
            if destination == origin:
                raise IllegalStateTransition("Origin and destination are the same point")
            if self.is_blocked_for(destination, player):
                raise IllegalStateTransition(
                    f"Point {destination} is blocked for {player.name}"
                )
        else:
            raise IllegalStateTransition(f"Invalid destination: {destination!r}")

        if origin == BAR:
            self.bar[player] -= 1
        else:
            self.points[origin] -= player.sign

        hit = False
        if destination == OFF:
            self.borne_off[player] += 1
        else:
            if self.piece_count_at(destination, opponent) == 1:
                self.points[destination] = 0
                self.bar[opponent] += 1
                hit = True
            self.points[destination] += player.sign

        logger.debug("Applied %s%s", move, " (hit)" if hit else "")
        return hit

    def revert_primitive(self, move: Move, hit: bool) -> None:
        """
        Exact inverse of apply_primitive.

        `hit` must be the value apply_primitive returned for this move.
        """
        player = Side(move.player)
        opponent = player.opponent
        origin, destination = move.origin, move.destination

        if destination == OFF:
            if self.borne_off[player] <= 0:
                raise IllegalStateTransition(f"{player.name} has no borne-off piece")
        elif self.topology.is_point(destination):
            if self.piece_count_at(destination, player) <= 0:
                raise IllegalStateTransition(
                    f"{player.name} has no piece on point {destination}"
                )
            if hit:
                if self.bar[opponent] <= 0:
                    raise IllegalStateTransition(f"{opponent.name} has no piece on the bar")
                if self.piece_count_at(destination, player) != 1:
                    raise IllegalStateTransition(
                        f"Cannot restore hit piece on point {destination}"
                    )
        else:
            raise IllegalStateTransition(f"Invalid destination: {destination!r}")

        if origin != BAR:
            if not self.topology.is_point(origin):
                raise IllegalStateTransition(f"Invalid origin: {origin!r}")
            if self.piece_count_at(origin, opponent) > 0:
                raise IllegalStateTransition(f"Point {origin} is held by {opponent.name}")

        if destination == OFF:
            self.borne_off[player] -= 1
        else:
            self.points[destination] -= player.sign
            if hit:
                self.bar[opponent] -= 1
                self.points[destination] = opponent.sign

        if origin == BAR:
            self.bar[player] += 1
        else:
            self.points[origin] += player.sign

        logger.debug("Reverted %s", move)
