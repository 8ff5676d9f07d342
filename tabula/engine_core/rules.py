"""
Rules Engine - Pure legality predicates.

The rules engine never mutates its inputs and never raises for gameplay
questions: every query returns a boolean, a location or a list.

is_legal() is the conjunction of independently testable sub-rules:
1. is_mover_active   - mover is on turn and owns the die
2. origin_ok         - origin holds a mover piece; bar re-entry comes first
3. destination_ok    - destination is not blocked
4. distance_ok       - travel matches the die in the mover's direction
5. bear_off_ok       - bearing off only from a full home region

Bear-off overage policy: a die larger than the distance to exit may only
bear off the mover's piece farthest from exit.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Sequence

from .board import BAR, OFF, BoardState, BoardTopology, Location, Side
from .move import Move


@dataclass(frozen=True)
class RulesEngine:
    """
    Stateless rules for one board topology.
    """
    topology: BoardTopology = field(default_factory=BoardTopology)

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def direction(self, player: Side) -> int:
        return -1 if Side(player) is Side.WHITE else 1

    def home_points(self, player: Side) -> range:
        return self.topology.home_points(Side(player))

    def is_home(self, player: Side, point: int) -> bool:
        return point in self.home_points(player)

    def distance_to_exit(self, player: Side, point: int) -> int:
        if Side(player) is Side.WHITE:
            return point + 1
        return self.topology.num_points - point

    def entry_point(self, player: Side, die: int) -> int | None:
        """Point a bar piece enters on with the given die."""
        if Side(player) is Side.WHITE:
            point = self.topology.num_points - die
        else:
            point = die - 1
        return point if self.topology.is_point(point) else None

    def destination_for(self, player: Side, origin: Location, die: int) -> Location | None:
        """
        Where a piece at `origin` lands with `die`.

        Returns OFF for any move past the last point (exact or overage) and
        None when the move has no geometric meaning.
        """
        if not 1 <= die <= self.topology.die_faces:
            return None
        if origin == BAR:
            return self.entry_point(player, die)
        if not self.topology.is_point(origin):
            return None
        target = origin + self.direction(player) * die
        if self.topology.is_point(target):
            return target
        return OFF

    def expand_dice(self, roll: Sequence[int]) -> tuple[int, ...]:
        """Expand a double into its rule-defined number of uses."""
        roll = tuple(roll)
        if len(roll) == 2 and roll[0] == roll[1]:
            return (roll[0],) * self.topology.doubles_multiplicity
        return roll

    # ------------------------------------------------------------------
    # Sub-rules
    # ------------------------------------------------------------------

    def is_mover_active(self, state: BoardState, move: Move) -> bool:
        return move.player == state.active_player and move.die in state.dice

    def origin_ok(self, state: BoardState, move: Move) -> bool:
        """Origin holds a mover piece; pieces on the bar must re-enter first."""
        if state.bar_count(move.player) > 0:
            return move.origin == BAR
        if move.origin == BAR:
            return False
        return (
            self.topology.is_point(move.origin)
            and state.piece_count_at(move.origin, move.player) > 0
        )

    def destination_ok(self, state: BoardState, move: Move) -> bool:
        if move.destination == OFF:
            return True
        if not self.topology.is_point(move.destination):
            return False
        return not state.is_blocked_for(move.destination, move.player)

    def distance_ok(self, move: Move) -> bool:
        """The die matches the travelled distance (overage allowed only for OFF)."""
        if not 1 <= move.die <= self.topology.die_faces:
            return False
        if move.destination == OFF:
            if not self.topology.is_point(move.origin):
                return False
            return move.die >= self.distance_to_exit(move.player, move.origin)
        return self.destination_for(move.player, move.origin, move.die) == move.destination

    def can_bear_off(self, state: BoardState, player: Side) -> bool:
        """All of the player's remaining pieces are inside the home region."""
        if state.bar_count(player) > 0:
            return False
        home = self.home_points(player)
        return all(
            point in home
            for point in range(self.topology.num_points)
            if state.piece_count_at(point, player) > 0
        )

    def bear_off_ok(self, state: BoardState, move: Move) -> bool:
        if move.destination != OFF:
            return True
        if not self.can_bear_off(state, move.player):
            return False
        distance = self.distance_to_exit(move.player, move.origin)
        if move.die == distance:
            return True
        if move.die < distance:
            return False
        # Overage: only the piece farthest from exit may use it
        return not any(
            state.piece_count_at(point, move.player) > 0
            and self.distance_to_exit(move.player, point) > distance
            for point in self.home_points(move.player)
        )

    # ------------------------------------------------------------------
    # Composite queries
    # ------------------------------------------------------------------

    def is_legal(self, state: BoardState, move: Move) -> bool:
        """Decide legality of a single move in the given state."""
        return (
            self.is_mover_active(state, move)
            and self.origin_ok(state, move)
            and self.destination_ok(state, move)
            and self.distance_ok(move)
            and self.bear_off_ok(state, move)
        )

    def legal_moves(self, state: BoardState) -> list[Move]:
        """
        All legal single moves for the remaining dice.

        One move per (origin, distinct die), ordered by origin, destination, die.
        """
        player = state.active_player
        if state.bar_count(player) > 0:
            origins: list[Location] = [BAR]
        else:
            origins = list(state.occupied_points(player))

        moves = []
        for die in sorted(set(state.dice)):
            for origin in origins:
                destination = self.destination_for(player, origin, die)
                if destination is None:
                    continue
                move = Move(player, origin, destination, die)
                if self.is_legal(state, move):
                    moves.append(move)
        moves.sort(key=Move.sort_key)
        return moves

    def is_game_over(self, state: BoardState) -> Side | None:
        """The side that has borne off all its pieces, if any."""
        for player in Side:
            if state.born_off_count(player) == self.topology.pieces_per_player:
                return player
        return None
