"""
Snapshot - Lossless, serializable projection of a board and its history.

The snapshot is the logical contract with hosting layers: it carries the
topology, every count, the active player, the remaining dice and the full
history ledger, so a restored game can still undo.

Point encoding: one signed integer per point, positive for WHITE pieces and
negative for BLACK pieces.
"""

from __future__ import annotations
from typing import Literal, Union

from pydantic import BaseModel, Field

from .board import STANDARD_LAYOUT, BoardState, BoardTopology, Side
from .executor import History, HistoryEntry
from .move import Move, MoveSequence


class TopologyModel(BaseModel):
    """Board geometry."""
    num_points: int = 24
    home_size: int = 6
    pieces_per_player: int = 15
    die_faces: int = 6
    doubles_multiplicity: int = 4
    starting_layout: list[tuple[int, int]] = Field(
        default_factory=lambda: list(STANDARD_LAYOUT),
        description="(point, count) pairs from WHITE's perspective",
    )

    @classmethod
    def from_topology(cls, topology: BoardTopology) -> TopologyModel:
        return cls(
            num_points=topology.num_points,
            home_size=topology.home_size,
            pieces_per_player=topology.pieces_per_player,
            die_faces=topology.die_faces,
            doubles_multiplicity=topology.doubles_multiplicity,
            starting_layout=list(topology.starting_layout),
        )

    def to_topology(self) -> BoardTopology:
        return BoardTopology(
            num_points=self.num_points,
            home_size=self.home_size,
            pieces_per_player=self.pieces_per_player,
            die_faces=self.die_faces,
            doubles_multiplicity=self.doubles_multiplicity,
            starting_layout=tuple(tuple(p) for p in self.starting_layout),
        )


class MoveModel(BaseModel):
    """A single move."""
    player: int = Field(ge=0, le=1, description="0 = white, 1 = black")
    origin: Union[int, Literal["bar"]]
    destination: Union[int, Literal["off"]]
    die: int = Field(ge=1)

    @classmethod
    def from_move(cls, move: Move) -> MoveModel:
        return cls(
            player=int(move.player),
            origin=move.origin,
            destination=move.destination,
            die=move.die,
        )

    def to_move(self) -> Move:
        return Move(
            player=Side(self.player),
            origin=self.origin,
            destination=self.destination,
            die=self.die,
        )


class HistoryEntryModel(BaseModel):
    """One applied turn of the history ledger."""
    player: int = Field(ge=0, le=1)
    dice: list[int] = Field(default_factory=list)
    moves: list[MoveModel] = Field(default_factory=list)
    hits: list[bool] = Field(default_factory=list)

    @classmethod
    def from_entry(cls, entry: HistoryEntry) -> HistoryEntryModel:
        return cls(
            player=int(entry.player),
            dice=list(entry.dice),
            moves=[MoveModel.from_move(m) for m in entry.sequence],
            hits=list(entry.hits),
        )

    def to_entry(self) -> HistoryEntry:
        if len(self.hits) != len(self.moves):
            raise ValueError("History entry needs one hit flag per move")
        return HistoryEntry(
            player=Side(self.player),
            dice=tuple(self.dice),
            sequence=MoveSequence(m.to_move() for m in self.moves),
            hits=tuple(self.hits),
        )


class GameSnapshot(BaseModel):
    """Serializable board state plus history ledger."""
    topology: TopologyModel
    points: list[int] = Field(description="Signed counts: + white, - black")
    bar: list[int] = Field(min_length=2, max_length=2)
    borne_off: list[int] = Field(min_length=2, max_length=2)
    active_player: int = Field(ge=0, le=1)
    dice: list[int] = Field(default_factory=list)
    history_length: int = 0
    history: list[HistoryEntryModel] = Field(default_factory=list)


def snapshot_state(state: BoardState, history: History | None = None) -> GameSnapshot:
    """Project a board state (and optional ledger) into a snapshot."""
    entries = list(history) if history is not None else []
    return GameSnapshot(
        topology=TopologyModel.from_topology(state.topology),
        points=list(state.points),
        bar=list(state.bar),
        borne_off=list(state.borne_off),
        active_player=int(state.active_player),
        dice=list(state.dice),
        history_length=len(entries),
        history=[HistoryEntryModel.from_entry(e) for e in entries],
    )


def restore_state(snapshot: GameSnapshot) -> tuple[BoardState, History]:
    """
    Rebuild the board state and ledger from a snapshot.

    Raises ValueError if the snapshot breaks a board invariant.
    """
    if snapshot.history_length != len(snapshot.history):
        raise ValueError(
            f"history_length is {snapshot.history_length} but "
            f"{len(snapshot.history)} entries are present"
        )

    state = BoardState(
        topology=snapshot.topology.to_topology(),
        points=list(snapshot.points),
        bar=list(snapshot.bar),
        borne_off=list(snapshot.borne_off),
        active_player=Side(snapshot.active_player),
        dice=tuple(snapshot.dice),
    )
    violations = state.invariant_violations()
    if violations:
        raise ValueError("; ".join(violations))

    history = History(entry.to_entry() for entry in snapshot.history)
    return state, history
