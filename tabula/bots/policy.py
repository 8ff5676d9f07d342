"""
Player Adapters - The single capability through which a player moves.

A PlayerAdapter receives a read-only copy of the board and the legal
candidate sequences, and returns one of them. Human-input and automated
implementations are interchangeable: the turn controller never branches on
player kind.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING
import queue
import random
import threading

from ..engine_core.errors import TurnCancelled

if TYPE_CHECKING:
    from ..engine_core.board import BoardState
    from ..engine_core.move import MoveSequence


class PlayerAdapter(ABC):
    """
    Abstract base class for anything that picks a move sequence.
    """

    @abstractmethod
    def choose(
        self,
        state: BoardState,
        candidates: list[MoveSequence],
    ) -> MoveSequence:
        """
        Select a sequence for the current turn.

        Args:
            state: Copy of the current board (dice already rolled)
            candidates: Non-empty list of legal sequences

        Returns:
            The chosen sequence. Returning anything outside `candidates`
            makes the controller reject it and ask again.
        """
        pass

    def cancel(self) -> None:
        """
        Give up on a pending choose() call.

        Called by the turn controller when a choice times out or the turn
        is cancelled. Adapters whose choose() can block must make it return
        promptly; the default does nothing.
        """

    def get_name(self) -> str:
        """Get the adapter's name/identifier."""
        return self.__class__.__name__


class RandomPolicy(PlayerAdapter):
    """
    Random policy - selects sequences uniformly at random.

    Used for:
    - Self-play and soak tests
    - Baseline comparison
    """

    def __init__(self, seed: int | None = None):
        self.rng = random.Random(seed)

    def choose(self, state: BoardState, candidates: list[MoveSequence]) -> MoveSequence:
        if not candidates:
            raise ValueError("No legal sequences available")
        return self.rng.choice(candidates)


class FirstLegalPolicy(PlayerAdapter):
    """
    First-legal policy - always selects the first sequence.

    Candidates are stably ordered, so this is fully deterministic.
    """

    def choose(self, state: BoardState, candidates: list[MoveSequence]) -> MoveSequence:
        if not candidates:
            raise ValueError("No legal sequences available")
        return candidates[0]


class HumanInputAdapter(PlayerAdapter):
    """
    Adapter backed by an external input channel.

    choose() blocks until a sequence is put on the queue (by a UI thread,
    a network handler, ...). There is no timeout here: the turn controller
    applies its own cancellation policy and calls cancel(), which makes the
    pending choose() raise TurnCancelled instead of waiting for input that
    belongs to a later turn.
    """

    def __init__(self, inbox: queue.Queue | None = None):
        self.inbox: queue.Queue = inbox if inbox is not None else queue.Queue()
        self.last_candidates: list[MoveSequence] = []
        self._request = 0
        self._lock = threading.Lock()

    def submit(self, sequence: MoveSequence) -> None:
        """Hand a sequence to a pending (or future) choose() call."""
        self.inbox.put(sequence)

    def cancel(self) -> None:
        with self._lock:
            request = self._request
        self.inbox.put(_Withdrawn(request))

    def choose(self, state: BoardState, candidates: list[MoveSequence]) -> MoveSequence:
        with self._lock:
            self._request += 1
            request = self._request
        self.last_candidates = list(candidates)
        while True:
            item = self.inbox.get()
            if not isinstance(item, _Withdrawn):
                return item
            if item.request == request:
                raise TurnCancelled(f"choice request {request} withdrawn")
            # Left over from a request that had already returned


class _Withdrawn:
    """Inbox marker that releases the choose() call with the same request number."""

    def __init__(self, request: int):
        self.request = request
