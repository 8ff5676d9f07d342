"""
Bots module - Player adapter implementations.

Provides:
- PlayerAdapter: Interface for choosing a move sequence
- RandomPolicy: Seeded uniform choice
- FirstLegalPolicy: Deterministic first candidate
- HumanInputAdapter: Queue-backed external input
"""

from .policy import PlayerAdapter, RandomPolicy, FirstLegalPolicy, HumanInputAdapter

__all__ = [
    "PlayerAdapter",
    "RandomPolicy",
    "FirstLegalPolicy",
    "HumanInputAdapter",
]
