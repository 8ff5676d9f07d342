"""
Tabula - Backgammon-style Rules Engine

A deterministic, rules-driven core for two-player race games played on a
fixed ring of points with dice. The engine provides:
- Compact board state with bar and bear-off tracking
- Exhaustive legal move-sequence generation
- Atomic move execution with undo
- A turn controller and a registry of independent games
"""

__version__ = "0.1.0"
