"""
Self-play module for the reverse Minesweeper engine.

Provides the self-play loop against the simulated oracle and its statistics.
"""
from .runner import (
    SelfPlayConfig,
    GameStats,
    SelfPlayStats,
    SelfPlayRunner,
)

__all__ = [
    "SelfPlayConfig",
    "GameStats",
    "SelfPlayStats",
    "SelfPlayRunner",
]
