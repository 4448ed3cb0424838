"""Public game-session interface of the reverse Minesweeper engine."""
from .game_session import GameSession, parse_ground_truth
from .snapshot import GameSnapshot

__all__ = [
    "GameSession",
    "GameSnapshot",
    "parse_ground_truth",
]
