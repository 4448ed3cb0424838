"""
Reverse Minesweeper game module.

Provides the grid model the engine reasons over and a gymnasium
environment that plays the oracle.
"""
from .cell import (
    Cell,
    CellState,
    Constraint,
    EstimateSnapshot,
    Position,
    ProbabilityEstimate,
    Provenance,
    should_overwrite,
)
from .environment import BEGINNER, EXPERT, INTERMEDIATE, PRESETS, BoardConfig, MinefieldEnv
from .errors import (
    InvalidPositionError,
    InvalidTransitionError,
    PersistenceError,
    SweeperError,
)
from .grid import Grid

__all__ = [
    "Cell",
    "CellState",
    "Constraint",
    "EstimateSnapshot",
    "Position",
    "ProbabilityEstimate",
    "Provenance",
    "should_overwrite",
    "BoardConfig",
    "MinefieldEnv",
    "BEGINNER",
    "INTERMEDIATE",
    "EXPERT",
    "PRESETS",
    "InvalidPositionError",
    "InvalidTransitionError",
    "PersistenceError",
    "SweeperError",
    "Grid",
]
