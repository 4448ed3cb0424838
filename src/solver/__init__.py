"""Deduction and probability estimation for reverse Minesweeper."""
from .config import DEFAULT_CONFIG, SolverConfig
from .constraints import ConstraintEngine, FlagCandidate
from .linalg import gauss_jordan, least_squares
from .probability import ProbabilityEngine

__all__ = [
    "DEFAULT_CONFIG",
    "SolverConfig",
    "ConstraintEngine",
    "FlagCandidate",
    "gauss_jordan",
    "least_squares",
    "ProbabilityEngine",
]
