"""
Base agent interface for reverse Minesweeper.

Defines the actions an agent can emit, the moves a session records and
the abstract interface every move selector implements.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional, Tuple

from game.grid import Grid
from solver.constraints import FlagCandidate


# ============================================================================
# Actions and Moves
# ============================================================================

class ActionKind(Enum):
    """What the agent asks the session to do next."""

    PROBE = auto()
    FLAG_BATCH = auto()
    ERROR = auto()
    NONE = auto()


class MoveKind(Enum):
    """Kinds of moves kept in a game's history."""

    PROBE = auto()
    FLAG_BATCH = auto()


@dataclass
class Action:
    """
    A decision produced by an agent.

    Attributes:
        kind: Type of action.
        row: Probed row (PROBE only).
        col: Probed column (PROBE only).
        flags: Proven mines to flag (FLAG_BATCH only).
        reason: Human-readable explanation.
        probability: Estimated mine probability of the probed cell.
        confidence: Confidence of that estimate.
    """

    kind: ActionKind
    row: Optional[int] = None
    col: Optional[int] = None
    flags: List[FlagCandidate] = field(default_factory=list)
    reason: str = ""
    probability: Optional[float] = None
    confidence: Optional[float] = None

    @property
    def position(self) -> Optional[Tuple[int, int]]:
        if self.row is None or self.col is None:
            return None
        return (self.row, self.col)


@dataclass
class Move:
    """A move made during a game."""

    row: int
    col: int
    kind: MoveKind = MoveKind.PROBE
    ground_truth: Optional[str] = None


# ============================================================================
# Base Agent Interface
# ============================================================================

class BaseAgent(ABC):
    """
    Abstract base class for reverse Minesweeper agents.

    All agents must implement select_action to decide, from the current
    grid, whether to flag proven mines or which cell to probe next.
    """

    def __init__(self, rows: int, cols: int) -> None:
        """
        Initialize the agent.

        Args:
            rows: Number of rows in the grid.
            cols: Number of columns in the grid.
        """
        self.rows = rows
        self.cols = cols

    @abstractmethod
    def select_action(self, grid: Grid) -> Action:
        """
        Select the next action for the current grid.

        Args:
            grid: Grid holding every answer received so far.

        Returns:
            The action to perform.
        """
        pass

    def record_move(self, move: Move) -> None:
        """Observe a move once the session has applied it."""
        pass

    def reset(self) -> None:
        """Reset agent state for a new game."""
        pass
