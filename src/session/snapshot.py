"""
Immutable views of a game session for callers and observers.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import numpy as np

from agents.base_agent import Action


@dataclass(frozen=True)
class GameSnapshot:
    """
    State of a session at one point in time.

    Attributes:
        rows: Grid height (0 before the first game).
        cols: Grid width (0 before the first game).
        phase: Agent phase name.
        board: ASCII rendering of the grid.
        observation: int8 matrix of cell codes.
        pending: Cell waiting for its ground truth, if any.
        game_over: Whether the game has ended.
        victory: Whether it ended in a win.
        moves_made: Probes answered so far.
        flags_placed: Flags currently on the grid.
        elapsed: Seconds since the game started.
        last_action: Most recent agent action.
        memory_stats: Memory statistics, empty without memory.
        game_id: Memory game id, if any.
    """

    rows: int
    cols: int
    phase: str
    board: str
    observation: np.ndarray = field(repr=False, compare=False)
    pending: Optional[Tuple[int, int]] = None
    game_over: bool = False
    victory: bool = False
    moves_made: int = 0
    flags_placed: int = 0
    elapsed: float = 0.0
    last_action: Optional[Action] = None
    memory_stats: Dict[str, Any] = field(default_factory=dict, compare=False)
    game_id: Optional[str] = None

    @property
    def awaiting_answer(self) -> bool:
        return self.pending is not None and not self.game_over

    def to_dict(self) -> Dict[str, Any]:
        """Plain representation for printing or JSON."""
        action = None
        if self.last_action is not None:
            action = {
                "kind": self.last_action.kind.name,
                "position": self.last_action.position,
                "flags": [f.position for f in self.last_action.flags],
                "reason": self.last_action.reason,
                "probability": self.last_action.probability,
                "confidence": self.last_action.confidence,
            }
        return {
            "rows": self.rows,
            "cols": self.cols,
            "phase": self.phase,
            "pending": self.pending,
            "awaiting_answer": self.awaiting_answer,
            "game_over": self.game_over,
            "victory": self.victory,
            "moves_made": self.moves_made,
            "flags_placed": self.flags_placed,
            "elapsed": round(self.elapsed, 3),
            "last_action": action,
            "memory_stats": dict(self.memory_stats),
            "game_id": self.game_id,
        }
