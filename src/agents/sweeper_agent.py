"""
Move selector for reverse Minesweeper.

Chooses between flagging proven mines and probing the safest cell, with
a dedicated opening strategy and optional guidance from memory.
"""
import functools
import logging
import random
from enum import Enum, auto
from typing import List, Optional, Sequence

from game.cell import Cell, Position
from game.grid import Grid
from memory.engine import MemoryEngine
from solver.config import DEFAULT_CONFIG, SolverConfig
from solver.constraints import ConstraintEngine, FlagCandidate
from solver.probability import ProbabilityEngine

from .base_agent import Action, ActionKind, BaseAgent, Move, MoveKind


logger = logging.getLogger(__name__)


class AgentPhase(Enum):
    """Lifecycle of the agent within one game."""

    NOT_STARTED = auto()
    FIRST_MOVE = auto()
    STEADY_STATE = auto()
    TERMINAL = auto()


def _manhattan(cell: Cell, position: Position) -> int:
    return abs(cell.row - position[0]) + abs(cell.col - position[1])


class SweeperAgent(BaseAgent):
    """
    Agent combining certain deductions, probabilities and memory.

    Strategy:
        1. First move: remembered opening, else corner, edge, near-edge
        2. Flag every mine the constraint engine can prove
        3. Probe a cell proven safe, preferring corners and edges
        4. Second move: remembered follow-up when it has a good record
        5. Otherwise probe the lowest risk tier, randomizing among the best
    """

    def __init__(
        self,
        rows: int,
        cols: int,
        memory: Optional[MemoryEngine] = None,
        config: Optional[SolverConfig] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        """
        Initialize the agent.

        Args:
            rows: Number of rows in the grid.
            cols: Number of columns in the grid.
            memory: Cross-game memory, if any.
            config: Solver tuning; defaults to DEFAULT_CONFIG.
            rng: Random source for every random choice.
        """
        super().__init__(rows, cols)
        self.memory = memory
        self.config = config or DEFAULT_CONFIG
        self.rng = rng or random.Random()
        self.phase = AgentPhase.NOT_STARTED
        self.history: List[Move] = []
        self.dropped: List[FlagCandidate] = []
        self._side = -1
        self._grid: Optional[Grid] = None
        self.constraint_engine: Optional[ConstraintEngine] = None
        self.probability_engine: Optional[ProbabilityEngine] = None

    def _bind(self, grid: Grid) -> None:
        if self._grid is grid:
            return
        self._grid = grid
        self.constraint_engine = ConstraintEngine(grid, self.config)
        self.probability_engine = ProbabilityEngine(grid, self.config, self.rng)

    @property
    def last_probe(self) -> Optional[Position]:
        if not self.history:
            return None
        return (self.history[-1].row, self.history[-1].col)

    # ========================================================================
    # Agent Interface
    # ========================================================================

    def select_action(self, grid: Grid) -> Action:
        """
        Select the next action for the grid.

        Args:
            grid: Current grid.

        Returns:
            A PROBE or FLAG_BATCH action, or NONE when nothing is left.
        """
        self._bind(grid)
        self.dropped = []

        if self.phase is AgentPhase.TERMINAL:
            return Action(ActionKind.NONE, reason="Game is over")
        if not grid.candidate_cells():
            return Action(ActionKind.NONE, reason="No unknown cells left")

        if self.phase is AgentPhase.NOT_STARTED:
            self.phase = AgentPhase.FIRST_MOVE
        if self.phase is AgentPhase.FIRST_MOVE and not self.history:
            return self._select_first_move(grid)
        return self._select_steady_state(grid)

    def record_move(self, move: Move) -> None:
        """Keep probes for proximity and second-move lookups."""
        if move.kind is MoveKind.PROBE:
            self.history.append(move)
            if self.phase is not AgentPhase.TERMINAL:
                self.phase = AgentPhase.STEADY_STATE

    def finish(self) -> None:
        self.phase = AgentPhase.TERMINAL

    def reset(self) -> None:
        """Reset for a new game."""
        self.phase = AgentPhase.NOT_STARTED
        self.history = []
        self.dropped = []
        self._side = -1
        self._grid = None
        self.constraint_engine = None
        self.probability_engine = None

    # ========================================================================
    # First Move
    # ========================================================================

    def _select_first_move(self, grid: Grid) -> Action:
        """Remembered opening if it wins often enough, else geometry."""
        if self.memory is not None:
            suggestion = self.memory.best_opening(grid.rows, grid.cols)
            if (suggestion is not None
                    and suggestion.win_rate > self.config.opening_min_win_rate
                    and grid.get_cell(suggestion.row, suggestion.col).is_hidden):
                return self._probe(
                    grid.get_cell(suggestion.row, suggestion.col),
                    f"Opening won {suggestion.win_rate:.0%} of "
                    f"{suggestion.total} earlier games",
                    confidence=suggestion.confidence,
                )

        for strategy, reason in (
            (self._random_corner, "Opening: corner"),
            (self._random_edge, "Opening: edge"),
            (self._random_near_edge, "Opening: near the edge"),
            (self._random_cell, "Opening: random cell"),
        ):
            cell = strategy(grid)
            if cell is not None:
                return self._probe(cell, reason)
        return Action(ActionKind.NONE, reason="No unknown cells left")

    def _choose(self, cells: Sequence[Cell]) -> Optional[Cell]:
        if not cells:
            return None
        return cells[self.rng.randrange(len(cells))]

    def _random_corner(self, grid: Grid) -> Optional[Cell]:
        positions = dict.fromkeys([
            (0, 0), (0, grid.cols - 1),
            (grid.rows - 1, 0), (grid.rows - 1, grid.cols - 1),
        ])
        cells = [grid.get_cell(r, c) for r, c in positions]
        return self._choose([c for c in cells if c.is_hidden])

    def _random_edge(self, grid: Grid) -> Optional[Cell]:
        """Non-corner cells of one side; sides rotate top, right, bottom, left."""
        self._side = (self._side + 1) % 4
        last_row, last_col = grid.rows - 1, grid.cols - 1
        if self._side == 0:
            positions = [(0, col) for col in range(1, last_col)]
        elif self._side == 1:
            positions = [(row, last_col) for row in range(1, last_row)]
        elif self._side == 2:
            positions = [(last_row, col) for col in range(1, last_col)]
        else:
            positions = [(row, 0) for row in range(1, last_row)]
        cells = [grid.get_cell(r, c) for r, c in positions]
        return self._choose([c for c in cells if c.is_hidden])

    def _random_near_edge(self, grid: Grid) -> Optional[Cell]:
        return self._choose([
            c for c in grid.candidate_cells() if 1 <= c.edge_distance <= 2
        ])

    def _random_cell(self, grid: Grid) -> Optional[Cell]:
        return self._choose(grid.candidate_cells())

    # ========================================================================
    # Steady State
    # ========================================================================

    def _select_steady_state(self, grid: Grid) -> Action:
        flags = self.constraint_engine.run()
        self.dropped = list(self.constraint_engine.dropped)
        if flags:
            return Action(
                ActionKind.FLAG_BATCH,
                flags=flags,
                reason=f"{len(flags)} mine(s) identified with certainty",
                probability=1.0,
                confidence=1.0,
            )

        view = self.memory.known_mines_view() if self.memory is not None else None
        self.probability_engine.compute_all(view)

        safe_cells = grid.certain_safe_cells()
        if safe_cells:
            return self._probe(self._best_safe_cell(safe_cells), "Cell is certainly safe")

        second = self._second_move(grid)
        if second is not None:
            return second
        return self._select_by_risk(grid.candidate_cells())

    def _best_safe_cell(self, cells: List[Cell]) -> Cell:
        """Corner, then edge, then closest to the last probe, then scan order."""
        if len(cells) == 1:
            return cells[0]
        corners = [c for c in cells if c.is_corner]
        if corners:
            return corners[0]
        edges = [c for c in cells if c.is_edge]
        if edges:
            return edges[0]
        last = self.last_probe
        if last is not None:
            return min(cells, key=lambda c: _manhattan(c, last))
        return cells[0]

    def _second_move(self, grid: Grid) -> Optional[Action]:
        if self.memory is None or len(self.history) != 1:
            return None
        first = self.history[0]
        suggestion = self.memory.best_second_move(
            first.row, first.col, grid.rows, grid.cols
        )
        if suggestion is None:
            return None
        if (suggestion.confidence <= self.config.second_move_min_confidence
                or suggestion.win_rate <= self.config.second_move_min_win_rate):
            return None
        cell = grid.get_cell(suggestion.row, suggestion.col)
        if not cell.is_hidden:
            return None
        return self._probe(
            cell,
            f"Second move won {suggestion.win_rate:.0%} of earlier games",
            confidence=suggestion.confidence,
        )

    def _select_by_risk(self, cells: List[Cell]) -> Action:
        """Probe from the lowest non-empty risk tier."""
        tiers: List[List[Cell]] = [[] for _ in range(len(self.config.risk_tiers) + 1)]
        for cell in cells:
            probability = cell.estimate.mine_probability
            for index, limit in enumerate(self.config.risk_tiers):
                if probability < limit:
                    tiers[index].append(cell)
                    break
            else:
                tiers[-1].append(cell)

        for index, tier in enumerate(tiers[:-1]):
            if tier:
                cell = self._best_in_tier(tier)
                return self._probe(
                    cell,
                    f"Risk tier {index + 1}: "
                    f"{cell.estimate.safe_probability:.0%} estimated safety",
                )

        cell = min(tiers[-1], key=lambda c: c.estimate.mine_probability)
        return self._probe(
            cell,
            f"Least risky cell left: {cell.estimate.safe_probability:.0%} estimated safety",
        )

    def _best_in_tier(self, cells: List[Cell]) -> Cell:
        if len(cells) == 1:
            return cells[0]
        ordered = sorted(cells, key=functools.cmp_to_key(self._compare_cells))
        top = ordered[:self.config.top_candidates]
        return top[self.rng.randrange(len(top))]

    def _compare_cells(self, a: Cell, b: Cell) -> int:
        diff_probability = a.estimate.mine_probability - b.estimate.mine_probability
        if abs(diff_probability) > self.config.probability_tie:
            return -1 if diff_probability < 0 else 1

        diff_confidence = b.estimate.confidence - a.estimate.confidence
        if abs(diff_confidence) > self.config.confidence_tie:
            return -1 if diff_confidence < 0 else 1

        if a.is_corner != b.is_corner:
            return -1 if a.is_corner else 1
        if a.is_edge != b.is_edge:
            return -1 if a.is_edge else 1

        last = self.last_probe
        if last is not None:
            return _manhattan(a, last) - _manhattan(b, last)
        return 0

    def _probe(
        self, cell: Cell, reason: str, confidence: Optional[float] = None
    ) -> Action:
        return Action(
            ActionKind.PROBE,
            row=cell.row,
            col=cell.col,
            reason=reason,
            probability=cell.estimate.mine_probability,
            confidence=cell.estimate.confidence if confidence is None else confidence,
        )
