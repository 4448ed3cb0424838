"""
Constraint engine for certain mine deductions.

Runs four passes over the constraints of revealed digits and collects
cells that must hold a mine:

    1. Basic counting: a digit whose remaining mines equal its unknowns.
    2. Subset / intersection reasoning between pairs of digits.
    3. Local patterns (1-2-1, 1-1 shared corner, isolated edge 1).
    4. Exact linear systems over connected groups of constraints.

A final consistency filter drops any candidate that would push a digit
over its count. The engine never places flags itself.
"""
import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Set

from game.cell import Constraint, Position, Provenance
from game.grid import Grid

from .config import DEFAULT_CONFIG, SolverConfig
from .linalg import gauss_jordan


logger = logging.getLogger(__name__)


# ============================================================================
# Candidate Types
# ============================================================================

@dataclass(frozen=True)
class FlagCandidate:
    """A cell proven to hold a mine, with the rule that proved it."""

    row: int
    col: int
    rule: str
    reason: str
    iteration: int

    @property
    def position(self) -> Position:
        return (self.row, self.col)


# ============================================================================
# Constraint Engine
# ============================================================================

class ConstraintEngine:
    """
    Deduces certain mines from the revealed digits of a grid.

    Strategy:
        1. Refresh constraints if the grid changed
        2. Run the four deduction passes, checking eligibility first
        3. Drop candidates that break any digit once combined
        4. Return what survives; the caller places the flags

    Attributes:
        iteration: Number of completed runs.
        proven_safe: Positions shown safe by intersection analysis.
        dropped: Candidates removed by the consistency filter.
    """

    def __init__(self, grid: Grid, config: Optional[SolverConfig] = None) -> None:
        """
        Initialize the engine.

        Args:
            grid: Grid to analyse.
            config: Solver tuning; defaults to DEFAULT_CONFIG.
        """
        self.grid = grid
        self.config = config or DEFAULT_CONFIG
        self.iteration = 0
        self.proven_safe: Set[Position] = set()
        self.dropped: List[FlagCandidate] = []
        self._candidates: List[FlagCandidate] = []
        self._pending: Set[Position] = set()

    def run(self) -> List[FlagCandidate]:
        """
        Run every deduction pass once.

        Returns:
            Candidates that passed the consistency filter, in discovery order.
        """
        self.iteration += 1
        self._candidates = []
        self._pending = set()
        self.proven_safe = set()
        self.dropped = []

        constraints = [c for c in self.grid.constraints() if c.unknowns]

        self._basic_pass(constraints)
        self._subset_pass(constraints)
        self._pattern_pass()
        self._linear_pass(constraints)

        accepted = self._consistency_filter(self._candidates)
        logger.debug(
            "Run %d: %d candidates, %d accepted, %d proven safe",
            self.iteration, len(self._candidates), len(accepted),
            len(self.proven_safe),
        )
        return accepted

    # ========================================================================
    # Eligibility
    # ========================================================================

    def can_flag(self, position: Position) -> bool:
        """
        Check whether a cell may become a candidate.

        The cell must be unknown, not already pending, not next to a
        revealed empty/zero, and no digit referencing it may already be
        saturated by flags plus pending candidates.
        """
        cell = self.grid.get_cell(*position)
        if cell.revealed or cell.flagged or cell.is_certain_safe:
            return False
        if position in self._pending:
            return False
        if self.grid.touches_empty(*position):
            return False

        for constraint in cell.constraints:
            pending = sum(1 for p in constraint.cells if p in self._pending)
            if constraint.flags_placed + pending >= constraint.value:
                return False
        return True

    def _propose(self, position: Position, rule: str, reason: str) -> bool:
        if not self.can_flag(position):
            return False
        row, col = position
        self._candidates.append(
            FlagCandidate(row, col, rule, reason, self.iteration)
        )
        self._pending.add(position)
        return True

    def _mark_safe(self, position: Position) -> None:
        cell = self.grid.get_cell(*position)
        if not cell.is_hidden:
            return
        cell.estimate.update(0.0, 1.0, Provenance.CERTAIN)
        self.proven_safe.add(position)

    # ========================================================================
    # Pass 1: Basic Counting
    # ========================================================================

    def _basic_pass(self, constraints: List[Constraint]) -> None:
        """All unknowns are mines when their count equals the remaining mines."""
        for constraint in constraints:
            remaining = constraint.mines_remaining
            if remaining > 0 and len(constraint.unknowns) == remaining:
                for position in constraint.unknowns:
                    self._propose(
                        position, "basic",
                        f"{constraint.origin} needs {remaining} more mine(s) "
                        f"among {len(constraint.unknowns)} unknown cell(s)",
                    )

    # ========================================================================
    # Pass 2: Subset and Intersection
    # ========================================================================

    def _subset_pass(self, constraints: List[Constraint]) -> None:
        """
        Compare every ordered pair of constraints.

        Example:
            A: {X, Y} has 1 mine
            B: {X, Y, Z} has 2 mines
            -> Z must be a mine (B - A = {Z} has 1 mine)
        """
        for first in constraints:
            for second in constraints:
                if first is second:
                    continue
                unknowns_a = frozenset(first.unknowns)
                unknowns_b = frozenset(second.unknowns)

                if unknowns_a <= unknowns_b:
                    self._check_subset(first, second, unknowns_a, unknowns_b)
                elif unknowns_a & unknowns_b and not unknowns_b <= unknowns_a:
                    self._check_intersection(first, second, unknowns_a, unknowns_b)

    def _check_subset(
        self,
        inner: Constraint,
        outer: Constraint,
        inner_cells: FrozenSet[Position],
        outer_cells: FrozenSet[Position],
    ) -> None:
        difference = outer_cells - inner_cells
        diff_mines = outer.mines_remaining - inner.mines_remaining
        if not difference or diff_mines <= 0 or diff_mines != len(difference):
            return
        for position in sorted(difference):
            self._propose(
                position, "subset",
                f"{outer.origin} minus {inner.origin} leaves "
                f"{diff_mines} mine(s) in {len(difference)} cell(s)",
            )

    def _check_intersection(
        self,
        first: Constraint,
        second: Constraint,
        cells_a: FrozenSet[Position],
        cells_b: FrozenSet[Position],
    ) -> None:
        shared = cells_a & cells_b
        only_a = cells_a - shared
        only_b = cells_b - shared
        rem_a = first.mines_remaining
        rem_b = second.mines_remaining

        # Mines the second digit cannot place outside the shared cells
        forced_by_b = max(0, rem_b - len(only_b))
        if only_a and rem_a >= 0 and forced_by_b >= rem_a:
            for position in sorted(only_a):
                self._mark_safe(position)

        max_shared = min(rem_a, rem_b, len(shared))
        min_shared = max(0, rem_a - len(only_a), rem_b - len(only_b))
        if min_shared == max_shared == len(shared) > 0:
            for position in sorted(shared):
                self._propose(
                    position, "intersection",
                    f"{first.origin} and {second.origin} force "
                    f"{len(shared)} mine(s) into their shared cells",
                )

    # ========================================================================
    # Pass 3: Patterns
    # ========================================================================

    def _pattern_pass(self) -> None:
        for cell in self.grid:
            self._check_121(cell.row, cell.col)
            if cell.is_hidden:
                self._check_shared_corner(cell.row, cell.col)
            if cell.is_edge and cell.numeric_value == 1:
                self._check_edge_one(cell.row, cell.col)

    def _check_121(self, row: int, col: int) -> None:
        """
        Digits 1-2-1 in a line with no flags around them.

        The middle 2 sees three unknowns: one shared with both ends and
        one shared with each end alone. The two one-sided cells are mines.
        """
        for delta_row, delta_col in ((0, 1), (1, 0)):
            line = [
                (row + step * delta_row, col + step * delta_col)
                for step in range(3)
            ]
            if not all(self.grid.is_valid_position(*p) for p in line):
                continue
            cells = [self.grid.get_cell(*p) for p in line]
            if [c.numeric_value for c in cells] != [1, 2, 1]:
                continue
            constraints = [self.grid.constraint_at(*p) for p in line]
            if any(c.flags_placed for c in constraints):
                continue

            middle_unknowns = constraints[1].unknowns
            if len(middle_unknowns) != 3:
                continue
            near_start = set(self.grid.neighbors(*line[0]))
            near_end = set(self.grid.neighbors(*line[2]))
            shared = [p for p in middle_unknowns if p in near_start and p in near_end]
            start_only = [p for p in middle_unknowns if p in near_start and p not in near_end]
            end_only = [p for p in middle_unknowns if p in near_end and p not in near_start]
            if len(shared) != 1 or len(start_only) != 1 or len(end_only) != 1:
                continue

            for position in start_only + end_only:
                self._propose(
                    position, "pattern-121",
                    f"1-2-1 pattern centred on {line[1]}",
                )

    def _check_shared_corner(self, row: int, col: int) -> None:
        """A vertical and a horizontal 1 that both see only this cell."""
        for delta_row in (-1, 1):
            for delta_col in (-1, 1):
                vertical = (row + delta_row, col)
                horizontal = (row, col + delta_col)
                if not (self.grid.is_valid_position(*vertical)
                        and self.grid.is_valid_position(*horizontal)):
                    continue
                if not (self._is_single_one(vertical, (row, col))
                        and self._is_single_one(horizontal, (row, col))):
                    continue
                self._propose(
                    (row, col), "pattern-11",
                    f"1s at {vertical} and {horizontal} share only this cell",
                )
                return

    def _is_single_one(self, position: Position, target: Position) -> bool:
        if self.grid.get_cell(*position).numeric_value != 1:
            return False
        return self.grid.constraint_at(*position).unknowns == (target,)

    def _check_edge_one(self, row: int, col: int) -> None:
        unknowns = self.grid.constraint_at(row, col).unknowns
        if len(unknowns) == 1:
            self._propose(
                unknowns[0], "pattern-edge",
                f"edge 1 at {(row, col)} has a single unknown neighbor",
            )

    # ========================================================================
    # Pass 4: Linear Systems
    # ========================================================================

    def _linear_pass(self, constraints: List[Constraint]) -> None:
        """Solve each connected group of two or more constraints exactly."""
        for component in self._components(constraints):
            if len(component) < 2:
                continue
            unknowns = sorted({p for c in component for p in c.unknowns})
            index = {p: i for i, p in enumerate(unknowns)}

            matrix = []
            vector = []
            for constraint in component:
                row = [0.0] * len(unknowns)
                for position in constraint.unknowns:
                    row[index[position]] = 1.0
                matrix.append(row)
                vector.append(float(constraint.mines_remaining))

            solution = gauss_jordan(matrix, vector, self.config.pivot_epsilon)
            if solution is None:
                continue
            for position, value in zip(unknowns, solution):
                if abs(value - 1.0) <= self.config.solution_tolerance:
                    self._propose(
                        position, "linear",
                        f"unique solution of {len(component)} linked constraints",
                    )

    @staticmethod
    def _components(constraints: List[Constraint]) -> List[List[Constraint]]:
        """Group constraints that share unknown cells."""
        by_cell: Dict[Position, List[int]] = {}
        for i, constraint in enumerate(constraints):
            for position in constraint.unknowns:
                by_cell.setdefault(position, []).append(i)

        seen: Set[int] = set()
        components = []
        for start in range(len(constraints)):
            if start in seen:
                continue
            seen.add(start)
            stack = [start]
            members = []
            while stack:
                current = stack.pop()
                members.append(current)
                for position in constraints[current].unknowns:
                    for other in by_cell[position]:
                        if other not in seen:
                            seen.add(other)
                            stack.append(other)
            components.append([constraints[i] for i in sorted(members)])
        return components

    # ========================================================================
    # Consistency Filter
    # ========================================================================

    def _consistency_filter(
        self, candidates: List[FlagCandidate]
    ) -> List[FlagCandidate]:
        """Keep candidates that fit every digit together with earlier ones."""
        accepted: List[FlagCandidate] = []
        accepted_positions: Set[Position] = set()

        for candidate in candidates:
            cell = self.grid.get_cell(candidate.row, candidate.col)
            violated = None
            for constraint in cell.constraints:
                mines = constraint.flags_placed + 1 + sum(
                    1 for p in constraint.cells if p in accepted_positions
                )
                if mines > constraint.value:
                    violated = constraint
                    break

            if violated is not None:
                logger.warning(
                    "Dropping %s candidate at %s: digit %d at %s would be exceeded",
                    candidate.rule, candidate.position, violated.value,
                    violated.origin,
                )
                self.dropped.append(candidate)
                continue

            accepted.append(candidate)
            accepted_positions.add(candidate.position)
        return accepted
