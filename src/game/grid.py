"""
Grid module for reverse Minesweeper.

Owns the cells, their geometry and the constraints derived from
revealed digits. The grid never knows where the mines are: values only
arrive through reveal().
"""
from typing import Iterator, List, Tuple

import numpy as np

from .cell import Cell, Constraint, Position
from .errors import InvalidPositionError


# ============================================================================
# Constants
# ============================================================================

NEIGHBOR_OFFSETS: Tuple[Tuple[int, int], ...] = tuple(
    (delta_row, delta_col)
    for delta_row in (-1, 0, 1)
    for delta_col in (-1, 0, 1)
    if (delta_row, delta_col) != (0, 0)
)


# ============================================================================
# Grid Class
# ============================================================================

class Grid:
    """
    Reverse Minesweeper board state.

    Tracks revealed values and engine-placed flags. Constraints are
    rebuilt in full whenever a reveal or flag change marks the grid
    dirty; nothing is patched incrementally.
    """

    def __init__(self, rows: int, cols: int) -> None:
        """
        Create a grid with every cell hidden.

        Args:
            rows: Number of rows.
            cols: Number of columns.
        """
        if rows < 1 or cols < 1:
            raise ValueError("Grid dimensions must be positive")
        self.rows = rows
        self.cols = cols
        self._cells: List[List[Cell]] = []
        self._flag_count = 0
        self._revealed_count = 0
        self._constraints_dirty = True
        self._constraints: List[Constraint] = []
        self._init_cells()

    # ========================================================================
    # Initialization (Low-level)
    # ========================================================================

    def _init_cells(self) -> None:
        """Create cells and their fixed geometry."""
        self._cells = [
            [self._make_cell(row, col) for col in range(self.cols)]
            for row in range(self.rows)
        ]

    def _make_cell(self, row: int, col: int) -> Cell:
        last_row = self.rows - 1
        last_col = self.cols - 1
        on_row_edge = row in (0, last_row)
        on_col_edge = col in (0, last_col)
        return Cell(
            row=row,
            col=col,
            is_corner=on_row_edge and on_col_edge,
            is_edge=on_row_edge or on_col_edge,
            edge_distance=min(row, last_row - row, col, last_col - col),
        )

    def reset(self) -> None:
        """Rebuild every cell, discarding all state."""
        self._flag_count = 0
        self._revealed_count = 0
        self._constraints_dirty = True
        self._constraints = []
        self._init_cells()

    # ========================================================================
    # Positions and Neighbors
    # ========================================================================

    def is_valid_position(self, row: int, col: int) -> bool:
        """Check if position is within grid bounds."""
        return 0 <= row < self.rows and 0 <= col < self.cols

    def get_cell(self, row: int, col: int) -> Cell:
        """
        Get the cell at a position.

        Raises:
            InvalidPositionError: If the position is outside the grid.
        """
        if not self.is_valid_position(row, col):
            raise InvalidPositionError(row, col, self.rows, self.cols)
        return self._cells[row][col]

    def neighbors(self, row: int, col: int) -> List[Position]:
        """
        Get valid neighboring positions in row-major offset order.

        Args:
            row: Row index of center cell.
            col: Column index of center cell.

        Returns:
            Up to 8 (row, col) tuples.
        """
        positions = []
        for delta_row, delta_col in NEIGHBOR_OFFSETS:
            new_row = row + delta_row
            new_col = col + delta_col
            if self.is_valid_position(new_row, new_col):
                positions.append((new_row, new_col))
        return positions

    def neighbor_cells(self, row: int, col: int) -> List[Cell]:
        return [self._cells[r][c] for r, c in self.neighbors(row, col)]

    def __iter__(self) -> Iterator[Cell]:
        for row in self._cells:
            yield from row

    # ========================================================================
    # Mutations
    # ========================================================================

    def reveal(self, row: int, col: int, value: str) -> bool:
        """
        Store the oracle answer for a cell.

        Args:
            row: Row index.
            col: Column index.
            value: '', '0'-'8' or 'M'.

        Returns:
            False if the cell was already revealed, True otherwise.
        """
        cell = self.get_cell(row, col)
        was_flagged = cell.flagged
        if not cell.reveal(value):
            return False
        if was_flagged:
            self._flag_count -= 1
        self._revealed_count += 1
        self._constraints_dirty = True
        return True

    def set_flag(self, row: int, col: int, flagged: bool = True) -> bool:
        """
        Place or remove a flag.

        Returns:
            True if the flag state changed; revealed cells never change.
        """
        cell = self.get_cell(row, col)
        if not cell.set_flag(flagged):
            return False
        self._flag_count += 1 if flagged else -1
        self._constraints_dirty = True
        return True

    # ========================================================================
    # Constraints
    # ========================================================================

    @property
    def constraints_dirty(self) -> bool:
        return self._constraints_dirty

    def ensure_constraints(self) -> bool:
        """
        Rebuild constraints if the grid changed since the last rebuild.

        Returns:
            True if a rebuild happened.
        """
        if not self._constraints_dirty:
            return False
        self._rebuild_constraints()
        self._constraints_dirty = False
        return True

    def constraints(self) -> List[Constraint]:
        """Current constraints, rebuilt first if the grid is dirty."""
        self.ensure_constraints()
        return list(self._constraints)

    def _rebuild_constraints(self) -> None:
        for cell in self:
            cell.constraints = []

        self._constraints = self.build_constraints()
        for constraint in self._constraints:
            for row, col in constraint.cells:
                self._cells[row][col].constraints.append(constraint)

    def build_constraints(self) -> List[Constraint]:
        """Derive one constraint per revealed digit with hidden neighbors."""
        constraints = []
        for cell in self.numeric_cells():
            around = self.neighbor_cells(cell.row, cell.col)
            cells = tuple(n.position for n in around if not n.revealed)
            if not cells:
                continue
            constraints.append(Constraint(
                origin=cell.position,
                value=cell.numeric_value,
                flags_placed=sum(1 for n in around if n.flagged),
                cells=cells,
                unknowns=tuple(n.position for n in around if n.is_hidden),
            ))
        return constraints

    def constraint_at(self, row: int, col: int) -> Constraint:
        """Constraint of a single revealed digit, built on demand."""
        cell = self.get_cell(row, col)
        around = self.neighbor_cells(row, col)
        return Constraint(
            origin=cell.position,
            value=cell.numeric_value or 0,
            flags_placed=sum(1 for n in around if n.flagged),
            cells=tuple(n.position for n in around if not n.revealed),
            unknowns=tuple(n.position for n in around if n.is_hidden),
        )

    # ========================================================================
    # Bulk Queries
    # ========================================================================

    def unrevealed_cells(self) -> List[Cell]:
        return [cell for cell in self if not cell.revealed]

    def candidate_cells(self) -> List[Cell]:
        """Unrevealed and unflagged cells."""
        return [cell for cell in self if cell.is_hidden]

    def flagged_cells(self) -> List[Cell]:
        return [cell for cell in self if cell.flagged]

    def revealed_cells(self) -> List[Cell]:
        return [cell for cell in self if cell.revealed]

    def numeric_cells(self) -> List[Cell]:
        return [cell for cell in self if cell.has_numeric_value]

    def certain_mine_cells(self) -> List[Cell]:
        return [cell for cell in self if cell.is_hidden and cell.is_certain_mine]

    def certain_safe_cells(self) -> List[Cell]:
        return [cell for cell in self if cell.is_hidden and cell.is_certain_safe]

    def is_frontier(self, cell: Cell) -> bool:
        """Unrevealed cell touching at least one revealed cell."""
        if cell.revealed:
            return False
        return any(n.revealed for n in self.neighbor_cells(cell.row, cell.col))

    def frontier_cells(self) -> List[Cell]:
        return [cell for cell in self if self.is_frontier(cell)]

    def touches_empty(self, row: int, col: int) -> bool:
        """Whether any neighbor is a revealed empty/zero cell."""
        return any(n.is_empty_or_zero for n in self.neighbor_cells(row, col))

    # ========================================================================
    # State Accessors
    # ========================================================================

    @property
    def flag_count(self) -> int:
        return self._flag_count

    @property
    def revealed_count(self) -> int:
        return self._revealed_count

    def is_fully_flagged(self) -> bool:
        """Every unrevealed cell carries a flag."""
        unrevealed = self.unrevealed_cells()
        flagged = self.flagged_cells()
        return len(unrevealed) == len(flagged) and all(c.flagged for c in unrevealed)

    def get_observation(self) -> np.ndarray:
        """
        Get grid state as numpy array.

        Returns:
            2D int8 array where:
                -1 = hidden
                -2 = flagged
                0-8 = revealed digit
                9 = revealed mine
        """
        obs = np.zeros((self.rows, self.cols), dtype=np.int8)
        for cell in self:
            obs[cell.row, cell.col] = cell.to_observation()
        return obs

    def render(self) -> str:
        """Render grid as ASCII string."""
        return "\n".join(
            " ".join(str(cell) for cell in row) for row in self._cells
        )
