"""
Exceptions raised by the reverse Minesweeper engine.
"""


class SweeperError(Exception):
    """Base class for engine errors."""


class InvalidPositionError(SweeperError, IndexError):
    """Coordinates fall outside the grid."""

    def __init__(self, row: int, col: int, rows: int, cols: int) -> None:
        super().__init__(
            f"Position ({row}, {col}) is outside a {rows}x{cols} grid"
        )
        self.row = row
        self.col = col


class InvalidTransitionError(SweeperError):
    """Operation not allowed in the current game state."""


class PersistenceError(SweeperError):
    """A key-value store failed to read or write."""
