"""
Grid-size independent position keys.

Positions are bucketed to tenths of each axis so a mine at (3, 3) on a
10x10 grid and one at (6, 6) on a 19x19 grid share the key "0.3,0.3".
"""
import math
from typing import Iterable, Tuple


NormalizedPosition = Tuple[float, float]

BUCKETS = 10


def _normalize_axis(index: int, size: int) -> float:
    if size <= 1:
        return 0.0
    return (index * BUCKETS // (size - 1)) / BUCKETS


def _denormalize_axis(value: float, size: int) -> int:
    if size <= 1:
        return 0
    index = int(math.floor(value * (size - 1) + 0.5))
    return min(size - 1, max(0, index))


def normalize_position(row: int, col: int, rows: int, cols: int) -> NormalizedPosition:
    """
    Map a cell to its relative bucket.

    Args:
        row: Row index.
        col: Column index.
        rows: Grid height.
        cols: Grid width.

    Returns:
        (row, col) fractions floored to one decimal.
    """
    return _normalize_axis(row, rows), _normalize_axis(col, cols)


def denormalize_position(
    position: NormalizedPosition, rows: int, cols: int
) -> Tuple[int, int]:
    """Map a bucket back onto a concrete grid, rounding half up."""
    return _denormalize_axis(position[0], rows), _denormalize_axis(position[1], cols)


def position_key(row_norm: float, col_norm: float) -> str:
    """Render a normalized position as a key such as "0.3,1"."""
    return f"{row_norm:g},{col_norm:g}"


def parse_position_key(key: str) -> NormalizedPosition:
    """
    Inverse of position_key.

    Raises:
        ValueError: If the key is not two comma-separated fractions in
            [0, 1].
    """
    parts = key.split(",")
    if len(parts) != 2:
        raise ValueError(f"Malformed position key: {key!r}")
    row_norm, col_norm = float(parts[0]), float(parts[1])
    for value in (row_norm, col_norm):
        if not math.isfinite(value) or not 0.0 <= value <= 1.0:
            raise ValueError(f"Position key out of range: {key!r}")
    return row_norm, col_norm


def cell_key(row: int, col: int, rows: int, cols: int) -> str:
    return position_key(*normalize_position(row, col, rows, cols))


def sequence_key(keys: Iterable[str]) -> str:
    """Join position keys into a move sequence key."""
    return "|".join(keys)
