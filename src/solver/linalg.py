"""
Small dense linear-algebra helpers for constraint systems.

Every function degrades gracefully: singular, underdetermined or
non-finite systems yield None instead of raising.
"""
import logging
from typing import Optional, Sequence

import numpy as np


logger = logging.getLogger(__name__)

PIVOT_EPSILON = 1e-10
CONSISTENCY_TOLERANCE = 1e-6


def gauss_jordan(
    matrix: Sequence[Sequence[float]],
    vector: Sequence[float],
    epsilon: float = PIVOT_EPSILON,
) -> Optional[np.ndarray]:
    """
    Solve A x = b by Gauss-Jordan elimination with partial pivoting.

    Pivots smaller than ``epsilon`` are skipped. Only systems with a unique
    solution produce an answer.

    Args:
        matrix: Coefficient rows (one per equation).
        vector: Right-hand side.
        epsilon: Minimum pivot magnitude.

    Returns:
        Solution vector, or None for underdetermined, inconsistent or
        degenerate systems.
    """
    a = np.asarray(matrix, dtype=float)
    b = np.asarray(vector, dtype=float)
    if a.ndim != 2 or a.shape[0] == 0 or a.shape[0] != b.shape[0]:
        return None

    equations, unknowns = a.shape
    if unknowns > equations:
        return None

    augmented = np.hstack([a, b.reshape(-1, 1)])
    pivot_columns = []
    rank = 0

    with np.errstate(all="ignore"):
        for col in range(unknowns):
            pivot_row = rank + int(np.argmax(np.abs(augmented[rank:, col])))
            if abs(augmented[pivot_row, col]) < epsilon:
                continue
            if pivot_row != rank:
                augmented[[rank, pivot_row]] = augmented[[pivot_row, rank]]

            augmented[rank] /= augmented[rank, col]
            for row in range(equations):
                if row != rank:
                    augmented[row] -= augmented[row, col] * augmented[rank]

            pivot_columns.append(col)
            rank += 1
            if rank == equations:
                break

    if rank < unknowns:
        logger.debug("Rank %d below %d unknowns; no unique solution", rank, unknowns)
        return None
    if np.any(np.abs(augmented[rank:, -1]) > CONSISTENCY_TOLERANCE):
        logger.debug("Inconsistent system")
        return None

    solution = np.zeros(unknowns)
    for row, col in enumerate(pivot_columns):
        solution[col] = augmented[row, -1]
    if not np.all(np.isfinite(solution)):
        return None
    return solution


def least_squares(
    matrix: Sequence[Sequence[float]],
    vector: Sequence[float],
) -> Optional[np.ndarray]:
    """
    Approximate A x = b through the normal equations (A^T A) x = A^T b.

    Singular normal matrices fall back to the minimum-norm solution.

    Returns:
        Best-effort solution, or None if nothing finite comes out.
    """
    a = np.asarray(matrix, dtype=float)
    b = np.asarray(vector, dtype=float)
    if a.ndim != 2 or a.size == 0 or a.shape[0] != b.shape[0]:
        return None

    ata = a.T @ a
    atb = a.T @ b
    try:
        if np.linalg.matrix_rank(ata) == ata.shape[0]:
            solution = np.linalg.solve(ata, atb)
        else:
            solution, *_ = np.linalg.lstsq(ata, atb, rcond=None)
    except np.linalg.LinAlgError as exc:
        logger.debug("Normal equations failed: %s", exc)
        return None

    if not np.all(np.isfinite(solution)):
        return None
    return solution
