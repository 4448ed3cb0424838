"""
Pytest configuration and shared fixtures.
"""
import random
import pytest
import sys
from pathlib import Path
from typing import Callable, Dict, Iterable, Tuple

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from game import BoardConfig, Grid, MinefieldEnv
from memory import InMemoryStore, MemoryEngine
from session import GameSession
from solver import SolverConfig


GridBuilder = Callable[..., Grid]


def build_grid(
    rows: int,
    cols: int,
    reveals: Dict[Tuple[int, int], str],
    flags: Iterable[Tuple[int, int]] = (),
) -> Grid:
    """Create a grid with the given answers and flags already applied."""
    grid = Grid(rows, cols)
    for (row, col), value in reveals.items():
        grid.reveal(row, col, value)
    for row, col in flags:
        grid.set_flag(row, col, True)
    return grid


# ============================================================================
# Grid Fixtures
# ============================================================================

@pytest.fixture
def grid_builder() -> GridBuilder:
    """Factory building grids from a dict of revealed values."""
    return build_grid


@pytest.fixture
def small_grid() -> Grid:
    """Create an untouched 3x3 grid."""
    return Grid(3, 3)


@pytest.fixture
def default_grid() -> Grid:
    """Create an untouched 8x8 grid."""
    return Grid(8, 8)


@pytest.fixture
def corner_one_grid() -> Grid:
    """2x2 grid where (0, 0) is the only unknown next to three 1s."""
    return build_grid(2, 2, {(0, 1): "1", (1, 0): "1", (1, 1): "1"})


@pytest.fixture
def one_two_one_grid() -> Grid:
    """
    2x3 grid with a 1-2-1 row under three unknown cells.

    The only consistent layout has mines at (0, 0) and (0, 2).
    """
    return build_grid(2, 3, {(1, 0): "1", (1, 1): "2", (1, 2): "1"})


# ============================================================================
# Configuration and Randomness Fixtures
# ============================================================================

@pytest.fixture
def solver_config() -> SolverConfig:
    """Default solver configuration."""
    return SolverConfig()


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source."""
    return random.Random(1234)


# ============================================================================
# Memory and Session Fixtures
# ============================================================================

@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def memory(memory_store: InMemoryStore) -> MemoryEngine:
    """Memory engine backed by an in-process store."""
    return MemoryEngine(memory_store, rng=random.Random(7))


@pytest.fixture
def session(memory: MemoryEngine, rng: random.Random) -> GameSession:
    """Session with memory and a seeded random source."""
    return GameSession(memory=memory, rng=rng)


# ============================================================================
# Environment Fixtures
# ============================================================================

@pytest.fixture
def beginner_config() -> BoardConfig:
    """Beginner difficulty configuration."""
    return BoardConfig(9, 9, 10)


@pytest.fixture
def tiny_env() -> MinefieldEnv:
    """3x3 environment with one mine."""
    return MinefieldEnv(BoardConfig(3, 3, 1))
