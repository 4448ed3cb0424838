"""
Unit tests for the move-selecting agent.
"""
import random

import pytest

from agents import ActionKind, AgentPhase, Move, MoveKind, SweeperAgent
from game import Grid
from memory import MemoryEngine


@pytest.fixture
def agent_factory(rng: random.Random):
    """Build agents sharing the seeded random source."""
    def build(grid: Grid, memory: MemoryEngine = None) -> SweeperAgent:
        return SweeperAgent(grid.rows, grid.cols, memory=memory, rng=rng)
    return build


# ============================================================================
# First Move
# ============================================================================

class TestFirstMove:
    """Tests for the opening strategy."""

    def test_corner_on_empty_grid(self, default_grid: Grid, agent_factory) -> None:
        agent = agent_factory(default_grid)
        action = agent.select_action(default_grid)

        assert action.kind == ActionKind.PROBE
        assert default_grid.get_cell(action.row, action.col).is_corner
        assert agent.phase == AgentPhase.FIRST_MOVE

    def test_edges_rotate(self, grid_builder, agent_factory) -> None:
        """With corners gone the opening walks top, right, bottom, left."""
        grid = grid_builder(4, 4, {(0, 0): "1", (0, 3): "1", (3, 0): "1", (3, 3): "1"})
        agent = agent_factory(grid)

        sides = [
            {(0, 1), (0, 2)},
            {(1, 3), (2, 3)},
            {(3, 1), (3, 2)},
            {(1, 0), (2, 0)},
        ]
        for expected in sides:
            assert agent.select_action(grid).position in expected

    def test_near_edge_when_border_is_known(self, grid_builder, agent_factory) -> None:
        border = {(r, c): "1" for r in range(3) for c in range(3) if (r, c) != (1, 1)}
        grid = grid_builder(3, 3, border)

        action = agent_factory(grid).select_action(grid)

        assert action.position == (1, 1)

    def test_remembered_opening(self, default_grid: Grid, memory: MemoryEngine,
                                agent_factory) -> None:
        for _ in range(2):
            memory.record_game_result(True, [Move(4, 4)], 8, 8, 1.0)

        action = agent_factory(default_grid, memory).select_action(default_grid)

        assert action.position == (4, 4)
        assert action.confidence == pytest.approx(0.5)

    def test_losing_opening_is_ignored(self, default_grid: Grid, memory: MemoryEngine,
                                       agent_factory) -> None:
        memory.record_game_result(True, [Move(4, 4)], 8, 8, 1.0)
        memory.record_game_result(False, [Move(4, 4)], 8, 8, 1.0)

        action = agent_factory(default_grid, memory).select_action(default_grid)

        assert default_grid.get_cell(action.row, action.col).is_corner


# ============================================================================
# Steady State
# ============================================================================

class TestSteadyState:
    """Tests for moves after the opening."""

    def test_flag_batch(self, corner_one_grid: Grid, agent_factory) -> None:
        agent = agent_factory(corner_one_grid)
        agent.record_move(Move(0, 1))

        action = agent.select_action(corner_one_grid)

        assert action.kind == ActionKind.FLAG_BATCH
        assert [f.position for f in action.flags] == [(0, 0)]
        assert action.probability == 1.0

    def test_safe_neighbor_of_zero(self, grid_builder, agent_factory) -> None:
        """After a corner 0 the adjacent edge cell is probed."""
        grid = grid_builder(8, 8, {(0, 0): "0"})
        agent = agent_factory(grid)
        agent.record_move(Move(0, 0))

        action = agent.select_action(grid)

        assert action.kind == ActionKind.PROBE
        assert action.position == (0, 1)
        assert action.probability == 0.0

    def test_even_risk_takes_least_risky(self, grid_builder, agent_factory) -> None:
        grid = grid_builder(1, 3, {(0, 1): "1"})
        agent = agent_factory(grid)
        agent.record_move(Move(0, 1))

        action = agent.select_action(grid)

        assert action.kind == ActionKind.PROBE
        assert action.position in {(0, 0), (0, 2)}
        assert action.probability == pytest.approx(0.5)

    def test_low_risk_tier_prefers_corners(self, default_grid: Grid,
                                           agent_factory) -> None:
        agent = agent_factory(default_grid)
        agent.record_move(Move(3, 3))

        action = agent.select_action(default_grid)

        assert default_grid.get_cell(action.row, action.col).is_corner
        assert action.position != (7, 7)

    def test_remembered_second_move(self, grid_builder, memory: MemoryEngine,
                                    agent_factory) -> None:
        for _ in range(5):
            memory.record_game_result(True, [Move(0, 0), Move(2, 2)], 5, 5, 1.0)
        grid = grid_builder(5, 5, {(0, 0): "1"})
        agent = agent_factory(grid, memory)
        agent.record_move(Move(0, 0))

        action = agent.select_action(grid)

        assert action.position == (2, 2)
        assert action.confidence == pytest.approx(0.55)


# ============================================================================
# Lifecycle
# ============================================================================

class TestLifecycle:
    """Tests for phases and terminal behaviour."""

    def test_no_candidates(self, grid_builder, agent_factory) -> None:
        grid = grid_builder(1, 2, {(0, 0): "1"}, flags=[(0, 1)])

        assert agent_factory(grid).select_action(grid).kind == ActionKind.NONE

    def test_terminal(self, default_grid: Grid, agent_factory) -> None:
        agent = agent_factory(default_grid)
        agent.finish()

        assert agent.select_action(default_grid).kind == ActionKind.NONE

    def test_record_move(self, default_grid: Grid, agent_factory) -> None:
        agent = agent_factory(default_grid)
        agent.record_move(Move(0, 0, MoveKind.FLAG_BATCH))
        assert agent.history == []

        agent.record_move(Move(1, 1))
        assert agent.phase == AgentPhase.STEADY_STATE
        assert agent.last_probe == (1, 1)

    def test_reset(self, default_grid: Grid, agent_factory) -> None:
        agent = agent_factory(default_grid)
        agent.record_move(Move(1, 1))
        agent.finish()
        agent.reset()

        assert agent.phase == AgentPhase.NOT_STARTED
        assert agent.history == []
