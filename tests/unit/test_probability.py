"""
Unit tests for the probability engine.
"""
import random

import pytest

from game import Grid, Provenance
from memory import MineView
from solver import ProbabilityEngine, SolverConfig, least_squares


# ============================================================================
# Whole Pipeline
# ============================================================================

class TestComputeAll:
    """Tests for the full estimation pipeline."""

    def test_empty_grid_matches_expected_mines(self, default_grid: Grid) -> None:
        """Without information the estimates add up to the expected count."""
        estimates = ProbabilityEngine(default_grid).compute_all()

        assert len(estimates) == 64
        total = sum(e.mine_probability for e in estimates.values())
        assert total == pytest.approx(12.0)

    def test_neighbors_of_zero_are_safe(self, grid_builder) -> None:
        grid = grid_builder(8, 8, {(0, 0): "0"})
        estimates = ProbabilityEngine(grid).compute_all()

        assert (0, 0) not in estimates
        for position in [(0, 1), (1, 0), (1, 1)]:
            assert estimates[position].is_certain_safe
        assert not estimates[(2, 2)].is_certain

    def test_single_constraint_splits_evenly(self, grid_builder) -> None:
        grid = grid_builder(1, 3, {(0, 1): "1"})
        estimates = ProbabilityEngine(grid).compute_all()

        assert estimates[(0, 0)].mine_probability == pytest.approx(0.5)
        assert estimates[(0, 2)].mine_probability == pytest.approx(0.5)
        assert estimates[(0, 0)].provenance == Provenance.PROBABILITY

    def test_corner_behind_ones_is_certain_mine(self, corner_one_grid: Grid) -> None:
        estimates = ProbabilityEngine(corner_one_grid).compute_all()

        assert estimates[(0, 0)].is_certain_mine

    def test_certain_estimate_is_kept(self, one_two_one_grid: Grid) -> None:
        """Estimates already certain survive a recomputation."""
        cell = one_two_one_grid.get_cell(0, 1)
        cell.estimate.force(0.0, 1.0, Provenance.CERTAIN)

        ProbabilityEngine(one_two_one_grid).compute_all()

        assert cell.is_certain_safe

    def test_estimates_stay_in_range(self, grid_builder) -> None:
        grid = grid_builder(
            6, 6,
            {(0, 0): "1", (0, 1): "2", (2, 2): "3", (5, 5): "1", (3, 0): ""},
            flags=[(1, 1)],
        )
        estimates = ProbabilityEngine(grid, rng=random.Random(0)).compute_all()

        for estimate in estimates.values():
            assert 0.0 <= estimate.mine_probability <= 1.0
            assert 0.0 <= estimate.confidence <= 1.0

    def test_nothing_to_estimate(self, grid_builder) -> None:
        grid = grid_builder(1, 2, {(0, 0): "1"}, flags=[(0, 1)])

        assert ProbabilityEngine(grid).compute_all() == {}


# ============================================================================
# Components
# ============================================================================

class TestComponents:
    """Tests for component analysis."""

    def test_connected_components(self, grid_builder) -> None:
        grid = grid_builder(1, 5, {(0, 1): "1", (0, 3): "1"})
        grid.ensure_constraints()
        engine = ProbabilityEngine(grid)

        components = engine.connected_components(grid.candidate_cells())

        assert [[c.position for c in comp] for comp in components] == [
            [(0, 0), (0, 2), (0, 4)],
        ]

    @pytest.mark.parametrize("reveals", [
        {(1, 0): "1", (1, 1): "2", (1, 2): "1"},
        {(1, 1): "1"},
    ])
    def test_enumeration_agrees_with_least_squares(
        self, grid_builder, reveals
    ) -> None:
        """Exact counting and least squares match on determined systems."""
        grid = grid_builder(2, 3, reveals)
        grid.ensure_constraints()
        engine = ProbabilityEngine(grid)
        cells = engine.connected_components(grid.candidate_cells())[0]
        constraints = grid.constraints()

        engine._enumerate(cells, constraints)
        exact = [c.estimate.mine_probability for c in cells]

        index = {c.position: i for i, c in enumerate(cells)}
        matrix = []
        for constraint in constraints:
            row = [0.0] * len(cells)
            for position in constraint.unknowns:
                row[index[position]] = 1.0
            matrix.append(row)
        approx = least_squares(matrix, [c.mines_remaining for c in constraints])

        assert exact == pytest.approx(list(approx), abs=1e-6)

    def test_assignment_sampling(self) -> None:
        """Large components sample a de-duplicated subset of masks."""
        engine = ProbabilityEngine(Grid(1, 1), rng=random.Random(3))

        assert engine._assignments(3) == list(range(8))

        sampled = engine._assignments(11)
        assert len(sampled) == len(set(sampled))
        assert len(sampled) <= SolverConfig().sample_count
        assert all(0 <= mask < 2 ** 11 for mask in sampled)


# ============================================================================
# Memory Bias
# ============================================================================

class TestMemoryBias:
    """Tests for the remembered-mine stage."""

    def test_remembered_corner_is_riskier(self, default_grid: Grid) -> None:
        memory = {"0,0": MineView(count=5, recent=True)}
        estimates = ProbabilityEngine(default_grid).compute_all(memory)

        corner = estimates.pop((0, 0))
        assert corner.provenance == Provenance.MEMORY
        assert all(
            corner.mine_probability > e.mine_probability for e in estimates.values()
        )

    def test_weak_memory_is_ignored(self, grid_builder) -> None:
        """Records below the confidence floor leave estimates alone."""
        grid = grid_builder(1, 3, {(0, 1): "1"})
        memory = {"0,0": MineView(count=1, recent=False)}
        estimates = ProbabilityEngine(grid).compute_all(memory)

        assert estimates[(0, 0)].provenance == Provenance.PROBABILITY
