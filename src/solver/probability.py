"""
Probability engine for cells the constraint engine could not resolve.

Six stages refine every candidate's estimate, each one going through
the shared overwrite rule so a weaker source never replaces a stronger
one:

    1. Base density from the expected mine count and cell position
    2. Local restriction for cells governed by a single digit
    3. Connected components (exact enumeration or least squares)
    4. Frontier weighting from neighbouring digits
    5. Bias from mines remembered at the same relative position
    6. Promotion to certainty, normalization and absolute overrides
"""
import logging
import math
import random
from typing import Dict, List, Mapping, Optional, Set

from game.cell import Cell, Constraint, Position, ProbabilityEstimate, Provenance
from game.grid import Grid
from memory.keys import normalize_position, position_key
from memory.records import MineView

from .config import DEFAULT_CONFIG, SolverConfig
from .linalg import least_squares


logger = logging.getLogger(__name__)


class ProbabilityEngine:
    """
    Estimates the mine probability of every unknown cell.

    Attributes:
        grid: Grid being analysed.
        config: Solver tuning constants.
        rng: Random source for sampling large components.
    """

    def __init__(
        self,
        grid: Grid,
        config: Optional[SolverConfig] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.grid = grid
        self.config = config or DEFAULT_CONFIG
        self.rng = rng or random.Random()

    def compute_all(
        self, memory: Optional[Mapping[str, MineView]] = None
    ) -> Dict[Position, ProbabilityEstimate]:
        """
        Run every stage over the current candidates.

        Args:
            memory: Known-mine view keyed by normalized position.

        Returns:
            Estimates of all unrevealed, unflagged cells.
        """
        self.grid.ensure_constraints()
        candidates = self.grid.candidate_cells()
        if not candidates:
            return {}

        for cell in candidates:
            if not cell.estimate.is_certain:
                cell.estimate.reset()

        self._apply_base_density(candidates)
        self._apply_local_restrictions(candidates)
        self._apply_components(candidates)
        self._apply_frontier(candidates)
        if memory:
            self._apply_memory(candidates, memory)
        self._finalize(candidates)

        return {cell.position: cell.estimate for cell in candidates}

    # ========================================================================
    # Stage 1: Base Density
    # ========================================================================

    def _positional_factor(self, cell: Cell) -> float:
        if cell.is_corner:
            return self.config.corner_factor
        if cell.is_edge:
            return self.config.edge_factor
        if cell.edge_distance == 1:
            return self.config.near_edge_factor
        return 1.0

    def _apply_base_density(self, candidates: List[Cell]) -> None:
        expected = self.config.expected_mines(self.grid.rows, self.grid.cols)
        remaining = max(0, expected - self.grid.flag_count)
        base = min(self.config.base_probability_cap, remaining / len(candidates))

        for cell in candidates:
            if cell.estimate.confidence >= self.config.base_max_confidence:
                continue
            cell.estimate.update(
                base * self._positional_factor(cell),
                self.config.base_confidence,
                Provenance.HEURISTIC,
            )

    # ========================================================================
    # Stage 2: Local Restriction
    # ========================================================================

    def _apply_local_restrictions(self, candidates: List[Cell]) -> None:
        """Cells referenced by exactly the same digits share one estimate."""
        groups: Dict[frozenset, List[Cell]] = {}
        for cell in candidates:
            if not cell.constraints:
                continue
            key = frozenset(c.origin for c in cell.constraints)
            groups.setdefault(key, []).append(cell)

        for origins, cells in groups.items():
            if len(origins) != 1:
                continue
            constraint = cells[0].constraints[0]
            probability = constraint.mines_remaining / len(cells)
            confidence = (
                self.config.restriction_confidence
                + self.config.restriction_confidence_bonus / math.sqrt(len(cells))
            )
            for cell in cells:
                cell.estimate.update(probability, confidence, Provenance.RESTRICTION)

    # ========================================================================
    # Stage 3: Connected Components
    # ========================================================================

    def _apply_components(self, candidates: List[Cell]) -> None:
        for cells in self.connected_components(candidates):
            constraints = self._component_constraints(cells)
            if len(cells) <= self.config.max_exact_component:
                self._enumerate(cells, constraints)
            else:
                self._approximate(cells, constraints)

        for cell in candidates:
            if not cell.constraints:
                cell.estimate.update(
                    self.config.isolated_probability,
                    self.config.isolated_confidence,
                    Provenance.HEURISTIC,
                )

    def connected_components(self, candidates: List[Cell]) -> List[List[Cell]]:
        """Group constrained candidates that share at least one digit."""
        by_position = {cell.position: cell for cell in candidates}
        seen: Set[Position] = set()
        components = []

        for start in candidates:
            if start.position in seen or not start.constraints:
                continue
            seen.add(start.position)
            stack = [start]
            members = []
            while stack:
                cell = stack.pop()
                members.append(cell)
                for constraint in cell.constraints:
                    for position in constraint.unknowns:
                        if position in seen or position not in by_position:
                            continue
                        seen.add(position)
                        stack.append(by_position[position])
            members.sort(key=lambda c: c.position)
            components.append(members)
        return components

    @staticmethod
    def _component_constraints(cells: List[Cell]) -> List[Constraint]:
        unique: Dict[Position, Constraint] = {}
        for cell in cells:
            for constraint in cell.constraints:
                unique.setdefault(constraint.origin, constraint)
        return list(unique.values())

    def _assignments(self, size: int) -> List[int]:
        """Bit masks to test: all of them, or a de-duplicated sample."""
        if size <= self.config.sampling_threshold:
            return list(range(2 ** size))
        samples = {self.rng.getrandbits(size) for _ in range(self.config.sample_count)}
        return sorted(samples)

    def _enumerate(self, cells: List[Cell], constraints: List[Constraint]) -> None:
        index = {cell.position: i for i, cell in enumerate(cells)}
        masks = [
            (sum(1 << index[p] for p in c.unknowns), c.mines_remaining)
            for c in constraints
        ]
        sampled = len(cells) > self.config.sampling_threshold

        mine_counts = [0] * len(cells)
        valid = 0
        for assignment in self._assignments(len(cells)):
            if all(bin(assignment & mask).count("1") == need for mask, need in masks):
                valid += 1
                for i in range(len(cells)):
                    if assignment >> i & 1:
                        mine_counts[i] += 1

        if valid == 0:
            logger.debug("No consistent assignment for %d-cell component", len(cells))
            return

        confidence = (
            self.config.sampled_confidence if sampled else self.config.exact_confidence
        )
        for cell, count in zip(cells, mine_counts):
            cell.estimate.update(count / valid, confidence, Provenance.PROBABILITY)

    def _approximate(self, cells: List[Cell], constraints: List[Constraint]) -> None:
        index = {cell.position: i for i, cell in enumerate(cells)}
        matrix = []
        vector = []
        for constraint in constraints:
            row = [0.0] * len(cells)
            for position in constraint.unknowns:
                row[index[position]] = 1.0
            matrix.append(row)
            vector.append(float(constraint.mines_remaining))

        solution = least_squares(matrix, vector)
        if solution is None:
            logger.debug("Least squares gave no answer for %d cells", len(cells))
            return
        for cell, value in zip(cells, solution):
            cell.estimate.update(
                min(1.0, max(0.0, float(value))),
                self.config.linear_confidence,
                Provenance.PROBABILITY,
            )

    # ========================================================================
    # Stage 4: Frontier
    # ========================================================================

    def _apply_frontier(self, candidates: List[Cell]) -> None:
        for cell in candidates:
            if not self.grid.is_frontier(cell):
                if cell.estimate.confidence < self.config.non_frontier_confidence:
                    cell.estimate.update(
                        cell.estimate.mine_probability * self.config.non_frontier_damping,
                        self.config.non_frontier_confidence,
                        Provenance.HEURISTIC,
                    )
                continue

            weighted = 0.0
            total_weight = 0.0
            contributors = 0
            for neighbor in self.grid.neighbor_cells(cell.row, cell.col):
                if not neighbor.has_numeric_value:
                    continue
                constraint = self.grid.constraint_at(neighbor.row, neighbor.col)
                if not constraint.unknowns:
                    continue
                weight = 1.0 / len(constraint.unknowns)
                weighted += constraint.mines_remaining / len(constraint.unknowns) * weight
                total_weight += weight
                contributors += 1

            if contributors:
                confidence = min(
                    self.config.frontier_confidence_cap,
                    self.config.frontier_confidence_base
                    + self.config.frontier_confidence_step * contributors,
                )
                cell.estimate.update(
                    weighted / total_weight, confidence, Provenance.PROBABILITY
                )

    # ========================================================================
    # Stage 5: Memory Bias
    # ========================================================================

    def _apply_memory(
        self, candidates: List[Cell], memory: Mapping[str, MineView]
    ) -> None:
        cfg = self.config
        for cell in candidates:
            key = position_key(
                *normalize_position(cell.row, cell.col, self.grid.rows, self.grid.cols)
            )
            record = memory.get(key)
            if record is None:
                continue

            occurrences = record.count
            factor = min(cfg.memory_factor_cap,
                         cfg.memory_factor_base + cfg.memory_factor_step * occurrences)
            confidence = min(cfg.memory_confidence_cap,
                             cfg.memory_confidence_base
                             + cfg.memory_confidence_step * occurrences)
            if record.recent:
                factor = min(cfg.memory_recent_factor_cap, factor + cfg.memory_recent_bonus)
                confidence = min(cfg.memory_recent_confidence_cap,
                                 confidence + cfg.memory_recent_bonus)

            current = cell.estimate
            if confidence <= cfg.memory_min_confidence or confidence <= current.confidence:
                continue
            blended = (
                current.mine_probability * current.confidence + factor * confidence
            ) / (current.confidence + confidence)
            current.update(blended, max(current.confidence, confidence), Provenance.MEMORY)

    # ========================================================================
    # Stage 6: Finalization
    # ========================================================================

    def _finalize(self, candidates: List[Cell]) -> None:
        cfg = self.config
        for cell in candidates:
            estimate = cell.estimate
            if estimate.is_certain or estimate.confidence <= cfg.certainty_confidence:
                continue
            if estimate.mine_probability > cfg.certain_high:
                estimate.update(1.0, 1.0, Provenance.CERTAIN)
            elif estimate.mine_probability < cfg.certain_low:
                estimate.update(0.0, 1.0, Provenance.CERTAIN)

        self._normalize(candidates)
        self._apply_overrides(candidates)

    def _normalize(self, candidates: List[Cell]) -> None:
        """Rescale estimates when their sum strays far from the expected count."""
        cfg = self.config
        expected = max(
            1, cfg.expected_mines(self.grid.rows, self.grid.cols) - self.grid.flag_count
        )
        total = sum(cell.estimate.mine_probability for cell in candidates)
        if abs(total - expected) <= cfg.normalization_tolerance * expected:
            return

        factor = expected / max(0.1, total)
        logger.debug("Normalizing mass %.2f towards %d (x%.3f)", total, expected, factor)
        for cell in candidates:
            if cell.estimate.confidence >= cfg.certainty_confidence:
                continue
            scaled = cell.estimate.mine_probability * factor
            cell.estimate.rescale(
                min(cfg.normalization_ceiling, max(cfg.normalization_floor, scaled))
            )

    def _apply_overrides(self, candidates: List[Cell]) -> None:
        for cell in candidates:
            if self.grid.touches_empty(cell.row, cell.col):
                cell.estimate.force(0.0, 1.0, Provenance.CERTAIN)
            elif cell.is_corner and self._is_sole_unknown_of_one(cell):
                cell.estimate.force(1.0, 1.0, Provenance.CERTAIN)

    def _is_sole_unknown_of_one(self, cell: Cell) -> bool:
        for neighbor in self.grid.neighbor_cells(cell.row, cell.col):
            if neighbor.numeric_value != 1:
                continue
            constraint = self.grid.constraint_at(neighbor.row, neighbor.col)
            if constraint.flags_placed == 0 and constraint.unknowns == (cell.position,):
                return True
        return False
