"""
Tuning constants for deduction, probability estimation and move selection.

The values are empirical; they are kept here so callers can override
them instead of editing the engines.
"""
import math
from dataclasses import dataclass
from typing import Tuple


@dataclass
class SolverConfig:
    """
    Configuration shared by the constraint engine, the probability engine
    and the move selector.
    """

    # Base density
    mine_density: float = 0.18
    corner_factor: float = 0.7
    edge_factor: float = 0.8
    near_edge_factor: float = 0.9
    base_probability_cap: float = 0.5
    base_confidence: float = 0.3
    base_max_confidence: float = 0.5

    # Local restriction
    restriction_confidence: float = 0.5
    restriction_confidence_bonus: float = 0.3

    # Global components
    max_exact_component: int = 12
    sampling_threshold: int = 10
    sample_count: int = 1000
    exact_confidence: float = 0.8
    sampled_confidence: float = 0.6
    linear_confidence: float = 0.6
    isolated_probability: float = 0.1
    isolated_confidence: float = 0.4

    # Frontier
    frontier_confidence_cap: float = 0.7
    frontier_confidence_base: float = 0.4
    frontier_confidence_step: float = 0.1
    non_frontier_damping: float = 0.85
    non_frontier_confidence: float = 0.5

    # Memory bias
    memory_factor_base: float = 0.3
    memory_factor_step: float = 0.1
    memory_factor_cap: float = 0.8
    memory_confidence_base: float = 0.3
    memory_confidence_step: float = 0.05
    memory_confidence_cap: float = 0.7
    memory_recent_bonus: float = 0.1
    memory_recent_factor_cap: float = 0.9
    memory_recent_confidence_cap: float = 0.8
    memory_min_confidence: float = 0.4

    # Finalization
    certain_high: float = 0.99
    certain_low: float = 0.01
    certainty_confidence: float = 0.95
    normalization_tolerance: float = 0.5
    normalization_floor: float = 0.05
    normalization_ceiling: float = 0.95

    # Linear systems
    pivot_epsilon: float = 1e-10
    solution_tolerance: float = 0.01

    # Move selection
    risk_tiers: Tuple[float, ...] = (0.1, 0.2, 0.3, 0.5)
    probability_tie: float = 0.05
    confidence_tie: float = 0.1
    top_candidates: int = 3
    opening_min_win_rate: float = 0.55
    second_move_min_confidence: float = 0.5
    second_move_min_win_rate: float = 0.6

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate()

    def _validate(self) -> None:
        """Ensure configuration values are valid."""
        if not 0.0 < self.mine_density < 1.0:
            raise ValueError("Mine density must be between 0 and 1")
        if self.max_exact_component < 1:
            raise ValueError("Exact component limit must be positive")
        if self.sampling_threshold > self.max_exact_component:
            raise ValueError("Sampling threshold cannot exceed the exact limit")
        if self.sample_count < 1:
            raise ValueError("Sample count must be positive")
        if list(self.risk_tiers) != sorted(self.risk_tiers):
            raise ValueError("Risk tiers must be increasing")
        if self.top_candidates < 1:
            raise ValueError("Top candidate count must be positive")

    def expected_mines(self, rows: int, cols: int) -> int:
        """Mine count implied by the configured density."""
        return int(math.floor(rows * cols * self.mine_density + 0.5))


DEFAULT_CONFIG = SolverConfig()
