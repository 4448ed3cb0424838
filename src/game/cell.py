"""
Cell module for reverse Minesweeper.

Represents individual grid cells with their reveal/flag state, the value
reported by the oracle, the constraints touching them and the engine's
current mine estimate.
"""
from collections import deque
from dataclasses import dataclass, field
from enum import Enum, IntEnum, auto
from typing import Deque, List, Optional, Tuple


# ============================================================================
# Constants
# ============================================================================

MINE_VALUE = "M"
EMPTY_VALUE = ""
ESTIMATE_HISTORY_SIZE = 5

Position = Tuple[int, int]


class CellState(Enum):
    """Possible visual states of a cell."""

    HIDDEN = auto()
    REVEALED = auto()
    FLAGGED = auto()


class Provenance(IntEnum):
    """Source of a probability estimate, ordered by reliability."""

    INITIAL = 1
    HEURISTIC = 2
    MEMORY = 3
    PROBABILITY = 4
    SUBSET = 5
    PATTERN = 6
    RESTRICTION = 7
    CERTAIN = 8
    FLAGGED = 9
    REVEALED = 10


def should_overwrite(
    current_confidence: float,
    current_provenance: Provenance,
    confidence: float,
    provenance: Provenance,
) -> bool:
    """
    Decide whether a new estimate replaces the current one.

    Higher confidence always wins; equal confidence needs a strictly
    more reliable provenance.
    """
    if confidence > current_confidence:
        return True
    return confidence == current_confidence and provenance > current_provenance


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


# ============================================================================
# Probability Estimate
# ============================================================================

@dataclass(frozen=True)
class EstimateSnapshot:
    """A previous estimate kept for inspection."""

    mine_probability: float
    confidence: float
    provenance: Provenance


@dataclass
class ProbabilityEstimate:
    """
    The engine's belief about one cell.

    Attributes:
        mine_probability: Chance the cell holds a mine (0-1).
        confidence: How much the estimate can be trusted (0-1).
        provenance: Which analysis produced the estimate.
        history: Bounded FIFO of replaced estimates.
    """

    mine_probability: float = 0.5
    confidence: float = 0.0
    provenance: Provenance = Provenance.INITIAL
    history: Deque[EstimateSnapshot] = field(
        default_factory=lambda: deque(maxlen=ESTIMATE_HISTORY_SIZE),
        repr=False,
    )

    @property
    def safe_probability(self) -> float:
        return 1.0 - self.mine_probability

    @property
    def is_certain(self) -> bool:
        return self.confidence == 1.0 and self.mine_probability in (0.0, 1.0)

    @property
    def is_certain_mine(self) -> bool:
        return self.confidence == 1.0 and self.mine_probability == 1.0

    @property
    def is_certain_safe(self) -> bool:
        return self.confidence == 1.0 and self.mine_probability == 0.0

    def update(
        self, probability: float, confidence: float, provenance: Provenance
    ) -> bool:
        """
        Apply a new estimate if it beats the current one.

        Args:
            probability: Proposed mine probability.
            confidence: Confidence of the proposal.
            provenance: Source of the proposal.

        Returns:
            True if the estimate was replaced.
        """
        probability = _clamp(probability)
        confidence = _clamp(confidence)
        if not should_overwrite(
            self.confidence, self.provenance, confidence, provenance
        ):
            return False
        self._replace(probability, confidence, provenance)
        return True

    def force(
        self, probability: float, confidence: float, provenance: Provenance
    ) -> None:
        """Replace the estimate unconditionally (reveal, flag)."""
        self._replace(_clamp(probability), _clamp(confidence), provenance)

    def rescale(self, probability: float) -> None:
        """Rewrite the probability only; certain estimates are left alone."""
        if self.is_certain:
            return
        self._replace(_clamp(probability), self.confidence, self.provenance)

    def reset(self) -> None:
        """Return to the initial estimate, keeping the history."""
        self._replace(0.5, 0.0, Provenance.INITIAL)

    def _replace(
        self, probability: float, confidence: float, provenance: Provenance
    ) -> None:
        self.history.append(
            EstimateSnapshot(self.mine_probability, self.confidence, self.provenance)
        )
        self.mine_probability = probability
        self.confidence = confidence
        self.provenance = provenance


# ============================================================================
# Cell Data Class
# ============================================================================

@dataclass
class Cell:
    """
    Represents a single cell in the reverse Minesweeper grid.

    Attributes:
        row: Row index.
        col: Column index.
        revealed: Whether the oracle has answered for this cell.
        flagged: Whether the engine placed a flag here.
        value: Oracle answer ('', '0'-'8' or 'M'); None while hidden.
        constraints: Constraints of revealed neighbors touching this cell.
        estimate: Current mine estimate.
        is_corner: Geometry flag computed at grid creation.
        is_edge: Geometry flag computed at grid creation.
        edge_distance: Distance to the closest border.
    """

    row: int
    col: int
    revealed: bool = False
    flagged: bool = False
    value: Optional[str] = None
    constraints: List["Constraint"] = field(default_factory=list, repr=False)
    estimate: ProbabilityEstimate = field(
        default_factory=ProbabilityEstimate, repr=False
    )
    is_corner: bool = False
    is_edge: bool = False
    edge_distance: int = 0

    @property
    def position(self) -> Position:
        return (self.row, self.col)

    @property
    def state(self) -> CellState:
        """Current visual state."""
        if self.revealed:
            return CellState.REVEALED
        if self.flagged:
            return CellState.FLAGGED
        return CellState.HIDDEN

    @property
    def is_hidden(self) -> bool:
        """Unrevealed and unflagged."""
        return not self.revealed and not self.flagged

    @property
    def is_mine(self) -> bool:
        return self.revealed and self.value == MINE_VALUE

    @property
    def has_numeric_value(self) -> bool:
        """Revealed with a digit (an empty answer counts as zero)."""
        return self.revealed and self.value is not None and self.value != MINE_VALUE

    @property
    def numeric_value(self) -> Optional[int]:
        if not self.has_numeric_value:
            return None
        if self.value == EMPTY_VALUE:
            return 0
        return int(self.value)

    @property
    def is_empty_or_zero(self) -> bool:
        return self.has_numeric_value and self.numeric_value == 0

    @property
    def is_certain_mine(self) -> bool:
        return self.estimate.is_certain_mine

    @property
    def is_certain_safe(self) -> bool:
        return self.estimate.is_certain_safe

    def reveal(self, value: str) -> bool:
        """
        Record the oracle's answer for this cell.

        Returns:
            True if the cell was revealed, False if it already was.
        """
        if self.revealed:
            return False
        self.value = value
        self.revealed = True
        self.flagged = False
        self.estimate.force(
            1.0 if value == MINE_VALUE else 0.0, 1.0, Provenance.REVEALED
        )
        return True

    def set_flag(self, flagged: bool) -> bool:
        """
        Place or remove a flag.

        Returns:
            True if the flag state changed.
        """
        if self.revealed or self.flagged == flagged:
            return False
        self.flagged = flagged
        if flagged:
            self.estimate.force(1.0, 1.0, Provenance.FLAGGED)
        return True

    def to_observation(self) -> int:
        """
        Convert cell to an observation code.

        Returns:
            -1: Hidden cell
            -2: Flagged cell
            0-8: Revealed digit
            9: Revealed mine
        """
        if self.flagged:
            return -2
        if not self.revealed:
            return -1
        if self.is_mine:
            return 9
        return self.numeric_value

    def __str__(self) -> str:
        if self.flagged:
            return "F"
        if not self.revealed:
            return "?"
        if self.value == MINE_VALUE:
            return "*"
        if self.value == EMPTY_VALUE:
            return " "
        return self.value


# ============================================================================
# Constraint
# ============================================================================

@dataclass(frozen=True)
class Constraint:
    """
    Mine count implied by one revealed digit.

    Attributes:
        origin: Position of the revealed digit.
        value: The digit.
        flags_placed: Flags already adjacent to the digit.
        cells: Unrevealed neighbors (flagged ones included).
        unknowns: Unrevealed, unflagged neighbors.
    """

    origin: Position
    value: int
    flags_placed: int
    cells: Tuple[Position, ...]
    unknowns: Tuple[Position, ...]

    @property
    def mines_remaining(self) -> int:
        return self.value - self.flags_placed
