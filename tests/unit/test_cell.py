"""
Unit tests for the Cell class and probability estimates.
"""
import pytest

from game import (
    Cell,
    CellState,
    Constraint,
    ProbabilityEstimate,
    Provenance,
    should_overwrite,
)


# ============================================================================
# Cell Tests
# ============================================================================

class TestCell:
    """Tests for Cell class."""

    def test_default_cell(self) -> None:
        """Test default cell state."""
        cell = Cell(row=0, col=0)

        assert cell.state == CellState.HIDDEN
        assert cell.is_hidden
        assert cell.value is None
        assert cell.numeric_value is None
        assert cell.estimate.mine_probability == 0.5
        assert cell.estimate.confidence == 0.0
        assert cell.estimate.provenance == Provenance.INITIAL

    def test_reveal_digit(self) -> None:
        """Revealing a digit makes the cell certainly safe."""
        cell = Cell(row=1, col=2)

        assert cell.reveal("3")
        assert cell.state == CellState.REVEALED
        assert cell.numeric_value == 3
        assert cell.has_numeric_value
        assert cell.is_certain_safe
        assert cell.estimate.provenance == Provenance.REVEALED

    def test_reveal_twice(self) -> None:
        """Second reveal is refused and keeps the first value."""
        cell = Cell(row=0, col=0)
        cell.reveal("1")

        assert not cell.reveal("2")
        assert cell.value == "1"

    def test_reveal_empty_counts_as_zero(self) -> None:
        """An empty answer behaves like a zero."""
        cell = Cell(row=0, col=0)
        cell.reveal("")

        assert cell.numeric_value == 0
        assert cell.is_empty_or_zero

    def test_reveal_mine(self) -> None:
        """A revealed mine has no numeric value."""
        cell = Cell(row=0, col=0)
        cell.reveal("M")

        assert cell.is_mine
        assert not cell.has_numeric_value
        assert cell.is_certain_mine

    def test_flag(self) -> None:
        """Flagging forces a certain mine estimate."""
        cell = Cell(row=0, col=0)

        assert cell.set_flag(True)
        assert cell.state == CellState.FLAGGED
        assert not cell.is_hidden
        assert cell.estimate.provenance == Provenance.FLAGGED
        assert cell.is_certain_mine

    def test_flag_twice_or_revealed(self) -> None:
        """Flag changes only apply to unrevealed cells."""
        cell = Cell(row=0, col=0)
        cell.set_flag(True)
        assert not cell.set_flag(True)

        revealed = Cell(row=0, col=1)
        revealed.reveal("2")
        assert not revealed.set_flag(True)

    def test_reveal_clears_flag(self) -> None:
        """An answer overrides a flag."""
        cell = Cell(row=0, col=0)
        cell.set_flag(True)
        cell.reveal("1")

        assert not cell.flagged
        assert cell.revealed

    def test_to_observation(self) -> None:
        """Test observation codes."""
        hidden = Cell(row=0, col=0)
        assert hidden.to_observation() == -1

        flagged = Cell(row=0, col=0)
        flagged.set_flag(True)
        assert flagged.to_observation() == -2

        mine = Cell(row=0, col=0)
        mine.reveal("M")
        assert mine.to_observation() == 9

        digit = Cell(row=0, col=0)
        digit.reveal("4")
        assert digit.to_observation() == 4

        empty = Cell(row=0, col=0)
        empty.reveal("")
        assert empty.to_observation() == 0

    def test_string_representation(self) -> None:
        """Test string representation."""
        cell = Cell(row=0, col=0)
        assert str(cell) == "?"

        cell.set_flag(True)
        assert str(cell) == "F"

        digit = Cell(row=0, col=0)
        digit.reveal("5")
        assert str(digit) == "5"

        mine = Cell(row=0, col=0)
        mine.reveal("M")
        assert str(mine) == "*"


# ============================================================================
# Estimate Tests
# ============================================================================

class TestShouldOverwrite:
    """Tests for the estimate overwrite rule."""

    def test_higher_confidence_wins(self) -> None:
        assert should_overwrite(0.5, Provenance.CERTAIN, 0.6, Provenance.HEURISTIC)

    def test_equal_confidence_needs_better_provenance(self) -> None:
        """Ties go to the more reliable source only."""
        assert should_overwrite(0.5, Provenance.HEURISTIC, 0.5, Provenance.PROBABILITY)
        assert not should_overwrite(0.5, Provenance.PROBABILITY, 0.5, Provenance.HEURISTIC)
        assert not should_overwrite(0.5, Provenance.PROBABILITY, 0.5, Provenance.PROBABILITY)

    def test_lower_confidence_loses(self) -> None:
        assert not should_overwrite(0.8, Provenance.HEURISTIC, 0.7, Provenance.CERTAIN)


class TestProbabilityEstimate:
    """Tests for ProbabilityEstimate."""

    def test_update_clamps(self) -> None:
        """Out-of-range proposals are clamped to [0, 1]."""
        estimate = ProbabilityEstimate()

        assert estimate.update(1.5, 0.5, Provenance.PROBABILITY)
        assert estimate.mine_probability == 1.0

        assert estimate.update(-0.2, 2.0, Provenance.PROBABILITY)
        assert estimate.mine_probability == 0.0
        assert estimate.confidence == 1.0

    def test_certain_estimate_survives_weaker_update(self) -> None:
        """A certain estimate is never replaced by a weaker source."""
        estimate = ProbabilityEstimate()
        estimate.force(0.0, 1.0, Provenance.CERTAIN)

        assert not estimate.update(0.5, 1.0, Provenance.PROBABILITY)
        assert not estimate.update(0.3, 0.9, Provenance.MEMORY)
        assert estimate.is_certain_safe

    def test_history_is_bounded(self) -> None:
        """Only the last five replaced estimates are kept."""
        estimate = ProbabilityEstimate()
        for step in range(7):
            estimate.update(0.1 * step, 0.1 * (step + 1), Provenance.HEURISTIC)

        assert len(estimate.history) == 5
        assert estimate.history[-1].confidence == pytest.approx(0.6)

    def test_rescale_skips_certain(self) -> None:
        """Rescaling leaves certain estimates alone."""
        certain = ProbabilityEstimate()
        certain.force(1.0, 1.0, Provenance.CERTAIN)
        certain.rescale(0.4)
        assert certain.mine_probability == 1.0

        loose = ProbabilityEstimate(mine_probability=0.2, confidence=0.5)
        loose.rescale(0.4)
        assert loose.mine_probability == 0.4
        assert loose.confidence == 0.5

    def test_reset(self) -> None:
        estimate = ProbabilityEstimate()
        estimate.update(0.9, 0.7, Provenance.PROBABILITY)
        estimate.reset()

        assert estimate.mine_probability == 0.5
        assert estimate.confidence == 0.0
        assert estimate.provenance == Provenance.INITIAL


# ============================================================================
# Constraint Tests
# ============================================================================

class TestConstraint:
    """Tests for Constraint."""

    def test_mines_remaining(self) -> None:
        constraint = Constraint(
            origin=(1, 1),
            value=3,
            flags_placed=1,
            cells=((0, 0), (0, 1), (0, 2)),
            unknowns=((0, 1), (0, 2)),
        )

        assert constraint.mines_remaining == 2
