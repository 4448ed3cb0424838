"""
Game session: the public interface of the reverse Minesweeper engine.

The session asks the agent for moves, applies flag batches itself and
stops whenever a probe needs an answer from the oracle. Each answer is
fed back through submit_ground_truth().
"""
import logging
import random
import time
from typing import Callable, List, Optional

import numpy as np

from agents.base_agent import Action, ActionKind, Move, MoveKind
from agents.sweeper_agent import AgentPhase, SweeperAgent
from game.cell import EMPTY_VALUE, MINE_VALUE, Position
from game.errors import InvalidTransitionError
from game.grid import Grid
from memory.engine import MemoryEngine
from solver.config import SolverConfig

from .snapshot import GameSnapshot


logger = logging.getLogger(__name__)

MINE_ANSWER = "mine"
EMPTY_ANSWER = "empty"
DIGIT_ANSWERS = tuple(str(d) for d in range(9))

StateCallback = Callable[[GameSnapshot], None]


def parse_ground_truth(value: str) -> str:
    """
    Canonicalize an oracle answer.

    Args:
        value: "", "empty", "0"-"8" or "mine" (case and surrounding
            whitespace are ignored).

    Returns:
        The grid value: "", a digit or "M".

    Raises:
        ValueError: For any other answer.
    """
    if not isinstance(value, str):
        raise ValueError(f"Ground truth must be a string, got {value!r}")
    answer = value.strip().lower()
    if answer == MINE_ANSWER:
        return MINE_VALUE
    if answer in (EMPTY_VALUE, EMPTY_ANSWER):
        return EMPTY_VALUE
    if answer in DIGIT_ANSWERS:
        return answer
    raise ValueError(f"Invalid ground truth {value!r}")


class GameSession:
    """
    Drives one game at a time between the agent and an external oracle.

    Example:
        session = GameSession()
        state = session.start_new_game(8, 8)
        while not state.game_over:
            state = session.submit_ground_truth(oracle(*state.pending))
    """

    def __init__(
        self,
        memory: Optional[MemoryEngine] = None,
        on_state_change: Optional[StateCallback] = None,
        rng: Optional[random.Random] = None,
        config: Optional[SolverConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the session.

        Args:
            memory: Cross-game memory; games are not remembered without it.
            on_state_change: Called with a snapshot after every event.
            rng: Random source shared with the agent.
            config: Solver tuning.
            clock: Time source for elapsed time.
        """
        self.memory = memory
        self.on_state_change = on_state_change
        self.rng = rng or random.Random()
        self.config = config
        self.clock = clock

        self.grid: Optional[Grid] = None
        self.agent: Optional[SweeperAgent] = None
        self.moves: List[Move] = []
        self.pending: Optional[Position] = None
        self.game_over = False
        self.victory = False
        self.last_action: Optional[Action] = None
        self._started_at = 0.0
        self._ended_at: Optional[float] = None

    # ========================================================================
    # Public API
    # ========================================================================

    def start_new_game(self, rows: int, cols: int) -> GameSnapshot:
        """
        Start a game on an empty grid and compute the first probe.

        Raises:
            ValueError: If a dimension is not a positive integer.
        """
        for name, size in (("rows", rows), ("cols", cols)):
            if isinstance(size, bool) or not isinstance(size, int) or size < 1:
                raise ValueError(f"{name} must be a positive integer, got {size!r}")

        self.grid = Grid(rows, cols)
        self.agent = SweeperAgent(rows, cols, self.memory, self.config, self.rng)
        self.moves = []
        self.pending = None
        self.game_over = False
        self.victory = False
        self.last_action = None
        self._started_at = self.clock()
        self._ended_at = None
        if self.memory is not None:
            self.memory.new_game()

        logger.info("New %dx%d game", rows, cols)
        self._advance()
        return self.get_current_state()

    def submit_ground_truth(self, value: str) -> GameSnapshot:
        """
        Answer the pending probe.

        Args:
            value: "", "empty", "0"-"8" or "mine".

        Raises:
            InvalidTransitionError: If no probe is pending.
            ValueError: If the answer is not recognised.
        """
        if self.grid is None or self.game_over or self.pending is None:
            raise InvalidTransitionError("No probe is waiting for an answer")
        cell_value = parse_ground_truth(value)

        row, col = self.pending
        cell = self.grid.get_cell(row, col)
        was_certain_safe = cell.is_certain_safe
        self.pending = None
        self.grid.reveal(row, col, cell_value)

        move = Move(
            row, col, MoveKind.PROBE,
            ground_truth=MINE_ANSWER if cell_value == MINE_VALUE else cell_value,
        )
        self.moves.append(move)
        self.agent.record_move(move)

        if cell_value == MINE_VALUE:
            if was_certain_safe:
                self._contradiction(f"cell {(row, col)} proven safe held a mine")
            if self.memory is not None:
                self.memory.record_mine_found(row, col, self.grid.rows, self.grid.cols)
            self._finish(victory=False)
            return self.get_current_state()

        self._check_flag_overflow(row, col)
        self._notify()
        if not self._check_victory():
            self._advance()
        return self.get_current_state()

    def next_move(self) -> GameSnapshot:
        """
        Resume move computation, e.g. after an error action.

        Raises:
            InvalidTransitionError: If no game was started.
        """
        if self.grid is None:
            raise InvalidTransitionError("No game in progress")
        if not self.game_over and self.pending is None:
            self._advance()
        return self.get_current_state()

    def reset_memory(self) -> None:
        if self.memory is not None:
            self.memory.reset()

    def get_current_state(self) -> GameSnapshot:
        """Snapshot of the current game (an idle one before the first game)."""
        memory_stats = self.memory.statistics() if self.memory is not None else {}
        game_id = self.memory.game_id if self.memory is not None else None
        if self.grid is None:
            return GameSnapshot(
                rows=0,
                cols=0,
                phase=AgentPhase.NOT_STARTED.name,
                board="",
                observation=np.zeros((0, 0), dtype=np.int8),
                memory_stats=memory_stats,
                game_id=game_id,
            )

        end = self._ended_at if self._ended_at is not None else self.clock()
        return GameSnapshot(
            rows=self.grid.rows,
            cols=self.grid.cols,
            phase=self.agent.phase.name,
            board=self.grid.render(),
            observation=self.grid.get_observation(),
            pending=self.pending,
            game_over=self.game_over,
            victory=self.victory,
            moves_made=len(self.probe_moves),
            flags_placed=self.grid.flag_count,
            elapsed=max(0.0, end - self._started_at),
            last_action=self.last_action,
            memory_stats=memory_stats,
            game_id=game_id,
        )

    @property
    def probe_moves(self) -> List[Move]:
        return [m for m in self.moves if m.kind is MoveKind.PROBE]

    # ========================================================================
    # Game Loop
    # ========================================================================

    def _advance(self) -> None:
        """Apply flag batches until a probe is pending or the game ends."""
        while not self.game_over and self.pending is None:
            try:
                action = self.agent.select_action(self.grid)
                self._report_dropped()
                if action.kind is ActionKind.PROBE:
                    self._emit_probe(action)
                    return
                if action.kind is ActionKind.FLAG_BATCH:
                    self._apply_flags(action)
                    if self._check_victory():
                        return
                    continue
            except Exception as exc:
                logger.exception("Move computation failed")
                self.last_action = Action(ActionKind.ERROR, reason=str(exc))
                self._notify()
                return

            self.last_action = action
            if not self._check_victory():
                self._notify()
            return

    def _emit_probe(self, action: Action) -> None:
        cell = self.grid.get_cell(action.row, action.col)
        if cell.revealed or cell.flagged:
            raise InvalidTransitionError(
                f"Refusing to probe resolved cell {(action.row, action.col)}"
            )
        self.pending = (action.row, action.col)
        self.last_action = action
        logger.debug("Probe %s: %s", self.pending, action.reason)
        self._notify()

    def _apply_flags(self, action: Action) -> None:
        for candidate in action.flags:
            if not self.grid.set_flag(candidate.row, candidate.col, True):
                continue
            move = Move(candidate.row, candidate.col, MoveKind.FLAG_BATCH)
            self.moves.append(move)
            self.agent.record_move(move)
        self.last_action = action
        logger.debug("Flagged %d cell(s): %s", len(action.flags), action.reason)
        self._notify()

    def _check_victory(self) -> bool:
        if self.grid.is_fully_flagged():
            self._finish(victory=True)
            return True
        return False

    def _finish(self, victory: bool) -> None:
        self.game_over = True
        self.victory = victory
        self.pending = None
        self._ended_at = self.clock()
        self.agent.finish()
        if self.memory is not None:
            self.memory.record_game_result(
                victory,
                self.probe_moves,
                self.grid.rows,
                self.grid.cols,
                self._ended_at - self._started_at,
            )
        logger.info("Game over: %s after %d probes",
                    "victory" if victory else "defeat", len(self.probe_moves))
        self._notify()

    # ========================================================================
    # Contradictions and Notifications
    # ========================================================================

    def _check_flag_overflow(self, row: int, col: int) -> None:
        cell = self.grid.get_cell(row, col)
        flags = sum(1 for n in self.grid.neighbor_cells(row, col) if n.flagged)
        if cell.numeric_value is not None and cell.numeric_value < flags:
            self._contradiction(
                f"digit {cell.numeric_value} at {(row, col)} has {flags} flagged neighbors"
            )

    def _report_dropped(self) -> None:
        for candidate in self.agent.dropped:
            self._contradiction(
                f"{candidate.rule} deduction at {candidate.position} broke a digit"
            )

    def _contradiction(self, reason: str) -> None:
        logger.warning("Contradiction: %s", reason)
        if self.memory is not None:
            self.memory.record_contradiction(reason)

    def _notify(self) -> None:
        if self.on_state_change is None:
            return
        try:
            self.on_state_change(self.get_current_state())
        except Exception:
            logger.exception("State change callback failed")
