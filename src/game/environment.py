"""
Gymnasium environment acting as the reverse Minesweeper oracle.

The environment owns a hidden mine layout and answers probes with the
ground truth of the probed cell, so sessions can be played and evaluated
without a human.
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, SupportsFloat, Tuple

import gymnasium as gym
import numpy as np
from gymnasium import spaces

from .errors import InvalidPositionError
from .grid import NEIGHBOR_OFFSETS


MINE_ANSWER = "mine"


# ============================================================================
# Board Configuration
# ============================================================================

@dataclass
class BoardConfig:
    """
    Configuration for a hidden mine layout.

    Attributes:
        width: Number of columns.
        height: Number of rows.
        num_mines: Total mines to place.
    """

    width: int = 9
    height: int = 9
    num_mines: int = 10

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate()

    def _validate(self) -> None:
        """Ensure configuration values are valid."""
        if self.width < 1 or self.height < 1:
            raise ValueError("Board dimensions must be positive")
        if self.num_mines < 0:
            raise ValueError("Number of mines cannot be negative")
        max_mines = self.width * self.height - 1
        if self.num_mines > max_mines:
            raise ValueError(f"Too many mines (max {max_mines})")


# Preset difficulty levels
BEGINNER = BoardConfig(9, 9, 10)
INTERMEDIATE = BoardConfig(16, 16, 40)
EXPERT = BoardConfig(30, 16, 99)

PRESETS = {
    "beginner": BEGINNER,
    "intermediate": INTERMEDIATE,
    "expert": EXPERT,
}


# ============================================================================
# Minefield Environment
# ============================================================================

class MinefieldEnv(gym.Env):
    """
    Gymnasium environment holding the ground truth of a minefield.

    Observation:
        2D array where:
        - -1 = not yet probed
        - 0-8 = probed safe cell with adjacent mine count
        - 9 = probed mine

    Actions:
        Discrete action space of size width * height.
        Action i probes the cell at (i // width, i % width).

    Rewards:
        - +1 for probing a safe cell
        - +10 when every safe cell has been probed
        - -10 for probing a mine
        - -0.1 for probing a cell twice

    The oracle answer ("0"-"8" or "mine") is returned in
    ``info["ground_truth"]``.
    """

    metadata = {"render_modes": ["human", "ansi"], "render_fps": 4}

    def __init__(
        self,
        config: Optional[BoardConfig] = None,
        render_mode: Optional[str] = None,
    ) -> None:
        """
        Initialize the environment.

        Args:
            config: Board configuration (default: 9x9 with 10 mines).
            render_mode: How to render the environment.
        """
        super().__init__()

        self.config = config or BoardConfig()
        self.render_mode = render_mode
        self.height = self.config.height
        self.width = self.config.width

        self.observation_space = spaces.Box(
            low=-2,
            high=9,
            shape=(self.height, self.width),
            dtype=np.int8,
        )
        self.action_space = spaces.Discrete(self.height * self.width)

        self._mines = np.zeros((self.height, self.width), dtype=bool)
        self._probed = np.zeros((self.height, self.width), dtype=bool)
        self._mines_placed = False
        self._exploded = False
        self._steps = 0
        self._total_safe_cells = self.height * self.width - self.config.num_mines

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Tuple[np.ndarray, Dict[str, Any]]:
        """
        Reset the environment for a new episode.

        Args:
            seed: Random seed for reproducibility.
            options: ``{"mines": [(row, col), ...]}`` fixes the layout
                instead of placing mines on the first probe.

        Returns:
            Tuple of (observation, info dict).
        """
        super().reset(seed=seed)
        self._mines[:] = False
        self._probed[:] = False
        self._mines_placed = False
        self._exploded = False
        self._steps = 0
        self._total_safe_cells = self.height * self.width - self.config.num_mines

        if options and options.get("mines") is not None:
            self._set_layout(options["mines"])

        return self.get_observation(), self._get_info()

    def _set_layout(self, mines: Iterable[Tuple[int, int]]) -> None:
        for row, col in mines:
            if not self._is_valid_position(row, col):
                raise InvalidPositionError(row, col, self.height, self.width)
            self._mines[row, col] = True
        self._mines_placed = True
        self._total_safe_cells = int(self._mines.size - self._mines.sum())

    def _place_mines(self, exclude: Tuple[int, int]) -> None:
        """Place mines randomly, never on the excluded cell."""
        excluded = exclude[0] * self.width + exclude[1]
        positions = [i for i in range(self.height * self.width) if i != excluded]
        chosen = self.np_random.choice(
            len(positions), size=self.config.num_mines, replace=False
        )
        for index in chosen:
            row, col = self.action_to_position(positions[int(index)])
            self._mines[row, col] = True
        self._mines_placed = True

    # ========================================================================
    # Stepping
    # ========================================================================

    def step(
        self, action: int
    ) -> Tuple[np.ndarray, SupportsFloat, bool, bool, Dict[str, Any]]:
        """
        Probe one cell.

        Args:
            action: Cell index to probe (row * width + col).

        Returns:
            Tuple of (observation, reward, terminated, truncated, info).
        """
        row, col = self.action_to_position(action)
        self._steps += 1
        if not self._mines_placed:
            self._place_mines(exclude=(row, col))

        reward = self._calculate_reward(row, col)
        info = self._get_info()
        info["ground_truth"] = self.ground_truth(row, col)

        return self.get_observation(), reward, self.is_terminal, False, info

    def _calculate_reward(self, row: int, col: int) -> float:
        if self._probed[row, col]:
            return -0.1

        self._probed[row, col] = True
        if self._mines[row, col]:
            self._exploded = True
            return -10.0
        if self.safe_cells_probed >= self._total_safe_cells:
            return 10.0
        return 1.0

    def probe(self, row: int, col: int) -> str:
        """Probe a cell by coordinates and return the oracle answer."""
        if not self._is_valid_position(row, col):
            raise InvalidPositionError(row, col, self.height, self.width)
        _, _, _, _, info = self.step(self.position_to_action(row, col))
        return info["ground_truth"]

    def ground_truth(self, row: int, col: int) -> str:
        """Answer for a cell: "mine" or its adjacent mine count."""
        if self._mines[row, col]:
            return MINE_ANSWER
        return str(self.count_adjacent_mines(row, col))

    def count_adjacent_mines(self, row: int, col: int) -> int:
        count = 0
        for delta_row, delta_col in NEIGHBOR_OFFSETS:
            new_row, new_col = row + delta_row, col + delta_col
            if self._is_valid_position(new_row, new_col) and self._mines[new_row, new_col]:
                count += 1
        return count

    # ========================================================================
    # State
    # ========================================================================

    @property
    def safe_cells_probed(self) -> int:
        return int(np.sum(self._probed & ~self._mines))

    @property
    def is_terminal(self) -> bool:
        return self._exploded or self.safe_cells_probed >= self._total_safe_cells

    @property
    def mine_positions(self) -> Tuple[Tuple[int, int], ...]:
        rows, cols = np.nonzero(self._mines)
        return tuple((int(r), int(c)) for r, c in zip(rows, cols))

    def action_to_position(self, action: int) -> Tuple[int, int]:
        """Convert flat action index to (row, col) position."""
        return int(action) // self.width, int(action) % self.width

    def position_to_action(self, row: int, col: int) -> int:
        """Convert (row, col) position to flat action index."""
        return row * self.width + col

    def _is_valid_position(self, row: int, col: int) -> bool:
        return 0 <= row < self.height and 0 <= col < self.width

    def get_observation(self) -> np.ndarray:
        obs = np.full((self.height, self.width), -1, dtype=np.int8)
        for row, col in zip(*np.nonzero(self._probed)):
            obs[row, col] = 9 if self._mines[row, col] else self.count_adjacent_mines(row, col)
        return obs

    def _get_info(self) -> Dict[str, Any]:
        return {
            "steps": self._steps,
            "revealed": self.safe_cells_probed,
            "total_safe": self._total_safe_cells,
            "exploded": self._exploded,
        }

    def render(self) -> Optional[str]:
        """Render the current board state."""
        if self.render_mode == "ansi":
            return self._render_ansi()
        if self.render_mode == "human":
            print(self._render_ansi())
        return None

    def _render_ansi(self) -> str:
        symbols = {-1: ".", 9: "*", 0: " "}
        obs = self.get_observation()
        return "\n".join(
            " ".join(symbols.get(int(v), str(int(v))) for v in row) for row in obs
        )
