"""
Self-play module for the reverse Minesweeper engine.

Plays game sessions against the simulated oracle so the memory fills up
and the engine's win rate can be measured without a human.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
import json
import time

from game.environment import BoardConfig, MinefieldEnv
from session.game_session import GameSession


# ============================================================================
# Self-Play Configuration
# ============================================================================

@dataclass
class SelfPlayConfig:
    """Configuration for a self-play run."""

    # Environment settings
    board_height: int = 9
    board_width: int = 9
    num_mines: int = 10

    # Run settings
    num_games: int = 100
    max_steps_per_game: int = 1000
    seed: Optional[int] = None

    # Logging
    log_frequency: int = 10
    stats_dir: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.num_games < 0:
            raise ValueError("Number of games cannot be negative")
        if self.max_steps_per_game < 1:
            raise ValueError("Max steps per game must be positive")
        if self.log_frequency < 1:
            raise ValueError("Log frequency must be positive")

    @property
    def board_config(self) -> BoardConfig:
        return BoardConfig(
            height=self.board_height,
            width=self.board_width,
            num_mines=self.num_mines,
        )


# ============================================================================
# Self-Play Statistics
# ============================================================================

@dataclass
class GameStats:
    """Statistics for a single game."""

    total_reward: float = 0.0
    probes: int = 0
    flags: int = 0
    won: bool = False
    cleared: bool = False
    finished: bool = False


@dataclass
class SelfPlayStats:
    """Accumulated self-play statistics."""

    games_completed: int = 0
    wins: int = 0
    losses: int = 0
    unfinished: int = 0
    cleared: int = 0
    total_probes: int = 0
    flags_placed: int = 0
    total_reward: float = 0.0
    win_history: List[bool] = field(default_factory=list)

    @property
    def win_rate(self) -> float:
        if not self.games_completed:
            return 0.0
        return self.wins / self.games_completed

    @property
    def recent_win_rate(self) -> float:
        """Win rate over last 100 games."""
        if not self.win_history:
            return 0.0
        recent = self.win_history[-100:]
        return sum(recent) / len(recent)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "games_completed": self.games_completed,
            "wins": self.wins,
            "losses": self.losses,
            "unfinished": self.unfinished,
            "cleared": self.cleared,
            "win_rate": self.win_rate,
            "recent_win_rate": self.recent_win_rate,
            "total_probes": self.total_probes,
            "flags_placed": self.flags_placed,
            "total_reward": self.total_reward,
        }


# ============================================================================
# Self-Play Runner
# ============================================================================

class SelfPlayRunner:
    """
    Plays a session against the simulated oracle repeatedly.

    Features:
        - Fresh hidden layout for every game
        - Memory updates through the session
        - Periodic progress output and optional JSON statistics
    """

    def __init__(
        self,
        session: GameSession,
        config: Optional[SelfPlayConfig] = None,
        callback: Optional[Callable[[SelfPlayStats], None]] = None,
    ) -> None:
        """
        Initialize the runner.

        Args:
            session: Session to drive; its memory learns from every game.
            config: Self-play configuration.
            callback: Optional callback after each game.
        """
        self.session = session
        self.config = config or SelfPlayConfig()
        self.callback = callback
        self.stats = SelfPlayStats()

    def run(self) -> SelfPlayStats:
        """
        Play every configured game.

        Returns:
            Final statistics.
        """
        env = MinefieldEnv(config=self.config.board_config)
        start_time = time.time()

        for game in range(self.config.num_games):
            seed = None
            if self.config.seed is not None and game == 0:
                seed = self.config.seed
            game_stats = self.play_game(env, seed=seed)
            self._update_stats(game_stats)

            if (game + 1) % self.config.log_frequency == 0:
                self._log_progress(game + 1, start_time)

            if self.callback:
                self.callback(self.stats)

        if self.config.stats_dir:
            self._save_stats()
        return self.stats

    def play_game(self, env: MinefieldEnv, seed: Optional[int] = None) -> GameStats:
        """Play one game to the end (or until it stalls)."""
        stats = GameStats()
        env.reset(seed=seed)
        state = self.session.start_new_game(env.height, env.width)

        for _ in range(self.config.max_steps_per_game):
            if state.game_over:
                break
            if state.pending is None:
                state = self.session.next_move()
                if state.pending is None:
                    break

            row, col = state.pending
            _, reward, terminated, _, info = env.step(env.position_to_action(row, col))
            stats.total_reward += float(reward)
            stats.probes += 1
            stats.cleared = terminated and not info["exploded"]
            state = self.session.submit_ground_truth(info["ground_truth"])

        stats.finished = state.game_over
        stats.won = state.victory
        stats.flags = state.flags_placed
        return stats

    def _update_stats(self, game_stats: GameStats) -> None:
        self.stats.games_completed += 1
        self.stats.total_probes += game_stats.probes
        self.stats.flags_placed += game_stats.flags
        self.stats.total_reward += game_stats.total_reward
        self.stats.win_history.append(game_stats.won)

        if game_stats.cleared:
            self.stats.cleared += 1
        if not game_stats.finished:
            self.stats.unfinished += 1
        elif game_stats.won:
            self.stats.wins += 1
        else:
            self.stats.losses += 1

    def _log_progress(self, game: int, start_time: float) -> None:
        """Log self-play progress."""
        elapsed = time.time() - start_time
        games_per_sec = game / elapsed if elapsed > 0 else 0

        print(
            f"Game {game}/{self.config.num_games} | "
            f"Win Rate: {self.stats.win_rate:.1%} | "
            f"Flags: {self.stats.flags_placed} | "
            f"Speed: {games_per_sec:.1f} games/s"
        )

    def _save_stats(self) -> None:
        """Save self-play statistics to JSON."""
        stats_path = Path(self.config.stats_dir)
        stats_path.mkdir(parents=True, exist_ok=True)
        with open(stats_path / "selfplay_stats.json", "w") as f:
            json.dump(self.stats.to_dict(), f, indent=2)
