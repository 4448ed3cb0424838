"""
Unit tests for the minefield environment and its board configuration.
"""
import numpy as np
import pytest

from game import BoardConfig, InvalidPositionError, MinefieldEnv, PRESETS


# ============================================================================
# Board Configuration Tests
# ============================================================================

class TestBoardConfig:
    """Tests for BoardConfig."""

    def test_default_config(self) -> None:
        """Test default configuration values."""
        config = BoardConfig()
        assert config.width == 9
        assert config.height == 9
        assert config.num_mines == 10

    def test_invalid_dimensions(self) -> None:
        """Test that invalid dimensions raise error."""
        with pytest.raises(ValueError, match="positive"):
            BoardConfig(width=0, height=5, num_mines=1)

    def test_negative_mines(self) -> None:
        """Test that negative mines raise error."""
        with pytest.raises(ValueError, match="negative"):
            BoardConfig(width=5, height=5, num_mines=-1)

    def test_too_many_mines(self) -> None:
        """Test that too many mines raise error."""
        with pytest.raises(ValueError, match="Too many mines"):
            BoardConfig(width=3, height=3, num_mines=9)

    def test_presets(self) -> None:
        assert PRESETS["beginner"].num_mines == 10
        assert PRESETS["expert"].width == 30


# ============================================================================
# Environment Tests
# ============================================================================

class TestMinefieldEnv:
    """Tests for MinefieldEnv."""

    def test_spaces(self, beginner_config: BoardConfig) -> None:
        env = MinefieldEnv(beginner_config)
        obs, info = env.reset(seed=0)

        assert env.action_space.n == 81
        assert env.observation_space.contains(obs)
        assert info["revealed"] == 0

    def test_fixed_layout_answers(self) -> None:
        """Answers follow a layout passed through reset options."""
        env = MinefieldEnv(BoardConfig(3, 3, 1))
        env.reset(options={"mines": [(0, 0)]})

        assert env.probe(1, 1) == "1"
        assert env.probe(2, 2) == "0"
        assert env.probe(0, 0) == "mine"
        assert env.is_terminal

    def test_first_probe_is_safe(self) -> None:
        """Random layouts never put a mine under the first probe."""
        env = MinefieldEnv(BoardConfig(3, 3, 8))
        for seed in range(5):
            env.reset(seed=seed)
            assert env.probe(1, 1) == "8"
            assert len(env.mine_positions) == 8

    def test_seeded_layouts_repeat(self, beginner_config: BoardConfig) -> None:
        env = MinefieldEnv(beginner_config)
        env.reset(seed=42)
        env.probe(4, 4)
        first = env.mine_positions

        env.reset(seed=42)
        env.probe(4, 4)
        assert env.mine_positions == first

    def test_rewards(self) -> None:
        """Safe probe, repeat probe and mine probe rewards."""
        env = MinefieldEnv(BoardConfig(3, 3, 1))
        env.reset(options={"mines": [(2, 2)]})

        _, reward, terminated, _, info = env.step(env.position_to_action(0, 0))
        assert reward == 1.0
        assert not terminated
        assert info["ground_truth"] == "0"

        _, reward, _, _, _ = env.step(env.position_to_action(0, 0))
        assert reward == pytest.approx(-0.1)

        _, reward, terminated, _, info = env.step(env.position_to_action(2, 2))
        assert reward == -10.0
        assert terminated
        assert info["exploded"]
        assert info["ground_truth"] == "mine"

    def test_clearing_reward(self) -> None:
        """Probing the last safe cell ends the episode with a bonus."""
        env = MinefieldEnv(BoardConfig(2, 1, 1))
        env.reset(options={"mines": [(0, 1)]})

        _, reward, terminated, _, info = env.step(0)
        assert reward == 10.0
        assert terminated
        assert not info["exploded"]

    def test_invalid_probe(self, tiny_env: MinefieldEnv) -> None:
        tiny_env.reset(seed=0)
        with pytest.raises(InvalidPositionError):
            tiny_env.probe(5, 5)

    def test_observation_after_probe(self) -> None:
        env = MinefieldEnv(BoardConfig(3, 3, 1))
        env.reset(options={"mines": [(0, 0)]})
        env.probe(1, 1)
        obs = env.get_observation()

        assert obs.dtype == np.int8
        assert obs[1, 1] == 1
        assert obs[0, 0] == -1

    def test_ansi_render(self) -> None:
        env = MinefieldEnv(BoardConfig(2, 2, 1), render_mode="ansi")
        env.reset(options={"mines": [(0, 0)]})
        env.probe(1, 1)

        assert env.render() == ". .\n. 1"

    def test_action_conversion(self, tiny_env: MinefieldEnv) -> None:
        assert tiny_env.position_to_action(2, 1) == 7
        assert tiny_env.action_to_position(7) == (2, 1)
