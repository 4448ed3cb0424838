#!/usr/bin/env python3
"""
Reverse Minesweeper - Main entry point.

Usage:
    python main.py play [--rows R --cols C | --difficulty NAME]
    python main.py selfplay [--games N] [--difficulty NAME] [--seed S]
    python main.py stats
    python main.py reset-memory
"""
import argparse
import logging
import random
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from game import PRESETS, BoardConfig  # noqa: E402
from memory import JsonFileStore, MemoryEngine  # noqa: E402
from session import GameSession, GameSnapshot  # noqa: E402
from training import SelfPlayConfig, SelfPlayRunner  # noqa: E402


DEFAULT_MEMORY_DIR = ".sweeper_memory"
RECENT_GAMES_SHOWN = 5


def build_memory(args: argparse.Namespace) -> MemoryEngine:
    """Memory engine persisted as JSON under --memory-dir."""
    return MemoryEngine(JsonFileStore(args.memory_dir))


def board_from_args(args: argparse.Namespace) -> BoardConfig:
    """Preset board, overridden by explicit dimensions."""
    base = PRESETS[args.difficulty]
    return BoardConfig(
        width=args.cols or base.width,
        height=args.rows or base.height,
        num_mines=args.mines if args.mines is not None else base.num_mines,
    )


def print_state(state: GameSnapshot) -> None:
    """Print the board and the last decision."""
    print()
    print(state.board)
    action = state.last_action
    if action is not None and action.reason:
        print(f"[{action.kind.name}] {action.reason}")


def play(args: argparse.Namespace) -> None:
    """Play interactively: you hold the board and answer each probe."""
    config = board_from_args(args)
    rng = random.Random(args.seed)
    session = GameSession(memory=build_memory(args), rng=rng)

    print(f"Reverse Minesweeper on a {config.height}x{config.width} grid.")
    print("Answer each probe with a digit 0-8, 'empty' or 'mine' ('q' quits).")

    state = session.start_new_game(config.height, config.width)
    while not state.game_over:
        print_state(state)
        if state.pending is None:
            state = session.next_move()
            if state.pending is None and not state.game_over:
                print("The engine is stuck; giving up on this game.")
                return
            continue

        row, col = state.pending
        answer = input(f"Cell ({row + 1}, {col + 1})? ").strip()
        if answer.lower() in ("q", "quit"):
            print("Game abandoned.")
            return
        try:
            state = session.submit_ground_truth(answer)
        except ValueError as exc:
            print(f"Invalid answer: {exc}")

    print_state(state)
    print("\nVictory!" if state.victory else "\nBoom. The engine lost.")
    print(f"Probes: {state.moves_made} | Flags: {state.flags_placed} | "
          f"Time: {state.elapsed:.1f}s")


def selfplay(args: argparse.Namespace) -> None:
    """Play games against the simulated oracle."""
    board = board_from_args(args)
    config = SelfPlayConfig(
        board_height=board.height,
        board_width=board.width,
        num_mines=board.num_mines,
        num_games=args.games,
        seed=args.seed,
        log_frequency=args.log_frequency,
        stats_dir=args.stats_dir,
    )
    session = GameSession(memory=build_memory(args), rng=random.Random(args.seed))

    print(f"Self-play: {config.num_games} games on "
          f"{board.height}x{board.width} with {board.num_mines} mines...")
    stats = SelfPlayRunner(session, config).run()

    print("\nSelf-play complete!")
    print(f"Win rate: {stats.win_rate:.1%} ({stats.wins}/{stats.games_completed})")
    print(f"Boards cleared: {stats.cleared}")
    print(f"Flags placed: {stats.flags_placed}")
    if stats.unfinished:
        print(f"Unfinished games: {stats.unfinished}")


def show_stats(args: argparse.Namespace) -> None:
    """Print what the memory has learned so far."""
    memory = build_memory(args)
    stats = memory.statistics()

    print("=" * 40)
    print("Memory Statistics")
    print("=" * 40)
    print(f"{'Games played':<20} {stats['games_played']:>10}")
    print(f"{'Wins':<20} {stats['wins']:>10}")
    print(f"{'Losses':<20} {stats['losses']:>10}")
    print(f"{'Win rate':<20} {stats['win_rate']:>10.1%}")
    print(f"{'Mines found':<20} {stats['mines_found']:>10}")
    print(f"{'Total moves':<20} {stats['total_moves']:>10}")
    print(f"{'Total time (s)':<20} {stats['total_time']:>10.1f}")
    print(f"{'Known mine spots':<20} {stats['known_mines']:>10}")
    print(f"{'Contradictions':<20} {stats['change_counter']:>10}")

    games = memory.recent_games(RECENT_GAMES_SHOWN)
    if games:
        print("\nRecent games:")
        for game in games:
            result = "win " if game.victory else "loss"
            print(f"  {result} {game.rows}x{game.cols} "
                  f"{len(game.moves):>3} probes {game.elapsed:>7.1f}s")


def reset_memory(args: argparse.Namespace) -> None:
    """Forget every recorded game."""
    build_memory(args).reset()
    print(f"Memory in {args.memory_dir} cleared.")


def add_board_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--difficulty", choices=sorted(PRESETS), default="beginner",
        help="Preset board size",
    )
    parser.add_argument("--rows", type=int, help="Number of rows")
    parser.add_argument("--cols", type=int, help="Number of columns")
    parser.add_argument("--mines", type=int, help="Number of mines (self-play)")
    parser.add_argument("--seed", type=int, help="Random seed")


def main() -> None:
    """Parse arguments and run the appropriate command."""
    parser = argparse.ArgumentParser(
        description="Reverse Minesweeper - the engine probes, you answer"
    )
    parser.add_argument(
        "--memory-dir", default=DEFAULT_MEMORY_DIR,
        help="Directory holding the engine's memory",
    )
    parser.add_argument(
        "--log-level", default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Play command
    play_parser = subparsers.add_parser("play", help="Answer the engine's probes")
    add_board_arguments(play_parser)

    # Self-play command
    selfplay_parser = subparsers.add_parser(
        "selfplay", help="Play against the simulated oracle"
    )
    add_board_arguments(selfplay_parser)
    selfplay_parser.add_argument(
        "--games", type=int, default=100, help="Number of games to play"
    )
    selfplay_parser.add_argument(
        "--log-frequency", type=int, default=10, help="Games between progress lines"
    )
    selfplay_parser.add_argument(
        "--stats-dir", help="Write selfplay_stats.json into this directory"
    )

    subparsers.add_parser("stats", help="Show memory statistics")
    subparsers.add_parser("reset-memory", help="Clear the memory")

    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "play":
        play(args)
    elif args.command == "selfplay":
        selfplay(args)
    elif args.command == "stats":
        show_stats(args)
    elif args.command == "reset-memory":
        reset_memory(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
