"""
Cross-game memory engine.

Remembers where mines were found, which openings and second moves led to
wins, and how often the hidden layout contradicted the engine. Positions
are stored normalized so experience carries over between grid sizes.
"""
import functools
import logging
import random
import time
import uuid
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from game.errors import PersistenceError

from .keys import (
    cell_key,
    denormalize_position,
    parse_position_key,
    sequence_key,
)
from .records import (
    MAX_CHANGE_EVENTS,
    MAX_GAMES,
    MAX_SEQUENCES,
    ContradictionEvent,
    GameSummary,
    MemoryRecord,
    MineRecord,
    MineView,
    MoveEntry,
    Tally,
)
from .storage import InMemoryStore, KeyValueStore


logger = logging.getLogger(__name__)

DEFAULT_MEMORY_KEY = "reverse_minesweeper_memory"

CHANGE_THRESHOLD = 3
ATTENUATION_FACTOR = 0.7
VIEW_FACTOR = 0.5
MIN_GAMES_FOR_ADVICE = 2
OPENING_WIN_RATE_TIE = 0.1
OPENING_TOP_N = 3


@dataclass(frozen=True)
class MoveSuggestion:
    """A remembered move mapped onto the current grid."""

    row: int
    col: int
    win_rate: float
    total: int
    confidence: float


def _move_kind(move: Any) -> str:
    kind = getattr(move, "kind", "PROBE")
    return getattr(kind, "name", str(kind))


class MemoryEngine:
    """
    Persistent memory shared by every game of a session.

    The record is loaded once at construction and saved after each
    mutating call. If the store fails, the engine logs a warning and keeps
    working in memory only.
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        key: str = DEFAULT_MEMORY_KEY,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the memory engine.

        Args:
            store: Document store; an in-process store when omitted.
            key: Key the record is saved under.
            rng: Random source for picking among top openings.
            clock: Timestamp source.
        """
        self.store = store if store is not None else InMemoryStore()
        self.key = key
        self.rng = rng or random.Random()
        self.clock = clock
        self.degraded = False
        self._changes_detected = False
        self.game_id = self._new_game_id()
        self.record = self._load()

    # ========================================================================
    # Persistence
    # ========================================================================

    def _load(self) -> MemoryRecord:
        try:
            data = self.store.get(self.key)
        except (PersistenceError, OSError, ValueError) as exc:
            self._degrade(exc)
            return MemoryRecord()
        if data is None:
            return MemoryRecord()
        return MemoryRecord.from_dict(data)

    def _save(self) -> None:
        self.record.last_updated = self.clock()
        if self.degraded:
            return
        try:
            self.store.set(self.key, self.record.to_dict())
        except (PersistenceError, OSError, ValueError) as exc:
            self._degrade(exc)

    def _degrade(self, exc: Exception) -> None:
        logger.warning("Memory store unavailable, continuing in memory only: %s", exc)
        self.degraded = True

    # ========================================================================
    # Games
    # ========================================================================

    @staticmethod
    def _new_game_id() -> str:
        return uuid.uuid4().hex

    def new_game(self) -> str:
        """Start tracking a new game and return its id."""
        self.game_id = self._new_game_id()
        return self.game_id

    def record_mine_found(self, row: int, col: int, rows: int, cols: int) -> None:
        """Remember a revealed mine at its normalized position."""
        key = cell_key(row, col, rows, cols)
        now = self.clock()
        mine = self.record.known_mines.get(key)
        if mine is None:
            mine = MineRecord(count=0, first_seen=now)
            self.record.known_mines[key] = mine
        mine.count += 1
        mine.last_seen = now
        mine.recent = True
        if self.game_id not in mine.game_ids:
            mine.game_ids.append(self.game_id)

        self.record.stats.mines_found += 1
        self._save()

    def record_game_result(
        self,
        win: bool,
        moves: Sequence[Any],
        rows: int,
        cols: int,
        elapsed: float,
    ) -> None:
        """
        Aggregate a finished game.

        Args:
            win: Whether the game was won.
            moves: Probe moves in order; each needs row, col, kind and
                ground_truth attributes.
            rows: Grid height.
            cols: Grid width.
            elapsed: Game duration in seconds.
        """
        stats = self.record.stats
        stats.games_played += 1
        stats.total_time += elapsed
        stats.total_moves += len(moves)
        if win:
            stats.wins += 1
        else:
            stats.losses += 1

        self.record.games.append(GameSummary(
            game_id=self.game_id,
            timestamp=self.clock(),
            victory=win,
            rows=rows,
            cols=cols,
            elapsed=elapsed,
            changes_detected=self._changes_detected,
            moves=[
                MoveEntry(m.row, m.col, _move_kind(m), getattr(m, "ground_truth", None))
                for m in moves
            ],
        ))
        del self.record.games[:-MAX_GAMES]

        if moves:
            self._record_sequence(win, moves, rows, cols)
        self._save()

    def _record_sequence(
        self, win: bool, moves: Sequence[Any], rows: int, cols: int
    ) -> None:
        keys = [cell_key(m.row, m.col, rows, cols) for m in moves]
        sequences = (
            self.record.winning_sequences if win else self.record.losing_sequences
        )
        sequence = sequence_key(keys)
        if sequence not in sequences:
            sequences.append(sequence)
            del sequences[:-MAX_SEQUENCES]

        self.record.openings.setdefault(keys[0], Tally()).record(win, self.game_id)
        if len(keys) >= 2:
            pair = sequence_key(keys[:2])
            self.record.second_moves.setdefault(pair, Tally()).record(win, self.game_id)

    # ========================================================================
    # Contradictions
    # ========================================================================

    @property
    def changes_detected(self) -> bool:
        """Whether this session has seen enough contradictions to distrust memory."""
        return self._changes_detected

    def record_contradiction(self, reason: str) -> None:
        """
        Register evidence that the hidden layout changed.

        From the third contradiction on, remembered mines are attenuated.
        """
        self.record.change_counter += 1
        self.record.change_events.append(ContradictionEvent(
            timestamp=self.clock(),
            reason=reason,
            counter=self.record.change_counter,
        ))
        del self.record.change_events[:-MAX_CHANGE_EVENTS]
        logger.info("Contradiction %d: %s", self.record.change_counter, reason)

        if self.record.change_counter >= CHANGE_THRESHOLD:
            self._changes_detected = True
            self._attenuate()
        self._save()

    def _attenuate(self) -> None:
        for mine in self.record.known_mines.values():
            mine.count = max(1, int(mine.count * ATTENUATION_FACTOR))
            mine.recent = False

    # ========================================================================
    # Queries
    # ========================================================================

    def known_mines_view(self) -> Mapping[str, MineView]:
        """
        Read-only snapshot of remembered mines.

        Once changes are detected the counts are halved and nothing is
        reported as recent; the stored record is left untouched.
        """
        scale = VIEW_FACTOR if self._changes_detected else 1.0
        return MappingProxyType({
            k: MineView.of(v, scale) for k, v in self.record.known_mines.items()
        })

    def best_opening(self, rows: int, cols: int) -> Optional[MoveSuggestion]:
        """
        Suggest a first move from remembered openings.

        Only openings played at least twice count. Clear win-rate leaders
        come first, near ties go to the better sampled one, and one of
        the top three is picked at random.
        """
        suggestions = []
        for key, tally in self.record.openings.items():
            if tally.total < MIN_GAMES_FOR_ADVICE:
                continue
            suggestion = self._suggest(
                key, tally, rows, cols, min(0.9, 0.4 + 0.05 * tally.total)
            )
            if suggestion is not None:
                suggestions.append(suggestion)
        if not suggestions:
            return None

        suggestions.sort(key=functools.cmp_to_key(_compare_openings))
        top = suggestions[:OPENING_TOP_N]
        return top[self.rng.randrange(len(top))]

    def best_second_move(
        self, first_row: int, first_col: int, rows: int, cols: int
    ) -> Optional[MoveSuggestion]:
        """Suggest the follow-up with the best win rate after a given first move."""
        prefix = cell_key(first_row, first_col, rows, cols) + "|"
        suggestions = []
        for key, tally in self.record.second_moves.items():
            if not key.startswith(prefix) or tally.total < MIN_GAMES_FOR_ADVICE:
                continue
            suggestion = self._suggest(
                key[len(prefix):], tally, rows, cols,
                min(0.8, 0.3 + 0.05 * tally.total),
            )
            if suggestion is not None:
                suggestions.append(suggestion)
        if not suggestions:
            return None
        return max(suggestions, key=lambda s: s.win_rate)

    @staticmethod
    def _suggest(
        key: str, tally: Tally, rows: int, cols: int, confidence: float
    ) -> Optional[MoveSuggestion]:
        try:
            normalized = parse_position_key(key)
        except ValueError:
            logger.debug("Skipping malformed memory key %r", key)
            return None
        row, col = denormalize_position(normalized, rows, cols)
        return MoveSuggestion(row, col, tally.win_rate, tally.total, confidence)

    def statistics(self) -> Dict[str, Any]:
        """Aggregate statistics plus the memory's own health."""
        stats = self.record.stats.to_dict()
        stats.update({
            "win_rate": self.record.stats.win_rate,
            "known_mines": len(self.record.known_mines),
            "openings": len(self.record.openings),
            "change_counter": self.record.change_counter,
            "changes_detected": self._changes_detected,
            "degraded": self.degraded,
        })
        return stats

    def recent_games(self, limit: Optional[int] = None) -> List[GameSummary]:
        """Stored game summaries, newest first."""
        games = list(reversed(self.record.games))
        return games if limit is None else games[:limit]

    def reset(self) -> None:
        """Forget everything and start a fresh game id."""
        self.record = MemoryRecord()
        self._changes_detected = False
        self.new_game()
        self._save()


def _compare_openings(a: MoveSuggestion, b: MoveSuggestion) -> int:
    if abs(a.win_rate - b.win_rate) > OPENING_WIN_RATE_TIE:
        return -1 if a.win_rate > b.win_rate else 1
    return b.total - a.total
