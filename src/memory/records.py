"""
Versioned memory record shared across games.

Every type converts to and from plain JSON-compatible dicts. Loading is
forgiving: a missing or malformed part falls back to its default value
instead of raising, and a record with a different version is discarded.
"""
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


MEMORY_VERSION = 1
MAX_GAMES = 50
MAX_SEQUENCES = 100
MAX_CHANGE_EVENTS = 20


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def _as_int(value: Any, default: int = 0) -> int:
    return int(value) if _is_number(value) else default


def _as_float(value: Any, default: float = 0.0) -> float:
    return float(value) if _is_number(value) else default


def _as_str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


# ============================================================================
# Entries
# ============================================================================

@dataclass
class MineRecord:
    """A mine seen at one normalized position."""

    count: int = 1
    first_seen: float = 0.0
    last_seen: float = 0.0
    recent: bool = True
    game_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "first_seen": self.first_seen,
            "last_seen": self.last_seen,
            "recent": self.recent,
            "game_ids": list(self.game_ids),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "MineRecord":
        data = _as_dict(data)
        return cls(
            count=max(1, _as_int(data.get("count"), 1)),
            first_seen=_as_float(data.get("first_seen")),
            last_seen=_as_float(data.get("last_seen")),
            recent=bool(data.get("recent", False)),
            game_ids=_as_str_list(data.get("game_ids")),
        )


@dataclass(frozen=True)
class MineView:
    """
    Read-only copy of a MineRecord handed to the solver.

    The count is a float because a distrusted memory reports it halved.
    """

    count: float
    recent: bool
    last_seen: float = 0.0

    @classmethod
    def of(cls, record: MineRecord, scale: float = 1.0) -> "MineView":
        return cls(
            count=record.count * scale,
            recent=record.recent and scale == 1.0,
            last_seen=record.last_seen,
        )


@dataclass
class Tally:
    """Wins and losses for an opening or a second move."""

    wins: int = 0
    losses: int = 0
    game_ids: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.wins + self.losses

    @property
    def win_rate(self) -> float:
        return self.wins / self.total if self.total else 0.0

    def record(self, win: bool, game_id: str) -> None:
        if win:
            self.wins += 1
        else:
            self.losses += 1
        if game_id not in self.game_ids:
            self.game_ids.append(game_id)

    def to_dict(self) -> Dict[str, Any]:
        return {"wins": self.wins, "losses": self.losses, "game_ids": list(self.game_ids)}

    @classmethod
    def from_dict(cls, data: Any) -> "Tally":
        data = _as_dict(data)
        return cls(
            wins=max(0, _as_int(data.get("wins"))),
            losses=max(0, _as_int(data.get("losses"))),
            game_ids=_as_str_list(data.get("game_ids")),
        )


@dataclass(frozen=True)
class MoveEntry:
    """One move as stored in a game summary."""

    row: int
    col: int
    kind: str
    ground_truth: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row": self.row,
            "col": self.col,
            "kind": self.kind,
            "ground_truth": self.ground_truth,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Optional["MoveEntry"]:
        data = _as_dict(data)
        if "row" not in data or "col" not in data:
            return None
        truth = data.get("ground_truth")
        return cls(
            row=_as_int(data.get("row")),
            col=_as_int(data.get("col")),
            kind=str(data.get("kind", "PROBE")),
            ground_truth=truth if isinstance(truth, str) else None,
        )


@dataclass
class GameSummary:
    """Outcome of one finished game."""

    game_id: str
    timestamp: float
    victory: bool
    rows: int
    cols: int
    elapsed: float
    changes_detected: bool = False
    moves: List[MoveEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "game_id": self.game_id,
            "timestamp": self.timestamp,
            "victory": self.victory,
            "rows": self.rows,
            "cols": self.cols,
            "elapsed": self.elapsed,
            "changes_detected": self.changes_detected,
            "moves": [move.to_dict() for move in self.moves],
        }

    @classmethod
    def from_dict(cls, data: Any) -> Optional["GameSummary"]:
        data = _as_dict(data)
        if "game_id" not in data:
            return None
        moves = [MoveEntry.from_dict(m) for m in _as_list(data.get("moves"))]
        return cls(
            game_id=str(data["game_id"]),
            timestamp=_as_float(data.get("timestamp")),
            victory=bool(data.get("victory", False)),
            rows=_as_int(data.get("rows")),
            cols=_as_int(data.get("cols")),
            elapsed=_as_float(data.get("elapsed")),
            changes_detected=bool(data.get("changes_detected", False)),
            moves=[m for m in moves if m is not None],
        )


@dataclass(frozen=True)
class ContradictionEvent:
    """Evidence that the hidden layout disagrees with earlier deductions."""

    timestamp: float
    reason: str
    counter: int

    def to_dict(self) -> Dict[str, Any]:
        return {"timestamp": self.timestamp, "reason": self.reason, "counter": self.counter}

    @classmethod
    def from_dict(cls, data: Any) -> Optional["ContradictionEvent"]:
        data = _as_dict(data)
        if "reason" not in data:
            return None
        return cls(
            timestamp=_as_float(data.get("timestamp")),
            reason=str(data["reason"]),
            counter=_as_int(data.get("counter")),
        )


@dataclass
class MemoryStats:
    """Aggregate statistics over every recorded game."""

    games_played: int = 0
    wins: int = 0
    losses: int = 0
    mines_found: int = 0
    total_moves: int = 0
    total_time: float = 0.0

    @property
    def win_rate(self) -> float:
        return self.wins / self.games_played if self.games_played else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "games_played": self.games_played,
            "wins": self.wins,
            "losses": self.losses,
            "mines_found": self.mines_found,
            "total_moves": self.total_moves,
            "total_time": self.total_time,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "MemoryStats":
        data = _as_dict(data)
        return cls(
            games_played=max(0, _as_int(data.get("games_played"))),
            wins=max(0, _as_int(data.get("wins"))),
            losses=max(0, _as_int(data.get("losses"))),
            mines_found=max(0, _as_int(data.get("mines_found"))),
            total_moves=max(0, _as_int(data.get("total_moves"))),
            total_time=max(0.0, _as_float(data.get("total_time"))),
        )


# ============================================================================
# Memory Record
# ============================================================================

@dataclass
class MemoryRecord:
    """
    Everything the engine remembers between games.

    Attributes:
        known_mines: Normalized position key to mine record.
        openings: First-move key to tally.
        second_moves: "first|second" key to tally.
        winning_sequences: Move sequence keys of won games.
        losing_sequences: Move sequence keys of lost games.
        games: Most recent game summaries.
        stats: Aggregate statistics.
        change_counter: Contradictions seen so far.
        change_events: Most recent contradictions.
        last_updated: Unix timestamp of the last mutation.
    """

    version: int = MEMORY_VERSION
    known_mines: Dict[str, MineRecord] = field(default_factory=dict)
    openings: Dict[str, Tally] = field(default_factory=dict)
    second_moves: Dict[str, Tally] = field(default_factory=dict)
    winning_sequences: List[str] = field(default_factory=list)
    losing_sequences: List[str] = field(default_factory=list)
    games: List[GameSummary] = field(default_factory=list)
    stats: MemoryStats = field(default_factory=MemoryStats)
    change_counter: int = 0
    change_events: List[ContradictionEvent] = field(default_factory=list)
    last_updated: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "known_mines": {k: v.to_dict() for k, v in self.known_mines.items()},
            "openings": {k: v.to_dict() for k, v in self.openings.items()},
            "second_moves": {k: v.to_dict() for k, v in self.second_moves.items()},
            "winning_sequences": list(self.winning_sequences),
            "losing_sequences": list(self.losing_sequences),
            "games": [g.to_dict() for g in self.games],
            "stats": self.stats.to_dict(),
            "change_counter": self.change_counter,
            "change_events": [e.to_dict() for e in self.change_events],
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "MemoryRecord":
        """
        Rebuild a record from stored data.

        Args:
            data: Decoded JSON document, possibly malformed.

        Returns:
            The stored record, or a fresh one for an unknown version.
        """
        data = _as_dict(data)
        if data.get("version") != MEMORY_VERSION:
            return cls()

        games = [GameSummary.from_dict(g) for g in _as_list(data.get("games"))]
        events = [
            ContradictionEvent.from_dict(e) for e in _as_list(data.get("change_events"))
        ]
        return cls(
            known_mines={
                str(k): MineRecord.from_dict(v)
                for k, v in _as_dict(data.get("known_mines")).items()
            },
            openings={
                str(k): Tally.from_dict(v)
                for k, v in _as_dict(data.get("openings")).items()
            },
            second_moves={
                str(k): Tally.from_dict(v)
                for k, v in _as_dict(data.get("second_moves")).items()
            },
            winning_sequences=_as_str_list(data.get("winning_sequences"))[-MAX_SEQUENCES:],
            losing_sequences=_as_str_list(data.get("losing_sequences"))[-MAX_SEQUENCES:],
            games=[g for g in games if g is not None][-MAX_GAMES:],
            stats=MemoryStats.from_dict(data.get("stats")),
            change_counter=max(0, _as_int(data.get("change_counter"))),
            change_events=[e for e in events if e is not None][-MAX_CHANGE_EVENTS:],
            last_updated=_as_float(data.get("last_updated")),
        )

