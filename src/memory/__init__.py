"""Cross-game memory: normalized keys, versioned records and persistence."""
from .engine import MemoryEngine, MoveSuggestion
from .keys import (
    cell_key,
    denormalize_position,
    normalize_position,
    parse_position_key,
    position_key,
    sequence_key,
)
from .records import (
    ContradictionEvent,
    GameSummary,
    MemoryRecord,
    MemoryStats,
    MineRecord,
    MineView,
    MoveEntry,
    Tally,
)
from .storage import InMemoryStore, JsonFileStore, KeyValueStore

__all__ = [
    "MemoryEngine",
    "MoveSuggestion",
    "cell_key",
    "denormalize_position",
    "normalize_position",
    "parse_position_key",
    "position_key",
    "sequence_key",
    "ContradictionEvent",
    "GameSummary",
    "MemoryRecord",
    "MemoryStats",
    "MineRecord",
    "MineView",
    "MoveEntry",
    "Tally",
    "InMemoryStore",
    "JsonFileStore",
    "KeyValueStore",
]
