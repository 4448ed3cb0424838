"""
Key-value stores the memory engine persists through.

The engine only needs get/set of JSON-compatible documents; the concrete
transport is injected.
"""
import json
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Union

from game.errors import PersistenceError


class KeyValueStore(ABC):
    """Abstract document store."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """
        Load the document stored under a key.

        Returns:
            The decoded document, or None if nothing is stored.

        Raises:
            PersistenceError: If the store cannot be read.
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """
        Store a document under a key.

        Raises:
            PersistenceError: If the store cannot be written.
        """
        pass


class InMemoryStore(KeyValueStore):
    """Store that lives as long as the process; documents are copied via JSON."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise PersistenceError(f"Cannot serialize {key!r}: {exc}") from exc


class JsonFileStore(KeyValueStore):
    """One JSON file per key inside a directory."""

    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return self.directory / f"{safe}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            with open(path, "r") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"Cannot read {path}: {exc}") from exc

    def set(self, key: str, value: Any) -> None:
        path = self.path_for(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as f:
                json.dump(value, f, indent=2)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Cannot write {path}: {exc}") from exc
