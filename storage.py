"""
Local Storage Port
==================
Device-local key/value storage used by the cart, parked orders and the
event discount settings. Values are JSON-compatible documents.

Adapters:
- MemoryStorage: process memory (tests, ephemeral sessions)
- JsonFileStorage: one JSON file per key under a directory
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Optional


logger = logging.getLogger(__name__)


class Storage(ABC):
    """Key/value storage port."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return stored document or None."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store document under key."""

    @abstractmethod
    def clear(self, key: str) -> None:
        """Remove key (no error if absent)."""


class MemoryStorage(Storage):
    """In-process storage. Documents are deep-copied on the way in and out."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = deepcopy(initial) if initial else {}

    def get(self, key: str) -> Optional[Any]:
        value = self._data.get(key)
        return deepcopy(value) if value is not None else None

    def set(self, key: str, value: Any) -> None:
        self._data[key] = deepcopy(value)

    def clear(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return list(self._data.keys())


_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


class JsonFileStorage(Storage):
    """
    File-backed storage: <directory>/<key>.json

    Writes go through a temp file and rename so a crash never leaves a
    half-written document behind.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{_SAFE_KEY.sub('_', key)}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)

        if not path.exists():
            return None

        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.warning(f"Discarding corrupt storage document {path}: {e}")
            return None

    def set(self, key: str, value: Any) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(value), encoding="utf-8")
        tmp_path.replace(path)

    def clear(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()
