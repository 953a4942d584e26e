"""
Flat key → value stores backing the translation and OCR caches.

``JsonFileStore`` persists a single JSON object on disk; ``MemoryStore``
is a dict-backed drop-in used by tests.  Both are read-then-write with no
locking, so runs sharing a cache file must not overlap.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Any | None: ...

    def update(self, entries: dict[str, Any]) -> None: ...


class MemoryStore:
    def __init__(self, initial: dict[str, Any] | None = None):
        self.data: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Any | None:
        return self.data.get(key)

    def update(self, entries: dict[str, Any]) -> None:
        self.data.update(entries)


class JsonFileStore:
    """JSON object file; absent, unreadable or corrupted files read as empty."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Cache %s unreadable, starting fresh: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Cache %s is not a JSON object, starting fresh", self.path)
            return {}
        return data

    def get(self, key: str) -> Any | None:
        return self.load().get(key)

    def update(self, entries: dict[str, Any]) -> None:
        data = self.load()
        data.update(entries)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(data, indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )
