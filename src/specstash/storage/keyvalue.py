"""
Session-keyed key-value persistence.

Drafts are stored in a flat key-value namespace rather than in the
artifact directory tree. The JSON file store keeps the whole namespace in
one document and rewrites it atomically on every update.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class KeyValueStore(Protocol):
    """Async key-value capability."""

    async def get(self, key: str) -> Any | None: ...

    async def update(self, key: str, value: Any | None) -> None:
        """Store ``value`` under ``key``; ``None`` removes the key."""
        ...

    async def keys(self) -> list[str]: ...


class JsonFileKeyValueStore:
    """
    KeyValueStore persisted as a single JSON object.

    A missing or corrupt file reads as an empty namespace. Writes go to a
    temporary sibling file which then replaces the original.
    """

    def __init__(self, path: Path):
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Ignoring unreadable key-value store {self._path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed key-value store {self._path}")
            return {}
        return data

    def _save(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._path.with_name(f"{self._path.name}.tmp")
        try:
            temp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            os.replace(temp_path, self._path)
        except Exception:
            temp_path.unlink(missing_ok=True)
            raise

    async def get(self, key: str) -> Any | None:
        data = await asyncio.to_thread(self._load)
        return data.get(key)

    async def update(self, key: str, value: Any | None) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._load)
            if value is None:
                if key not in data:
                    return
                data.pop(key)
            else:
                data[key] = value
            await asyncio.to_thread(self._save, data)

    async def keys(self) -> list[str]:
        data = await asyncio.to_thread(self._load)
        return list(data.keys())
