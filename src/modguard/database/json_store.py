"""
File-backed JSON document store.

Each :class:`JsonDocumentStore` owns exactly one JSON file. The document is
loaded lazily on first access, kept in memory, and written back after every
mutation. All reads and read-modify-write cycles run under a per-document
``asyncio.Lock`` so concurrent event handlers never lose each other's updates.

Writes go to a temporary sibling file which then replaces the target with
``os.replace``; a crash mid-write leaves the previous version intact.
"""

from __future__ import annotations

import asyncio
import copy
import json
from pathlib import Path
from typing import Any, Callable, TypeVar

import aiofiles
import aiofiles.os

from modguard.util.logger import get_logger

logger = get_logger("json_store")

T = TypeVar("T")


class JsonDocumentStore:
    """Async key-value style access to a single JSON document.

    Attributes:
        path: Location of the JSON file.
        default_factory: Callable producing the empty document (``list`` or ``dict``).
    """

    def __init__(self, path: Path, default_factory: Callable[[], Any] = dict) -> None:
        self.path = Path(path)
        self.default_factory = default_factory
        self._data: Any = None
        self._loaded = False
        self._lock = asyncio.Lock()

    # --------------------------
    # Disk I/O
    # --------------------------
    async def _load_from_disk(self) -> Any:
        default = self.default_factory()
        try:
            async with aiofiles.open(self.path, mode="r", encoding="utf-8") as file:
                content = await file.read()
        except FileNotFoundError:
            logger.info("[JSON STORE] %s does not exist yet; starting empty", self.path.name)
            return default
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("[JSON STORE] Failed to read %s: %s", self.path, exc)
            return default

        if not content.strip():
            return default

        try:
            data = json.loads(content)
        except (json.JSONDecodeError, RecursionError) as exc:
            logger.error("[JSON STORE] %s is not valid JSON (%s); using an empty document", self.path, exc)
            return default

        if not isinstance(data, type(default)):
            logger.error(
                "[JSON STORE] %s holds a %s, expected %s; using an empty document",
                self.path,
                type(data).__name__,
                type(default).__name__,
            )
            return default
        return data

    async def _write_to_disk(self, data: Any) -> bool:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            payload = json.dumps(data, indent=2, ensure_ascii=False)
            await aiofiles.os.makedirs(self.path.parent, exist_ok=True)
            async with aiofiles.open(tmp_path, mode="w", encoding="utf-8") as file:
                await file.write(payload)
            await aiofiles.os.replace(tmp_path, self.path)
            return True
        except (OSError, TypeError, ValueError) as exc:
            logger.error("[JSON STORE] Failed to write %s: %s", self.path, exc)
            return False

    async def _ensure_loaded(self) -> None:
        if not self._loaded:
            self._data = await self._load_from_disk()
            self._loaded = True

    # --------------------------
    # Public API
    # --------------------------
    async def reload(self) -> None:
        """Drop the cached document and read it again from disk."""
        async with self._lock:
            self._data = await self._load_from_disk()
            self._loaded = True

    async def read(self) -> Any:
        """Return a deep copy of the whole document."""
        async with self._lock:
            await self._ensure_loaded()
            return copy.deepcopy(self._data)

    async def get(self, key: str, default: Any = None) -> Any:
        """Return a copy of ``document[key]`` for object documents."""
        async with self._lock:
            await self._ensure_loaded()
            if not isinstance(self._data, dict):
                raise TypeError(f"{self.path.name} is not an object document")
            return copy.deepcopy(self._data.get(key, default))

    async def update(self, mutator: Callable[[Any], T]) -> T:
        """Atomically mutate the whole document and persist it.

        ``mutator`` receives a working copy of the document and may modify it
        in place; its return value is returned to the caller. If it raises,
        the stored document is left untouched and the exception propagates.
        """
        async with self._lock:
            await self._ensure_loaded()
            working = copy.deepcopy(self._data)
            result = mutator(working)
            self._data = working
            await self._write_to_disk(self._data)
            return result

    async def update_key(self, key: str, mutator: Callable[[Any], Any]) -> Any:
        """Atomically replace ``document[key]`` with ``mutator(current)``.

        ``current`` is None when the key is absent. Returning None from the
        mutator deletes the key. Returns the new value.
        """
        def _apply(document: Any) -> Any:
            if not isinstance(document, dict):
                raise TypeError(f"{self.path.name} is not an object document")
            new_value = mutator(document.get(key))
            if new_value is None:
                document.pop(key, None)
            else:
                document[key] = new_value
            return new_value

        return await self.update(_apply)
