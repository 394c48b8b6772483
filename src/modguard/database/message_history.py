"""Bounded per-user message windows stored as ``{scope: {user_id: [entry, ...]}}``."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

from modguard.database.json_store import JsonDocumentStore
from modguard.datatypes.moderation_datatypes import MessageHistoryEntry, now_millis

SPAM_SCOPE = "spam"
BEHAVIOUR_SCOPE = "behaviour"

# Windows without an age limit are dropped after a day without messages.
IDLE_WINDOW_MS = 24 * 60 * 60 * 1000


def _parse_entries(raw: Any) -> List[MessageHistoryEntry]:
    if not isinstance(raw, list):
        return []
    entries = [MessageHistoryEntry.from_dict(item) for item in raw]
    return [entry for entry in entries if entry is not None]


def trim_window(
    entries: List[MessageHistoryEntry],
    capacity: int,
    now_ms: int,
    max_age_ms: int | None = None,
) -> List[MessageHistoryEntry]:
    """Drop entries older than ``max_age_ms`` then keep only the newest ``capacity``."""
    if max_age_ms is not None:
        entries = [entry for entry in entries if now_ms - entry.timestamp < max_age_ms]
    if capacity <= 0:
        return []
    return entries[-capacity:]


def prune_scope(scope_map: Dict[str, Any], now_ms: int, max_age_ms: int | None = None) -> None:
    """Remove windows that are empty or whose newest entry has expired."""
    limit = IDLE_WINDOW_MS if max_age_ms is None else max_age_ms
    for key in list(scope_map):
        entries = _parse_entries(scope_map[key])
        if not entries or now_ms - entries[-1].timestamp >= limit:
            del scope_map[key]


class MessageHistoryStore:
    """Sliding message windows, one sub-map per tracker scope.

    Windows are FIFO: appending to a full window evicts the oldest entry, so a
    window never holds more than its capacity.
    """

    def __init__(self, store: JsonDocumentStore) -> None:
        self.store = store

    @classmethod
    def at(cls, path: Path) -> "MessageHistoryStore":
        return cls(JsonDocumentStore(path, default_factory=dict))

    async def append(
        self,
        scope: str,
        user_id: int | str,
        content: str,
        capacity: int,
        *,
        max_age_ms: int | None = None,
        timestamp_ms: int | None = None,
    ) -> List[MessageHistoryEntry]:
        """Add a message to the user's window and return the resulting window."""
        now_ms = now_millis() if timestamp_ms is None else timestamp_ms
        key = str(user_id)

        def _append(document: Dict[str, Any]) -> List[MessageHistoryEntry]:
            scope_map = document.get(scope)
            if not isinstance(scope_map, dict):
                scope_map = {}
                document[scope] = scope_map
            prune_scope(scope_map, now_ms, max_age_ms)
            window = _parse_entries(scope_map.get(key))
            window.append(MessageHistoryEntry(timestamp=now_ms, content=content))
            window = trim_window(window, capacity, now_ms, max_age_ms)
            scope_map[key] = [entry.to_dict() for entry in window]
            return window

        return await self.store.update(_append)

    async def window(self, scope: str, user_id: int | str) -> List[MessageHistoryEntry]:
        scope_map = await self.store.get(scope, {})
        if not isinstance(scope_map, dict):
            return []
        return _parse_entries(scope_map.get(str(user_id)))

    async def clear(self, scope: str, user_id: int | str) -> None:
        key = str(user_id)

        def _clear(document: Dict[str, Any]) -> None:
            scope_map = document.get(scope)
            if isinstance(scope_map, dict):
                scope_map.pop(key, None)

        await self.store.update(_clear)
