"""Per-user violation counters stored as a JSON object keyed by user id."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, Tuple, TypeVar

from modguard.database.json_store import JsonDocumentStore
from modguard.datatypes.moderation_datatypes import ViolationRecord
from modguard.util.logger import get_logger

logger = get_logger("violation_store")

T = TypeVar("T")


class ViolationStore:
    def __init__(self, store: JsonDocumentStore) -> None:
        self.store = store

    @classmethod
    def at(cls, path: Path) -> "ViolationStore":
        return cls(JsonDocumentStore(path, default_factory=dict))

    async def get(self, user_id: int | str) -> ViolationRecord:
        return ViolationRecord.from_dict(await self.store.get(str(user_id)))

    async def update(
        self,
        user_id: int | str,
        transition: Callable[[ViolationRecord], Tuple[ViolationRecord, T]],
    ) -> T:
        """Atomically apply ``transition`` to the user's record.

        ``transition`` receives the current record and returns the new record
        plus an arbitrary result, which is returned to the caller. The read,
        the transition and the write happen under the document lock.
        """
        outcome: Dict[str, Any] = {}

        def _mutate(raw: Any) -> Dict[str, Any]:
            new_record, result = transition(ViolationRecord.from_dict(raw))
            outcome["result"] = result
            return new_record.to_dict()

        await self.store.update_key(str(user_id), _mutate)
        return outcome["result"]

    async def reset(self, user_id: int | str) -> None:
        """Zero both counters, keeping the last violation timestamp."""
        def _reset(record: ViolationRecord) -> Tuple[ViolationRecord, None]:
            return record.evolve(warnings=0, strict_violations=0), None

        await self.update(user_id, _reset)
        logger.info("[VIOLATIONS] Reset counters for user %s", user_id)
