"""Append-only case log stored as a JSON array (``cases.json``)."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

import jsonschema
from jsonschema import ValidationError

from modguard.database.json_store import JsonDocumentStore
from modguard.datatypes.moderation_datatypes import Case, CaseType, DecisionMethod
from modguard.util.logger import get_logger

logger = get_logger("case_log")

CASE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "type": {"enum": [case_type.value for case_type in CaseType]},
        "decisionMethod": {"enum": [method.value for method in DecisionMethod]},
        "aiReason": {"type": ["string", "null"]},
        "userId": {"type": "string"},
        "username": {"type": "string"},
        "channelId": {"type": "string"},
        "channelName": {"type": "string"},
        "messageContent": {"type": "string"},
        "actionTaken": {"type": "string"},
        "timestamp": {"type": "string"},
    },
    "required": ["type", "userId", "actionTaken", "timestamp"],
}


@dataclass(frozen=True, slots=True)
class IndexedCase:
    """A case together with its position in the log (the id used for removal)."""
    index: int
    case: Case


class CaseRemovalError(Exception):
    """Raised when a case cannot be removed; the log is left unchanged."""


def parse_case(raw: Any) -> Case | None:
    """Validate one raw log entry and convert it, or return None if malformed."""
    try:
        jsonschema.validate(instance=raw, schema=CASE_SCHEMA)
        return Case.from_dict(raw)
    except (ValidationError, KeyError, ValueError) as exc:
        message = exc.message if isinstance(exc, ValidationError) else str(exc)
        logger.warning("[CASE LOG] Skipping malformed case entry: %s", message)
        return None


class CaseLog:
    """Case log backed by a :class:`JsonDocumentStore` holding a list.

    Malformed entries are left in place so positional ids stay stable, but
    they are never returned by queries.
    """

    def __init__(self, store: JsonDocumentStore) -> None:
        self.store = store

    @classmethod
    def at(cls, path: Path) -> "CaseLog":
        return cls(JsonDocumentStore(path, default_factory=list))

    async def append(self, case: Case) -> int:
        """Append a case and return its index."""
        def _append(cases: List[Any]) -> int:
            cases.append(case.to_dict())
            return len(cases) - 1

        index = await self.store.update(_append)
        logger.info("[CASE LOG] Recorded %s case #%d for user %s", case.type, index, case.user_id)
        return index

    async def all_cases(self) -> List[IndexedCase]:
        raw_cases = await self.store.read()
        parsed: List[IndexedCase] = []
        for index, raw in enumerate(raw_cases):
            case = parse_case(raw)
            if case is not None:
                parsed.append(IndexedCase(index, case))
        return parsed

    async def cases_for_user(self, user_id: int | str) -> List[IndexedCase]:
        target = str(user_id)
        return [entry for entry in await self.all_cases() if entry.case.user_id == target]

    async def grouped_cases_for_user(self, user_id: int | str) -> Dict[CaseType, List[IndexedCase]]:
        """Return the user's cases grouped by violation type, in first-seen order."""
        grouped: Dict[CaseType, List[IndexedCase]] = {}
        for entry in await self.cases_for_user(user_id):
            grouped.setdefault(entry.case.type, []).append(entry)
        return grouped

    async def remove(self, index: int, user_id: int | str) -> Case:
        """Remove the case at ``index`` if it belongs to ``user_id``.

        Raises:
            CaseRemovalError: If the index is out of range, the entry is
                malformed, or it belongs to another user.
        """
        target = str(user_id)

        def _remove(cases: List[Any]) -> Case:
            if index < 0 or index >= len(cases):
                raise CaseRemovalError(f"Case #{index} does not exist.")
            case = parse_case(cases[index])
            if case is None:
                raise CaseRemovalError(f"Case #{index} is malformed and cannot be removed.")
            if case.user_id != target:
                raise CaseRemovalError(f"Case #{index} does not belong to that user.")
            del cases[index]
            return case

        removed = await self.store.update(_remove)
        logger.info("[CASE LOG] Removed case #%d for user %s", index, target)
        return removed
