"""
Core moderation data structures.

Includes the classifier verdict types and the three persisted records:
:class:`Case` (case log entries), :class:`ViolationRecord` (per-user
escalation counters) and :class:`MessageHistoryEntry` (sliding windows).
Persisted records serialize to the camelCase keys used by the JSON files.
"""

from __future__ import annotations

import datetime
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict


class Verdict(Enum):
    """Coarse classification of a message or message sequence."""

    SAFE = "safe"
    SPAM = "spam"
    SLUR = "slur"
    VIOLATION = "violation"
    BOT = "bot"

    def __str__(self) -> str:
        return self.value


class Severity(Enum):
    MINOR = "minor"
    SEVERE = "severe"

    def __str__(self) -> str:
        return self.value


class DecisionMethod(Enum):
    AUTO = "auto"
    AI = "AI"

    def __str__(self) -> str:
        return self.value


class CaseType(Enum):
    """Violation category stored in a case's ``type`` field."""

    SPAM = "spam"
    SLUR = "slur"
    VIOLATION = "violation"
    BOT = "bot"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_verdict(cls, verdict: Verdict) -> "CaseType":
        return cls(verdict.value)


def now_millis() -> int:
    return int(time.time() * 1000)


def utc_now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True, slots=True)
class Classification:
    """Result of running a classifier.

    Attributes:
        verdict: The coarse verdict.
        severity: Severity of a violation (None for SAFE).
        reason: Short explanation, from the AI or the matching rule.
        decision_method: AUTO for deterministic checks, AI for model verdicts.
    """
    verdict: Verdict
    severity: Severity | None = None
    reason: str = ""
    decision_method: DecisionMethod = DecisionMethod.AUTO

    @property
    def is_safe(self) -> bool:
        return self.verdict is Verdict.SAFE

    @classmethod
    def safe(cls, decision_method: DecisionMethod = DecisionMethod.AUTO) -> "Classification":
        return cls(Verdict.SAFE, decision_method=decision_method)


@dataclass(slots=True)
class Case:
    """A persisted record of one moderation action taken against a user."""
    type: CaseType
    user_id: str
    username: str
    channel_id: str
    channel_name: str
    message_content: str
    action_taken: str
    decision_method: DecisionMethod = DecisionMethod.AUTO
    ai_reason: str | None = None
    timestamp: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.type.value,
            "decisionMethod": self.decision_method.value,
            "userId": self.user_id,
            "username": self.username,
            "channelId": self.channel_id,
            "channelName": self.channel_name,
            "messageContent": self.message_content,
            "actionTaken": self.action_taken,
            "timestamp": self.timestamp,
        }
        if self.ai_reason:
            data["aiReason"] = self.ai_reason
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Case":
        """Build a case from its JSON form.

        Raises:
            KeyError: If a required key is missing.
            ValueError: If ``type`` or ``decisionMethod`` is unknown.
        """
        return cls(
            type=CaseType(data["type"]),
            user_id=str(data["userId"]),
            username=str(data.get("username", "")),
            channel_id=str(data.get("channelId", "")),
            channel_name=str(data.get("channelName", "")),
            message_content=str(data.get("messageContent", "")),
            action_taken=str(data["actionTaken"]),
            decision_method=DecisionMethod(data.get("decisionMethod", DecisionMethod.AUTO.value)),
            ai_reason=data.get("aiReason") or None,
            timestamp=str(data["timestamp"]),
        )

    @property
    def timestamp_datetime(self) -> datetime.datetime | None:
        try:
            return datetime.datetime.fromisoformat(self.timestamp.replace("Z", "+00:00"))
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class ViolationRecord:
    """Per-user escalation counters.

    ``warnings`` counts minor violations since the last punishment step and
    ``strict_violations`` counts punishment steps; it is never reset
    automatically.
    """
    warnings: int = 0
    strict_violations: int = 0
    last_violation_timestamp: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "warnings": self.warnings,
            "strictViolations": self.strict_violations,
            "lastViolationTimestamp": self.last_violation_timestamp,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ViolationRecord":
        # Legacy offense files stored a bare integer per user.
        if isinstance(data, int) and not isinstance(data, bool):
            return cls(strict_violations=max(0, data))
        if not isinstance(data, dict):
            return cls()

        def _count(key: str) -> int:
            try:
                return max(0, int(data.get(key, 0)))
            except (TypeError, ValueError):
                return 0

        return cls(
            warnings=_count("warnings"),
            strict_violations=_count("strictViolations"),
            last_violation_timestamp=_count("lastViolationTimestamp"),
        )

    def evolve(self, **changes: Any) -> "ViolationRecord":
        return replace(self, **changes)


@dataclass(frozen=True, slots=True)
class MessageHistoryEntry:
    timestamp: int
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"timestamp": self.timestamp, "content": self.content}

    @classmethod
    def from_dict(cls, data: Any) -> "MessageHistoryEntry | None":
        # Early history files stored bare strings without a timestamp.
        if isinstance(data, str):
            return cls(timestamp=0, content=data)
        if not isinstance(data, dict):
            return None
        try:
            return cls(timestamp=int(data.get("timestamp", 0)), content=str(data.get("content", "")))
        except (TypeError, ValueError):
            return None
