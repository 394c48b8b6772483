"""
Action types and data structures for moderation actions.

This module defines the ActionType enum and the ActionData dataclass handed
from the moderation service to the action executor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict

from modguard.datatypes.moderation_datatypes import CaseType, DecisionMethod


class ActionType(Enum):
    """Enumeration of the actions the bot may take on its own."""

    DELETE = "delete"
    WARN = "warn"
    TIMEOUT = "timeout"
    KICK = "kick"
    REVIEW = "review"
    ALERT = "alert"
    NULL = "null"

    def __str__(self) -> str:
        return self.value

    @property
    def is_punitive(self) -> bool:
        return self in (ActionType.TIMEOUT, ActionType.KICK)


@dataclass(slots=True)
class ActionData:
    """Data structure describing one moderation action to execute.

    Attributes:
        action: Type of action to perform.
        case_type: Violation category recorded in the case log.
        reason: Human readable reason (audit log reason and staff embed).
        decision_method: Whether a deterministic rule or the AI decided.
        ai_reason: Free-text explanation returned by the AI, if any.
        timeout_minutes: Timeout length for TIMEOUT actions.
        warning_text: Text posted to the channel (deleted after a delay).
        delete_message: Whether the triggering message should be deleted.
        staff_details: Extra fields appended to the staff notification embed.
        purge_window_seconds: When set, also delete the author's other messages
            in the channel from this many seconds back.
        purge_limit: Number of recent channel messages scanned by the purge.
    """
    action: ActionType
    case_type: CaseType
    reason: str
    decision_method: DecisionMethod = DecisionMethod.AUTO
    ai_reason: str | None = None
    timeout_minutes: int = 0
    warning_text: str | None = None
    delete_message: bool = True
    staff_details: Dict[str, str] = field(default_factory=dict)
    purge_window_seconds: float | None = None
    purge_limit: int = 0
