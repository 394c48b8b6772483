"""Repetition-based spam detection over a per-user sliding window."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from modguard.configuration.moderation_settings import SpamSettings
from modguard.database.message_history import SPAM_SCOPE, MessageHistoryStore
from modguard.datatypes.moderation_datatypes import (
    Classification,
    DecisionMethod,
    MessageHistoryEntry,
    Severity,
    Verdict,
)
from modguard.util.logger import get_logger

logger = get_logger("spam_detector")


@dataclass(frozen=True, slots=True)
class SpamCheck:
    classification: Classification
    window: List[MessageHistoryEntry]

    @property
    def message_count(self) -> int:
        return len(self.window)


def is_repetitive(window: List[MessageHistoryEntry], threshold: int, similarity_threshold: float) -> bool:
    """True when the window is full enough and its unique/total ratio is low enough."""
    if not window or len(window) < threshold:
        return False
    unique_contents = {entry.content for entry in window}
    return len(unique_contents) / len(window) <= similarity_threshold


class SpamDetector:
    """Tracks each user's recent messages and flags bursts of near-identical ones.

    Rapid but varied conversation is not spam: the ratio of unique contents
    to total messages in the window must also be at or below the configured
    similarity threshold.
    """

    def __init__(self, history: MessageHistoryStore, settings: SpamSettings) -> None:
        self.history = history
        self.settings = settings

    @property
    def window_ms(self) -> int:
        return int(self.settings.time_window_seconds * 1000)

    async def check(self, user_id: int | str, content: str, *, timestamp_ms: int | None = None) -> SpamCheck:
        window = await self.history.append(
            SPAM_SCOPE,
            user_id,
            content,
            self.settings.history_capacity,
            max_age_ms=self.window_ms,
            timestamp_ms=timestamp_ms,
        )

        if not is_repetitive(window, self.settings.threshold, self.settings.similarity_threshold):
            return SpamCheck(Classification.safe(), window)

        reason = f"{len(window)} messages in {self.settings.time_window_seconds:g}s"
        logger.info("[SPAM] User %s flagged for spam: %s", user_id, reason)
        return SpamCheck(
            Classification(Verdict.SPAM, severity=Severity.SEVERE, reason=reason, decision_method=DecisionMethod.AUTO),
            window,
        )

    async def reset(self, user_id: int | str) -> None:
        await self.history.clear(SPAM_SCOPE, user_id)
