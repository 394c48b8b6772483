"""
Escalation policy: maps a user's violation history to the next action.

States per user: no violation → warned(n) → punished(n) → ban recommended.

- A minor violation adds a warning. Below ``warn_threshold`` the user is
  only warned.
- Reaching ``warn_threshold``, or any severe violation, is a punishment step:
  ``strict_violations`` grows by one and the user is timed out for
  ``timeout_durations_minutes[step - 1]`` (the last entry repeats), or kicked
  when the caller asks for kicks.
- Once ``strict_violations`` reaches ``ban_threshold`` every further
  violation yields REVIEW: staff are asked to decide on a ban and nothing
  punitive happens automatically. The counters never move back below the
  ceiling on their own, so the ceiling is permanent until staff reset it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from modguard.configuration.moderation_settings import EscalationSettings
from modguard.database.violation_store import ViolationStore
from modguard.datatypes.action_datatypes import ActionType
from modguard.datatypes.moderation_datatypes import Severity, ViolationRecord, now_millis
from modguard.util.logger import get_logger

logger = get_logger("escalation")


@dataclass(frozen=True, slots=True)
class EscalationDecision:
    action: ActionType
    record: ViolationRecord
    timeout_minutes: int = 0

    @property
    def warnings(self) -> int:
        return self.record.warnings

    @property
    def strict_violations(self) -> int:
        return self.record.strict_violations


class EscalationPolicy:
    def __init__(self, settings: EscalationSettings) -> None:
        self.settings = settings

    def timeout_for(self, punishment_step: int) -> int:
        """Timeout in minutes for the n-th punishment step (1-based)."""
        durations = self.settings.timeout_durations_minutes
        return durations[min(max(punishment_step, 1) - 1, len(durations) - 1)]

    def is_at_ceiling(self, record: ViolationRecord) -> bool:
        return record.strict_violations >= self.settings.ban_threshold

    def decide(
        self,
        record: ViolationRecord,
        severity: Severity,
        punishment: ActionType = ActionType.TIMEOUT,
        *,
        now_ms: int | None = None,
    ) -> Tuple[ViolationRecord, EscalationDecision]:
        """Return the updated record and the action for one confirmed violation."""
        if punishment not in (ActionType.TIMEOUT, ActionType.KICK):
            raise ValueError(f"Unsupported punishment {punishment}")

        timestamp = now_millis() if now_ms is None else now_ms

        if self.is_at_ceiling(record):
            updated = record.evolve(last_violation_timestamp=timestamp)
            return updated, EscalationDecision(ActionType.REVIEW, updated)

        warnings = record.warnings
        if severity is Severity.MINOR:
            warnings += 1
            if warnings < self.settings.warn_threshold:
                updated = record.evolve(warnings=warnings, last_violation_timestamp=timestamp)
                return updated, EscalationDecision(ActionType.WARN, updated)

        strict = record.strict_violations + 1
        updated = record.evolve(
            warnings=0 if self.settings.reset_warnings_on_punishment else warnings,
            strict_violations=strict,
            last_violation_timestamp=timestamp,
        )

        if strict >= self.settings.ban_threshold:
            return updated, EscalationDecision(ActionType.REVIEW, updated)
        if punishment is ActionType.KICK:
            return updated, EscalationDecision(ActionType.KICK, updated)
        return updated, EscalationDecision(ActionType.TIMEOUT, updated, timeout_minutes=self.timeout_for(strict))

    async def record_violation(
        self,
        store: ViolationStore,
        user_id: int | str,
        severity: Severity,
        punishment: ActionType = ActionType.TIMEOUT,
    ) -> EscalationDecision:
        """Atomically apply :meth:`decide` to the stored record of ``user_id``."""
        decision = await store.update(user_id, lambda record: self.decide(record, severity, punishment))
        logger.info(
            "[ESCALATION] User %s -> %s (warnings=%d, strict=%d)",
            user_id,
            decision.action,
            decision.warnings,
            decision.strict_violations,
        )
        return decision
