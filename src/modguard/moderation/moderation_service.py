"""
Per-message moderation pipeline.

``ModerationService`` runs the checks for one guild message in order of cost:
spam window, banned terms, AI rule check, AI behaviour check. The first
check that flags the message decides the action; later checks are skipped.
Every confirmed violation goes through the shared escalation policy and the
resulting action is handed to the executor.

All state (violation counters, message windows, case log) lives in the
stores passed to the constructor; the service itself keeps none.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, List

import discord

from modguard.ai.ai_classifier import AIClassifier, BehaviourClassifier
from modguard.ai.llm_engine import LLMEngine
from modguard.configuration.app_configuration import AppConfig
from modguard.configuration.moderation_settings import (
    AIModerationSettings,
    BehaviourSettings,
    KeywordFilterSettings,
    SpamSettings,
)
from modguard.database.case_log import CaseLog
from modguard.database.message_history import BEHAVIOUR_SCOPE, MessageHistoryStore
from modguard.database.violation_store import ViolationStore
from modguard.datatypes.action_datatypes import ActionData, ActionType
from modguard.datatypes.moderation_datatypes import CaseType, Classification, DecisionMethod, Severity
from modguard.moderation.action_executor import ActionExecutor, ExecutionResult
from modguard.moderation.escalation import EscalationDecision, EscalationPolicy
from modguard.moderation.keyword_filter import KeywordFilter
from modguard.moderation.spam_detector import SpamDetector
from modguard.util import discord_utils
from modguard.util.logger import get_logger

logger = get_logger("moderation_service")

CASES_FILE = "cases.json"
VIOLATIONS_FILE = "violations.json"
HISTORY_FILE = "message_history.json"


@dataclass(frozen=True)
class ServiceSettings:
    staff_role_id: int | None = None
    spam: SpamSettings = field(default_factory=SpamSettings)
    keyword_filter: KeywordFilterSettings = field(default_factory=KeywordFilterSettings)
    ai_moderation: AIModerationSettings = field(default_factory=AIModerationSettings)
    behaviour: BehaviourSettings = field(default_factory=BehaviourSettings)

    @classmethod
    def from_config(cls, config: AppConfig) -> "ServiceSettings":
        return cls(
            staff_role_id=config.staff_role_id,
            spam=config.spam,
            keyword_filter=config.keyword_filter,
            ai_moderation=config.ai_moderation,
            behaviour=config.behaviour_detection,
        )


class ModerationService:
    def __init__(
        self,
        *,
        settings: ServiceSettings,
        executor: ActionExecutor,
        violations: ViolationStore,
        history: MessageHistoryStore,
        policy: EscalationPolicy,
        spam_detector: SpamDetector,
        keyword_filter: KeywordFilter,
        ai_classifier: AIClassifier | None = None,
        behaviour_classifier: BehaviourClassifier | None = None,
    ) -> None:
        self.settings = settings
        self.executor = executor
        self.violations = violations
        self.history = history
        self.policy = policy
        self.spam_detector = spam_detector
        self.keyword_filter = keyword_filter
        self.ai_classifier = ai_classifier
        self.behaviour_classifier = behaviour_classifier

        self._checks: List[Callable[[discord.Message], Awaitable[ActionData | None]]] = [
            self.check_spam,
            self.check_keywords,
            self.check_ai_violation,
            self.check_behaviour,
        ]

    @classmethod
    def from_config(cls, bot: discord.Client, config: AppConfig, engine: LLMEngine) -> "ModerationService":
        """Build the service and its JSON-backed stores from the application config."""
        data_dir: Path = config.data_dir
        case_log = CaseLog.at(data_dir / CASES_FILE)
        violations = ViolationStore.at(data_dir / VIOLATIONS_FILE)
        history = MessageHistoryStore.at(data_dir / HISTORY_FILE)
        settings = ServiceSettings.from_config(config)

        return cls(
            settings=settings,
            executor=ActionExecutor(
                bot,
                case_log,
                config.staff_channel_id,
                warning_delete_after=settings.keyword_filter.warning_delete_after,
            ),
            violations=violations,
            history=history,
            policy=EscalationPolicy(config.escalation),
            spam_detector=SpamDetector(history, settings.spam),
            keyword_filter=KeywordFilter(settings.keyword_filter.banned_terms),
            ai_classifier=AIClassifier(engine, config.rules),
            behaviour_classifier=BehaviourClassifier(engine),
        )

    @property
    def case_log(self) -> CaseLog:
        return self.executor.case_log

    # --------------------------
    # Entry point
    # --------------------------
    def should_moderate(self, message: discord.Message) -> bool:
        """Guild messages from non-bot, non-staff members with text content."""
        if message.guild is None:
            return False
        if discord_utils.is_ignored_author(message.author):
            return False
        if discord_utils.has_staff_role(message.author, self.settings.staff_role_id):
            return False
        return bool((message.content or "").strip())

    async def handle_message(self, message: discord.Message) -> ExecutionResult | None:
        """Run the checks for one message and execute the first resulting action."""
        if not self.should_moderate(message):
            return None

        for check in self._checks:
            try:
                action = await check(message)
            except Exception as exc:
                logger.error("[MODERATION] %s failed for message %s: %s", check.__name__, message.id, exc, exc_info=True)
                continue
            if action is not None:
                return await self.executor.execute(action, message)
        return None

    # --------------------------
    # Checks
    # --------------------------
    async def check_spam(self, message: discord.Message) -> ActionData | None:
        spam = self.settings.spam
        if message.channel.id in spam.exempt_channels:
            return None

        result = await self.spam_detector.check(message.author.id, message.content)
        if result.classification.is_safe:
            return None

        await self.spam_detector.reset(message.author.id)
        decision = await self.policy.record_violation(self.violations, message.author.id, Severity.SEVERE)
        return self._build_action(
            decision,
            CaseType.SPAM,
            reason="Spam detection",
            classification=result.classification,
            staff_details={"Spam Details": result.classification.reason},
            purge_window_seconds=spam.time_window_seconds,
            purge_limit=min(spam.threshold * 2, 100),
        )

    async def check_keywords(self, message: discord.Message) -> ActionData | None:
        if message.channel.id in self.settings.keyword_filter.exempt_channels:
            return None

        classification = self.keyword_filter.classify(message.content)
        if classification.is_safe:
            return None

        decision = await self.policy.record_violation(self.violations, message.author.id, Severity.MINOR)
        return self._build_action(
            decision,
            CaseType.SLUR,
            reason="Banned term",
            classification=classification,
            warning_text=self._warning_text(message.author, decision, "that language is not allowed here"),
        )

    async def check_ai_violation(self, message: discord.Message) -> ActionData | None:
        ai = self.settings.ai_moderation
        if not ai.enabled or self.ai_classifier is None or not self.ai_classifier.available:
            return None
        if message.channel.id in ai.exempt_channels:
            return None

        context = await discord_utils.fetch_reply_context(message)
        classification = await self.ai_classifier.classify(message.content, context)
        if classification.is_safe:
            return None

        if ai.alert_only:
            return ActionData(
                action=ActionType.ALERT,
                case_type=CaseType.VIOLATION,
                reason=f"AI flagged a {classification.severity} violation",
                decision_method=DecisionMethod.AI,
                ai_reason=classification.reason or None,
                delete_message=False,
            )

        decision = await self.policy.record_violation(
            self.violations, message.author.id, classification.severity or Severity.MINOR
        )
        return self._build_action(
            decision,
            CaseType.VIOLATION,
            reason=f"Rule violation ({classification.severity})",
            classification=classification,
            warning_text=self._warning_text(message.author, decision, "your message was removed for breaking the server rules"),
        )

    async def check_behaviour(self, message: discord.Message) -> ActionData | None:
        behaviour = self.settings.behaviour
        if not behaviour.enabled or self.behaviour_classifier is None or not self.behaviour_classifier.available:
            return None

        window = await self.history.append(BEHAVIOUR_SCOPE, message.author.id, message.content, behaviour.history_size)
        if len(window) < behaviour.history_size:
            return None

        contents = [entry.content for entry in window]
        classification = await self.behaviour_classifier.classify(contents)
        if classification.is_safe:
            return None

        await self.history.clear(BEHAVIOUR_SCOPE, message.author.id)
        decision = await self.policy.record_violation(
            self.violations, message.author.id, Severity.SEVERE, punishment=ActionType.KICK
        )
        return self._build_action(
            decision,
            CaseType.BOT,
            reason="Bot-like behaviour",
            classification=classification,
            delete_message=False,
            staff_details={"Messages": " | ".join(contents)},
        )

    # --------------------------
    # Helpers
    # --------------------------
    def _warning_text(self, author: discord.abc.User, decision: EscalationDecision, text: str) -> str | None:
        threshold = self.policy.settings.warn_threshold
        match decision.action:
            case ActionType.WARN:
                return f"{author.mention}, {text}. Warning {decision.warnings}/{threshold}"
            case ActionType.TIMEOUT:
                return f"{author.mention}, {text}. You have been timed out for {discord_utils.format_duration(decision.timeout_minutes)}."
            case _:
                return None

    def _build_action(
        self,
        decision: EscalationDecision,
        case_type: CaseType,
        *,
        reason: str,
        classification: Classification,
        warning_text: str | None = None,
        delete_message: bool = True,
        staff_details: dict[str, str] | None = None,
        purge_window_seconds: float | None = None,
        purge_limit: int = 0,
    ) -> ActionData:
        details = dict(staff_details or {})
        details["Escalation"] = (
            f"warnings {decision.warnings}/{self.policy.settings.warn_threshold}, "
            f"punishments {decision.strict_violations}/{self.policy.settings.ban_threshold}"
        )
        return ActionData(
            action=decision.action,
            case_type=case_type,
            reason=reason,
            decision_method=classification.decision_method,
            ai_reason=(classification.reason or None) if classification.decision_method is DecisionMethod.AI else None,
            timeout_minutes=decision.timeout_minutes,
            warning_text=warning_text,
            delete_message=delete_message,
            staff_details=details,
            purge_window_seconds=purge_window_seconds,
            purge_limit=purge_limit,
        )
