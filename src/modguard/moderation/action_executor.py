"""
Side effects of a moderation decision.

Every step (delete, purge, warn, timeout or kick, staff notification, case
record) is attempted independently: a failing step is logged and the
remaining steps still run. Nothing is rolled back.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass

import discord

from modguard.database.case_log import CaseLog
from modguard.datatypes.action_datatypes import ActionData, ActionType
from modguard.datatypes.moderation_datatypes import Case, CaseType
from modguard.util import discord_utils
from modguard.util.logger import get_logger

logger = get_logger("action_executor")

STAFF_TITLES = {
    CaseType.SPAM: "⚠️ Spam Detection",
    CaseType.SLUR: "⚠️ Banned Term Violation",
    CaseType.VIOLATION: "🚫 Rule Violation",
    CaseType.BOT: "🤖 Bot-like Behaviour",
}
REVIEW_TITLE = "🔨 Ban Recommended"
ALERT_TITLE = "🚨 Suspicious Message Detected"

# Discord caps communication timeouts at 28 days.
MAX_TIMEOUT_MINUTES = 28 * 24 * 60


@dataclass(slots=True)
class ExecutionResult:
    """What actually happened for one action; each flag is independent."""
    action: ActionType
    message_deleted: bool = False
    purged: int = 0
    warned: bool = False
    punished: bool = False
    staff_notified: bool = False
    case_index: int | None = None

    @property
    def punitive(self) -> bool:
        return self.action.is_punitive and self.punished


def describe_action(action: ActionData) -> str:
    """Human readable summary stored as a case's ``actionTaken``."""
    match action.action:
        case ActionType.TIMEOUT:
            return f"Timeout ({discord_utils.format_duration(action.timeout_minutes)})"
        case ActionType.KICK:
            return "Kick"
        case ActionType.WARN:
            return "Warning"
        case ActionType.DELETE:
            return "Message deleted"
        case ActionType.REVIEW:
            return "Ban recommended (staff review)"
        case ActionType.ALERT:
            return "Flagged for staff"
        case _:
            return "No action"


class ActionExecutor:
    """Apply :class:`ActionData` to a Discord message and its author.

    REVIEW and ALERT never touch the member: REVIEW only removes the
    offending message and asks staff to decide, ALERT only notifies staff.
    """

    def __init__(
        self,
        bot: discord.Client,
        case_log: CaseLog,
        staff_channel_id: int | None,
        warning_delete_after: float = 5.0,
    ) -> None:
        self.bot = bot
        self.case_log = case_log
        self.staff_channel_id = staff_channel_id
        self.warning_delete_after = warning_delete_after

    async def execute(self, action: ActionData, message: discord.Message) -> ExecutionResult:
        result = ExecutionResult(action.action)
        if action.action is ActionType.NULL:
            return result

        author = message.author
        logger.info(
            "[EXECUTOR] %s on %s (%s) in #%s: %s",
            action.action,
            author,
            author.id,
            getattr(message.channel, "name", message.channel.id),
            action.reason,
        )

        if action.delete_message and action.action is not ActionType.ALERT:
            result.message_deleted = await discord_utils.safe_delete_message(message)

        if action.warning_text and action.action is not ActionType.ALERT:
            result.warned = await discord_utils.send_temporary_warning(
                message.channel, action.warning_text, self.warning_delete_after
            )

        if action.action.is_punitive:
            result.punished = await self._punish(action, author)

        if action.purge_window_seconds and action.action is not ActionType.ALERT:
            result.purged = await discord_utils.delete_recent_messages_by_author(
                message.channel, author.id, action.purge_window_seconds, action.purge_limit
            )

        action_taken = describe_action(action)
        if action.action.is_punitive and not result.punished:
            action_taken += " (failed)"

        if action.action.is_punitive or action.action in (ActionType.REVIEW, ActionType.ALERT):
            result.staff_notified = await self.notify_staff(action, message, action_taken)

        if action.action is not ActionType.ALERT:
            result.case_index = await self._record_case(action, message, action_taken)

        return result

    async def _punish(self, action: ActionData, member: discord.Member) -> bool:
        reason = f"Modguard: {action.reason}"
        try:
            if action.action is ActionType.TIMEOUT:
                minutes = min(max(action.timeout_minutes, 1), MAX_TIMEOUT_MINUTES)
                until = discord.utils.utcnow() + datetime.timedelta(minutes=minutes)
                await member.timeout(until, reason=reason)
            elif action.action is ActionType.KICK:
                await member.kick(reason=reason)
            return True
        except discord.Forbidden:
            logger.error("[EXECUTOR] Missing permission to %s user %s", action.action, member.id)
        except discord.HTTPException as exc:
            logger.error("[EXECUTOR] Discord rejected %s for user %s: %s", action.action, member.id, exc)
        except Exception as exc:
            logger.error("[EXECUTOR] Failed to %s user %s: %s", action.action, member.id, exc)
        return False

    async def notify_staff(self, action: ActionData, message: discord.Message, action_taken: str) -> bool:
        """Post the incident summary to the staff channel."""
        channel = discord_utils.resolve_channel(self.bot, self.staff_channel_id)
        if channel is None:
            logger.warning("[EXECUTOR] Staff channel %s not available; skipping notification", self.staff_channel_id)
            return False

        if action.action is ActionType.REVIEW:
            title, kind = REVIEW_TITLE, "review"
        elif action.action is ActionType.ALERT:
            title, kind = ALERT_TITLE, "alert"
        else:
            title, kind = STAFF_TITLES.get(action.case_type, "⚠️ Moderation Action"), action.case_type.value

        details = {"Reason": action.reason, **action.staff_details}
        if action.ai_reason:
            details["AI Detection"] = action.ai_reason

        jump_url = None
        if message.guild is not None:
            jump_url = discord_utils.message_link(message.guild.id, message.channel.id, message.id)

        embed = discord_utils.create_incident_embed(
            title=title,
            kind=kind,
            user=message.author,
            channel_id=message.channel.id,
            content=message.content,
            action_taken=action_taken,
            details=details,
            jump_url=jump_url,
        )
        try:
            await channel.send(embed=embed)
            return True
        except Exception as exc:
            logger.error("[EXECUTOR] Failed to notify staff channel: %s", exc)
            return False

    async def _record_case(self, action: ActionData, message: discord.Message, action_taken: str) -> int | None:
        case = Case(
            type=action.case_type,
            user_id=str(message.author.id),
            username=str(message.author),
            channel_id=str(message.channel.id),
            channel_name=str(getattr(message.channel, "name", "")),
            message_content=message.content,
            action_taken=action_taken,
            decision_method=action.decision_method,
            ai_reason=action.ai_reason,
        )
        try:
            return await self.case_log.append(case)
        except Exception as exc:
            logger.error("[EXECUTOR] Failed to record case for user %s: %s", message.author.id, exc)
            return None
