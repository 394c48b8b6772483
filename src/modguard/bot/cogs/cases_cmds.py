"""
Cases cog: staff commands for reviewing and pruning a member's case history.

``/cases view`` lists a member's cases grouped by violation type,
``/cases remove`` deletes one case by its id (its position in the log) and
``/cases reset`` zeroes a member's warning and punishment counters.
All three commands require the configured staff role and reply ephemerally.
"""

from typing import Dict, List

import discord
from discord import Option
from discord.ext import commands

from modguard.database.case_log import CaseLog, CaseRemovalError, IndexedCase
from modguard.database.violation_store import ViolationStore
from modguard.datatypes.moderation_datatypes import CaseType
from modguard.util.discord_utils import EMBED_FIELD_LIMIT, has_staff_role, truncate_field
from modguard.util.logger import get_logger

logger = get_logger("cases_cog")

PERMISSION_DENIED = "You do not have permission to use this command."
COMMAND_FAILED = "There was an error executing this command."


def format_case_line(entry: IndexedCase) -> str:
    """One bullet line for a case, with the AI reason on a second line when present."""
    case = entry.case
    moment = case.timestamp_datetime
    date = moment.strftime("%Y-%m-%d %H:%M UTC") if moment else case.timestamp
    line = f"• #{entry.index} {date}: {case.action_taken}"
    if case.ai_reason:
        line += f"\n  Reason: {case.ai_reason}"
    return line


def build_cases_embed(user: discord.abc.User, grouped: Dict[CaseType, List[IndexedCase]]) -> discord.Embed:
    """Build the embed for ``/cases view``: one field per violation type."""
    total = sum(len(entries) for entries in grouped.values())
    embed = discord.Embed(
        title=f"Cases for {user}",
        description=f"{total} case{'s' if total != 1 else ''} on record for {user.mention}.",
        color=discord.Color.orange(),
    )
    for case_type, entries in grouped.items():
        value = "\n".join(format_case_line(entry) for entry in entries)
        embed.add_field(
            name=f"{case_type.value.capitalize()} Violations ({len(entries)})",
            value=truncate_field(value, EMBED_FIELD_LIMIT),
            inline=False,
        )
    return embed


class CasesCog(commands.Cog):
    """Cog containing the ``/cases`` command group."""

    cases = discord.SlashCommandGroup("cases", "View and manage moderation cases")

    def __init__(
        self,
        discord_bot_instance,
        case_log: CaseLog,
        violations: ViolationStore,
        staff_role_id: int | None,
    ):
        self.bot = discord_bot_instance
        self.case_log = case_log
        self.violations = violations
        self.staff_role_id = staff_role_id
        logger.info("Cases cog loaded")

    async def _respond(self, application_context: discord.ApplicationContext, content: str | None = None, **kwargs) -> None:
        try:
            await application_context.respond(content, ephemeral=True, **kwargs)
        except discord.InteractionResponded:
            await application_context.followup.send(content, ephemeral=True, **kwargs)

    async def _check_staff(self, application_context: discord.ApplicationContext) -> bool:
        if has_staff_role(application_context.author, self.staff_role_id):
            return True
        await self._respond(application_context, PERMISSION_DENIED)
        return False

    @cases.command(name="view", description="View the moderation cases of a member.")
    async def view(
        self,
        application_context: discord.ApplicationContext,
        user: Option(discord.Member, description="Member whose cases to show"),  # type: ignore[valid-type]
    ) -> None:
        if not await self._check_staff(application_context):
            return

        try:
            grouped = await self.case_log.grouped_cases_for_user(user.id)
            if not grouped:
                await self._respond(application_context, f"No cases found for user {user}")
                return
            await self._respond(application_context, embed=build_cases_embed(user, grouped))
        except Exception as exc:
            logger.error(f"Error in /cases view for {user}: {exc}", exc_info=True)
            await self._respond(application_context, COMMAND_FAILED)

    @cases.command(name="remove", description="Remove a moderation case from a member.")
    async def remove(
        self,
        application_context: discord.ApplicationContext,
        user: Option(discord.Member, description="Member the case belongs to"),  # type: ignore[valid-type]
        case_id: Option(int, description="Case id shown by /cases view", min_value=0),  # type: ignore[valid-type]
    ) -> None:
        if not await self._check_staff(application_context):
            return

        try:
            removed = await self.case_log.remove(case_id, user.id)
        except CaseRemovalError as exc:
            await self._respond(application_context, f"❌ {exc}")
            return
        except Exception as exc:
            logger.error(f"Error in /cases remove for {user} (case {case_id}): {exc}", exc_info=True)
            await self._respond(application_context, COMMAND_FAILED)
            return

        logger.info(f"{application_context.author} removed case #{case_id} ({removed.type}) from {user}")
        await self._respond(
            application_context,
            f"✅ Removed case #{case_id} ({removed.type.value}: {removed.action_taken}) from {user}.",
        )

    @cases.command(name="reset", description="Reset the warning and punishment counters of a member.")
    async def reset(
        self,
        application_context: discord.ApplicationContext,
        user: Option(discord.Member, description="Member whose counters to reset"),  # type: ignore[valid-type]
    ) -> None:
        if not await self._check_staff(application_context):
            return

        try:
            await self.violations.reset(user.id)
        except Exception as exc:
            logger.error(f"Error in /cases reset for {user}: {exc}", exc_info=True)
            await self._respond(application_context, COMMAND_FAILED)
            return

        logger.info(f"{application_context.author} reset the violation counters of {user}")
        await self._respond(application_context, f"✅ Reset the warning and punishment counters of {user}.")


def setup(discord_bot_instance, case_log: CaseLog, violations: ViolationStore, staff_role_id: int | None):
    """Register the CasesCog with the bot."""
    discord_bot_instance.add_cog(CasesCog(discord_bot_instance, case_log, violations, staff_role_id))
