"""Lifecycle cog for Modguard.

Logs the connection, sets the presence to reflect whether AI checks are
running, and is the last-resort error boundary for slash commands.
"""

import discord
from discord.ext import commands

from modguard.ai.llm_engine import LLMEngine
from modguard.util.logger import get_logger

logger = get_logger("events_listener_cog")

COMMAND_ERROR_MESSAGE = "There was an error executing this command."


class EventsListenerCog(commands.Cog):
    def __init__(self, discord_bot_instance, engine: LLMEngine | None = None):
        """
        Parameters
        ----------
        discord_bot_instance:
            Bot the cog is registered on.
        engine:
            Shared LLM engine; only its availability is read.
        """
        self.bot = discord_bot_instance
        self.engine = engine
        logger.info("Events listener cog loaded")

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self):
        if not self.bot.user:
            logger.warning("Ready event received before the bot user was known.")
            return

        await self._update_presence()
        guilds = getattr(self.bot, "guilds", None) or []
        logger.info(f"Logged in as {self.bot.user} (ID: {self.bot.user.id}), watching {len(guilds)} guild(s)")

    async def _update_presence(self) -> None:
        ai_online = self.engine is not None and self.engine.available
        await self.bot.change_presence(
            status=discord.Status.online if ai_online else discord.Status.idle,
            activity=discord.Activity(
                type=discord.ActivityType.watching,
                name="over the server" if ai_online else "over the server (AI checks offline)",
            ),
        )

    @commands.Cog.listener(name="on_application_command_error")
    async def on_application_command_error(self, application_context: discord.ApplicationContext, error: Exception):
        """Log any unhandled command error and tell the invoker something went wrong."""
        if isinstance(error, commands.CommandNotFound):
            return

        command_name = getattr(application_context.command, "name", "<unknown>")
        logger.error(f"Unhandled error in /{command_name}: {error}", exc_info=error)

        try:
            try:
                await application_context.respond(COMMAND_ERROR_MESSAGE, ephemeral=True)
            except discord.InteractionResponded:
                await application_context.followup.send(COMMAND_ERROR_MESSAGE, ephemeral=True)
        except Exception as exc:
            logger.error(f"Could not report the command error to the user: {exc}")


def setup(discord_bot_instance, engine: LLMEngine | None = None):
    discord_bot_instance.add_cog(EventsListenerCog(discord_bot_instance, engine))
