"""Message listener Cog for Modguard.

This cog receives every guild message and hands it to the moderation
service. Staff, bots and DMs are filtered out before any check runs.
"""

import discord
from discord.ext import commands

from modguard.moderation.moderation_service import ModerationService
from modguard.util.logger import get_logger

logger = get_logger("message_listener_cog")


class MessageListenerCog(commands.Cog):
    """Cog responsible for routing new messages into moderation."""

    def __init__(self, discord_bot_instance, moderation_service: ModerationService):
        """
        Initialize the message listener cog.

        Parameters
        ----------
        discord_bot_instance:
            The Discord bot instance to attach this cog to.
        moderation_service:
            The pipeline that checks each message and acts on violations.
        """
        self.bot = discord_bot_instance
        self.moderation_service = moderation_service
        logger.info("Message listener cog loaded")

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message) -> None:
        """Run moderation for a newly created message.

        Errors are logged and swallowed so a single bad message never stops
        the listener.
        """
        if not self.moderation_service.should_moderate(message):
            return

        try:
            result = await self.moderation_service.handle_message(message)
        except Exception as exc:
            logger.error(f"Error moderating message {message.id} from {message.author}: {exc}", exc_info=True)
            return

        if result is not None:
            logger.debug(
                f"Handled message {message.id}: action={result.action}, "
                f"deleted={result.message_deleted}, case={result.case_index}"
            )


def setup(discord_bot_instance, moderation_service: ModerationService):
    """Register the MessageListenerCog with the bot."""
    discord_bot_instance.add_cog(MessageListenerCog(discord_bot_instance, moderation_service))
