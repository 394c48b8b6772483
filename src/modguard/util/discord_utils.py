"""
discord_utils.py
================

Low-level Discord utility functions for Modguard.

Stateless helpers for message deletion, permission checks, staff detection,
warning messages and the incident embeds posted to the staff channel.
"""

import datetime
from typing import Mapping, Union

import discord

from modguard.util.logger import get_logger

logger = get_logger("discord_utils")

EMBED_FIELD_LIMIT = 1024

INCIDENT_COLORS = {
    "spam": discord.Color.red(),
    "slur": discord.Color.red(),
    "violation": discord.Color.dark_red(),
    "bot": discord.Color.dark_orange(),
    "review": discord.Color.purple(),
    "alert": discord.Color.orange(),
}


def is_ignored_author(author: Union[discord.User, discord.Member]) -> bool:
    """True for bots and for authors that are not guild members (DMs, webhooks)."""
    return author.bot or not isinstance(author, discord.Member)


def has_staff_role(member: Union[discord.User, discord.Member, None], staff_role_id: int | None) -> bool:
    """
    Check whether a member holds the configured staff role.

    Users without roles (DM users, unknown members) are never staff, and no
    one is staff when no staff role is configured.
    """
    if member is None or staff_role_id is None:
        return False
    roles = getattr(member, "roles", None) or []
    return any(getattr(role, "id", None) == staff_role_id for role in roles)


def format_duration(minutes: int) -> str:
    """
    Convert a duration in minutes to a human-readable string.

    Args:
        minutes (int): Duration in minutes.

    Returns:
        str: Human-readable duration string.
    """
    if minutes < 60:
        return f"{minutes} min{'s' if minutes != 1 else ''}"
    if minutes < 24 * 60:
        hours = minutes // 60
        return f"{hours} hour{'s' if hours != 1 else ''}"
    days = minutes // (24 * 60)
    return f"{days} day{'s' if days != 1 else ''}"


def truncate_field(value: str, limit: int = EMBED_FIELD_LIMIT) -> str:
    """Clip a value to Discord's embed field limit; empty values become a dash."""
    value = value or "-"
    if len(value) <= limit:
        return value
    return value[: limit - 1] + "…"


def message_link(guild_id: int, channel_id: int, message_id: int) -> str:
    return f"https://discord.com/channels/{guild_id}/{channel_id}/{message_id}"


async def safe_delete_message(message: discord.Message) -> bool:
    """
    Delete ``message`` and report whether it is gone because of this call.

    Already-deleted messages return False quietly; permission and HTTP
    errors are logged.
    """
    try:
        await message.delete()
        return True
    except discord.NotFound:
        return False
    except discord.Forbidden:
        logger.warning(f"Missing permission to delete message {message.id}")
    except Exception as exc:
        logger.error(f"Could not delete message {message.id}: {exc}")
    return False


async def delete_recent_messages_by_author(
    channel: discord.abc.Messageable,
    author_id: int,
    window_seconds: float,
    limit: int,
) -> int:
    """
    Delete an author's messages from the last ``window_seconds`` in one channel.

    Args:
        channel: Channel to scan.
        author_id (int): Author whose messages are deleted.
        window_seconds (float): How far back to look.
        limit (int): Maximum number of channel messages to scan (capped at 100).

    Returns:
        int: Number of messages deleted.
    """
    after = discord.utils.utcnow() - datetime.timedelta(seconds=window_seconds)
    deleted = 0
    try:
        async for message in channel.history(limit=min(max(limit, 1), 100), after=after):
            if message.author.id == author_id and await safe_delete_message(message):
                deleted += 1
    except discord.Forbidden:
        logger.warning(f"No permission to read history in {getattr(channel, 'name', channel)}")
    except Exception as exc:
        logger.error(f"Error scanning history in {getattr(channel, 'name', channel)}: {exc}")
    return deleted


async def fetch_reply_context(message: discord.Message) -> str | None:
    """
    Return the content of the message ``message`` replies to, if any.

    Uses the resolved reference when Discord already sent it, otherwise
    fetches it. Failures are logged and yield None.
    """
    reference = getattr(message, "reference", None)
    if reference is None or reference.message_id is None:
        return None

    resolved = getattr(reference, "resolved", None)
    if isinstance(resolved, discord.Message):
        return resolved.content

    try:
        replied_to = await message.channel.fetch_message(reference.message_id)
        return replied_to.content
    except Exception as exc:
        logger.debug(f"Could not fetch replied-to message {reference.message_id}: {exc}")
        return None


async def send_temporary_warning(
    channel: discord.abc.Messageable,
    content: str,
    delete_after: float,
) -> bool:
    """
    Post a warning that deletes itself after ``delete_after`` seconds.

    Returns:
        bool: True if the warning was sent.
    """
    try:
        await channel.send(content, delete_after=delete_after)
        return True
    except discord.Forbidden:
        logger.warning(f"No permission to send warnings in {getattr(channel, 'name', channel)}")
    except Exception as exc:
        logger.error(f"Failed to send warning: {exc}")
    return False


def create_incident_embed(
    title: str,
    kind: str,
    user: Union[discord.User, discord.Member],
    channel_id: int,
    content: str,
    action_taken: str,
    details: Mapping[str, str] | None = None,
    jump_url: str | None = None,
) -> discord.Embed:
    """
    Build the structured incident summary posted to the staff channel.

    Args:
        title (str): Embed title.
        kind (str): Incident kind selecting the colour (spam, slur, violation, bot, review, alert).
        user: The member the incident is about.
        channel_id (int): Channel the message was posted in.
        content (str): The offending content (truncated to the field limit).
        action_taken (str): Summary of the action taken.
        details (Mapping[str, str] | None): Extra fields, added in order.
        jump_url (str | None): Link back to the original message.

    Returns:
        discord.Embed: The constructed embed object.
    """
    embed = discord.Embed(
        title=title,
        color=INCIDENT_COLORS.get(kind, discord.Color.light_grey()),
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )
    embed.add_field(name="User", value=f"{user.mention} (`{user.id}`)", inline=True)
    embed.add_field(name="Channel", value=f"<#{channel_id}>", inline=True)
    embed.add_field(name="Content", value=truncate_field(content), inline=False)
    embed.add_field(name="Action Taken", value=truncate_field(action_taken), inline=False)
    for name, value in (details or {}).items():
        embed.add_field(name=name, value=truncate_field(value), inline=False)
    if jump_url:
        embed.add_field(name="Message Link", value=f"[Click to view message]({jump_url})", inline=False)
    return embed


def resolve_channel(bot: discord.Client, channel_id: int | None) -> discord.abc.Messageable | None:
    if channel_id is None:
        return None
    return bot.get_channel(channel_id)
