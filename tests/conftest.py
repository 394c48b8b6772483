"""
Pytest configuration and fixtures for Modguard tests.
"""

import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

import discord  # noqa: E402

STAFF_ROLE_ID = 4242
STAFF_CHANNEL_ID = 777


def make_member(user_id: int = 1, name: str = "member", *, roles=(), bot: bool = False):
    """A ``discord.Member`` stand-in that passes isinstance checks."""
    member = MagicMock(spec=discord.Member)
    member.id = user_id
    member.bot = bot
    member.roles = [SimpleNamespace(id=role_id) for role_id in roles]
    member.mention = f"<@{user_id}>"
    member.timeout = AsyncMock()
    member.kick = AsyncMock()
    member.__str__.return_value = name
    return member


class FakeChannel:
    def __init__(self, channel_id: int = 100, name: str = "general", history_messages=None):
        self.id = channel_id
        self.name = name
        self.send = AsyncMock()
        self.fetch_message = AsyncMock()
        self.history_messages = list(history_messages or [])
        self.history_calls = []

    def history(self, limit=None, after=None):
        self.history_calls.append({"limit": limit, "after": after})
        messages = list(self.history_messages)

        async def _iterate():
            for message in messages:
                yield message

        return _iterate()


class FakeMessage:
    _next_id = 1000

    def __init__(self, content: str, author=None, channel=None, guild=None, reference=None):
        FakeMessage._next_id += 1
        self.id = FakeMessage._next_id
        self.content = content
        self.author = author if author is not None else make_member()
        self.channel = channel if channel is not None else FakeChannel()
        self.guild = guild if guild is not None else SimpleNamespace(id=1)
        self.reference = reference
        self.delete = AsyncMock()


@pytest.fixture
def staff_channel():
    return FakeChannel(channel_id=STAFF_CHANNEL_ID, name="staff")


@pytest.fixture
def fake_bot(staff_channel):
    channels = {STAFF_CHANNEL_ID: staff_channel}
    return SimpleNamespace(get_channel=lambda channel_id: channels.get(channel_id))
