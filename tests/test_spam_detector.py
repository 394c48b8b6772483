from pathlib import Path

import pytest

from modguard.configuration.moderation_settings import SpamSettings
from modguard.database.message_history import SPAM_SCOPE, MessageHistoryStore
from modguard.datatypes.moderation_datatypes import MessageHistoryEntry, Severity, Verdict
from modguard.moderation.spam_detector import SpamDetector, is_repetitive


def entries(*contents):
    return [MessageHistoryEntry(timestamp=index, content=content) for index, content in enumerate(contents)]


def test_is_repetitive_requires_threshold_messages():
    assert not is_repetitive(entries("a", "a", "a", "a"), threshold=5, similarity_threshold=0.5)
    assert is_repetitive(entries("a", "a", "a", "a", "a"), threshold=5, similarity_threshold=0.5)


def test_varied_rapid_messages_are_not_spam():
    window = entries("hi", "how are you", "what's up", "lol", "nice")

    assert not is_repetitive(window, threshold=5, similarity_threshold=0.5)


@pytest.fixture
def detector(tmp_path: Path):
    history = MessageHistoryStore.at(tmp_path / "history.json")
    return SpamDetector(history, SpamSettings(threshold=5, time_window_seconds=10, similarity_threshold=0.5))


@pytest.mark.asyncio
async def test_fifth_identical_message_within_window_is_spam(detector):
    results = [await detector.check(1, "buy now", timestamp_ms=1_000 + index * 500) for index in range(5)]

    assert all(result.classification.is_safe for result in results[:4])
    flagged = results[4].classification
    assert flagged.verdict is Verdict.SPAM
    assert flagged.severity is Severity.SEVERE
    assert results[4].message_count == 5
    assert "5 messages in 10s" == flagged.reason


@pytest.mark.asyncio
async def test_messages_outside_window_do_not_count(detector):
    for index in range(4):
        await detector.check(1, "buy now", timestamp_ms=index * 1_000)

    # 20 seconds later the earlier burst has aged out.
    result = await detector.check(1, "buy now", timestamp_ms=24_000)

    assert result.classification.is_safe
    assert result.message_count == 1


@pytest.mark.asyncio
async def test_users_are_tracked_separately(detector):
    for index in range(4):
        await detector.check(1, "same", timestamp_ms=index)
    result = await detector.check(2, "same", timestamp_ms=5)

    assert result.classification.is_safe


@pytest.mark.asyncio
async def test_reset_clears_the_window(detector):
    for index in range(3):
        await detector.check(1, "x", timestamp_ms=index)

    await detector.reset(1)

    assert await detector.history.window(SPAM_SCOPE, 1) == []
