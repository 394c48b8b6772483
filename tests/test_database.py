import json
from pathlib import Path

import pytest

from modguard.database.case_log import CaseLog, CaseRemovalError, parse_case
from modguard.database.message_history import (
    BEHAVIOUR_SCOPE,
    IDLE_WINDOW_MS,
    SPAM_SCOPE,
    MessageHistoryStore,
    trim_window,
)
from modguard.database.violation_store import ViolationStore
from modguard.datatypes.moderation_datatypes import (
    Case,
    CaseType,
    DecisionMethod,
    MessageHistoryEntry,
    ViolationRecord,
)


def make_case(user_id="1", case_type=CaseType.SPAM, action="Timeout (2 mins)", ai_reason=None):
    return Case(
        type=case_type,
        user_id=user_id,
        username=f"user{user_id}",
        channel_id="100",
        channel_name="general",
        message_content="hello",
        action_taken=action,
        decision_method=DecisionMethod.AI if ai_reason else DecisionMethod.AUTO,
        ai_reason=ai_reason,
        timestamp="2024-05-01T12:00:00Z",
    )


# --------------------------
# Case log
# --------------------------
@pytest.mark.asyncio
async def test_case_log_append_returns_positional_index(tmp_path: Path):
    log = CaseLog.at(tmp_path / "cases.json")

    assert await log.append(make_case("1")) == 0
    assert await log.append(make_case("2")) == 1

    raw = json.loads((tmp_path / "cases.json").read_text(encoding="utf-8"))
    assert raw[0]["userId"] == "1"
    assert raw[0]["actionTaken"] == "Timeout (2 mins)"
    assert "aiReason" not in raw[0]


@pytest.mark.asyncio
async def test_case_log_groups_user_cases_by_type(tmp_path: Path):
    log = CaseLog.at(tmp_path / "cases.json")
    await log.append(make_case("1", CaseType.SPAM))
    await log.append(make_case("2", CaseType.SLUR))
    await log.append(make_case("1", CaseType.SLUR, action="Warning"))
    await log.append(make_case("1", CaseType.SPAM))

    grouped = await log.grouped_cases_for_user(1)

    assert list(grouped) == [CaseType.SPAM, CaseType.SLUR]
    assert [entry.index for entry in grouped[CaseType.SPAM]] == [0, 3]
    assert [entry.index for entry in grouped[CaseType.SLUR]] == [2]


@pytest.mark.asyncio
async def test_case_log_skips_malformed_entries_but_keeps_indices(tmp_path: Path):
    path = tmp_path / "cases.json"
    good = make_case("1").to_dict()
    path.write_text(json.dumps([{"type": "unknown"}, good, "garbage"]), encoding="utf-8")
    log = CaseLog.at(path)

    cases = await log.all_cases()

    assert [entry.index for entry in cases] == [1]


@pytest.mark.asyncio
async def test_case_log_remove_checks_owner(tmp_path: Path):
    log = CaseLog.at(tmp_path / "cases.json")
    await log.append(make_case("1"))
    await log.append(make_case("2"))

    with pytest.raises(CaseRemovalError):
        await log.remove(1, "1")
    with pytest.raises(CaseRemovalError):
        await log.remove(5, "1")
    with pytest.raises(CaseRemovalError):
        await log.remove(-1, "1")
    assert len(await log.all_cases()) == 2

    removed = await log.remove(1, 2)

    assert removed.user_id == "2"
    assert [entry.case.user_id for entry in await log.all_cases()] == ["1"]


def test_parse_case_round_trips_ai_reason():
    case = make_case("9", CaseType.VIOLATION, ai_reason="insult")

    parsed = parse_case(case.to_dict())

    assert parsed == case
    assert parsed.timestamp_datetime.year == 2024


# --------------------------
# Violation store
# --------------------------
@pytest.mark.asyncio
async def test_violation_store_defaults_and_update(tmp_path: Path):
    store = ViolationStore.at(tmp_path / "violations.json")

    assert await store.get(1) == ViolationRecord()

    result = await store.update(1, lambda record: (record.evolve(warnings=record.warnings + 1), "done"))

    assert result == "done"
    assert (await store.get("1")).warnings == 1
    raw = json.loads((tmp_path / "violations.json").read_text(encoding="utf-8"))
    assert raw == {"1": {"warnings": 1, "strictViolations": 0, "lastViolationTimestamp": 0}}


@pytest.mark.asyncio
async def test_violation_store_reads_legacy_integer_counts(tmp_path: Path):
    path = tmp_path / "violations.json"
    path.write_text(json.dumps({"1": 3, "2": -4, "3": "junk"}), encoding="utf-8")
    store = ViolationStore.at(path)

    assert (await store.get(1)).strict_violations == 3
    assert (await store.get(2)).strict_violations == 0
    assert await store.get(3) == ViolationRecord()


@pytest.mark.asyncio
async def test_violation_store_reset_keeps_timestamp(tmp_path: Path):
    store = ViolationStore.at(tmp_path / "violations.json")
    await store.update(1, lambda r: (ViolationRecord(2, 3, 1234), None))

    await store.reset(1)

    assert await store.get(1) == ViolationRecord(0, 0, 1234)


# --------------------------
# Message history
# --------------------------
def test_trim_window_drops_old_entries_then_caps_size():
    entries = [MessageHistoryEntry(timestamp=t, content=str(t)) for t in (0, 5_000, 9_000, 9_500, 9_900)]

    trimmed = trim_window(entries, capacity=2, now_ms=10_000, max_age_ms=6_000)

    assert [entry.timestamp for entry in trimmed] == [9_500, 9_900]


@pytest.mark.asyncio
async def test_message_history_window_never_exceeds_capacity(tmp_path: Path):
    history = MessageHistoryStore.at(tmp_path / "history.json")

    for index in range(6):
        window = await history.append(BEHAVIOUR_SCOPE, 1, f"msg {index}", capacity=4, timestamp_ms=index)
        assert len(window) <= 4

    assert [entry.content for entry in await history.window(BEHAVIOUR_SCOPE, 1)] == [
        "msg 2",
        "msg 3",
        "msg 4",
        "msg 5",
    ]


@pytest.mark.asyncio
async def test_message_history_scopes_are_independent(tmp_path: Path):
    history = MessageHistoryStore.at(tmp_path / "history.json")
    await history.append(SPAM_SCOPE, 1, "a", capacity=5)
    await history.append(BEHAVIOUR_SCOPE, 1, "b", capacity=5)

    await history.clear(SPAM_SCOPE, 1)

    assert await history.window(SPAM_SCOPE, 1) == []
    assert [entry.content for entry in await history.window(BEHAVIOUR_SCOPE, 1)] == ["b"]


@pytest.mark.asyncio
async def test_message_history_reads_legacy_string_entries(tmp_path: Path):
    path = tmp_path / "history.json"
    path.write_text(json.dumps({"behaviour": {"1": ["old one", 42, {"timestamp": 5, "content": "new"}]}}), encoding="utf-8")
    history = MessageHistoryStore.at(path)

    window = await history.window(BEHAVIOUR_SCOPE, 1)

    assert [entry.content for entry in window] == ["old one", "new"]


@pytest.mark.asyncio
async def test_append_drops_expired_windows_of_other_users(tmp_path: Path):
    path = tmp_path / "history.json"
    history = MessageHistoryStore.at(path)
    await history.append(SPAM_SCOPE, 1, "old", capacity=5, max_age_ms=10_000, timestamp_ms=0)
    await history.append(SPAM_SCOPE, 2, "recent", capacity=5, max_age_ms=10_000, timestamp_ms=15_000)

    await history.append(SPAM_SCOPE, 3, "new", capacity=5, max_age_ms=10_000, timestamp_ms=20_000)

    stored = json.loads(path.read_text(encoding="utf-8"))
    assert sorted(stored[SPAM_SCOPE]) == ["2", "3"]


@pytest.mark.asyncio
async def test_append_drops_idle_and_empty_windows_without_age_limit(tmp_path: Path):
    path = tmp_path / "history.json"
    path.write_text(json.dumps({"behaviour": {"9": [], "8": ["junk"]}}), encoding="utf-8")
    history = MessageHistoryStore.at(path)
    await history.append(BEHAVIOUR_SCOPE, 1, "idle", capacity=5, timestamp_ms=IDLE_WINDOW_MS)
    await history.append(BEHAVIOUR_SCOPE, 2, "active", capacity=5, timestamp_ms=2 * IDLE_WINDOW_MS - 1)

    await history.append(BEHAVIOUR_SCOPE, 3, "new", capacity=5, timestamp_ms=2 * IDLE_WINDOW_MS)

    assert await history.window(BEHAVIOUR_SCOPE, 1) == []
    assert [entry.content for entry in await history.window(BEHAVIOUR_SCOPE, 2)] == ["active"]
    stored = json.loads(path.read_text(encoding="utf-8"))
    assert sorted(stored[BEHAVIOUR_SCOPE]) == ["2", "3"]
