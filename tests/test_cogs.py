from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from conftest import STAFF_ROLE_ID, FakeMessage
from modguard.bot.cogs import cases_cmds, message_listener
from modguard.database.case_log import CaseLog, IndexedCase
from modguard.database.violation_store import ViolationStore
from modguard.datatypes.moderation_datatypes import Case, CaseType, DecisionMethod, ViolationRecord


class FakeUser:
    def __init__(self, user_id: int, name: str):
        self.id = user_id
        self.name = name
        self.mention = f"<@{user_id}>"

    def __str__(self) -> str:
        return self.name


class FakeInteractionResponded(Exception):
    pass


def make_ctx(*, staff: bool = True):
    roles = [SimpleNamespace(id=STAFF_ROLE_ID)] if staff else []
    return SimpleNamespace(
        author=SimpleNamespace(id=1, roles=roles),
        respond=AsyncMock(),
        followup=SimpleNamespace(send=AsyncMock()),
    )


def make_case(user_id: str, case_type: CaseType, action: str, ai_reason: str | None = None) -> Case:
    return Case(
        type=case_type,
        user_id=user_id,
        username="target",
        channel_id="100",
        channel_name="general",
        message_content="content",
        action_taken=action,
        decision_method=DecisionMethod.AI if ai_reason else DecisionMethod.AUTO,
        ai_reason=ai_reason,
        timestamp="2024-05-01T12:30:00Z",
    )


@pytest.fixture
def case_log(tmp_path: Path):
    return CaseLog.at(tmp_path / "cases.json")


@pytest.fixture
def violations(tmp_path: Path):
    return ViolationStore.at(tmp_path / "violations.json")


@pytest.fixture
def cog(case_log, violations):
    return cases_cmds.CasesCog(SimpleNamespace(), case_log, violations, STAFF_ROLE_ID)


# --------------------------
# Setup
# --------------------------
def test_setup_registers_cogs(case_log, violations):
    captured = []
    fake_bot = SimpleNamespace(add_cog=captured.append)

    cases_cmds.setup(fake_bot, case_log, violations, STAFF_ROLE_ID)
    message_listener.setup(fake_bot, SimpleNamespace())

    assert isinstance(captured[0], cases_cmds.CasesCog)
    assert isinstance(captured[1], message_listener.MessageListenerCog)


# --------------------------
# /cases view
# --------------------------
@pytest.mark.asyncio
async def test_view_requires_staff_role(cog):
    ctx = make_ctx(staff=False)

    await cases_cmds.CasesCog.view.callback(cog, ctx, FakeUser(5, "target"))

    ctx.respond.assert_awaited_once_with("You do not have permission to use this command.", ephemeral=True)


@pytest.mark.asyncio
async def test_view_without_cases(cog):
    ctx = make_ctx()

    await cases_cmds.CasesCog.view.callback(cog, ctx, FakeUser(5, "target"))

    ctx.respond.assert_awaited_once_with("No cases found for user target", ephemeral=True)


@pytest.mark.asyncio
async def test_view_groups_cases_by_type(cog, case_log):
    await case_log.append(make_case("5", CaseType.SLUR, "Warning"))
    await case_log.append(make_case("6", CaseType.SPAM, "Timeout (2 mins)"))
    await case_log.append(make_case("5", CaseType.VIOLATION, "Timeout (5 mins)", ai_reason="insult"))
    await case_log.append(make_case("5", CaseType.SLUR, "Warning"))
    ctx = make_ctx()

    await cases_cmds.CasesCog.view.callback(cog, ctx, FakeUser(5, "target"))

    embed = ctx.respond.await_args.kwargs["embed"]
    fields = {field.name: field.value for field in embed.fields}
    assert list(fields) == ["Slur Violations (2)", "Violation Violations (1)"]
    assert fields["Slur Violations (2)"].splitlines() == [
        "• #0 2024-05-01 12:30 UTC: Warning",
        "• #3 2024-05-01 12:30 UTC: Warning",
    ]
    assert "  Reason: insult" in fields["Violation Violations (1)"]


def test_embed_fields_are_truncated():
    entries = [
        IndexedCase(index, make_case("5", CaseType.SPAM, "Timeout (30 mins) " + "x" * 50))
        for index in range(100)
    ]

    embed = cases_cmds.build_cases_embed(FakeUser(5, "target"), {CaseType.SPAM: entries})

    assert embed.fields[0].name == "Spam Violations (100)"
    assert len(embed.fields[0].value) <= 1024


@pytest.mark.asyncio
async def test_view_reports_generic_error(cog, monkeypatch):
    monkeypatch.setattr(cog.case_log, "grouped_cases_for_user", AsyncMock(side_effect=RuntimeError("disk")))
    ctx = make_ctx()

    await cases_cmds.CasesCog.view.callback(cog, ctx, FakeUser(5, "target"))

    ctx.respond.assert_awaited_once_with("There was an error executing this command.", ephemeral=True)


# --------------------------
# /cases remove
# --------------------------
@pytest.mark.asyncio
async def test_remove_requires_staff_role(cog, case_log):
    await case_log.append(make_case("5", CaseType.SPAM, "Kick"))
    ctx = make_ctx(staff=False)

    await cases_cmds.CasesCog.remove.callback(cog, ctx, FakeUser(5, "target"), 0)

    ctx.respond.assert_awaited_once_with("You do not have permission to use this command.", ephemeral=True)
    assert len(await case_log.all_cases()) == 1


@pytest.mark.asyncio
async def test_remove_rejects_other_users_case(cog, case_log):
    await case_log.append(make_case("6", CaseType.SPAM, "Kick"))
    ctx = make_ctx()

    await cases_cmds.CasesCog.remove.callback(cog, ctx, FakeUser(5, "target"), 0)

    assert "does not belong" in ctx.respond.await_args.args[0]
    assert len(await case_log.all_cases()) == 1


@pytest.mark.asyncio
async def test_remove_rejects_out_of_range(cog, case_log):
    ctx = make_ctx()

    await cases_cmds.CasesCog.remove.callback(cog, ctx, FakeUser(5, "target"), 3)

    assert "does not exist" in ctx.respond.await_args.args[0]


@pytest.mark.asyncio
async def test_remove_deletes_and_confirms(cog, case_log):
    await case_log.append(make_case("5", CaseType.SPAM, "Kick"))
    await case_log.append(make_case("5", CaseType.SLUR, "Warning"))
    ctx = make_ctx()

    await cases_cmds.CasesCog.remove.callback(cog, ctx, FakeUser(5, "target"), 0)

    assert ctx.respond.await_args.args[0].startswith("✅ Removed case #0")
    remaining = await case_log.all_cases()
    assert [(entry.index, entry.case.type) for entry in remaining] == [(0, CaseType.SLUR)]


@pytest.mark.asyncio
async def test_respond_falls_back_to_followup(cog, monkeypatch):
    monkeypatch.setattr(cases_cmds.discord, "InteractionResponded", FakeInteractionResponded)
    ctx = make_ctx(staff=False)
    ctx.respond = AsyncMock(side_effect=FakeInteractionResponded())

    await cases_cmds.CasesCog.view.callback(cog, ctx, FakeUser(5, "target"))

    ctx.followup.send.assert_awaited_once_with("You do not have permission to use this command.", ephemeral=True)


@pytest.mark.asyncio
async def test_reset_requires_staff_role(cog, violations):
    await violations.update(5, lambda record: (ViolationRecord(2, 3, 1234), None))
    ctx = make_ctx(staff=False)

    await cases_cmds.CasesCog.reset.callback(cog, ctx, FakeUser(5, "target"))

    ctx.respond.assert_awaited_once_with("You do not have permission to use this command.", ephemeral=True)
    assert await violations.get(5) == ViolationRecord(2, 3, 1234)


@pytest.mark.asyncio
async def test_reset_zeroes_counters_and_confirms(cog, violations):
    await violations.update(5, lambda record: (ViolationRecord(2, 3, 1234), None))
    ctx = make_ctx()

    await cases_cmds.CasesCog.reset.callback(cog, ctx, FakeUser(5, "target"))

    assert ctx.respond.await_args.args[0].startswith("✅ Reset")
    assert await violations.get(5) == ViolationRecord(0, 0, 1234)


@pytest.mark.asyncio
async def test_reset_reports_generic_error(cog, monkeypatch):
    monkeypatch.setattr(cog.violations, "reset", AsyncMock(side_effect=RuntimeError("disk")))
    ctx = make_ctx()

    await cases_cmds.CasesCog.reset.callback(cog, ctx, FakeUser(5, "target"))

    ctx.respond.assert_awaited_once_with("There was an error executing this command.", ephemeral=True)


# --------------------------
# Message listener
# --------------------------
@pytest.mark.asyncio
async def test_listener_delegates_to_service():
    service = SimpleNamespace(should_moderate=lambda message: True, handle_message=AsyncMock(return_value=None))
    cog = message_listener.MessageListenerCog(SimpleNamespace(), service)
    message = FakeMessage("hello")

    await cog.on_message(message)

    service.handle_message.assert_awaited_once_with(message)


@pytest.mark.asyncio
async def test_listener_skips_filtered_messages():
    service = SimpleNamespace(should_moderate=lambda message: False, handle_message=AsyncMock())
    cog = message_listener.MessageListenerCog(SimpleNamespace(), service)

    await cog.on_message(FakeMessage("hello"))

    service.handle_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_listener_swallows_service_errors():
    service = SimpleNamespace(should_moderate=lambda message: True, handle_message=AsyncMock(side_effect=RuntimeError("x")))
    cog = message_listener.MessageListenerCog(SimpleNamespace(), service)

    await cog.on_message(FakeMessage("hello"))

    service.handle_message.assert_awaited_once()
