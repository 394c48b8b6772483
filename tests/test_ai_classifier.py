from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from modguard.ai import prompts
from modguard.ai.ai_classifier import AIClassifier, BehaviourClassifier
from modguard.ai.llm_engine import LLMEngine
from modguard.configuration.ai_settings import AISettings
from modguard.datatypes.moderation_datatypes import Severity, Verdict


class FakeEngine:
    def __init__(self, reply=None, available=True):
        self.available = available
        self.complete = AsyncMock(return_value=reply)


def fake_openai_client(reply: str | None = None, error: Exception | None = None):
    response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=reply))])
    create = AsyncMock(side_effect=error) if error else AsyncMock(return_value=response)
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)), close=AsyncMock())


# --------------------------
# LLM engine
# --------------------------
def test_engine_unavailable_when_disabled():
    engine = LLMEngine(AISettings({"enabled": False}))

    assert not engine.available


def test_engine_unavailable_without_api_key(monkeypatch):
    monkeypatch.delenv("MODGUARD_TEST_KEY", raising=False)

    engine = LLMEngine(AISettings({"enabled": True, "api_key_env": "MODGUARD_TEST_KEY"}))

    assert not engine.available


@pytest.mark.asyncio
async def test_engine_complete_sends_system_and_user_messages():
    client = fake_openai_client("  SAFE \n")
    engine = LLMEngine(AISettings({"model_name": "test-model", "temperature": 0.2}), client=client)

    reply = await engine.complete("is this ok?", system_prompt="be strict")

    assert reply == "SAFE"
    kwargs = client.chat.completions.create.await_args.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["temperature"] == pytest.approx(0.2)
    assert kwargs["messages"] == [
        {"role": "system", "content": "be strict"},
        {"role": "user", "content": "is this ok?"},
    ]


@pytest.mark.asyncio
async def test_engine_complete_returns_none_on_error():
    engine = LLMEngine(AISettings({}), client=fake_openai_client(error=RuntimeError("rate limited")))

    assert await engine.complete("prompt") is None


@pytest.mark.asyncio
async def test_engine_close_closes_client():
    client = fake_openai_client("SAFE")
    engine = LLMEngine(AISettings({}), client=client)

    await engine.close()

    client.close.assert_awaited_once()


# --------------------------
# Prompts
# --------------------------
def test_violation_prompt_includes_rules_and_reply_context():
    prompt = prompts.build_violation_prompt("you too", ["Be kind", "No spam"], context_message="you are dumb")

    assert "- Be kind\n- No spam" in prompt
    assert 'Message: "you too"' in prompt
    assert 'replies to): "you are dumb"' in prompt


def test_violation_prompt_without_context():
    prompt = prompts.build_violation_prompt("hello", [])

    assert "Context" not in prompt
    assert "- Be respectful." in prompt


def test_behaviour_prompt_numbers_messages():
    prompt = prompts.build_behaviour_prompt(["a", "b"])

    assert '1: "a"\n2: "b"' in prompt


# --------------------------
# Classifiers
# --------------------------
@pytest.mark.asyncio
async def test_ai_classifier_parses_violation():
    engine = FakeEngine("VIOLATION: SEVERE hateful joke")
    classifier = AIClassifier(engine, ["No hate"])

    result = await classifier.classify("some joke", context_message="earlier")

    assert result.verdict is Verdict.VIOLATION
    assert result.severity is Severity.SEVERE
    assert result.reason == "hateful joke"
    prompt = engine.complete.await_args.args[0]
    assert "some joke" in prompt and "earlier" in prompt


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", [None, "gibberish"])
async def test_ai_classifier_fails_open(reply):
    result = await AIClassifier(FakeEngine(reply), []).classify("hi")

    assert result.is_safe


@pytest.mark.asyncio
async def test_ai_classifier_skips_request_when_unavailable():
    engine = FakeEngine("VIOLATION: SEVERE x", available=False)

    result = await AIClassifier(engine, []).classify("hi")

    assert result.is_safe
    engine.complete.assert_not_awaited()


@pytest.mark.asyncio
async def test_behaviour_classifier_detects_bot_spam():
    engine = FakeEngine("BOT_SPAM")

    result = await BehaviourClassifier(engine).classify(["a", "a", "a", "a"])

    assert result.verdict is Verdict.BOT


@pytest.mark.asyncio
async def test_behaviour_classifier_empty_sequence_is_safe():
    engine = FakeEngine("BOT_SPAM")

    assert (await BehaviourClassifier(engine).classify([])).is_safe
    engine.complete.assert_not_awaited()
