"""
AI-delegated classifiers.

Both classifiers fail open: when the engine is unavailable, the request
fails, or the reply cannot be parsed, the result is SAFE.
"""

from __future__ import annotations

from typing import Sequence

from modguard.ai import prompts
from modguard.ai.llm_engine import LLMEngine
from modguard.datatypes.moderation_datatypes import Classification, DecisionMethod
from modguard.moderation.moderation_parsing import parse_behaviour_response, parse_violation_response
from modguard.util.logger import get_logger

logger = get_logger("ai_classifier")


class AIClassifier:
    """Ask the model whether a single message breaks the server rules."""

    def __init__(self, engine: LLMEngine, rules: Sequence[str]) -> None:
        self.engine = engine
        self.rules = list(rules)

    @property
    def available(self) -> bool:
        return self.engine.available

    async def classify(self, content: str, context_message: str | None = None) -> Classification:
        if not self.engine.available or not content.strip():
            return Classification.safe(DecisionMethod.AI)

        prompt = prompts.build_violation_prompt(content, self.rules, context_message)
        reply = await self.engine.complete(prompt, system_prompt=prompts.SYSTEM_PROMPT)
        if reply is None:
            return Classification.safe(DecisionMethod.AI)

        classification = parse_violation_response(reply)
        logger.debug("[AI CLASSIFIER] %r -> %s (%s)", content[:80], classification.verdict, reply[:120])
        return classification


class BehaviourClassifier:
    """Ask the model whether a user's recent messages look automated."""

    def __init__(self, engine: LLMEngine) -> None:
        self.engine = engine

    @property
    def available(self) -> bool:
        return self.engine.available

    async def classify(self, messages: Sequence[str]) -> Classification:
        if not self.engine.available or not messages:
            return Classification.safe(DecisionMethod.AI)

        reply = await self.engine.complete(
            prompts.build_behaviour_prompt(messages),
            system_prompt=prompts.SYSTEM_PROMPT,
        )
        if reply is None:
            return Classification.safe(DecisionMethod.AI)

        classification = parse_behaviour_response(reply)
        logger.debug("[BEHAVIOUR CLASSIFIER] %d messages -> %s", len(messages), classification.verdict)
        return classification
