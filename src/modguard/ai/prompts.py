"""Prompt templates for the AI classifiers."""

from __future__ import annotations

from typing import Sequence

SYSTEM_PROMPT = (
    "You are a strict but fair Discord moderation assistant. "
    "You only ever answer in the exact format you are asked for."
)

VIOLATION_PROMPT = """Analyze the following message and decide whether it violates any of the server rules.

Rules:
{rules}

Message: "{message}"
{context}
Respond with exactly one line in one of these formats:
SAFE
VIOLATION: MINOR <short reason>
VIOLATION: SEVERE <short reason>

Use SEVERE for slurs, threats, sexual content involving minors or non-consent, encouragement of self-harm, \
discrimination and hateful jokes. Use MINOR for other rule breaks such as advertising or sharing personal information."""

BEHAVIOUR_PROMPT = """Analyze the following sequence of messages from a single user. Do they look like automated spam \
or bot-like behaviour (repetitive, templated or nonsensical patterns), or normal human communication \
(even if low quality, off-topic or "brainrot")?

Messages:
{messages}

Respond with exactly one word:
BOT_SPAM
HUMAN_LIKE"""


def format_rules(rules: Sequence[str]) -> str:
    if not rules:
        return "- Be respectful."
    return "\n".join(f"- {rule}" for rule in rules)


def build_violation_prompt(message: str, rules: Sequence[str], context_message: str | None = None) -> str:
    context = f'Context (the message replies to): "{context_message}"\n' if context_message else ""
    return VIOLATION_PROMPT.format(rules=format_rules(rules), message=message, context=context)


def build_behaviour_prompt(messages: Sequence[str]) -> str:
    numbered = "\n".join(f'{index}: "{content}"' for index, content in enumerate(messages, start=1))
    return BEHAVIOUR_PROMPT.format(messages=numbered)
