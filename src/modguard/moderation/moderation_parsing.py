"""Parsing of free-text AI replies into classifications.

The model is asked for a constrained vocabulary, but replies are still free
text. Anything that does not match the expected grammar resolves to SAFE:
the bot takes no action on an answer it cannot read.
"""

from __future__ import annotations

import re

from modguard.datatypes.moderation_datatypes import Classification, DecisionMethod, Severity, Verdict
from modguard.util.logger import get_logger

logger = get_logger("moderation_parsing")

_SAFE_PATTERN = re.compile(r"^SAFE\b", re.IGNORECASE)
_VIOLATION_WITH_SEVERITY = re.compile(
    r"^VIOLATION\s*[:\-\u2013]\s*(MINOR|SEVERE)\b[\s:\-\u2013]*(.*)$",
    re.IGNORECASE,
)
_VIOLATION_WITH_REASON = re.compile(r"^VIOLATION\s*[:\-\u2013]\s*(.+)$", re.IGNORECASE)
_LEGACY_TOKENS = {
    "HEAVY_VIOLATION": Severity.SEVERE,
    "HARMFUL": Severity.MINOR,
}
_DECORATION = " \t\"'`*_."


def _first_line(response: str) -> str:
    for line in response.splitlines():
        cleaned = line.strip().strip(_DECORATION).strip()
        if cleaned:
            return cleaned
    return ""


def parse_violation_response(response: str | None) -> Classification:
    """Parse a reply to the violation prompt.

    Accepted forms (case-insensitive): ``SAFE``, ``VIOLATION: MINOR|SEVERE
    <reason>``, ``Violation - <reason>`` (treated as minor), and the bare
    tokens ``HEAVY_VIOLATION`` / ``HARMFUL``.
    """
    safe = Classification.safe(DecisionMethod.AI)
    if not response:
        return safe

    line = _first_line(response)

    if _SAFE_PATTERN.match(line):
        return safe

    match = _VIOLATION_WITH_SEVERITY.match(line)
    if match:
        severity = Severity(match.group(1).lower())
        return Classification(Verdict.VIOLATION, severity, match.group(2).strip(), DecisionMethod.AI)

    match = _VIOLATION_WITH_REASON.match(line)
    if match:
        return Classification(Verdict.VIOLATION, Severity.MINOR, match.group(1).strip(), DecisionMethod.AI)

    token = line.upper()
    if token in _LEGACY_TOKENS:
        return Classification(Verdict.VIOLATION, _LEGACY_TOKENS[token], "", DecisionMethod.AI)

    logger.warning("[PARSE] Unrecognized violation reply, treating as safe: %r", response[:200])
    return safe


def parse_behaviour_response(response: str | None) -> Classification:
    """Parse a reply to the behaviour prompt (``BOT_SPAM`` or ``HUMAN_LIKE``)."""
    safe = Classification.safe(DecisionMethod.AI)
    if not response:
        return safe

    token = _first_line(response).upper().replace(" ", "_")
    if token.startswith("BOT_SPAM"):
        return Classification(
            Verdict.BOT,
            Severity.SEVERE,
            "Automated spam or bot-like behaviour detected.",
            DecisionMethod.AI,
        )
    if not token.startswith("HUMAN_LIKE"):
        logger.warning("[PARSE] Unrecognized behaviour reply, treating as safe: %r", response[:200])
    return safe
