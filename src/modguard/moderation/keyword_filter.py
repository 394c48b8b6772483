"""Deterministic banned-term matching on normalized text."""

from __future__ import annotations

import re
from typing import Iterable

from modguard.datatypes.moderation_datatypes import Classification, DecisionMethod, Severity, Verdict
from modguard.util.logger import get_logger

logger = get_logger("keyword_filter")

LEET_TRANSLATION = str.maketrans({
    "0": "o",
    "1": "i",
    "3": "e",
    "4": "a",
    "5": "s",
    "7": "t",
    "8": "b",
    "$": "s",
    "@": "a",
})

# Everything that is not a letter or digit, underscores included.
_STRIP_PATTERN = re.compile(r"[\W_]+")
REGEX_PREFIX = "re:"


def normalize_text(text: str) -> str:
    """Lowercase, undo leetspeak substitutions and strip punctuation and whitespace.

    Substitution runs before stripping so ``$`` and ``@`` still map to letters.
    The result contains only lowercase letters and unmapped digits, so
    normalizing it again returns it unchanged.
    """
    lowered = text.lower().translate(LEET_TRANSLATION)
    return _STRIP_PATTERN.sub("", lowered)


class KeywordFilter:
    """Matches normalized message text against a banned-term list.

    Plain terms are normalized the same way as messages, so ``a$$`` and
    ``ass`` are the same term. Terms prefixed with ``re:`` are regular
    expressions applied verbatim to the normalized text.
    """

    def __init__(self, banned_terms: Iterable[str]) -> None:
        self.banned_terms = tuple(term for term in banned_terms if term and term.strip())
        self._pattern = self._compile(self.banned_terms)

    @staticmethod
    def _compile(terms: tuple[str, ...]) -> re.Pattern[str] | None:
        fragments = []
        for term in terms:
            if term.startswith(REGEX_PREFIX):
                fragment = term[len(REGEX_PREFIX):].strip()
            else:
                fragment = re.escape(normalize_text(term))
            if not fragment:
                continue
            try:
                re.compile(fragment)
            except re.error as exc:
                logger.warning("[KEYWORD FILTER] Ignoring invalid term %r: %s", term, exc)
                continue
            fragments.append(f"(?:{fragment})")
        if not fragments:
            return None
        return re.compile("|".join(fragments), re.IGNORECASE)

    @property
    def enabled(self) -> bool:
        return self._pattern is not None

    def find_match(self, text: str) -> str | None:
        """Return the matched fragment of the normalized text, if any."""
        if self._pattern is None or not text:
            return None
        match = self._pattern.search(normalize_text(text))
        return match.group(0) if match else None

    def classify(self, text: str) -> Classification:
        matched = self.find_match(text)
        if matched is None:
            return Classification.safe()
        logger.debug("[KEYWORD FILTER] Matched banned term fragment %r", matched)
        return Classification(
            Verdict.SLUR,
            severity=Severity.MINOR,
            reason="Message contains a banned term.",
            decision_method=DecisionMethod.AUTO,
        )
