"""Typed views over the moderation sections of ``app_config.yml``.

Each section is parsed into a frozen dataclass with the defaults used when a
key is missing. Parsing never raises: values of the wrong type fall back to
the default and a warning is logged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Tuple

from modguard.util.logger import get_logger

logger = get_logger("moderation_settings")

DEFAULT_TIMEOUT_DURATIONS_MINUTES: Tuple[int, ...] = (2, 5, 10, 30)


def get_section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, dict):
        logger.warning("[SETTINGS] Section '%s' is not a mapping; using defaults", key)
        return {}
    return value


def _coerce(value: Any, kind: type, default: Any, name: str) -> Any:
    if value is None:
        return default
    try:
        return kind(value)
    except (TypeError, ValueError):
        logger.warning("[SETTINGS] Invalid value %r for '%s'; using default %r", value, name, default)
        return default


def parse_id_set(values: Iterable[Any] | None) -> FrozenSet[int]:
    """Convert a list of snowflakes (ints or numeric strings) into a frozenset of ints."""
    ids = set()
    for raw in values or []:
        try:
            ids.add(int(raw))
        except (TypeError, ValueError):
            logger.warning("[SETTINGS] Skipping invalid channel id: %r", raw)
    return frozenset(ids)


@dataclass(frozen=True)
class SpamSettings:
    threshold: int = 5
    time_window_seconds: float = 10.0
    similarity_threshold: float = 0.5
    history_capacity: int = 10
    exempt_channels: FrozenSet[int] = field(default_factory=frozenset)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SpamSettings":
        threshold = max(1, _coerce(data.get("threshold"), int, cls.threshold, "spam.threshold"))
        capacity = _coerce(data.get("history_capacity"), int, max(cls.history_capacity, threshold), "spam.history_capacity")
        return cls(
            threshold=threshold,
            time_window_seconds=_coerce(data.get("time_window_seconds"), float, cls.time_window_seconds, "spam.time_window_seconds"),
            similarity_threshold=_coerce(data.get("similarity_threshold"), float, cls.similarity_threshold, "spam.similarity_threshold"),
            # A window smaller than the threshold could never trigger.
            history_capacity=max(capacity, threshold),
            exempt_channels=parse_id_set(data.get("exempt_channels")),
        )


@dataclass(frozen=True)
class KeywordFilterSettings:
    banned_terms: Tuple[str, ...] = ()
    exempt_channels: FrozenSet[int] = field(default_factory=frozenset)
    warning_delete_after: float = 5.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KeywordFilterSettings":
        terms = data.get("banned_terms") or []
        if not isinstance(terms, list):
            logger.warning("[SETTINGS] keyword_filter.banned_terms must be a list")
            terms = []
        return cls(
            banned_terms=tuple(str(term) for term in terms if str(term).strip()),
            exempt_channels=parse_id_set(data.get("exempt_channels")),
            warning_delete_after=_coerce(data.get("warning_delete_after"), float, cls.warning_delete_after, "keyword_filter.warning_delete_after"),
        )


@dataclass(frozen=True)
class EscalationSettings:
    warn_threshold: int = 3
    ban_threshold: int = 5
    timeout_durations_minutes: Tuple[int, ...] = DEFAULT_TIMEOUT_DURATIONS_MINUTES
    reset_warnings_on_punishment: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EscalationSettings":
        durations = data.get("timeout_durations_minutes")
        if isinstance(durations, (int, float)):
            durations = [durations]
        try:
            parsed = tuple(int(d) for d in durations) if durations else DEFAULT_TIMEOUT_DURATIONS_MINUTES
        except (TypeError, ValueError):
            logger.warning("[SETTINGS] Invalid escalation.timeout_durations_minutes %r; using defaults", durations)
            parsed = DEFAULT_TIMEOUT_DURATIONS_MINUTES
        return cls(
            warn_threshold=max(1, _coerce(data.get("warn_threshold"), int, cls.warn_threshold, "escalation.warn_threshold")),
            ban_threshold=max(1, _coerce(data.get("ban_threshold"), int, cls.ban_threshold, "escalation.ban_threshold")),
            timeout_durations_minutes=parsed or DEFAULT_TIMEOUT_DURATIONS_MINUTES,
            reset_warnings_on_punishment=bool(data.get("reset_warnings_on_punishment", cls.reset_warnings_on_punishment)),
        )


@dataclass(frozen=True)
class AIModerationSettings:
    enabled: bool = False
    mode: str = "enforce"
    exempt_channels: FrozenSet[int] = field(default_factory=frozenset)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AIModerationSettings":
        mode = str(data.get("mode", cls.mode)).strip().lower()
        if mode not in ("enforce", "alert"):
            logger.warning("[SETTINGS] Unknown ai_moderation.mode %r; using 'enforce'", mode)
            mode = "enforce"
        return cls(
            enabled=bool(data.get("enabled", cls.enabled)),
            mode=mode,
            exempt_channels=parse_id_set(data.get("exempt_channels")),
        )

    @property
    def alert_only(self) -> bool:
        return self.mode == "alert"


@dataclass(frozen=True)
class BehaviourSettings:
    enabled: bool = False
    history_size: int = 4

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BehaviourSettings":
        return cls(
            enabled=bool(data.get("enabled", cls.enabled)),
            history_size=max(2, _coerce(data.get("history_size"), int, cls.history_size, "behaviour_detection.history_size")),
        )


__all__ = [
    "SpamSettings",
    "KeywordFilterSettings",
    "EscalationSettings",
    "AIModerationSettings",
    "BehaviourSettings",
    "parse_id_set",
    "get_section",
]
