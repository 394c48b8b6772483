from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict, List
import yaml

from modguard.configuration.ai_settings import AISettings
from modguard.configuration.moderation_settings import (
    AIModerationSettings,
    BehaviourSettings,
    EscalationSettings,
    KeywordFilterSettings,
    SpamSettings,
    get_section,
)
from modguard.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches the contents of ``./config/app_config.yml`` and exposes
    typed properties for every section the bot reads. Uses fcntl file locks
    for safe concurrent access across processes.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
            return {}
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.error("[APP CONFIGURATION] Config %s is not a mapping; ignoring it.", self.config_path)
            return {}
        return data

    @staticmethod
    def _optional_id(value: Any) -> int | None:
        if value in (None, ""):
            return None
        try:
            snowflake = int(value)
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Invalid snowflake %r", value)
            return None
        return snowflake or None

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping (do not mutate)."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def staff_role_id(self) -> int | None:
        """Role allowed to bypass moderation and use the staff commands."""
        return self._optional_id(self._data.get("staff_role_id"))

    @property
    def staff_channel_id(self) -> int | None:
        """Channel receiving incident summaries and review requests."""
        return self._optional_id(self._data.get("staff_channel_id"))

    @property
    def rules(self) -> List[str]:
        """Return the configured server rules as a list of strings."""
        value = self._data.get("rules") or []
        if isinstance(value, str):
            return [value]
        if not isinstance(value, list):
            return []
        return [str(rule) for rule in value if str(rule).strip()]

    @property
    def data_dir(self) -> Path:
        """Directory holding the JSON documents (cases, violations, history)."""
        return Path(str(self._data.get("data_dir") or "./data")).resolve()

    @property
    def ai_settings(self) -> AISettings:
        return AISettings(get_section(self._data, "ai_settings"))

    @property
    def spam(self) -> SpamSettings:
        return SpamSettings.from_dict(get_section(self._data, "spam"))

    @property
    def keyword_filter(self) -> KeywordFilterSettings:
        return KeywordFilterSettings.from_dict(get_section(self._data, "keyword_filter"))

    @property
    def escalation(self) -> EscalationSettings:
        return EscalationSettings.from_dict(get_section(self._data, "escalation"))

    @property
    def ai_moderation(self) -> AIModerationSettings:
        return AIModerationSettings.from_dict(get_section(self._data, "ai_moderation"))

    @property
    def behaviour_detection(self) -> BehaviourSettings:
        return BehaviourSettings.from_dict(get_section(self._data, "behaviour_detection"))


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
