import os
from typing import Any, Dict

DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_MODEL_NAME = "llama-3.1-8b-instant"


class AISettings:
    """Helper exposing typed accessors for the ``ai_settings`` config section.

    The API key is never read from the YAML file; it is resolved from the
    environment variable named by ``api_key_env`` (``AI_API_KEY`` by default).
    """

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for `key` or `default` if missing."""
        return self.data.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        return self.data

    @property
    def enabled(self) -> bool:
        return bool(self.data.get("enabled", False))

    @property
    def base_url(self) -> str:
        return str(self.data.get("base_url") or DEFAULT_BASE_URL)

    @property
    def model_name(self) -> str:
        return str(self.data.get("model_name") or DEFAULT_MODEL_NAME)

    @property
    def api_key_env(self) -> str:
        return str(self.data.get("api_key_env") or "AI_API_KEY")

    @property
    def api_key(self) -> str | None:
        return os.getenv(self.api_key_env) or None

    @property
    def request_timeout(self) -> float:
        return float(self.data.get("request_timeout", 15.0))

    @property
    def temperature(self) -> float:
        return float(self.data.get("temperature", 0.0))
