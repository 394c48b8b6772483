"""Thin wrapper around an OpenAI-compatible chat completion endpoint.

Groq, Gemini's OpenAI-compatible surface, vLLM and LM Studio all accept the
same request shape, so the provider is chosen purely by ``base_url`` and
``model_name`` in ``ai_settings``.
"""

from __future__ import annotations

from typing import List

from openai import AsyncOpenAI
from openai.types.chat import ChatCompletionMessageParam

from modguard.configuration.ai_settings import AISettings
from modguard.util.logger import get_logger

logger = get_logger("llm_engine")


class LLMEngine:
    """Send single-turn prompts to the configured model.

    The engine is unavailable when AI is disabled in the configuration or no
    API key is present; :meth:`complete` then returns None without a request.
    """

    def __init__(self, ai_settings: AISettings, client: AsyncOpenAI | None = None) -> None:
        self._settings = ai_settings
        self._model_name = ai_settings.model_name
        self._client = client

        if self._client is None and ai_settings.enabled:
            api_key = ai_settings.api_key
            if not api_key:
                logger.warning(
                    "[LLM ENGINE] AI enabled but %s is not set; AI classification disabled",
                    ai_settings.api_key_env,
                )
            else:
                self._client = AsyncOpenAI(
                    api_key=api_key,
                    base_url=ai_settings.base_url,
                    timeout=ai_settings.request_timeout,
                    max_retries=0,
                )
                logger.info(
                    "[LLM ENGINE] Initialized with base_url=%s, model=%s",
                    ai_settings.base_url,
                    self._model_name,
                )

    @property
    def available(self) -> bool:
        return self._client is not None

    @property
    def model_name(self) -> str:
        return self._model_name

    async def complete(self, prompt: str, system_prompt: str | None = None) -> str | None:
        """Return the model's reply text, or None on any API error."""
        if self._client is None:
            return None

        messages: List[ChatCompletionMessageParam] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await self._client.chat.completions.create(
                model=self._model_name,
                messages=messages,
                temperature=self._settings.temperature,
            )
            return (response.choices[0].message.content or "").strip()
        except Exception as exc:
            logger.error("[LLM ENGINE] Completion request failed: %s", exc)
            return None

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
