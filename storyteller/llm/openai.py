"""Hosted adapter B (OpenAI chat completions).

Bearer-token auth; the system prompt is the first message with role
"system"; temperature is sent with every request.

    → {"choices": [{"message": {"content": "..."}}]}
"""

from __future__ import annotations

import logging

from storyteller.config import OpenAISettings
from storyteller.llm import LOST_IN_THOUGHT, OPENAI_UNAVAILABLE, ProviderError
from storyteller.llm.http import HttpBackend
from storyteller.models import ChatMessage, Role

logger = logging.getLogger(__name__)


class OpenAIProvider:
    def __init__(self, settings: OpenAISettings, timeout: float) -> None:
        self._settings = settings
        self._timeout = timeout
        self._http: HttpBackend | None = None
        self._available = False

    @property
    def name(self) -> str:
        return f"OpenAI ({self._settings.model})"

    def is_available(self) -> bool:
        return self._available

    async def initialize(self) -> bool:
        if not self._settings.api_key:
            logger.info("OpenAI API key not configured, skipping initialization")
            return False

        if self._http is None:
            self._http = HttpBackend(
                "OpenAI",
                self._timeout,
                headers={"Authorization": f"Bearer {self._settings.api_key}"},
            )
        self._http.open()

        probe = {
            "model": self._settings.model,
            "max_tokens": 10,
            "messages": [{"role": "user", "content": "Hi"}],
        }
        try:
            await self._http.post_json(self._settings.api_url, probe)
        except ProviderError as e:
            logger.error("OpenAI API connection failed: %s", e)
            return False

        logger.info("OpenAI API connection successful")
        self._available = True
        return True

    def build_request(self, system_prompt: str, messages: list[ChatMessage]) -> dict:
        framed = [{"role": "system", "content": system_prompt}]
        framed.extend(
            {
                "role": "user" if m.role is Role.USER else "assistant",
                "content": m.content,
            }
            for m in messages
        )
        return {
            "model": self._settings.model,
            "max_tokens": self._settings.max_tokens,
            "temperature": self._settings.temperature,
            "messages": framed,
        }

    async def chat(self, system_prompt: str, messages: list[ChatMessage]) -> str:
        if not self._available or self._http is None:
            return OPENAI_UNAVAILABLE

        body = self.build_request(system_prompt, messages)
        try:
            data = await self._http.post_json(self._settings.api_url, body)
        except ProviderError as e:
            logger.error("OpenAI chat error: %s", e)
            return LOST_IN_THOUGHT

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if isinstance(content, str):
            return content
        logger.error("Unexpected response format from OpenAI")
        return LOST_IN_THOUGHT

    async def shutdown(self) -> None:
        self._available = False
        if self._http is not None:
            await self._http.close()
