"""Hosted adapter A (Anthropic Messages API).

Auth is header based (x-api-key + anthropic-version). The system prompt is
a distinguished top-level "system" field, never a message; history roles
are limited to "user" and "assistant".

    → {"content": [{"text": "..."}]}
"""

from __future__ import annotations

import logging

from storyteller.config import ClaudeSettings
from storyteller.llm import CLAUDE_UNAVAILABLE, LOST_IN_THOUGHT, ProviderError
from storyteller.llm.http import HttpBackend
from storyteller.models import ChatMessage, Role

logger = logging.getLogger(__name__)


class ClaudeProvider:
    def __init__(self, settings: ClaudeSettings, timeout: float) -> None:
        self._settings = settings
        self._timeout = timeout
        self._http: HttpBackend | None = None
        self._available = False

    @property
    def name(self) -> str:
        return f"Claude ({self._settings.model})"

    def is_available(self) -> bool:
        return self._available

    async def initialize(self) -> bool:
        if not self._settings.api_key:
            logger.info("Claude API key not configured, skipping initialization")
            return False

        if self._http is None:
            self._http = HttpBackend(
                "Claude",
                self._timeout,
                headers={
                    "x-api-key": self._settings.api_key,
                    "anthropic-version": self._settings.api_version,
                },
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
            logger.error("Claude API connection failed: %s", e)
            return False

        logger.info("Claude API connection successful")
        self._available = True
        return True

    def build_request(self, system_prompt: str, messages: list[ChatMessage]) -> dict:
        return {
            "model": self._settings.model,
            "max_tokens": self._settings.max_tokens,
            "system": system_prompt,
            "messages": [
                {
                    "role": "user" if m.role is Role.USER else "assistant",
                    "content": m.content,
                }
                for m in messages
            ],
        }

    async def chat(self, system_prompt: str, messages: list[ChatMessage]) -> str:
        if not self._available or self._http is None:
            return CLAUDE_UNAVAILABLE

        body = self.build_request(system_prompt, messages)
        try:
            data = await self._http.post_json(self._settings.api_url, body)
        except ProviderError as e:
            logger.error("Claude chat error: %s", e)
            return LOST_IN_THOUGHT

        content = data.get("content")
        if isinstance(content, list) and content and isinstance(content[0], dict):
            text = content[0].get("text")
            if isinstance(text, str):
                return text
        logger.error("Unexpected response format from Claude")
        return LOST_IN_THOUGHT

    async def shutdown(self) -> None:
        self._available = False
        if self._http is not None:
            await self._http.close()
