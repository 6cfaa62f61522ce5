"""Local-inference adapter (Ollama wire format).

    probe: GET  {endpoint}/api/tags
    chat:  POST {endpoint}/api/chat
           {"model", "messages": [{role, content}], "stream": false,
            "options": {temperature, top_p, repeat_penalty, num_predict}}
           → {"message": {"content": "..."}} or {"error": "..."}

The system prompt travels as the first message with role "system".
"""

from __future__ import annotations

import logging

from storyteller.config import OllamaSettings
from storyteller.llm import LOST_IN_THOUGHT, OLLAMA_UNAVAILABLE, ProviderError
from storyteller.llm.http import HttpBackend
from storyteller.models import ChatMessage, Role

logger = logging.getLogger(__name__)


class OllamaProvider:
    def __init__(self, settings: OllamaSettings) -> None:
        self._settings = settings
        self._endpoint = settings.endpoint.rstrip("/")
        self._http = HttpBackend("Ollama", settings.timeout)
        self._available = False

    @property
    def name(self) -> str:
        return f"Ollama ({self._settings.model})"

    def is_available(self) -> bool:
        return self._available

    async def initialize(self) -> bool:
        self._http.open()
        try:
            resp = await self._http.get(f"{self._endpoint}/api/tags")
        except ProviderError as e:
            logger.error("Failed to initialize Ollama provider: %s", e)
            logger.info("Make sure Ollama is running: ollama serve")
            return False

        logger.info("Ollama connection successful at %s", self._endpoint)
        base_model = self._settings.model.split(":")[0]
        if base_model not in resp.text:
            logger.warning("Model '%s' may not be available on %s", self._settings.model, self._endpoint)
            logger.info("To pull the model, run: ollama pull %s", self._settings.model)
        self._available = True
        return True

    def build_request(self, system_prompt: str, messages: list[ChatMessage]) -> dict:
        framed = [{"role": Role.SYSTEM.value, "content": system_prompt}]
        framed.extend({"role": m.role.value, "content": m.content} for m in messages)
        s = self._settings
        return {
            "model": s.model,
            "messages": framed,
            "stream": False,
            "options": {
                "temperature": s.temperature,
                "top_p": s.top_p,
                "repeat_penalty": s.repeat_penalty,
                "num_predict": s.num_predict,
            },
        }

    async def chat(self, system_prompt: str, messages: list[ChatMessage]) -> str:
        if not self._available:
            return OLLAMA_UNAVAILABLE

        body = self.build_request(system_prompt, messages)
        try:
            data = await self._http.post_json(f"{self._endpoint}/api/chat", body)
        except ProviderError as e:
            logger.error("Ollama chat error: %s", e)
            return LOST_IN_THOUGHT

        message = data.get("message")
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            return message["content"]
        if "error" in data:
            logger.error("Ollama error: %s", data["error"])
        else:
            logger.error("Unexpected response format from Ollama")
        return LOST_IN_THOUGHT

    async def shutdown(self) -> None:
        self._available = False
        await self._http.close()
