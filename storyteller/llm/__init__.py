"""Chat providers: interchangeable remote text-generation backends.

Every backend implements the Provider protocol:

    async def initialize(self) -> bool
    async def chat(self, system_prompt: str, messages: list[ChatMessage]) -> str
    def is_available(self) -> bool
    async def shutdown(self) -> None

Three adapters are provided, keyed by ProviderId:

    OllamaProvider   local inference; system prompt as the first message
    ClaudeProvider   hosted; x-api-key auth, system prompt as a top-level field
    OpenAIProvider   hosted; bearer auth, system prompt as the first message

Adapters never raise out of chat(): transport and protocol failures become
the LOST_IN_THOUGHT sentinel. ProviderManager owns the adapters and routes
calls to whichever one is active.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol

from storyteller.models import ChatMessage

LOST_IN_THOUGHT = "[The storyteller seems lost in thought...]"
NO_PROVIDER = "[No LLM provider available. Please check your configuration.]"


class ProviderId(str, Enum):
    OLLAMA = "ollama"
    CLAUDE = "claude"
    OPENAI = "openai"


class Provider(Protocol):
    @property
    def name(self) -> str: ...

    async def initialize(self) -> bool: ...

    async def chat(self, system_prompt: str, messages: list[ChatMessage]) -> str: ...

    def is_available(self) -> bool: ...

    async def shutdown(self) -> None: ...


class ProviderError(RuntimeError):
    """Raised inside an adapter when its backend cannot be reached or answers badly."""


def unavailable_message(label: str, hint: str) -> str:
    return f"[{label} is not available. {hint}]"


OLLAMA_UNAVAILABLE = unavailable_message("Ollama", "Please check the server logs.")
CLAUDE_UNAVAILABLE = unavailable_message("Claude", "Please check your API key.")
OPENAI_UNAVAILABLE = unavailable_message("OpenAI", "Please check your API key.")

SENTINELS = frozenset({
    LOST_IN_THOUGHT,
    NO_PROVIDER,
    OLLAMA_UNAVAILABLE,
    CLAUDE_UNAVAILABLE,
    OPENAI_UNAVAILABLE,
})


def is_sentinel(text: str) -> bool:
    """True for placeholder replies that stand in for a real model response."""
    return text in SENTINELS
