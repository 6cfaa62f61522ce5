"""Owns every provider adapter and routes chat calls to the active one."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

import httpx

from storyteller.config import Settings
from storyteller.llm import LOST_IN_THOUGHT, NO_PROVIDER, Provider, ProviderError, ProviderId
from storyteller.llm.claude import ClaudeProvider
from storyteller.llm.ollama import OllamaProvider
from storyteller.llm.openai import OpenAIProvider
from storyteller.models import ChatMessage

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[Settings], Provider]

DEFAULT_FACTORIES: dict[ProviderId, ProviderFactory] = {
    ProviderId.OLLAMA: lambda s: OllamaProvider(s.llm.ollama),
    ProviderId.CLAUDE: lambda s: ClaudeProvider(s.llm.claude, s.llm.response_timeout),
    ProviderId.OPENAI: lambda s: OpenAIProvider(s.llm.openai, s.llm.response_timeout),
}


class ProviderManager:
    """Constructs the adapters, picks one to be active, fails over when needed.

    Exactly one adapter is active at a time. Others may be initialized and
    available without being active.

    Args:
        settings:  Hub settings; `llm.provider` names the preferred adapter.
        factories: Adapter constructors keyed by ProviderId. Defaults to the
                   three HTTP adapters.
    """

    def __init__(
        self,
        settings: Settings,
        factories: dict[ProviderId, ProviderFactory] | None = None,
    ) -> None:
        self._settings = settings
        self._factories = factories if factories is not None else DEFAULT_FACTORIES
        self._providers: dict[ProviderId, Provider] = {}
        self._active: Provider | None = None
        self._active_id: ProviderId | None = None
        self._switch_lock = asyncio.Lock()

    @property
    def providers(self) -> dict[ProviderId, Provider]:
        return dict(self._providers)

    @property
    def active_id(self) -> ProviderId | None:
        return self._active_id

    @property
    def active_provider_name(self) -> str:
        return self._active.name if self._active is not None else "None"

    def is_available(self) -> bool:
        return self._active is not None and self._active.is_available()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> bool:
        """Bring up the preferred adapter, or the first fallback that succeeds.

        Calling it again shuts the current adapters down and starts over.
        """
        if self._providers:
            await self.shutdown()
        self._providers ={pid: factory(self._settings) for pid, factory in self._factories.items()}

        preferred = self._settings.llm.provider
        if preferred in self._providers:
            if await self._try_initialize(preferred):
                self._adopt_if_vacant(preferred)
                logger.info("LLM provider initialized: %s", self.active_provider_name)
                return True
            logger.warning("Preferred provider %s failed, trying fallbacks...", preferred.value)
        else:
            logger.warning("Preferred provider %s is not registered", preferred.value)

        others = [pid for pid in self._providers if pid != preferred]
        await asyncio.gather(*(self._fallback(pid) for pid in others))

        if self._active is None:
            logger.error("No LLM provider available! Please configure Ollama or add API keys.")
            return False
        return True

    async def _fallback(self, pid: ProviderId) -> None:
        if await self._try_initialize(pid) and self._adopt_if_vacant(pid):
            logger.info("Fallback provider initialized: %s", self.active_provider_name)

    async def _try_initialize(self, pid: ProviderId) -> bool:
        try:
            return await self._providers[pid].initialize()
        except (ProviderError, httpx.HTTPError) as e:
            logger.error("Provider %s failed to initialize: %s", pid.value, e)
            return False

    def _adopt_if_vacant(self, pid: ProviderId) -> bool:
        # Later successes never replace an adapter that is already active.
        if self._active is not None:
            return False
        self._active = self._providers[pid]
        self._active_id = pid
        return True

    async def switch_provider(self, pid: ProviderId) -> bool:
        """Hot-swap to `pid`. The current adapter stays active if the new one fails."""
        provider = self._providers.get(pid)
        if provider is None:
            logger.error("Unknown provider: %s", pid)
            return False

        async with self._switch_lock:
            if not await self._try_initialize(pid):
                logger.warning("Failed to switch to provider: %s", pid.value)
                return False

            previous = self._active
            self._active = provider
            self._active_id = pid
            if previous is not None and previous is not provider:
                await previous.shutdown()
            logger.info("Switched to LLM provider: %s", provider.name)
            return True

    async def shutdown(self) -> None:
        for provider in self._providers.values():
            await provider.shutdown()
        self._active = None
        self._active_id = None

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def chat(self, system_prompt: str, messages: list[ChatMessage]) -> str:
        active = self._active
        if active is None or not active.is_available():
            return NO_PROVIDER

        try:
            return await asyncio.wait_for(
                active.chat(system_prompt, messages),
                timeout=self._settings.llm.response_timeout,
            )
        except TimeoutError:
            logger.error(
                "%s did not answer within %ss", active.name, self._settings.llm.response_timeout
            )
        except (ProviderError, httpx.HTTPError) as e:
            logger.error("%s chat failed: %s", active.name, e)
        return LOST_IN_THOUGHT
