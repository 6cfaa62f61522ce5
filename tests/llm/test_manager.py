"""Tests for ProviderManager: failover, routing, hot swap and shutdown."""

from storyteller.config import LLMSettings, Settings
from storyteller.llm import (
    CLAUDE_UNAVAILABLE,
    LOST_IN_THOUGHT,
    NO_PROVIDER,
    OLLAMA_UNAVAILABLE,
    OPENAI_UNAVAILABLE,
    ProviderError,
    ProviderId,
    is_sentinel,
)
from storyteller.llm.manager import ProviderManager
from storyteller.models import ChatMessage

OLLAMA, CLAUDE, OPENAI = ProviderId.OLLAMA, ProviderId.CLAUDE, ProviderId.OPENAI


def _manager(factories, preferred: ProviderId = OLLAMA) -> ProviderManager:
    return ProviderManager(Settings(llm=LLMSettings(provider=preferred)), factories)


# ---------------------------------------------------------------------------
# initialize
# ---------------------------------------------------------------------------

async def test_preferred_provider_becomes_active(fakes, factories) -> None:
    manager = _manager(factories, preferred=CLAUDE)
    assert await manager.initialize() is True
    assert manager.active_id is CLAUDE
    assert manager.active_provider_name == "Fake claude"
    assert fakes[OLLAMA].init_calls == 0
    assert fakes[OPENAI].init_calls == 0


async def test_falls_back_when_preferred_fails(fakes, factories) -> None:
    fakes[OLLAMA].succeed = False
    fakes[CLAUDE].succeed = False
    manager = _manager(factories)
    assert await manager.initialize() is True
    assert manager.active_id is OPENAI
    assert manager.is_available()


async def test_first_fallback_success_wins(fakes, factories) -> None:
    fakes[OLLAMA].succeed = False
    fakes[CLAUDE].init_delay = 0.05
    manager = _manager(factories)
    await manager.initialize()
    # Claude also came up, later, but never replaces the active adapter
    assert fakes[CLAUDE].is_available()
    assert manager.active_id is OPENAI


async def test_all_fail(fakes, factories) -> None:
    for fake in fakes.values():
        fake.succeed = False
    manager = _manager(factories)
    assert await manager.initialize() is False
    assert not manager.is_available()
    assert manager.active_provider_name == "None"


async def test_initialize_error_counts_as_failure(fakes, factories) -> None:
    async def boom() -> bool:
        raise ProviderError("bad config")

    fakes[OLLAMA].initialize = boom
    manager = _manager(factories)
    assert await manager.initialize() is True
    assert manager.active_id in (CLAUDE, OPENAI)


async def test_reinitialize_starts_over(fakes, factories) -> None:
    manager = _manager(factories)
    await manager.initialize()
    assert manager.active_id is OLLAMA

    fakes[OLLAMA].succeed = False
    fakes[CLAUDE].succeed = False
    assert await manager.initialize() is True
    assert all(fake.shutdown_calls == 1 for fake in fakes.values())
    assert manager.active_id is OPENAI
    assert manager.active_provider_name == "Fake openai"


# ---------------------------------------------------------------------------
# chat
# ---------------------------------------------------------------------------

async def test_no_provider_sentinel_without_any_call(fakes, factories) -> None:
    for fake in fakes.values():
        fake.succeed = False
    manager = _manager(factories)
    await manager.initialize()
    assert await manager.chat("sys", [ChatMessage.user("hi")]) == NO_PROVIDER
    assert all(not fake.chat_calls for fake in fakes.values())


async def test_no_provider_before_initialize(factories) -> None:
    manager = _manager(factories)
    assert await manager.chat("sys", []) == NO_PROVIDER


async def test_chat_delegates_verbatim(fakes, factories) -> None:
    fakes[OLLAMA].reply = "  The mists part.  "
    manager = _manager(factories)
    await manager.initialize()
    assert await manager.chat("sys", [ChatMessage.user("hi")]) == "  The mists part.  "
    system_prompt, messages = fakes[OLLAMA].chat_calls[0]
    assert system_prompt == "sys"
    assert messages == [ChatMessage.user("hi")]


async def test_active_provider_going_away(fakes, factories) -> None:
    manager = _manager(factories)
    await manager.initialize()
    fakes[OLLAMA].available = False
    assert await manager.chat("sys", []) == NO_PROVIDER
    assert not fakes[OLLAMA].chat_calls


async def test_provider_error_is_lost_in_thought(fakes, factories) -> None:
    fakes[OLLAMA].error = ProviderError("boom")
    manager = _manager(factories)
    await manager.initialize()
    assert await manager.chat("sys", []) == LOST_IN_THOUGHT


async def test_slow_provider_times_out(fakes, factories) -> None:
    fakes[OLLAMA].chat_delay = 1.0
    manager = _manager(factories)
    manager._settings.llm.response_timeout = 0.01
    await manager.initialize()
    assert await manager.chat("sys", []) == LOST_IN_THOUGHT


# ---------------------------------------------------------------------------
# switch_provider / shutdown
# ---------------------------------------------------------------------------

async def test_switch_success_shuts_down_previous(fakes, factories) -> None:
    manager = _manager(factories)
    await manager.initialize()
    assert await manager.switch_provider(CLAUDE) is True
    assert manager.active_id is CLAUDE
    assert fakes[OLLAMA].shutdown_calls == 1


async def test_failed_switch_keeps_current(fakes, factories) -> None:
    fakes[OPENAI].succeed = False
    manager = _manager(factories)
    await manager.initialize()
    assert await manager.switch_provider(OPENAI) is False
    assert manager.active_id is OLLAMA
    assert fakes[OLLAMA].shutdown_calls == 0
    assert await manager.chat("sys", []) == "Greetings, traveler."


async def test_switch_to_active_provider_keeps_it_running(fakes, factories) -> None:
    manager = _manager(factories)
    await manager.initialize()
    assert await manager.switch_provider(OLLAMA) is True
    assert fakes[OLLAMA].shutdown_calls == 0
    assert manager.is_available()


async def test_switch_to_unregistered_provider(fakes) -> None:
    manager = _manager({OLLAMA: lambda s: fakes[OLLAMA]})
    await manager.initialize()
    assert await manager.switch_provider(CLAUDE) is False
    assert manager.active_id is OLLAMA


async def test_shutdown_closes_every_adapter(fakes, factories) -> None:
    manager = _manager(factories)
    await manager.initialize()
    await manager.shutdown()
    assert all(fake.shutdown_calls == 1 for fake in fakes.values())
    assert not manager.is_available()


# ---------------------------------------------------------------------------
# is_sentinel
# ---------------------------------------------------------------------------

def test_sentinels_are_exact_strings() -> None:
    for text in (LOST_IN_THOUGHT, NO_PROVIDER, OLLAMA_UNAVAILABLE, CLAUDE_UNAVAILABLE, OPENAI_UNAVAILABLE):
        assert is_sentinel(text)
    assert not is_sentinel("[The gate is not available. Try the north road]")
    assert not is_sentinel(LOST_IN_THOUGHT + " ")
