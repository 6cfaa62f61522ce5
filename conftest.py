import asyncio

import pytest

from storyteller.config import Settings
from storyteller.llm import ProviderId
from storyteller.models import ChatMessage


class FakeProvider:
    """In-memory provider with call counters.

    `gate`, when set, holds every chat() call until the event is set.
    """

    def __init__(self, name: str = "Fake", *, succeed: bool = True, reply: str = "Greetings, traveler.") -> None:
        self._name = name
        self.succeed = succeed
        self.reply = reply
        self.init_delay = 0.0
        self.chat_delay = 0.0
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.available = False
        self.init_calls = 0
        self.shutdown_calls = 0
        self.chat_calls: list[tuple[str, list[ChatMessage]]] = []

    @property
    def name(self) -> str:
        return self._name

    async def initialize(self) -> bool:
        self.init_calls += 1
        if self.init_delay:
            await asyncio.sleep(self.init_delay)
        self.available = self.succeed
        return self.succeed

    async def chat(self, system_prompt: str, messages: list[ChatMessage]) -> str:
        self.chat_calls.append((system_prompt, list(messages)))
        if self.gate is not None:
            await self.gate.wait()
        if self.chat_delay:
            await asyncio.sleep(self.chat_delay)
        if self.error is not None:
            raise self.error
        return self.reply

    def is_available(self) -> bool:
        return self.available

    async def shutdown(self) -> None:
        self.shutdown_calls += 1
        self.available = False


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fakes() -> dict[ProviderId, FakeProvider]:
    return {pid: FakeProvider(f"Fake {pid.value}") for pid in ProviderId}


@pytest.fixture
def factories(fakes):
    return {pid: (lambda settings, p=p: p) for pid, p in fakes.items()}


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(data_dir=tmp_path / "data")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
