"""The hub service: one owned object wiring every component together.

    hub = StorytellerHub(load_settings(path))
    await hub.start()       # providers up, histories loaded, tick loop running
    hub.spawn(agent)
    outcome = await hub.chat(agent.id, player, "Hello?")
    await hub.stop()        # tick loop cancelled, histories saved, connections closed

All per-agent state lives on this object; nothing is module-global. The
tick loop never awaits network I/O: chats run in the caller's task and
webhooks in their own tasks.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from storyteller.bridge import ActiveEmission, EmissionTracker, SignalScanner, WebhookDispatcher
from storyteller.config import Settings
from storyteller.conversations import ConversationStore
from storyteller.llm import ProviderId
from storyteller.llm.manager import ProviderFactory, ProviderManager
from storyteller.models import Agent, ExternalEvent, Player, WebhookEvent
from storyteller.orchestrator import AgentSession, ChatOutcome, ConversationOrchestrator, Retriever
from storyteller.world import MemoryGrid, OutputLog, Position, SignalGrid, SignalOutput, WorldSnapshot

logger = logging.getLogger(__name__)

Announcer = Callable[[Agent, str], None]


def _log_announcement(agent: Agent, message: str) -> None:
    logger.info("[%s] %s", agent.name, message)


def _resolved(value: bool) -> asyncio.Future[bool]:
    future: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
    future.set_result(value)
    return future


class StorytellerHub:
    """Owns providers, conversation memory, orchestration and the signal bridge.

    Args:
        settings:  Hub settings.
        factories: Provider constructors, passed to ProviderManager.
        grid:      Where signal strengths are read. Defaults to a MemoryGrid.
        output:    Receives each agent's emitted strength. Defaults to an OutputLog.
        retriever: Optional knowledge lookup for prompts.
        announce:  Called with (agent, message) when an agent speaks up on its
                   own after an external event. Defaults to logging it.
        clock:     Monotonic seconds shared by rate limits and timeouts.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        factories: dict[ProviderId, ProviderFactory] | None = None,
        grid: SignalGrid | None = None,
        output: SignalOutput | None = None,
        retriever: Retriever | None = None,
        announce: Announcer | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or Settings()
        self.providers = ProviderManager(self.settings, factories)
        self.store = ConversationStore(self.settings.conversations, clock)
        self.orchestrator = ConversationOrchestrator(
            self.settings,
            self.providers,
            self.store,
            retriever=retriever,
            on_story_event=self._conversation_story_event,
            clock=clock,
        )
        self.scanner = SignalScanner(self.settings.bridge)
        self.emitter = EmissionTracker()
        self.webhooks = WebhookDispatcher(self.settings.webhooks)
        self.grid = grid if grid is not None else MemoryGrid()
        self.output = output if output is not None else OutputLog()
        self.agents: dict[str, Agent] = {}
        self.tick_count = 0
        self._announce = announce or _log_announcement
        self._tick_task: asyncio.Task | None = None

    # ── Lifecycle ────────────────────────────────────────

    async def start(self, *, run_ticks: bool = True) -> None:
        await self.providers.initialize()
        self.webhooks.start()
        if self.settings.conversations.persist:
            self.store.load_all(self.settings.conversations_dir)
        if run_ticks and self._tick_task is None:
            self._tick_task = asyncio.create_task(self._tick_loop())
        logger.info("Storyteller hub started (provider: %s)", self.providers.active_provider_name)

    async def stop(self) -> None:
        if self._tick_task is not None:
            task, self._tick_task = self._tick_task, None
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("Tick loop had failed before shutdown")
        try:
            if self.settings.conversations.persist:
                self.store.save_all(self.settings.conversations_dir)
        finally:
            try:
                await self.webhooks.close()
            finally:
                await self.providers.shutdown()
        logger.info("Storyteller hub stopped")

    async def _tick_loop(self) -> None:
        interval = self.settings.bridge.tick_seconds
        while True:
            try:
                self.tick()
            except Exception:
                logger.exception("Tick %d failed", self.tick_count)
            await asyncio.sleep(interval)

    # ── Agents ───────────────────────────────────────────

    def spawn(self, agent: Agent) -> AgentSession:
        if agent.id in self.agents:
            self.despawn(agent.id)
        self.agents[agent.id] = agent
        logger.info("Spawned agent %s (%s)", agent.id, agent.name)
        return self.orchestrator.register(agent)

    def despawn(self, agent_id: str) -> bool:
        agent = self.agents.pop(agent_id, None)
        if agent is None:
            return False
        self.orchestrator.unregister(agent_id)
        self.scanner.clear_agent(agent_id)
        if self.emitter.get(agent_id) is not None:
            self.emitter.clear_agent(agent_id)
            self.output.set_signal(agent_id, 0)
        logger.info("Despawned agent %s", agent_id)
        return True

    def move(self, agent_id: str, position: Position) -> Agent | None:
        agent = self.agents.get(agent_id)
        if agent is not None:
            agent.position = position
        return agent

    # ── Conversations ────────────────────────────────────

    def open_conversation(
        self, agent_id: str, player: Player, world: WorldSnapshot | None = None
    ) -> ChatOutcome:
        return self.orchestrator.start_conversation(agent_id, player, world)

    async def chat(
        self, agent_id: str, player: Player, text: str, world: WorldSnapshot | None = None
    ) -> ChatOutcome:
        return await self.orchestrator.handle_message(agent_id, player, text, world)

    def end_conversation(self, agent_id: str) -> None:
        self.orchestrator.end_conversation(agent_id)

    def save_histories(self) -> int:
        return self.store.save_all(self.settings.conversations_dir)

    # ── External events ──────────────────────────────────

    def handle_external_event(self, agent_id: str, event: ExternalEvent) -> str | None:
        announcement = self.orchestrator.on_external_event(agent_id, event)
        if announcement:
            self._announce(self.agents[agent_id], announcement)
        return announcement

    # ── Story events and output signals ──────────────────

    def emit_signal(
        self, agent_id: str, strength: int, duration: int, pattern: str = "constant"
    ) -> ActiveEmission | None:
        bridge = self.settings.bridge
        if agent_id not in self.agents or not bridge.enabled or not bridge.emit_on_events:
            return None
        emission = self.emitter.start(agent_id, strength, duration, pattern, self.tick_count)
        self.output.set_signal(agent_id, self.emitter.advance(agent_id, self.tick_count))
        return emission

    def trigger_story_event(
        self,
        agent_id: str,
        event: WebhookEvent,
        player: Player | None = None,
        world: WorldSnapshot | None = None,
        data: dict[str, Any] | None = None,
    ) -> asyncio.Future[bool]:
        """Emit the character's configured signal for `event`, then send its webhook."""
        agent = self.agents.get(agent_id)
        if agent is None or not self.settings.bridge.enabled:
            return _resolved(False)

        trigger = agent.character.story_triggers.get(event.value)
        if trigger is not None and trigger.emit_signal:
            self.emit_signal(agent_id, trigger.signal_strength, trigger.signal_duration, trigger.signal_pattern)

        logger.debug("Agent %s triggered story event: %s", agent_id, event.value)
        return self.webhooks.dispatch(agent, event, data, player, world)

    def _conversation_story_event(
        self,
        agent_id: str,
        event: WebhookEvent,
        player: Player | None,
        world: WorldSnapshot | None,
    ) -> None:
        self.trigger_story_event(agent_id, event, player, world)

    # ── Tick ─────────────────────────────────────────────

    def tick(self) -> None:
        """Advance one tick: expire idle conversations, scan, drive emissions."""
        self.tick_count += 1
        self.orchestrator.expire_idle()

        bridge = self.settings.bridge
        if not bridge.enabled:
            return

        if self.tick_count % bridge.scan_interval_ticks == 0:
            for agent in list(self.agents.values()):
                for event in self.scanner.scan(agent.id, agent.position, self.grid, self.tick_count):
                    self.handle_external_event(agent.id, event)

        for agent_id in self.emitter.agents():
            strength = self.emitter.advance(agent_id, self.tick_count)
            if strength is not None:
                self.output.set_signal(agent_id, strength)
