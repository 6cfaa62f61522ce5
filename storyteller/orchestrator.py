"""Per-agent conversation state machine.

    Idle ──accept──▶ AwaitingResponse ──reply / error / timeout──▶ Idle

An agent serves one request at a time, whichever player sent it. A second
message while a request is in flight is answered with a "still thinking"
notice, never queued. The busy flag is set before the first await and
cleared in a finally block, so no code path leaves an agent stuck.

In parallel, an agent is "in conversation" from its first interaction
until it ends explicitly or sits idle for `conversation_timeout` seconds.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel

from storyteller.config import Settings
from storyteller.conversations import ConversationStore
from storyteller.llm import is_sentinel
from storyteller.models import Agent, ChatMessage, ExternalEvent, ExternalEventType, Player, WebhookEvent
from storyteller.prompts import build_system_prompt
from storyteller.world import WorldSnapshot

logger = logging.getLogger(__name__)

EXTERNAL_CONTEXT: dict[ExternalEventType, str] = {
    ExternalEventType.SIGNAL_ON: (
        "You sense a disturbance - something in the physical world has just activated. "
        "This might be significant to your visitor."
    ),
    ExternalEventType.SIGNAL_OFF: "The strange energy you felt has subsided.",
    ExternalEventType.SIGNAL_PULSE: "You feel a rhythmic pulse of energy from beyond the game world.",
    ExternalEventType.HTTP_TRIGGER: "An external force has reached out to you.",
    ExternalEventType.CUSTOM: "Something unusual has occurred.",
}

Retriever = Callable[[str, str], list[str]]
StoryEventHook = Callable[[str, WebhookEvent, Player | None, WorldSnapshot | None], Any]


class ChatBackend(Protocol):
    async def chat(self, system_prompt: str, messages: list[ChatMessage]) -> str: ...


class ChatStatus(str, Enum):
    RESPONDED = "responded"
    OPENED = "opened"
    BUSY = "busy"
    RATE_LIMITED = "rate_limited"
    DISCARDED = "discarded"
    UNKNOWN_AGENT = "unknown_agent"


class ChatOutcome(BaseModel):
    status: ChatStatus
    text: str = ""
    recorded: bool = False


def still_thinking(name: str) -> str:
    return f"[{name} is still thinking...]"


def holds_up_hand(name: str) -> str:
    return f'{name} holds up a hand. "A moment, please..."'


def distracted(name: str) -> str:
    return f"[{name} seems distracted and doesn't respond...]"


class AgentSession:
    """Mutable runtime state of one registered agent."""

    def __init__(self, agent: Agent) -> None:
        self.agent = agent
        self.busy = False
        self.thinking = False
        self.in_conversation = False
        self.talking_to: str | None = None
        self.last_activity: float | None = None
        self.pending_external_context: str | None = None

    def take_external_context(self) -> str | None:
        context, self.pending_external_context = self.pending_external_context, None
        return context


class ConversationOrchestrator:
    """Routes player messages through the prompt builder and the provider.

    Args:
        settings:       Hub settings.
        backend:        Anything with `async chat(system_prompt, messages)`,
                        normally the ProviderManager.
        store:          Conversation memory shared with persistence.
        retriever:      Optional `retrieve(character_id, query)` returning
                        ranked knowledge snippets for the prompt.
        on_story_event: Called as `(agent_id, event, player, world)` when the
                        orchestrator itself raises a story event.
        clock:          Monotonic seconds; injectable for tests.
    """

    def __init__(
        self,
        settings: Settings,
        backend: ChatBackend,
        store: ConversationStore,
        *,
        retriever: Retriever | None = None,
        on_story_event: StoryEventHook | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._backend = backend
        self._store = store
        self._retriever = retriever
        self._on_story_event = on_story_event
        self._clock = clock
        self._sessions: dict[str, AgentSession] = {}
        self._slots = asyncio.Semaphore(settings.llm.max_concurrent_requests)

    # ── Registry ─────────────────────────────────────────

    def register(self, agent: Agent) -> AgentSession:
        session = AgentSession(agent)
        self._sessions[agent.id] = session
        return session

    def unregister(self, agent_id: str) -> AgentSession | None:
        return self._sessions.pop(agent_id, None)

    def session(self, agent_id: str) -> AgentSession | None:
        return self._sessions.get(agent_id)

    def sessions(self) -> list[AgentSession]:
        return list(self._sessions.values())

    # ── Conversation lifecycle ───────────────────────────

    def start_conversation(
        self, agent_id: str, player: Player, world: WorldSnapshot | None = None
    ) -> ChatOutcome:
        """Open a conversation, or refuse it while the pair is rate limited."""
        session = self._sessions.get(agent_id)
        if session is None:
            return ChatOutcome(status=ChatStatus.UNKNOWN_AGENT)
        if not self._store.can_interact(agent_id, player.id):
            return ChatOutcome(status=ChatStatus.RATE_LIMITED, text=holds_up_hand(session.agent.name))
        self._enter_conversation(session, player, world)
        return ChatOutcome(status=ChatStatus.OPENED)

    def end_conversation(self, agent_id: str) -> None:
        session = self._sessions.get(agent_id)
        if session is None:
            return
        session.in_conversation = False
        session.talking_to = None
        session.thinking = False

    def expire_idle(self, now: float | None = None) -> list[str]:
        """End every conversation idle for longer than the timeout. Returns the agent ids."""
        now = self._clock() if now is None else now
        timeout = self._settings.conversations.conversation_timeout
        expired = []
        for agent_id, session in self._sessions.items():
            if not session.in_conversation or session.busy or session.last_activity is None:
                continue
            if now - session.last_activity > timeout:
                expired.append(agent_id)
        for agent_id in expired:
            logger.debug("Conversation with %s timed out", agent_id)
            self.end_conversation(agent_id)
        return expired

    def _enter_conversation(
        self, session: AgentSession, player: Player, world: WorldSnapshot | None
    ) -> None:
        starting = not session.in_conversation or session.talking_to != player.id
        session.in_conversation = True
        session.talking_to = player.id
        session.last_activity = self._clock()
        if starting and self._on_story_event is not None:
            self._on_story_event(session.agent.id, WebhookEvent.CONVERSATION_STARTED, player, world)

    # ── Messages ─────────────────────────────────────────

    async def handle_message(
        self,
        agent_id: str,
        player: Player,
        text: str,
        world: WorldSnapshot | None = None,
    ) -> ChatOutcome:
        session = self._sessions.get(agent_id)
        if session is None:
            return ChatOutcome(status=ChatStatus.UNKNOWN_AGENT)
        name = session.agent.name
        if session.busy:
            return ChatOutcome(status=ChatStatus.BUSY, text=still_thinking(name))
        if not self._store.can_interact(agent_id, player.id):
            return ChatOutcome(status=ChatStatus.RATE_LIMITED)

        session.busy = True
        session.thinking = True
        try:
            self._enter_conversation(session, player, world)
            user_message = ChatMessage.user(text)
            history = self._store.get_history(agent_id, player.id)
            system_prompt = self.build_prompt(session, player, text, world)
            async with self._slots:
                reply = await self._backend.chat(system_prompt, [*history, user_message])
        except Exception:
            logger.exception("Error processing chat for %s", name)
            return ChatOutcome(status=ChatStatus.RESPONDED, text=distracted(name))
        finally:
            session.busy = False
            session.thinking = False
            session.last_activity = self._clock()

        if self._sessions.get(agent_id) is not session:
            logger.debug("Agent %s went away, discarding reply", agent_id)
            return ChatOutcome(status=ChatStatus.DISCARDED, text=reply)
        if is_sentinel(reply):
            return ChatOutcome(status=ChatStatus.RESPONDED, text=reply)

        self._store.add_message(agent_id, player.id, user_message)
        self._store.add_message(agent_id, player.id, ChatMessage.assistant(reply))
        self._store.increment_exchange_count(agent_id, player.id)
        return ChatOutcome(status=ChatStatus.RESPONDED, text=reply, recorded=True)

    def build_prompt(
        self,
        session: AgentSession,
        player: Player,
        text: str,
        world: WorldSnapshot | None = None,
    ) -> str:
        """System prompt for one request. Consumes the pending external context."""
        agent = session.agent
        conv = self._settings.conversations
        summary = None
        if self._store.exchange_count(agent.id, player.id) > 0:
            summary = self._store.build_summary(agent.id, player.id)
        knowledge = None
        if self._retriever is not None and conv.max_knowledge_entries:
            knowledge = self._retriever(agent.character.id, text)[: conv.max_knowledge_entries]
        return build_system_prompt(
            agent.character,
            world=world if conv.include_world_context else None,
            external_context=session.take_external_context(),
            summary=summary,
            knowledge=knowledge,
        )

    # ── External events ──────────────────────────────────

    def on_external_event(self, agent_id: str, event: ExternalEvent) -> str | None:
        """Queue context for the agent's next request.

        Returns the line the agent announces to nearby listeners, if any.
        """
        session = self._sessions.get(agent_id)
        if session is None:
            return None
        logger.debug("Agent %s received external event: %s", agent_id, event.type.value)
        trigger = session.agent.character.external_triggers.get(event.type.value)
        if trigger is not None and trigger.inject_context:
            session.pending_external_context = trigger.inject_context
        else:
            session.pending_external_context = EXTERNAL_CONTEXT[event.type]

        if event.type is ExternalEventType.SIGNAL_ON and trigger is not None and trigger.message:
            return trigger.message
        return None
