"""Per-(agent, player) conversation memory.

Holds bounded message histories, exchange counters and last-interaction
times. Unknown keys always read as empty: no lookup raises and no lookup
returns None where a collection is expected.

Histories can be written to one JSON file per pair and read back:

    {npcId}_{playerId}.json   (each id percent-encoded, "_" included)
    {"npcId": ..., "playerId": ...,
     "messages": [{"role": "USER", "content": ..., "timestamp": <epoch ms>}],
     "conversationCount": N}
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field

from storyteller.config import ConversationSettings
from storyteller.models import ChatMessage, Role

logger = logging.getLogger(__name__)

FIRST_CONVERSATION = "This is your first conversation with this player."
SUMMARY_MESSAGES = 6
SUMMARY_CONTENT_LIMIT = 100

def _filename_part(value: str) -> str:
    # "_" separates the two ids, so it must never survive inside one
    return quote(value, safe="").replace("_", "%5F")


class PersistedMessage(BaseModel):
    role: str
    content: str
    timestamp: int = 0


class PersistedConversation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    npc_id: str = Field(alias="npcId")
    player_id: str = Field(alias="playerId")
    messages: list[PersistedMessage]
    conversation_count: int = Field(default=0, alias="conversationCount")


class ConversationStore:
    """Conversation state for every agent/player pair.

    Args:
        settings: Caps and the rate-limit gap.
        clock:    Monotonic seconds; injectable for tests.
    """

    def __init__(
        self,
        settings: ConversationSettings,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._clock = clock
        self._histories: dict[str, dict[str, list[ChatMessage]]] = {}
        self._counts: dict[str, dict[str, int]] = {}
        self._last_interaction: dict[str, dict[str, float]] = {}

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def add_message(self, agent_id: str, player_id: str, message: ChatMessage) -> None:
        history = self._histories.setdefault(agent_id, {}).setdefault(player_id, [])
        history.append(message)
        overflow = len(history) - self._settings.max_history
        if overflow > 0:
            del history[:overflow]
        self._last_interaction.setdefault(agent_id, {})[player_id] = self._clock()

    def get_history(self, agent_id: str, player_id: str) -> list[ChatMessage]:
        return list(self._histories.get(agent_id, {}).get(player_id, []))

    def clear_history(self, agent_id: str, player_id: str) -> None:
        """Forget the messages of one pair. Counts and timestamps are kept."""
        self._histories.get(agent_id, {}).pop(player_id, None)

    def clear_agent_history(self, agent_id: str) -> None:
        """Forget everything about one agent: messages, counts, timestamps."""
        self._histories.pop(agent_id, None)
        self._counts.pop(agent_id, None)
        self._last_interaction.pop(agent_id, None)

    def pairs(self) -> list[tuple[str, str]]:
        return [
            (agent_id, player_id)
            for agent_id, players in self._histories.items()
            for player_id in players
        ]

    # ------------------------------------------------------------------
    # Counters and rate limiting
    # ------------------------------------------------------------------

    def increment_exchange_count(self, agent_id: str, player_id: str) -> int:
        counts = self._counts.setdefault(agent_id, {})
        counts[player_id] = counts.get(player_id, 0) + 1
        return counts[player_id]

    def exchange_count(self, agent_id: str, player_id: str) -> int:
        return self._counts.get(agent_id, {}).get(player_id, 0)

    def last_interaction(self, agent_id: str, player_id: str) -> float | None:
        return self._last_interaction.get(agent_id, {}).get(player_id)

    def can_interact(self, agent_id: str, player_id: str) -> bool:
        return self.time_until_can_interact(agent_id, player_id) == 0

    def time_until_can_interact(self, agent_id: str, player_id: str) -> float:
        """Seconds left before the pair may exchange another message (0 if allowed now)."""
        last = self.last_interaction(agent_id, player_id)
        if last is None:
            return 0.0
        elapsed = self._clock() - last
        return max(0.0, self._settings.min_seconds_between_messages - elapsed)

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def build_summary(self, agent_id: str, player_id: str) -> str:
        history = self._histories.get(agent_id, {}).get(player_id, [])
        if not history:
            return FIRST_CONVERSATION

        count = self.exchange_count(agent_id, player_id)
        lines = [f"You have had {count} conversation(s) with this player.", "Recent exchange:"]
        for msg in history[-SUMMARY_MESSAGES:]:
            speaker = "Player" if msg.role is Role.USER else "You"
            content = msg.content
            if len(content) > SUMMARY_CONTENT_LIMIT:
                content = content[:SUMMARY_CONTENT_LIMIT] + "..."
            lines.append(f"- {speaker}: {content}")
        return "\n".join(lines) + "\n"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @staticmethod
    def record_path(directory: Path, agent_id: str, player_id: str) -> Path:
        return directory / f"{_filename_part(agent_id)}_{_filename_part(player_id)}.json"

    def save_all(self, directory: Path) -> int:
        """Write one record per non-empty pair. Returns the number of files written."""
        directory.mkdir(parents=True, exist_ok=True)
        cap = self._settings.max_persisted_messages
        now_ms = int(time.time() * 1000)
        saved = 0

        for agent_id, player_id in self.pairs():
            messages = self._histories[agent_id][player_id]
            if not messages:
                continue
            record = PersistedConversation(
                npc_id=agent_id,
                player_id=player_id,
                messages=[
                    PersistedMessage(role=m.role.name, content=m.content, timestamp=now_ms)
                    for m in messages[-cap:]
                ],
                conversation_count=self.exchange_count(agent_id, player_id),
            )
            path = self.record_path(directory, agent_id, player_id)
            try:
                path.write_text(record.model_dump_json(by_alias=True, indent=2))
            except OSError as e:
                logger.error("Failed to save conversation %s: %s", path.name, e)
                continue
            saved += 1

        logger.info("Saved %d conversation histories to %s", saved, directory)
        return saved

    def load_all(self, directory: Path) -> int:
        """Restore every readable record in `directory`. Bad records are skipped."""
        if not directory.is_dir():
            return 0

        loaded = 0
        for path in sorted(directory.glob("*.json")):
            try:
                record = PersistedConversation.model_validate_json(path.read_text())
                messages = [ChatMessage(role=Role[m.role], content=m.content) for m in record.messages]
            except (OSError, ValueError, KeyError) as e:
                logger.warning("Failed to load conversation from %s: %s", path, e)
                continue

            self._histories.setdefault(record.npc_id, {})[record.player_id] = (
                messages[-self._settings.max_history:]
            )
            if record.conversation_count > 0:
                self._counts.setdefault(record.npc_id, {})[record.player_id] = record.conversation_count
            loaded += 1

        logger.info("Loaded %d conversation histories from %s", loaded, directory)
        return loaded

    @staticmethod
    def clear_persisted(directory: Path) -> int:
        if not directory.is_dir():
            return 0
        removed = 0
        for path in directory.glob("*.json"):
            try:
                path.unlink()
            except OSError as e:
                logger.error("Failed to delete %s: %s", path, e)
                continue
            removed += 1
        logger.info("Cleared %d persisted conversation histories", removed)
        return removed
