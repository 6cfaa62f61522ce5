"""Outbound story-event notifications.

Each WebhookEvent kind has its own destination URL. A dispatch posts a
fixed JSON shape and resolves to True on a 2xx answer. Failures are logged
and resolve to False; nothing is retried and nothing is raised to the
caller.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from storyteller.config import WebhookSettings
from storyteller.models import Agent, Player, WebhookEvent
from storyteller.world import WorldSnapshot

logger = logging.getLogger(__name__)


def _scalar(value: Any) -> Any:
    if isinstance(value, (bool, int, float)):
        return value
    return str(value)


def build_payload(
    agent: Agent,
    event: WebhookEvent,
    data: dict[str, Any] | None = None,
    player: Player | None = None,
    world: WorldSnapshot | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "event": event.value,
        "npc": {"id": agent.id, "name": agent.name, "character_id": agent.character.id},
    }
    if player is not None:
        payload["player"] = {"name": player.name, "uuid": player.id}
    payload["data"] = {key: _scalar(value) for key, value in (data or {}).items()}
    if world is not None:
        payload["world"] = world.to_payload()
    payload["timestamp"] = (now or datetime.now(timezone.utc)).isoformat()
    return payload


class WebhookDispatcher:
    """Fire-and-forget POSTs over one pooled httpx client.

    Call start() before dispatching and close() on shutdown.
    """

    def __init__(self, settings: WebhookSettings) -> None:
        self._settings = settings
        self._client: httpx.AsyncClient | None = None
        self._pending: set[asyncio.Task[bool]] = set()

    def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout_ms / 1000)

    async def close(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    def dispatch(
        self,
        agent: Agent,
        event: WebhookEvent,
        data: dict[str, Any] | None = None,
        player: Player | None = None,
        world: WorldSnapshot | None = None,
    ) -> asyncio.Future[bool]:
        """Schedule the POST for `event` and return a future of its success.

        Resolves to False immediately, without any request, when webhooks are
        disabled, no URL is configured for the event, or the dispatcher has
        not been started.
        """
        url = self._settings.url_for(event)
        if not self._settings.enabled or not url or self._client is None:
            done: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
            done.set_result(False)
            return done

        payload = build_payload(agent, event, data, player, world)
        task = asyncio.create_task(self._post(url, payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _post(self, url: str, payload: dict[str, Any]) -> bool:
        try:
            resp = await self._client.post(url, json=payload)
        except httpx.HTTPError as e:
            logger.error("Webhook error for %s: %s", url, e)
            return False
        if not resp.is_success:
            logger.warning("Webhook failed: %s returned %d", url, resp.status_code)
            return False
        logger.debug("Webhook %s delivered to %s", payload["event"], url)
        return True
