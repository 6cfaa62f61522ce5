"""Pooled HTTP connection shared by the provider adapters.

Each adapter owns one HttpBackend. The backend keeps a single
httpx.AsyncClient open between initialize() and shutdown() and translates
every transport or protocol failure into ProviderError, so adapters only
have to deal with one exception type.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from storyteller.llm import ProviderError

logger = logging.getLogger(__name__)


class HttpBackend:
    """Async JSON-over-HTTP client for one backend.

    Args:
        label:   Name used in error messages, e.g. "Ollama".
        timeout: Per-request timeout in seconds.
        headers: Headers sent with every request (auth, versioning).
    """

    def __init__(self, label: str, timeout: float, headers: dict[str, str] | None = None) -> None:
        self._label = label
        self._timeout = timeout
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._client: httpx.AsyncClient | None = None

    @property
    def is_open(self) -> bool:
        return self._client is not None

    def open(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, connect=10.0),
            )

    async def close(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    async def get(self, url: str) -> httpx.Response:
        return await self._send("GET", url)

    async def post_json(self, url: str, body: dict[str, Any]) -> dict[str, Any]:
        resp = await self._send("POST", url, body)
        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderError(f"{self._label} returned a non-JSON body") from e
        if not isinstance(data, dict):
            raise ProviderError(f"Unexpected response format from {self._label}")
        return data

    async def _send(self, method: str, url: str, body: dict[str, Any] | None = None) -> httpx.Response:
        if self._client is None:
            raise ProviderError(f"{self._label} connection is not open")
        logger.debug("%s %s %s", self._label, method, url)
        try:
            if method == "GET":
                resp = await self._client.get(url, headers=self._headers)
            else:
                resp = await self._client.post(url, json=body, headers=self._headers)
            resp.raise_for_status()
        except httpx.ConnectError as e:
            raise ProviderError(f"Cannot connect to {self._label} at {url}") from e
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"{self._label} returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise ProviderError(f"{self._label} timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"{self._label} request failed: {e}") from e
        return resp
