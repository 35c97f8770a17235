"""Entity directories used as the fallback metadata source."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from dashboard_agent.config import DirectoryConfig

logger = logging.getLogger(__name__)


class InMemoryEntityDirectory:
    """Static object table, handy offline and in tests."""

    def __init__(self, objects: dict[str, dict[str, Any]] | None = None, *, connected: bool = True) -> None:
        self._objects = dict(objects or {})
        self.connected = connected

    def is_connected(self) -> bool:
        return self.connected

    async def get_object(self, state_id: str) -> dict[str, Any] | None:
        return self._objects.get(state_id)


class SimpleApiEntityDirectory:
    """Reads ioBroker objects through the simple-api adapter (`/get/<id>`)."""

    def __init__(
        self,
        config: DirectoryConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or DirectoryConfig()
        self._client = client or httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout_seconds,
        )
        self._connected = False

    async def connect(self) -> bool:
        try:
            response = await self._client.get("/")
        except httpx.HTTPError as exc:
            logger.error("ioBroker simple-api not reachable at %s: %s", self.config.base_url, exc)
            self._connected = False
            return False
        self._connected = response.status_code < 500
        return self._connected

    async def close(self) -> None:
        self._connected = False
        await self._client.aclose()

    def is_connected(self) -> bool:
        return self._connected

    async def get_object(self, state_id: str) -> dict[str, Any] | None:
        response = await self._client.get(f"/get/{quote(state_id, safe='')}")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict) or "error" in payload:
            return None
        return payload
