"""WebhookConnector — POST every event to an HTTP endpoint."""

from __future__ import annotations

import json
import logging

import httpx

from connectors.base import QueuedConnector
from core.channel import EventMessage

logger = logging.getLogger(__name__)


class WebhookConnector(QueuedConnector):
    """Forwards events as JSON ``{"channel": ..., "data": ...}`` POST bodies.

    Non-2xx responses count as delivery errors. Payloads must be JSON
    serialisable; anything else is sent via ``str()``.
    """

    name = "webhook"

    def __init__(
        self,
        url: str,
        channels: list[str] | None = None,
        name: str | None = None,
        timeout: float = 10.0,
        maxsize: int = 0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(channels, name, maxsize=maxsize)
        self.url = url
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def open(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def deliver(self, message: EventMessage) -> None:
        if self._client is None:
            raise RuntimeError(f"Webhook '{self.name}' is not connected")
        resp = await self._client.post(
            self.url,
            content=json.dumps(message.to_dict(), default=str),
            headers={"Content-Type": "application/json"},
        )
        resp.raise_for_status()
        logger.debug(
            "Webhook delivered",
            extra={"connector": self.name, "status_code": resp.status_code},
        )

    def describe(self) -> dict:
        return {
            "name": self.name,
            "url": self.url,
            "channels": self.channels,
            "connected": self.connected,
            "delivered": self.delivered,
            "dropped": self.dropped,
            "errors": self.errors,
        }
