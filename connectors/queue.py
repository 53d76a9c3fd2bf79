"""QueueConnector — hands hub events to an async consumer through a queue."""

from __future__ import annotations

import asyncio
import logging

from connectors.base import BaseConnector
from core.channel import EventMessage
from core.event_hub import EventHub

logger = logging.getLogger(__name__)


class QueueConnector(BaseConnector):
    """Buffers every event from its channels in an ``asyncio.Queue``.

    Each consumer (e.g. one SSE client) gets its own connector and reads
    with ``await get()`` or ``async for message in connector``. When the
    queue is bounded and full, new events are dropped.
    """

    name = "queue"

    def __init__(
        self,
        channels: list[str] | None = None,
        name: str | None = None,
        maxsize: int = 0,
        replay: bool = False,
    ):
        super().__init__(channels, name)
        self.replay = replay
        self.queue: asyncio.Queue[EventMessage] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def initialise_event_hub(self, hub: EventHub, channels: list[str]) -> QueueConnector:
        for channel in channels:
            self._subscribe(hub, channel, self._put, self.replay)
        return self

    async def connect(self, hub: EventHub, channels: list[str] | None = None) -> None:
        self._attach(hub, channels)

    async def disconnect(self) -> None:
        self._release()

    async def get(self) -> EventMessage:
        return await self.queue.get()

    def __aiter__(self) -> QueueConnector:
        return self

    async def __anext__(self) -> EventMessage:
        return await self.queue.get()

    def _put(self, message: EventMessage) -> None:
        try:
            self.queue.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "Consumer queue full, dropping event",
                extra={"connector": self.name, "source_channel": message.channel},
            )
