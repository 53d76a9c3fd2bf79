"""Connector base classes — bridge hub events to an outside transport."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

from core.channel import EventCallback, EventMessage, Subscription
from core.event_hub import WILDCARD_CHANNEL, EventHub

logger = logging.getLogger(__name__)


class BaseConnector(ABC):
    """All connectors inherit from this class.

    A connector only ever talks to a hub through ``subscribe``, ``publish``
    and ``last_event``; the hub never learns that connectors exist. One
    connector may service several hubs.
    """

    name: str = "base"

    def __init__(self, channels: list[str] | None = None, name: str | None = None):
        self.channels: list[str] = list(channels) if channels else [WILDCARD_CHANNEL]
        if name:
            self.name = name
        self.event_hubs: list[EventHub] = []
        self._subscriptions: list[tuple[EventHub, Subscription]] = []

    def add_event_hub(self, hub: EventHub) -> BaseConnector:
        """Service *hub* as well, subscribing to this connector's channels."""
        self.event_hubs.append(hub)
        self.initialise_event_hub(hub, self.channels)
        return self

    @abstractmethod
    def initialise_event_hub(self, hub: EventHub, channels: list[str]) -> BaseConnector:
        """Set up the subscriptions this connector needs on *hub*."""
        ...

    @abstractmethod
    async def connect(self, hub: EventHub, channels: list[str] | None = None) -> None:
        """Open the outside transport and start bridging *channels* of *hub*."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Stop bridging and release the outside transport."""
        ...

    @property
    def subscriptions(self) -> list[Subscription]:
        return [sub for _, sub in self._subscriptions]

    def _subscribe(
        self,
        hub: EventHub,
        channel: str,
        callback: EventCallback,
        replay: bool = False,
    ) -> Subscription:
        sub = hub.subscribe(channel, callback, replay)
        self._subscriptions.append((hub, sub))
        return sub

    def _attach(self, hub: EventHub, channels: list[str] | None = None) -> None:
        """Register *hub* unless already serviced.

        A *channels* list that differs from the current one replaces it, and
        every serviced hub is re-subscribed to the new list.
        """
        if channels is not None and list(channels) != self.channels:
            self.channels = list(channels)
            for registered in self.event_hubs:
                self._unsubscribe_hub(registered)
                self.initialise_event_hub(registered, self.channels)
        if hub not in self.event_hubs:
            self.add_event_hub(hub)

    def _unsubscribe_hub(self, hub: EventHub) -> None:
        kept = []
        for owner, sub in self._subscriptions:
            if owner is hub:
                sub.unsubscribe()
            else:
                kept.append((owner, sub))
        self._subscriptions = kept

    def _release(self) -> None:
        """Unsubscribe everything this connector subscribed. Safe to repeat."""
        for _, sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions.clear()
        self.event_hubs.clear()


class QueuedConnector(BaseConnector):
    """Connector whose hub callbacks only enqueue; a pump task does the I/O.

    Hub fan-out is synchronous, so callbacks must not block. Each message is
    put on an ``asyncio.Queue`` and a background task awaits ``deliver`` for
    it in arrival order. ``deliver`` errors are logged and counted, never
    raised back into the publishing code.
    """

    def __init__(
        self,
        channels: list[str] | None = None,
        name: str | None = None,
        maxsize: int = 0,
        replay: bool = False,
    ):
        super().__init__(channels, name)
        self.replay = replay
        self._queue: asyncio.Queue[EventMessage] = asyncio.Queue(maxsize=maxsize)
        self._pump: asyncio.Task | None = None
        self.delivered = 0
        self.dropped = 0
        self.errors = 0

    @property
    def connected(self) -> bool:
        return self._pump is not None and not self._pump.done()

    # ── Transport hooks ──────────────────────────────────────────────────────

    async def open(self) -> None:
        """Open the outside transport. Default: nothing to open."""

    async def close(self) -> None:
        """Close the outside transport. Default: nothing to close."""

    @abstractmethod
    async def deliver(self, message: EventMessage) -> None:
        """Send one message over the outside transport."""
        ...

    # ── Connector contract ───────────────────────────────────────────────────

    def initialise_event_hub(self, hub: EventHub, channels: list[str]) -> QueuedConnector:
        for channel in channels:
            self._subscribe(hub, channel, self._enqueue, self.replay)
        return self

    async def connect(self, hub: EventHub, channels: list[str] | None = None) -> None:
        await self.open()
        if self._pump is None or self._pump.done():
            self._pump = asyncio.create_task(self._run(), name=f"connector:{self.name}")
        self._attach(hub, channels)
        logger.info(
            "Connector connected",
            extra={"connector": self.name, "channels": self.channels},
        )

    async def disconnect(self) -> None:
        self._release()
        if self._pump is not None:
            await self._queue.join()
            self._pump.cancel()
            try:
                await self._pump
            except asyncio.CancelledError:
                pass
            self._pump = None
        await self.close()
        logger.info(
            "Connector disconnected",
            extra={"connector": self.name, "delivered": self.delivered, "errors": self.errors},
        )

    # ── Internals ────────────────────────────────────────────────────────────

    def _enqueue(self, message: EventMessage) -> None:
        # nothing drains the queue until connect() starts the pump
        if not self.connected:
            self.dropped += 1
            logger.debug(
                "Connector not connected, dropping event",
                extra={"connector": self.name, "source_channel": message.channel},
            )
            return
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "Connector queue full, dropping event",
                extra={"connector": self.name, "source_channel": message.channel},
            )

    async def _run(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                await self.deliver(message)
                self.delivered += 1
            except Exception as e:
                self.errors += 1
                logger.error(
                    "Connector delivery failed: %s", e,
                    extra={"connector": self.name, "source_channel": message.channel},
                )
            finally:
                self._queue.task_done()
