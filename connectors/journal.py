"""JournalConnector — append hub events to the SQLite event journal."""

from __future__ import annotations

from connectors.base import QueuedConnector
from core.channel import EventMessage
from store.event_store import EventStore


class JournalConnector(QueuedConnector):
    name = "journal"

    def __init__(
        self,
        store: EventStore,
        channels: list[str] | None = None,
        name: str | None = None,
        maxsize: int = 0,
    ):
        super().__init__(channels, name, maxsize=maxsize)
        self.store = store

    async def deliver(self, message: EventMessage) -> None:
        await self.store.append(message)
