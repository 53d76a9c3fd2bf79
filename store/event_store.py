"""EventStore — SQLite-backed journal of published events."""

import json
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import create_async_engine

from core.channel import EventMessage

# ── Schema ───────────────────────────────────────────────────────────────────

_metadata = sa.MetaData()

_events = sa.Table(
    "events",
    _metadata,
    sa.Column("id",           sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("channel",      sa.String,  nullable=False, index=True),
    sa.Column("data_json",    sa.Text,    nullable=False),
    sa.Column("published_at", sa.String,  nullable=False),
)


# ── Store ────────────────────────────────────────────────────────────────────

class EventStore:
    """Append-only event journal. Written by JournalConnector, read by the API."""

    def __init__(self, db_url: str = "sqlite+aiosqlite:///events.db"):
        self._engine = create_async_engine(db_url, echo=False)

    async def init(self) -> None:
        """Create tables if they don't exist. Call once at startup."""
        async with self._engine.begin() as conn:
            await conn.run_sync(_metadata.create_all)

    async def dispose(self) -> None:
        await self._engine.dispose()

    async def append(self, message: EventMessage) -> int:
        """Record one event; returns its journal id."""
        row = {
            "channel":      message.channel,
            "data_json":    json.dumps(message.data, default=str),
            "published_at": datetime.now(timezone.utc).isoformat(),
        }
        async with self._engine.begin() as conn:
            result = await conn.execute(sa.insert(_events).values(**row))
            event_id = result.inserted_primary_key[0]
        return event_id

    async def list_events(self, channel: str | None = None, limit: int = 100) -> list[dict]:
        """Return journal rows, most recent first, with ``data`` decoded."""
        query = sa.select(_events)
        if channel:
            query = query.where(_events.c.channel == channel)
        query = query.order_by(_events.c.id.desc()).limit(limit)

        async with self._engine.connect() as conn:
            rows = (await conn.execute(query)).fetchall()
        return [
            {
                "id":           r.id,
                "channel":      r.channel,
                "data":         json.loads(r.data_json),
                "published_at": r.published_at,
            }
            for r in rows
        ]

    async def count(self, channel: str | None = None) -> int:
        query = sa.select(sa.func.count()).select_from(_events)
        if channel:
            query = query.where(_events.c.channel == channel)
        async with self._engine.connect() as conn:
            return (await conn.execute(query)).scalar_one()
