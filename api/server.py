"""FastAPI service layer — expose an EventHub over HTTP and SSE."""

import asyncio
import json
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import StreamingResponse

from api.models import (
    ChannelInfo,
    CreateWebhookRequest,
    LastEventResponse,
    PublishRequest,
    PublishResponse,
    WebhookResponse,
)
from connectors.journal import JournalConnector
from connectors.queue import QueueConnector
from connectors.registry import ConnectorRegistry
from connectors.webhook import WebhookConnector
from core.config import HubSettings
from core.errors import PublishError
from core.event_hub import WILDCARD_CHANNEL, EventHub
from store.event_store import EventStore

logger = logging.getLogger(__name__)

# ── Singletons ────────────────────────────────────────────────────────────────
# Module-level so tests can swap them out before issuing requests.

_settings = HubSettings.from_env()
_hub = EventHub()
_event_store = EventStore(_settings.db_url)
_journal = JournalConnector(_event_store, maxsize=_settings.queue_size)
_connectors = ConnectorRegistry()
_connectors.register(_journal)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await _event_store.init()
    await _journal.connect(_hub, [WILDCARD_CHANNEL])
    yield
    await _connectors.disconnect_all()


app = FastAPI(
    title="Event Hub API",
    description="In-process publish/subscribe hub with HTTP, SSE and webhook bridges.",
    version="0.1.0",
    lifespan=lifespan,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _webhook_response(connector: WebhookConnector) -> WebhookResponse:
    return WebhookResponse(**connector.describe())


def _get_webhook(name: str) -> WebhookConnector:
    try:
        connector = _connectors.get(name)
    except KeyError:
        raise HTTPException(404, detail=f"Webhook '{name}' not found")
    if not isinstance(connector, WebhookConnector):
        raise HTTPException(404, detail=f"Webhook '{name}' not found")
    return connector


# ── Routes ────────────────────────────────────────────────────────────────────

@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/channels", response_model=list[ChannelInfo])
async def list_channels():
    """List every channel the hub has created, wildcard included."""
    return [
        ChannelInfo(name=ch.name, subscribers=len(ch), has_last_event=ch.has_last_event)
        for ch in _hub.channels.values()
    ]


@app.post("/channels/{name}/publish", response_model=PublishResponse)
async def publish(name: str, req: PublishRequest):
    """Publish to a channel. Subscriber failures are reported, not fatal."""
    try:
        _hub.publish(name, req.data)
    except PublishError as e:
        logger.warning("Publish had failing subscribers", extra={"failures": len(e.failures)})
        return PublishResponse(channel=name, failures=[f.to_dict() for f in e.failures])
    return PublishResponse(channel=name)


@app.get("/channels/{name}/last", response_model=LastEventResponse)
async def last_event(name: str):
    """Return the retained event of a channel (creates the channel if new)."""
    data = _hub.last_event(name)
    return LastEventResponse(channel=name, published=_hub.channels[name].has_last_event, data=data)


_SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}


@app.get("/channels/{name}/stream")
async def stream_channel(
    name: str,
    replay: bool = False,
    limit: int | None = Query(default=None, ge=1),
):
    """Stream a channel's events as Server-Sent Events.

    Each event is a JSON ``{"channel", "data"}`` object on a ``data:`` line.
    Streaming ``*`` yields every event on the hub. A comment line
    (``: heartbeat``) is sent every 30 s to keep the connection alive.
    With *limit*, the stream ends after that many events.
    """
    consumer = QueueConnector([name], maxsize=_settings.queue_size, replay=replay)
    await consumer.connect(_hub)

    async def generator():
        sent = 0
        try:
            while limit is None or sent < limit:
                try:
                    message = await asyncio.wait_for(consumer.get(), timeout=30.0)
                except asyncio.TimeoutError:
                    yield ": heartbeat\n\n"
                    continue
                yield f"data: {json.dumps(message.to_dict(), default=str)}\n\n"
                sent += 1
        except asyncio.CancelledError:
            pass
        finally:
            await consumer.disconnect()

    return StreamingResponse(generator(), media_type="text/event-stream", headers=_SSE_HEADERS)


@app.get("/events")
async def list_events(channel: str | None = None, limit: int = Query(default=100, ge=1, le=1000)):
    """Journal of published events, most recent first."""
    return await _event_store.list_events(channel=channel, limit=limit)


# ── Webhook routes ────────────────────────────────────────────────────────────

@app.post("/webhooks", response_model=WebhookResponse, status_code=201)
async def create_webhook(req: CreateWebhookRequest):
    """Forward events from the given channels to an HTTP endpoint."""
    if req.name in _connectors:
        raise HTTPException(409, detail=f"Connector '{req.name}' already exists")
    connector = WebhookConnector(
        req.url,
        channels=req.channels,
        name=req.name,
        timeout=_settings.webhook_timeout,
        maxsize=_settings.queue_size,
    )
    await connector.connect(_hub)
    _connectors.register(connector)
    return _webhook_response(connector)


@app.get("/webhooks", response_model=list[WebhookResponse])
async def list_webhooks():
    return [
        _webhook_response(c) for c in _connectors.all() if isinstance(c, WebhookConnector)
    ]


@app.get("/webhooks/{name}", response_model=WebhookResponse)
async def get_webhook(name: str):
    return _webhook_response(_get_webhook(name))


@app.delete("/webhooks/{name}", status_code=204)
async def delete_webhook(name: str):
    """Disconnect and remove a webhook."""
    connector = _get_webhook(name)
    await connector.disconnect()
    _connectors.remove(name)
