"""Channel — subscriber bookkeeping and synchronous fan-out for one topic."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar

from core.errors import DeliveryFailure, PublishError

logger = logging.getLogger(__name__)

TData = TypeVar("TData")


@dataclass(frozen=True)
class EventMessage(Generic[TData]):
    """Envelope handed to every callback: source channel plus payload."""
    channel: str
    data: TData

    def to_dict(self) -> dict:
        return {"channel": self.channel, "data": self.data}


EventCallback = Callable[[EventMessage[Any]], None]


@dataclass(frozen=True)
class Subscription:
    """Handle returned by ``subscribe``. ``unsubscribe()`` is idempotent."""
    id: int
    channel: str
    _remove: Callable[[], None] = field(repr=False, compare=False)

    def unsubscribe(self) -> None:
        self._remove()

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc) -> None:
        self.unsubscribe()


class Channel(Generic[TData]):
    """Manages the callbacks subscribed to a single named channel.

    Callbacks are keyed by a per-channel id that starts at 1 and is never
    reused. ``publish`` calls them in id order before returning and retains
    the published value so late subscribers can ask for a replay.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._last_id = 0
        self._callbacks: dict[int, EventCallback] = {}
        self._last_message: EventMessage[TData] | None = None

    # ── Introspection ─────────────────────────────────────────────────────────

    @property
    def name(self) -> str:
        return self._name

    @property
    def callbacks(self) -> dict[int, EventCallback]:
        """Live id → callback mapping, in subscription order."""
        return self._callbacks

    @property
    def last_event(self) -> TData | None:
        """Most recently published payload, or None if nothing was published."""
        return self._last_message.data if self._last_message is not None else None

    @property
    def last_message(self) -> EventMessage[TData] | None:
        return self._last_message

    @property
    def has_last_event(self) -> bool:
        return self._last_message is not None

    def __len__(self) -> int:
        return len(self._callbacks)

    def __repr__(self) -> str:
        return f"Channel({self._name!r}, subscribers={len(self._callbacks)})"

    # ── Pub/sub ───────────────────────────────────────────────────────────────

    def subscribe(self, callback: EventCallback, replay: bool = False) -> Subscription:
        """Register *callback*; with *replay*, hand it the retained event right away.

        If the replayed callback raises, it is unregistered again and the
        exception propagates to the caller.
        """
        self._last_id += 1
        sub_id = self._last_id
        self._callbacks[sub_id] = callback

        if replay and self._last_message is not None:
            try:
                callback(self._last_message)
            except Exception:
                self._callbacks.pop(sub_id, None)
                raise

        return Subscription(id=sub_id, channel=self._name, _remove=lambda: self._remove(sub_id))

    def publish(self, data: TData, origin: str | None = None) -> None:
        """Retain *data* and deliver it to every current subscriber.

        *origin* overrides the envelope's channel name; the hub uses it so
        wildcard subscribers see where an event was originally published.

        Raises:
            PublishError: after fan-out completes, if any callback raised.
        """
        message = EventMessage(channel=self._name if origin is None else origin, data=data)
        self._last_message = message

        failures: list[DeliveryFailure] = []
        # Snapshot: callbacks added during fan-out wait for the next publish
        for sub_id, callback in list(self._callbacks.items()):
            if sub_id not in self._callbacks:
                continue  # removed by an earlier callback in this fan-out
            try:
                callback(message)
            except Exception as e:
                logger.exception(
                    "Subscriber raised during fan-out",
                    extra={"subscription_id": sub_id},
                )
                failures.append(DeliveryFailure(self._name, sub_id, e))

        if failures:
            raise PublishError(failures)

    def _remove(self, sub_id: int) -> None:
        self._callbacks.pop(sub_id, None)
