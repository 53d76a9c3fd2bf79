"""EventHub — named channels plus a wildcard channel that sees every event."""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from core.channel import Channel, EventCallback, Subscription
from core.errors import DeliveryFailure, PublishError
from core.logging_config import bind_publish_context

logger = logging.getLogger(__name__)

TData = TypeVar("TData")

# Reserved channel name; its subscribers receive every event published on the hub
WILDCARD_CHANNEL = "*"


class EventHub:
    """Publish/subscribe hub for loosely coupled, in-process event passing.

    Channels are created on first use by ``subscribe``, ``publish`` or
    ``last_event`` and live as long as the hub. Every publish is also
    delivered to the wildcard channel, once, with the envelope naming the
    channel the event was actually published to.

    Example::

        hub = EventHub()
        sub = hub.subscribe("user_login", lambda msg: print(msg.data))
        hub.publish("user_login", "alice")      # prints: alice
        hub.last_event("user_login")            # "alice"
        sub.unsubscribe()
    """

    def __init__(self) -> None:
        self._channels: dict[str, Channel[Any]] = {
            WILDCARD_CHANNEL: Channel(WILDCARD_CHANNEL),
        }

    @property
    def channels(self) -> dict[str, Channel[Any]]:
        """Live name → Channel mapping, wildcard included."""
        return self._channels

    @property
    def wildcard(self) -> Channel[Any]:
        return self._channels[WILDCARD_CHANNEL]

    def get(self, channel: str) -> Channel[Any] | None:
        """Return the named channel without creating it."""
        return self._channels.get(channel)

    def __contains__(self, channel: object) -> bool:
        return channel in self._channels

    def _channel(self, name: str) -> Channel[Any]:
        if name not in self._channels:
            self._channels[name] = Channel(name)
            logger.debug("Channel created", extra={"channel_name": name})
        return self._channels[name]

    # ── Pub/sub ───────────────────────────────────────────────────────────────

    def subscribe(
        self,
        channel: str,
        callback: EventCallback,
        replay: bool = False,
    ) -> Subscription:
        """Subscribe *callback* to *channel*, creating the channel if needed."""
        return self._channel(channel).subscribe(callback, replay)

    def publish(self, channel: str, data: TData) -> None:
        """Deliver *data* to *channel*'s subscribers, then to wildcard subscribers.

        Wildcard delivery happens even if a subscriber of the named channel
        raised. Publishing to the wildcard name itself delivers only once.

        Raises:
            PublishError: after all delivery, listing every failed callback.
        """
        target = self._channel(channel)
        failures: list[DeliveryFailure] = []

        with bind_publish_context(channel):
            logger.debug("Publishing", extra={"subscribers": len(target)})
            try:
                target.publish(data)
            except PublishError as e:
                failures.extend(e.failures)

            if target is not self.wildcard:
                try:
                    self.wildcard.publish(data, origin=channel)
                except PublishError as e:
                    failures.extend(e.failures)

        if failures:
            raise PublishError(failures)

    def last_event(self, channel: str) -> Any:
        """Most recent payload published to *channel*, or None.

        Looking up an unknown name creates that channel.
        """
        return self._channel(channel).last_event
