"""Errors raised by channel fan-out."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DeliveryFailure:
    """One subscriber callback that raised while an event was delivered."""
    channel: str
    subscription_id: int
    error: BaseException

    def to_dict(self) -> dict:
        return {
            "channel": self.channel,
            "subscription_id": self.subscription_id,
            "error": f"{type(self.error).__name__}: {self.error}",
        }


class PublishError(Exception):
    """Raised after a publish finished fan-out but one or more callbacks failed.

    Every subscriber has already been offered the event when this is raised;
    ``failures`` lists the callbacks that raised, in delivery order.
    """

    def __init__(self, failures: list[DeliveryFailure]):
        self.failures = list(failures)
        channels = sorted({f.channel for f in self.failures})
        super().__init__(
            f"{len(self.failures)} subscriber(s) failed on channel(s) {', '.join(channels)}"
        )
