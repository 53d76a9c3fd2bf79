"""Tests for EventHub: lazy channels, routing, wildcard fan-out, failures."""

import pytest

from core.channel import Channel, EventMessage
from core.errors import PublishError
from core.event_hub import WILDCARD_CHANNEL, EventHub


@pytest.fixture
def hub() -> EventHub:
    return EventHub()


# ── Construction ──────────────────────────────────────────────────────────────

def test_new_hub_has_only_wildcard(hub):
    assert list(hub.channels) == [WILDCARD_CHANNEL]
    assert WILDCARD_CHANNEL == "*"
    assert isinstance(hub.wildcard, Channel)
    assert hub.wildcard.name == "*"


def test_hubs_are_isolated():
    a, b = EventHub(), EventHub()
    a.publish("x", 1)
    assert "x" not in b
    assert b.wildcard.last_event is None


# ── Subscribe ─────────────────────────────────────────────────────────────────

def test_subscribe_adds_channel(hub):
    hub.subscribe("test", lambda m: None)
    assert len(hub.channels) == 2


def test_subscribe_same_channel_twice_does_not_duplicate(hub):
    hub.subscribe("test", lambda m: None)
    hub.subscribe("test", lambda m: None)
    assert len(hub.channels) == 2


def test_subscribe_unique_names_add_channels(hub):
    hub.subscribe("test", lambda m: None)
    hub.subscribe("another", lambda m: None)
    assert len(hub.channels) == 3


def test_subscribe_to_wildcard_does_not_add_channel(hub):
    hub.subscribe("*", lambda m: None)
    assert len(hub.channels) == 1
    assert len(hub.channels[WILDCARD_CHANNEL].callbacks) == 1


def test_subscribe_with_replay(hub):
    hub.publish("test", "retained")
    received = []
    hub.subscribe("test", received.append, replay=True)
    assert received == [EventMessage("test", "retained")]


def test_empty_channel_name_is_ordinary(hub):
    received = []
    hub.subscribe("", received.append)
    hub.publish("", 1)
    assert received == [EventMessage("", 1)]
    assert "" in hub


def test_wildcard_sees_empty_channel_name(hub):
    received = []
    hub.subscribe("*", received.append)
    hub.publish("", 1)
    assert received == [EventMessage("", 1)]
    assert hub.wildcard.last_message == EventMessage("", 1)


# ── Publish ───────────────────────────────────────────────────────────────────

def test_publish_calls_all_subscribers_and_wildcard(hub):
    calls = []
    hub.subscribe("*", lambda m: calls.append(("*", m.data)))
    hub.subscribe("test", lambda m: calls.append(("cb", m.data)))
    hub.subscribe("test", lambda m: calls.append(("cb2", m.data)))
    assert len(hub.channels) == 2
    hub.publish("test", True)
    assert calls == [("cb", True), ("cb2", True), ("*", True)]


def test_publish_creates_channel(hub):
    hub.publish("new channel", "created it!")
    assert hub.last_event("new channel") == "created it!"
    assert len(hub.channels) == 2
    hub.publish("another channel", True)
    assert len(hub.channels) == 3
    assert hub.last_event("another channel") is True


def test_unsubscribe_keeps_channel(hub):
    received = []
    sub = hub.subscribe("tester", received.append)
    hub.publish("tester", "this is a test")
    assert received[0].data == "this is a test"
    count = len(hub.channels)
    callbacks = len(hub.channels["tester"].callbacks)
    sub.unsubscribe()
    assert len(hub.channels) == count
    assert len(hub.channels["tester"].callbacks) == callbacks - 1


def test_publish_does_not_leak_to_other_channels(hub):
    received = []
    hub.subscribe("a", received.append)
    hub.publish("b", 1)
    assert received == []


# ── last_event ────────────────────────────────────────────────────────────────

def test_last_event_on_new_name_creates_channel(hub):
    assert hub.last_event("newest channel") is None
    assert len(hub.channels) == 2


def test_get_does_not_create(hub):
    assert hub.get("nope") is None
    assert "nope" not in hub
    assert len(hub.channels) == 1


# ── Wildcard ──────────────────────────────────────────────────────────────────

def test_wildcard_receives_every_channel_in_order(hub):
    received = []
    hub.subscribe("*", received.append)
    hub.publish("orders", 42)
    hub.publish("users", "x")
    assert [m.data for m in received] == [42, "x"]


def test_wildcard_envelope_reports_original_channel(hub):
    received = []
    hub.subscribe("*", received.append)
    hub.publish("orders", 42)
    assert received == [EventMessage("orders", 42)]


def test_wildcard_retains_last_event_from_any_channel(hub):
    hub.publish("orders", 1)
    hub.publish("users", 2)
    assert hub.last_event("*") == 2
    replayed = []
    hub.subscribe("*", replayed.append, replay=True)
    assert replayed == [EventMessage("users", 2)]


def test_publish_directly_to_wildcard_delivers_once(hub):
    received = []
    hub.subscribe("*", received.append)
    hub.publish("*", "direct")
    assert received == [EventMessage("*", "direct")]
    assert len(hub.channels) == 1


def test_wildcard_delivery_once_per_publish(hub):
    received = []
    hub.subscribe("*", received.append)
    hub.publish("test", True)
    assert len(received) == 1


# ── Failures ──────────────────────────────────────────────────────────────────

def test_failing_subscriber_does_not_block_wildcard(hub):
    wildcard = []

    def boom(message):
        raise RuntimeError("nope")

    hub.subscribe("test", boom)
    hub.subscribe("*", wildcard.append)
    with pytest.raises(PublishError) as exc_info:
        hub.publish("test", 1)
    assert [m.data for m in wildcard] == [1]
    assert [(f.channel, f.subscription_id) for f in exc_info.value.failures] == [("test", 1)]
    assert hub.last_event("test") == 1


def test_failures_from_channel_and_wildcard_are_combined(hub):
    def boom(message):
        raise ValueError(message.channel)

    hub.subscribe("test", boom)
    hub.subscribe("*", boom)
    with pytest.raises(PublishError) as exc_info:
        hub.publish("test", 1)
    assert [f.channel for f in exc_info.value.failures] == ["test", "*"]


def test_subscriber_may_publish_to_another_channel(hub):
    received = []
    hub.subscribe("ping", lambda m: hub.publish("pong", m.data + 1))
    hub.subscribe("pong", received.append)
    hub.publish("ping", 1)
    assert received == [EventMessage("pong", 2)]
    assert hub.last_event("*") == 1
