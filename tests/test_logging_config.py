"""Tests for JSON logging, publish trace context, and settings."""

import json
import logging

from core.config import HubSettings
from core.event_hub import EventHub
from core.logging_config import (
    JsonFormatter,
    bind_publish_context,
    get_channel,
    get_trace_id,
)


def _make_record(msg: str, level=logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="test", level=level, pathname="", lineno=0,
        msg=msg, args=(), exc_info=None,
    )
    for k, v in extra.items():
        setattr(record, k, v)
    return record


# ── JsonFormatter ─────────────────────────────────────────────────────────────

def test_json_formatter_valid_json():
    parsed = json.loads(JsonFormatter().format(_make_record("hello world")))
    assert parsed["msg"] == "hello world"
    assert parsed["level"] == "INFO"
    assert "ts" in parsed
    assert parsed["trace_id"] == "-"
    assert parsed["channel"] == "-"


def test_json_formatter_extra_fields():
    parsed = json.loads(JsonFormatter().format(_make_record("delivered", connector="journal", delivered=3)))
    assert parsed["connector"] == "journal"
    assert parsed["delivered"] == 3


def test_json_formatter_includes_publish_context():
    with bind_publish_context("orders", trace_id="trace-xyz"):
        parsed = json.loads(JsonFormatter().format(_make_record("hi")))
    assert parsed["trace_id"] == "trace-xyz"
    assert parsed["channel"] == "orders"


# ── bind_publish_context ──────────────────────────────────────────────────────

def test_context_is_restored_after_nested_binding():
    with bind_publish_context("outer") as outer_id:
        with bind_publish_context("inner") as inner_id:
            assert get_channel() == "inner"
            assert inner_id != outer_id
        assert get_channel() == "outer"
        assert get_trace_id() == outer_id
    assert get_channel() == "-"
    assert get_trace_id() == "-"


def test_subscribers_see_publish_context():
    hub = EventHub()
    seen = []
    hub.subscribe("orders", lambda m: seen.append((get_channel(), get_trace_id())))
    hub.subscribe("*", lambda m: seen.append((get_channel(), get_trace_id())))
    hub.publish("orders", 1)
    assert [c for c, _ in seen] == ["orders", "orders"]
    assert seen[0][1] == seen[1][1] != "-"
    assert get_channel() == "-"


# ── HubSettings ───────────────────────────────────────────────────────────────

def test_settings_defaults(monkeypatch):
    for var in ("HUB_LOG_LEVEL", "HUB_LOG_JSON", "HUB_DB_URL", "HUB_QUEUE_SIZE", "HUB_WEBHOOK_TIMEOUT"):
        monkeypatch.delenv(var, raising=False)
    s = HubSettings.from_env(dotenv=False)
    assert s.log_level == "INFO"
    assert s.queue_size == 1000


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("HUB_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("HUB_LOG_JSON", "false")
    monkeypatch.setenv("HUB_QUEUE_SIZE", "5")
    monkeypatch.setenv("HUB_DB_URL", "sqlite+aiosqlite:///:memory:")
    s = HubSettings.from_env(dotenv=False)
    assert s.log_level == "DEBUG"
    assert s.log_json is False
    assert s.queue_size == 5
    assert s.db_url.endswith(":memory:")
