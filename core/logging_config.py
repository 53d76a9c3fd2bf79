"""Structured JSON logging with per-publish trace context via contextvars."""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

# Bound for the duration of one EventHub.publish call, so every log line
# emitted by subscribers during that fan-out carries the same ids
_trace_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "trace_id", default="-"
)
_channel_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "channel", default="-"
)

# Fields that belong to LogRecord itself — we strip them from the "extra" dump
_STDLIB_FIELDS = frozenset({
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
    "created", "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "message", "taskName",
})


class JsonFormatter(logging.Formatter):
    """Emit one compact JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        data: dict = {
            "ts":       datetime.fromtimestamp(record.created, tz=timezone.utc)
                        .strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level":    record.levelname,
            "logger":   record.name,
            "msg":      record.message,
            "trace_id": _trace_id_var.get(),
            "channel":  _channel_var.get(),
        }
        for key, val in record.__dict__.items():
            if key not in _STDLIB_FIELDS and not key.startswith("_"):
                data[key] = val

        if record.exc_info:
            data["exc"] = self.formatException(record.exc_info)

        return json.dumps(data, default=str)


def setup_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Replace the root logger's handlers with a single stdout handler."""
    handler = logging.StreamHandler(sys.stdout)
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s  %(name)s  %(message)s"))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


@contextmanager
def bind_publish_context(channel: str, trace_id: str | None = None) -> Iterator[str]:
    """Bind *channel* and a trace id for the enclosed block; yields the trace id.

    Nested publishes (a subscriber publishing in turn) get their own ids and
    restore the outer ones on exit.
    """
    trace_id = trace_id or uuid.uuid4().hex[:12]
    trace_token = _trace_id_var.set(trace_id)
    channel_token = _channel_var.set(channel)
    try:
        yield trace_id
    finally:
        _channel_var.reset(channel_token)
        _trace_id_var.reset(trace_token)


def get_trace_id() -> str:
    return _trace_id_var.get()


def get_channel() -> str:
    return _channel_var.get()
