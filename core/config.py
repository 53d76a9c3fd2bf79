"""Runtime settings read from the environment (and a .env file, if present)."""

from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel

_PREFIX = "HUB_"


class HubSettings(BaseModel):
    log_level: str = "INFO"
    log_json: bool = True
    db_url: str = "sqlite+aiosqlite:///events.db"
    queue_size: int = 1000           # per-connector buffer; 0 = unbounded
    webhook_timeout: float = 10.0    # seconds

    @classmethod
    def from_env(cls, dotenv: bool = True) -> HubSettings:
        """Build settings from ``HUB_*`` variables; unset ones keep their defaults."""
        if dotenv:
            load_dotenv()
        values = {
            name: os.environ[_PREFIX + name.upper()]
            for name in cls.model_fields
            if _PREFIX + name.upper() in os.environ
        }
        return cls.model_validate(values)
