"""API request and response models."""

from typing import Any

from pydantic import BaseModel, Field

from core.event_hub import WILDCARD_CHANNEL


class ChannelInfo(BaseModel):
    name: str
    subscribers: int
    has_last_event: bool


class PublishRequest(BaseModel):
    data: Any = None


class FailureInfo(BaseModel):
    channel: str
    subscription_id: int
    error: str


class PublishResponse(BaseModel):
    channel: str
    failures: list[FailureInfo] = []


class LastEventResponse(BaseModel):
    channel: str
    published: bool
    data: Any = None


class CreateWebhookRequest(BaseModel):
    name: str
    url: str
    channels: list[str] = Field(default_factory=lambda: [WILDCARD_CHANNEL])


class WebhookResponse(BaseModel):
    name: str
    url: str
    channels: list[str]
    connected: bool
    delivered: int = 0
    dropped: int = 0
    errors: int = 0
