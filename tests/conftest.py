"""Shared test fixtures for line-messaging-gateway."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from line_gateway.api.reply import Reply
from line_gateway.audit.logger import AuditLogger
from line_gateway.channels.channel import Channel
from line_gateway.channels.registry import ChannelRegistry
from line_gateway.webhook.signature import compute_signature

CHANNEL_SECRET = "test-channel-secret"
CHANNEL_USER_ID = "U123"


class RecordingHandler:
    """Handler spy: records events and answers from a queue of replies."""

    def __init__(self, replies: list[Reply | None] | None = None) -> None:
        self.events: list[Any] = []
        self._replies = list(replies or [])

    def handle_webhook_event(self, event: Any) -> Reply | None:
        self.events.append(event)
        return self._replies.pop(0) if self._replies else None


class FakeTokenIssuer:
    def __init__(self, token: str = "access-token-1", error: Exception | None = None) -> None:
        self.calls: list[tuple[int, str]] = []
        self._token = token
        self._error = error

    async def issue(self, channel_id: int, channel_secret: str) -> str:
        self.calls.append((channel_id, channel_secret))
        if self._error:
            raise self._error
        if len(self.calls) == 1:
            return self._token
        return f"{self._token}-{len(self.calls)}"


class FakeReplyTransport:
    def __init__(self, errors: list[Exception | None] | None = None) -> None:
        self.sent: list[tuple[str, Reply]] = []
        self._errors = list(errors or [])

    async def send(self, access_token: str, reply: Reply) -> None:
        reply.to_payload()
        error = self._errors.pop(0) if self._errors else None
        if error:
            raise error
        self.sent.append((access_token, reply))


@pytest.fixture
def mock_audit_logger() -> MagicMock:
    return MagicMock(spec=AuditLogger)


@pytest.fixture
def config_dir() -> Path:
    return Path(__file__).parent.parent / "config"


# --- Factory functions for test data ---


def make_channel(**kwargs: Any) -> Channel:
    """Factory for Channel with sensible defaults."""
    defaults: dict[str, Any] = {
        "channel_id": 1000,
        "user_id": CHANNEL_USER_ID,
        "secret": CHANNEL_SECRET,
        "handler": RecordingHandler(),
    }
    defaults.update(kwargs)
    return Channel(**defaults)


def make_registry(*channels: Channel) -> ChannelRegistry:
    registry = ChannelRegistry()
    for channel in channels:
        registry.register(channel)
    return registry


def make_source(user_id: str = "Uuser") -> dict[str, Any]:
    return {"type": "user", "userId": user_id}


def make_event(event_type: str = "follow", reply_token: str | None = "tok1", **kwargs: Any) -> dict[str, Any]:
    """Factory for a raw webhook event dict."""
    event: dict[str, Any] = {
        "type": event_type,
        "timestamp": 0,
        "source": make_source(),
    }
    if reply_token is not None:
        event["replyToken"] = reply_token
    event.update(kwargs)
    return event


def make_text_event(text: str = "hello", reply_token: str | None = "tok1") -> dict[str, Any]:
    return make_event(
        "message", reply_token=reply_token,
        message={"type": "text", "id": "325708", "text": text},
    )


def make_body(
    events: list[dict[str, Any]] | None = None,
    destination: str = CHANNEL_USER_ID,
) -> bytes:
    return json.dumps({"destination": destination, "events": events or []}).encode()


def sign(body: bytes, secret: str = CHANNEL_SECRET) -> str:
    return compute_signature(secret, body).decode()
