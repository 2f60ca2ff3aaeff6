"""Channels: one bot credential plus the handler answering its events."""

from __future__ import annotations

from collections.abc import Awaitable
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from line_gateway.api.reply import Reply
    from line_gateway.webhook.events import WebhookEvent


class WebhookEventHandler(Protocol):
    """Business logic for one channel.

    Returning a Reply answers the event; returning None sends nothing.
    Coroutine implementations are awaited.
    """

    def handle_webhook_event(
        self, event: WebhookEvent,
    ) -> Reply | None | Awaitable[Reply | None]: ...


class Channel:
    """A registered bot credential.

    ``user_id`` is the bot's user id, which deliveries carry as their
    ``destination``; ``channel_id`` is the numeric id used to issue access
    tokens. The secret is fixed at construction. ``access_token`` may be
    seeded with a pre-issued token and is otherwise filled on first reply.
    """

    def __init__(
        self,
        channel_id: int,
        user_id: str,
        secret: str,
        handler: WebhookEventHandler,
        access_token: str | None = None,
    ) -> None:
        self._channel_id = channel_id
        self._user_id = user_id
        self._secret = secret
        self.handler = handler
        self.access_token = access_token

    @property
    def channel_id(self) -> int:
        return self._channel_id

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def secret(self) -> str:
        return self._secret

    def invalidate_token(self) -> None:
        self.access_token = None

    def __repr__(self) -> str:
        # never includes the secret or token
        return f"Channel(channel_id={self._channel_id}, user_id={self._user_id!r})"
