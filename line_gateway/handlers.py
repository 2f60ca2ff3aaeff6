"""Built-in event handlers."""

from __future__ import annotations

from line_gateway.api.reply import Reply
from line_gateway.webhook.events import FollowEvent, MessageEvent, TextMessage, WebhookEvent


class EchoHandler:
    """Echoes text messages back and greets new followers."""

    def __init__(self, greeting: str = "Thanks for adding me!") -> None:
        self._greeting = greeting

    def handle_webhook_event(self, event: WebhookEvent) -> Reply | None:
        if isinstance(event, MessageEvent) and isinstance(event.message, TextMessage):
            return Reply.text(event.message.text)
        if isinstance(event, FollowEvent):
            return Reply.text(self._greeting)
        return None
