"""Reply messages and their delivery to the reply endpoint."""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal, Protocol, Union

import httpx
from pydantic import Field

from line_gateway.errors import (
    ReplyTransportError,
    ReplyUnauthorizedError,
    ReplyUnexpectedStatusError,
)
from line_gateway.webhook.events import WebhookModel

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.line.me"
_REPLY_PATH = "/v2/bot/message/reply"
_MAX_MESSAGES = 5


class TextReplyMessage(WebhookModel):
    type: Literal["text"] = "text"
    text: str


class StickerReplyMessage(WebhookModel):
    type: Literal["sticker"] = "sticker"
    package_id: str
    sticker_id: str


ReplyMessage = Annotated[
    Union[TextReplyMessage, StickerReplyMessage], Field(discriminator="type"),
]


class Reply(WebhookModel):
    """A reply produced by a handler.

    Handlers leave ``reply_token`` empty; the pipeline stitches in the token
    of the event being answered before the reply is sent.
    """

    reply_token: str = ""
    messages: list[ReplyMessage] = Field(min_length=1, max_length=_MAX_MESSAGES)
    notification_disabled: bool = False

    @classmethod
    def text(cls, *texts: str, notification_disabled: bool = False) -> Reply:
        return cls(
            messages=[TextReplyMessage(text=t) for t in texts],
            notification_disabled=notification_disabled,
        )

    def with_reply_token(self, reply_token: str) -> Reply:
        return self.model_copy(update={"reply_token": reply_token})

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the reply endpoint's JSON schema.

        Raises ValueError if no reply token has been stitched in.
        """
        if not self.reply_token:
            raise ValueError("Reply token must be set before a reply is sent")
        return self.model_dump(mode="json", by_alias=True)


class ReplyTransport(Protocol):
    async def send(self, access_token: str, reply: Reply) -> None: ...


class HttpReplyTransport:
    """Posts replies to the Messaging API reply endpoint."""

    def __init__(
        self,
        api_base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = f"{api_base_url.rstrip('/')}{_REPLY_PATH}"
        self._timeout = timeout
        self._transport = transport

    async def send(self, access_token: str, reply: Reply) -> None:
        payload = reply.to_payload()
        headers = {"Authorization": f"Bearer {access_token}"}
        logger.debug("Sending reply with %d message(s)", len(reply.messages))

        try:
            async with httpx.AsyncClient(
                verify=True, timeout=self._timeout, transport=self._transport,
            ) as client:
                resp = await client.post(self._url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Reply request failed: %s", exc)
            raise ReplyTransportError(f"Request error: {exc}") from exc

        if resp.is_success:
            logger.debug("Reply request succeeded")
            return

        logger.error("Reply request failed with status %d", resp.status_code)
        if resp.status_code == 401:
            raise ReplyUnauthorizedError(resp.text)
        raise ReplyUnexpectedStatusError(resp.status_code, resp.text)
