"""LINE Messaging API webhook gateway.

Register channels, hand webhook deliveries to ``WebhookPipeline.handle_webhook``
and answer events from per-channel handlers.
"""

from line_gateway.api.oauth import AccessTokenIssuer, HttpAccessTokenIssuer, get_or_issue_token
from line_gateway.api.reply import (
    HttpReplyTransport,
    Reply,
    ReplyTransport,
    StickerReplyMessage,
    TextReplyMessage,
)
from line_gateway.channels.channel import Channel, WebhookEventHandler
from line_gateway.channels.registry import ChannelRegistry
from line_gateway.errors import (
    DestinationError,
    HandlerError,
    MessagingError,
    OAuthError,
    ReplyError,
    RequestBodyError,
    SignatureError,
)
from line_gateway.pipeline import WebhookPipeline
from line_gateway.webhook.request import RequestBody
from line_gateway.webhook.signature import verify

__all__ = [
    "AccessTokenIssuer",
    "Channel",
    "ChannelRegistry",
    "DestinationError",
    "HandlerError",
    "HttpAccessTokenIssuer",
    "HttpReplyTransport",
    "MessagingError",
    "OAuthError",
    "Reply",
    "ReplyError",
    "ReplyTransport",
    "RequestBody",
    "RequestBodyError",
    "SignatureError",
    "StickerReplyMessage",
    "TextReplyMessage",
    "WebhookEventHandler",
    "WebhookPipeline",
    "get_or_issue_token",
    "verify",
]
