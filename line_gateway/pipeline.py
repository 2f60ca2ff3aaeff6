"""Webhook pipeline — parse, authenticate, dispatch, reply.

Pipeline stages for one delivery:
1. Parse the raw body into a RequestBody (destination + events)
2. Look up the destination channel and take its lock
3. Verify the signature over the raw bytes with the channel secret
4. For each event in order: run the handler, stitch the reply token,
   ensure an access token, send the reply

Every stage raises a MessagingError subclass on failure. The first failure
ends the delivery; events after it are not dispatched.
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING

from line_gateway.api.oauth import get_or_issue_token
from line_gateway.errors import (
    DestinationError,
    HandlerError,
    OAuthError,
    ReplyError,
    ReplyUnauthorizedError,
    RequestBodyError,
    SignatureError,
)
from line_gateway.models import AuditEvent, AuditEventType, RiskLevel
from line_gateway.webhook.request import RequestBody
from line_gateway.webhook.signature import verify

if TYPE_CHECKING:
    from line_gateway.api.oauth import AccessTokenIssuer
    from line_gateway.api.reply import Reply, ReplyTransport
    from line_gateway.audit.logger import AuditLogger
    from line_gateway.channels.channel import Channel
    from line_gateway.channels.registry import ChannelRegistry
    from line_gateway.webhook.events import WebhookEvent

logger = logging.getLogger(__name__)


class WebhookPipeline:
    """Authenticates webhook deliveries and dispatches their events.

    With ``reissue_on_unauthorized`` set, a 401 from the reply endpoint
    clears the channel's cached token, issues a fresh one and resends the
    reply once. Otherwise a cached token is kept for the process lifetime.
    """

    def __init__(
        self,
        registry: ChannelRegistry,
        token_issuer: AccessTokenIssuer,
        reply_transport: ReplyTransport,
        audit_logger: AuditLogger | None = None,
        reissue_on_unauthorized: bool = False,
    ) -> None:
        self._registry = registry
        self._token_issuer = token_issuer
        self._reply_transport = reply_transport
        self._audit_logger = audit_logger
        self._reissue_on_unauthorized = reissue_on_unauthorized

    async def handle_webhook(self, raw_body: bytes | str, signature: bytes | str) -> None:
        """Process one webhook delivery end to end."""
        try:
            body = RequestBody.parse(raw_body)
        except RequestBodyError as exc:
            logger.warning("Rejected malformed webhook body: %s", exc)
            self._audit(
                AuditEventType.MALFORMED_BODY, "parse", "rejected", RiskLevel.MEDIUM,
            )
            raise

        self._require_channel(body.destination)
        async with self._registry.resolve(body.destination) as channel:
            self._authenticate(channel, body.src, signature)
            logger.debug(
                "Dispatching %d event(s) to channel %d",
                len(body.events), channel.channel_id,
            )
            for event in body.events:
                await self._dispatch(channel, event)

    async def verify_signature(
        self, destination: str, raw_body: bytes | str, signature: bytes | str,
    ) -> None:
        """Check a delivery's signature without dispatching anything."""
        self._require_channel(destination)
        async with self._registry.resolve(destination) as channel:
            self._authenticate(channel, raw_body, signature)

    async def handle_event(self, destination: str, event: WebhookEvent) -> None:
        """Dispatch a single, already authenticated event to its channel."""
        self._require_channel(destination)
        async with self._registry.resolve(destination) as channel:
            await self._dispatch(channel, event)

    def _require_channel(self, destination: str) -> None:
        if destination not in self._registry:
            logger.warning("Rejected delivery for unknown destination %s", destination)
            self._audit(
                AuditEventType.UNKNOWN_DESTINATION, "lookup", "rejected",
                RiskLevel.MEDIUM, destination=destination,
            )
            raise DestinationError(destination)

    def _authenticate(
        self, channel: Channel, message: bytes | str, signature: bytes | str,
    ) -> None:
        if verify(channel.secret, message, signature):
            logger.debug("Signature verified for channel %d", channel.channel_id)
            return
        logger.warning("Webhook signature rejected for channel %d", channel.channel_id)
        self._audit(
            AuditEventType.SIGNATURE_FAILURE, "verify_signature", "rejected",
            RiskLevel.HIGH, channel=channel,
        )
        raise SignatureError()

    async def _dispatch(self, channel: Channel, event: WebhookEvent) -> None:
        reply = await self._invoke_handler(channel, event)
        if reply is None:
            return

        if not event.reply_token:
            logger.warning(
                "Dropping reply to %s event on channel %d: event has no reply token",
                event.type, channel.channel_id,
            )
            self._audit(
                AuditEventType.REPLY_DROPPED, "reply", "dropped", RiskLevel.LOW,
                channel=channel, details={"event_type": event.type},
            )
            return

        await self._send(channel, reply.with_reply_token(event.reply_token))

    async def _invoke_handler(self, channel: Channel, event: WebhookEvent) -> Reply | None:
        try:
            result = channel.handler.handle_webhook_event(event)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            logger.exception(
                "Handler for channel %d raised on %s event", channel.channel_id, event.type,
            )
            raise HandlerError(event.type) from exc
        return result

    async def _send(self, channel: Channel, reply: Reply) -> None:
        token = await self._ensure_token(channel)
        try:
            await self._deliver(channel, token, reply)
        except ReplyUnauthorizedError:
            if not self._reissue_on_unauthorized:
                raise
            logger.warning(
                "Access token for channel %d rejected; issuing a new one",
                channel.channel_id,
            )
            channel.invalidate_token()
            self._audit(
                AuditEventType.TOKEN_INVALIDATED, "reply", "invalidated",
                RiskLevel.MEDIUM, channel=channel,
            )
            token = await self._ensure_token(channel)
            await self._deliver(channel, token, reply)

    async def _ensure_token(self, channel: Channel) -> str:
        cached = channel.access_token is not None
        try:
            token = await get_or_issue_token(channel, self._token_issuer)
        except OAuthError as exc:
            self._audit(
                AuditEventType.TOKEN_ISSUE_FAILURE, "issue_token", "failure",
                RiskLevel.HIGH, channel=channel, details={"error": str(exc)},
            )
            raise
        if not cached:
            self._audit(
                AuditEventType.TOKEN_ISSUED, "issue_token", "success",
                RiskLevel.INFO, channel=channel,
            )
        return token

    async def _deliver(self, channel: Channel, token: str, reply: Reply) -> None:
        try:
            await self._reply_transport.send(token, reply)
        except ReplyError as exc:
            self._audit(
                AuditEventType.REPLY_FAILURE, "reply", "failure", RiskLevel.MEDIUM,
                channel=channel, details={"error": str(exc)},
            )
            raise
        self._audit(
            AuditEventType.REPLY_SENT, "reply", "success", RiskLevel.INFO,
            channel=channel, details={"messages": len(reply.messages)},
        )

    def _audit(
        self,
        event_type: AuditEventType,
        action: str,
        result: str,
        risk_level: RiskLevel,
        channel: Channel | None = None,
        destination: str | None = None,
        details: dict[str, object] | None = None,
    ) -> None:
        if not self._audit_logger:
            return
        self._audit_logger.log(AuditEvent(
            event_type=event_type,
            destination=channel.user_id if channel else destination,
            channel_id=channel.channel_id if channel else None,
            action=action,
            result=result,
            risk_level=risk_level,
            details=details,
        ))
