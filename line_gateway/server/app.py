"""FastAPI webhook receiver application."""

from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from line_gateway.api.oauth import DEFAULT_API_BASE_URL, HttpAccessTokenIssuer
from line_gateway.api.reply import HttpReplyTransport
from line_gateway.audit.logger import AuditLogger
from line_gateway.config import build_registry, load_channel_configs
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
from line_gateway.webhook.signature import SIGNATURE_HEADER

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/webhook"

# Order matters: first matching class wins
_ERROR_RESPONSES: tuple[tuple[type[MessagingError], int, str], ...] = (
    (RequestBodyError, 400, "Malformed request body"),
    (SignatureError, 401, "Invalid webhook signature"),
    (DestinationError, 404, "Unknown destination"),
    (HandlerError, 500, "Event handler failed"),
    (OAuthError, 502, "Access token issuance failed"),
    (ReplyError, 502, "Reply delivery failed"),
)


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables."""
    channels_path = os.environ.get("LINE_CHANNELS_PATH", "config/channels.json")
    api_base_url = os.environ.get("LINE_API_BASE_URL", DEFAULT_API_BASE_URL)
    audit_log = os.environ.get("AUDIT_LOG_PATH")
    reissue = os.environ.get("LINE_REISSUE_ON_UNAUTHORIZED", "").lower() in ("1", "true", "yes")

    registry = build_registry(load_channel_configs(channels_path))
    audit_logger = AuditLogger.from_env(audit_log) if audit_log else None
    pipeline = WebhookPipeline(
        registry,
        HttpAccessTokenIssuer(api_base_url),
        HttpReplyTransport(api_base_url),
        audit_logger=audit_logger,
        reissue_on_unauthorized=reissue,
    )
    logger.info("Loaded %d channel(s) from %s", len(registry), channels_path)
    return create_app(pipeline)


def error_response(error: MessagingError) -> JSONResponse:
    for error_type, status_code, message in _ERROR_RESPONSES:
        if isinstance(error, error_type):
            return JSONResponse({"error": message}, status_code=status_code)
    return JSONResponse({"error": "Webhook processing failed"}, status_code=500)


def create_app(pipeline: WebhookPipeline) -> FastAPI:
    """Create the webhook receiver app around a configured pipeline."""
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post(WEBHOOK_PATH)
    async def webhook(request: Request) -> JSONResponse:
        body = await request.body()
        signature = request.headers.get(SIGNATURE_HEADER, "")
        try:
            if not signature:
                raise SignatureError(f"{SIGNATURE_HEADER} header is missing")
            await pipeline.handle_webhook(body, signature)
        except MessagingError as exc:
            logger.info("Webhook delivery rejected: %s", type(exc).__name__)
            return error_response(exc)
        return JSONResponse({})

    return app
