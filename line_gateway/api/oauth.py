"""Channel access token issuance and caching."""

from __future__ import annotations

import logging
from typing import Protocol

import httpx
from pydantic import BaseModel, ValidationError

from line_gateway.channels.channel import Channel
from line_gateway.errors import (
    OAuthErrorResponse,
    OAuthMalformedResponseError,
    OAuthTransportError,
    OAuthUnexpectedStatusError,
)

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.line.me"
_TOKEN_PATH = "/v2/oauth/accessToken"


class AccessTokenResponse(BaseModel):
    access_token: str
    expires_in: int
    token_type: str


class ErrorResponseBody(BaseModel):
    error: str
    error_description: str | None = None


class AccessTokenIssuer(Protocol):
    async def issue(self, channel_id: int, channel_secret: str) -> str: ...


class HttpAccessTokenIssuer:
    """Issues short-lived channel access tokens via client credentials."""

    def __init__(
        self,
        api_base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = f"{api_base_url.rstrip('/')}{_TOKEN_PATH}"
        self._timeout = timeout
        self._transport = transport

    async def issue(self, channel_id: int, channel_secret: str) -> str:
        form = {
            "grant_type": "client_credentials",
            "client_id": str(channel_id),
            "client_secret": channel_secret,
        }
        logger.debug("Requesting access token for channel %d", channel_id)

        try:
            async with httpx.AsyncClient(
                verify=True, timeout=self._timeout, transport=self._transport,
            ) as client:
                resp = await client.post(self._url, data=form)
        except httpx.HTTPError as exc:
            logger.error("Access token request failed: %s", exc)
            raise OAuthTransportError(f"Request error: {exc}") from exc

        if resp.status_code == 200:
            try:
                body = AccessTokenResponse.model_validate_json(resp.content)
            except ValidationError as exc:
                raise OAuthMalformedResponseError(
                    "Token endpoint returned 200 without a valid token body",
                ) from exc
            logger.debug("Access token issued for channel %d", channel_id)
            return body.access_token

        if resp.status_code == 400:
            try:
                error_body = ErrorResponseBody.model_validate_json(resp.content)
            except ValidationError:
                error_body = None
            if error_body is not None:
                logger.error(
                    "Access token request rejected for channel %d: %s",
                    channel_id, error_body.error,
                )
                raise OAuthErrorResponse(error_body.error, error_body.error_description)

        logger.error(
            "Access token request for channel %d returned status %d",
            channel_id, resp.status_code,
        )
        raise OAuthUnexpectedStatusError(resp.status_code)


async def get_or_issue_token(channel: Channel, issuer: AccessTokenIssuer) -> str:
    """Return the channel's cached access token, issuing and caching one if absent.

    Callers must hold the channel's lock so concurrent first replies issue once.
    """
    if channel.access_token is not None:
        logger.debug("Using cached access token for channel %d", channel.channel_id)
        return channel.access_token

    token = await issuer.issue(channel.channel_id, channel.secret)
    channel.access_token = token
    return token
