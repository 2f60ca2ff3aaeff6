"""Error taxonomy for webhook handling, token issuance and reply delivery.

Every failure the gateway can report for a single delivery is a
``MessagingError`` subclass, so callers (the HTTP layer in particular) can
map the whole family to responses without catching anything broader.
"""

from __future__ import annotations


class MessagingError(Exception):
    """Base class for all delivery-scoped failures."""


class DestinationError(MessagingError):
    """Raised when no channel is registered for a destination key."""

    def __init__(self, destination: str) -> None:
        self.destination = destination
        super().__init__(f"No channel registered for destination {destination!r}")


class SignatureError(MessagingError):
    """Raised when a webhook signature is missing or does not match."""

    def __init__(self, message: str = "Webhook signature verification failed") -> None:
        super().__init__(message)


class RequestBodyError(MessagingError):
    """Raised when a webhook body is not valid JSON or violates the event schema."""


class HandlerError(MessagingError):
    """Raised when a channel's event handler raises."""

    def __init__(self, event_type: str) -> None:
        self.event_type = event_type
        super().__init__(f"Handler failed for {event_type!r} event")


# --- Access token issuance ---


class OAuthError(MessagingError):
    """Base class for access token issuance failures."""


class OAuthErrorResponse(OAuthError):
    """The token endpoint answered 400 with a structured error body."""

    def __init__(self, message: str, description: str | None = None) -> None:
        self.message = message
        self.description = description
        super().__init__(f"Error response: {message}, description: {description!r}")


class OAuthUnexpectedStatusError(OAuthError):
    """The token endpoint answered with a status it is not documented to return."""

    def __init__(self, status: int) -> None:
        self.status = status
        super().__init__(f"Unexpected status response: status = {status}")


class OAuthMalformedResponseError(OAuthError):
    """The token endpoint answered 200 but the body carried no usable token."""


class OAuthTransportError(OAuthError):
    """The token request never produced an HTTP response."""


# --- Reply delivery ---


class ReplyError(MessagingError):
    """Base class for reply delivery failures."""


class ReplyUnexpectedStatusError(ReplyError):
    """The reply endpoint answered with a non-200 status."""

    def __init__(self, status: int, body: str = "") -> None:
        self.status = status
        self.body = body
        super().__init__(f"Reply request failed: status = {status}")


class ReplyUnauthorizedError(ReplyUnexpectedStatusError):
    """The reply endpoint rejected the access token (401)."""

    def __init__(self, body: str = "") -> None:
        super().__init__(401, body)


class ReplyTransportError(ReplyError):
    """The reply request never produced an HTTP response."""
