"""Parsing of a raw webhook delivery into a typed request body."""

from __future__ import annotations

from pydantic import Field, ValidationError

from line_gateway.errors import RequestBodyError
from line_gateway.webhook.events import WebhookEvent, WebhookModel


class RequestBody(WebhookModel):
    """One webhook delivery: the destination channel and its events, in order.

    ``src`` keeps the exact bytes received. The signature is computed over
    those bytes, and re-serializing the parsed model is not byte-identical.
    """

    destination: str
    events: list[WebhookEvent]
    src: bytes = Field(default=b"", exclude=True, repr=False)

    @classmethod
    def parse(cls, raw: bytes | str) -> RequestBody:
        src = raw.encode() if isinstance(raw, str) else raw
        try:
            body = cls.model_validate_json(src)
        except ValidationError as exc:
            raise RequestBodyError(f"Parse error: {exc}") from exc
        return body.model_copy(update={"src": src})
