"""Webhook signature verification (HMAC-SHA256, base64 encoded).

The platform signs the exact request body with the channel secret and sends
the base64 digest in the ``X-Line-Signature`` header.
"""

from __future__ import annotations

import base64
import hashlib
import hmac

SIGNATURE_HEADER = "x-line-signature"


def _to_bytes(value: bytes | str) -> bytes:
    return value.encode() if isinstance(value, str) else value


def compute_signature(secret: bytes | str, message: bytes | str) -> bytes:
    """Return the base64 encoded HMAC-SHA256 of ``message`` keyed by ``secret``."""
    mac = hmac.new(_to_bytes(secret), _to_bytes(message), hashlib.sha256)
    return base64.b64encode(mac.digest())


def verify(secret: bytes | str, message: bytes | str, digest: bytes | str) -> bool:
    """Return True if ``digest`` is the signature of ``message`` under ``secret``.

    A mismatch is an expected outcome and is reported as False, never raised.
    Comparison is constant-time via hmac.compare_digest.
    """
    digest = _to_bytes(digest)
    if not digest:
        return False
    return hmac.compare_digest(compute_signature(secret, message), digest)
