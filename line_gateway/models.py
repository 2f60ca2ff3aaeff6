"""Shared Pydantic data models for line-messaging-gateway."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

# --- Enums ---


class AuditEventType(str, Enum):
    SIGNATURE_FAILURE = "signature_failure"
    UNKNOWN_DESTINATION = "unknown_destination"
    MALFORMED_BODY = "malformed_body"
    TOKEN_ISSUED = "token_issued"
    TOKEN_ISSUE_FAILURE = "token_issue_failure"
    TOKEN_INVALIDATED = "token_invalidated"
    REPLY_SENT = "reply_sent"
    REPLY_FAILURE = "reply_failure"
    REPLY_DROPPED = "reply_dropped"


class RiskLevel(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


# --- Audit Models ---


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class AuditEvent(BaseModel):
    timestamp: str = Field(default_factory=_now_iso)
    event_type: AuditEventType
    destination: str | None = None
    channel_id: int | None = None
    action: str
    result: str  # "success" | "failure" | "rejected" | "dropped"
    risk_level: RiskLevel
    details: dict[str, object] | None = None
