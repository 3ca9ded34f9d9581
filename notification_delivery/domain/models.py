"""Core domain models for queued deliveries, the audit log, and suppression.

- QueueItem: a notification still owed to a recipient
- DeliveryLogEntry: immutable record of one send attempt's outcome
- SuppressionEntry: a recipient who must not be contacted
- DeliveryStats: aggregate counts over the delivery log
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class Channel(str, Enum):
    """Outbound delivery channels."""

    EMAIL = "email"
    SMS = "sms"


class QueueStatus(str, Enum):
    """Queue item lifecycle states.

    pending -> processing -> completed | pending (retry) | failed
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (QueueStatus.COMPLETED, QueueStatus.FAILED)


class DeliveryStatus(str, Enum):
    """Outcome recorded in the delivery log."""

    SUCCESS = "success"
    FAILED = "failed"
    BOUNCED = "bounced"
    REJECTED = "rejected"


def _ensure_utc(v: Optional[datetime]) -> Optional[datetime]:
    if v is None:
        return None
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


class QueueItem(BaseModel):
    """A notification whose synchronous send failed with a retryable error.

    The payload is opaque to the queue: for email it holds subject/html/text
    and sender, for SMS the message body and message type.
    """

    id: str = Field(..., description="Opaque unique identifier (uuid4)")
    channel: Channel = Field(..., description="Delivery channel")
    recipient: str = Field(..., description="Email address(es), comma-joined, or E.164 number")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Channel-specific content")
    retry_count: int = Field(0, ge=0, description="Sweeper attempts made so far")
    max_retries: int = Field(3, ge=0, description="Sweeper attempts allowed")
    next_retry_at: datetime = Field(..., description="Item is due when now >= this value")
    status: QueueStatus = Field(QueueStatus.PENDING, description="Lifecycle state")
    last_error: Optional[str] = Field(None, description="Message of the most recent failure")
    tenant_id: Optional[str] = Field(None, description="Owning account, for stats scoping")
    created_at: datetime = Field(..., description="When the item was queued (UTC)")
    updated_at: datetime = Field(..., description="Last state change (UTC)")

    @field_validator("next_retry_at", "created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return _ensure_utc(v)

    @model_validator(mode="after")
    def validate_retry_budget(self):
        if self.retry_count > self.max_retries:
            raise ValueError(
                f"retry_count ({self.retry_count}) cannot exceed max_retries ({self.max_retries})"
            )
        return self

    def is_due(self, now: datetime) -> bool:
        """True if the item is pending and its retry time has arrived."""
        return self.status == QueueStatus.PENDING and _ensure_utc(now) >= self.next_retry_at

    @property
    def recipients(self) -> list[str]:
        """Recipient column split back into a list."""
        return [r for r in (part.strip() for part in self.recipient.split(",")) if r]

    def payload_json(self) -> str:
        return json.dumps(self.payload, ensure_ascii=False, sort_keys=True)


class DeliveryLogEntry(BaseModel):
    """One send attempt's outcome. Append-only; never updated."""

    id: str = Field(..., description="Opaque unique identifier (uuid4)")
    channel: Channel = Field(..., description="Delivery channel")
    recipient: str = Field(..., description="Recipient(s) of the attempt")
    status: DeliveryStatus = Field(..., description="Outcome")
    message_type: Optional[str] = Field(None, description="Email template or SMS message type")
    subject: Optional[str] = Field(None, description="Email subject, if any")
    error_code: Optional[str] = Field(None, description="Classified error code on failure")
    error_message: Optional[str] = Field(None, description="Failure description")
    external_message_id: Optional[str] = Field(None, description="Provider message id on success")
    tenant_id: Optional[str] = Field(None, description="Owning account")
    created_at: datetime = Field(..., description="When the attempt was recorded (UTC)")

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return _ensure_utc(v)


class SuppressionEntry(BaseModel):
    """Recipient that must never be contacted."""

    id: str = Field(..., description="Opaque unique identifier (uuid4)")
    recipient: str = Field(..., description="Email address or phone number")
    tenant_id: Optional[str] = Field(None, description="Account that recorded the opt-out")
    reason: Optional[str] = Field(None, description="Why the recipient was suppressed")
    created_at: datetime = Field(..., description="When the entry was added (UTC)")

    @field_validator("recipient")
    @classmethod
    def normalize_recipient(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("recipient cannot be empty or whitespace-only")
        return stripped

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return _ensure_utc(v)


class DeliveryStats(BaseModel):
    """Aggregate counts over the delivery log for one tenant."""

    total_sent: int = 0
    success_count: int = 0
    failure_count: int = 0
