"""Request and result models for the channel adapters."""

from datetime import datetime
from enum import Enum
from typing import Iterator, List, Optional, Sequence, TypeVar, Union

from pydantic import BaseModel, Field, field_validator

T = TypeVar("T")


class SMSMessageType(str, Enum):
    """Kinds of SMS recorded in the delivery log."""

    BOOKING_CONFIRMATION = "booking_confirmation"
    BROADCAST = "broadcast"
    NOTIFICATION = "notification"


def _as_recipient_list(value: Union[str, Sequence[str]]) -> List[str]:
    if isinstance(value, str):
        value = [value]
    return [r.strip() for r in value if r and r.strip()]


class EmailParams(BaseModel):
    """A single email request. `to` accepts one address or a list."""

    to: List[str] = Field(..., description="Recipient addresses")
    subject: str = Field(..., description="Subject line")
    html: str = Field(..., description="Pre-rendered HTML body")
    text: Optional[str] = Field(None, description="Plain-text alternative")
    from_email: Optional[str] = Field(None, description="Sender; adapter default when omitted")
    template: Optional[str] = Field(None, description="Template name recorded as message type")
    tenant_id: Optional[str] = Field(None, description="Owning account")
    unsubscribe_url: Optional[str] = Field(None, description="Adds an unsubscribe footer")

    @field_validator("to", mode="before")
    @classmethod
    def normalize_recipients(cls, v):
        if v is None:
            return v
        return _as_recipient_list(v)


class SMSParams(BaseModel):
    """A single SMS request."""

    to: str = Field(..., description="Recipient phone number (E.164)")
    message: str = Field(..., description="Message body")
    message_type: SMSMessageType = Field(
        SMSMessageType.NOTIFICATION, description="Recorded in the delivery log"
    )
    tenant_id: Optional[str] = Field(None, description="Owning account")

    @field_validator("to")
    @classmethod
    def strip_phone(cls, v: str) -> str:
        return v.strip()


class BroadcastEmailParams(BaseModel):
    """The same email to many recipients, sent in provider-sized batches."""

    recipients: List[str] = Field(..., description="Recipient addresses")
    subject: str
    html: str
    text: Optional[str] = None
    from_email: Optional[str] = None
    tenant_id: Optional[str] = None
    unsubscribe_url: Optional[str] = None

    @field_validator("recipients", mode="before")
    @classmethod
    def normalize_recipients(cls, v):
        if v is None:
            return v
        return _as_recipient_list(v)


class BroadcastSMSParams(BaseModel):
    """The same SMS to many recipients, sent one at a time."""

    recipients: List[str] = Field(..., description="Recipient phone numbers (E.164)")
    message: str
    tenant_id: Optional[str] = None

    @field_validator("recipients", mode="before")
    @classmethod
    def normalize_recipients(cls, v):
        if v is None:
            return v
        return _as_recipient_list(v)


class EmailResult(BaseModel):
    """Value of a successful email send."""

    message_id: Optional[str]
    to: List[str]
    timestamp: datetime


class SMSResult(BaseModel):
    """Value of a successful SMS send."""

    message_sid: Optional[str]
    to: str
    status: Optional[str] = None
    timestamp: datetime


class BroadcastResult(BaseModel):
    """Per-recipient tally of a broadcast.

    total counts every requested recipient, including suppressed ones.
    queued_count covers recipients whose failure was retryable and handed
    to the delivery queue.
    """

    total: int = 0
    success_count: int = 0
    failure_count: int = 0
    queued_count: int = 0
    suppressed_count: int = 0


def chunk(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """Yield consecutive slices of at most `size` items."""
    if size < 1:
        raise ValueError(f"chunk size must be >= 1, got {size}")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])
