"""Value types shared by the retry executor and the channel adapters."""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field, model_validator

T = TypeVar("T")


class ErrorCode:
    """Error codes carried by DeliveryError."""

    # Never retried: rejected before the transport is called
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MESSAGE_TOO_LONG = "MESSAGE_TOO_LONG"
    RECIPIENT_UNSUBSCRIBED = "RECIPIENT_UNSUBSCRIBED"

    # Transient, retried per policy
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"

    # Client errors, surfaced immediately
    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CLIENT_ERROR = "CLIENT_ERROR"


class RetryConfig(BaseModel):
    """Exponential backoff policy.

    Delays are in milliseconds. The defaults give 1s, 2s, 4s between the four
    attempts of a synchronous send.
    """

    max_retries: int = Field(3, ge=0, le=10, description="Retries after the first attempt")
    initial_delay_ms: int = Field(1000, ge=0, description="Delay before the first retry")
    max_delay_ms: int = Field(30000, ge=0, description="Upper bound for any single delay")
    backoff_multiplier: float = Field(2.0, ge=1.0, le=10.0, description="Growth factor per attempt")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_delay_bounds(self):
        if self.initial_delay_ms > self.max_delay_ms:
            raise ValueError(
                f"initial_delay_ms ({self.initial_delay_ms}) cannot exceed "
                f"max_delay_ms ({self.max_delay_ms})"
            )
        return self


DEFAULT_RETRY_CONFIG = RetryConfig()


@dataclass(frozen=True)
class DeliveryError:
    """Structured failure description returned to callers.

    Attributes:
        code: One of the ErrorCode constants
        message: Human-readable description (provider message when available)
        retryable: Whether the failure is worth another attempt later
    """

    code: str
    message: str
    retryable: bool


@dataclass
class DeliveryAttemptResult(Generic[T]):
    """Outcome of a retry-wrapped operation or an adapter send.

    Exactly one of `value` and `error` is meaningful: `value` when success is
    True, `error` otherwise. `queued` is set by adapters once a failed send
    has been persisted to the delivery queue.
    """

    success: bool
    value: Optional[T] = None
    error: Optional[DeliveryError] = None
    queued: bool = False

    @classmethod
    def ok(cls, value: Optional[T] = None) -> "DeliveryAttemptResult[T]":
        return cls(success=True, value=value)

    @classmethod
    def failure(cls, code: str, message: str, retryable: bool) -> "DeliveryAttemptResult[T]":
        return cls(
            success=False,
            error=DeliveryError(code=code, message=message, retryable=retryable),
        )

    @property
    def retryable(self) -> bool:
        """True when the result is a failure classified as transient."""
        return not self.success and self.error is not None and self.error.retryable

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None
