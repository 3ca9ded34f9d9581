"""Retry policy: error classification, backoff, and the retry executor."""

from .backoff import backoff_delay, next_retry_at
from .classifier import ErrorClassification, classify_error, extract_status_code, is_retryable
from .executor import RetryExecutor, with_retry
from .models import (
    DEFAULT_RETRY_CONFIG,
    DeliveryAttemptResult,
    DeliveryError,
    ErrorCode,
    RetryConfig,
)

__all__ = [
    "RetryExecutor",
    "with_retry",
    "backoff_delay",
    "next_retry_at",
    "classify_error",
    "extract_status_code",
    "is_retryable",
    "ErrorClassification",
    "ErrorCode",
    "RetryConfig",
    "DEFAULT_RETRY_CONFIG",
    "DeliveryAttemptResult",
    "DeliveryError",
]
