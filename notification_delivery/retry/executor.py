"""Retry executor with exponential backoff.

Every channel adapter funnels its transport call through RetryExecutor so
that all outbound calls share one retry policy and one error taxonomy.

Sleeping between attempts blocks the calling thread. With the default policy
the worst case is 1s + 2s + 4s of backoff on top of four transport calls,
which is the price of keeping the synchronous send path simple.
"""

import logging
import time
from typing import Callable, Optional, TypeVar

from notification_delivery.logging import get_logger

from .backoff import backoff_delay
from .classifier import classify_error
from .models import DEFAULT_RETRY_CONFIG, DeliveryAttemptResult, RetryConfig

logger = get_logger(__name__, component="retry")

T = TypeVar("T")


class RetryExecutor:
    """Run an operation, retrying transient failures per a RetryConfig.

    Attributes:
        sleep: Callable taking seconds; injected so tests never really wait
    """

    def __init__(self, sleep: Optional[Callable[[float], None]] = None):
        self.sleep = sleep or time.sleep

    def execute(
        self,
        operation: Callable[[], T],
        config: Optional[RetryConfig] = None,
        operation_name: str = "operation",
    ) -> DeliveryAttemptResult[T]:
        """Call `operation` up to config.max_retries + 1 times.

        A failure that is not retryable, or that happens on the final allowed
        attempt, is returned immediately without sleeping.

        Args:
            operation: Zero-argument callable; its return value becomes result.value
            config: Retry policy (defaults to DEFAULT_RETRY_CONFIG)
            operation_name: Label used in log records

        Returns:
            DeliveryAttemptResult; never raises the operation's exceptions
        """
        retry_config = config or DEFAULT_RETRY_CONFIG
        max_attempts = retry_config.max_retries + 1

        for attempt in range(max_attempts):
            try:
                value = operation()
            except Exception as e:
                classification = classify_error(e)
                is_last = attempt == max_attempts - 1

                if not classification.retryable or is_last:
                    logger.log(
                        logging.ERROR if classification.retryable else logging.WARNING,
                        f"{operation_name} failed after {attempt + 1} attempt(s): {e}",
                        extra={
                            "event": "retry.exhausted" if classification.retryable else "retry.aborted",
                            "operation": operation_name,
                            "attempts": attempt + 1,
                            "error_code": classification.code,
                            "retryable": classification.retryable,
                            "error_type": type(e).__name__,
                        },
                    )
                    return DeliveryAttemptResult.failure(
                        code=classification.code,
                        message=str(e) or type(e).__name__,
                        retryable=classification.retryable,
                    )

                delay_ms = backoff_delay(attempt, retry_config)
                logger.warning(
                    f"{operation_name} attempt {attempt + 1}/{max_attempts} failed, "
                    f"retrying in {delay_ms / 1000:.1f}s: {e}",
                    extra={
                        "event": "retry.attempt.failed",
                        "operation": operation_name,
                        "attempt": attempt + 1,
                        "max_attempts": max_attempts,
                        "delay_ms": delay_ms,
                        "error_code": classification.code,
                        "error_type": type(e).__name__,
                    },
                )
                self.sleep(delay_ms / 1000.0)
                continue

            if attempt > 0:
                logger.info(
                    f"{operation_name} succeeded on attempt {attempt + 1}",
                    extra={
                        "event": "retry.recovered",
                        "operation": operation_name,
                        "attempt": attempt + 1,
                    },
                )
            return DeliveryAttemptResult.ok(value)

        # max_retries >= 0 guarantees at least one pass through the loop
        raise AssertionError("unreachable")


_default_executor = RetryExecutor()


def with_retry(
    operation: Callable[[], T],
    config: Optional[RetryConfig] = None,
    operation_name: str = "operation",
) -> DeliveryAttemptResult[T]:
    """Module-level convenience wrapper around a shared RetryExecutor."""
    return _default_executor.execute(operation, config, operation_name=operation_name)
