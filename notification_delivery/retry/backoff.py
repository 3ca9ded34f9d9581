"""Exponential backoff calculation."""

from datetime import datetime
from typing import Optional

from notification_delivery.utils.timestamps import add_milliseconds, utc_now

from .models import DEFAULT_RETRY_CONFIG, RetryConfig


def backoff_delay(attempt: int, config: RetryConfig = DEFAULT_RETRY_CONFIG) -> float:
    """Delay in milliseconds before retry number `attempt` (0-indexed).

    delay = min(initial_delay_ms * backoff_multiplier ** attempt, max_delay_ms)

    Args:
        attempt: Retry index; the first retry uses 0
        config: Retry policy

    Returns:
        Delay in milliseconds, never above config.max_delay_ms

    Raises:
        ValueError: If attempt is negative
    """
    if attempt < 0:
        raise ValueError(f"attempt must be >= 0, got {attempt}")

    # Very large attempt numbers overflow float exponentiation
    try:
        delay = config.initial_delay_ms * (config.backoff_multiplier ** attempt)
    except OverflowError:
        return float(config.max_delay_ms)

    return float(min(delay, config.max_delay_ms))


def next_retry_at(
    attempt: int,
    config: RetryConfig = DEFAULT_RETRY_CONFIG,
    now: Optional[datetime] = None,
) -> datetime:
    """Absolute UTC time at which retry number `attempt` becomes due.

    Args:
        attempt: Retry index (0-indexed)
        config: Retry policy
        now: Reference time (defaults to the current UTC time)

    Returns:
        Timezone-aware UTC datetime
    """
    reference = now if now is not None else utc_now()
    return add_milliseconds(reference, backoff_delay(attempt, config))
