"""Token-bucket rate limiter for outbound SMS.

The bucket lives in process memory. Every running worker enforces its own
limit, so N instances together may send N times the configured rate.
"""

import threading
import time
from typing import Callable, Optional

from notification_delivery.logging import get_logger

logger = get_logger(__name__, component="rate_limiter")


class RateLimiterError(ValueError):
    """Raised when a limiter is configured with impossible values."""

    pass


class TokenBucket:
    """Blocking token bucket.

    Starts full. Refill is computed lazily on every check:
    tokens = min(max_tokens, tokens + elapsed_ms * refill_rate).

    Attributes:
        max_tokens: Bucket capacity (equal to the per-second rate)
        refill_rate: Tokens added per millisecond
        tokens: Currently available tokens (fractional)
        last_refill: Clock reading, in seconds, of the last refill
    """

    def __init__(
        self,
        max_per_second: int = 10,
        poll_interval: float = 0.05,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        """Initialize a full bucket.

        Args:
            max_per_second: Sustained rate and burst size
            poll_interval: Seconds to sleep between checks while waiting
            clock: Monotonic clock returning seconds (injectable for tests)
            sleep: Sleep function taking seconds (injectable for tests)

        Raises:
            RateLimiterError: If rate or poll interval is not positive
        """
        if max_per_second <= 0:
            raise RateLimiterError(f"max_per_second must be positive, got {max_per_second}")
        if poll_interval <= 0:
            raise RateLimiterError(f"poll_interval must be positive, got {poll_interval}")

        self.clock = clock or time.monotonic
        self.sleep = sleep or time.sleep
        self.poll_interval = poll_interval

        self.max_tokens = max_per_second
        self.refill_rate = max_per_second / 1000.0
        self.tokens = float(max_per_second)
        self.last_refill = self.clock()

        self._lock = threading.Lock()

    def _refill(self) -> None:
        now = self.clock()
        elapsed_ms = (now - self.last_refill) * 1000.0
        if elapsed_ms > 0:
            self.tokens = min(self.max_tokens, self.tokens + elapsed_ms * self.refill_rate)
        self.last_refill = now

    def try_acquire(self) -> bool:
        """Consume a token if one is available, without waiting."""
        with self._lock:
            self._refill()
            if self.tokens >= 1:
                self.tokens -= 1
                return True
            return False

    def wait_for_token(self) -> float:
        """Block until a token is available, then consume it.

        Returns:
            Seconds spent waiting (0.0 when a token was immediately available)
        """
        started = self.clock()
        waited = False

        # The lock is only held inside try_acquire, never across sleep
        while not self.try_acquire():
            if not waited:
                logger.debug(
                    "Rate limit reached, waiting for token",
                    extra={"event": "rate_limiter.throttled", "max_per_second": self.max_tokens},
                )
                waited = True
            self.sleep(self.poll_interval)

        return self.clock() - started if waited else 0.0

    @property
    def available_tokens(self) -> float:
        """Current token count after a lazy refill."""
        with self._lock:
            self._refill()
            return self.tokens
