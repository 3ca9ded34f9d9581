"""Process-local rate limiting."""

from .token_bucket import RateLimiterError, TokenBucket

__all__ = ["TokenBucket", "RateLimiterError"]
