"""Rate limiting, error classification and retry."""

from .errors import classify, error_type, is_transient
from .rate_limiter import RateLimitStatus, TokenBucketRateLimiter
from .retry import execute_with_retry

__all__ = [
    "RateLimitStatus",
    "TokenBucketRateLimiter",
    "classify",
    "error_type",
    "execute_with_retry",
    "is_transient",
]
