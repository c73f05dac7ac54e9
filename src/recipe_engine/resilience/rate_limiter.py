"""Per-provider token bucket rate limiter."""

from __future__ import annotations

import asyncio
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True, slots=True)
class RateLimitStatus:
    remaining: int
    reset_time: timedelta
    is_limited: bool


class _TokenBucket:
    def __init__(self, capacity: int, refill_per_second: float, now: float) -> None:
        self.capacity = capacity
        self.refill_per_second = refill_per_second
        self.tokens = float(capacity)
        self.last_refill = now
        self.lock = asyncio.Lock()

    def refill(self, now: float) -> None:
        elapsed = now - self.last_refill
        if elapsed > 0:
            self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_per_second)
            self.last_refill = now

    def reset(self, now: float) -> None:
        self.tokens = float(self.capacity)
        self.last_refill = now


class TokenBucketRateLimiter:
    """Non-blocking token buckets keyed by provider id.

    Buckets start full and refill continuously at ``requests_per_minute / 60``
    tokens per second up to ``capacity``. Each bucket has its own lock, so
    concurrent sagas for different providers never contend.
    """

    def __init__(
        self,
        requests_per_minute: int,
        *,
        capacity: int | None = None,
        rates: dict[str, int] | None = None,
        now: Callable[[], float] = time.monotonic,
    ) -> None:
        if requests_per_minute <= 0:
            raise ValueError("requests_per_minute must be positive")
        if capacity is not None and capacity <= 0:
            raise ValueError("capacity must be positive")
        self.requests_per_minute = requests_per_minute
        self.capacity = capacity
        self._rates: dict[str, int] = dict(rates or {})
        self._now = now
        self._buckets: dict[str, _TokenBucket] = {}

    def configure(self, key: str, requests_per_minute: int) -> None:
        """Set the refill rate for ``key``; changing the rate rebuilds the bucket full."""
        if requests_per_minute <= 0:
            raise ValueError("requests_per_minute must be positive")
        if self._rates.get(key) == requests_per_minute:
            return
        self._rates[key] = requests_per_minute
        self._buckets.pop(key, None)

    async def try_acquire(self, key: str, permits: int = 1) -> bool:
        """Consume ``permits`` tokens if available, without waiting."""
        if permits <= 0:
            raise ValueError("permits must be positive")
        bucket = self._bucket(key)
        async with bucket.lock:
            bucket.refill(self._now())
            if bucket.tokens >= permits:
                bucket.tokens -= permits
                return True
            return False

    async def get_status(self, key: str) -> RateLimitStatus:
        bucket = self._bucket(key)
        async with bucket.lock:
            bucket.refill(self._now())
            remaining = math.floor(bucket.tokens)
            if bucket.tokens >= bucket.capacity:
                reset = timedelta(0)
            else:
                needed = 1 - (bucket.tokens - remaining)
                reset = timedelta(seconds=needed / bucket.refill_per_second)
            return RateLimitStatus(remaining=remaining, reset_time=reset, is_limited=remaining == 0)

    async def reset(self, key: str) -> None:
        bucket = self._bucket(key)
        async with bucket.lock:
            bucket.reset(self._now())

    def _bucket(self, key: str) -> _TokenBucket:
        if not key or not key.strip():
            raise ValueError("key cannot be empty")
        bucket = self._buckets.get(key)
        if bucket is None:
            rpm = self._rates.get(key, self.requests_per_minute)
            capacity = self.capacity or rpm
            bucket = self._buckets.setdefault(key, _TokenBucket(capacity, rpm / 60.0, self._now()))
        return bucket
