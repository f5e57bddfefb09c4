"""Per-caller token bucket rate limiting using in-memory storage."""

import asyncio
import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class RateBucket:
    """Token bucket state for one caller key."""

    user_key: str
    tokens: int
    last_refill: float


@dataclass(frozen=True)
class RateDecision:
    """Outcome of one admission check."""

    allowed: bool
    remaining: int
    retry_after_ms: int = 0


class RateLimitService:
    """In-memory token bucket rate limiter.

    Buckets are created full on first sight and refilled lazily by whole
    elapsed intervals. Check-and-consume runs under a lock per key, so only
    requests from the same caller contend with each other.
    """

    def __init__(
        self,
        burst: int = 10,
        refill_interval_ms: int = 6000,
        refill_amount: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize rate limit service.

        Args:
            burst: Bucket capacity
            refill_interval_ms: Length of one refill interval
            refill_amount: Tokens added per elapsed interval
            clock: Monotonic clock returning seconds
        """
        if burst < 1 or refill_interval_ms < 1 or refill_amount < 1:
            raise ValueError("burst, refill_interval_ms and refill_amount must be positive")
        self.burst = burst
        self.refill_interval_ms = refill_interval_ms
        self.refill_amount = refill_amount
        self._clock = clock

        self._buckets: Dict[str, RateBucket] = {}
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @staticmethod
    def user_key(user_id: str) -> str:
        return f"u:{user_id}"

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def _refill(self, bucket: RateBucket, now_ms: float):
        elapsed = now_ms - bucket.last_refill
        if elapsed < self.refill_interval_ms:
            return
        ticks = int(elapsed // self.refill_interval_ms)
        bucket.tokens = min(self.burst, bucket.tokens + ticks * self.refill_amount)
        # advance by whole intervals only; the remainder carries over
        bucket.last_refill += ticks * self.refill_interval_ms

    def _retry_after_ms(self, bucket: RateBucket, now_ms: float) -> int:
        return max(0, int(bucket.last_refill + self.refill_interval_ms - now_ms))

    async def allow(self, key: str) -> RateDecision:
        """Check the bucket for ``key`` and consume one token if available.

        Args:
            key: Caller key (see ``user_key``)

        Returns:
            RateDecision with the remaining token count
        """
        async with self._locks[key]:
            now_ms = self._now_ms()
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = RateBucket(user_key=key, tokens=self.burst, last_refill=now_ms)
                self._buckets[key] = bucket

            self._refill(bucket, now_ms)

            if bucket.tokens > 0:
                bucket.tokens -= 1
                return RateDecision(allowed=True, remaining=bucket.tokens)

            return RateDecision(
                allowed=False,
                remaining=0,
                retry_after_ms=self._retry_after_ms(bucket, now_ms),
            )

    async def check_user_rate_limit(self, user_id: str) -> RateDecision:
        """Check rate limit for user.

        Args:
            user_id: User ID

        Returns:
            RateDecision
        """
        return await self.allow(self.user_key(user_id))

    def get_bucket(self, key: str) -> Optional[RateBucket]:
        return self._buckets.get(key)

    async def reset_rate_limit(self, key: str):
        """Reset rate limit for a key.

        Args:
            key: Rate limit key
        """
        async with self._locks[key]:
            if key in self._buckets:
                del self._buckets[key]
                logger.info(f"Reset rate limit for key: {key}")

    async def cleanup_idle(self) -> int:
        """Drop buckets that would already be back at full capacity."""
        now_ms = self._now_ms()
        removed = 0
        for key in list(self._buckets):
            lock = self._locks[key]
            if lock.locked():
                continue
            async with lock:
                bucket = self._buckets.get(key)
                if bucket is None:
                    continue
                self._refill(bucket, now_ms)
                if bucket.tokens >= self.burst:
                    del self._buckets[key]
                    del self._locks[key]
                    removed += 1

        if removed:
            logger.info(f"Cleaned up {removed} idle rate limit buckets")
        return removed
