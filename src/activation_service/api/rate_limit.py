"""
Per-client token bucket rate limiting for the verify endpoint.

Buckets live in process memory, one per client address. Each bucket
holds at most `burst` tokens and refills at `rate_per_sec`. A bucket that
has refilled completely is indistinguishable from a new one, so such
buckets are dropped on a periodic sweep and memory tracks only clients
seen within roughly one refill period.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass


class RateLimitExceeded(Exception):
    """Client exhausted its bucket. retry_after is in seconds."""

    def __init__(self, retry_after: float) -> None:
        super().__init__(f"rate limit exceeded, retry after {retry_after:.1f}s")
        self.retry_after = retry_after


@dataclass
class Bucket:
    tokens: float
    last: float


class TokenBucketLimiter:
    """In-memory token bucket keyed by client address."""

    def __init__(
        self,
        rate_per_sec: float,
        burst: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.rate = rate_per_sec
        self.burst = float(burst)
        self._clock = clock
        self._buckets: dict[str, Bucket] = {}
        self._lock = threading.Lock()
        # Time for an empty bucket to refill; also the sweep period
        self._refill_seconds = self.burst / self.rate if self.rate > 0 else None
        self._last_sweep = clock()

    @classmethod
    def per_window(
        cls,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> "TokenBucketLimiter":
        """Allow `max_requests` per `window_seconds`, bursting up to the full window."""
        return cls(rate_per_sec=max_requests / window_seconds, burst=max_requests, clock=clock)

    @property
    def tracked_clients(self) -> int:
        """Number of client buckets currently tracked."""
        with self._lock:
            return len(self._buckets)

    def allow(self, key: str, cost: float = 1.0) -> tuple[bool, float]:
        """
        Take `cost` tokens from the key's bucket.

        Returns:
            (allowed, retry_after_seconds); retry_after is 0.0 when allowed
        """
        with self._lock:
            now = self._clock()
            if self._refill_seconds is not None and now - self._last_sweep >= self._refill_seconds:
                self._prune_locked(now)

            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = Bucket(tokens=self.burst, last=now)
                self._buckets[key] = bucket

            # refill
            elapsed = max(0.0, now - bucket.last)
            bucket.tokens = min(self.burst, bucket.tokens + elapsed * self.rate)
            bucket.last = now

            if bucket.tokens >= cost:
                bucket.tokens -= cost
                return True, 0.0

            missing = cost - bucket.tokens
            retry_after = missing / self.rate if self.rate > 0 else 1.0
            return False, retry_after

    def check(self, key: str) -> None:
        """
        Raises:
            RateLimitExceeded: If the key has no tokens left
        """
        allowed, retry_after = self.allow(key)
        if not allowed:
            raise RateLimitExceeded(retry_after)

    def prune(self) -> int:
        """
        Drop buckets that have refilled to `burst`.

        Returns:
            Number of buckets removed
        """
        with self._lock:
            return self._prune_locked(self._clock())

    def reset(self) -> None:
        """Forget all buckets."""
        with self._lock:
            self._buckets.clear()

    def _prune_locked(self, now: float) -> int:
        self._last_sweep = now
        if self.rate <= 0:
            return 0
        full = [
            key
            for key, bucket in self._buckets.items()
            if bucket.tokens + (now - bucket.last) * self.rate >= self.burst
        ]
        for key in full:
            del self._buckets[key]
        return len(full)
