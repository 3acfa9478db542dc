"""
Unit tests for the token bucket rate limiter.

Uses an injected clock so refill behaviour is deterministic.
"""

import pytest

from activation_service.api.rate_limit import RateLimitExceeded, TokenBucketLimiter


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestTokenBucket:
    def test_allows_up_to_burst(self, clock: FakeClock) -> None:
        limiter = TokenBucketLimiter(rate_per_sec=1.0, burst=3, clock=clock)

        results = [limiter.allow("1.2.3.4")[0] for _ in range(4)]

        assert results == [True, True, True, False]

    def test_retry_after_reflects_refill_rate(self, clock: FakeClock) -> None:
        limiter = TokenBucketLimiter(rate_per_sec=0.5, burst=1, clock=clock)
        limiter.allow("a")

        allowed, retry_after = limiter.allow("a")

        assert allowed is False
        assert retry_after == pytest.approx(2.0)

    def test_refills_over_time(self, clock: FakeClock) -> None:
        limiter = TokenBucketLimiter(rate_per_sec=1.0, burst=1, clock=clock)
        assert limiter.allow("a")[0] is True
        assert limiter.allow("a")[0] is False

        clock.now += 1.0

        assert limiter.allow("a")[0] is True

    def test_refill_capped_at_burst(self, clock: FakeClock) -> None:
        limiter = TokenBucketLimiter(rate_per_sec=10.0, burst=2, clock=clock)
        limiter.allow("a")
        clock.now += 3600

        results = [limiter.allow("a")[0] for _ in range(3)]

        assert results == [True, True, False]

    def test_keys_are_independent(self, clock: FakeClock) -> None:
        limiter = TokenBucketLimiter(rate_per_sec=1.0, burst=1, clock=clock)

        assert limiter.allow("a")[0] is True
        assert limiter.allow("b")[0] is True
        assert limiter.allow("a")[0] is False

    def test_per_window_allows_max_requests(self, clock: FakeClock) -> None:
        """30 requests per 60 seconds: 30 immediately, then one every 2 seconds."""
        limiter = TokenBucketLimiter.per_window(30, 60, clock=clock)

        assert all(limiter.allow("a")[0] for _ in range(30))
        assert limiter.allow("a")[0] is False

        clock.now += 2.0
        assert limiter.allow("a")[0] is True

    def test_check_raises_with_retry_after(self, clock: FakeClock) -> None:
        limiter = TokenBucketLimiter(rate_per_sec=0.25, burst=1, clock=clock)
        limiter.check("a")

        with pytest.raises(RateLimitExceeded) as exc_info:
            limiter.check("a")

        assert exc_info.value.retry_after == pytest.approx(4.0)

    def test_reset_clears_buckets(self, clock: FakeClock) -> None:
        limiter = TokenBucketLimiter(rate_per_sec=1.0, burst=1, clock=clock)
        limiter.allow("a")

        limiter.reset()

        assert limiter.allow("a")[0] is True


class TestIdleBucketEviction:
    def test_one_shot_clients_do_not_accumulate(self, clock: FakeClock) -> None:
        """Buckets of clients that stop sending are dropped once refilled."""
        limiter = TokenBucketLimiter.per_window(30, 60, clock=clock)
        for n in range(10_000):
            limiter.allow(f"10.0.{n // 256}.{n % 256}")
        assert limiter.tracked_clients == 10_000

        # One full refill period later, the next request triggers a sweep
        clock.now += 60
        limiter.allow("203.0.113.7")

        assert limiter.tracked_clients == 1

    def test_prune_drops_only_refilled_buckets(self, clock: FakeClock) -> None:
        limiter = TokenBucketLimiter(rate_per_sec=1.0, burst=3, clock=clock)
        limiter.allow("light")
        for _ in range(3):
            limiter.allow("heavy")

        clock.now += 1.0

        assert limiter.prune() == 1
        assert limiter.tracked_clients == 1

    def test_depleted_client_stays_limited_across_sweeps(self, clock: FakeClock) -> None:
        """Eviction never hands a throttled client a fresh bucket."""
        limiter = TokenBucketLimiter(rate_per_sec=0.5, burst=2, clock=clock)
        limiter.allow("a")
        limiter.allow("a")

        clock.now += 1.0
        limiter.prune()

        assert limiter.allow("a")[0] is False
        assert limiter.tracked_clients == 1
