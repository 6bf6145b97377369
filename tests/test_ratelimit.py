"""
Tests for the sliding window rate limiter.
"""

import pytest

from gasless_relayer.ratelimit import RateLimitExceeded, SlidingWindowRateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestSlidingWindow:
    """Tests for SlidingWindowRateLimiter.check."""

    def test_allows_up_to_limit(self):
        limiter = SlidingWindowRateLimiter(limit=3, window_seconds=60, clock=FakeClock())
        for _ in range(3):
            limiter.check("1.2.3.4")

        with pytest.raises(RateLimitExceeded) as exc_info:
            limiter.check("1.2.3.4")
        assert exc_info.value.retry_after == 61

    def test_window_slides(self):
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

        limiter.check("a")
        clock.now += 60.5
        limiter.check("a")

    def test_keys_are_independent(self):
        limiter = SlidingWindowRateLimiter(limit=1, window_seconds=60, clock=FakeClock())
        limiter.check("a")
        limiter.check("b")

    def test_reset(self):
        limiter = SlidingWindowRateLimiter(limit=1, window_seconds=60, clock=FakeClock())
        limiter.check("a")
        limiter.reset("a")
        limiter.check("a")

    def test_expired_keys_are_dropped(self):
        """Clients that stop calling do not accumulate."""
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter(limit=5, window_seconds=60, clock=clock)
        for i in range(10):
            limiter.check(f"10.0.0.{i}")
        assert len(limiter) == 10

        clock.now += 61
        limiter.check("10.0.0.99")

        assert len(limiter) == 1

    def test_active_keys_survive_sweep(self):
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter(limit=5, window_seconds=60, clock=clock)
        limiter.check("old")
        clock.now += 30
        limiter.check("recent")

        clock.now += 31
        limiter.check("new")

        assert len(limiter) == 2
