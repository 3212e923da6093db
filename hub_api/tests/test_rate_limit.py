"""
Tests for hub_api/middleware/rate_limit.py
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from hub_api.middleware.rate_limit import RateLimitConfig, RateLimiter, RateLimitStatus

CONFIG = RateLimitConfig(limit=100, window_seconds=60)


@pytest.fixture
def limiter(clock):
    return RateLimiter(clock=clock)


class TestCheck:
    def test_hundred_calls_then_denied(self, limiter):
        remaining = [limiter.check("tok_abc", CONFIG) for _ in range(100)]

        assert all(s.allowed for s in remaining)
        assert [s.remaining for s in remaining] == list(range(99, -1, -1))

        denied = limiter.check("tok_abc", CONFIG)
        assert denied.allowed is False
        assert denied.remaining == 0
        assert denied.limit == 100
        assert denied.retry_after is not None and denied.retry_after > 0

    def test_retry_after_counts_down_to_window_end(self, limiter, clock):
        config = RateLimitConfig(limit=1, window_seconds=60)
        limiter.check("k", config)
        clock.advance(20.5)

        denied = limiter.check("k", config)
        assert denied.allowed is False
        assert denied.retry_after == 40  # ceil(39.5)

    def test_new_window_after_elapsed(self, limiter, clock):
        config = RateLimitConfig(limit=2, window_seconds=60)
        limiter.check("k", config)
        limiter.check("k", config)
        assert limiter.check("k", config).allowed is False

        clock.advance(60)

        status = limiter.check("k", config)
        assert status.allowed is True
        assert status.remaining == 1  # fresh count of 1

    def test_denied_calls_still_count_within_window(self, limiter, clock):
        config = RateLimitConfig(limit=1, window_seconds=10)
        limiter.check("k", config)
        for _ in range(5):
            assert limiter.check("k", config).allowed is False
        clock.advance(10)
        assert limiter.check("k", config).allowed is True

    def test_identifiers_are_isolated(self, limiter):
        config = RateLimitConfig(limit=3, window_seconds=60)
        for _ in range(10):
            limiter.check("x", config)

        status = limiter.check("y", config)
        assert status.allowed is True
        assert status.remaining == 2

    def test_reset_after_reflects_window(self, limiter, clock):
        limiter.check("k", CONFIG)
        clock.advance(15)
        status = limiter.check("k", CONFIG)
        assert status.reset_after == 45


class TestConcurrency:
    def test_no_lost_increments(self):
        limiter = RateLimiter()
        config = RateLimitConfig(limit=50, window_seconds=3600)

        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(lambda _: limiter.check("shared", config), range(150)))

        assert sum(1 for r in results if r.allowed) == 50
        assert sum(1 for r in results if not r.allowed) == 100
        assert limiter.status("shared", config).remaining == 0

    def test_unrelated_identifiers_in_parallel(self):
        limiter = RateLimiter(shards=4)
        config = RateLimitConfig(limit=10, window_seconds=3600)
        keys = [f"tok_{i}" for i in range(20)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda k: [limiter.check(k, config) for _ in range(10)], keys))

        for key in keys:
            assert limiter.status(key, config).remaining == 0


class TestStatus:
    def test_does_not_increment(self, limiter):
        limiter.check("k", CONFIG)
        for _ in range(5):
            status = limiter.status("k", CONFIG)
        assert status.remaining == 99
        assert limiter.check("k", CONFIG).remaining == 98

    def test_unknown_identifier_has_full_budget(self, limiter):
        status = limiter.status("nobody", CONFIG)
        assert status.allowed is True
        assert status.remaining == 100
        assert status.reset_after == 60

    def test_expired_window_reports_full_budget(self, limiter, clock):
        for _ in range(100):
            limiter.check("k", CONFIG)
        assert limiter.status("k", CONFIG).allowed is False
        clock.advance(61)
        assert limiter.status("k", CONFIG).remaining == 100


class TestResetAndCleanup:
    def test_reset_clears_counter(self, limiter):
        config = RateLimitConfig(limit=1, window_seconds=60)
        limiter.check("k", config)
        assert limiter.check("k", config).allowed is False

        limiter.reset("k")

        assert limiter.check("k", config).allowed is True

    def test_reset_unknown_is_noop(self, limiter):
        limiter.reset("never-seen")

    def test_cleanup_removes_idle_entries(self, limiter, clock):
        limiter.check("old", CONFIG)
        clock.advance(700)
        limiter.check("fresh", CONFIG)

        removed = limiter.cleanup_old_entries(max_age_seconds=600)

        assert removed == 1
        assert limiter.status("old", CONFIG).remaining == 100
        assert limiter.status("fresh", CONFIG).remaining == 99


class TestFailClosed:
    def test_clock_failure_denies(self):
        def broken_clock():
            raise RuntimeError("clock unavailable")

        limiter = RateLimiter(clock=broken_clock)
        status = limiter.check("k", CONFIG)

        assert status.allowed is False
        assert status.remaining == 0
        assert status.retry_after == 60

    def test_status_failure_denies(self):
        def broken_clock():
            raise RuntimeError("clock unavailable")

        limiter = RateLimiter(clock=broken_clock)
        assert limiter.status("k", CONFIG).allowed is False


class TestHeaders:
    def test_allowed_headers(self):
        status = RateLimitStatus(allowed=True, remaining=7, limit=10, reset_after=30)
        assert status.headers() == {
            "X-RateLimit-Limit": "10",
            "X-RateLimit-Remaining": "7",
            "X-RateLimit-Reset": "30",
        }

    def test_denied_headers_include_retry_after(self):
        status = RateLimitStatus(allowed=False, remaining=0, limit=10, reset_after=12, retry_after=12)
        headers = status.headers()
        assert headers["Retry-After"] == "12"
        assert headers["X-RateLimit-Remaining"] == "0"
