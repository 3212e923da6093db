"""
Tests for hub_api/middleware/login_rate_limit.py
"""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest

from hub_api.main import cleanup_task
from hub_api.middleware.login_rate_limit import (
    LoginRateLimitConfig,
    LoginRateLimiter,
    format_retry_time,
    login_rate_limiter,
    normalize_identifier,
)


@pytest.fixture
def limiter(clock):
    return LoginRateLimiter(LoginRateLimitConfig(max_attempts=3, lockout_seconds=900), clock=clock)


class TestLockout:
    def test_fresh_identifier_allowed(self, limiter):
        status = limiter.check("a@example.com")
        assert status.allowed is True
        assert status.remaining_attempts == 3

    def test_check_does_not_count(self, limiter):
        for _ in range(10):
            limiter.check("a@example.com")
        assert limiter.check("a@example.com").remaining_attempts == 3

    def test_failures_count_down_then_lock(self, limiter):
        assert limiter.record_failure("a@example.com").remaining_attempts == 2
        assert limiter.record_failure("a@example.com").remaining_attempts == 1

        locked = limiter.record_failure("a@example.com")
        assert locked.allowed is False
        assert locked.retry_after == 900

        status = limiter.check("a@example.com")
        assert status.allowed is False
        assert status.remaining_attempts == 0

    def test_lockout_expires(self, limiter, clock):
        for _ in range(3):
            limiter.record_failure("a@example.com")
        clock.advance(600)
        assert limiter.check("a@example.com").retry_after == 300

        clock.advance(300)
        status = limiter.check("a@example.com")
        assert status.allowed is True
        assert status.remaining_attempts == 3

    def test_failure_after_expired_lockout_starts_over(self, limiter, clock):
        for _ in range(3):
            limiter.record_failure("a@example.com")
        clock.advance(901)
        assert limiter.record_failure("a@example.com").remaining_attempts == 2

    def test_success_clears_counter(self, limiter):
        limiter.record_failure("a@example.com")
        limiter.record_failure("a@example.com")

        limiter.record_success("a@example.com")

        assert limiter.check("a@example.com").remaining_attempts == 3

    def test_email_is_normalized(self, limiter):
        limiter.record_failure("  Alice@Example.COM ")
        assert limiter.check("alice@example.com").remaining_attempts == 2

    def test_separate_namespace_per_identifier(self, limiter):
        for _ in range(3):
            limiter.record_failure("a@example.com")
        assert limiter.check("b@example.com").allowed is True

    def test_cleanup_keeps_active_lockouts(self, limiter, clock):
        for _ in range(3):
            limiter.record_failure("locked@example.com")
        limiter.record_failure("idle@example.com")
        clock.advance(600)

        removed = limiter.cleanup_old_entries(max_age_seconds=500)

        assert removed == 1
        assert limiter.check("idle@example.com").remaining_attempts == 3
        assert limiter.check("locked@example.com").allowed is False


def test_normalize_identifier():
    assert normalize_identifier(" Bob@Example.com") == "bob@example.com"


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (1, "1 second"),
        (45, "45 seconds"),
        (60, "1 minute"),
        (900, "15 minutes"),
        (150, "2 minutes 30 seconds"),
        (61, "1 minute 1 second"),
    ],
)
def test_format_retry_time(seconds, expected):
    assert format_retry_time(seconds) == expected


@pytest.mark.asyncio
async def test_cleanup_task_sweeps_login_counters():
    with (
        patch.object(login_rate_limiter, "cleanup_old_entries", return_value=2) as mock_login_cleanup,
        patch("hub_api.main.asyncio.sleep", side_effect=asyncio.CancelledError),
    ):
        with pytest.raises(asyncio.CancelledError):
            await cleanup_task()

    mock_login_cleanup.assert_called_once_with()
