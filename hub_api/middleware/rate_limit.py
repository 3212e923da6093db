"""
In-memory rate limiting for bearer-token API calls.

Fixed-window counters keyed by token id. State is process-local and is
lost on restart; a multi-instance deployment needs a shared backend with
the same per-identifier atomicity.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from hub_api import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitConfig:
    """Maximum requests allowed per window."""

    limit: int = 100
    window_seconds: float = 60.0


DEFAULT_RATE_LIMIT = RateLimitConfig(
    limit=config.settings.API_RATE_LIMIT,
    window_seconds=config.settings.API_RATE_WINDOW_SECONDS,
)


@dataclass(frozen=True)
class RateLimitStatus:
    """Outcome of a check, also used to render response headers."""

    allowed: bool
    remaining: int
    limit: int
    reset_after: int
    retry_after: int | None = None

    def headers(self) -> dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_after),
        }
        if not self.allowed and self.retry_after is not None:
            headers["Retry-After"] = str(self.retry_after)
        return headers


@dataclass
class _Window:
    start: float
    count: int = 0
    last_access: float = 0.0


class RateLimiter:
    """
    Fixed-window rate limiter.

    Each identifier gets its own counter. Counters live in lock-striped
    shards so unrelated identifiers rarely contend, while the
    read-modify-write of one identifier's window is atomic.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, shards: int = 64):
        self._clock = clock
        self._locks = [threading.Lock() for _ in range(shards)]
        self._windows: list[dict[str, _Window]] = [{} for _ in range(shards)]

    def _shard(self, identifier: str) -> int:
        return hash(identifier) % len(self._locks)

    def check(self, identifier: str, limit_config: RateLimitConfig = DEFAULT_RATE_LIMIT) -> RateLimitStatus:
        """
        Count one request against an identifier.

        Never raises. Any internal failure denies the request.

        Args:
            identifier: Key to rate limit (token id, normalized email, ...)
            limit_config: Limit and window for this call site

        Returns:
            RateLimitStatus; allowed=False once the window budget is spent
        """
        try:
            return self._check(identifier, limit_config)
        except Exception:
            logger.exception("rate_limit: check failed for %s, denying", identifier)
            window = max(1, math.ceil(limit_config.window_seconds))
            return RateLimitStatus(
                allowed=False,
                remaining=0,
                limit=limit_config.limit,
                reset_after=window,
                retry_after=window,
            )

    def _check(self, identifier: str, limit_config: RateLimitConfig) -> RateLimitStatus:
        shard = self._shard(identifier)
        with self._locks[shard]:
            # One clock read per decision
            now = self._clock()
            windows = self._windows[shard]
            window = windows.get(identifier)
            if window is None or now >= window.start + limit_config.window_seconds:
                window = _Window(start=now)
                windows[identifier] = window

            window.count += 1
            window.last_access = now
            count = window.count

        seconds_left = window.start + limit_config.window_seconds - now
        reset_after = max(0, math.ceil(seconds_left))

        if count > limit_config.limit:
            return RateLimitStatus(
                allowed=False,
                remaining=0,
                limit=limit_config.limit,
                reset_after=reset_after,
                retry_after=max(1, reset_after),
            )

        return RateLimitStatus(
            allowed=True,
            remaining=limit_config.limit - count,
            limit=limit_config.limit,
            reset_after=reset_after,
        )

    def status(self, identifier: str, limit_config: RateLimitConfig = DEFAULT_RATE_LIMIT) -> RateLimitStatus:
        """
        Report the current window without counting a request.

        Args:
            identifier: Key to look up
            limit_config: Limit and window for this call site

        Returns:
            RateLimitStatus for the live window, or a full budget if none
        """
        try:
            shard = self._shard(identifier)
            with self._locks[shard]:
                now = self._clock()
                window = self._windows[shard].get(identifier)
                if window is None or now >= window.start + limit_config.window_seconds:
                    start, count = now, 0
                else:
                    start, count = window.start, window.count
        except Exception:
            logger.exception("rate_limit: status failed for %s", identifier)
            window_seconds = max(1, math.ceil(limit_config.window_seconds))
            return RateLimitStatus(
                allowed=False,
                remaining=0,
                limit=limit_config.limit,
                reset_after=window_seconds,
                retry_after=window_seconds,
            )

        remaining = max(0, limit_config.limit - count)
        reset_after = max(0, math.ceil(start + limit_config.window_seconds - now))
        return RateLimitStatus(
            allowed=remaining > 0,
            remaining=remaining,
            limit=limit_config.limit,
            reset_after=reset_after,
            retry_after=None if remaining > 0 else max(1, reset_after),
        )

    def reset(self, identifier: str) -> None:
        """Forget an identifier's counter entirely."""
        shard = self._shard(identifier)
        with self._locks[shard]:
            self._windows[shard].pop(identifier, None)

    def clear(self) -> None:
        """Forget every counter."""
        for lock, windows in zip(self._locks, self._windows):
            with lock:
                windows.clear()

    def cleanup_old_entries(self, max_age_seconds: float = 600) -> int:
        """
        Drop counters that have not been touched recently.

        Args:
            max_age_seconds: Remove entries idle for longer than this

        Returns:
            Number of entries removed
        """
        removed = 0
        for lock, windows in zip(self._locks, self._windows):
            with lock:
                cutoff = self._clock() - max_age_seconds
                for key in [k for k, w in windows.items() if w.last_access < cutoff]:
                    del windows[key]
                    removed += 1
        return removed


# Global rate limiter instance
rate_limiter = RateLimiter()
