"""
In-memory lockout for failed login attempts.

Keyed by normalized email or client IP. After max_attempts failures the
identifier is locked out for lockout_seconds. A verified-correct password
clears the counter; an ordinary request does not.

This is a separate counter namespace from the API token limiter.

No route in this service signs anyone in. The caller is the web
application's credentials login, mounted in the same process: check()
before verifying a password, then record_failure() or record_success().
Idle counters are evicted by the lifespan cleanup task in main.py.
"""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from hub_api import config


@dataclass(frozen=True)
class LoginRateLimitConfig:
    max_attempts: int = 5
    lockout_seconds: float = 15 * 60


DEFAULT_LOGIN_RATE_LIMIT = LoginRateLimitConfig(
    max_attempts=config.settings.LOGIN_MAX_ATTEMPTS,
    lockout_seconds=config.settings.LOGIN_LOCKOUT_MINUTES * 60,
)


@dataclass(frozen=True)
class LoginRateLimitStatus:
    allowed: bool
    remaining_attempts: int
    retry_after: int | None = None


@dataclass
class _Attempts:
    failed: int = 0
    locked_at: float | None = None
    last_access: float = 0.0


def normalize_identifier(identifier: str) -> str:
    """Emails compare case-insensitively; IPs are unaffected."""
    return identifier.strip().lower()


class LoginRateLimiter:
    """Failed-attempt counter with a timed lockout."""

    def __init__(
        self,
        limit_config: LoginRateLimitConfig = DEFAULT_LOGIN_RATE_LIMIT,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = limit_config
        self._clock = clock
        self._lock = threading.Lock()
        self._attempts: dict[str, _Attempts] = {}

    def check(self, identifier: str) -> LoginRateLimitStatus:
        """Is a login attempt allowed right now? Does not count an attempt."""
        key = normalize_identifier(identifier)
        with self._lock:
            now = self._clock()
            entry = self._attempts.get(key)
            if entry is None:
                return LoginRateLimitStatus(allowed=True, remaining_attempts=self.config.max_attempts)

            if entry.locked_at is not None:
                lockout_ends = entry.locked_at + self.config.lockout_seconds
                if now < lockout_ends:
                    return LoginRateLimitStatus(
                        allowed=False,
                        remaining_attempts=0,
                        retry_after=math.ceil(lockout_ends - now),
                    )
                del self._attempts[key]
                return LoginRateLimitStatus(allowed=True, remaining_attempts=self.config.max_attempts)

            remaining = max(0, self.config.max_attempts - entry.failed)
            return LoginRateLimitStatus(allowed=remaining > 0, remaining_attempts=remaining)

    def record_failure(self, identifier: str) -> LoginRateLimitStatus:
        """Count a failed attempt, starting a lockout once the budget is spent."""
        key = normalize_identifier(identifier)
        with self._lock:
            now = self._clock()
            entry = self._attempts.setdefault(key, _Attempts())

            if entry.locked_at is not None and now >= entry.locked_at + self.config.lockout_seconds:
                entry.failed = 0
                entry.locked_at = None

            entry.failed += 1
            entry.last_access = now

            if entry.failed >= self.config.max_attempts:
                if entry.locked_at is None:
                    entry.locked_at = now
                retry_after = math.ceil(entry.locked_at + self.config.lockout_seconds - now)
                return LoginRateLimitStatus(allowed=False, remaining_attempts=0, retry_after=retry_after)

            return LoginRateLimitStatus(
                allowed=True,
                remaining_attempts=self.config.max_attempts - entry.failed,
            )

    def record_success(self, identifier: str) -> None:
        """A verified-correct password clears the counter."""
        self.reset(identifier)

    def reset(self, identifier: str) -> None:
        with self._lock:
            self._attempts.pop(normalize_identifier(identifier), None)

    def clear(self) -> None:
        with self._lock:
            self._attempts.clear()

    def cleanup_old_entries(self, max_age_seconds: float = 30 * 60) -> int:
        """Drop entries idle longer than max_age_seconds that are not locked out."""
        with self._lock:
            now = self._clock()
            stale = [
                key
                for key, entry in self._attempts.items()
                if now - entry.last_access > max_age_seconds
                and (entry.locked_at is None or now >= entry.locked_at + self.config.lockout_seconds)
            ]
            for key in stale:
                del self._attempts[key]
            return len(stale)


def format_retry_time(seconds: int) -> str:
    """
    Render a wait for humans.

    Examples: "1 second", "15 minutes", "2 minutes 30 seconds".
    """
    minutes, secs = divmod(max(0, int(seconds)), 60)

    def plural(n: int, unit: str) -> str:
        return f"{n} {unit}{'' if n == 1 else 's'}"

    if minutes == 0:
        return plural(secs, "second")
    if secs == 0:
        return plural(minutes, "minute")
    return f"{plural(minutes, 'minute')} {plural(secs, 'second')}"


# Global login rate limiter instance, for the web app's login handler
login_rate_limiter = LoginRateLimiter()
