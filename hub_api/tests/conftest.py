"""
Pytest configuration and fixtures for the Startup Hub API gateway tests.
"""

from __future__ import annotations

import os

# Set test environment variables before importing config
os.environ.setdefault("TOKEN_STORE", "memory")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from uuid import uuid4  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from hub_api.auth import create_jwt, token_store  # noqa: E402
from hub_api.main import app  # noqa: E402
from hub_api.middleware.login_rate_limit import login_rate_limiter  # noqa: E402
from hub_api.middleware.rate_limit import rate_limiter  # noqa: E402
from hub_api.services.tool_registry import tool_registry  # noqa: E402


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def clean_state():
    """Reset every process-wide store between tests."""
    token_store.clear()
    rate_limiter.clear()
    login_rate_limiter.clear()
    tool_registry.clear()
    app.dependency_overrides.clear()
    yield
    app.dependency_overrides.clear()
    tool_registry.clear()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    """The in-memory token store the app is wired to."""
    return token_store


@pytest.fixture
def test_user_id():
    return uuid4()


@pytest.fixture
def second_user_id():
    return uuid4()


@pytest.fixture
def session_headers(test_user_id):
    """Dashboard session cookie for the test user."""
    return {"Cookie": f"session={create_jwt(test_user_id)}"}


@pytest_asyncio.fixture
async def async_client():
    """Async HTTP client against the ASGI app."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
