"""
Authentication for the Startup Hub API.

Two ways in:
- Session cookie (JWT) for the dashboard's token management pages.
- Bearer API token (sh_live_...) for developers and MCP agents, through
  the gateway: verify -> rate limit -> authorize.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Cookie, Depends, Header, HTTPException, Response, status

from hub_api import config
from hub_api.middleware.rate_limit import rate_limiter
from hub_api.repos.api_token_repo import ApiTokenRepo, TokenStore
from hub_api.repos.memory_token_repo import InMemoryTokenRepo
from hub_api.services.api_gateway import ApiGateway, GatewayContext


def build_token_store() -> TokenStore:
    """Pick the token store backend from TOKEN_STORE."""
    if config.settings.TOKEN_STORE == "memory":
        return InMemoryTokenRepo()
    return ApiTokenRepo()


token_store = build_token_store()
api_gateway = ApiGateway(token_store, rate_limiter)


def create_jwt(user_id: UUID) -> str:
    """
    Create a JWT for a user session.

    Args:
        user_id: User UUID to encode in the token

    Returns:
        Signed JWT string
    """
    expires_at = datetime.now(UTC) + timedelta(hours=config.settings.JWT_EXPIRY_HOURS)
    payload = {
        "sub": str(user_id),
        "exp": expires_at,
        "iat": datetime.now(UTC),
    }
    return jwt.encode(payload, config.settings.JWT_SECRET, algorithm=config.settings.JWT_ALGORITHM)


def decode_jwt(token: str) -> dict:
    """
    Decode and verify a JWT.

    Args:
        token: JWT string to decode

    Returns:
        Decoded payload

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        return jwt.decode(token, config.settings.JWT_SECRET, algorithms=[config.settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired. Please sign in again.",
        ) from e
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token. Please sign in again.",
        ) from e


async def get_current_user_id(
    session: Annotated[str | None, Cookie()] = None,
) -> UUID:
    """
    FastAPI dependency: the signed-in dashboard user.

    Users themselves live in the web application; the session only has
    to prove who the caller is.

    Raises:
        HTTPException: If the session cookie is missing or invalid
    """
    if not session:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated. Please sign in.",
        )

    payload = decode_jwt(session)
    try:
        return UUID(payload.get("sub", ""))
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token. Please sign in again.",
        ) from e


def get_api_gateway() -> ApiGateway:
    """FastAPI dependency for the process-wide gateway. Override in tests."""
    return api_gateway


async def admit_request(
    response: Response,
    authorization: Annotated[str | None, Header()] = None,
    gateway: ApiGateway = Depends(get_api_gateway),
) -> GatewayContext:
    """
    FastAPI dependency: verify the bearer token and charge the rate limit.

    Rate-limit headers are attached to the eventual success response.
    """
    context = await gateway.admit(authorization)
    response.headers.update(context.rate_limit.headers())
    return context


def require_permission(permission: str) -> Callable[..., Awaitable[GatewayContext]]:
    """
    Build a dependency that runs every gateway stage for one permission.

    Usage:
        @router.get("/things")
        async def list_things(ctx: GatewayContext = Depends(require_permission("read"))):
            ...
    """

    async def dependency(
        context: GatewayContext = Depends(admit_request),
        gateway: ApiGateway = Depends(get_api_gateway),
    ) -> GatewayContext:
        gateway.authorize(context, permission)
        return context

    return dependency
