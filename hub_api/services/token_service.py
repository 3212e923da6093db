"""
API token issuance.

Tokens look like sh_live_<32 url-safe chars>. The first 8 characters after
the literal prefix are stored in plaintext for indexed lookup; the whole
token is stored only as a bcrypt hash. The plaintext is handed back once.
"""

from __future__ import annotations

import asyncio
import logging
import re
import secrets
from datetime import UTC, datetime
from uuid import UUID

import bcrypt

from hub_api import config
from hub_api.errors import TokenLimitReached
from hub_api.models.api_token import ApiToken
from hub_api.repos.api_token_repo import TokenStore

logger = logging.getLogger(__name__)

TOKEN_PREFIX = config.settings.TOKEN_PREFIX
_SECRET_RE = re.compile(rf"[A-Za-z0-9_-]{{{config.settings.TOKEN_SECRET_LENGTH}}}")


def generate_token() -> str:
    """Generate a new API token with the sh_live_ prefix."""
    # 24 random bytes encode to exactly 32 url-safe characters
    return f"{TOKEN_PREFIX}{secrets.token_urlsafe(config.settings.TOKEN_SECRET_LENGTH * 3 // 4)}"


def is_well_formed(token: str) -> bool:
    """Exact, case-sensitive prefix followed by 32 url-safe characters."""
    return token.startswith(TOKEN_PREFIX) and bool(_SECRET_RE.fullmatch(token[len(TOKEN_PREFIX) :]))


def extract_lookup_prefix(token: str) -> str:
    """First 8 characters after the literal prefix."""
    return token[len(TOKEN_PREFIX) : len(TOKEN_PREFIX) + config.settings.TOKEN_LOOKUP_LENGTH]


def hash_token(token: str, rounds: int | None = None) -> str:
    """Hash a token with bcrypt."""
    salt = bcrypt.gensalt(rounds=rounds or config.settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(token.encode(), salt).decode()


def check_token(token: str, token_hash: str) -> bool:
    """Constant-time comparison against a stored bcrypt hash."""
    return bcrypt.checkpw(token.encode(), token_hash.encode())


async def issue_token(
    store: TokenStore,
    user_id: UUID,
    name: str,
    permissions: list[str],
    expires_at: datetime | None = None,
) -> tuple[str, ApiToken]:
    """
    Create a new API token.

    Args:
        store: Token store to persist the record in
        user_id: Owner of the token
        name: Human-readable label
        permissions: Granted scope, fixed for the token's lifetime
        expires_at: Absolute expiry, or None for a non-expiring token

    Returns:
        (raw_token, token_record). raw_token is never retrievable again.

    Raises:
        ValueError: If expires_at is not in the future
        TokenLimitReached: If the owner already has MAX_ACTIVE_TOKENS active tokens
    """
    if expires_at is not None and expires_at <= datetime.now(UTC):
        raise ValueError("expires_at must be in the future")

    # Cheap early refusal; the store enforces the cap atomically on insert
    active = await store.count_active(user_id)
    if active >= config.settings.MAX_ACTIVE_TOKENS:
        raise TokenLimitReached(config.settings.MAX_ACTIVE_TOKENS)

    raw_token = generate_token()
    # bcrypt is deliberately slow; keep it off the event loop
    token_hash = await asyncio.to_thread(hash_token, raw_token)

    token = await store.create(
        user_id=user_id,
        token_prefix=extract_lookup_prefix(raw_token),
        token_hash=token_hash,
        name=name,
        permissions=permissions,
        expires_at=expires_at,
        max_active=config.settings.MAX_ACTIVE_TOKENS,
    )
    logger.info("api token issued: token=%s user=%s", str(token.id)[:8], str(user_id)[:8])
    return raw_token, token
