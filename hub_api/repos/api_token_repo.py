"""API token repository."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

import asyncpg

from hub_api.db import system_conn, user_conn
from hub_api.errors import TokenLimitReached
from hub_api.models.api_token import ApiToken

_COLUMNS = """
    id, user_id, token_prefix, token_hash, name, permissions,
    last_used_at, expires_at, revoked_at, created_at
"""


class TokenStore(Protocol):
    """Persistence contract the gateway relies on. Two backends implement it."""

    async def create(
        self,
        user_id: UUID,
        token_prefix: str,
        token_hash: str,
        name: str,
        permissions: list[str],
        expires_at: datetime | None,
        max_active: int | None = None,
    ) -> ApiToken: ...

    async def find_by_prefix(self, token_prefix: str) -> list[ApiToken]: ...

    async def get(self, token_id: UUID) -> ApiToken | None: ...

    async def list_for_user(self, user_id: UUID) -> list[ApiToken]: ...

    async def count_active(self, user_id: UUID) -> int: ...

    async def revoke(self, token_id: UUID) -> ApiToken | None: ...

    async def touch_last_used(self, token_id: UUID) -> None: ...

    async def is_revoked(self, token_id: UUID) -> bool: ...

    async def is_expired(self, token_id: UUID) -> bool: ...


def _row_to_token(row: asyncpg.Record) -> ApiToken:
    """Convert a database row to an ApiToken model."""
    return ApiToken(**dict(row))


class ApiTokenRepo:
    """All api_tokens database operations."""

    async def create(
        self,
        user_id: UUID,
        token_prefix: str,
        token_hash: str,
        name: str,
        permissions: list[str],
        expires_at: datetime | None,
        max_active: int | None = None,
    ) -> ApiToken:
        """
        Insert a new token record. The plaintext never reaches this layer.

        With max_active set, the owner's non-revoked tokens are counted and
        the row inserted in one transaction, serialized per owner by an
        advisory lock, so concurrent creates cannot overshoot the cap.

        Raises:
            TokenLimitReached: If the owner already has max_active tokens
        """
        async with system_conn() as conn:
            if max_active is not None:
                await conn.execute("SELECT pg_advisory_xact_lock(hashtext($1))", str(user_id))
                active = await conn.fetchval(
                    "SELECT count(*) FROM api_tokens WHERE user_id = $1 AND revoked_at IS NULL",
                    user_id,
                )
                if active >= max_active:
                    raise TokenLimitReached(max_active)

            row = await conn.fetchrow(
                f"""
                INSERT INTO api_tokens (user_id, token_prefix, token_hash, name, permissions, expires_at)
                VALUES ($1, $2, $3, $4, $5, $6)
                RETURNING {_COLUMNS}
                """,
                user_id,
                token_prefix,
                token_hash,
                name,
                permissions,
                expires_at,
            )
            return _row_to_token(row)

    async def find_by_prefix(self, token_prefix: str) -> list[ApiToken]:
        """
        Get usable candidate tokens for a lookup prefix.

        Served by the api_tokens_token_prefix_idx index. Normally zero or
        one row comes back.
        """
        async with system_conn() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {_COLUMNS}
                FROM api_tokens
                WHERE token_prefix = $1
                  AND revoked_at IS NULL
                  AND (expires_at IS NULL OR expires_at > now())
                """,
                token_prefix,
            )
            return [_row_to_token(row) for row in rows]

    async def get(self, token_id: UUID) -> ApiToken | None:
        async with system_conn() as conn:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM api_tokens WHERE id = $1",
                token_id,
            )
            return _row_to_token(row) if row else None

    async def list_for_user(self, user_id: UUID) -> list[ApiToken]:
        """List all tokens for a user, newest first."""
        async with user_conn(user_id) as conn:
            rows = await conn.fetch(
                f"""
                SELECT {_COLUMNS}
                FROM api_tokens
                WHERE user_id = $1
                ORDER BY created_at DESC
                """,
                user_id,
            )
            return [_row_to_token(row) for row in rows]

    async def count_active(self, user_id: UUID) -> int:
        """Count non-revoked tokens. Expired ones still occupy a slot until revoked."""
        async with user_conn(user_id) as conn:
            return await conn.fetchval(
                "SELECT count(*) FROM api_tokens WHERE user_id = $1 AND revoked_at IS NULL",
                user_id,
            )

    async def revoke(self, token_id: UUID) -> ApiToken | None:
        """
        Set revoked_at. Returns the updated token, or None if it does not
        exist or was already revoked.
        """
        async with system_conn() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE api_tokens
                SET revoked_at = now()
                WHERE id = $1 AND revoked_at IS NULL
                RETURNING {_COLUMNS}
                """,
                token_id,
            )
            return _row_to_token(row) if row else None

    async def touch_last_used(self, token_id: UUID) -> None:
        """Update last_used_at timestamp."""
        async with system_conn() as conn:
            await conn.execute(
                """
                UPDATE api_tokens
                SET last_used_at = now()
                WHERE id = $1
                """,
                token_id,
            )

    async def is_revoked(self, token_id: UUID) -> bool:
        """Unknown ids count as revoked."""
        async with system_conn() as conn:
            row = await conn.fetchrow(
                "SELECT revoked_at IS NOT NULL AS revoked FROM api_tokens WHERE id = $1",
                token_id,
            )
            return True if row is None else row["revoked"]

    async def is_expired(self, token_id: UUID) -> bool:
        """Unknown ids count as expired."""
        async with system_conn() as conn:
            row = await conn.fetchrow(
                """
                SELECT expires_at IS NOT NULL AND expires_at <= now() AS expired
                FROM api_tokens
                WHERE id = $1
                """,
                token_id,
            )
            return True if row is None else row["expired"]
