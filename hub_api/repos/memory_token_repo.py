"""
Process-local token store.

Same contract as ApiTokenRepo, backed by a dict. Used by the test suite
and by TOKEN_STORE=memory for local development. Records vanish on restart.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import UTC, datetime
from uuid import UUID, uuid4

from hub_api.errors import TokenLimitReached
from hub_api.models.api_token import ApiToken


class InMemoryTokenRepo:
    """Dict-backed api_tokens table with a secondary index on token_prefix."""

    def __init__(self):
        self._tokens: dict[UUID, ApiToken] = {}
        self._by_prefix: dict[str, set[UUID]] = defaultdict(set)

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
        # No await between the count and the insert, so this is atomic on the loop
        if max_active is not None and self._count_active(user_id) >= max_active:
            raise TokenLimitReached(max_active)

        token = ApiToken(
            id=uuid4(),
            user_id=user_id,
            token_prefix=token_prefix,
            token_hash=token_hash,
            name=name,
            permissions=list(permissions),
            expires_at=expires_at,
            created_at=datetime.now(UTC),
        )
        self._tokens[token.id] = token
        self._by_prefix[token_prefix].add(token.id)
        return token.model_copy()

    async def find_by_prefix(self, token_prefix: str) -> list[ApiToken]:
        now = datetime.now(UTC)
        candidates = (self._tokens[token_id] for token_id in self._by_prefix.get(token_prefix, ()))
        return [token.model_copy() for token in candidates if token.is_usable(now)]

    async def get(self, token_id: UUID) -> ApiToken | None:
        token = self._tokens.get(token_id)
        return token.model_copy() if token else None

    async def list_for_user(self, user_id: UUID) -> list[ApiToken]:
        tokens = [t for t in self._tokens.values() if t.user_id == user_id]
        tokens.sort(key=lambda t: t.created_at, reverse=True)
        return [t.model_copy() for t in tokens]

    def _count_active(self, user_id: UUID) -> int:
        return sum(1 for t in self._tokens.values() if t.user_id == user_id and t.revoked_at is None)

    async def count_active(self, user_id: UUID) -> int:
        return self._count_active(user_id)

    async def revoke(self, token_id: UUID) -> ApiToken | None:
        token = self._tokens.get(token_id)
        if token is None or token.revoked_at is not None:
            return None
        token.revoked_at = datetime.now(UTC)
        return token.model_copy()

    async def touch_last_used(self, token_id: UUID) -> None:
        token = self._tokens.get(token_id)
        if token is not None:
            token.last_used_at = datetime.now(UTC)

    async def is_revoked(self, token_id: UUID) -> bool:
        token = self._tokens.get(token_id)
        return token is None or token.revoked_at is not None

    async def is_expired(self, token_id: UUID) -> bool:
        token = self._tokens.get(token_id)
        return token is None or token.is_expired()

    def clear(self) -> None:
        self._tokens.clear()
        self._by_prefix.clear()
