"""
Bearer token verification.

Resolves a presented `Authorization` header to the principal that owns
the token. All credential failures look identical to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from uuid import UUID

from hub_api.errors import GatewayInternalError, InvalidCredential, MalformedCredential
from hub_api.models.gateway import Principal
from hub_api.repos.api_token_repo import TokenStore
from hub_api.services.token_service import check_token, extract_lookup_prefix, is_well_formed

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: str | None) -> str:
    """
    Pull the token out of an Authorization header value.

    Raises:
        MalformedCredential: If the header is missing or not "Bearer <token>"
    """
    if not authorization:
        raise MalformedCredential("missing_header")

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
        raise MalformedCredential("bad_scheme")

    return parts[1]


class TokenVerifier:
    """Verify bearer tokens against a TokenStore."""

    def __init__(self, store: TokenStore):
        self.store = store
        self._pending: set[asyncio.Task] = set()

    async def verify(self, authorization: str | None) -> Principal:
        """
        Verify a presented credential.

        Args:
            authorization: Raw Authorization header value

        Returns:
            Principal for the owning user

        Raises:
            MalformedCredential: Wrong scheme, prefix or shape; no lookup happens
            InvalidCredential: No usable token matches
            GatewayInternalError: Store or hash library failure
        """
        token = extract_bearer_token(authorization)
        if not is_well_formed(token):
            raise MalformedCredential("bad_format")

        try:
            candidates = await self.store.find_by_prefix(extract_lookup_prefix(token))

            matched = None
            for candidate in candidates:
                # bcrypt is deliberately slow; keep it off the event loop
                if await asyncio.to_thread(check_token, token, candidate.token_hash):
                    matched = candidate
                    break

            if matched is None:
                raise InvalidCredential("no_match")

            # Re-read lifecycle state so a revocation that landed after the
            # candidate query still wins.
            if await self.store.is_revoked(matched.id) or await self.store.is_expired(matched.id):
                raise InvalidCredential("not_usable")
        except InvalidCredential:
            raise
        except Exception as e:
            logger.exception("token verification failed")
            raise GatewayInternalError("Authentication failed") from e

        self._schedule_touch(matched.id)

        return Principal(
            user_id=matched.user_id,
            token_id=matched.id,
            permissions=frozenset(matched.permissions),
        )

    def _schedule_touch(self, token_id: UUID) -> None:
        """Fire-and-forget last_used_at update. Failure is logged, never raised."""
        task = asyncio.create_task(self.store.touch_last_used(token_id))
        self._pending.add(task)
        task.add_done_callback(self._touch_done)

    def _touch_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Failed to update token last_used_at: %s", exc)

    async def flush(self) -> None:
        """Wait for outstanding last_used_at updates."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
