"""
Gateway orchestration for bearer-token API calls.

verify -> rate limit -> authorize -> dispatch. Each stage can stop the
request. Rate limiting happens after authentication and before
authorization: invalid tokens never touch the limiter, and a valid token
probing for permissions it lacks still pays for the attempt.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from hub_api.errors import InsufficientScope, LimitExceeded
from hub_api.middleware.rate_limit import DEFAULT_RATE_LIMIT, RateLimitConfig, RateLimiter, RateLimitStatus
from hub_api.models.gateway import Principal
from hub_api.repos.api_token_repo import TokenStore
from hub_api.services.permissions import has_all, has_permission
from hub_api.services.token_verifier import TokenVerifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GatewayContext:
    """An authenticated, rate-charged request."""

    principal: Principal
    rate_limit: RateLimitStatus


class ApiGateway:
    """Stateless orchestration over a token store and a rate limiter."""

    def __init__(
        self,
        store: TokenStore,
        limiter: RateLimiter,
        limit_config: RateLimitConfig = DEFAULT_RATE_LIMIT,
    ):
        self.verifier = TokenVerifier(store)
        self.limiter = limiter
        self.limit_config = limit_config

    async def admit(self, authorization: str | None) -> GatewayContext:
        """
        Authenticate and charge one request against the token's budget.

        Raises:
            MalformedCredential, InvalidCredential: 401
            GatewayInternalError: 500
            LimitExceeded: 429, carrying the rate-limit status
        """
        principal = await self.verifier.verify(authorization)

        rate_limit = self.limiter.check(str(principal.token_id), self.limit_config)
        if not rate_limit.allowed:
            logger.warning("gateway: rate limited token=%s", str(principal.token_id)[:8])
            raise LimitExceeded(
                details={"retry_after": rate_limit.retry_after},
                rate_limit=rate_limit,
            )

        return GatewayContext(principal=principal, rate_limit=rate_limit)

    def authorize(self, context: GatewayContext, required: str) -> None:
        """Raises InsufficientScope unless the token grants `required`."""
        if not has_permission(context.principal.permissions, required):
            raise InsufficientScope(
                f"Token does not have '{required}' permission",
                rate_limit=context.rate_limit,
            )

    def authorize_all(self, context: GatewayContext, required: Iterable[str]) -> None:
        """Raises InsufficientScope unless the token grants every permission in `required`."""
        required = set(required)
        if not has_all(context.principal.permissions, required):
            missing = ", ".join(sorted(required - context.principal.permissions))
            raise InsufficientScope(
                f"Token is missing permissions: {missing}",
                rate_limit=context.rate_limit,
            )

    async def process(self, authorization: str | None, required: str) -> GatewayContext:
        """Run every gateway stage for an operation that needs one permission."""
        context = await self.admit(authorization)
        self.authorize(context, required)
        return context
