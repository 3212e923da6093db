"""
Gateway error taxonomy.

Every failure a bearer-token caller can see is one of these. The HTTP
layer renders them through a single exception handler, so the status
code, error code and message stay stable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from hub_api.middleware.rate_limit import RateLimitStatus

# Shared by every credential failure so callers cannot tell them apart.
UNAUTHORIZED_MESSAGE = "Invalid or missing API token"


class GatewayError(Exception):
    """Base class for failures surfaced to API callers."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
        rate_limit: RateLimitStatus | None = None,
    ):
        self.message = message or self.default_message
        self.details = details
        self.rate_limit = rate_limit
        super().__init__(self.message)


class MalformedCredential(GatewayError):
    """Missing header, wrong scheme, wrong prefix or wrong shape."""

    code = "UNAUTHORIZED"
    status_code = 401
    default_message = UNAUTHORIZED_MESSAGE

    def __init__(self, reason: str = "malformed", **kwargs):
        # The reason is for logs only. The caller always sees the shared message.
        self.reason = reason
        super().__init__(UNAUTHORIZED_MESSAGE, **kwargs)


class InvalidCredential(GatewayError):
    """Well-formed credential with no matching usable token."""

    code = "UNAUTHORIZED"
    status_code = 401
    default_message = UNAUTHORIZED_MESSAGE

    def __init__(self, reason: str = "no_match", **kwargs):
        self.reason = reason
        super().__init__(UNAUTHORIZED_MESSAGE, **kwargs)


class InsufficientScope(GatewayError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "Forbidden"


class LimitExceeded(GatewayError):
    code = "RATE_LIMITED"
    status_code = 429
    default_message = "Too many requests"


class OperationNotFound(GatewayError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"


class InvalidArguments(GatewayError):
    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Validation failed"


class GatewayInternalError(GatewayError):
    """Store unreachable, hash library failure, handler crash. Never a pass."""


class TokenLimitReached(Exception):
    """Owner already holds the maximum number of active tokens."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(
            f"Maximum of {limit} active tokens reached. Please revoke an existing token first."
        )
