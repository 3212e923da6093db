"""
Pydantic models for the Startup Hub API gateway.

All data shapes defined here. No imports from db, repos, or routes.
"""

from hub_api.models.api_token import (
    ALL_PERMISSIONS,
    ApiToken,
    ApiTokenListItem,
    CreatedToken,
    CreateTokenRequest,
    CreateTokenResponse,
    RevokeTokenResponse,
    TokenPermission,
    TokenStatus,
)
from hub_api.models.gateway import (
    ErrorResponse,
    Principal,
    ResponseMeta,
    SuccessResponse,
    ToolCallRequest,
    ToolInfo,
)

__all__ = [
    # Token models
    "ALL_PERMISSIONS",
    "ApiToken",
    "ApiTokenListItem",
    "CreatedToken",
    "CreateTokenRequest",
    "CreateTokenResponse",
    "RevokeTokenResponse",
    "TokenPermission",
    "TokenStatus",
    # Gateway models
    "Principal",
    "ResponseMeta",
    "SuccessResponse",
    "ErrorResponse",
    "ToolCallRequest",
    "ToolInfo",
]
