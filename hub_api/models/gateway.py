"""Models passed between gateway stages and returned to API callers."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from hub_api.models.api_token import TokenPermission

T = TypeVar("T")


class Principal(BaseModel):
    """Who a verified bearer token acts for. Handed to operation handlers."""

    model_config = ConfigDict(frozen=True)

    user_id: UUID
    token_id: UUID
    permissions: frozenset[TokenPermission]


class ResponseMeta(BaseModel):
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    request_id: str


class SuccessResponse(BaseModel, Generic[T]):
    data: T
    meta: ResponseMeta


class ErrorResponse(BaseModel):
    error: str
    code: str
    details: dict[str, Any] | None = None
    meta: ResponseMeta


class ToolCallRequest(BaseModel):
    """Body of an MCP tool invocation."""

    model_config = ConfigDict(extra="forbid")

    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolInfo(BaseModel):
    name: str
    required_permission: TokenPermission
    description: str | None = None
