"""API token models."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

TokenPermission = Literal["read", "create", "update", "delete"]
TokenStatus = Literal["active", "expired", "revoked"]

ALL_PERMISSIONS: frozenset[str] = frozenset({"read", "create", "update", "delete"})


class ApiToken(BaseModel):
    """API token stored in database."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    token_prefix: str
    token_hash: str
    name: str
    permissions: list[TokenPermission]
    last_used_at: datetime | None = None
    expires_at: datetime | None = None
    revoked_at: datetime | None = None
    created_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        """Expiry is inferred from expires_at, never written back."""
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or datetime.now(UTC))

    def is_usable(self, now: datetime | None = None) -> bool:
        return self.revoked_at is None and not self.is_expired(now)

    @property
    def status(self) -> TokenStatus:
        if self.revoked_at is not None:
            return "revoked"
        if self.is_expired():
            return "expired"
        return "active"


class ApiTokenListItem(BaseModel):
    """API token info for listing (no hash)."""

    id: UUID
    name: str
    permissions: list[TokenPermission]
    last_used_at: datetime | None
    expires_at: datetime | None
    created_at: datetime
    status: TokenStatus

    @classmethod
    def from_token(cls, token: ApiToken) -> ApiTokenListItem:
        return cls(
            id=token.id,
            name=token.name,
            permissions=token.permissions,
            last_used_at=token.last_used_at,
            expires_at=token.expires_at,
            created_at=token.created_at,
            status=token.status,
        )


class CreateTokenRequest(BaseModel):
    """Request to generate a new token."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=100)
    permissions: list[TokenPermission] = Field(default_factory=lambda: ["read"], min_length=1)
    expires_at: datetime | None = None

    @field_validator("permissions")
    @classmethod
    def dedupe_permissions(cls, value: list[TokenPermission]) -> list[TokenPermission]:
        return sorted(set(value), key=["read", "create", "update", "delete"].index)

    @field_validator("expires_at")
    @classmethod
    def require_future_expiry(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        if value <= datetime.now(UTC):
            raise ValueError("expires_at must be in the future")
        return value


class CreatedToken(ApiTokenListItem):
    """Returned exactly once, at creation. Carries the plaintext token."""

    plain_token: str


class CreateTokenResponse(BaseModel):
    token: CreatedToken
    message: str = "Token created successfully. Make sure to copy it now - you won't be able to see it again!"


class RevokeTokenResponse(BaseModel):
    message: str = "Token revoked successfully"
    token: ApiTokenListItem
