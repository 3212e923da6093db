"""API token management routes (dashboard, session cookie)."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from hub_api.auth import get_current_user_id, token_store
from hub_api.errors import TokenLimitReached
from hub_api.models.api_token import (
    ApiToken,
    ApiTokenListItem,
    CreatedToken,
    CreateTokenRequest,
    CreateTokenResponse,
    RevokeTokenResponse,
)
from hub_api.services.token_service import issue_token

router = APIRouter(prefix="/api/tokens", tags=["api_tokens"])


async def _get_owned_token(token_id: UUID, user_id: UUID, action: str) -> ApiToken:
    token = await token_store.get(token_id)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Token not found.",
        )
    if token.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You don't have permission to {action} this token.",
        )
    return token


@router.get("")
async def list_tokens(
    user_id: UUID = Depends(get_current_user_id),
) -> list[ApiTokenListItem]:
    """List all API tokens for the current user."""
    tokens = await token_store.list_for_user(user_id)
    return [ApiTokenListItem.from_token(t) for t in tokens]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_token(
    request: CreateTokenRequest,
    user_id: UUID = Depends(get_current_user_id),
) -> CreateTokenResponse:
    """
    Generate a new API token.

    The plain token is in this response and nowhere else, ever.
    """
    try:
        raw_token, token = await issue_token(
            token_store,
            user_id,
            name=request.name,
            permissions=list(request.permissions),
            expires_at=request.expires_at,
        )
    except TokenLimitReached as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e

    item = ApiTokenListItem.from_token(token)
    return CreateTokenResponse(token=CreatedToken(**item.model_dump(), plain_token=raw_token))


@router.get("/{token_id}")
async def get_token(
    token_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
) -> ApiTokenListItem:
    """Get details of one of the current user's tokens."""
    token = await _get_owned_token(token_id, user_id, "view")
    return ApiTokenListItem.from_token(token)


@router.delete("/{token_id}")
async def revoke_token(
    token_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
) -> RevokeTokenResponse:
    """
    Revoke an API token.

    The record is kept; revocation only sets revoked_at, once.
    """
    await _get_owned_token(token_id, user_id, "revoke")

    revoked = await token_store.revoke(token_id)
    if revoked is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Token is already revoked.",
        )

    return RevokeTokenResponse(token=ApiTokenListItem.from_token(revoked))
