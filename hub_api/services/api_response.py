"""
Response envelopes for bearer-token API calls.

Success: {"data": ..., "meta": {"timestamp", "request_id"}}
Error:   {"error": "...", "code": "...", "details": {...}?, "meta": {...}}
"""

from __future__ import annotations

import secrets
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from hub_api.errors import GatewayError
from hub_api.models.gateway import ErrorResponse, ResponseMeta, SuccessResponse


def generate_request_id() -> str:
    """Format: req_<12 url-safe characters>."""
    return f"req_{secrets.token_urlsafe(9)}"


def api_success(data: Any, request_id: str | None = None) -> SuccessResponse[Any]:
    return SuccessResponse[Any](
        data=data,
        meta=ResponseMeta(request_id=request_id or generate_request_id()),
    )


def api_error(exc: GatewayError, request_id: str | None = None) -> JSONResponse:
    """Render a GatewayError, with rate-limit headers if it was charged."""
    body = ErrorResponse(
        error=exc.message,
        code=exc.code,
        details=exc.details,
        meta=ResponseMeta(request_id=request_id or generate_request_id()),
    )
    headers = exc.rate_limit.headers() if exc.rate_limit is not None else None
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(body, exclude_none=True),
        headers=headers,
    )
