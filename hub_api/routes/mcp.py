"""
Bearer-token API routes for developers and MCP agents.

Every route here goes through the gateway. The operations themselves are
registered in the tool registry by the application's CRUD layer.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from hub_api.auth import admit_request, get_api_gateway, require_permission
from hub_api.errors import GatewayError, GatewayInternalError, InvalidArguments, OperationNotFound
from hub_api.models.gateway import SuccessResponse, ToolCallRequest, ToolInfo
from hub_api.services.api_gateway import ApiGateway, GatewayContext
from hub_api.services.api_response import api_success
from hub_api.services.tool_registry import tool_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/mcp", tags=["mcp"])


def _log_request(request: Request, context: GatewayContext) -> None:
    logger.info(
        "mcp: %s %s token=%s user=%s",
        request.method,
        request.url.path,
        str(context.principal.token_id)[:8],
        str(context.principal.user_id)[:8],
    )


@router.get("/me")
async def whoami(
    request: Request,
    context: GatewayContext = Depends(require_permission("read")),
) -> SuccessResponse[dict[str, Any]]:
    """The principal behind the presented token."""
    _log_request(request, context)
    principal = context.principal
    return api_success(
        {
            "user_id": str(principal.user_id),
            "token_id": str(principal.token_id),
            "permissions": sorted(principal.permissions),
        }
    )


@router.get("/tools")
async def list_tools(
    request: Request,
    context: GatewayContext = Depends(require_permission("read")),
) -> SuccessResponse[list[ToolInfo]]:
    """Registered tools and the permission each one needs."""
    _log_request(request, context)
    return api_success(tool_registry.list_tools())


def _parse_tool_call(raw: bytes, context: GatewayContext) -> ToolCallRequest:
    """
    Validate the request body as a ToolCallRequest.

    An empty body means no arguments. Anything else that does not fit
    becomes InvalidArguments with per-field messages.
    """
    if not raw.strip():
        return ToolCallRequest()
    try:
        return ToolCallRequest.model_validate_json(raw)
    except ValidationError as e:
        details: dict[str, list[str]] = {}
        for error in e.errors(include_url=False, include_context=False, include_input=False):
            field = ".".join(str(part) for part in error["loc"]) or "body"
            details.setdefault(field, []).append(error["msg"])
        raise InvalidArguments(details=details, rate_limit=context.rate_limit) from e


@router.post("/tools/{name}")
async def call_tool(
    name: str,
    request: Request,
    context: GatewayContext = Depends(admit_request),
    gateway: ApiGateway = Depends(get_api_gateway),
) -> SuccessResponse[Any]:
    """
    Invoke a tool.

    The call has already been authenticated and charged by the time the
    tool is looked up, so unknown names cost the caller too. The body is
    read only once the token is known to hold the tool's permission.
    """
    _log_request(request, context)

    tool = tool_registry.get(name)
    if tool is None:
        raise OperationNotFound(f"Unknown tool: {name}", rate_limit=context.rate_limit)

    gateway.authorize(context, tool.required_permission)

    body = _parse_tool_call(await request.body(), context)

    try:
        result = await tool.handler(context.principal, body.arguments)
    except GatewayError as e:
        if e.rate_limit is None:
            e.rate_limit = context.rate_limit
        raise
    except Exception as e:
        logger.exception("mcp: tool %s failed", name)
        raise GatewayInternalError(rate_limit=context.rate_limit) from e

    return api_success(result)
