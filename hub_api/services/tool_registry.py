"""
Registry of MCP-style operations exposed through the gateway.

Each tool declares exactly one required permission. Handlers come from
the application's CRUD layer and receive the verified principal plus the
caller's arguments; they do their own data access and ownership checks.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from hub_api.models.api_token import ALL_PERMISSIONS
from hub_api.models.gateway import Principal, ToolInfo

ToolHandler = Callable[[Principal, dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class Tool:
    name: str
    required_permission: str
    handler: ToolHandler
    description: str | None = None

    def info(self) -> ToolInfo:
        return ToolInfo(
            name=self.name,
            required_permission=self.required_permission,
            description=self.description,
        )


class ToolRegistry:
    """Name -> Tool mapping."""

    def __init__(self):
        self._tools: dict[str, Tool] = {}

    def register(
        self,
        name: str,
        required_permission: str,
        description: str | None = None,
    ) -> Callable[[ToolHandler], ToolHandler]:
        """
        Decorator that registers a handler.

        Usage:
            @tool_registry.register("list_projects", "read")
            async def list_projects(principal, arguments):
                ...
        """
        if required_permission not in ALL_PERMISSIONS:
            raise ValueError(f"Unknown permission: {required_permission}")

        def decorator(handler: ToolHandler) -> ToolHandler:
            if name in self._tools:
                raise ValueError(f"Tool already registered: {name}")
            self._tools[name] = Tool(name, required_permission, handler, description or handler.__doc__)
            return handler

        return decorator

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def list_tools(self) -> list[ToolInfo]:
        return [self._tools[name].info() for name in sorted(self._tools)]

    def unregister(self, name: str) -> None:
        self._tools.pop(name, None)

    def clear(self) -> None:
        self._tools.clear()


# Global registry; the CRUD layer registers its tools at import time.
tool_registry = ToolRegistry()
