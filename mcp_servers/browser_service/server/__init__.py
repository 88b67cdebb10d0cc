"""Server package for the browser service MCP surface.

Keep this package import light: importing `mcp_servers.browser_service.server.*`
should not eagerly pull the dispatcher (avoids circular imports with session/tools).
"""

from __future__ import annotations

from typing import Any

__all__ = ["ToolDispatcher"]


def __getattr__(name: str) -> Any:  # pragma: no cover
    if name == "ToolDispatcher":
        from .registry import ToolDispatcher

        return ToolDispatcher
    raise AttributeError(name)
