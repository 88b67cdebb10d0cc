"""
Type definitions for MCP tool results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .ai_format import is_ctx_format, render_ctx_markdown, render_ctx_text

# Failure categories carried in every error payload.
ARGUMENT = "argument"
SESSION_STATE = "session_state"
EXECUTION = "execution"
UNSUPPORTED = "unsupported"


@dataclass(slots=True)
class ToolContent:
    """Single content item in tool response."""

    type: str
    text: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to MCP content format."""
        return {"type": self.type, "text": self.text}


@dataclass(slots=True)
class ToolResult:
    """Result of a tool execution."""

    content: list[ToolContent] = field(default_factory=list)
    is_error: bool = False
    # Raw payload for callers inside the process (tests, logging); not on the wire.
    data: Any | None = None

    @classmethod
    def text(cls, text: str) -> ToolResult:
        """Create result with single text content (context-format)."""
        raw = text or ""
        wrapped = raw if is_ctx_format(raw) else render_ctx_text(raw)
        return cls(content=[ToolContent(type="text", text=wrapped)], data=raw)

    @classmethod
    def error(
        cls,
        message: str,
        *,
        category: str = EXECUTION,
        tool: str | None = None,
        suggestion: str | None = None,
    ) -> ToolResult:
        """Create a failure result; never raised, always returned."""
        payload: dict[str, Any] = {"ok": False, "error": message, "category": category}
        if tool:
            payload["tool"] = tool
        if suggestion:
            payload["suggestion"] = suggestion
        return cls(content=[ToolContent(type="text", text=render_ctx_markdown(payload))], is_error=True, data=payload)

    @property
    def message(self) -> str:
        """Plain text of the result: the raw text, or the error message for failures."""
        if isinstance(self.data, dict) and self.is_error:
            return str(self.data.get("error", ""))
        if isinstance(self.data, str):
            return self.data
        return "\n".join(c.text or "" for c in self.content if c.type == "text")

    @property
    def category(self) -> str | None:
        if self.is_error and isinstance(self.data, dict):
            return self.data.get("category")
        return None

    def to_content_list(self) -> list[dict[str, Any]]:
        """Convert to MCP content list format."""
        return [c.to_dict() for c in self.content]
