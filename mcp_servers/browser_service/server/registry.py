"""
Tool dispatcher: fixed table of operation name -> (request type, handler).

Each call is looked up by name, its arguments are parsed into the request
type, and the handler runs through the command executor. Unknown names and
invalid arguments are rejected before the session is touched.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..errors import ArgumentError
from ..executor import CommandExecutor
from ..tools import debugger, page
from . import requests as req
from .redaction import redact_tool_arguments
from .types import ARGUMENT, UNSUPPORTED, ToolResult

if TYPE_CHECKING:
    from ..session import BrowserSessionStore

logger = logging.getLogger("mcp.browser_service.registry")

Handler = Callable[..., str]


@dataclass(slots=True, frozen=True)
class ToolSpec:
    """A registered tool: name, request type and handler."""

    name: str
    request_type: type[req.ToolRequest]
    handler: Handler


TOOL_TABLE: dict[str, ToolSpec] = {
    spec.name: spec
    for spec in (
        ToolSpec("browser_navigate", req.NavigateRequest, page.navigate),
        ToolSpec("browser_screenshot", req.ScreenshotRequest, page.screenshot),
        ToolSpec("browser_click", req.ClickRequest, page.click),
        ToolSpec("browser_fill", req.FillRequest, page.fill),
        ToolSpec("browser_select", req.SelectRequest, page.select),
        ToolSpec("browser_hover", req.HoverRequest, page.hover),
        ToolSpec("browser_evaluate", req.EvaluateRequest, page.evaluate),
        ToolSpec("browser_debug_enable", req.DebugEnableRequest, debugger.debug_enable),
        ToolSpec("browser_set_breakpoint", req.SetBreakpointRequest, debugger.set_breakpoint),
        ToolSpec("browser_remove_breakpoint", req.RemoveBreakpointRequest, debugger.remove_breakpoint),
        ToolSpec("browser_pause", req.PauseRequest, debugger.pause),
        ToolSpec("browser_resume", req.ResumeRequest, debugger.resume),
        ToolSpec("browser_get_callstack", req.GetCallstackRequest, debugger.get_callstack),
    )
}

TOOL_NAMES: tuple[str, ...] = tuple(TOOL_TABLE)


class ToolDispatcher:
    """Validate a tool call and run it through the command executor."""

    def __init__(self, session: BrowserSessionStore, executor: CommandExecutor | None = None) -> None:
        self.session = session
        self.executor = executor or CommandExecutor()
        self._table = dict(TOOL_TABLE)

    @property
    def tool_names(self) -> list[str]:
        return list(self._table)

    def dispatch(self, name: str, arguments: Any) -> ToolResult:
        if not isinstance(name, str) or not name.strip():
            return self._reject("operation name is required", ARGUMENT, tool=None)

        spec = self._table.get(name)
        if spec is None:
            return self._reject(
                f"unsupported operation: {name}",
                UNSUPPORTED,
                tool=name,
                suggestion="call tools/list for the supported operations",
            )

        if arguments is None:
            arguments = {}
        if not isinstance(arguments, Mapping):
            return self._reject("arguments must be an object", ARGUMENT, tool=name)

        try:
            request = spec.request_type.from_arguments(arguments)
        except ArgumentError as exc:
            return self._reject(str(exc), ARGUMENT, tool=name)

        logger.info("tool call %s %s", name, redact_tool_arguments(name, dict(arguments)))
        unit = functools.partial(spec.handler, request, session=self.session)
        return self.executor.execute(self.session, unit, tool=name, timeout=request.timeout)

    @staticmethod
    def _reject(reason: str, category: str, *, tool: str | None, suggestion: str | None = None) -> ToolResult:
        logger.info("%s rejected [%s]: %s", tool or "<none>", category, reason)
        return ToolResult.error(reason, category=category, tool=tool, suggestion=suggestion)

    def __len__(self) -> int:
        return len(self._table)


__all__ = ["TOOL_NAMES", "TOOL_TABLE", "ToolDispatcher", "ToolSpec"]
