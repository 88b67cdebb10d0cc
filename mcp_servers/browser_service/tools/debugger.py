"""
Script debugger layered on the browser session.

The controller is an explicit state machine:

    DISABLED --enable--> RUNNING --pause--> PAUSED
        ^                  |  ^               |
        +-----disable------+  +----resume-----+

Breakpoints exist only while enabled. Every transition is guarded; an invalid
call raises DebugStateError and leaves the state untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from ..errors import DebugStateError
from ..port import CallFrame

if TYPE_CHECKING:
    from ..context import OperationContext
    from ..port import BrowserControlPort
    from ..server.requests import (
        DebugEnableRequest,
        GetCallstackRequest,
        PauseRequest,
        RemoveBreakpointRequest,
        ResumeRequest,
        SetBreakpointRequest,
    )
    from ..session import BrowserSessionStore

logger = logging.getLogger("mcp.browser_service.debugger")


class DebugPhase(str, Enum):
    DISABLED = "disabled"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass(frozen=True)
class Breakpoint:
    id: str
    url: str
    line: int
    column: int | None = None
    condition: str | None = None
    handle: str = ""

    @property
    def location(self) -> str:
        loc = f"{self.url}:{self.line}"
        if self.column is not None:
            loc += f":{self.column}"
        return loc


class DebugController:
    """Debugger phase and breakpoints for one session.

    Not thread-safe on its own: the command executor serializes callers.
    """

    def __init__(self) -> None:
        self._phase = DebugPhase.DISABLED
        self._breakpoints: dict[str, Breakpoint] = {}
        # Never reset, so ids are unique for the session lifetime.
        self._next_id = 1

    @property
    def phase(self) -> DebugPhase:
        return self._phase

    @property
    def breakpoints(self) -> list[Breakpoint]:
        return list(self._breakpoints.values())

    def _sync(self, port: BrowserControlPort) -> None:
        if self._phase is DebugPhase.DISABLED:
            return
        paused = port.poll_paused()
        if paused is True and self._phase is DebugPhase.RUNNING:
            logger.debug("Debugger paused by the page")
            self._phase = DebugPhase.PAUSED
        elif paused is False and self._phase is DebugPhase.PAUSED:
            logger.debug("Debugger resumed by the page")
            self._phase = DebugPhase.RUNNING

    def _require(self, port: BrowserControlPort, action: str, *allowed: DebugPhase) -> None:
        self._sync(port)
        if self._phase not in allowed:
            expected = " or ".join(p.value for p in allowed)
            raise DebugStateError(f"cannot {action}: debugger is {self._phase.value} (requires {expected})")

    def set_enabled(self, enabled: bool, port: BrowserControlPort, ctx: OperationContext) -> bool:
        """Enable or disable debugging. Returns False when already in the requested state."""
        if enabled:
            if self._phase is not DebugPhase.DISABLED:
                return False
            port.debugger_enable(ctx)
            self._phase = DebugPhase.RUNNING
            return True

        if self._phase is DebugPhase.DISABLED:
            return False
        port.debugger_disable(ctx)
        self.reset()
        return True

    def set_breakpoint(
        self,
        port: BrowserControlPort,
        ctx: OperationContext,
        *,
        url: str,
        line: int,
        column: int | None = None,
        condition: str | None = None,
    ) -> Breakpoint:
        self._require(port, "set breakpoint", DebugPhase.RUNNING, DebugPhase.PAUSED)
        handle = port.set_breakpoint(url, line, column, condition, ctx)
        bp = Breakpoint(
            id=f"bp-{self._next_id}",
            url=url,
            line=line,
            column=column,
            condition=condition or None,
            handle=handle,
        )
        self._next_id += 1
        self._breakpoints[bp.id] = bp
        return bp

    def remove_breakpoint(self, breakpoint_id: str, port: BrowserControlPort, ctx: OperationContext) -> Breakpoint:
        self._require(port, "remove breakpoint", DebugPhase.RUNNING, DebugPhase.PAUSED)
        bp = self._breakpoints.get(breakpoint_id)
        if bp is None:
            raise DebugStateError(f"unknown breakpoint: {breakpoint_id}")
        port.remove_breakpoint(bp.handle, ctx)
        del self._breakpoints[breakpoint_id]
        return bp

    def pause(self, port: BrowserControlPort, ctx: OperationContext) -> None:
        self._require(port, "pause", DebugPhase.RUNNING)
        port.pause(ctx)
        self._phase = DebugPhase.PAUSED

    def resume(self, port: BrowserControlPort, ctx: OperationContext) -> None:
        self._require(port, "resume", DebugPhase.PAUSED)
        port.resume(ctx)
        self._phase = DebugPhase.RUNNING

    def get_callstack(self, port: BrowserControlPort, ctx: OperationContext) -> list[CallFrame]:
        self._require(port, "get call stack", DebugPhase.PAUSED)
        return port.call_stack(ctx)

    def reset(self) -> None:
        """Drop all debug state (disable, session close). The id counter survives."""
        self._phase = DebugPhase.DISABLED
        self._breakpoints.clear()


def format_callstack(frames: list[CallFrame]) -> str:
    if not frames:
        return "Call stack is empty (execution will stop at the next statement)"
    lines = [f"Call stack ({len(frames)} frames):"]
    for i, frame in enumerate(frames):
        lines.append(f"#{i} {frame.function_name} ({frame.url}:{frame.line}:{frame.column})")
    return "\n".join(lines)


# Tool handlers: (request, port, ctx, *, session) -> text


def debug_enable(request: DebugEnableRequest, port: BrowserControlPort, ctx: OperationContext, *, session: BrowserSessionStore) -> str:
    changed = session.debug.set_enabled(request.enabled, port, ctx)
    if request.enabled:
        return "Debugging enabled" if changed else "Debugging already enabled"
    return "Debugging disabled" if changed else "Debugging already disabled"


def set_breakpoint(
    request: SetBreakpointRequest, port: BrowserControlPort, ctx: OperationContext, *, session: BrowserSessionStore
) -> str:
    bp = session.debug.set_breakpoint(
        port,
        ctx,
        url=request.url,
        line=request.line,
        column=request.column,
        condition=request.condition,
    )
    text = f"Breakpoint set: {bp.id} ({bp.location})"
    if bp.condition:
        text += f" if {bp.condition}"
    return text


def remove_breakpoint(
    request: RemoveBreakpointRequest, port: BrowserControlPort, ctx: OperationContext, *, session: BrowserSessionStore
) -> str:
    bp = session.debug.remove_breakpoint(request.breakpoint_id, port, ctx)
    return f"Breakpoint removed: {bp.id}"


def pause(request: PauseRequest, port: BrowserControlPort, ctx: OperationContext, *, session: BrowserSessionStore) -> str:
    session.debug.pause(port, ctx)
    return "Execution paused"


def resume(request: ResumeRequest, port: BrowserControlPort, ctx: OperationContext, *, session: BrowserSessionStore) -> str:
    session.debug.resume(port, ctx)
    return "Execution resumed"


def get_callstack(
    request: GetCallstackRequest, port: BrowserControlPort, ctx: OperationContext, *, session: BrowserSessionStore
) -> str:
    return format_callstack(session.debug.get_callstack(port, ctx))


__all__ = [
    "Breakpoint",
    "DebugController",
    "DebugPhase",
    "debug_enable",
    "format_callstack",
    "get_callstack",
    "pause",
    "remove_breakpoint",
    "resume",
    "set_breakpoint",
]
