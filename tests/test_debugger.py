from __future__ import annotations

from typing import Any

import pytest

from mcp_servers.browser_service.context import OperationContext
from mcp_servers.browser_service.errors import DebugStateError
from mcp_servers.browser_service.port import CallFrame
from mcp_servers.browser_service.server.registry import ToolDispatcher
from mcp_servers.browser_service.tools.debugger import DebugController, DebugPhase, format_callstack


@pytest.fixture
def ctx() -> OperationContext:
    return OperationContext(1.0)


def test_full_debugging_round_trip(dispatcher: ToolDispatcher, fake_port: Any) -> None:
    assert dispatcher.dispatch("browser_debug_enable", {"enabled": True}).message == "Debugging enabled"
    set_bp = dispatcher.dispatch(
        "browser_set_breakpoint", {"url": "https://example.com/app.js", "line": 3, "condition": "x > 1"}
    )
    assert set_bp.message == "Breakpoint set: bp-1 (https://example.com/app.js:3) if x > 1"
    assert dispatcher.dispatch("browser_pause", {}).message == "Execution paused"

    stack = dispatcher.dispatch("browser_get_callstack", {})
    assert stack.message.splitlines() == [
        "Call stack (2 frames):",
        "#0 handler (https://example.com/app.js:3:4)",
        "#1 (anonymous) (https://example.com/app.js:10:0)",
    ]

    assert dispatcher.dispatch("browser_resume", {}).message == "Execution resumed"
    assert dispatcher.dispatch("browser_remove_breakpoint", {"breakpointId": "bp-1"}).message == "Breakpoint removed: bp-1"
    assert dispatcher.dispatch("browser_debug_enable", {"enabled": False}).message == "Debugging disabled"
    assert fake_port.names() == [
        "debugger_enable",
        "set_breakpoint",
        "pause",
        "call_stack",
        "resume",
        "remove_breakpoint",
        "debugger_disable",
    ]


def test_enable_and_disable_are_idempotent(dispatcher: ToolDispatcher, fake_port: Any) -> None:
    assert dispatcher.dispatch("browser_debug_enable", {"enabled": False}).message == "Debugging already disabled"
    dispatcher.dispatch("browser_debug_enable", {"enabled": True})
    assert dispatcher.dispatch("browser_debug_enable", {"enabled": True}).message == "Debugging already enabled"
    assert fake_port.names() == ["debugger_enable"]


@pytest.mark.parametrize(
    "tool, args",
    [
        ("browser_set_breakpoint", {"url": "app.js", "line": 1}),
        ("browser_remove_breakpoint", {"breakpointId": "bp-1"}),
        ("browser_pause", {}),
        ("browser_resume", {}),
        ("browser_get_callstack", {}),
    ],
)
def test_debug_operations_require_enabled_debugger(
    dispatcher: ToolDispatcher, fake_port: Any, tool: str, args: dict
) -> None:
    result = dispatcher.dispatch(tool, args)
    assert result.category == "session_state"
    assert "debugger is disabled" in result.message
    assert fake_port.calls == []


def test_resume_and_callstack_require_paused(dispatcher: ToolDispatcher) -> None:
    dispatcher.dispatch("browser_debug_enable", {"enabled": True})
    resume = dispatcher.dispatch("browser_resume", {})
    assert resume.category == "session_state"
    assert "requires paused" in resume.message
    stack = dispatcher.dispatch("browser_get_callstack", {})
    assert stack.category == "session_state"


def test_pause_twice_is_rejected(dispatcher: ToolDispatcher) -> None:
    dispatcher.dispatch("browser_debug_enable", {"enabled": True})
    dispatcher.dispatch("browser_pause", {})
    again = dispatcher.dispatch("browser_pause", {})
    assert again.category == "session_state"
    assert "debugger is paused" in again.message


def test_unknown_breakpoint_is_rejected(dispatcher: ToolDispatcher, fake_port: Any) -> None:
    dispatcher.dispatch("browser_debug_enable", {"enabled": True})
    result = dispatcher.dispatch("browser_remove_breakpoint", {"breakpointId": "bp-42"})
    assert result.category == "session_state"
    assert result.message == "unknown breakpoint: bp-42"
    assert "remove_breakpoint" not in fake_port.names()


def test_breakpoint_ids_are_never_reused(fake_port: Any, ctx: OperationContext) -> None:
    controller = DebugController()
    controller.set_enabled(True, fake_port, ctx)
    first = controller.set_breakpoint(fake_port, ctx, url="a.js", line=1)
    controller.remove_breakpoint(first.id, fake_port, ctx)
    second = controller.set_breakpoint(fake_port, ctx, url="a.js", line=1)
    assert (first.id, second.id) == ("bp-1", "bp-2")

    controller.set_enabled(False, fake_port, ctx)
    assert controller.breakpoints == []
    controller.set_enabled(True, fake_port, ctx)
    third = controller.set_breakpoint(fake_port, ctx, url="b.js", line=7, column=2)
    assert third.id == "bp-3"
    assert third.location == "b.js:7:2"
    assert (third.url, third.line, third.column) == ("b.js", 7, 2)


def test_disable_discards_breakpoints(fake_port: Any, ctx: OperationContext) -> None:
    controller = DebugController()
    controller.set_enabled(True, fake_port, ctx)
    bp = controller.set_breakpoint(fake_port, ctx, url="a.js", line=1)
    controller.set_enabled(False, fake_port, ctx)
    controller.set_enabled(True, fake_port, ctx)
    with pytest.raises(DebugStateError, match="unknown breakpoint"):
        controller.remove_breakpoint(bp.id, fake_port, ctx)


def test_page_driven_pause_and_resume_are_observed(fake_port: Any, ctx: OperationContext) -> None:
    controller = DebugController()
    controller.set_enabled(True, fake_port, ctx)

    # A breakpoint hit in the page pauses execution without a pause call.
    fake_port.pause_events.append(True)
    frames = controller.get_callstack(fake_port, ctx)
    assert controller.phase is DebugPhase.PAUSED
    assert frames[0].function_name == "handler"

    fake_port.pause_events.append(False)
    with pytest.raises(DebugStateError):
        controller.get_callstack(fake_port, ctx)
    assert controller.phase is DebugPhase.RUNNING


def test_failed_transition_leaves_state_untouched(fake_port: Any, ctx: OperationContext) -> None:
    controller = DebugController()
    with pytest.raises(DebugStateError, match="cannot pause"):
        controller.pause(fake_port, ctx)
    assert controller.phase is DebugPhase.DISABLED


def test_format_callstack() -> None:
    assert "empty" in format_callstack([])
    frames = [CallFrame("main", "file:///srv/app.js", 12, 5)]
    assert format_callstack(frames) == "Call stack (1 frames):\n#0 main (file:///srv/app.js:12:5)"


def test_breakpoint_is_removed_exactly_once(dispatcher: ToolDispatcher, fake_port: Any) -> None:
    dispatcher.dispatch("browser_debug_enable", {"enabled": True})
    dispatcher.dispatch("browser_set_breakpoint", {"url": "app.js", "line": 0, "column": 2})
    first = dispatcher.dispatch("browser_remove_breakpoint", {"breakpointId": "bp-1"})
    second = dispatcher.dispatch("browser_remove_breakpoint", {"breakpointId": "bp-1"})
    assert not first.is_error
    assert second.category == "session_state"
    assert fake_port.names().count("remove_breakpoint") == 1
    assert fake_port.breakpoints == {}
