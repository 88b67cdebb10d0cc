from __future__ import annotations

import logging
import threading
import time
from typing import Any

import pytest

from mcp_servers.browser_service.context import OperationContext
from mcp_servers.browser_service.errors import ArgumentError, CdpError, DebugStateError, OperationTimeout
from mcp_servers.browser_service.executor import CommandExecutor
from mcp_servers.browser_service.server.types import ToolResult
from mcp_servers.browser_service.session import BrowserSessionStore, SessionState


def test_not_ready_fails_fast(config: Any, fake_port: Any) -> None:
    store = BrowserSessionStore(config, port_factory=lambda cfg: fake_port)
    called: list[bool] = []

    result = CommandExecutor().execute(store, lambda port, ctx: called.append(True), tool="browser_click")
    assert result.is_error
    assert result.category == "session_state"
    assert "uninitialized" in result.message
    assert called == []


def test_string_outcome_becomes_text(session: BrowserSessionStore) -> None:
    result = CommandExecutor().execute(session, lambda port, ctx: "Clicked element #go", tool="browser_click")
    assert not result.is_error
    assert result.message == "Clicked element #go"
    assert result.to_content_list() == [{"type": "text", "text": "[CONTENT]\nClicked element #go\n"}]


def test_default_timeout_comes_from_config(session: BrowserSessionStore) -> None:
    seen: list[OperationContext] = []
    CommandExecutor().execute(session, lambda port, ctx: seen.append(ctx) or "ok", tool="x")
    assert seen[0].timeout == pytest.approx(0.3)
    assert seen[0].cancel_event is session.cancel_event

    CommandExecutor().execute(session, lambda port, ctx: seen.append(ctx) or "ok", tool="x", timeout=7.0)
    assert seen[1].timeout == pytest.approx(7.0)


@pytest.mark.parametrize(
    "exc, category",
    [
        (ArgumentError("line must be >= 0"), "argument"),
        (DebugStateError("cannot pause: debugger is disabled"), "session_state"),
        (CdpError("Runtime.evaluate: Target closed"), "execution"),
        (OperationTimeout("timed out after 0.3s"), "execution"),
        (OSError("disk full"), "execution"),
    ],
)
def test_exceptions_become_categorized_failures(session: BrowserSessionStore, exc: Exception, category: str) -> None:
    def boom(port: Any, ctx: OperationContext) -> str:
        raise exc

    result = CommandExecutor().execute(session, boom, tool="browser_evaluate")
    assert result.is_error
    assert result.category == category
    assert result.message == str(exc)
    assert result.data["tool"] == "browser_evaluate"
    assert session.state is SessionState.READY


def test_unexpected_exception_is_logged_with_traceback(
    session: BrowserSessionStore, caplog: pytest.LogCaptureFixture
) -> None:
    def boom(port: Any, ctx: OperationContext) -> str:
        raise KeyError("frameId")

    with caplog.at_level(logging.INFO, logger="mcp.browser_service.executor"):
        result = CommandExecutor().execute(session, boom, tool="browser_get_callstack")
    assert result.category == "execution"
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert warnings and warnings[0].exc_info is not None
    assert any("failed [execution]" in r.getMessage() for r in caplog.records)


def test_operations_never_overlap(session: BrowserSessionStore) -> None:
    active = 0
    peak = 0
    guard = threading.Lock()

    def op(port: Any, ctx: OperationContext) -> str:
        nonlocal active, peak
        with guard:
            active += 1
            peak = max(peak, active)
        time.sleep(0.02)
        with guard:
            active -= 1
        return "ok"

    executor = CommandExecutor()
    results: list[ToolResult] = []
    threads = [
        threading.Thread(target=lambda: results.append(executor.execute(session, op, tool="x"))) for _ in range(6)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(5)
    assert peak == 1
    assert len(results) == 6
    assert not any(r.is_error for r in results)


def test_close_releases_waiting_operations(session: BrowserSessionStore) -> None:
    entered = threading.Event()
    release = threading.Event()

    def slow(port: Any, ctx: OperationContext) -> str:
        entered.set()
        release.wait(2)
        return "slow done"

    executor = CommandExecutor()
    first: list[ToolResult] = []
    second: list[ToolResult] = []
    t1 = threading.Thread(target=lambda: first.append(executor.execute(session, slow, tool="slow")))
    t1.start()
    assert entered.wait(2)
    t2 = threading.Thread(target=lambda: second.append(executor.execute(session, lambda p, c: "never", tool="queued")))
    t2.start()
    time.sleep(0.1)

    session.close()
    t2.join(2)
    assert second and second[0].category == "session_state"

    release.set()
    t1.join(2)
    assert first and first[0].message == "slow done"


def test_cancelled_context_fails_running_operation(session: BrowserSessionStore) -> None:
    def waits(port: Any, ctx: OperationContext) -> str:
        session.cancel_event.set()
        ctx.sleep(1.0)
        return "unreachable"

    result = CommandExecutor().execute(session, waits, tool="browser_click")
    assert result.category == "execution"
    assert "closing" in result.message
