from __future__ import annotations

import threading
import time
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

from mcp_servers.browser_service.config import BrowserConfig
from mcp_servers.browser_service.context import OperationContext
from mcp_servers.browser_service.errors import CdpError
from mcp_servers.browser_service.port import CallFrame
from mcp_servers.browser_service.server.registry import ToolDispatcher
from mcp_servers.browser_service.session import BrowserSessionStore

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"


class FakePort:
    """In-memory control port.

    Records every call, tracks how many calls are in flight at once, and
    emulates selector waits that never succeed for `hidden` selectors.
    """

    def __init__(self, *, hidden: set[str] | None = None, call_delay: float = 0.0) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.hidden = set(hidden or ())
        self.call_delay = call_delay
        self.eval_results: dict[str, Any] = {}
        self.fail: dict[str, Exception] = {}
        self.frames = [
            CallFrame("handler", "https://example.com/app.js", 3, 4),
            CallFrame("(anonymous)", "https://example.com/app.js", 10, 0),
        ]
        self.pause_events: list[bool] = []
        self.breakpoints: dict[str, tuple[Any, ...]] = {}
        self.closed = False
        self.close_delay = 0.0
        self.close_error: Exception | None = None
        self.active = 0
        self.max_active = 0
        self._guard = threading.Lock()
        self._next_handle = 1

    def _record(self, name: str, *args: Any) -> None:
        with self._guard:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.calls.append((name, *args))
        try:
            if self.call_delay:
                time.sleep(self.call_delay)
            if name in self.fail:
                raise self.fail[name]
        finally:
            with self._guard:
                self.active -= 1

    def names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def _wait(self, kind: str, selector: str, ctx: OperationContext) -> None:
        self._record(kind, selector)
        while selector in self.hidden:
            ctx.sleep(0.01)

    def navigate(self, url: str, ctx: OperationContext) -> None:
        self._record("navigate", url)

    def wait_ready(self, selector: str, ctx: OperationContext) -> None:
        self._wait("wait_ready", selector, ctx)

    def wait_visible(self, selector: str, ctx: OperationContext) -> None:
        self._wait("wait_visible", selector, ctx)

    def click(self, selector: str, ctx: OperationContext) -> None:
        self._record("click", selector)

    def fill(self, selector: str, value: str, ctx: OperationContext) -> None:
        self._record("fill", selector, value)

    def set_value(self, selector: str, value: str, ctx: OperationContext) -> None:
        self._record("set_value", selector, value)

    def screenshot(self, selector: str | None, width: int, height: int, ctx: OperationContext) -> bytes:
        self._record("screenshot", selector, width, height)
        return PNG_BYTES

    def evaluate(self, script: str, ctx: OperationContext) -> Any:
        self._record("evaluate", script)
        return self.eval_results.get(script)

    def debugger_enable(self, ctx: OperationContext) -> None:
        self._record("debugger_enable")

    def debugger_disable(self, ctx: OperationContext) -> None:
        self._record("debugger_disable")
        self.breakpoints.clear()

    def set_breakpoint(self, url: str, line: int, column: int | None, condition: str | None, ctx: OperationContext) -> str:
        self._record("set_breakpoint", url, line, column, condition)
        handle = f"cdp-bp:{self._next_handle}"
        self._next_handle += 1
        self.breakpoints[handle] = (url, line, column, condition)
        return handle

    def remove_breakpoint(self, handle: str, ctx: OperationContext) -> None:
        self._record("remove_breakpoint", handle)
        if self.breakpoints.pop(handle, None) is None:
            raise CdpError(f"Debugger.removeBreakpoint: unknown breakpoint {handle}")

    def pause(self, ctx: OperationContext) -> None:
        self._record("pause")

    def resume(self, ctx: OperationContext) -> None:
        self._record("resume")

    def call_stack(self, ctx: OperationContext) -> list[CallFrame]:
        self._record("call_stack")
        return list(self.frames)

    def poll_paused(self) -> bool | None:
        return self.pause_events.pop(0) if self.pause_events else None

    def close(self) -> None:
        self.calls.append(("close",))
        if self.close_delay:
            time.sleep(self.close_delay)
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


@pytest.fixture
def config(tmp_path: Path) -> BrowserConfig:
    return BrowserConfig.with_base_path(
        str(tmp_path / "svc"),
        binary_path="/usr/bin/chromium",
        selector_query_timeout=0.3,
        close_timeout=0.5,
    )


@pytest.fixture
def fake_port() -> FakePort:
    return FakePort()


@pytest.fixture
def session(config: BrowserConfig, fake_port: FakePort) -> Iterator[BrowserSessionStore]:
    store = BrowserSessionStore(config, port_factory=lambda cfg: fake_port)
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def dispatcher(session: BrowserSessionStore) -> ToolDispatcher:
    return ToolDispatcher(session)
