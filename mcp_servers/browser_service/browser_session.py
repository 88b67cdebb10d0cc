"""
CDP-backed Browser Control Port.

Wraps a CdpConnection bound to one page target with the operations the tools
need. Every call takes the caller's OperationContext: CDP command deadlines
and polling waits never outlive it.
"""

from __future__ import annotations

import base64
import json
from contextlib import suppress
from typing import Any

from .context import OperationContext
from .errors import CdpError, OperationCancelled, OperationTimeout
from .port import CallFrame
from .session_cdp import CdpConnection

POLL_INTERVAL = 0.1
PAUSE_EVENT_WAIT = 1.0

_VISIBLE_JS = """
(() => {{
    const el = document.querySelector({selector});
    if (!el) return false;
    const style = window.getComputedStyle(el);
    if (!style || style.visibility === 'hidden' || style.display === 'none') return false;
    const rect = el.getBoundingClientRect();
    return rect.width > 0 && rect.height > 0;
}})()
"""

_READY_JS = """
(() => document.readyState !== 'loading' && !!document.querySelector({selector}))()
"""

_RECT_JS = """
(() => {{
    const el = document.querySelector({selector});
    if (!el) return null;
    el.scrollIntoView({{block: 'center', inline: 'center'}});
    const r = el.getBoundingClientRect();
    return {{x: r.left, y: r.top, width: r.width, height: r.height,
             scrollX: window.scrollX, scrollY: window.scrollY}};
}})()
"""

_FOCUS_JS = """
(() => {{
    const el = document.querySelector({selector});
    if (!el) throw new Error('Element not found');
    el.focus();
    return document.activeElement === el;
}})()
"""

_SET_VALUE_JS = """
(() => {{
    const el = document.querySelector({selector});
    if (!el) throw new Error('Element not found');
    const next = String({value});
    // Native setter keeps React/controlled inputs in sync.
    const proto = Object.getPrototypeOf(el);
    const desc = proto ? Object.getOwnPropertyDescriptor(proto, 'value') : null;
    if (desc && typeof desc.set === 'function') {{
        desc.set.call(el, next);
    }} else {{
        el.value = next;
    }}
    el.dispatchEvent(new Event('input', {{bubbles: true}}));
    el.dispatchEvent(new Event('change', {{bubbles: true}}));
    return String(el.value);
}})()
"""


class CdpBrowserPort:
    """High-level browser control for a single page target."""

    def __init__(self, connection: CdpConnection, target_id: str, *, on_close: Any = None) -> None:
        self.conn = connection
        self.target_id = target_id
        self._on_close = on_close
        self._page_enabled = False
        self._runtime_enabled = False
        self._debugger_enabled = False
        self._paused = False
        self._paused_frames: list[dict[str, Any]] = []

    # ─────────────────────────────────────────────────────────────────────────
    # Plumbing
    # ─────────────────────────────────────────────────────────────────────────

    def _send(self, method: str, params: dict[str, Any] | None, ctx: OperationContext) -> dict[str, Any]:
        ctx.check()
        try:
            return self.conn.send(method, params, timeout=ctx.remaining())
        except CdpError as exc:
            if ctx.cancelled:
                raise OperationCancelled(f"session is closing ({method})") from exc
            if ctx.expired:
                raise OperationTimeout(f"{method} timed out after {ctx.timeout:g}s") from exc
            raise

    def _enable(self, ctx: OperationContext) -> None:
        if not self._page_enabled:
            self._send("Page.enable", None, ctx)
            self._page_enabled = True
        if not self._runtime_enabled:
            self._send("Runtime.enable", None, ctx)
            self._runtime_enabled = True

    def _eval(self, expression: str, ctx: OperationContext) -> Any:
        self._enable(ctx)
        result = self._send(
            "Runtime.evaluate",
            {"expression": expression, "returnByValue": True, "awaitPromise": True},
            ctx,
        )
        details = result.get("exceptionDetails")
        if isinstance(details, dict):
            exc = details.get("exception") if isinstance(details.get("exception"), dict) else {}
            message = exc.get("description") or details.get("text") or "script threw an exception"
            raise CdpError(f"script error: {message}")

        value = result.get("result")
        if not isinstance(value, dict):
            return None
        # CDP returns undefined as {"type": "undefined"} with no "value" field.
        if value.get("type") == "undefined":
            return None
        if value.get("type") == "object" and value.get("subtype") == "null":
            return None
        return value.get("value", value.get("description"))

    def _poll_until(self, expression: str, what: str, ctx: OperationContext) -> None:
        try:
            while not self._eval(expression, ctx):
                ctx.sleep(POLL_INTERVAL)
        except OperationTimeout as exc:
            raise OperationTimeout(f"waiting for {what}: {exc}") from exc

    def _element_rect(self, selector: str, ctx: OperationContext) -> dict[str, float]:
        rect = self._eval(_RECT_JS.format(selector=json.dumps(selector)), ctx)
        if not isinstance(rect, dict):
            raise CdpError(f"Element not found: {selector}")
        return rect

    # ─────────────────────────────────────────────────────────────────────────
    # Navigation & waits
    # ─────────────────────────────────────────────────────────────────────────

    def navigate(self, url: str, ctx: OperationContext) -> None:
        self._enable(ctx)
        self.conn.pop_events("Page.loadEventFired")
        result = self._send("Page.navigate", {"url": url}, ctx)
        if result.get("errorText"):
            raise CdpError(f"navigation failed: {result['errorText']}")
        if self.conn.wait_for_event("Page.loadEventFired", timeout=ctx.remaining()) is None:
            ctx.check()

    def wait_ready(self, selector: str, ctx: OperationContext) -> None:
        self._poll_until(_READY_JS.format(selector=json.dumps(selector)), f"{selector} to be ready", ctx)

    def wait_visible(self, selector: str, ctx: OperationContext) -> None:
        self._poll_until(_VISIBLE_JS.format(selector=json.dumps(selector)), f"{selector} to be visible", ctx)

    # ─────────────────────────────────────────────────────────────────────────
    # Input
    # ─────────────────────────────────────────────────────────────────────────

    def click(self, selector: str, ctx: OperationContext) -> None:
        rect = self._element_rect(selector, ctx)
        x = rect["x"] + rect["width"] / 2
        y = rect["y"] + rect["height"] / 2
        for event_type in ("mouseMoved", "mousePressed", "mouseReleased"):
            params: dict[str, Any] = {"type": event_type, "x": x, "y": y}
            if event_type != "mouseMoved":
                params.update({"button": "left", "clickCount": 1})
            self._send("Input.dispatchMouseEvent", params, ctx)

    def fill(self, selector: str, value: str, ctx: OperationContext) -> None:
        if not self._eval(_FOCUS_JS.format(selector=json.dumps(selector)), ctx):
            raise CdpError(f"Element could not be focused: {selector}")
        if value:
            self._send("Input.insertText", {"text": value}, ctx)

    def set_value(self, selector: str, value: str, ctx: OperationContext) -> None:
        self._eval(_SET_VALUE_JS.format(selector=json.dumps(selector), value=json.dumps(value)), ctx)

    def evaluate(self, script: str, ctx: OperationContext) -> Any:
        return self._eval(script, ctx)

    # ─────────────────────────────────────────────────────────────────────────
    # Screenshots
    # ─────────────────────────────────────────────────────────────────────────

    def screenshot(self, selector: str | None, width: int, height: int, ctx: OperationContext) -> bytes:
        self._enable(ctx)
        if selector:
            rect = self._element_rect(selector, ctx)
            clip = {
                "x": rect["x"] + rect.get("scrollX", 0),
                "y": rect["y"] + rect.get("scrollY", 0),
                "width": rect["width"],
                "height": rect["height"],
                "scale": 1,
            }
            data = self._send(
                "Page.captureScreenshot",
                {"format": "png", "clip": clip, "captureBeyondViewport": True},
                ctx,
            ).get("data", "")
        else:
            self._send(
                "Emulation.setDeviceMetricsOverride",
                {"width": width, "height": height, "deviceScaleFactor": 1, "mobile": False},
                ctx,
            )
            try:
                metrics = self._send("Page.getLayoutMetrics", None, ctx)
                size = metrics.get("cssContentSize") or metrics.get("contentSize") or {}
                clip = {
                    "x": 0,
                    "y": 0,
                    "width": max(width, int(size.get("width") or width)),
                    "height": max(height, int(size.get("height") or height)),
                    "scale": 1,
                }
                data = self._send(
                    "Page.captureScreenshot",
                    {"format": "png", "clip": clip, "captureBeyondViewport": True},
                    ctx,
                ).get("data", "")
            finally:
                with suppress(Exception):
                    self.conn.send("Emulation.clearDeviceMetricsOverride", None, timeout=1.0)
        if not data:
            raise CdpError("Screenshot data is empty")
        return base64.b64decode(data)

    # ─────────────────────────────────────────────────────────────────────────
    # Debugger domain
    # ─────────────────────────────────────────────────────────────────────────

    def debugger_enable(self, ctx: OperationContext) -> None:
        self.conn.pop_events("Debugger.paused", "Debugger.resumed")
        self._send("Debugger.enable", None, ctx)
        self._debugger_enabled = True
        self._paused = False
        self._paused_frames = []

    def debugger_disable(self, ctx: OperationContext) -> None:
        self._send("Debugger.disable", None, ctx)
        self._debugger_enabled = False
        self._paused = False
        self._paused_frames = []

    def set_breakpoint(
        self,
        url: str,
        line: int,
        column: int | None,
        condition: str | None,
        ctx: OperationContext,
    ) -> str:
        params: dict[str, Any] = {"url": url, "lineNumber": int(line)}
        if column is not None:
            params["columnNumber"] = int(column)
        if condition:
            params["condition"] = condition
        result = self._send("Debugger.setBreakpointByUrl", params, ctx)
        handle = result.get("breakpointId")
        if not handle:
            raise CdpError("Debugger.setBreakpointByUrl returned no breakpointId")
        return str(handle)

    def remove_breakpoint(self, handle: str, ctx: OperationContext) -> None:
        self._send("Debugger.removeBreakpoint", {"breakpointId": handle}, ctx)

    def pause(self, ctx: OperationContext) -> None:
        self._send("Debugger.pause", None, ctx)
        # An idle page only reports Debugger.paused once script runs again;
        # until then the request stays pending and _paused stays False.
        params = self.conn.wait_for_event("Debugger.paused", timeout=ctx.bounded(PAUSE_EVENT_WAIT))
        if params is not None:
            frames = params.get("callFrames")
            self._paused = True
            self._paused_frames = frames if isinstance(frames, list) else []

    def resume(self, ctx: OperationContext) -> None:
        self.poll_paused()
        # Chrome rejects Debugger.resume unless a pause was actually reported.
        if self._paused:
            self._send("Debugger.resume", None, ctx)
        self._paused = False
        self._paused_frames = []
        self.conn.pop_events("Debugger.resumed")

    def call_stack(self, ctx: OperationContext) -> list[CallFrame]:
        ctx.check()
        self.poll_paused()
        frames: list[CallFrame] = []
        for raw in self._paused_frames:
            if not isinstance(raw, dict):
                continue
            location = raw.get("location") if isinstance(raw.get("location"), dict) else {}
            frames.append(
                CallFrame(
                    function_name=str(raw.get("functionName") or "(anonymous)"),
                    url=str(raw.get("url") or ""),
                    line=int(location.get("lineNumber") or 0),
                    column=int(location.get("columnNumber") or 0),
                )
            )
        return frames

    def poll_paused(self) -> bool | None:
        if not self._debugger_enabled:
            return None
        self.conn.drain_events()
        events = self.conn.pop_events("Debugger.paused", "Debugger.resumed")
        if not events:
            return None
        for event in events:
            if event.get("method") == "Debugger.paused":
                params = event.get("params") if isinstance(event.get("params"), dict) else {}
                frames = params.get("callFrames")
                self._paused = True
                self._paused_frames = frames if isinstance(frames, list) else []
            else:
                self._paused = False
                self._paused_frames = []
        return self._paused

    def close(self) -> None:
        self.conn.close()
        if self._on_close is not None:
            self._on_close()


__all__ = ["CdpBrowserPort"]
