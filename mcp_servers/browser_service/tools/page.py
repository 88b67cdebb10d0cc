"""
Page interaction operations.

Each handler runs inside the command executor: it receives its validated
request, the control port and the operation's bounded context, and returns
the text shown to the caller. Failures propagate as exceptions; the executor
turns them into structured results.
"""

from __future__ import annotations

import json
import logging
import secrets
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..errors import CdpError, OperationCancelled, OperationTimeout

if TYPE_CHECKING:
    from ..context import OperationContext
    from ..port import BrowserControlPort
    from ..server.requests import (
        ClickRequest,
        EvaluateRequest,
        FillRequest,
        HoverRequest,
        NavigateRequest,
        ScreenshotRequest,
        SelectRequest,
    )
    from ..session import BrowserSessionStore

logger = logging.getLogger("mcp.browser_service.page")

ROOT_SELECTOR = "body"
MAX_NAME_ATTEMPTS = 16
_SUFFIX_RANGE = 10**12

_BROWSER_ERRORS = (CdpError, OperationTimeout, OperationCancelled)


@contextmanager
def _failure_prefix(prefix: str) -> Iterator[None]:
    """Re-raise browser errors with `prefix: cause`, keeping the error type."""
    try:
        yield
    except _BROWSER_ERRORS as exc:
        raise type(exc)(f"{prefix}: {exc}") from exc


def navigate(request: NavigateRequest, port: BrowserControlPort, ctx: OperationContext, *, session: BrowserSessionStore) -> str:
    with _failure_prefix(f"failed to navigate to {request.url}"):
        port.navigate(request.url, ctx)
    return f"Navigated to {request.url}"


def trim_screenshot_name(name: str) -> str:
    trimmed = (name or "").strip()
    if trimmed.lower().endswith(".png"):
        trimmed = trimmed[:-4]
    trimmed = trimmed.replace("/", "_").replace("\\", "_").strip()
    return trimmed or "screenshot"


def save_screenshot(data: bytes, directory: str | Path, name: str) -> Path:
    """Write `data` to `<directory>/<name>_<digits>.png` without overwriting anything."""
    base = Path(directory)
    stem = trim_screenshot_name(name)
    for _ in range(MAX_NAME_ATTEMPTS):
        path = base / f"{stem}_{secrets.randbelow(_SUFFIX_RANGE)}.png"
        try:
            with open(path, "xb") as fh:
                fh.write(data)
        except FileExistsError:
            continue
        return path
    raise FileExistsError(f"could not find a free file name for {stem} in {base}")


def screenshot(request: ScreenshotRequest, port: BrowserControlPort, ctx: OperationContext, *, session: BrowserSessionStore) -> str:
    prefix = f"failed to screenshot element {request.selector}" if request.selector else "failed to take screenshot"
    with _failure_prefix(prefix):
        if request.selector:
            port.wait_visible(request.selector, ctx)
        data = port.screenshot(request.selector, request.width, request.height, ctx)
    try:
        path = save_screenshot(data, session.config.data_path, request.name)
    except OSError as exc:
        raise OSError(f"failed to save screenshot: {exc}") from exc
    logger.debug("Screenshot written: %s (%d bytes)", path, len(data))
    return f"Screenshot saved to: {path}"


def click(request: ClickRequest, port: BrowserControlPort, ctx: OperationContext, *, session: BrowserSessionStore) -> str:
    with _failure_prefix(f"failed to click element {request.selector}"):
        port.wait_ready(ROOT_SELECTOR, ctx)
        port.wait_visible(request.selector, ctx)
        port.click(request.selector, ctx)
    return f"Clicked element {request.selector}"


def fill(request: FillRequest, port: BrowserControlPort, ctx: OperationContext, *, session: BrowserSessionStore) -> str:
    with _failure_prefix(f"failed to fill element {request.selector}"):
        port.wait_visible(request.selector, ctx)
        port.fill(request.selector, request.value, ctx)
    return f"Filled input {request.selector} with value {request.value}"


def select(request: SelectRequest, port: BrowserControlPort, ctx: OperationContext, *, session: BrowserSessionStore) -> str:
    with _failure_prefix(f"failed to select element {request.selector}"):
        port.wait_visible(request.selector, ctx)
        port.set_value(request.selector, request.value, ctx)
    return f"Selected value {request.value} for element {request.selector}"


def hover_script(selector: str) -> str:
    return f"document.querySelector({json.dumps(selector)}).dispatchEvent(new Event('mouseover', {{bubbles: true}}))"


def hover(request: HoverRequest, port: BrowserControlPort, ctx: OperationContext, *, session: BrowserSessionStore) -> str:
    with _failure_prefix(f"failed to hover element {request.selector}"):
        dispatched = port.evaluate(hover_script(request.selector), ctx)
    return f"Hovered over element {request.selector}, result: {render_value(bool(dispatched))}"


def render_value(value: Any) -> str:
    """Render a script result the way JavaScript would print it."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


def evaluate(request: EvaluateRequest, port: BrowserControlPort, ctx: OperationContext, *, session: BrowserSessionStore) -> str:
    with _failure_prefix("failed to execute script"):
        value = port.evaluate(request.script, ctx)
    return f"Script executed successfully: {render_value(value)}"


__all__ = [
    "click",
    "evaluate",
    "fill",
    "hover",
    "navigate",
    "render_value",
    "save_screenshot",
    "screenshot",
    "select",
    "trim_screenshot_name",
]
