"""
Browser Control Port contract.

The session store, executor and tools only talk to the browser through this
protocol. `browser_session.CdpBrowserPort` is the production implementation;
tests substitute an in-memory double.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .config import BrowserConfig
    from .context import OperationContext


@dataclass(slots=True)
class CallFrame:
    """One frame of a paused call stack."""

    function_name: str
    url: str
    line: int
    column: int


class BrowserControlPort(Protocol):
    """Atomic browser operations the service relies on."""

    def navigate(self, url: str, ctx: OperationContext) -> None: ...

    def wait_ready(self, selector: str, ctx: OperationContext) -> None: ...

    def wait_visible(self, selector: str, ctx: OperationContext) -> None: ...

    def click(self, selector: str, ctx: OperationContext) -> None: ...

    def fill(self, selector: str, value: str, ctx: OperationContext) -> None: ...

    def set_value(self, selector: str, value: str, ctx: OperationContext) -> None: ...

    def screenshot(self, selector: str | None, width: int, height: int, ctx: OperationContext) -> bytes: ...

    def evaluate(self, script: str, ctx: OperationContext) -> Any: ...

    def debugger_enable(self, ctx: OperationContext) -> None: ...

    def debugger_disable(self, ctx: OperationContext) -> None: ...

    def set_breakpoint(
        self,
        url: str,
        line: int,
        column: int | None,
        condition: str | None,
        ctx: OperationContext,
    ) -> str: ...

    def remove_breakpoint(self, handle: str, ctx: OperationContext) -> None: ...

    def pause(self, ctx: OperationContext) -> None: ...

    def resume(self, ctx: OperationContext) -> None: ...

    def call_stack(self, ctx: OperationContext) -> list[CallFrame]: ...

    def poll_paused(self) -> bool | None:
        """Return the latest pause state observed from browser events, or None if unchanged."""
        ...

    def close(self) -> None: ...


PortFactory = Callable[["BrowserConfig"], BrowserControlPort]
