"""
Command executor: the one path by which tool operations touch the browser.

Guarantees, per operation:
- the session is READY before and after acquiring the operation lock;
- exactly one operation talks to the control port at a time;
- the operation runs under its own bounded OperationContext;
- every failure comes back as a ToolResult, never as an exception.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from .context import OperationContext
from .errors import ArgumentError, CdpError, OperationCancelled, OperationTimeout, SessionStateError
from .port import BrowserControlPort
from .server.types import ARGUMENT, EXECUTION, SESSION_STATE, ToolResult
from .session import SessionState

if TYPE_CHECKING:
    from .session import BrowserSessionStore

logger = logging.getLogger("mcp.browser_service.executor")

Operation = Callable[[BrowserControlPort, OperationContext], str]

LOCK_POLL_INTERVAL = 0.05

# Failures that are part of normal browser work; anything else is logged with a traceback.
_EXPECTED_ERRORS = (CdpError, OperationTimeout, OperationCancelled, OSError)


class CommandExecutor:
    def __init__(self, lock_poll_interval: float = LOCK_POLL_INTERVAL) -> None:
        self.lock_poll_interval = lock_poll_interval

    def execute(
        self,
        session: BrowserSessionStore,
        fn: Operation,
        *,
        tool: str,
        timeout: float | None = None,
    ) -> ToolResult:
        if session.state is not SessionState.READY:
            return self._fail(tool, SESSION_STATE, f"browser session is not ready (state: {session.state.value})")

        # Waiters block, but a close() must still release them.
        while not session.lock.acquire(timeout=self.lock_poll_interval):
            if session.state is not SessionState.READY:
                return self._fail(tool, SESSION_STATE, f"browser session is not ready (state: {session.state.value})")

        try:
            try:
                port = session.port
            except SessionStateError as exc:
                return self._fail(tool, SESSION_STATE, str(exc))

            budget = timeout if timeout is not None else session.config.selector_query_timeout
            ctx = OperationContext(budget, cancel_event=session.cancel_event)
            try:
                outcome = fn(port, ctx)
            except SessionStateError as exc:
                return self._fail(tool, SESSION_STATE, str(exc))
            except ArgumentError as exc:
                return self._fail(tool, ARGUMENT, str(exc))
            except _EXPECTED_ERRORS as exc:
                return self._fail(tool, EXECUTION, str(exc) or type(exc).__name__)
            except Exception as exc:  # noqa: BLE001
                logger.warning("%s raised unexpected %s", tool, type(exc).__name__, exc_info=True)
                return self._fail(tool, EXECUTION, str(exc) or type(exc).__name__)
        finally:
            session.lock.release()

        return ToolResult.text(str(outcome))

    @staticmethod
    def _fail(tool: str, category: str, reason: str) -> ToolResult:
        logger.info("%s failed [%s]: %s", tool, category, reason)
        return ToolResult.error(reason, category=category, tool=tool)


__all__ = ["CommandExecutor", "Operation"]
