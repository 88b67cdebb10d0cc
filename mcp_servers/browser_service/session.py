"""
Browser session lifecycle.

One BrowserSessionStore owns exactly one browser control port for the whole
process lifetime:

    UNINITIALIZED -> INITIALIZING -> READY -> CLOSING -> CLOSED

Only `initialize()` and `close()` mutate the lifecycle state. Tool operations
go through the CommandExecutor, which checks readiness and holds `lock`.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Any

from .config import BrowserConfig
from .errors import ConfigError, SessionStateError, StartupError
from .launcher import CdpPortFactory
from .port import BrowserControlPort, PortFactory
from .recovery import RecoveryReport, ensure_artifact_dir, prepare_user_data_dir
from .server.redaction import redact_config
from .tools.debugger import DebugController

logger = logging.getLogger("mcp.browser_service.session")


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    CLOSING = "closing"
    CLOSED = "closed"


class BrowserSessionStore:
    def __init__(self, config: BrowserConfig, port_factory: PortFactory | None = None) -> None:
        self.config = config
        self._port_factory: PortFactory = port_factory or CdpPortFactory()
        self._state = SessionState.UNINITIALIZED
        self._state_lock = threading.Lock()
        self._port: BrowserControlPort | None = None
        # Serializes every tool operation against the port.
        self.lock = threading.Lock()
        # Root cancellation: set once by close(), observed by every OperationContext.
        self.cancel_event = threading.Event()
        self.debug = DebugController()
        self.recovery: RecoveryReport | None = None
        # Set by a close() that gave up waiting for an in-flight initialize().
        self._close_requested = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._state is SessionState.READY

    @property
    def port(self) -> BrowserControlPort:
        port = self._port
        if self._state is not SessionState.READY or port is None:
            raise SessionStateError(f"browser session is not ready (state: {self._state.value})")
        return port

    def initialize(self) -> None:
        """Recover the profile directory and launch the control port.

        Raises ConfigError for an invalid configuration and StartupError for
        anything that prevents the session from becoming READY.
        """
        with self._state_lock:
            if self._state is SessionState.READY:
                return
            if self._state is not SessionState.UNINITIALIZED:
                raise SessionStateError(f"cannot initialize session in state {self._state.value}")
            self._state = SessionState.INITIALIZING

            try:
                self.config.check()
            except ConfigError:
                self._state = SessionState.UNINITIALIZED
                raise

            port: BrowserControlPort | None = None
            try:
                self.recovery = prepare_user_data_dir(self.config.browser_data_path)
                ensure_artifact_dir(self.config.data_path)
                port = self._port_factory(self.config)
            except StartupError:
                self._state = SessionState.UNINITIALIZED
                raise
            except Exception as exc:  # noqa: BLE001
                self._state = SessionState.UNINITIALIZED
                raise StartupError(f"Failed to launch browser: {exc}") from exc

            abandoned = self._close_requested
            if abandoned:
                self._state = SessionState.CLOSING
            else:
                self._port = port
                self._state = SessionState.READY

        if abandoned:
            self._shutdown_port(port)
            with self._state_lock:
                self._state = SessionState.CLOSED
            logger.info("Browser session closed during startup")
            raise StartupError("session was closed during startup")

        if self.recovery is not None and self.recovery.best_effort:
            logger.warning("Session started with best-effort profile recovery: %s", self.recovery.detail)
        logger.info(
            "Browser session ready (headless=%s, profile=%s)",
            self.config.headless,
            self.config.browser_data_path,
        )

    def close(self) -> None:
        """Release the browser. Idempotent, bounded by config.close_timeout, never raises.

        If initialize() is still launching when the wait runs out, close() returns
        and the launching thread shuts the new port down as soon as it exists.
        """
        self._close_requested = True
        if not self._state_lock.acquire(timeout=self.config.close_timeout):
            self.cancel_event.set()
            logger.warning("Session still starting after %.1fs; it will close once launch finishes", self.config.close_timeout)
            return
        try:
            if self._state in (SessionState.CLOSING, SessionState.CLOSED):
                return
            if self._state is SessionState.UNINITIALIZED:
                self.cancel_event.set()
                self._state = SessionState.CLOSED
                return
            self._state = SessionState.CLOSING
            port, self._port = self._port, None
        finally:
            self._state_lock.release()

        self.cancel_event.set()
        self.debug.reset()
        if port is not None:
            self._shutdown_port(port)

        with self._state_lock:
            self._state = SessionState.CLOSED
        logger.info("Browser session closed")

    def _shutdown_port(self, port: BrowserControlPort) -> None:
        def _run() -> None:
            try:
                port.close()
            except Exception as exc:  # noqa: BLE001
                logger.warning("Browser shutdown failed: %s", exc)

        worker = threading.Thread(target=_run, name="browser-session-close", daemon=True)
        worker.start()
        worker.join(self.config.close_timeout)
        if worker.is_alive():
            logger.warning("Browser did not stop within %.1fs; abandoning it", self.config.close_timeout)

    def describe(self) -> dict[str, Any]:
        """JSON-safe view of the session for diagnostics."""
        out: dict[str, Any] = {
            "state": self._state.value,
            "ready": self.ready,
            "debugger": self.debug.phase.value,
            "config": redact_config(self.config.to_dict()),
        }
        if self.recovery is not None:
            out["recovery"] = self.recovery.to_dict()
        return out


__all__ = ["BrowserSessionStore", "SessionState"]
