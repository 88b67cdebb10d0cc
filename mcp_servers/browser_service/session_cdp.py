"""Raw CDP WebSocket connection."""

from __future__ import annotations

import json
import socket
import threading
import time
from contextlib import suppress
from typing import Any

import websocket

from .errors import CdpError


class CdpConnection:
    """Low-level CDP WebSocket connection.

    Not thread-safe: callers serialize access (the command executor holds the
    session lock for the whole operation). `abort()` is the one method that may
    be called from another thread.
    """

    def __init__(self, ws_url: str, timeout: float = 5.0):
        try:
            self.ws = websocket.create_connection(ws_url, timeout=timeout)
        except (OSError, websocket.WebSocketException) as exc:
            raise CdpError(f"Failed to connect to {ws_url}: {exc}") from exc
        self.ws_url = ws_url
        self.timeout = timeout
        self._next_id = 1
        # Events must not be dropped while waiting for command responses.
        self._event_queue: list[dict[str, Any]] = []
        self._max_event_queue = 2000
        self._aborted = threading.Event()

    def _push_event(self, event: dict[str, Any]) -> None:
        self._event_queue.append(event)
        if len(self._event_queue) > self._max_event_queue:
            del self._event_queue[: len(self._event_queue) - self._max_event_queue]

    def pop_event(self, event_name: str) -> dict[str, Any] | None:
        """Pop the oldest queued event params for the given event name."""
        for i, ev in enumerate(self._event_queue):
            if ev.get("method") == event_name:
                self._event_queue.pop(i)
                params = ev.get("params")
                return params if isinstance(params, dict) else {}
        return None

    def pop_events(self, *event_names: str) -> list[dict[str, Any]]:
        """Pop every queued event matching one of the names, oldest first."""
        wanted = set(event_names)
        matched = [ev for ev in self._event_queue if ev.get("method") in wanted]
        if matched:
            self._event_queue = [ev for ev in self._event_queue if ev.get("method") not in wanted]
        return matched

    def drain_events(self, *, max_messages: int = 50) -> int:
        """Pull already-buffered events off the socket without blocking."""
        drained = 0
        for _ in range(max(0, int(max_messages))):
            try:
                self.ws.settimeout(0.0)
                raw = self.ws.recv()
            except Exception:  # noqa: BLE001
                break
            try:
                data = json.loads(raw)
            except (TypeError, ValueError):
                continue
            if isinstance(data, dict) and isinstance(data.get("method"), str) and "id" not in data:
                self._push_event(data)
                drained += 1
                continue
            # Unexpected non-event; stop to avoid consuming responses.
            break
        with suppress(Exception):
            self.ws.settimeout(self.timeout)
        return drained

    def abort(self) -> None:
        """Hard break of the underlying socket.

        Closing the raw socket interrupts a recv() blocked in another thread;
        websocket-client's close() can take internal locks and hang.
        """
        self._aborted.set()
        sock = getattr(self.ws, "sock", None)
        if sock is not None:
            with suppress(Exception):
                sock.shutdown(socket.SHUT_RDWR)
            with suppress(Exception):
                sock.close()

    def send(self, method: str, params: dict[str, Any] | None = None, *, timeout: float | None = None) -> dict[str, Any]:
        """Send CDP command and wait for response."""
        if self._aborted.is_set():
            raise CdpError("CDP connection closed")

        msg_id = self._next_id
        self._next_id += 1

        msg: dict[str, Any] = {"id": msg_id, "method": method}
        if params:
            msg["params"] = params

        budget = self.timeout if timeout is None else max(0.0, float(timeout))
        try:
            self.ws.settimeout(min(2.0, max(0.5, budget)))
            self.ws.send(json.dumps(msg))
        except Exception as exc:  # noqa: BLE001
            raise CdpError(f"{method}: {exc}") from exc

        return self._recv_until(msg_id, method, budget)

    def _recv_until(self, expected_id: int, method: str, budget: float) -> dict[str, Any]:
        deadline = time.monotonic() + budget
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise CdpError(f"{method}: CDP response timed out")
            if self._aborted.is_set():
                raise CdpError(f"{method}: CDP connection closed")

            # recv() blocks indefinitely unless a socket timeout is set.
            try:
                self.ws.settimeout(min(0.5, remaining))
                raw = self.ws.recv()
            except Exception as exc:  # noqa: BLE001
                if isinstance(exc, (TimeoutError, websocket.WebSocketTimeoutException)) or "timed out" in str(exc):
                    continue
                raise CdpError(f"{method}: {exc}") from exc

            try:
                data = json.loads(raw)
            except (TypeError, ValueError):
                continue
            if not isinstance(data, dict):
                continue

            if isinstance(data.get("method"), str) and "id" not in data:
                self._push_event(data)
                continue

            if data.get("id") == expected_id:
                if "error" in data:
                    err = data["error"]
                    message = err.get("message") if isinstance(err, dict) else str(err)
                    raise CdpError(f"{method}: {message}")
                result = data.get("result")
                return result if isinstance(result, dict) else {}

    def wait_for_event(self, event_name: str, timeout: float = 10.0) -> dict[str, Any] | None:
        """Wait for specific CDP event."""
        queued = self.pop_event(event_name)
        if queued is not None:
            return queued

        deadline = time.monotonic() + timeout
        while not self._aborted.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            try:
                self.ws.settimeout(min(0.5, remaining))
                raw = self.ws.recv()
            except Exception as exc:  # noqa: BLE001
                if isinstance(exc, (TimeoutError, websocket.WebSocketTimeoutException)) or "timed out" in str(exc):
                    continue
                raise CdpError(f"waiting for {event_name}: {exc}") from exc

            try:
                data = json.loads(raw)
            except (TypeError, ValueError):
                continue
            if isinstance(data, dict) and isinstance(data.get("method"), str) and "id" not in data:
                if data.get("method") == event_name:
                    params = data.get("params")
                    return params if isinstance(params, dict) else {}
                self._push_event(data)
        return None

    def close(self) -> None:
        self.abort()


__all__ = ["CdpConnection"]
