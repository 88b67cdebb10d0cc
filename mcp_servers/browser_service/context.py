"""Bounded per-operation context shared by the executor and the control port."""

from __future__ import annotations

import threading
import time

from .errors import OperationCancelled, OperationTimeout


class OperationContext:
    """Deadline plus cancellation for one unit of work.

    Expiry only affects the operation holding this context. The cancel event is
    the session's root event: setting it fails every context derived from it.
    """

    def __init__(self, timeout: float, *, cancel_event: threading.Event | None = None) -> None:
        self.timeout = max(0.0, float(timeout))
        self.deadline = time.monotonic() + self.timeout
        self.cancel_event = cancel_event or threading.Event()

    def remaining(self) -> float:
        return max(0.0, self.deadline - time.monotonic())

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.deadline

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def check(self) -> None:
        """Raise if the operation must stop now."""
        if self.cancel_event.is_set():
            raise OperationCancelled("session is closing")
        if self.expired:
            raise OperationTimeout(f"timed out after {self.timeout:g}s")

    def bounded(self, timeout: float) -> float:
        """Clamp a step timeout to what is left of this context."""
        return max(0.0, min(float(timeout), self.remaining()))

    def sleep(self, seconds: float) -> None:
        """Sleep without outliving the deadline; wakes early on cancellation."""
        self.cancel_event.wait(self.bounded(seconds))
        self.check()
