"""
Error taxonomy for the browser service.

Startup errors are fatal and never reach a tool call. Everything else is
converted into a structured tool failure by the command executor.
"""

from __future__ import annotations


class ConfigError(Exception):
    """Configuration is missing or not sane."""


class StartupError(Exception):
    """Session initialization failed; the service cannot become available."""


class ArgumentError(Exception):
    """Caller supplied a missing or mistyped argument."""

    def __init__(self, message: str, *, argument: str | None = None) -> None:
        super().__init__(message)
        self.argument = argument


class SessionStateError(Exception):
    """Operation attempted while the session is not in a state that allows it."""


class DebugStateError(SessionStateError):
    """Debug operation attempted in the wrong debugger phase."""


class CdpError(Exception):
    """Browser control port reported a protocol or transport failure."""


class OperationTimeout(Exception):
    """The operation outlived its bounded context."""


class OperationCancelled(Exception):
    """The session was closed while the operation was queued or running."""


__all__ = [
    "ArgumentError",
    "CdpError",
    "ConfigError",
    "DebugStateError",
    "OperationCancelled",
    "OperationTimeout",
    "SessionStateError",
    "StartupError",
]
