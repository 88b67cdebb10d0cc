"""
Typed requests for every tool operation.

Each request is built from the caller's loosely-typed argument mapping by
`from_arguments`. Validation happens here, before the session is touched: a
missing or mistyped argument raises ArgumentError.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar

from ..errors import ArgumentError

DEFAULT_SCREENSHOT_WIDTH = 1280
DEFAULT_SCREENSHOT_HEIGHT = 800
NAVIGATION_TIMEOUT = 30.0


def _require_str(args: Mapping[str, Any], key: str) -> str:
    if key not in args or args[key] is None:
        raise ArgumentError(f"missing required argument: {key}", argument=key)
    value = args[key]
    if not isinstance(value, str):
        raise ArgumentError(f"{key} must be a string, got {type(value).__name__}", argument=key)
    return value


def _require_nonempty_str(args: Mapping[str, Any], key: str) -> str:
    value = _require_str(args, key)
    if not value.strip():
        raise ArgumentError(f"{key} must not be empty", argument=key)
    return value


def _optional_str(args: Mapping[str, Any], key: str) -> str | None:
    if args.get(key) is None:
        return None
    value = args[key]
    if not isinstance(value, str):
        raise ArgumentError(f"{key} must be a string, got {type(value).__name__}", argument=key)
    return value


def _as_int(key: str, value: Any) -> int:
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ArgumentError(f"{key} must be a number, got {type(value).__name__}", argument=key)
    if isinstance(value, float) and not value.is_integer():
        raise ArgumentError(f"{key} must be a whole number, got {value}", argument=key)
    return int(value)


def _require_int(args: Mapping[str, Any], key: str, *, minimum: int | None = None) -> int:
    if key not in args or args[key] is None:
        raise ArgumentError(f"missing required argument: {key}", argument=key)
    value = _as_int(key, args[key])
    if minimum is not None and value < minimum:
        raise ArgumentError(f"{key} must be >= {minimum}, got {value}", argument=key)
    return value


def _optional_int(args: Mapping[str, Any], key: str, *, minimum: int | None = None) -> int | None:
    if args.get(key) is None:
        return None
    return _require_int(args, key, minimum=minimum)


def _require_bool(args: Mapping[str, Any], key: str) -> bool:
    if key not in args or args[key] is None:
        raise ArgumentError(f"missing required argument: {key}", argument=key)
    value = args[key]
    if not isinstance(value, bool):
        raise ArgumentError(f"{key} must be a boolean, got {type(value).__name__}", argument=key)
    return value


@dataclass(frozen=True)
class ToolRequest:
    """Base for all requests. `timeout` overrides the session's per-call timeout."""

    timeout: ClassVar[float | None] = None

    @classmethod
    def from_arguments(cls, args: Mapping[str, Any]) -> ToolRequest:
        return cls()


@dataclass(frozen=True)
class NavigateRequest(ToolRequest):
    url: str
    timeout: ClassVar[float | None] = NAVIGATION_TIMEOUT

    @classmethod
    def from_arguments(cls, args: Mapping[str, Any]) -> NavigateRequest:
        return cls(url=_require_nonempty_str(args, "url"))


@dataclass(frozen=True)
class ScreenshotRequest(ToolRequest):
    name: str
    selector: str | None = None
    width: int = DEFAULT_SCREENSHOT_WIDTH
    height: int = DEFAULT_SCREENSHOT_HEIGHT

    @classmethod
    def from_arguments(cls, args: Mapping[str, Any]) -> ScreenshotRequest:
        name = _require_str(args, "name")
        selector = _optional_str(args, "selector") or None
        # Zero means "use the default", like an absent value.
        width = _optional_int(args, "width", minimum=0) or DEFAULT_SCREENSHOT_WIDTH
        height = _optional_int(args, "height", minimum=0) or DEFAULT_SCREENSHOT_HEIGHT
        return cls(name=name, selector=selector, width=width, height=height)


@dataclass(frozen=True)
class SelectorRequest(ToolRequest):
    selector: str

    @classmethod
    def from_arguments(cls, args: Mapping[str, Any]) -> SelectorRequest:
        return cls(selector=_require_nonempty_str(args, "selector"))


@dataclass(frozen=True)
class ClickRequest(SelectorRequest):
    pass


@dataclass(frozen=True)
class HoverRequest(SelectorRequest):
    pass


@dataclass(frozen=True)
class FillRequest(ToolRequest):
    selector: str
    value: str

    @classmethod
    def from_arguments(cls, args: Mapping[str, Any]) -> FillRequest:
        return cls(selector=_require_nonempty_str(args, "selector"), value=_require_str(args, "value"))


@dataclass(frozen=True)
class SelectRequest(FillRequest):
    pass


@dataclass(frozen=True)
class EvaluateRequest(ToolRequest):
    script: str

    @classmethod
    def from_arguments(cls, args: Mapping[str, Any]) -> EvaluateRequest:
        return cls(script=_require_nonempty_str(args, "script"))


@dataclass(frozen=True)
class DebugEnableRequest(ToolRequest):
    enabled: bool

    @classmethod
    def from_arguments(cls, args: Mapping[str, Any]) -> DebugEnableRequest:
        return cls(enabled=_require_bool(args, "enabled"))


@dataclass(frozen=True)
class SetBreakpointRequest(ToolRequest):
    url: str
    line: int
    column: int | None = None
    condition: str | None = None

    @classmethod
    def from_arguments(cls, args: Mapping[str, Any]) -> SetBreakpointRequest:
        return cls(
            url=_require_nonempty_str(args, "url"),
            line=_require_int(args, "line", minimum=0),
            column=_optional_int(args, "column", minimum=0),
            condition=_optional_str(args, "condition") or None,
        )


@dataclass(frozen=True)
class RemoveBreakpointRequest(ToolRequest):
    breakpoint_id: str

    @classmethod
    def from_arguments(cls, args: Mapping[str, Any]) -> RemoveBreakpointRequest:
        return cls(breakpoint_id=_require_nonempty_str(args, "breakpointId"))


@dataclass(frozen=True)
class PauseRequest(ToolRequest):
    pass


@dataclass(frozen=True)
class ResumeRequest(ToolRequest):
    pass


@dataclass(frozen=True)
class GetCallstackRequest(ToolRequest):
    pass


__all__ = [
    "ClickRequest",
    "DebugEnableRequest",
    "EvaluateRequest",
    "FillRequest",
    "GetCallstackRequest",
    "HoverRequest",
    "NavigateRequest",
    "PauseRequest",
    "RemoveBreakpointRequest",
    "ResumeRequest",
    "ScreenshotRequest",
    "SelectRequest",
    "SetBreakpointRequest",
    "ToolRequest",
]
