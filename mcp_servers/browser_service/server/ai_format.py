"""
Context-format rendering for tool output.

Every text block sent to the caller starts with a `[CONTENT]` marker line.
Structured payloads (failure records, breakpoint and frame listings) are
rendered as indented `key: value` Markdown instead of JSON, with a hard
character budget so a single result can never flood the caller's context.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

CONTENT_MARKER = "[CONTENT]"


@dataclass(frozen=True)
class RenderBudget:
    max_chars: int = 4000
    max_depth: int = 4
    max_list_items: int = 20
    max_str_chars: int = 600


# Keys rendered first, in this order; everything else follows alphabetically.
_PRIORITY_KEYS: tuple[str, ...] = (
    "ok",
    "error",
    "category",
    "tool",
    "suggestion",
    "state",
    "ready",
    "debugger",
    "breakpoints",
    "frames",
)


def render_ctx_markdown(data: Any, *, budget: RenderBudget | None = None) -> str:
    """Render a structured payload as context-format Markdown (not JSON)."""
    renderer = _Renderer(budget or RenderBudget())
    renderer.value(data, depth=0)
    return _wrap("\n".join(renderer.lines).rstrip(), renderer.budget)


def render_ctx_text(text: str, *, budget: RenderBudget | None = None) -> str:
    """Wrap a plain text payload into context-format Markdown."""
    return _wrap((text or "").rstrip(), budget or RenderBudget())


def is_ctx_format(text: str) -> bool:
    for line in (text or "").splitlines():
        if line.strip():
            return line.strip() == CONTENT_MARKER
    return False


def _wrap(content: str, budget: RenderBudget) -> str:
    out = f"{CONTENT_MARKER}\n{content}\n"
    if len(out) > budget.max_chars:
        out = out[: budget.max_chars].rstrip() + "\n… <TRUNCATED>\n"
    return out


def _ordered_keys(mapping: dict[Any, Any]) -> list[Any]:
    def rank(key: Any) -> tuple[int, str]:
        if isinstance(key, str) and key in _PRIORITY_KEYS:
            return (_PRIORITY_KEYS.index(key), "")
        return (len(_PRIORITY_KEYS), str(key))

    return sorted(mapping, key=rank)


class _Renderer:
    def __init__(self, budget: RenderBudget) -> None:
        self.budget = budget
        self.lines: list[str] = []
        self.used = 0
        self.full = False

    def emit(self, line: str) -> None:
        if self.full:
            return
        if self.used + len(line) + 1 > self.budget.max_chars:
            self.full = True
            return
        self.lines.append(line)
        self.used += len(line) + 1

    def scalar(self, value: Any) -> str:
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "true" if value else "false"
        text = str(value)
        if isinstance(value, str):
            # One line per value; the rest of a multi-line string is elided.
            first, sep, _ = text.replace("\r\n", "\n").replace("\r", "\n").partition("\n")
            text = first + (" …" if sep else "")
            if len(text) > self.budget.max_str_chars:
                text = text[: self.budget.max_str_chars].rstrip() + "…"
        return text

    def value(self, value: Any, *, depth: int) -> None:
        if depth > self.budget.max_depth:
            self.emit("… <TRUNCATED depth>")
        elif isinstance(value, dict):
            self.mapping(value, depth=depth)
        elif isinstance(value, list):
            self.sequence(value, depth=depth)
        else:
            self.emit("  " * depth + self.scalar(value))

    def mapping(self, mapping: dict[Any, Any], *, depth: int) -> None:
        indent = "  " * depth
        for key in _ordered_keys(mapping):
            item = mapping[key]
            if isinstance(item, list):
                self.emit(f"{indent}{key}: [len={len(item)}]")
                self.sequence(item, depth=depth + 1)
            elif isinstance(item, dict):
                self.emit(f"{indent}{key}:")
                self.value(item, depth=depth + 1)
            else:
                self.emit(f"{indent}{key}: {self.scalar(item)}")

    def sequence(self, items: list[Any], *, depth: int) -> None:
        indent = "  " * depth
        shown = items[: self.budget.max_list_items]
        for item in shown:
            if isinstance(item, dict):
                # Records (breakpoints, frames) collapse to one line of scalar fields.
                fields = [f"{k}={self.scalar(item[k])}" for k in _ordered_keys(item) if not isinstance(item[k], (dict, list))]
                self.emit(f"{indent}- {' '.join(fields) if fields else f'dict(keys={len(item)})'}")
            elif isinstance(item, list):
                self.emit(f"{indent}- [list len={len(item)}]")
            else:
                self.emit(f"{indent}- {self.scalar(item)}")
        if len(items) > len(shown):
            self.emit(f"{indent}- … <TRUNCATED list len={len(items)}>")


__all__ = ["RenderBudget", "is_ctx_format", "render_ctx_markdown", "render_ctx_text"]
