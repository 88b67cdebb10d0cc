"""
MCP tool definitions (name, description, JSON schema) for every operation.
"""

from __future__ import annotations

from typing import Any

_SCHEMA = "http://json-schema.org/draft-07/schema#"


def _tool(name: str, description: str, properties: dict[str, Any], required: list[str] | None = None) -> dict[str, Any]:
    schema: dict[str, Any] = {
        "$schema": _SCHEMA,
        "type": "object",
        "properties": properties,
        "additionalProperties": False,
    }
    if required:
        schema["required"] = required
    return {"name": name, "description": description, "inputSchema": schema}


# ═══════════════════════════════════════════════════════════════════════════════
# PAGE
# ═══════════════════════════════════════════════════════════════════════════════

NAVIGATE_TOOL = _tool(
    "browser_navigate",
    "Navigate to a URL and wait for the page load event.",
    {"url": {"type": "string", "description": "URL to navigate to"}},
    ["url"],
)

SCREENSHOT_TOOL = _tool(
    "browser_screenshot",
    """Take a screenshot of the current page or a specific element.
The image is saved under the data directory as <name>_<random digits>.png and the path is returned.
Without selector the full page is captured at width x height; with selector the element must be visible.""",
    {
        "name": {"type": "string", "description": "Name for the screenshot"},
        "selector": {"type": "string", "description": "CSS selector for element to screenshot"},
        "width": {"type": "number", "description": "Width in pixels (default: 1280)"},
        "height": {"type": "number", "description": "Height in pixels (default: 800)"},
    },
    ["name"],
)

CLICK_TOOL = _tool(
    "browser_click",
    "Click an element on the page. Waits for the document and for the element to be visible.",
    {"selector": {"type": "string", "description": "CSS selector for element to click"}},
    ["selector"],
)

FILL_TOOL = _tool(
    "browser_fill",
    "Fill out an input field.",
    {
        "selector": {"type": "string", "description": "CSS selector for input field"},
        "value": {"type": "string", "description": "Value to fill"},
    },
    ["selector", "value"],
)

SELECT_TOOL = _tool(
    "browser_select",
    "Select an option of a <select> element by value.",
    {
        "selector": {"type": "string", "description": "CSS selector for element to select"},
        "value": {"type": "string", "description": "Value to select"},
    },
    ["selector", "value"],
)

HOVER_TOOL = _tool(
    "browser_hover",
    "Hover an element on the page (dispatches a mouseover event).",
    {"selector": {"type": "string", "description": "CSS selector for element to hover"}},
    ["selector"],
)

EVALUATE_TOOL = _tool(
    "browser_evaluate",
    "Execute JavaScript in the page and return its value.",
    {"script": {"type": "string", "description": "JavaScript code to execute"}},
    ["script"],
)

# ═══════════════════════════════════════════════════════════════════════════════
# DEBUGGER
# ═══════════════════════════════════════════════════════════════════════════════

DEBUG_ENABLE_TOOL = _tool(
    "browser_debug_enable",
    "Enable or disable JavaScript debugging. Disabling removes all breakpoints.",
    {"enabled": {"type": "boolean", "description": "Enable or disable debugging"}},
    ["enabled"],
)

SET_BREAKPOINT_TOOL = _tool(
    "browser_set_breakpoint",
    "Set a JavaScript breakpoint. Requires debugging to be enabled. Returns the breakpoint id (bp-<n>).",
    {
        "url": {"type": "string", "description": "URL of the script"},
        "line": {"type": "number", "description": "Line number (0-based)"},
        "column": {"type": "number", "description": "Column number (optional, 0-based)"},
        "condition": {"type": "string", "description": "Breakpoint condition (optional)"},
    },
    ["url", "line"],
)

REMOVE_BREAKPOINT_TOOL = _tool(
    "browser_remove_breakpoint",
    "Remove a JavaScript breakpoint by id.",
    {"breakpointId": {"type": "string", "description": "Breakpoint ID to remove"}},
    ["breakpointId"],
)

PAUSE_TOOL = _tool("browser_pause", "Pause JavaScript execution.", {})

RESUME_TOOL = _tool("browser_resume", "Resume JavaScript execution.", {})

GET_CALLSTACK_TOOL = _tool(
    "browser_get_callstack",
    "Get the current call stack. Only valid while execution is paused.",
    {},
)

TOOL_DEFINITIONS: list[dict[str, Any]] = [
    NAVIGATE_TOOL,
    SCREENSHOT_TOOL,
    CLICK_TOOL,
    FILL_TOOL,
    SELECT_TOOL,
    HOVER_TOOL,
    EVALUATE_TOOL,
    DEBUG_ENABLE_TOOL,
    SET_BREAKPOINT_TOOL,
    REMOVE_BREAKPOINT_TOOL,
    PAUSE_TOOL,
    RESUME_TOOL,
    GET_CALLSTACK_TOOL,
]

BROWSER_PROMPT = """You control a single Chrome session through the browser_* tools.

Page tools:
- browser_navigate(url): open a page
- browser_click / browser_fill / browser_select / browser_hover (selector[, value]): interact with elements by CSS selector
- browser_evaluate(script): run JavaScript and read the result
- browser_screenshot(name[, selector, width, height]): save a PNG and get its path

Debugger tools:
- browser_debug_enable(enabled) first, then browser_set_breakpoint / browser_remove_breakpoint
- browser_pause / browser_resume, and browser_get_callstack while paused

Calls run one at a time against the same tab. A failed call returns ok=false with a category
(argument, session_state, execution, unsupported); the session stays usable."""

PROMPT_DEFINITIONS: list[dict[str, Any]] = [
    {
        "name": "browser_prompt",
        "description": "Get the relevant functions and prompts of the Browser MCP Server",
        "arguments": [],
    }
]
