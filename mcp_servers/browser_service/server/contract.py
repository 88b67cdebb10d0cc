"""Protocol and tool contract definitions.

Single source of truth for:
- supported MCP protocol versions
- server identity
- capabilities advertised by initialize
- tool and prompt lists
"""

from __future__ import annotations

from typing import Any

from .definitions import BROWSER_PROMPT, PROMPT_DEFINITIONS, TOOL_DEFINITIONS

SERVER_INFO: dict[str, str] = {"name": "browser-service", "version": "0.1.0"}

SUPPORTED_PROTOCOL_VERSIONS = ["2025-06-18", "2025-03-26", "2024-11-05"]
LATEST_PROTOCOL_VERSION = SUPPORTED_PROTOCOL_VERSIONS[0]
DEFAULT_PROTOCOL_VERSION = LATEST_PROTOCOL_VERSION

CAPABILITIES: dict[str, Any] = {
    "logging": {},
    "prompts": {"listChanged": False},
    "tools": {"listChanged": False},
}


def select_protocol(requested: Any) -> str:
    if isinstance(requested, str) and requested in SUPPORTED_PROTOCOL_VERSIONS:
        return requested
    return DEFAULT_PROTOCOL_VERSION


def initialize_result(protocol: str) -> dict[str, Any]:
    return {
        "protocolVersion": protocol,
        "serverInfo": SERVER_INFO,
        "capabilities": CAPABILITIES,
        "instructions": "",
    }


def tools_list() -> list[dict[str, Any]]:
    return TOOL_DEFINITIONS


def prompts_list() -> list[dict[str, Any]]:
    return PROMPT_DEFINITIONS


def get_prompt(name: str) -> dict[str, Any] | None:
    if name != "browser_prompt":
        return None
    return {
        "description": PROMPT_DEFINITIONS[0]["description"],
        "messages": [{"role": "user", "content": {"type": "text", "text": BROWSER_PROMPT}}],
    }
