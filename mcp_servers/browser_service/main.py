"""
MCP server exposing one long-lived browser session over stdio.

This module provides the entry point and JSON-RPC protocol handling. Tool
dispatch lives in server/registry.py.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from typing import Any

from .config import BrowserConfig
from .errors import ConfigError, StartupError
from .server.contract import (
    DEFAULT_PROTOCOL_VERSION,
    LATEST_PROTOCOL_VERSION,
    SUPPORTED_PROTOCOL_VERSIONS,
    get_prompt,
    initialize_result,
    prompts_list,
    select_protocol,
    tools_list,
)
from .server.registry import ToolDispatcher
from .server.types import ToolResult
from .session import BrowserSessionStore

logger = logging.getLogger("mcp.browser_service")

__all__ = [
    "SUPPORTED_PROTOCOL_VERSIONS",
    "LATEST_PROTOCOL_VERSION",
    "DEFAULT_PROTOCOL_VERSION",
    "McpServer",
    "main",
]


def _write_message(payload: dict[str, Any]) -> None:
    """Write JSON-RPC message to stdout."""
    data = json.dumps(payload, ensure_ascii=False)
    sys.stdout.buffer.write((data + "\n").encode())
    sys.stdout.buffer.flush()


def _read_message() -> dict[str, Any] | None:
    """Read one JSON-RPC message from stdin; None at EOF, {} for a blank line."""
    line = sys.stdin.buffer.readline()
    if not line:
        return None
    line = line.strip()
    if not line:
        return {}
    msg = json.loads(line.decode())
    return msg if isinstance(msg, dict) else {}


class McpServer:
    """MCP server with table-based tool dispatch over a single session."""

    def __init__(self, session: BrowserSessionStore) -> None:
        self.session = session
        self.dispatcher = ToolDispatcher(session)

    def _reply(self, request_id: Any, result: dict[str, Any]) -> None:
        _write_message({"jsonrpc": "2.0", "id": request_id, "result": result})

    def _reply_error(self, request_id: Any, code: int, message: str) -> None:
        _write_message({"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}})

    def handle_initialize(self, request_id: Any, params: dict[str, Any] | None = None) -> None:
        """Handle initialize request."""
        requested = (params or {}).get("protocolVersion") if isinstance(params, dict) else None
        self._reply(request_id, initialize_result(select_protocol(requested)))

    def handle_list_tools(self, request_id: Any) -> None:
        self._reply(request_id, {"tools": tools_list()})

    def handle_list_prompts(self, request_id: Any) -> None:
        self._reply(request_id, {"prompts": prompts_list()})

    def handle_get_prompt(self, request_id: Any, name: str) -> None:
        prompt = get_prompt(name)
        if prompt is None:
            self._reply_error(request_id, -32602, f"Unknown prompt: {name}")
            return
        self._reply(request_id, prompt)

    def handle_call_tool(self, request_id: Any, name: str, arguments: Any) -> None:
        try:
            result = self.dispatcher.dispatch(name, arguments)
        except Exception as exc:  # noqa: BLE001
            logger.exception("tool_call_failed")
            result = ToolResult.error(str(exc), tool=name or None)

        self._reply(request_id, {"content": result.to_content_list(), "isError": result.is_error})

    def dispatch(self, message: dict[str, Any]) -> None:
        """Dispatch incoming JSON-RPC message to appropriate handler."""
        if not message:
            return

        method = message.get("method")
        request_id = message.get("id")
        params = message.get("params") or {}
        if not isinstance(params, dict):
            params = {}

        if method == "initialize":
            self.handle_initialize(request_id, params)
        elif method == "notifications/initialized":
            return
        elif method == "tools/list":
            self.handle_list_tools(request_id)
        elif method == "tools/call":
            name = params.get("name")
            self.handle_call_tool(request_id, name if isinstance(name, str) else "", params.get("arguments"))
        elif method == "prompts/list":
            self.handle_list_prompts(request_id)
        elif method == "prompts/get":
            self.handle_get_prompt(request_id, str(params.get("name") or ""))
        elif method == "ping":
            self._reply(request_id, {})
        elif request_id is None:
            # Unknown notification: nothing to answer.
            logger.debug("ignoring notification %s", method)
        else:
            self._reply_error(request_id, -32601, f"Method {method} not found")

    def serve(self) -> None:
        """Read messages until EOF."""
        while True:
            try:
                message = _read_message()
            except (UnicodeDecodeError, json.JSONDecodeError) as exc:
                logger.warning("malformed message: %s", exc)
                self._reply_error(None, -32700, f"Parse error: {exc}")
                continue
            if message is None:
                break
            self.dispatch(message)


def _configure_logging() -> None:
    level_name = (os.environ.get("MCP_LOG_LEVEL") or "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )


def main() -> None:
    """Main entry point for MCP server."""
    _configure_logging()
    try:
        config = BrowserConfig.from_env()
        session = BrowserSessionStore(config)
        session.initialize()
    except (ConfigError, StartupError) as exc:
        logger.error("browser service failed to start: %s", exc)
        sys.exit(1)

    logger.info("session %s", json.dumps(session.describe(), ensure_ascii=False))
    server = McpServer(session)
    try:
        server.serve()
    except KeyboardInterrupt:
        logger.info("interrupted")
    finally:
        session.close()


if __name__ == "__main__":
    main()
