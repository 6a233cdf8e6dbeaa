"""
MCP server for browser automation on top of Playwright.

Line-delimited JSON-RPC over stdio. Tool dispatch goes through the registry in
server/registry.py; the catalog can change at runtime, in which case a
`notifications/tools/list_changed` frame is written before the response of the
call that caused it.
"""

from __future__ import annotations

import json
import logging
import os
import signal
import sys
from typing import IO, Any

from .config import BrowserConfig
from .connection import ConnectionManager, ConnectionUnavailable
from .driver import BrowserDriver, DriverError
from .server.contract import DEFAULT_PROTOCOL_VERSION, TOOLS_LIST_CHANGED, initialize_result, select_protocol
from .server.registry import ToolRegistry
from .server.types import ToolContext, ToolResult
from .session_cdp import CDPSessionManager
from .tools.base import SmartToolError, truncate

logger = logging.getLogger("mcp.browser")

__all__ = [
    "DEFAULT_PROTOCOL_VERSION",
    "McpServer",
    "main",
]

PARSE_ERROR = -32700
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603


def configure_logging() -> None:
    """stderr logging; stdout carries protocol frames only."""
    level = (os.environ.get("MCP_LOG_LEVEL") or "INFO").upper()
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file := os.environ.get("MCP_LOG_FILE"):
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        handlers=handlers,
    )


def _safe_args(arguments: dict[str, Any]) -> dict[str, Any]:
    return {k: truncate(v) if isinstance(v, str) else v for k, v in arguments.items()}


class McpServer:
    """MCP server with registry-based tool dispatch."""

    def __init__(
        self,
        config: BrowserConfig | None = None,
        driver: BrowserDriver | None = None,
        out: IO[bytes] | None = None,
    ) -> None:
        self.config = config or BrowserConfig.from_env()
        self._out = out if out is not None else sys.stdout.buffer
        self.connection = ConnectionManager(self.config, driver)
        self.cdp = CDPSessionManager(self.connection)
        self.registry = ToolRegistry(
            extensions_dir=self.config.extensions_dir,
            on_change=self.notify_tools_changed,
        )
        self.context = ToolContext(
            config=self.config,
            connection=self.connection,
            cdp=self.cdp,
            registry=self.registry,
        )
        logger.info("Server ready with %d tools", len(self.registry))

    # ── framing ──────────────────────────────────────────────────────────────

    def write_message(self, payload: dict[str, Any]) -> None:
        """Write one JSON-RPC frame."""
        data = json.dumps(payload, ensure_ascii=False, default=str)
        self._out.write((data + "\n").encode())
        self._out.flush()

    def _respond(self, request_id: Any, result: dict[str, Any]) -> None:
        self.write_message({"jsonrpc": "2.0", "id": request_id, "result": result})

    def _error(self, request_id: Any, code: int, message: str) -> None:
        self.write_message({"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}})

    def notify_tools_changed(self) -> None:
        self.write_message({"jsonrpc": "2.0", "method": TOOLS_LIST_CHANGED})

    # ── handlers ─────────────────────────────────────────────────────────────

    def handle_initialize(self, request_id: Any, params: dict[str, Any] | None = None) -> None:
        """Handle initialize request."""
        requested = params.get("protocolVersion") if isinstance(params, dict) else None
        self._respond(request_id, initialize_result(select_protocol(requested)))

    def handle_list_tools(self, request_id: Any) -> None:
        """Handle tools/list request."""
        self._respond(request_id, {"tools": self.registry.tools})

    def _log_call(self, name: str, arguments: dict[str, Any]) -> None:
        logger.info("tool=%s args=%s", name, _safe_args(arguments))

    def call_tool(self, name: str, arguments: dict[str, Any]) -> ToolResult:
        """Run one tool; every failure becomes an error-flagged result."""
        try:
            if not isinstance(arguments, dict):
                return ToolResult.error("'arguments' must be a JSON object", tool=name or None)
            self._log_call(name, arguments)
            if not name:
                return ToolResult.error("Missing tool name")
            if not self.registry.has(name):
                return ToolResult.error(
                    f"Unknown tool: {name}",
                    tool=name,
                    suggestion="Call tools/list, or load a module with browser_manage_modules",
                )
            return self.registry.dispatch(name, self.context, arguments)
        except SmartToolError as e:
            logger.info("tool_error tool=%s action=%s reason=%s", e.tool, e.action, e.reason)
            return ToolResult.error(e.reason, tool=e.tool, suggestion=e.suggestion, details=e.details)
        except ConnectionUnavailable as e:
            logger.warning("browser unavailable: %s", e.cause or "no executable")
            return ToolResult.error(str(e), tool=name, details={"remediation": e.remediation})
        except DriverError as e:
            logger.info("driver_error tool=%s %s", name, e)
            return ToolResult.error(str(e), tool=name)
        except Exception as exc:
            logger.exception("tool_call_failed")
            return ToolResult.error(str(exc), tool=name)

    def handle_call_tool(self, request_id: Any, name: str, arguments: dict[str, Any]) -> None:
        result = self.call_tool(name, arguments)
        self._respond(request_id, {"content": result.to_content_list(), "isError": result.is_error})

    def dispatch(self, message: dict[str, Any]) -> None:
        """Dispatch incoming JSON-RPC message to appropriate handler."""
        if not message:
            return

        method = message.get("method")
        request_id = message.get("id")
        params = message.get("params") or {}

        if method == "initialize":
            self.handle_initialize(request_id, params)
        elif method == "notifications/initialized":
            return
        elif method == "tools/list":
            self.handle_list_tools(request_id)
        elif method == "tools/call":
            name = params.get("name")
            arguments = params.get("arguments") or {}
            self.handle_call_tool(request_id, name or "", arguments)
        elif method == "ping":
            self._respond(request_id, {})
        elif request_id is None:
            logger.debug("ignoring notification %s", method)
        else:
            self._error(request_id, METHOD_NOT_FOUND, f"Method {method} not found")

    def handle_line(self, line: bytes) -> None:
        """Parse one input line and dispatch it; never raises."""
        line = line.strip()
        if not line:
            return
        try:
            message = json.loads(line.decode())
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("unparseable frame: %s", exc)
            self._error(None, PARSE_ERROR, f"Parse error: {exc}")
            return
        if not isinstance(message, dict):
            self._error(None, PARSE_ERROR, "Parse error: expected a JSON object")
            return
        try:
            self.dispatch(message)
        except Exception as exc:
            logger.exception("dispatch_failed")
            self._error(message.get("id"), INTERNAL_ERROR, f"Internal error: {exc}")

    def serve(self, stream: IO[bytes]) -> None:
        """Process frames until end of input."""
        for line in iter(stream.readline, b""):
            self.handle_line(line)

    def cleanup(self) -> None:
        """Best-effort browser shutdown."""
        try:
            self.connection.close()
        except Exception:  # noqa: BLE001
            logger.exception("cleanup_failed")


def _install_signal_handlers(server: McpServer) -> None:
    def _shutdown(signum: int, _frame: Any) -> None:
        logger.info("Received signal %s, shutting down", signum)
        server.cleanup()
        sys.exit(0)

    signal.signal(signal.SIGTERM, _shutdown)
    signal.signal(signal.SIGINT, _shutdown)


def main() -> None:
    """Main entry point for MCP server."""
    configure_logging()
    server = McpServer()
    _install_signal_handlers(server)
    try:
        server.serve(sys.stdin.buffer)
    finally:
        server.cleanup()


if __name__ == "__main__":
    main()
