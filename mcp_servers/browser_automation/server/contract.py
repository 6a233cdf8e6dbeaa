"""Protocol contract: versions, server identity and advertised capabilities."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from typing import Any

DIST_NAME = "browser-automation-mcp"

try:
    SERVER_VERSION = version(DIST_NAME)
except PackageNotFoundError:
    SERVER_VERSION = "unknown"

SERVER_INFO: dict[str, str] = {"name": "browser-automation-playwright", "version": SERVER_VERSION}

DEFAULT_PROTOCOL_VERSION = "2024-11-05"

# listChanged must be advertised: the catalog changes when modules are loaded/unloaded,
# and clients only re-fetch tools/list on notifications they were told to expect.
CAPABILITIES: dict[str, Any] = {
    "tools": {"listChanged": True},
}

TOOLS_LIST_CHANGED = "notifications/tools/list_changed"


def select_protocol(requested: Any) -> str:
    if isinstance(requested, str) and requested.strip():
        return requested
    return DEFAULT_PROTOCOL_VERSION


def initialize_result(protocol: str) -> dict[str, Any]:
    return {
        "protocolVersion": protocol,
        "capabilities": CAPABILITIES,
        "serverInfo": SERVER_INFO,
    }
