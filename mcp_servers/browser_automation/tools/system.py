"""System utility tools (advanced module): health, waits, viewport, tracing."""

from __future__ import annotations

import logging
import os
import tempfile
import time
from typing import Any

from ..server.types import ToolContext, ToolResult
from .base import int_arg, require_arg, tool

logger = logging.getLogger("mcp.browser.tools.system")

DEFAULT_SELECTOR_TIMEOUT_MS = 30000
MAX_WAIT_MS = 300_000

DEFINITIONS: list[dict[str, Any]] = [
    tool("browser_health_check", "Check browser connection state and tool availability (see browser_docs)"),
    tool(
        "browser_wait",
        "Pause execution for a duration (see browser_docs)",
        {"ms": {"type": "number", "description": "Milliseconds to wait"}},
        ["ms"],
    ),
    tool(
        "browser_resize_window",
        "Resize browser viewport (see browser_docs)",
        {
            "width": {"type": "number", "description": "Width in pixels"},
            "height": {"type": "number", "description": "Height in pixels"},
        },
        ["width", "height"],
    ),
    tool(
        "browser_wait_for_selector",
        "Wait for an element to appear (see browser_docs)",
        {
            "selector": {"type": "string", "description": "Selector to wait for"},
            "timeout": {"type": "number", "description": "Timeout in ms", "default": DEFAULT_SELECTOR_TIMEOUT_MS},
        },
        ["selector"],
    ),
    tool(
        "browser_start_video_recording",
        "Start recording a session trace with screenshots (see browser_docs)",
        {"path": {"type": "string", "description": "Optional save path for the trace archive"}},
    ),
    tool("browser_stop_video_recording", "Stop recording and save trace (see browser_docs)"),
]


def health_check(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    active = ctx.connection.acquire()
    status = ctx.connection.status()
    tool_count = len(ctx.registry) if ctx.registry is not None else 0
    mode = {"attached": "attach mode", "launched": "standalone mode"}.get(status["state"], status["state"])
    lines = [
        f"Browser automation functional ({mode})",
        f"Endpoint: {ctx.config.cdp_endpoint}",
        f"Page: {active.page.url}",
        f"Pages open: {status.get('pages', 0)} (active index {active.index})",
        f"Tools: {tool_count} available",
    ]
    return ToolResult.text("\n".join(lines), data={**status, "url": active.page.url, "tools": tool_count})


def wait(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    require_arg(args, "ms", tool="browser_wait")
    ms = max(0, min(int_arg(args, "ms", 0, tool="browser_wait"), MAX_WAIT_MS))
    # Playwright keeps dispatching page and CDP events during this wait.
    ctx.page().wait_for_timeout(ms)
    return ToolResult.text(f"Waited for {ms}ms")


def resize_window(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    require_arg(args, "width", tool="browser_resize_window")
    require_arg(args, "height", tool="browser_resize_window")
    width = int_arg(args, "width", 0, tool="browser_resize_window")
    height = int_arg(args, "height", 0, tool="browser_resize_window")
    ctx.page().set_viewport_size({"width": width, "height": height})
    return ToolResult.text(f"Resized to {width}x{height}")


def wait_for_selector(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    selector = require_arg(args, "selector", tool="browser_wait_for_selector")
    timeout = int_arg(args, "timeout", DEFAULT_SELECTOR_TIMEOUT_MS, tool="browser_wait_for_selector")
    ctx.page().wait_for_selector(selector, timeout=timeout)
    return ToolResult.text(f"Element {selector} appeared")


def start_recording(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    context = ctx.connection.acquire().context
    context.tracing.start(screenshots=True, snapshots=True)
    ctx.resources["trace_path"] = args.get("path")
    logger.info("Tracing started")
    return ToolResult.text("Started session tracing (screenshots).")


def stop_recording(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    context = ctx.connection.acquire().context
    path = ctx.resources.pop("trace_path", None) or os.path.join(
        tempfile.gettempdir(), f"trace-{int(time.time() * 1000)}.zip"
    )
    context.tracing.stop(path=path)
    logger.info("Trace saved to %s", path)
    return ToolResult.text(f"Trace saved to {path}", data={"path": path})


HANDLERS = {
    "browser_health_check": health_check,
    "browser_wait": wait,
    "browser_resize_window": resize_window,
    "browser_wait_for_selector": wait_for_selector,
    "browser_start_video_recording": start_recording,
    "browser_stop_video_recording": stop_recording,
}
