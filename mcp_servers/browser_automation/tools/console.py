"""
Console capture tools (advanced module).

Capture state lives in a ConsoleCapture held by ToolContext.resources; the
listener is bound to the page that was active when capture started.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..server.types import ToolContext, ToolResult
from .base import tool

logger = logging.getLogger("mcp.browser.tools.console")

LEVELS = ["all", "log", "error", "warn", "info", "debug"]
MAX_ENTRIES = 1000

DEFINITIONS: list[dict[str, Any]] = [
    tool("browser_console_start", "Start capturing browser console logs (see browser_docs)"),
    tool(
        "browser_console_get",
        "Get captured console logs (see browser_docs)",
        {"filter": {"type": "string", "enum": LEVELS, "description": "Filter by log level", "default": "all"}},
    ),
    tool("browser_console_clear", "Clear all captured console logs and stop listening (see browser_docs)"),
]


@dataclass
class ConsoleCapture:
    entries: list[dict[str, Any]] = field(default_factory=list)
    page: Any = None

    @property
    def listening(self) -> bool:
        return self.page is not None

    def _on_console(self, msg: Any) -> None:
        entry = {
            "type": msg.type,
            "text": msg.text,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "location": msg.location or {},
        }
        self.entries.append(entry)
        if len(self.entries) > MAX_ENTRIES:
            del self.entries[0]
        logger.debug("Console [%s]: %s", entry["type"], entry["text"])

    def start(self, page: Any) -> bool:
        if self.page is page:
            return False
        self.stop()
        page.on("console", self._on_console)
        self.page = page
        return True

    def stop(self) -> None:
        if self.page is None:
            return
        try:
            self.page.remove_listener("console", self._on_console)
        except Exception as exc:  # noqa: BLE001
            logger.debug("console listener removal failed: %s", exc)
        self.page = None


def _capture(ctx: ToolContext) -> ConsoleCapture:
    return ctx.resource("console", ConsoleCapture)


def console_start(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    started = _capture(ctx).start(ctx.page())
    if started:
        logger.info("Console logging started")
    return ToolResult.text(
        "Console logging started.\n\n"
        "Capturing: console.log, console.error, console.warn, console.info, console.debug\n\n"
        "Use browser_console_get to retrieve captured logs."
    )


def _format(index: int, entry: dict[str, Any]) -> str:
    text = f"{index}. [{entry['type'].upper()}] {entry['timestamp']}\n   {entry['text']}"
    location = entry.get("location") or {}
    if location.get("url"):
        text += f"\n   Location: {location['url']}:{location.get('lineNumber', 0)}"
    return text


def console_get(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    capture = _capture(ctx)
    level = args.get("filter") or "all"
    entries = capture.entries if level == "all" else [e for e in capture.entries if e["type"] == level]

    if not entries:
        if not capture.listening:
            return ToolResult.text("Console logging is not active.\n\nUse browser_console_start to begin capturing logs.")
        filter_line = f"Filter: {level}\n" if level != "all" else ""
        return ToolResult.text(
            f"No console logs captured yet.\n\n{filter_line}"
            "Console logging is active - logs will appear as the page executes JavaScript.",
            data=[],
        )

    plural = "" if len(entries) == 1 else "s"
    filtered_by = f" (filtered by: {level})" if level != "all" else ""
    header = f"Captured {len(entries)} console log{plural}{filtered_by}:\n\n"
    body = "\n\n".join(_format(i, e) for i, e in enumerate(entries, start=1))
    return ToolResult.text(header + body, data=list(entries))


def console_clear(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    capture = _capture(ctx)
    count = len(capture.entries)
    capture.entries.clear()
    capture.stop()
    logger.info("Cleared %d console logs and stopped listening", count)
    plural = "" if count == 1 else "s"
    return ToolResult.text(
        f"Cleared {count} console log{plural} and stopped listening.\n\nUse browser_console_start to resume capturing.",
        data={"cleared": count},
    )


HANDLERS = {
    "browser_console_start": console_start,
    "browser_console_get": console_get,
    "browser_console_clear": console_clear,
}
