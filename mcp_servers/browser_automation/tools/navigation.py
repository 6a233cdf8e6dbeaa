"""
Navigation tools for browser automation.

Core: browser_navigate.
Optional (advanced module): browser_reload, browser_go_back, browser_go_forward.
"""

from __future__ import annotations

from typing import Any

from ..server.types import ToolContext, ToolResult
from .base import SmartToolError, require_arg, tool

WAIT_UNTIL = "domcontentloaded"

CORE_DEFINITIONS: list[dict[str, Any]] = [
    tool(
        "browser_navigate",
        "Navigate to a URL in the browser (see browser_docs)",
        {"url": {"type": "string", "description": "The URL to navigate to"}},
        ["url"],
    ),
]

OPTIONAL_DEFINITIONS: list[dict[str, Any]] = [
    tool("browser_reload", "Reload the current page (see browser_docs)"),
    tool("browser_go_back", "Navigate back in history (see browser_docs)"),
    tool("browser_go_forward", "Navigate forward in history (see browser_docs)"),
]


def navigate(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    url = require_arg(args, "url", tool="browser_navigate")
    page = ctx.page()
    try:
        page.goto(url, wait_until=WAIT_UNTIL)
    except Exception as e:
        raise SmartToolError(
            tool="browser_navigate",
            action="navigate",
            reason=str(e),
            suggestion="Check URL is valid and accessible",
        ) from e
    return ToolResult.text(f"Navigated to {url}", data={"url": page.url})


def reload_page(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    ctx.page().reload(wait_until=WAIT_UNTIL)
    return ToolResult.text("Reloaded page")


def go_back(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    response = ctx.page().go_back(wait_until=WAIT_UNTIL)
    return ToolResult.text("Navigated back" if response is not None else "No history to go back to")


def go_forward(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    response = ctx.page().go_forward(wait_until=WAIT_UNTIL)
    return ToolResult.text("Navigated forward" if response is not None else "No forward history")


CORE_HANDLERS = {"browser_navigate": navigate}

OPTIONAL_HANDLERS = {
    "browser_reload": reload_page,
    "browser_go_back": go_back,
    "browser_go_forward": go_forward,
}
