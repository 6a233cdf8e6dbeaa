"""
Tab management tools (tabs module).

The active page is tracked as an index into the context's page list, owned by
ConnectionManager; every handler here re-reads the live list.
"""

from __future__ import annotations

import logging
from typing import Any

from ..server.types import ToolContext, ToolResult
from .base import SmartToolError, int_arg, require_arg, tool

logger = logging.getLogger("mcp.browser.tools.pages")

DEFINITIONS: list[dict[str, Any]] = [
    tool("browser_list_pages", "List all open browser pages (tabs) (see browser_docs)"),
    tool(
        "browser_new_page",
        "Open a new browser page (tab) (see browser_docs)",
        {"url": {"type": "string", "description": "Optional URL to navigate to"}},
    ),
    tool(
        "browser_switch_page",
        "Switch to a different browser page (tab) (see browser_docs)",
        {"index": {"type": "number", "description": "The index of the page to switch to"}},
        ["index"],
    ),
    tool(
        "browser_close_page",
        "Close a browser page (tab) (see browser_docs)",
        {"index": {"type": "number", "description": "The index of the page to close. If not provided, closes current page."}},
    ),
]


def _page_title(page: Any) -> str:
    try:
        return page.title()
    except Exception:  # noqa: BLE001
        return "Unknown"


def list_pages(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    active = ctx.connection.acquire()
    pages = [
        {"index": i, "title": _page_title(p), "url": p.url, "isActive": i == active.index}
        for i, p in enumerate(active.context.pages)
    ]
    return ToolResult.json(pages)


def new_page(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    context = ctx.connection.acquire().context
    open_pages = len(context.pages)
    if open_pages >= ctx.config.max_pages:
        raise SmartToolError(
            tool="browser_new_page",
            action="open",
            reason=f"Page limit reached ({open_pages}/{ctx.config.max_pages})",
            suggestion="Close pages with browser_close_page or raise MCP_BROWSER_MAX_PAGES",
        )

    page = context.new_page()
    new_index = len(context.pages) - 1
    ctx.connection.set_active_page_index(new_index)

    url = args.get("url")
    if url:
        page.goto(url, wait_until="domcontentloaded")
    suffix = f" and navigated to {url}" if url else ""
    return ToolResult.text(f"Opened new page at index {new_index}{suffix}", data={"index": new_index})


def switch_page(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    require_arg(args, "index", tool="browser_switch_page")
    index = int_arg(args, "index", 0, tool="browser_switch_page")
    pages = list(ctx.connection.acquire().context.pages)
    if index < 0 or index >= len(pages):
        raise SmartToolError(
            tool="browser_switch_page",
            action="switch",
            reason=f"Invalid page index: {index}. Total pages: {len(pages)}",
            suggestion="Use browser_list_pages to see valid indexes",
        )

    ctx.connection.set_active_page_index(index)
    try:
        pages[index].bring_to_front()
    except Exception as exc:  # noqa: BLE001
        logger.debug("bring_to_front failed: %s", exc)
    return ToolResult.text(f"Switched to page index {index}", data={"index": index})


def close_page(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    active = ctx.connection.acquire()
    pages = list(active.context.pages)
    index = int_arg(args, "index", active.index, tool="browser_close_page")
    if index < 0 or index >= len(pages):
        raise SmartToolError(
            tool="browser_close_page",
            action="close",
            reason=f"Invalid page index: {index}",
            suggestion="Use browser_list_pages to see valid indexes",
        )

    pages[index].close()
    # Re-applying the index clamps it against the shrunken page list.
    ctx.connection.set_active_page_index(ctx.connection.get_active_page_index())
    now_active = ctx.connection.get_active_page_index()
    return ToolResult.text(
        f"Closed page {index}. Active page is now {now_active}.",
        data={"closed": index, "activePageIndex": now_active},
    )


HANDLERS = {
    "browser_list_pages": list_pages,
    "browser_new_page": new_page,
    "browser_switch_page": switch_page,
    "browser_close_page": close_page,
}
