"""
Read/inspect tools.

Core: browser_screenshot, browser_get_text, browser_read_page.
Optional (extraction module): browser_get_dom, browser_evaluate, browser_get_links.
"""

from __future__ import annotations

import base64
import io
from typing import Any

from PIL import Image

from ..server.types import ToolContext, ToolResult
from .base import require_arg, tool

CORE_DEFINITIONS: list[dict[str, Any]] = [
    tool(
        "browser_screenshot",
        "Take a screenshot of the current page (see browser_docs)",
        {
            "fullPage": {"type": "boolean", "description": "Capture full page", "default": False},
            "maxWidth": {"type": "number", "description": "Downscale the image to at most this width in pixels"},
        },
    ),
    tool(
        "browser_get_text",
        "Get text content from an element (see browser_docs)",
        {"selector": {"type": "string", "description": "Playwright selector for the element"}},
        ["selector"],
    ),
    tool("browser_read_page", "Read the content and metadata of the current page (see browser_docs)"),
]

OPTIONAL_DEFINITIONS: list[dict[str, Any]] = [
    tool(
        "browser_get_dom",
        "Get the full DOM structure or specific element data (see browser_docs)",
        {"selector": {"type": "string", "description": "Optional selector to get DOM of specific element"}},
    ),
    tool(
        "browser_evaluate",
        "Execute JavaScript in the browser context (see browser_docs)",
        {"code": {"type": "string", "description": "JavaScript code to execute"}},
        ["code"],
    ),
    tool(
        "browser_get_links",
        "List links on the page with their text and href (see browser_docs)",
        {
            "selector": {"type": "string", "description": "Optional container selector (default: whole document)"},
            "limit": {"type": "number", "description": "Maximum links to return", "default": 100},
        },
    ),
]

_DOM_JS = """(sel) => {
    const element = sel ? document.querySelector(sel) : document.documentElement;
    if (!element) return null;
    return {
        outerHTML: element.outerHTML,
        textContent: element.textContent,
        attributes: Array.from(element.attributes || []).map(a => ({ name: a.name, value: a.value })),
        children: element.children.length
    };
}"""

_LINKS_JS = """([sel, limit]) => {
    const root = sel ? document.querySelector(sel) : document;
    if (!root) return null;
    return Array.from(root.querySelectorAll('a[href]')).slice(0, limit).map(a => ({
        text: (a.innerText || a.textContent || '').trim().slice(0, 200),
        href: a.href
    }));
}"""


def downscale_png(png: bytes, max_width: int) -> bytes:
    """Shrink a PNG to `max_width` keeping the aspect ratio; smaller images pass through."""
    with Image.open(io.BytesIO(png)) as img:
        if img.width <= max_width:
            return png
        height = max(1, round(img.height * max_width / img.width))
        resized = img.resize((max_width, height), Image.Resampling.LANCZOS)
        out = io.BytesIO()
        resized.save(out, format="PNG", optimize=True)
        return out.getvalue()


def screenshot(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    png = ctx.page().screenshot(full_page=bool(args.get("fullPage", False)), type="png")
    max_width = args.get("maxWidth")
    if max_width:
        png = downscale_png(png, int(max_width))
    return ToolResult.image(base64.b64encode(png).decode("ascii"), "image/png")


def get_text(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    selector = require_arg(args, "selector", tool="browser_get_text")
    text = ctx.page().text_content(selector)
    return ToolResult.text(text or "", data={"selector": selector, "text": text})


def read_page(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    page = ctx.page()
    metadata = {
        "title": page.title(),
        "url": page.url,
        "viewport": page.viewport_size,
        "contentLength": len(page.content()),
    }
    return ToolResult.json(metadata)


def get_dom(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    return ToolResult.json(ctx.page().evaluate(_DOM_JS, args.get("selector")))


def evaluate(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    code = require_arg(args, "code", tool="browser_evaluate")
    return ToolResult.json(ctx.page().evaluate(code))


def get_links(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    limit = int(args.get("limit") or 100)
    links = ctx.page().evaluate(_LINKS_JS, [args.get("selector"), limit])
    if links is None:
        return ToolResult.error(f"Element not found: {args.get('selector')}", tool="browser_get_links")
    return ToolResult.json({"count": len(links), "links": links})


CORE_HANDLERS = {
    "browser_screenshot": screenshot,
    "browser_get_text": get_text,
    "browser_read_page": read_page,
}

OPTIONAL_HANDLERS = {
    "browser_get_dom": get_dom,
    "browser_evaluate": evaluate,
    "browser_get_links": get_links,
}
