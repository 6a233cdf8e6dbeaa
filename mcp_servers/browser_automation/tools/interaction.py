"""
Element interaction tools.

Core: browser_action, one primitive covering click/type/hover/scroll/focus.
Optional (advanced module): the single-action tools it replaced, plus select.
"""

from __future__ import annotations

from typing import Any

from ..server.types import ToolContext, ToolResult
from .base import SmartToolError, require_arg, tool

ACTIONS = ["click", "type", "hover", "scroll", "focus"]

_SCROLL_JS = "([x, y]) => window.scrollTo(x, y)"

CORE_DEFINITIONS: list[dict[str, Any]] = [
    tool(
        "browser_action",
        "Perform interaction actions (click, type, hover, scroll, focus) (see browser_docs)",
        {
            "action": {"type": "string", "enum": ACTIONS, "description": "The action to perform"},
            "selector": {"type": "string", "description": "Selector for the element (required for most actions)"},
            "text": {"type": "string", "description": "Text to type (required for type action)"},
            "x": {"type": "number", "description": "Horizontal scroll position (for scroll action)"},
            "y": {"type": "number", "description": "Vertical scroll position (for scroll action)"},
        },
        ["action"],
    ),
]

_SELECTOR = {"selector": {"type": "string", "description": "Playwright selector for the element"}}

OPTIONAL_DEFINITIONS: list[dict[str, Any]] = [
    tool("browser_click", "DEPRECATED: Use browser_action instead. Click an element (see browser_docs)", _SELECTOR, ["selector"]),
    tool(
        "browser_type",
        "DEPRECATED: Use browser_action instead. Type text into an input field (see browser_docs)",
        {**_SELECTOR, "text": {"type": "string", "description": "Text to type"}},
        ["selector", "text"],
    ),
    tool("browser_hover", "DEPRECATED: Use browser_action instead. Hover over an element (see browser_docs)", _SELECTOR, ["selector"]),
    tool("browser_focus", "DEPRECATED: Use browser_action instead. Focus an element (see browser_docs)", _SELECTOR, ["selector"]),
    tool(
        "browser_select",
        "Select options in a dropdown (see browser_docs)",
        {**_SELECTOR, "values": {"type": "array", "items": {"type": "string"}, "description": "Values to select"}},
        ["selector", "values"],
    ),
    tool(
        "browser_scroll",
        "DEPRECATED: Use browser_action instead. Scroll the page (see browser_docs)",
        {
            "x": {"type": "number", "description": "Horizontal scroll position"},
            "y": {"type": "number", "description": "Vertical scroll position"},
        },
    ),
]


def _scroll(page: Any, args: dict[str, Any]) -> ToolResult:
    x = args.get("x") or 0
    y = args.get("y") or 0
    page.evaluate(_SCROLL_JS, [x, y])
    return ToolResult.text(f"Scrolled to ({x}, {y})")


def perform_action(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    action = require_arg(args, "action", tool="browser_action")
    if action not in ACTIONS:
        raise SmartToolError(
            tool="browser_action",
            action=str(action),
            reason=f"Unknown action: {action}",
            suggestion=f"Use one of: {', '.join(ACTIONS)}",
        )

    if action == "scroll":
        return _scroll(ctx.page(), args)

    selector = require_arg(args, "selector", tool="browser_action", action=action)
    if action == "type" and args.get("text") is None:
        raise SmartToolError(
            tool="browser_action",
            action="type",
            reason="Text is required for type action",
            suggestion="Pass 'text' with the value to type",
        )

    page = ctx.page()
    if action == "click":
        page.click(selector)
        return ToolResult.text(f"Clicked {selector}")
    if action == "type":
        page.fill(selector, str(args["text"]))
        return ToolResult.text(f"Typed into {selector}")
    if action == "hover":
        page.hover(selector)
        return ToolResult.text(f"Hovered over {selector}")
    page.focus(selector)
    return ToolResult.text(f"Focused {selector}")


def click(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    return perform_action(ctx, {**args, "action": "click"})


def type_text(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    return perform_action(ctx, {**args, "action": "type"})


def hover(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    return perform_action(ctx, {**args, "action": "hover"})


def focus(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    return perform_action(ctx, {**args, "action": "focus"})


def scroll(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    return _scroll(ctx.page(), args)


def select_option(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    selector = require_arg(args, "selector", tool="browser_select")
    values = require_arg(args, "values", tool="browser_select")
    selected = ctx.page().select_option(selector, list(values))
    return ToolResult.text(f"Selected values in {selector}", data={"selected": selected})


CORE_HANDLERS = {"browser_action": perform_action}

OPTIONAL_HANDLERS = {
    "browser_click": click,
    "browser_type": type_text,
    "browser_hover": hover,
    "browser_focus": focus,
    "browser_select": select_option,
    "browser_scroll": scroll,
}
