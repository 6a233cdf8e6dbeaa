"""Low-level mouse tools (advanced module)."""

from __future__ import annotations

from typing import Any

from ..server.types import ToolContext, ToolResult
from .base import SmartToolError, require_arg, tool

BUTTONS = ["left", "right", "middle"]

DEFINITIONS: list[dict[str, Any]] = [
    tool(
        "browser_mouse_move",
        "Move the mouse to specific coordinates",
        {
            "x": {"type": "number", "description": "X coordinate"},
            "y": {"type": "number", "description": "Y coordinate"},
        },
        ["x", "y"],
    ),
    tool(
        "browser_mouse_click",
        "Click the mouse at specific coordinates or on current position",
        {
            "x": {"type": "number", "description": "Optional X coordinate"},
            "y": {"type": "number", "description": "Optional Y coordinate"},
            "button": {"type": "string", "enum": BUTTONS, "description": "left, right, or middle", "default": "left"},
            "clickCount": {"type": "number", "description": "1 for single click, 2 for double click", "default": 1},
        },
    ),
    tool(
        "browser_mouse_drag",
        "Drag from one position to another",
        {
            "fromX": {"type": "number", "description": "Starting X coordinate"},
            "fromY": {"type": "number", "description": "Starting Y coordinate"},
            "toX": {"type": "number", "description": "Ending X coordinate"},
            "toY": {"type": "number", "description": "Ending Y coordinate"},
        },
        ["fromX", "fromY", "toX", "toY"],
    ),
    tool(
        "browser_mouse_wheel",
        "Scroll the mouse wheel",
        {
            "deltaX": {"type": "number", "description": "Horizontal scroll amount"},
            "deltaY": {"type": "number", "description": "Vertical scroll amount"},
        },
        ["deltaX", "deltaY"],
    ),
]


def mouse_move(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    x = require_arg(args, "x", tool="browser_mouse_move")
    y = require_arg(args, "y", tool="browser_mouse_move")
    ctx.page().mouse.move(x, y)
    return ToolResult.text(f"Moved mouse to {x}, {y}")


def mouse_click(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    button = args.get("button") or "left"
    if button not in BUTTONS:
        raise SmartToolError(
            tool="browser_mouse_click",
            action="click",
            reason=f"Unknown button: {button}",
            suggestion=f"Use one of: {', '.join(BUTTONS)}",
        )
    click_count = int(args.get("clickCount") or 1)
    mouse = ctx.page().mouse
    x, y = args.get("x"), args.get("y")
    if x is not None and y is not None:
        mouse.click(x, y, button=button, click_count=click_count)
        return ToolResult.text(f"Clicked at {x}, {y}")

    # Playwright has no click-in-place; press and release at the current position.
    for _ in range(click_count):
        mouse.down(button=button)
        mouse.up(button=button)
    return ToolResult.text("Clicked at current mouse position")


def mouse_drag(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    coords = [require_arg(args, k, tool="browser_mouse_drag") for k in ("fromX", "fromY", "toX", "toY")]
    from_x, from_y, to_x, to_y = coords
    mouse = ctx.page().mouse
    mouse.move(from_x, from_y)
    mouse.down()
    mouse.move(to_x, to_y)
    mouse.up()
    return ToolResult.text(f"Dragged from {from_x},{from_y} to {to_x},{to_y}")


def mouse_wheel(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    dx = require_arg(args, "deltaX", tool="browser_mouse_wheel")
    dy = require_arg(args, "deltaY", tool="browser_mouse_wheel")
    ctx.page().mouse.wheel(dx, dy)
    return ToolResult.text(f"Scrolled wheel by {dx}, {dy}")


HANDLERS = {
    "browser_mouse_move": mouse_move,
    "browser_mouse_click": mouse_click,
    "browser_mouse_drag": mouse_drag,
    "browser_mouse_wheel": mouse_wheel,
}
