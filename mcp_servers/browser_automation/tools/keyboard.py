"""Keyboard tool (advanced module)."""

from __future__ import annotations

from typing import Any

from ..server.types import ToolContext, ToolResult
from .base import require_arg, tool

DEFINITIONS: list[dict[str, Any]] = [
    tool(
        "browser_press_key",
        "Send a keyboard event (press a key) (see browser_docs)",
        {"key": {"type": "string", "description": 'The key to press (e.g., "Enter", "Escape", "Control+A")'}},
        ["key"],
    ),
]


def press_key(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    key = require_arg(args, "key", tool="browser_press_key")
    ctx.page().keyboard.press(key)
    return ToolResult.text(f"Pressed key: {key}")


HANDLERS = {"browser_press_key": press_key}
