"""
Module management tool (browser_manage_modules).

Always registered. Its module enum is built from the live manifest on every
catalog rebuild.
"""

from __future__ import annotations

from typing import Any

from ..server.modules import UnknownModule
from ..server.types import ToolContext, ToolResult
from .base import SmartToolError, require_arg, tool

ACTIONS = ["list", "load", "unload"]


def manage_modules_definition(module_names: list[str]) -> dict[str, Any]:
    return tool(
        "browser_manage_modules",
        "List, load or unload optional tool modules (network, performance, media, ...) (see browser_docs)",
        {
            "action": {"type": "string", "enum": ACTIONS, "description": "list | load | unload"},
            "module": {
                "type": "string",
                "enum": list(module_names),
                "description": "Module to load or unload",
            },
        },
        ["action"],
    )


def _list(ctx: ToolContext) -> ToolResult:
    registry = ctx.registry
    payload = {
        "modules": registry.list_modules(),
        "activeModules": sorted(registry.active_modules),
        "toolCount": len(registry),
        "browser": ctx.connection.status(),
    }
    return ToolResult.json(payload, title="Available modules")


def handle_manage_modules(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    if ctx.registry is None:
        return ToolResult.error("Tool registry is not available", tool="browser_manage_modules")

    action = require_arg(args, "action", tool="browser_manage_modules")
    if action == "list":
        return _list(ctx)
    if action not in ("load", "unload"):
        raise SmartToolError(
            tool="browser_manage_modules",
            action=str(action),
            reason=f"Unknown action: {action}",
            suggestion=f"Use one of: {', '.join(ACTIONS)}",
        )

    module = require_arg(args, "module", tool="browser_manage_modules", action=action)
    try:
        if action == "load":
            change = ctx.registry.load_module(module)
        else:
            change = ctx.registry.unload_module(module)
    except UnknownModule as exc:
        return ToolResult.error(
            str(exc),
            tool="browser_manage_modules",
            suggestion="Use action 'list' to see modules",
            details={"available": exc.available},
        )

    return ToolResult.text(
        change.message,
        data={
            "module": change.module,
            "status": change.status,
            "changed": change.changed,
            "toolCount": change.tool_count,
        },
    )
