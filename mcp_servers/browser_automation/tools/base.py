"""
Base utilities for browser automation tools.

Provides:
- SmartToolError: Structured errors for AI agents
- input_schema / tool: compact tool declaration builders
- argument helpers shared by the provider units
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

JSON_SCHEMA_DRAFT = "http://json-schema.org/draft-07/schema#"


# Error Handling
@dataclass
class SmartToolError(Exception):
    """Structured error with context for AI agents."""

    tool: str
    action: str
    reason: str
    suggestion: str
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"[{self.tool}] {self.action} failed: {self.reason}. Suggestion: {self.suggestion}"


# Declarations
def input_schema(properties: dict[str, Any] | None = None, required: list[str] | None = None) -> dict[str, Any]:
    schema: dict[str, Any] = {
        "$schema": JSON_SCHEMA_DRAFT,
        "type": "object",
        "properties": properties or {},
        "additionalProperties": False,
    }
    if required:
        schema["required"] = list(required)
    return schema


def tool(
    name: str,
    description: str,
    properties: dict[str, Any] | None = None,
    required: list[str] | None = None,
) -> dict[str, Any]:
    return {"name": name, "description": description, "inputSchema": input_schema(properties, required)}


# Arguments
def require_arg(args: dict[str, Any], key: str, *, tool: str, action: str = "validate") -> Any:
    value = args.get(key)
    if value is None or (isinstance(value, str) and not value):
        raise SmartToolError(
            tool=tool,
            action=action,
            reason=f"'{key}' is required",
            suggestion=f"Pass '{key}' (see browser_docs for {tool})",
        )
    return value


def int_arg(args: dict[str, Any], key: str, default: int, *, tool: str) -> int:
    raw = args.get(key, default)
    if raw is None:
        return default
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise SmartToolError(
            tool=tool,
            action="validate",
            reason=f"'{key}' must be a number, got {raw!r}",
            suggestion=f"Pass a numeric '{key}'",
        ) from exc


def truncate(text: str, limit: int = 100) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."
