"""
Type definitions for MCP server responses and handlers.
"""

from __future__ import annotations

import json as _json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from ..config import BrowserConfig
    from ..connection import ConnectionManager
    from ..session_cdp import CDPSessionManager
    from .registry import ToolRegistry

T = TypeVar("T")


@dataclass(slots=True)
class ToolContent:
    """Single content item in tool response."""

    type: str  # "text" or "image"
    text: str | None = None
    data: str | None = None  # base64 for images
    mime_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to MCP content format."""
        if self.type == "image":
            return {"type": "image", "data": self.data, "mimeType": self.mime_type}
        return {"type": "text", "text": self.text}


@dataclass(slots=True)
class ToolResult:
    """Result of a tool execution."""

    content: list[ToolContent] = field(default_factory=list)
    is_error: bool = False
    # Raw payload for tests and in-process callers; not part of the wire format.
    data: Any | None = None

    @classmethod
    def text(cls, text: str, data: Any | None = None) -> ToolResult:
        return cls(content=[ToolContent(type="text", text=text or "")], data=data)

    @classmethod
    def json(cls, data: Any, title: str | None = None) -> ToolResult:
        """Pretty-printed JSON, optionally preceded by a one-line title."""
        body = _json.dumps(data, indent=2, ensure_ascii=False, default=str)
        return cls(content=[ToolContent(type="text", text=f"{title}\n\n{body}" if title else body)], data=data)

    @classmethod
    def error(
        cls,
        message: str,
        *,
        tool: str | None = None,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> ToolResult:
        """Create error result: prose first, structured fields after."""
        payload: dict[str, Any] = {"ok": False, "error": message}
        lines = [f"Error executing {tool}: {message}" if tool else f"Error: {message}"]
        if tool:
            payload["tool"] = tool
        if suggestion:
            payload["suggestion"] = suggestion
            lines.append(f"Suggestion: {suggestion}")
        if details:
            payload["details"] = details
            lines.append("Details: " + _json.dumps(details, ensure_ascii=False, default=str))
        return cls(content=[ToolContent(type="text", text="\n".join(lines))], is_error=True, data=payload)

    @classmethod
    def image(cls, data_b64: str, mime_type: str = "image/png") -> ToolResult:
        """Create result with single image content."""
        if not data_b64:
            return cls.error("Screenshot data is empty")
        return cls(content=[ToolContent(type="image", data=data_b64, mime_type=mime_type)])

    def to_content_list(self) -> list[dict[str, Any]]:
        """Convert to MCP content list format."""
        return [c.to_dict() for c in self.content]


@dataclass
class ToolContext:
    """Process-wide state handed to every tool handler."""

    config: BrowserConfig
    connection: ConnectionManager
    cdp: CDPSessionManager
    registry: ToolRegistry | None = None
    resources: dict[str, Any] = field(default_factory=dict)

    def page(self) -> Any:
        """Acquire the browser session and return the active page."""
        return self.connection.acquire().page

    def resource(self, key: str, factory: Callable[[], T]) -> T:
        """Per-process tool state (console buffer, network monitor, ...), created on first use."""
        if key not in self.resources:
            self.resources[key] = factory()
        return self.resources[key]


HandlerFunc = Callable[[ToolContext, dict[str, Any]], ToolResult]
