"""
Self-describing documentation lookup (browser_docs).

Hand-written notes cover the core tools and the ones with surprising behavior;
every other tool is documented from its declared input schema, including tools
whose module is not loaded yet.
"""

from __future__ import annotations

from typing import Any

from ..server.types import ToolContext, ToolResult
from .base import tool

DEFINITIONS: list[dict[str, Any]] = [
    tool(
        "browser_docs",
        "Get detailed documentation, return values, examples, and caveats for any browser tool",
        {
            "toolName": {
                "type": "string",
                "description": "Name of the tool to get docs for (e.g., browser_navigate, browser_get_audio_analysis)",
            }
        },
    ),
]

TOOL_DOCS: dict[str, str] = {
    "browser_navigate": """browser_navigate(url)

Navigate to a URL in the browser.

Parameters:
  - url (string, required): the URL to navigate to

Returns: 'Navigated to <url>'

Behavior:
  - Waits for 'domcontentloaded', not the full load event
  - For SPAs or slow pages, follow up with browser_wait_for_selector (advanced module)

Example:
  browser_navigate({"url": "https://example.com"})""",
    "browser_action": """browser_action(action, selector?, text?, x?, y?)

One interaction primitive for click, type, hover, scroll and focus.

Parameters:
  - action (string, required): click | type | hover | scroll | focus
  - selector (string): Playwright selector, required for everything except scroll
  - text (string): value for the type action
  - x, y (number): scroll target for the scroll action (default 0)

Selector syntax:
  - CSS: '#id', '.class', 'button.primary'
  - Text: 'text=Click me'
  - Chaining: 'div.container >> button'

Caveats:
  - type uses fill(): the field is cleared first, text is not appended

Examples:
  browser_action({"action": "click", "selector": "text=Login"})
  browser_action({"action": "type", "selector": "#user", "text": "alice"})
  browser_action({"action": "scroll", "y": 1200})""",
    "browser_screenshot": """browser_screenshot(fullPage?, maxWidth?)

Capture the active page as a PNG image.

Parameters:
  - fullPage (boolean, default false): capture the whole scrollable page
  - maxWidth (number): downscale wider images to this width, keeping aspect ratio

Returns: one image content item (base64 PNG)

Caveats:
  - Full-page captures of long pages are large; prefer maxWidth for overviews""",
    "browser_get_text": """browser_get_text(selector)

Return the textContent of the first element matching the selector.

Parameters:
  - selector (string, required)

Returns: the text (empty if the element has none)""",
    "browser_read_page": """browser_read_page()

Read metadata of the current page.

Returns JSON:
  { "title", "url", "viewport": {"width", "height"}, "contentLength" }

Tip: use browser_get_dom (extraction module) for the markup itself.""",
    "browser_manage_modules": """browser_manage_modules(action, module?)

List, load or unload optional tool modules. The tool list changes while the
server runs and a tools/list_changed notification is sent after each change.

Parameters:
  - action (string, required): list | load | unload
  - module (string): module name, required for load and unload

Returns:
  - list: every module with description, active flag and tool names, plus the
    browser session state
  - load/unload: the new tool count, or a note that nothing changed

Example:
  browser_manage_modules({"action": "load", "module": "network"})""",
    "browser_type": """browser_type(selector, text)

Deprecated; use browser_action with action 'type'.

Caveats:
  - Uses fill(), which clears the field first""",
    "browser_evaluate": """browser_evaluate(code)

Execute JavaScript in the page and return the result as JSON.

Parameters:
  - code (string, required): an expression or a function source, e.g. '() => document.title'

Caveats:
  - Non-serializable values (DOM nodes, functions) come back as null or {}""",
    "browser_get_audio_analysis": """browser_get_audio_analysis(durationMs?, selector?)

Sample a playing <audio>/<video> element through the Web Audio API.

Parameters:
  - durationMs (number, default 2000): sampling window
  - selector (string): element to analyze (default: first media element)

Returns JSON: isSilent, averageVolume, peakVolume, activeFrequencies and
dominant frequency bands.

Caveats:
  - The element must be playing; paused media reads as silence
  - Cross-origin media without CORS headers cannot be analyzed""",
    "browser_net_start_monitoring": """browser_net_start_monitoring(patterns?)

Start recording requests and WebSocket frames for the active page.

Caveats:
  - Only the most recent 500 requests are kept
  - Switching pages does not move the recording; restart it on the new page""",
}


def _schema_doc(definition: dict[str, Any]) -> str:
    schema = definition.get("inputSchema", {})
    properties = schema.get("properties", {})
    required = set(schema.get("required", []))
    signature = ", ".join(p if p in required else f"{p}?" for p in properties)
    lines = [f"{definition['name']}({signature})", "", definition.get("description", "")]
    if properties:
        lines += ["", "Parameters:"]
        for prop, spec in properties.items():
            kind = spec.get("type", "any")
            if "enum" in spec:
                kind += ": " + " | ".join(str(v) for v in spec["enum"])
            flag = "required" if prop in required else "optional"
            description = spec.get("description", "")
            lines.append(f"  - {prop} ({kind}, {flag}): {description}".rstrip(": "))
    return "\n".join(lines)


def _all_tool_names(ctx: ToolContext) -> list[str]:
    names = set(TOOL_DOCS)
    if ctx.registry is not None:
        names.update(ctx.registry.tool_names)
        for module in ctx.registry.list_modules():
            names.update(module["tools"])
    return sorted(names)


def get_docs(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    tool_name = args.get("toolName")
    if not tool_name:
        listing = "\n  - ".join(_all_tool_names(ctx))
        return ToolResult.text(
            "Browser Tools Documentation\n\n"
            f"Available tools:\n  - {listing}\n\n"
            "Usage:\n  browser_docs({\"toolName\": \"browser_navigate\"})"
        )

    definition, module = (None, None)
    if ctx.registry is not None:
        definition, module = ctx.registry.find_definition(tool_name)

    doc = TOOL_DOCS.get(tool_name)
    if doc is None and definition is not None:
        doc = _schema_doc(definition)

    if doc is None:
        needle = tool_name.replace("browser_", "")
        suggestions = [n for n in _all_tool_names(ctx) if needle and needle in n][:5]
        text = f"No documentation found for '{tool_name}'"
        if suggestions:
            text += "\n\nDid you mean:\n  - " + "\n  - ".join(suggestions)
        text += "\n\nUse browser_docs({}) to see all available tools."
        return ToolResult.text(text, data={"found": False, "suggestions": suggestions})

    if module is not None:
        doc += (
            f"\n\nNote: this tool is part of the '{module}' module. Load it with "
            f'browser_manage_modules({{"action": "load", "module": "{module}"}}).'
        )
    return ToolResult.text(doc, data={"found": True, "tool": tool_name, "module": module})


HANDLERS = {"browser_docs": get_docs}
