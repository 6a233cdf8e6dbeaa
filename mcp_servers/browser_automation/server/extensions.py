"""External extension loading.

An extension is a `.py` file in the extensions directory exposing:

    EXTENSION_API_VERSION = 1          # optional; must match when present
    DEFINITIONS = [{"name": ..., "description": ..., "inputSchema": {...}}]
    HANDLERS = {"tool_name": handler}  # handler(ctx, arguments) -> ToolResult

Files are re-executed on every registry rebuild. A broken file is logged and
skipped; it never aborts the rebuild.
"""

from __future__ import annotations

import hashlib
import importlib.util
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .types import HandlerFunc

logger = logging.getLogger("mcp.browser.extensions")

EXTENSION_API_VERSION = 1


class ExtensionLoadError(Exception):
    pass


@dataclass(slots=True)
class Extension:
    path: Path
    definitions: list[dict[str, Any]]
    handlers: dict[str, HandlerFunc]


def _module_name(path: Path) -> str:
    digest = hashlib.sha1(str(path).encode()).hexdigest()[:8]
    return f"browser_automation_ext_{path.stem}_{digest}"


def load_extension(path: Path) -> Extension:
    spec = importlib.util.spec_from_file_location(_module_name(path), path)
    if spec is None or spec.loader is None:
        raise ExtensionLoadError(f"cannot create import spec for {path}")
    mod = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(mod)
    except Exception as exc:  # noqa: BLE001
        raise ExtensionLoadError(f"import failed: {exc}") from exc

    version = getattr(mod, "EXTENSION_API_VERSION", EXTENSION_API_VERSION)
    if version != EXTENSION_API_VERSION:
        raise ExtensionLoadError(f"unsupported EXTENSION_API_VERSION {version!r} (expected {EXTENSION_API_VERSION})")

    definitions = getattr(mod, "DEFINITIONS", None)
    handlers = getattr(mod, "HANDLERS", None)
    if not isinstance(definitions, list) or not isinstance(handlers, dict):
        raise ExtensionLoadError("extension must define DEFINITIONS (list) and HANDLERS (dict)")

    for definition in definitions:
        name = definition.get("name") if isinstance(definition, dict) else None
        if not isinstance(name, str) or not name:
            raise ExtensionLoadError("every definition needs a string 'name'")
        if not callable(handlers.get(name)):
            raise ExtensionLoadError(f"no callable handler for tool {name!r}")

    return Extension(path=path, definitions=list(definitions), handlers=dict(handlers))


def discover_extensions(directory: str | Path | None) -> list[Extension]:
    """Load every extension in `directory`, skipping (and logging) failures."""
    if not directory:
        return []
    root = Path(directory)
    if not root.is_dir():
        return []

    loaded: list[Extension] = []
    for path in sorted(root.glob("*.py")):
        if path.name.startswith("_"):
            continue
        try:
            loaded.append(load_extension(path))
        except ExtensionLoadError as exc:
            logger.error("Failed to load extension %s: %s", path.name, exc)
            continue
        logger.info("Loaded extension %s", path.name)
    return loaded


__all__ = ["EXTENSION_API_VERSION", "Extension", "ExtensionLoadError", "discover_extensions", "load_extension"]
