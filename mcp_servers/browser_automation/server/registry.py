"""
Tool registry with dispatch table for MCP server.

The catalog (tool declarations + handler map) is derived state: a pure function
of the fixed core set, the set of active optional modules, and whatever the
external extension directory contains. It is never patched incrementally; every
change runs a full `rebuild()`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .extensions import discover_extensions
from .modules import CORE_PROVIDERS, KNOWN_MODULES, ProviderUnit, ToolModule, UnknownModule, module_table
from .types import HandlerFunc, ToolResult

if TYPE_CHECKING:
    from .types import ToolContext

logger = logging.getLogger("mcp.browser.registry")


@dataclass(frozen=True, slots=True)
class ModuleChange:
    """Outcome of a load/unload request."""

    module: str
    status: str  # "loaded" | "unloaded" | "already_active" | "not_active"
    changed: bool
    tool_count: int

    @property
    def message(self) -> str:
        return {
            "loaded": f"Module '{self.module}' loaded. {self.tool_count} tools now available.",
            "unloaded": f"Module '{self.module}' unloaded. {self.tool_count} tools now available.",
            "already_active": f"Module '{self.module}' is already active.",
            "not_active": f"Module '{self.module}' is not active.",
        }[self.status]


class ToolRegistry:
    """Authoritative catalog of invocable tools with runtime-toggleable modules."""

    def __init__(
        self,
        *,
        core: tuple[ProviderUnit, ...] = CORE_PROVIDERS,
        modules: tuple[ToolModule, ...] = KNOWN_MODULES,
        extensions_dir: str | None = None,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._core = core
        self._modules = module_table(modules)
        self._extensions_dir = extensions_dir
        self._on_change = on_change
        self._active: set[str] = set()
        self._tools: list[dict[str, Any]] = []
        self._handlers: dict[str, HandlerFunc] = {}
        self.rebuild()

    def set_notification_callback(self, callback: Callable[[], None] | None) -> None:
        """Called once after every successful module load/unload."""
        self._on_change = callback

    # ── catalog access ───────────────────────────────────────────────────────

    @property
    def tools(self) -> list[dict[str, Any]]:
        return list(self._tools)

    @property
    def tool_names(self) -> list[str]:
        return [t["name"] for t in self._tools]

    @property
    def active_modules(self) -> frozenset[str]:
        return frozenset(self._active)

    @property
    def module_names(self) -> list[str]:
        return list(self._modules)

    def has(self, name: str) -> bool:
        return name in self._handlers

    def get(self, name: str) -> HandlerFunc | None:
        return self._handlers.get(name)

    def definition(self, name: str) -> dict[str, Any] | None:
        return next((t for t in self._tools if t.get("name") == name), None)

    def find_definition(self, name: str) -> tuple[dict[str, Any] | None, str | None]:
        """Look a tool up in the live catalog, then in inactive modules.

        Returns (definition, owning module) where the module is None for tools
        that are already available.
        """
        found = self.definition(name)
        if found is not None:
            return found, None
        for module in self._modules.values():
            for unit in module.providers:
                definitions, _ = unit.resolve()
                for definition in definitions:
                    if definition.get("name") == name:
                        return definition, module.name
        return None, None

    def __len__(self) -> int:
        return len(self._tools)

    # ── module management ────────────────────────────────────────────────────

    def list_modules(self) -> list[dict[str, Any]]:
        result = []
        for module in self._modules.values():
            names: list[str] = []
            for unit in module.providers:
                definitions, _ = unit.resolve()
                names.extend(d["name"] for d in definitions)
            result.append(
                {
                    "name": module.name,
                    "description": module.description,
                    "active": module.name in self._active,
                    "tools": names,
                }
            )
        return result

    def load_module(self, name: str) -> ModuleChange:
        return self._set_active(name, True)

    def unload_module(self, name: str) -> ModuleChange:
        return self._set_active(name, False)

    def _set_active(self, name: str, active: bool) -> ModuleChange:
        if name not in self._modules:
            raise UnknownModule(name, self.module_names)

        if (name in self._active) == active:
            status = "already_active" if active else "not_active"
            return ModuleChange(name, status, False, len(self._tools))

        previous = set(self._active)
        if active:
            self._active.add(name)
        else:
            self._active.discard(name)
        try:
            self.rebuild()
        except Exception:
            self._active = previous
            self.rebuild()
            raise

        logger.info("module %s %s (%d tools)", name, "loaded" if active else "unloaded", len(self._tools))
        self._notify()
        return ModuleChange(name, "loaded" if active else "unloaded", True, len(self._tools))

    def _notify(self) -> None:
        callback = self._on_change
        if callback is None:
            return
        try:
            callback()
        except Exception:  # noqa: BLE001
            logger.exception("tools change notification failed")

    # ── rebuild ──────────────────────────────────────────────────────────────

    def rebuild(self) -> None:
        """Recompute the catalog from scratch; safe to call any number of times."""
        from ..tools.modules import handle_manage_modules, manage_modules_definition

        tools: list[dict[str, Any]] = []
        handlers: dict[str, HandlerFunc] = {}

        for unit in self._core:
            self._merge(tools, handlers, *unit.resolve(), source=f"core:{unit.unit}")

        self._merge(
            tools,
            handlers,
            [manage_modules_definition(self.module_names)],
            {"browser_manage_modules": handle_manage_modules},
            source="core:modules",
        )

        # Manifest order keeps the catalog deterministic regardless of load order.
        for module in self._modules.values():
            if module.name not in self._active:
                continue
            for unit in module.providers:
                self._merge(tools, handlers, *unit.resolve(), source=f"module:{module.name}")

        for ext in discover_extensions(self._extensions_dir):
            try:
                self._merge(tools, handlers, ext.definitions, ext.handlers, source=f"extension:{ext.path.name}")
            except Exception:  # noqa: BLE001
                logger.exception("Failed to register extension %s", ext.path.name)

        self._tools = tools
        self._handlers = handlers

    @staticmethod
    def _merge(
        tools: list[dict[str, Any]],
        handlers: dict[str, HandlerFunc],
        definitions: list[dict[str, Any]],
        unit_handlers: dict[str, HandlerFunc],
        *,
        source: str,
    ) -> None:
        for definition in definitions:
            name = definition["name"]
            if name in handlers:
                logger.warning("Duplicate tool %s from %s ignored", name, source)
                continue
            handler = unit_handlers.get(name)
            if handler is None:
                logger.warning("Tool %s from %s has no handler; skipped", name, source)
                continue
            tools.append(definition)
            handlers[name] = handler

    # ── dispatch ─────────────────────────────────────────────────────────────

    def dispatch(self, name: str, ctx: ToolContext, arguments: dict[str, Any]) -> ToolResult:
        handler = self._handlers.get(name)
        if handler is None:
            raise KeyError(f"Unknown tool: {name}")
        return handler(ctx, arguments)


__all__ = ["ModuleChange", "ToolRegistry"]
