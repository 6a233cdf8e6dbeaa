"""Static manifest of tool provider units and optional modules.

A provider unit is a module under `browser_automation.tools`. It exposes either
`DEFINITIONS` + `HANDLERS` (standalone unit) or a mandatory
`CORE_DEFINITIONS` / `CORE_HANDLERS` subset plus an
`OPTIONAL_DEFINITIONS` / `OPTIONAL_HANDLERS` subset that is only merged while
the owning optional module is active.
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass
from typing import Any

from .types import HandlerFunc

TOOLS_PACKAGE = "mcp_servers.browser_automation.tools"


class ModuleError(Exception):
    pass


class UnknownModule(ModuleError):
    def __init__(self, name: str, available: list[str]) -> None:
        self.name = name
        self.available = available
        super().__init__(f"Unknown module: {name}. Available modules: {', '.join(available)}")


@dataclass(frozen=True, slots=True)
class ProviderUnit:
    unit: str
    part: str = "all"  # "all" | "core" | "optional"

    def resolve(self) -> tuple[list[dict[str, Any]], dict[str, HandlerFunc]]:
        mod = importlib.import_module(f"{TOOLS_PACKAGE}.{self.unit}")
        if self.part == "core":
            return list(mod.CORE_DEFINITIONS), dict(mod.CORE_HANDLERS)
        if self.part == "optional":
            return list(mod.OPTIONAL_DEFINITIONS), dict(mod.OPTIONAL_HANDLERS)
        if hasattr(mod, "DEFINITIONS"):
            return list(mod.DEFINITIONS), dict(mod.HANDLERS)
        return (
            [*mod.CORE_DEFINITIONS, *mod.OPTIONAL_DEFINITIONS],
            {**mod.CORE_HANDLERS, **mod.OPTIONAL_HANDLERS},
        )


@dataclass(frozen=True, slots=True)
class ToolModule:
    name: str
    description: str
    providers: tuple[ProviderUnit, ...]


CORE_PROVIDERS: tuple[ProviderUnit, ...] = (
    ProviderUnit("navigation", "core"),
    ProviderUnit("interaction", "core"),
    ProviderUnit("info", "core"),
    ProviderUnit("docs"),
)

KNOWN_MODULES: tuple[ToolModule, ...] = (
    ToolModule(
        "network",
        "Network monitoring, HAR export, WebSocket inspection, throttling",
        (ProviderUnit("network"),),
    ),
    ToolModule(
        "performance",
        "CPU profiling, heap usage, runtime metrics, web vitals",
        (ProviderUnit("performance"),),
    ),
    ToolModule(
        "security",
        "Security headers, TLS/SSL info, CSP monitoring, mixed content detection",
        (ProviderUnit("security"),),
    ),
    ToolModule(
        "storage",
        "IndexedDB, Cache Storage, Service Workers management",
        (ProviderUnit("storage"),),
    ),
    ToolModule(
        "media",
        "Audio/Video element inspection, spectral analysis, playback control",
        (ProviderUnit("media"),),
    ),
    ToolModule(
        "tabs",
        "Multi-tab management (new, switch, close, list)",
        (ProviderUnit("pages"),),
    ),
    ToolModule(
        "extraction",
        "Advanced data extraction (DOM, JavaScript evaluation, links)",
        (ProviderUnit("info", "optional"),),
    ),
    ToolModule(
        "advanced",
        "Low-level mouse/keyboard events, console logs, system utilities, legacy single-action tools",
        (
            ProviderUnit("mouse"),
            ProviderUnit("keyboard"),
            ProviderUnit("console"),
            ProviderUnit("system"),
            ProviderUnit("navigation", "optional"),
            ProviderUnit("interaction", "optional"),
        ),
    ),
)


def module_table(modules: tuple[ToolModule, ...] = KNOWN_MODULES) -> dict[str, ToolModule]:
    return {m.name: m for m in modules}


__all__ = [
    "CORE_PROVIDERS",
    "KNOWN_MODULES",
    "ModuleError",
    "ProviderUnit",
    "ToolModule",
    "UnknownModule",
    "module_table",
]
