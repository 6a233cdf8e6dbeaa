from __future__ import annotations

import pytest

from mcp_servers.browser_automation.server.modules import (
    KNOWN_MODULES,
    ProviderUnit,
    ToolModule,
    UnknownModule,
)
from mcp_servers.browser_automation.server.registry import ToolRegistry

CORE_TOOLS = {
    "browser_navigate",
    "browser_action",
    "browser_screenshot",
    "browser_get_text",
    "browser_read_page",
    "browser_docs",
    "browser_manage_modules",
}


def _module_tool_count(name: str) -> int:
    module = next(m for m in KNOWN_MODULES if m.name == name)
    return sum(len(unit.resolve()[0]) for unit in module.providers)


def test_startup_catalog_is_core_set() -> None:
    registry = ToolRegistry()

    assert set(registry.tool_names) == CORE_TOOLS
    assert len(registry) == len(CORE_TOOLS)
    assert registry.active_modules == frozenset()


def test_every_tool_has_a_handler_and_schema() -> None:
    registry = ToolRegistry()
    for name in registry.module_names:
        registry.load_module(name)

    for definition in registry.tools:
        assert registry.has(definition["name"])
        assert definition["inputSchema"]["type"] == "object"
        assert definition["description"]


def test_load_is_idempotent_and_unload_restores_core() -> None:
    notified: list[int] = []
    registry = ToolRegistry()
    registry.set_notification_callback(lambda: notified.append(len(registry)))
    core = len(registry)
    media = _module_tool_count("media")

    change = registry.load_module("media")
    assert change.changed is True
    assert change.message == f"Module 'media' loaded. {core + media} tools now available."
    assert len(registry) == core + media

    again = registry.load_module("media")
    assert again.changed is False
    assert again.status == "already_active"
    assert "already active" in again.message
    assert len(registry) == core + media

    registry.unload_module("media")
    assert len(registry) == core
    assert set(registry.tool_names) == CORE_TOOLS

    not_active = registry.unload_module("media")
    assert not_active.status == "not_active"
    assert not_active.changed is False

    assert notified == [core + media, core]


def test_catalog_size_is_core_plus_active_modules() -> None:
    registry = ToolRegistry()
    core = len(registry)

    for name in ("network", "storage", "network", "tabs"):
        registry.load_module(name)
    registry.unload_module("storage")

    assert len(registry) == core + _module_tool_count("network") + _module_tool_count("tabs")


def test_load_order_does_not_change_catalog() -> None:
    first = ToolRegistry()
    first.load_module("network")
    first.load_module("media")
    first.load_module("advanced")

    second = ToolRegistry()
    second.load_module("advanced")
    second.load_module("media")
    second.load_module("network")

    assert first.tool_names == second.tool_names


def test_core_tools_come_first() -> None:
    registry = ToolRegistry()
    registry.load_module("extraction")

    assert set(registry.tool_names[: len(CORE_TOOLS)]) == CORE_TOOLS
    assert registry.tool_names[len(CORE_TOOLS) :] == ["browser_get_dom", "browser_evaluate", "browser_get_links"]


def test_unknown_module_leaves_state_untouched() -> None:
    notified: list[str] = []
    registry = ToolRegistry(on_change=lambda: notified.append("changed"))
    registry.load_module("tabs")
    before = registry.tool_names

    with pytest.raises(UnknownModule) as excinfo:
        registry.load_module("bogus")

    assert "Unknown module: bogus" in str(excinfo.value)
    assert "tabs" in excinfo.value.available
    assert registry.tool_names == before
    assert registry.active_modules == frozenset({"tabs"})
    assert notified == ["changed"]


def test_notification_sees_rebuilt_catalog() -> None:
    seen: list[bool] = []
    registry = ToolRegistry()
    registry.set_notification_callback(lambda: seen.append(registry.has("browser_list_pages")))

    registry.load_module("tabs")

    assert seen == [True]


def test_notification_failure_does_not_undo_change() -> None:
    def broken() -> None:
        raise RuntimeError("stdout closed")

    registry = ToolRegistry(on_change=broken)
    change = registry.load_module("tabs")

    assert change.changed is True
    assert registry.has("browser_new_page")


def test_failed_rebuild_reverts_active_set() -> None:
    modules = (
        *KNOWN_MODULES,
        ToolModule("broken", "cannot import", (ProviderUnit("does_not_exist"),)),
    )
    notified: list[str] = []
    registry = ToolRegistry(modules=modules, on_change=lambda: notified.append("changed"))
    before = registry.tool_names

    with pytest.raises(ModuleNotFoundError):
        registry.load_module("broken")

    assert registry.active_modules == frozenset()
    assert registry.tool_names == before
    assert notified == []


def test_manage_modules_enum_lists_every_module() -> None:
    registry = ToolRegistry()
    schema = registry.definition("browser_manage_modules")["inputSchema"]

    assert schema["properties"]["module"]["enum"] == [m.name for m in KNOWN_MODULES]
    assert schema["properties"]["action"]["enum"] == ["list", "load", "unload"]


def test_find_definition_reports_owning_module() -> None:
    registry = ToolRegistry()

    definition, module = registry.find_definition("browser_net_export_har")
    assert definition is not None and module == "network"

    definition, module = registry.find_definition("browser_navigate")
    assert definition is not None and module is None

    assert registry.find_definition("browser_nope") == (None, None)


def test_dispatch_unknown_tool_raises_key_error() -> None:
    registry = ToolRegistry()
    with pytest.raises(KeyError):
        registry.dispatch("browser_mouse_move", None, {})  # type: ignore[arg-type]


def test_module_tool_names_do_not_collide() -> None:
    seen: set[str] = set(CORE_TOOLS)
    for module in KNOWN_MODULES:
        for unit in module.providers:
            for definition in unit.resolve()[0]:
                assert definition["name"] not in seen, definition["name"]
                seen.add(definition["name"])
