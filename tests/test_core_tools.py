from __future__ import annotations

import base64
import io

import pytest
from fakes import FakeDriver, FakePage, png_bytes
from PIL import Image

from mcp_servers.browser_automation.server.types import ToolContext
from mcp_servers.browser_automation.tools import docs, info, interaction, modules, navigation
from mcp_servers.browser_automation.tools.base import SmartToolError, input_schema, truncate


def test_navigate_waits_for_dom_content(ctx: ToolContext, page: FakePage) -> None:
    res = navigation.navigate(ctx, {"url": "https://example.com"})

    assert res.content[0].text == "Navigated to https://example.com"
    assert page.calls[-1] == ("goto", "https://example.com", {"wait_until": "domcontentloaded"})


def test_navigate_failure_becomes_tool_error(ctx: ToolContext, page: FakePage) -> None:
    page.goto_error = RuntimeError("net::ERR_NAME_NOT_RESOLVED")

    with pytest.raises(SmartToolError) as excinfo:
        navigation.navigate(ctx, {"url": "https://nope.invalid"})

    assert excinfo.value.tool == "browser_navigate"
    assert "ERR_NAME_NOT_RESOLVED" in excinfo.value.reason


def test_navigate_requires_url(ctx: ToolContext, driver: FakeDriver) -> None:
    with pytest.raises(SmartToolError, match="'url' is required"):
        navigation.navigate(ctx, {})
    # Validation happens before the browser is touched.
    assert driver.calls == []


def test_history_without_entries(ctx: ToolContext) -> None:
    assert navigation.go_back(ctx, {}).content[0].text == "No history to go back to"
    assert navigation.go_forward(ctx, {}).content[0].text == "Navigated forward"


@pytest.mark.parametrize(
    ("args", "expected_call", "text"),
    [
        ({"action": "click", "selector": "#go"}, ("click", "#go"), "Clicked #go"),
        ({"action": "type", "selector": "#q", "text": "hi"}, ("fill", "#q", "hi"), "Typed into #q"),
        ({"action": "hover", "selector": ".m"}, ("hover", ".m"), "Hovered over .m"),
        ({"action": "focus", "selector": "input"}, ("focus", "input"), "Focused input"),
    ],
)
def test_browser_action_variants(ctx: ToolContext, page: FakePage, args, expected_call, text) -> None:  # noqa: ANN001
    res = interaction.perform_action(ctx, args)

    assert page.calls[-1] == expected_call
    assert res.content[0].text == text


def test_browser_action_scroll_defaults_to_origin(ctx: ToolContext, page: FakePage) -> None:
    res = interaction.perform_action(ctx, {"action": "scroll", "y": 400})

    assert res.content[0].text == "Scrolled to (0, 400)"
    assert page.calls[-1][2] == [0, 400]


def test_browser_action_type_requires_text(ctx: ToolContext) -> None:
    with pytest.raises(SmartToolError, match="Text is required"):
        interaction.perform_action(ctx, {"action": "type", "selector": "#q"})


def test_browser_action_rejects_unknown_action(ctx: ToolContext) -> None:
    with pytest.raises(SmartToolError) as excinfo:
        interaction.perform_action(ctx, {"action": "drag", "selector": "#a"})
    assert "click, type, hover, scroll, focus" in excinfo.value.suggestion


def test_legacy_type_tool_routes_through_action(ctx: ToolContext, page: FakePage) -> None:
    interaction.type_text(ctx, {"selector": "#q", "text": "abc"})
    assert page.calls[-1] == ("fill", "#q", "abc")


def test_screenshot_returns_png_image(ctx: ToolContext, page: FakePage) -> None:
    res = info.screenshot(ctx, {"fullPage": True})

    content = res.content[0]
    assert content.type == "image"
    assert content.mime_type == "image/png"
    assert base64.b64decode(content.data) == page.screenshot_png
    assert page.calls[-1] == ("screenshot", {"full_page": True, "type": "png"})


def test_screenshot_max_width_downscales(ctx: ToolContext, page: FakePage) -> None:
    page.screenshot_png = png_bytes(400, 200)

    res = info.screenshot(ctx, {"maxWidth": 100})

    with Image.open(io.BytesIO(base64.b64decode(res.content[0].data))) as img:
        assert img.size == (100, 50)


def test_downscale_keeps_small_images() -> None:
    png = png_bytes(80, 40)
    assert info.downscale_png(png, 100) is png


def test_get_text_and_read_page(ctx: ToolContext, page: FakePage) -> None:
    page.texts["h1"] = "Hello"
    page.title_text = "Home"
    page.url = "https://example.com/"
    page.html = "<html>1234</html>"

    assert info.get_text(ctx, {"selector": "h1"}).content[0].text == "Hello"
    assert info.get_text(ctx, {"selector": "h2"}).content[0].text == ""

    meta = info.read_page(ctx, {}).data
    assert meta == {
        "title": "Home",
        "url": "https://example.com/",
        "viewport": {"width": 1280, "height": 720},
        "contentLength": len("<html>1234</html>"),
    }


def test_evaluate_returns_json(ctx: ToolContext, page: FakePage) -> None:
    page.evaluate_result = {"answer": 42}

    res = info.evaluate(ctx, {"code": "() => ({answer: 42})"})

    assert '"answer": 42' in res.content[0].text


def test_get_links_missing_container(ctx: ToolContext, page: FakePage) -> None:
    page.evaluate_result = None

    res = info.get_links(ctx, {"selector": "#nav"})

    assert res.is_error is True
    assert "Element not found: #nav" in res.content[0].text


def test_docs_listing_includes_inactive_module_tools(ctx: ToolContext) -> None:
    text = docs.get_docs(ctx, {}).content[0].text

    assert "browser_navigate" in text
    assert "browser_net_export_har" in text


def test_docs_for_inactive_tool_mentions_module(ctx: ToolContext) -> None:
    res = docs.get_docs(ctx, {"toolName": "browser_net_export_har"})

    assert res.data == {"found": True, "tool": "browser_net_export_har", "module": "network"}
    text = res.content[0].text
    assert text.startswith("browser_net_export_har(includeContent?)")
    assert '"module": "network"' in text


def test_docs_for_core_tool_uses_written_docs(ctx: ToolContext) -> None:
    res = docs.get_docs(ctx, {"toolName": "browser_navigate"})

    assert res.data["module"] is None
    assert "Note:" not in res.content[0].text


def test_docs_unknown_tool_suggests(ctx: ToolContext) -> None:
    res = docs.get_docs(ctx, {"toolName": "browser_screen"})

    assert res.data["found"] is False
    assert "browser_screenshot" in res.data["suggestions"]
    assert "Did you mean" in res.content[0].text


def test_manage_modules_list_does_not_touch_browser(ctx: ToolContext, driver: FakeDriver) -> None:
    res = modules.handle_manage_modules(ctx, {"action": "list"})

    assert driver.calls == []
    assert res.data["browser"] == {"state": "disconnected", "activePageIndex": 0}
    assert res.data["activeModules"] == []
    names = [m["name"] for m in res.data["modules"]]
    assert names[0] == "network" and "advanced" in names


def test_manage_modules_unknown_module(ctx: ToolContext) -> None:
    res = modules.handle_manage_modules(ctx, {"action": "load", "module": "bogus"})

    assert res.is_error is True
    assert "tabs" in res.data["details"]["available"]


def test_manage_modules_requires_module_for_load(ctx: ToolContext) -> None:
    with pytest.raises(SmartToolError, match="'module' is required"):
        modules.handle_manage_modules(ctx, {"action": "load"})


def test_manage_modules_unload_roundtrip(ctx: ToolContext) -> None:
    loaded = modules.handle_manage_modules(ctx, {"action": "load", "module": "extraction"})
    assert loaded.data["changed"] is True
    assert ctx.registry.has("browser_get_dom")

    unloaded = modules.handle_manage_modules(ctx, {"action": "unload", "module": "extraction"})
    assert unloaded.data["status"] == "unloaded"
    assert not ctx.registry.has("browser_get_dom")


def test_input_schema_shape() -> None:
    schema = input_schema({"a": {"type": "string"}}, ["a"])
    assert schema["additionalProperties"] is False
    assert schema["required"] == ["a"]
    assert "required" not in input_schema()


def test_truncate() -> None:
    assert truncate("abc", 10) == "abc"
    assert truncate("x" * 20, 10) == "xxxxxxx..."
