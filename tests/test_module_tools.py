from __future__ import annotations

from types import SimpleNamespace

import pytest
from fakes import FakeCDPSession, FakeHandle, FakePage

from mcp_servers.browser_automation.server.types import ToolContext
from mcp_servers.browser_automation.tools import (
    console,
    keyboard,
    media,
    mouse,
    network,
    performance,
    security,
    storage,
    system,
)
from mcp_servers.browser_automation.tools.base import SmartToolError


def _console_message(kind: str, text: str, url: str = "") -> SimpleNamespace:
    return SimpleNamespace(type=kind, text=text, location={"url": url, "lineNumber": 3} if url else {})


def _session(ctx: ToolContext) -> FakeCDPSession:
    return ctx.cdp.get_session()


# Console


def test_console_capture_and_filter(ctx: ToolContext, page: FakePage) -> None:
    assert "not active" in console.console_get(ctx, {}).content[0].text

    console.console_start(ctx, {})
    page.emit("console", _console_message("log", "hello"))
    page.emit("console", _console_message("error", "boom", "https://x.example/app.js"))

    everything = console.console_get(ctx, {})
    assert "Captured 2 console logs" in everything.content[0].text

    errors = console.console_get(ctx, {"filter": "error"})
    assert [e["text"] for e in errors.data] == ["boom"]
    assert "Location: https://x.example/app.js:3" in errors.content[0].text


def test_console_start_twice_keeps_one_listener(ctx: ToolContext, page: FakePage) -> None:
    console.console_start(ctx, {})
    console.console_start(ctx, {})

    assert len(page.listeners["console"]) == 1


def test_console_clear_stops_listening(ctx: ToolContext, page: FakePage) -> None:
    console.console_start(ctx, {})
    page.emit("console", _console_message("log", "one"))

    res = console.console_clear(ctx, {})

    assert res.data == {"cleared": 1}
    assert page.listeners["console"] == []
    page.emit("console", _console_message("log", "late"))
    assert "not active" in console.console_get(ctx, {}).content[0].text


def test_console_buffer_is_bounded(ctx: ToolContext, page: FakePage) -> None:
    console.console_start(ctx, {})
    for i in range(console.MAX_ENTRIES + 5):
        page.emit("console", _console_message("log", str(i)))

    entries = console.console_get(ctx, {}).data
    assert len(entries) == console.MAX_ENTRIES
    assert entries[0]["text"] == "5"


# Network


def _request(request_id: str, url: str) -> dict:
    return {
        "requestId": request_id,
        "request": {"url": url, "method": "GET", "headers": {"Accept": "*/*"}},
        "wallTime": 1_700_000_000.0,
        "type": "Document",
    }


def test_network_monitoring_records_requests(ctx: ToolContext) -> None:
    network.start_monitoring(ctx, {"patterns": ["/api/"]})
    session = _session(ctx)
    assert session.methods()[0] == "Network.enable"

    session.emit("Network.requestWillBeSent", _request("1", "https://x.example/api/items"))
    session.emit("Network.requestWillBeSent", _request("2", "https://x.example/logo.png"))
    session.emit(
        "Network.responseReceived",
        {
            "requestId": "1",
            "response": {
                "status": 200,
                "statusText": "OK",
                "mimeType": "application/json",
                "headers": {},
                "timing": {"sendStart": 1.0, "sendEnd": 2.0, "receiveHeadersEnd": 11.5},
            },
        },
    )
    session.emit("Network.loadingFinished", {"requestId": "1", "encodedDataLength": 2048})

    res = network.get_requests(ctx, {})

    assert res.data["totalCaptured"] == 1
    summary = res.data["requests"][0]
    assert summary["status"] == 200
    assert summary["size"] == "2.00KB"
    assert summary["timing"] == "10.50ms"


def test_network_start_is_idempotent(ctx: ToolContext) -> None:
    network.start_monitoring(ctx, {})
    res = network.start_monitoring(ctx, {})

    assert "already active" in res.content[0].text
    assert len(_session(ctx).listeners["Network.requestWillBeSent"]) == 1


def test_network_stop_removes_listeners(ctx: ToolContext) -> None:
    network.start_monitoring(ctx, {})
    session = _session(ctx)
    session.emit("Network.requestWillBeSent", _request("1", "https://x.example/"))

    res = network.stop_monitoring(ctx, {})

    assert "Captured 1 requests" in res.content[0].text
    assert session.listeners["Network.requestWillBeSent"] == []
    assert session.methods()[-1] == "Network.disable"
    assert "not active" in network.get_requests(ctx, {}).content[0].text


def test_network_log_is_bounded(ctx: ToolContext) -> None:
    network.start_monitoring(ctx, {})
    session = _session(ctx)
    for i in range(network.MAX_REQUESTS + 3):
        session.emit("Network.requestWillBeSent", _request(str(i), f"https://x.example/{i}"))

    monitor = ctx.resources["network_monitor"]
    assert len(monitor.requests) == network.MAX_REQUESTS
    assert next(iter(monitor.requests)) == "3"


def test_har_export_with_bodies(ctx: ToolContext) -> None:
    network.start_monitoring(ctx, {})
    session = _session(ctx)
    session.responses["Network.getResponseBody"] = {"body": "{\"ok\": true}"}
    session.emit("Network.requestWillBeSent", _request("1", "https://x.example/api"))
    session.emit("Network.loadingFinished", {"requestId": "1", "encodedDataLength": 12})

    res = network.export_har(ctx, {"includeContent": True})

    log = res.data["log"]
    assert log["version"] == "1.2"
    entry = log["entries"][0]
    assert entry["request"]["headers"] == [{"name": "Accept", "value": "*/*"}]
    assert entry["response"]["content"]["text"] == '{"ok": true}'
    assert entry["timings"] == {"send": 0, "wait": 0, "receive": 0}


def test_har_export_without_data(ctx: ToolContext) -> None:
    assert "No network data to export" in network.export_har(ctx, {}).content[0].text


def test_websocket_frames(ctx: ToolContext) -> None:
    network.start_monitoring(ctx, {})
    session = _session(ctx)
    session.emit(
        "Network.webSocketFrameSent",
        {"requestId": "ws1", "timestamp": 1.0, "response": {"opcode": 1, "payloadData": "ping"}},
    )
    session.emit(
        "Network.webSocketFrameReceived",
        {"requestId": "ws1", "timestamp": 2.0, "response": {"opcode": 1, "payloadData": "pong!"}},
    )

    res = network.get_websocket_frames(ctx, {"requestId": "ws1"})

    assert [f["direction"] for f in res.data] == ["sent", "received"]
    assert res.data[1]["payloadLength"] == 5
    assert "No WebSocket frames" in network.get_websocket_frames(ctx, {"requestId": "other"}).content[0].text


def test_request_blocking_and_throttling(ctx: ToolContext) -> None:
    network.set_request_blocking(ctx, {"patterns": ["*.jpg"]})
    res = network.emulate_conditions(
        ctx, {"offline": False, "latency": 100, "downloadThroughput": -1, "uploadThroughput": 2048}
    )

    session = _session(ctx)
    assert ("Network.setBlockedURLs", {"urls": ["*.jpg"]}) in session.sent
    assert res.data == {"offline": False, "latency": "100ms", "download": "unlimited", "upload": "2.00 KB/s"}


# Security


def test_security_headers_prefer_http_then_meta() -> None:
    selected = security.select_security_headers(
        {
            "headers": {"strict-transport-security": "max-age=63072000"},
            "metaTags": {"content-security-policy": "default-src 'self'", "x-content-type-options": "nosniff"},
        }
    )

    assert selected["strict-transport-security"] == "max-age=63072000"
    assert selected["content-security-policy"] == "default-src 'self'"
    # Not a meta-deliverable header.
    assert selected["x-content-type-options"] == "Not set"


def test_certificate_info_only_for_https(ctx: ToolContext, page: FakePage) -> None:
    page.url = "http://x.example/"
    assert security.get_certificate_info(ctx, {}).content[0].text == "Certificate info only for HTTPS sites."

    page.url = "https://x.example/"
    page.evaluate_result = {"secureContext": True, "nextHopProtocol": "h2"}
    res = security.get_certificate_info(ctx, {})
    assert res.data["secure"] is True
    assert res.data["nextHopProtocol"] == "h2"


def test_mixed_content_detection(ctx: ToolContext, page: FakePage) -> None:
    page.url = "https://x.example/"
    page.evaluate_result = [{"url": "http://cdn.example/a.js", "type": "script"}]

    res = security.detect_mixed_content(ctx, {})

    assert res.data[0]["url"] == "http://cdn.example/a.js"


def test_csp_monitoring_lifecycle(ctx: ToolContext) -> None:
    security.start_csp_monitoring(ctx, {})
    session = _session(ctx)
    session.emit("Log.entryAdded", {"entry": {"source": "security", "text": "Refused to load", "timestamp": 0}})
    session.emit("Log.entryAdded", {"entry": {"source": "javascript", "text": "unrelated"}})

    res = security.get_csp_violations(ctx, {})
    assert [v["text"] for v in res.data] == ["Refused to load"]

    security.stop_csp_monitoring(ctx, {})
    assert session.listeners["Log.entryAdded"] == []
    assert security.get_csp_violations(ctx, {}).content[0].text == "CSP monitoring not active."


# Performance


def test_summarize_profile() -> None:
    profile = {
        "nodes": [
            {"callFrame": {"functionName": "", "url": ""}},
            {"callFrame": {"functionName": "render", "url": "https://x.example/app.js", "lineNumber": 10}},
        ],
        "samples": [1, 2, 2],
        "timeDeltas": [500, 1500],
    }

    summary = performance.summarize_profile(profile)

    assert summary["totalNodes"] == 2
    assert summary["totalSamples"] == 3
    assert summary["durationMs"] == "2.00"
    assert summary["topFunctions"] == [{"function": "render", "url": "https://x.example/app.js", "line": 10}]


def test_profile_start_stop(ctx: ToolContext) -> None:
    assert "not active" in performance.stop_profile(ctx, {}).content[0].text

    performance.start_profile(ctx, {})
    session = _session(ctx)
    session.responses["Profiler.stop"] = {"profile": {"nodes": [], "samples": [], "timeDeltas": []}}
    assert "already active" in performance.start_profile(ctx, {}).content[0].text

    res = performance.stop_profile(ctx, {})

    assert res.data["totalNodes"] == 0
    assert ("Profiler.setSamplingInterval", {"interval": 100}) in session.sent
    assert ctx.resources["profiler"].profiling is False


def test_heap_snapshot_collects_chunks(ctx: ToolContext) -> None:
    session = _session(ctx)

    def take(_params: dict | None) -> dict:
        session.emit("HeapProfiler.addHeapSnapshotChunk", {"chunk": "a" * 1024})
        session.emit("HeapProfiler.addHeapSnapshotChunk", {"chunk": "b" * 1024})
        return {}

    session.responses["HeapProfiler.takeHeapSnapshot"] = take

    res = performance.take_heap_snapshot(ctx, {})

    assert res.data == {"size": 2048, "chunks": 2}
    assert session.listeners["HeapProfiler.addHeapSnapshotChunk"] == []


def test_heap_usage(ctx: ToolContext) -> None:
    _session(ctx).responses["Runtime.getHeapUsage"] = {"usedSize": 1024 * 1024, "totalSize": 4 * 1024 * 1024}

    res = performance.get_heap_usage(ctx, {})

    assert res.data["usedSizeMB"] == "1.00"
    assert res.data["usagePercent"] == "25.00"


# Storage


def test_indexeddb_lists_databases(ctx: ToolContext, page: FakePage) -> None:
    page.evaluate_result = "https://x.example"
    _session(ctx).responses["IndexedDB.requestDatabaseNames"] = {"databaseNames": ["app"]}

    res = storage.get_indexeddb(ctx, {})

    assert res.data == {"origin": "https://x.example", "databases": ["app"]}


def test_delete_missing_cache_lists_available(ctx: ToolContext, page: FakePage) -> None:
    page.evaluate_result = "https://x.example"
    session = _session(ctx)
    session.responses["CacheStorage.requestCacheNames"] = {"caches": [{"cacheName": "v1", "cacheId": "c1"}]}

    res = storage.delete_cache(ctx, {"cacheName": "v2"})

    assert 'Cache "v2" not found' in res.content[0].text
    assert "  - v1" in res.content[0].text
    assert "CacheStorage.deleteCache" not in session.methods()

    storage.delete_cache(ctx, {"cacheName": "v1"})
    assert ("CacheStorage.deleteCache", {"cacheId": "c1"}) in session.sent


def test_service_workers_listing(ctx: ToolContext, page: FakePage) -> None:
    page.evaluate_result = {"supported": True, "registrations": []}
    assert "No service workers found" in storage.get_service_workers(ctx, {}).content[0].text

    page.evaluate_result = {"supported": False}
    assert "not supported" in storage.get_service_workers(ctx, {}).content[0].text


# Media


def test_control_media_validates_action(ctx: ToolContext) -> None:
    with pytest.raises(SmartToolError, match="Unknown media action"):
        media.control_media(ctx, {"selector": "video", "action": "rewind"})

    with pytest.raises(SmartToolError, match="Seek value required"):
        media.control_media(ctx, {"selector": "video", "action": "seek"})


def test_control_media_page_error_is_error_result(ctx: ToolContext, page: FakePage) -> None:
    page.evaluate_result = {"error": "Element not found"}

    res = media.control_media(ctx, {"selector": "#missing", "action": "play"})

    assert res.is_error is True
    assert "Element not found" in res.content[0].text


def test_audio_analysis_clamps_duration(ctx: ToolContext, page: FakePage) -> None:
    page.evaluate_result = {"isSilent": True}

    media.audio_analysis(ctx, {"durationMs": 999_999})
    assert page.calls[-1][2]["duration"] == media.MAX_ANALYSIS_MS

    media.audio_analysis(ctx, {"durationMs": 5})
    assert page.calls[-1][2]["duration"] == 100


# Mouse / keyboard


def test_mouse_click_without_coordinates_presses_in_place(ctx: ToolContext, page: FakePage) -> None:
    res = mouse.mouse_click(ctx, {"clickCount": 2})

    assert res.content[0].text == "Clicked at current mouse position"
    assert [c[0] for c in page.mouse.calls] == ["down", "up", "down", "up"]


def test_mouse_click_rejects_unknown_button(ctx: ToolContext) -> None:
    with pytest.raises(SmartToolError, match="Unknown button"):
        mouse.mouse_click(ctx, {"button": "side"})


def test_mouse_drag_sequence(ctx: ToolContext, page: FakePage) -> None:
    mouse.mouse_drag(ctx, {"fromX": 1, "fromY": 2, "toX": 30, "toY": 40})

    assert page.mouse.calls == [("move", 1, 2), ("down", {}), ("move", 30, 40), ("up", {})]


def test_press_key(ctx: ToolContext, page: FakePage) -> None:
    keyboard.press_key(ctx, {"key": "Enter"})
    assert page.keyboard.pressed == ["Enter"]


# System


def test_health_check_reports_mode(ctx: ToolContext) -> None:
    res = system.health_check(ctx, {})

    assert res.content[0].text.startswith("Browser automation functional (attach mode)")
    assert res.data["state"] == "attached"
    assert res.data["tools"] == len(ctx.registry)


def test_resize_and_wait_for_selector(ctx: ToolContext, page: FakePage) -> None:
    system.resize_window(ctx, {"width": 800, "height": 600})
    system.wait_for_selector(ctx, {"selector": "#ready"})

    assert page.viewport_size == {"width": 800, "height": 600}
    assert page.calls[-1] == ("wait_for_selector", "#ready", {"timeout": 30000})


def test_wait_is_capped_and_uses_page_timer(ctx: ToolContext, page: FakePage) -> None:
    res = system.wait(ctx, {"ms": 10_000_000})

    assert page.calls[-1] == ("wait_for_timeout", 300000)
    assert res.content[0].text == "Waited for 300000ms"


def test_trace_recording_uses_given_path(ctx: ToolContext, handle: FakeHandle, tmp_path) -> None:  # noqa: ANN001
    target = str(tmp_path / "trace.zip")

    system.start_recording(ctx, {"path": target})
    res = system.stop_recording(ctx, {})

    assert handle.context.tracing.started == {"screenshots": True, "snapshots": True}
    assert handle.context.tracing.stopped_path == target
    assert res.data == {"path": target}
