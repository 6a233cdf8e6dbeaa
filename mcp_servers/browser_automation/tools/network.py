"""
Network analysis tools (network module), driven by the page's CDP session.

Request monitoring, HAR export, WebSocket frame inspection, request blocking
and throttling. The monitor keeps the listener functions it registered so it
can remove exactly those from the session it registered them on.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any

from ..server.contract import SERVER_VERSION
from ..server.types import ToolContext, ToolResult
from .base import require_arg, tool, truncate

logger = logging.getLogger("mcp.browser.tools.network")

MAX_REQUESTS = 500
SHOWN_REQUESTS = 50
SHOWN_FRAMES = 20
HAR_DISPLAY_LIMIT = 10000

DEFINITIONS: list[dict[str, Any]] = [
    tool(
        "browser_net_start_monitoring",
        "Start monitoring network requests with detailed timing (see browser_docs)",
        {
            "patterns": {
                "type": "array",
                "description": "URL substrings to record (default: all)",
                "items": {"type": "string"},
            }
        },
    ),
    tool(
        "browser_net_get_requests",
        "Get captured network requests with timing breakdown (see browser_docs)",
        {"filter": {"type": "string", "description": "Filter by URL substring"}},
    ),
    tool("browser_net_stop_monitoring", "Stop network monitoring and clear request log (see browser_docs)"),
    tool(
        "browser_net_export_har",
        "Export full network activity log in HAR format (see browser_docs)",
        {"includeContent": {"type": "boolean", "description": "Include response bodies (default: false)"}},
    ),
    tool(
        "browser_net_get_websocket_frames",
        "Get WebSocket frames for inspecting real-time communication (see browser_docs)",
        {"requestId": {"type": "string", "description": "Request ID from network monitoring"}},
        ["requestId"],
    ),
    tool(
        "browser_net_set_request_blocking",
        "Block requests matching URL patterns (see browser_docs)",
        {
            "patterns": {
                "type": "array",
                "description": 'URL patterns to block (e.g., ["*.jpg", "*analytics*"])',
                "items": {"type": "string"},
            }
        },
        ["patterns"],
    ),
    tool(
        "browser_net_emulate_conditions",
        "Emulate network conditions (throttling) (see browser_docs)",
        {
            "offline": {"type": "boolean", "description": "Emulate offline mode"},
            "latency": {"type": "number", "description": "Round-trip latency in ms"},
            "downloadThroughput": {"type": "number", "description": "Download speed in bytes/second (-1 for unlimited)"},
            "uploadThroughput": {"type": "number", "description": "Upload speed in bytes/second (-1 for unlimited)"},
        },
        ["offline", "latency", "downloadThroughput", "uploadThroughput"],
    ),
]


def _iso(timestamp: float | None) -> str:
    return datetime.fromtimestamp(timestamp or 0, tz=timezone.utc).isoformat()


def _header_list(headers: dict[str, Any] | None) -> list[dict[str, Any]]:
    return [{"name": k, "value": v} for k, v in (headers or {}).items()]


class NetworkMonitor:
    """Request log fed by Network.* events of one CDP session."""

    def __init__(self) -> None:
        self.requests: OrderedDict[str, dict[str, Any]] = OrderedDict()
        self.frames: dict[str, list[dict[str, Any]]] = {}
        self.patterns: list[str] = []
        self.session: Any = None
        self.content: dict[str, str] = {}
        self._listeners = {
            "Network.requestWillBeSent": self._on_request,
            "Network.responseReceived": self._on_response,
            "Network.loadingFinished": self._on_finished,
            "Network.loadingFailed": self._on_failed,
            "Network.webSocketFrameSent": self._on_frame_sent,
            "Network.webSocketFrameReceived": self._on_frame_received,
        }

    @property
    def active(self) -> bool:
        return self.session is not None

    def start(self, session: Any, patterns: list[str] | None = None) -> None:
        self.requests.clear()
        self.frames.clear()
        self.content.clear()
        self.patterns = list(patterns or [])
        session.send("Network.enable")
        for event, listener in self._listeners.items():
            session.on(event, listener)
        self.session = session

    def stop(self) -> tuple[int, int]:
        counts = (len(self.requests), len(self.frames))
        session, self.session = self.session, None
        if session is not None:
            for event, listener in self._listeners.items():
                try:
                    session.remove_listener(event, listener)
                except Exception as exc:  # noqa: BLE001
                    logger.debug("remove_listener %s failed: %s", event, exc)
            try:
                session.send("Network.disable")
            except Exception as exc:  # noqa: BLE001
                logger.info("Network.disable failed: %s", exc)
        self.requests.clear()
        self.frames.clear()
        self.content.clear()
        return counts

    # ── event handlers ───────────────────────────────────────────────────────

    def _on_request(self, params: dict[str, Any]) -> None:
        request = params.get("request", {})
        url = request.get("url", "")
        if self.patterns and not any(p in url for p in self.patterns):
            return
        if len(self.requests) >= MAX_REQUESTS:
            self.requests.popitem(last=False)
        self.requests[params["requestId"]] = {
            "requestId": params["requestId"],
            "url": url,
            "method": request.get("method"),
            "headers": request.get("headers", {}),
            "timestamp": params.get("wallTime") or params.get("timestamp"),
            "initiator": (params.get("initiator") or {}).get("type"),
            "type": params.get("type"),
        }

    def _on_response(self, params: dict[str, Any]) -> None:
        req = self.requests.get(params.get("requestId"))
        if req is None:
            return
        response = params.get("response", {})
        req.update(
            status=response.get("status"),
            statusText=response.get("statusText"),
            mimeType=response.get("mimeType"),
            responseHeaders=response.get("headers", {}),
            timing=response.get("timing"),
            fromCache=bool(response.get("fromDiskCache") or response.get("fromServiceWorker")),
        )

    def _on_finished(self, params: dict[str, Any]) -> None:
        req = self.requests.get(params.get("requestId"))
        if req is not None:
            req["encodedDataLength"] = params.get("encodedDataLength")
            req["finished"] = True

    def _on_failed(self, params: dict[str, Any]) -> None:
        req = self.requests.get(params.get("requestId"))
        if req is not None:
            req.update(failed=True, errorText=params.get("errorText"), canceled=params.get("canceled"))

    def _frame(self, params: dict[str, Any], direction: str) -> None:
        response = params.get("response", {})
        self.frames.setdefault(params["requestId"], []).append(
            {
                "direction": direction,
                "opcode": response.get("opcode"),
                "mask": response.get("mask"),
                "payloadData": response.get("payloadData", ""),
                "timestamp": params.get("timestamp"),
            }
        )

    def _on_frame_sent(self, params: dict[str, Any]) -> None:
        self._frame(params, "sent")

    def _on_frame_received(self, params: dict[str, Any]) -> None:
        self._frame(params, "received")

    # ── views ────────────────────────────────────────────────────────────────

    def fetch_bodies(self) -> None:
        for request_id, req in self.requests.items():
            if request_id in self.content or not req.get("finished"):
                continue
            try:
                body = self.session.send("Network.getResponseBody", {"requestId": request_id})
            except Exception as exc:  # noqa: BLE001
                logger.debug("getResponseBody %s failed: %s", request_id, exc)
                continue
            self.content[request_id] = body.get("body", "")

    def har(self) -> dict[str, Any]:
        entries = []
        for r in self.requests.values():
            timing = r.get("timing")
            size = r.get("encodedDataLength") or 0
            content: dict[str, Any] = {"size": size, "mimeType": r.get("mimeType") or "application/octet-stream"}
            if r["requestId"] in self.content:
                content["text"] = self.content[r["requestId"]]
            entries.append(
                {
                    "startedDateTime": _iso(r.get("timestamp")),
                    "time": (timing["receiveHeadersEnd"] - timing["sendStart"]) if timing else 0,
                    "request": {
                        "method": r.get("method"),
                        "url": r["url"],
                        "httpVersion": "HTTP/1.1",
                        "headers": _header_list(r.get("headers")),
                        "queryString": [],
                        "headersSize": -1,
                        "bodySize": -1,
                    },
                    "response": {
                        "status": r.get("status") or 0,
                        "statusText": r.get("statusText") or "",
                        "httpVersion": "HTTP/1.1",
                        "headers": _header_list(r.get("responseHeaders")),
                        "content": content,
                        "redirectURL": "",
                        "headersSize": -1,
                        "bodySize": size,
                    },
                    "cache": {"beforeRequest": None, "afterRequest": {} if r.get("fromCache") else None},
                    "timings": {
                        "send": timing["sendEnd"] - timing["sendStart"],
                        "wait": timing["receiveHeadersEnd"] - timing["sendEnd"],
                        "receive": 0,
                    }
                    if timing
                    else {"send": 0, "wait": 0, "receive": 0},
                }
            )
        return {
            "log": {
                "version": "1.2",
                "creator": {"name": "Browser MCP Server", "version": SERVER_VERSION},
                "pages": [],
                "entries": entries,
            }
        }


def _monitor(ctx: ToolContext) -> NetworkMonitor:
    return ctx.resource("network_monitor", NetworkMonitor)


def _summarize(r: dict[str, Any]) -> dict[str, Any]:
    timing = r.get("timing")
    size = r.get("encodedDataLength")
    return {
        "requestId": r["requestId"],
        "method": r.get("method"),
        "url": truncate(r["url"]),
        "status": r.get("status") or "pending",
        "type": r.get("type"),
        "size": f"{size / 1024:.2f}KB" if size else "unknown",
        "timing": f"{timing['receiveHeadersEnd'] - timing['sendStart']:.2f}ms" if timing else "N/A",
        "failed": r.get("failed", False),
        "fromCache": r.get("fromCache", False),
    }


def start_monitoring(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    monitor = _monitor(ctx)
    if monitor.active:
        return ToolResult.text(
            "Network monitoring is already active.\n\n"
            "Use browser_net_stop_monitoring to stop first, or browser_net_get_requests to view captured data."
        )
    patterns = list(args.get("patterns") or [])
    monitor.start(ctx.cdp.get_session(), patterns)
    logger.info("Started network monitoring%s", " with filters" if patterns else "")
    pattern_line = f"Patterns: {', '.join(patterns)}\n" if patterns else ""
    return ToolResult.text(
        f"Network monitoring started\n\n{pattern_line}Capturing network requests...\n\n"
        f"Use browser_net_get_requests to view captured requests.\nLimit: {MAX_REQUESTS} requests max"
    )


def get_requests(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    monitor = _monitor(ctx)
    if not monitor.active:
        return ToolResult.text(
            "Network monitoring is not active.\n\nUse browser_net_start_monitoring to start capturing requests first."
        )
    needle = args.get("filter") or ""
    captured = list(monitor.requests.values())
    filtered = [r for r in captured if needle in r["url"]] if needle else captured
    if not filtered:
        filter_line = f'Filter: "{needle}"\n' if needle else ""
        return ToolResult.text(
            f"No network requests captured yet.\n\n{filter_line}Monitoring is active - requests will appear as they occur."
        )
    summary = {
        "totalCaptured": len(captured),
        "filtered": len(filtered),
        "requests": [_summarize(r) for r in filtered[:SHOWN_REQUESTS]],
    }
    return ToolResult.json(
        summary, title=f"Network Requests (showing {min(SHOWN_REQUESTS, len(filtered))} of {len(filtered)}):"
    )


def stop_monitoring(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    monitor = _monitor(ctx)
    if not monitor.active:
        return ToolResult.text("Network monitoring is not active.")
    count, ws_count = monitor.stop()
    logger.info("Stopped network monitoring")
    return ToolResult.text(
        f"Network monitoring stopped\n\nCaptured {count} requests and {ws_count} WebSocket connections.\n"
        "Data has been cleared."
    )


def export_har(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    monitor = _monitor(ctx)
    if not monitor.active or not monitor.requests:
        return ToolResult.text(
            "No network data to export.\n\n"
            "Start monitoring with browser_net_start_monitoring and navigate to capture requests first."
        )
    if args.get("includeContent"):
        monitor.fetch_bodies()
    har = monitor.har()
    entries = len(har["log"]["entries"])
    logger.info("Exported HAR with %d entries", entries)
    result = ToolResult.json(har, title="HAR Export:")
    text = result.content[0].text or ""
    if len(text) > HAR_DISPLAY_LIMIT:
        result.content[0].text = (
            text[:HAR_DISPLAY_LIMIT] + f"...\n\nNote: Truncated for display. Full HAR contains {entries} entries."
        )
    return result


def get_websocket_frames(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    request_id = require_arg(args, "requestId", tool="browser_net_get_websocket_frames")
    frames = _monitor(ctx).frames.get(request_id)
    if not frames:
        return ToolResult.text(
            f"No WebSocket frames found for request ID: {request_id}\n\n"
            "Make sure:\n1. Network monitoring is active\n2. The request ID is correct\n"
            "3. WebSocket connection has exchanged frames"
        )
    summary = [
        {
            "direction": f["direction"],
            "opcode": f["opcode"],
            "payloadLength": len(f["payloadData"] or ""),
            "payload": (f["payloadData"] or "")[:100],
            "timestamp": _iso(f["timestamp"]),
        }
        for f in frames[:SHOWN_FRAMES]
    ]
    return ToolResult.json(summary, title=f"WebSocket Frames (showing {min(SHOWN_FRAMES, len(frames))} of {len(frames)}):")


def set_request_blocking(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    patterns = list(require_arg(args, "patterns", tool="browser_net_set_request_blocking"))
    session = ctx.cdp.get_session()
    session.send("Network.enable")
    session.send("Network.setBlockedURLs", {"urls": patterns})
    logger.info("Set request blocking for %d patterns", len(patterns))
    if not patterns:
        return ToolResult.text("Request blocking cleared.")
    listing = "\n".join(f"  - {p}" for p in patterns)
    return ToolResult.text(
        f"Request blocking enabled\n\nBlocked patterns:\n{listing}\n\nRequests matching these patterns will be blocked."
    )


def _speed(value: float) -> str:
    return "unlimited" if value == -1 else f"{value / 1024:.2f} KB/s"


def emulate_conditions(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    params = {
        key: require_arg(args, key, tool="browser_net_emulate_conditions")
        for key in ("offline", "latency", "downloadThroughput", "uploadThroughput")
    }
    session = ctx.cdp.get_session()
    session.send("Network.enable")
    session.send("Network.emulateNetworkConditions", params)
    logger.info("Network conditions set: offline=%s, latency=%sms", params["offline"], params["latency"])
    conditions = {
        "offline": params["offline"],
        "latency": f"{params['latency']}ms",
        "download": _speed(params["downloadThroughput"]),
        "upload": _speed(params["uploadThroughput"]),
    }
    return ToolResult.json(conditions, title="Network conditions applied:")


HANDLERS = {
    "browser_net_start_monitoring": start_monitoring,
    "browser_net_get_requests": get_requests,
    "browser_net_stop_monitoring": stop_monitoring,
    "browser_net_export_har": export_har,
    "browser_net_get_websocket_frames": get_websocket_frames,
    "browser_net_set_request_blocking": set_request_blocking,
    "browser_net_emulate_conditions": emulate_conditions,
}
