"""
Performance profiling tools (performance module).

CPU profiling, heap usage and snapshots, runtime metrics, web vitals and code
coverage, all through the CDP session of the active page.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..server.types import ToolContext, ToolResult
from .base import int_arg, tool

logger = logging.getLogger("mcp.browser.tools.performance")

DEFAULT_SAMPLE_INTERVAL_US = 100
TOP_FUNCTIONS = 15
TOP_FILES = 10

DEFINITIONS: list[dict[str, Any]] = [
    tool(
        "browser_perf_start_profile",
        "Start CPU profiling to track JavaScript execution (see browser_docs)",
        {"sampleInterval": {"type": "number", "description": "Microseconds between samples (default: 100)"}},
    ),
    tool("browser_perf_stop_profile", "Stop CPU profiling and get profile data (see browser_docs)"),
    tool(
        "browser_perf_take_heap_snapshot",
        "Capture heap snapshot for memory analysis (see browser_docs)",
        {"reportProgress": {"type": "boolean", "description": "Report progress events (default: false)"}},
    ),
    tool("browser_perf_get_heap_usage", "Get current JavaScript heap usage statistics (see browser_docs)"),
    tool(
        "browser_perf_get_metrics",
        "Get runtime performance metrics (DOM nodes, event listeners, JS heap) (see browser_docs)",
    ),
    tool(
        "browser_perf_get_performance_metrics",
        "Get web vitals and navigation timing (FCP, LCP, CLS, TTFB) (see browser_docs)",
    ),
    tool(
        "browser_perf_start_coverage",
        "Start tracking CSS and JavaScript code coverage (see browser_docs)",
        {"resetOnNavigation": {"type": "boolean", "description": "Reset coverage on navigation (default: true)"}},
    ),
    tool("browser_perf_stop_coverage", "Stop coverage and get results showing used vs unused code (see browser_docs)"),
]

_WEB_VITALS_JS = """() => {
    const result = { navigation: {}, paint: {}, webVitals: {} };
    const nav = performance.getEntriesByType('navigation')[0];
    if (nav) {
        result.navigation = {
            domContentLoaded: nav.domContentLoadedEventEnd,
            loadComplete: nav.loadEventEnd,
            domInteractive: nav.domInteractive,
            ttfb: nav.responseStart
        };
    }
    performance.getEntriesByType('paint').forEach(entry => { result.paint[entry.name] = entry.startTime; });
    if (result.paint['first-contentful-paint'] !== undefined) {
        result.webVitals.fcp = result.paint['first-contentful-paint'];
    }
    const lcp = performance.getEntriesByType('largest-contentful-paint');
    if (lcp && lcp.length > 0) result.webVitals.lcp = lcp[lcp.length - 1].startTime;
    const shifts = performance.getEntriesByType('layout-shift');
    if (shifts) {
        result.webVitals.cls = shifts.filter(e => !e.hadRecentInput).reduce((sum, e) => sum + e.value, 0);
    }
    return result;
}"""


@dataclass
class ProfilerState:
    profiling: bool = False
    coverage: bool = False


def _state(ctx: ToolContext) -> ProfilerState:
    return ctx.resource("profiler", ProfilerState)


def _mb(value: float) -> str:
    return f"{value / 1024 / 1024:.2f}"


def start_profile(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    state = _state(ctx)
    if state.profiling:
        return ToolResult.text("CPU profiling is already active.\n\nUse browser_perf_stop_profile to get results first.")
    interval = int_arg(args, "sampleInterval", DEFAULT_SAMPLE_INTERVAL_US, tool="browser_perf_start_profile")
    session = ctx.cdp.get_session()
    session.send("Profiler.enable")
    session.send("Profiler.setSamplingInterval", {"interval": interval})
    session.send("Profiler.start")
    state.profiling = True
    logger.info("Started CPU profiling with %dus sample interval", interval)
    return ToolResult.text(
        f"CPU profiling started with sample interval: {interval}us\n\n"
        "Profiling JavaScript execution...\nUse browser_perf_stop_profile to get results."
    )


def summarize_profile(profile: dict[str, Any]) -> dict[str, Any]:
    nodes = profile.get("nodes", [])
    total = sum(profile.get("timeDeltas") or [])
    top = [
        {
            "function": n["callFrame"].get("functionName") or "(anonymous)",
            "url": n["callFrame"].get("url") or "(internal)",
            "line": n["callFrame"].get("lineNumber"),
        }
        for n in nodes
        if n.get("callFrame", {}).get("functionName")
    ][:TOP_FUNCTIONS]
    return {
        "totalNodes": len(nodes),
        "totalSamples": len(profile.get("samples") or []),
        "durationMicroseconds": total,
        "durationMs": f"{total / 1000:.2f}",
        "topFunctions": top,
    }


def stop_profile(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    state = _state(ctx)
    if not state.profiling:
        return ToolResult.text("CPU profiling is not active.\n\nUse browser_perf_start_profile to start profiling first.")
    session = ctx.cdp.get_session()
    try:
        profile = session.send("Profiler.stop")["profile"]
        session.send("Profiler.disable")
    finally:
        state.profiling = False
    logger.info("Stopped CPU profiling")
    summary = summarize_profile(profile)
    return ToolResult.json(summary, title="CPU Profile Results:")


def take_heap_snapshot(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    session = ctx.cdp.get_session()
    report_progress = bool(args.get("reportProgress", False))
    chunks: list[str] = []

    def on_chunk(params: dict[str, Any]) -> None:
        chunks.append(params.get("chunk", ""))

    def on_progress(params: dict[str, Any]) -> None:
        logger.debug("Heap snapshot progress: %s/%s", params.get("done"), params.get("total"))

    logger.info("Taking heap snapshot...")
    session.on("HeapProfiler.addHeapSnapshotChunk", on_chunk)
    if report_progress:
        session.on("HeapProfiler.reportHeapSnapshotProgress", on_progress)
    try:
        session.send("HeapProfiler.takeHeapSnapshot", {"reportProgress": report_progress})
    finally:
        session.remove_listener("HeapProfiler.addHeapSnapshotChunk", on_chunk)
        if report_progress:
            session.remove_listener("HeapProfiler.reportHeapSnapshotProgress", on_progress)

    size = sum(len(c) for c in chunks)
    logger.info("Heap snapshot complete: %d bytes in %d chunks", size, len(chunks))
    return ToolResult.text(
        f"Heap Snapshot Captured\n\nSize: {size / 1024:.2f} KB\nChunks: {len(chunks)}\n\n"
        "Note: Snapshot data is too large to display in full. Use Chrome DevTools to analyze heap snapshots in detail.",
        data={"size": size, "chunks": len(chunks)},
    )


def get_heap_usage(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    usage = ctx.cdp.get_session().send("Runtime.getHeapUsage")
    used, total = usage.get("usedSize", 0), usage.get("totalSize", 0)
    info = {
        "usedSize": used,
        "usedSizeMB": _mb(used),
        "totalSize": total,
        "totalSizeMB": _mb(total),
        "usagePercent": f"{used / total * 100:.2f}" if total else "0.00",
    }
    if "limit" in usage:
        info["limit"] = usage["limit"]
        info["limitMB"] = _mb(usage["limit"])
    return ToolResult.json(info, title="JavaScript Heap Usage:")


def get_metrics(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    session = ctx.cdp.get_session()
    session.send("Performance.enable")
    try:
        metrics = session.send("Performance.getMetrics").get("metrics", [])
    finally:
        session.send("Performance.disable")
    formatted = [{"name": m["name"], "value": m["value"]} for m in metrics]
    return ToolResult.json(formatted, title="Runtime Performance Metrics:")


def get_web_vitals(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    metrics = ctx.page().evaluate(_WEB_VITALS_JS)
    return ToolResult.json(metrics, title="Web Performance Metrics:")


def start_coverage(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    state = _state(ctx)
    if state.coverage:
        return ToolResult.text("Code coverage is already active.\n\nUse browser_perf_stop_coverage to get results first.")
    reset_on_navigation = args.get("resetOnNavigation") is not False
    session = ctx.cdp.get_session()
    session.send("Profiler.enable")
    session.send("Profiler.startPreciseCoverage", {"callCount": False, "detailed": True})
    session.send("DOM.enable")
    session.send("CSS.enable")
    session.send("CSS.startRuleUsageTracking")
    state.coverage = True
    logger.info("Started code coverage tracking")
    return ToolResult.text(
        f"Code coverage started for CSS and JavaScript\n\nResetOnNavigation: {str(reset_on_navigation).lower()}\n\n"
        "Use browser_perf_stop_coverage to get results."
    )


def _js_file_coverage(entry: dict[str, Any]) -> dict[str, Any]:
    ranges = [r for fn in entry.get("functions", []) for r in fn.get("ranges", [])]
    total = sum(r["endOffset"] - r["startOffset"] for r in ranges)
    used = sum(r["endOffset"] - r["startOffset"] for r in ranges if r.get("count", 0) > 0)
    return {
        "url": entry.get("url"),
        "usedBytes": used,
        "totalBytes": total,
        "coverage": f"{used / total * 100:.2f}%" if total else "N/A",
    }


def stop_coverage(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    state = _state(ctx)
    if not state.coverage:
        return ToolResult.text("Code coverage is not active.\n\nUse browser_perf_start_coverage to start tracking first.")
    session = ctx.cdp.get_session()
    try:
        js = session.send("Profiler.takePreciseCoverage").get("result", [])
        session.send("Profiler.stopPreciseCoverage")
        session.send("Profiler.disable")
        css = session.send("CSS.stopRuleUsageTracking").get("ruleUsage", [])
        session.send("CSS.disable")
        session.send("DOM.disable")
    finally:
        state.coverage = False
    logger.info("Stopped code coverage tracking")
    result = {
        "javascript": {"filesAnalyzed": len(js), "topFiles": [_js_file_coverage(e) for e in js[:TOP_FILES]]},
        "css": {
            "rulesAnalyzed": len(css),
            "usedRules": sum(1 for r in css if r.get("used")),
            "topRules": [
                {k: r.get(k) for k in ("used", "styleSheetId", "startOffset", "endOffset")} for r in css[:5]
            ],
        },
    }
    return ToolResult.json(result, title="Code Coverage Results:")


HANDLERS = {
    "browser_perf_start_profile": start_profile,
    "browser_perf_stop_profile": stop_profile,
    "browser_perf_take_heap_snapshot": take_heap_snapshot,
    "browser_perf_get_heap_usage": get_heap_usage,
    "browser_perf_get_metrics": get_metrics,
    "browser_perf_get_performance_metrics": get_web_vitals,
    "browser_perf_start_coverage": start_coverage,
    "browser_perf_stop_coverage": stop_coverage,
}
