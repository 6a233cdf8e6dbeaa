"""Security inspection tools (security module)."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from ..server.types import ToolContext, ToolResult
from .base import tool

logger = logging.getLogger("mcp.browser.tools.security")

MAX_MIXED_CONTENT = 20

DEFINITIONS: list[dict[str, Any]] = [
    tool("browser_sec_get_security_headers", "Inspect security-related HTTP headers of the current page (see browser_docs)"),
    tool("browser_sec_get_certificate_info", "Get TLS/SSL certificate details for HTTPS sites (see browser_docs)"),
    tool("browser_sec_detect_mixed_content", "Detect HTTP resources loaded by an HTTPS page (see browser_docs)"),
    tool("browser_sec_start_csp_monitoring", "Monitor Content Security Policy violations (see browser_docs)"),
    tool("browser_sec_get_csp_violations", "Get captured CSP violations (see browser_docs)"),
    tool("browser_sec_stop_csp_monitoring", "Stop CSP monitoring and clear violations (see browser_docs)"),
]

SECURITY_HEADERS = (
    "content-security-policy",
    "strict-transport-security",
    "x-frame-options",
    "x-content-type-options",
    "referrer-policy",
    "permissions-policy",
)
# Headers that may also be delivered through <meta http-equiv>.
META_FALLBACK = {"content-security-policy", "x-frame-options", "referrer-policy"}

_HEADERS_JS = """async () => {
    const result = { headers: null, metaTags: {}, protocol: window.location.protocol };
    if (window.location.protocol.startsWith('http')) {
        try {
            const res = await fetch(window.location.href, { method: 'HEAD' });
            const headers = {};
            for (const [key, value] of res.headers.entries()) headers[key] = value;
            result.headers = headers;
        } catch (e) { }
    }
    document.querySelectorAll('meta[http-equiv]').forEach(tag => {
        const name = (tag.getAttribute('http-equiv') || '').toLowerCase();
        const content = tag.getAttribute('content');
        if (name && content) result.metaTags[name] = content;
    });
    return result;
}"""

_MIXED_CONTENT_JS = """() => performance.getEntriesByType('resource')
    .filter(entry => entry.name.startsWith('http://'))
    .map(entry => ({ url: entry.name, type: entry.initiatorType }))"""

_CERTIFICATE_JS = """async () => {
    const nav = performance.getEntriesByType('navigation')[0];
    return {
        secureContext: window.isSecureContext,
        nextHopProtocol: nav ? nav.nextHopProtocol : null
    };
}"""


def select_security_headers(data: dict[str, Any]) -> dict[str, str]:
    headers = data.get("headers") or {}
    meta = data.get("metaTags") or {}
    selected = {}
    for name in SECURITY_HEADERS:
        value = headers.get(name)
        if not value and name in META_FALLBACK:
            value = meta.get(name)
        selected[name] = value or "Not set"
    return selected


def get_security_headers(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    data = ctx.page().evaluate(_HEADERS_JS)
    return ToolResult.json(select_security_headers(data), title="Security Headers:")


def get_certificate_info(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    page = ctx.page()
    url = page.url
    if not url.startswith("https://"):
        return ToolResult.text("Certificate info only for HTTPS sites.")
    session = ctx.cdp.get_session()
    session.send("Security.enable")
    try:
        details = page.evaluate(_CERTIFICATE_JS)
    finally:
        session.send("Security.disable")
    info = {"url": url, "protocol": "HTTPS", "secure": bool(details.get("secureContext")), **details}
    return ToolResult.json(info, title="Certificate Information:")


def detect_mixed_content(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    page = ctx.page()
    if not page.url.startswith("https://"):
        return ToolResult.text("Mixed content detection only for HTTPS.")
    issues = page.evaluate(_MIXED_CONTENT_JS)
    if not issues:
        return ToolResult.text("No mixed content detected.", data=[])
    return ToolResult.json(issues[:MAX_MIXED_CONTENT], title="Mixed Content Detected:")


class CSPMonitor:
    """Collects security-sourced console log entries from one CDP session."""

    def __init__(self) -> None:
        self.violations: list[dict[str, Any]] = []
        self.session: Any = None

    @property
    def active(self) -> bool:
        return self.session is not None

    def _on_entry(self, params: dict[str, Any]) -> None:
        entry = params.get("entry", {})
        text = entry.get("text") or ""
        if entry.get("source") != "security" and "CSP" not in text:
            return
        stamp = entry.get("timestamp") or 0
        self.violations.append(
            {
                "timestamp": datetime.fromtimestamp(stamp / 1000, tz=timezone.utc).isoformat(),
                "text": text,
                "url": entry.get("url"),
            }
        )

    def start(self, session: Any) -> None:
        self.violations = []
        session.send("Log.enable")
        session.on("Log.entryAdded", self._on_entry)
        self.session = session

    def stop(self) -> None:
        session, self.session = self.session, None
        self.violations = []
        if session is None:
            return
        try:
            session.remove_listener("Log.entryAdded", self._on_entry)
            session.send("Log.disable")
        except Exception as exc:  # noqa: BLE001
            logger.info("CSP monitor teardown failed: %s", exc)


def _csp(ctx: ToolContext) -> CSPMonitor:
    return ctx.resource("csp_monitor", CSPMonitor)


def start_csp_monitoring(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    monitor = _csp(ctx)
    if monitor.active:
        return ToolResult.text("CSP monitoring already active.")
    monitor.start(ctx.cdp.get_session())
    logger.info("CSP monitoring started")
    return ToolResult.text("CSP monitoring started.")


def get_csp_violations(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    monitor = _csp(ctx)
    if not monitor.active:
        return ToolResult.text("CSP monitoring not active.")
    if not monitor.violations:
        return ToolResult.text("No CSP violations detected.", data=[])
    return ToolResult.json(list(monitor.violations), title="CSP Violations:")


def stop_csp_monitoring(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    monitor = _csp(ctx)
    if not monitor.active:
        return ToolResult.text("CSP monitoring not active.")
    monitor.stop()
    return ToolResult.text("CSP monitoring stopped.")


HANDLERS = {
    "browser_sec_get_security_headers": get_security_headers,
    "browser_sec_get_certificate_info": get_certificate_info,
    "browser_sec_detect_mixed_content": detect_mixed_content,
    "browser_sec_start_csp_monitoring": start_csp_monitoring,
    "browser_sec_get_csp_violations": get_csp_violations,
    "browser_sec_stop_csp_monitoring": stop_csp_monitoring,
}
