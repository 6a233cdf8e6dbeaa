"""
Browser automation tool provider units, organized by domain.

Each unit declares its tools and handlers; units are imported lazily by the
registry (see server/modules.py for which module owns which unit):
- base: SmartToolError, declaration builders, argument helpers
- navigation: goto (core), reload/back/forward
- interaction: browser_action (core), single-action tools, select
- info: screenshot/text/page metadata (core), DOM, evaluate, links
- docs: browser_docs
- modules: browser_manage_modules
- pages: tab management
- mouse, keyboard: low-level input
- console: console capture
- system: health, waits, viewport, tracing
- media: audio/video inspection and control
- network: request monitoring, HAR, WebSocket frames, blocking, throttling
- performance: CPU profile, heap, metrics, web vitals, coverage
- security: security headers, certificates, mixed content, CSP
- storage: IndexedDB, Cache Storage, service workers
"""
