"""Browser connection lifecycle.

ConnectionManager owns the single browser session of the process:

    Disconnected --attach ok--> AttachedRemote
    Disconnected --launch ok--> LaunchedStandalone
    AttachedRemote / LaunchedStandalone --health check fails--> Disconnected

Acquisition tries attach mode first (an already running browser on the debugging
port), then launch mode (a system browser, or the driver's bundled one) with an
isolated profile. Reconnection is lazy: a dead handle is only noticed on the next
`acquire()` call.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .config import BrowserConfig
from .driver import BrowserDriver, BrowserHandle, BrowserNotInstalled, DriverError
from .launcher import build_launch_flags, find_browser_executable

logger = logging.getLogger("mcp.browser.connection")

REMEDIATION_OPTIONS: tuple[str, ...] = (
    "Install Chrome or Chromium on this system (or point MCP_BROWSER_BINARY at it)",
    "Install Playwright's bundled Chromium: python -m playwright install chromium",
    "Start a browser yourself with --remote-debugging-port={port} so the server can attach to it",
)


class ConnectionUnavailable(Exception):
    """Neither an attach target nor a usable browser executable was found."""

    def __init__(self, port: int, cause: str | None = None) -> None:
        self.remediation = [option.format(port=port) for option in REMEDIATION_OPTIONS]
        self.cause = cause
        lines = [
            "No Chrome/Chromium browser found.",
            "",
            "This server needs a Chrome or Chromium browser to work.",
            "",
        ]
        lines.extend(f"Option {i} - {text}" for i, text in enumerate(self.remediation, start=1))
        super().__init__("\n".join(lines))


class StaleSessionDetected(Exception):
    """A cached browser handle failed its health check."""


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    ATTACHED = "attached"
    LAUNCHED = "launched"


@dataclass
class BrowserSession:
    handle: BrowserHandle
    context: Any
    state: ConnectionState


@dataclass(frozen=True)
class ActiveSession:
    handle: BrowserHandle
    context: Any
    page: Any
    index: int


class ConnectionManager:
    """Produces a working {handle, context, active page} triple, recovering from disconnects."""

    def __init__(self, config: BrowserConfig, driver: BrowserDriver | None = None) -> None:
        if driver is None:
            from .driver import PlaywrightDriver

            driver = PlaywrightDriver()
        self.config = config
        self.driver = driver
        self._session: BrowserSession | None = None
        self._active_page_index = 0
        self._reset_listeners: list[Callable[[], None]] = []

    # ── state ────────────────────────────────────────────────────────────────

    @property
    def state(self) -> ConnectionState:
        if self._session is None:
            return ConnectionState.DISCONNECTED
        return self._session.state

    @property
    def session(self) -> BrowserSession | None:
        return self._session

    def add_reset_listener(self, callback: Callable[[], None]) -> None:
        """Register a callback run whenever the cached session is dropped."""
        self._reset_listeners.append(callback)

    def get_active_page_index(self) -> int:
        return self._active_page_index

    def set_active_page_index(self, index: int) -> None:
        self._active_page_index = max(0, int(index))
        if self._session is not None:
            self._clamp(len(self._session.context.pages))

    def _clamp(self, page_count: int) -> int:
        if page_count <= 0:
            self._active_page_index = 0
        elif self._active_page_index >= page_count:
            self._active_page_index = page_count - 1
        return self._active_page_index

    def status(self) -> dict[str, Any]:
        """Session state report; never triggers acquisition."""
        info: dict[str, Any] = {"state": self.state.value, "activePageIndex": self._active_page_index}
        sess = self._session
        if sess is not None:
            try:
                info["connected"] = bool(sess.handle.is_connected())
                info["pages"] = len(sess.context.pages)
            except Exception as exc:  # noqa: BLE001
                info["connected"] = False
                info["error"] = str(exc)
        return info

    # ── acquisition ──────────────────────────────────────────────────────────

    def acquire(self) -> ActiveSession:
        """Return the active session, attaching or launching a browser if needed."""
        if self._session is not None:
            try:
                self._check_health(self._session)
            except StaleSessionDetected as exc:
                logger.info("Browser connection lost (%s), resetting", exc)
                self.reset()

        if self._session is None:
            self._session = self._attach() or self._launch()

        context = self._session.context
        pages = list(context.pages)
        if not pages:
            page = context.new_page()
            self._active_page_index = 0
            return ActiveSession(self._session.handle, context, page, 0)

        index = self._clamp(len(pages))
        return ActiveSession(self._session.handle, context, pages[index], index)

    def _check_health(self, session: BrowserSession) -> None:
        try:
            connected = session.handle.is_connected()
        except Exception as exc:  # noqa: BLE001
            raise StaleSessionDetected(f"health check raised: {exc}") from exc
        if not connected:
            raise StaleSessionDetected("handle reports disconnected")

    def _attach(self) -> BrowserSession | None:
        endpoint = self.config.cdp_endpoint
        logger.info("Attempting to attach to browser at %s", endpoint)
        try:
            handle = self.driver.connect_remote(endpoint, self.config.connect_timeout)
        except Exception as exc:  # noqa: BLE001
            logger.debug("No browser to attach to: %s", exc)
            return None

        contexts = handle.contexts()
        context = contexts[0] if contexts else handle.new_context()
        logger.info("Attached to existing browser (attach mode)")
        return BrowserSession(handle, context, ConnectionState.ATTACHED)

    def _launch(self) -> BrowserSession:
        executable = find_browser_executable(self.config)
        if executable:
            logger.info("Launching system browser %s", executable)
        else:
            logger.info("No system browser found, trying the driver's bundled Chromium")
        logger.info("Browser profile: %s", self.config.profile_path)

        try:
            handle = self.driver.launch(
                executable,
                build_launch_flags(self.config),
                self.config.profile_path,
                headless=self.config.headless,
            )
        except BrowserNotInstalled as exc:
            if executable is None:
                raise ConnectionUnavailable(self.config.cdp_port, cause=str(exc)) from exc
            raise
        except DriverError:
            logger.exception("Browser launch failed")
            raise

        contexts = handle.contexts()
        context = contexts[0] if contexts else handle.new_context()
        logger.info("Launched new browser instance (standalone mode)")
        return BrowserSession(handle, context, ConnectionState.LAUNCHED)

    # ── teardown ─────────────────────────────────────────────────────────────

    def reset(self) -> None:
        """Forget the cached session without touching the browser."""
        self._session = None
        for callback in list(self._reset_listeners):
            try:
                callback()
            except Exception:  # noqa: BLE001
                logger.exception("reset listener failed")

    def close(self) -> None:
        """Best-effort close of the owned handle; failures are logged and discarded."""
        sess = self._session
        self.reset()
        if sess is not None:
            logger.info("Closing browser")
            try:
                sess.handle.close()
            except Exception as exc:  # noqa: BLE001
                logger.info("Browser close failed: %s", exc)
        try:
            self.driver.stop()
        except Exception as exc:  # noqa: BLE001
            logger.info("Driver stop failed: %s", exc)
