"""Browser driver interfaces and the Playwright-backed implementation.

ConnectionManager only talks to `BrowserDriver` / `BrowserHandle`. Every backend
must implement the explicit `is_connected()` health check; the Playwright objects
are wrapped so that attach mode (a `Browser`) and launch mode (a persistent
`BrowserContext`) look the same from the outside.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol
from urllib.error import URLError
from urllib.request import Request, urlopen

logger = logging.getLogger("mcp.browser.driver")


class DriverError(Exception):
    """The driver could not produce a browser handle."""


class BrowserNotInstalled(DriverError):
    """Launch failed because no browser executable exists at the requested/bundled location."""


class BrowserHandle(Protocol):
    def is_connected(self) -> bool: ...

    def contexts(self) -> list[Any]: ...

    def new_context(self) -> Any: ...

    def close(self) -> None: ...


class BrowserDriver(Protocol):
    def connect_remote(self, endpoint: str, timeout: float) -> BrowserHandle: ...

    def launch(
        self,
        executable_path: str | None,
        flags: list[str],
        profile_dir: str,
        *,
        headless: bool = False,
    ) -> BrowserHandle: ...

    def stop(self) -> None: ...


class RemoteBrowserHandle:
    """Attach mode: a browser reached over its remote debugging endpoint."""

    def __init__(self, browser: Any) -> None:
        self.browser = browser

    def is_connected(self) -> bool:
        return bool(self.browser.is_connected())

    def contexts(self) -> list[Any]:
        return list(self.browser.contexts)

    def new_context(self) -> Any:
        return self.browser.new_context()

    def close(self) -> None:
        self.browser.close()


class PersistentContextHandle:
    """Launch mode: the persistent, profile-backed context doubles as the handle."""

    def __init__(self, context: Any) -> None:
        self.context = context
        self._closed = False
        context.on("close", self._on_close)

    def _on_close(self, *_: Any) -> None:
        self._closed = True

    def is_connected(self) -> bool:
        if self._closed:
            return False
        browser = getattr(self.context, "browser", None)
        if browser is not None:
            return bool(browser.is_connected())
        return True

    def contexts(self) -> list[Any]:
        return [self.context]

    def new_context(self) -> Any:
        return self.context

    def close(self) -> None:
        self.context.close()


def cdp_endpoint_ready(endpoint: str, timeout: float = 0.5) -> bool:
    """Return True if the remote debugging HTTP endpoint responds."""
    req = Request(f"{endpoint.rstrip('/')}/json/version", headers={"User-Agent": "mcp-browser"})
    try:
        with urlopen(req, timeout=timeout) as resp:
            return resp.status == 200
    except (OSError, TimeoutError, URLError):
        return False


class PlaywrightDriver:
    """`BrowserDriver` on top of Playwright's synchronous API (Chromium only)."""

    def __init__(self) -> None:
        self._playwright: Any = None

    def _chromium(self) -> Any:
        if self._playwright is None:
            from playwright.sync_api import sync_playwright

            self._playwright = sync_playwright().start()
        return self._playwright.chromium

    def connect_remote(self, endpoint: str, timeout: float) -> BrowserHandle:
        # Probe first: connect_over_cdp would otherwise block for its full timeout.
        if not cdp_endpoint_ready(endpoint, timeout=timeout):
            raise DriverError(f"No remote debugging endpoint at {endpoint}")
        from playwright.sync_api import Error as PlaywrightError

        try:
            browser = self._chromium().connect_over_cdp(endpoint, timeout=timeout * 1000)
        except PlaywrightError as exc:
            raise DriverError(str(exc)) from exc
        return RemoteBrowserHandle(browser)

    def launch(
        self,
        executable_path: str | None,
        flags: list[str],
        profile_dir: str,
        *,
        headless: bool = False,
    ) -> BrowserHandle:
        from playwright.sync_api import Error as PlaywrightError

        options: dict[str, Any] = {"headless": headless, "args": list(flags)}
        if executable_path:
            options["executable_path"] = executable_path
        try:
            context = self._chromium().launch_persistent_context(profile_dir, **options)
        except PlaywrightError as exc:
            message = str(exc)
            if "Executable doesn't exist" in message:
                raise BrowserNotInstalled(message) from exc
            raise DriverError(message) from exc
        return PersistentContextHandle(context)

    def stop(self) -> None:
        pw = self._playwright
        self._playwright = None
        if pw is not None:
            pw.stop()
