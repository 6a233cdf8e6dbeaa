"""Page-scoped debug (CDP) session cache."""

from __future__ import annotations

import logging
from typing import Any

from .connection import ConnectionManager

logger = logging.getLogger("mcp.browser.cdp")


class CDPSessionManager:
    """Caches one CDP session bound to the currently active page.

    The binding is checked by page identity, never by URL: two tabs may share a URL.
    """

    def __init__(self, connection: ConnectionManager) -> None:
        self._connection = connection
        self._session: Any = None
        self._page: Any = None
        connection.add_reset_listener(self.reset)

    @property
    def page(self) -> Any:
        return self._page

    def get_session(self) -> Any:
        active = self._connection.acquire()
        page = active.page

        if self._session is None or self._page is not page:
            if self._session is not None:
                try:
                    self._session.detach()
                    logger.info("Detached old CDP session")
                except Exception as exc:  # noqa: BLE001
                    logger.info("Failed to detach old CDP session: %s", exc)
            self._session = None
            self._page = None
            session = active.context.new_cdp_session(page)
            self._session = session
            self._page = page
            logger.info("Created new CDP session")

        return self._session

    def reset(self) -> None:
        """Drop the cache without detaching (the connection is already gone)."""
        if self._session is not None:
            logger.info("Resetting CDP session state")
        self._session = None
        self._page = None
