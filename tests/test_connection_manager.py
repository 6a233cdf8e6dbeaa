from __future__ import annotations

import logging

import pytest
from fakes import FakeContext, FakeDriver, FakeHandle

from mcp_servers.browser_automation.config import BrowserConfig
from mcp_servers.browser_automation.connection import (
    REMEDIATION_OPTIONS,
    ConnectionManager,
    ConnectionState,
    ConnectionUnavailable,
)
from mcp_servers.browser_automation.driver import DriverError


def test_attach_mode_preferred(config: BrowserConfig, driver: FakeDriver, handle: FakeHandle) -> None:
    manager = ConnectionManager(config, driver)

    active = manager.acquire()

    assert manager.state is ConnectionState.ATTACHED
    assert active.handle is handle
    assert active.page is handle.context.pages[0]
    assert active.index == 0
    assert [c[0] for c in driver.calls] == ["connect_remote"]
    assert driver.calls[0][1] == "http://localhost:9222"


def test_session_is_reused_while_healthy(config: BrowserConfig, driver: FakeDriver) -> None:
    manager = ConnectionManager(config, driver)

    first = manager.acquire()
    second = manager.acquire()

    assert first.page is second.page
    assert len(driver.calls) == 1


def test_launch_mode_when_nothing_to_attach(config: BrowserConfig, monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(
        "mcp_servers.browser_automation.connection.find_browser_executable", lambda _cfg: "/usr/bin/chromium"
    )
    launched = FakeHandle(FakeContext(pages=0))
    driver = FakeDriver(remote=None, launched=launched)
    manager = ConnectionManager(config, driver)

    active = manager.acquire()

    assert manager.state is ConnectionState.LAUNCHED
    assert active.handle is launched
    # Context started without pages: one is created.
    assert len(launched.context.pages) == 1
    _, executable, flags, profile_dir, headless = driver.calls[-1]
    assert executable == "/usr/bin/chromium"
    assert "--remote-debugging-port=9222" in flags
    assert profile_dir == config.profile_path
    assert headless is False


def test_missing_remote_browser_is_logged_quietly(config: BrowserConfig, no_system_browser: None, caplog) -> None:  # noqa: ANN001
    manager = ConnectionManager(config, FakeDriver(remote=None, launched=FakeHandle(FakeContext())))

    with caplog.at_level(logging.DEBUG, logger="mcp.browser.connection"):
        manager.acquire()

    attach_records = [r for r in caplog.records if "No browser to attach to" in r.getMessage()]
    assert [r.levelno for r in attach_records] == [logging.DEBUG]


def test_launch_without_system_browser_uses_bundled(config: BrowserConfig, no_system_browser: None) -> None:
    driver = FakeDriver(remote=None, launched=FakeHandle())
    manager = ConnectionManager(config, driver)

    manager.acquire()

    assert driver.calls[-1][0] == "launch"
    assert driver.calls[-1][1] is None


def test_connection_unavailable_lists_all_remediation_options(
    config: BrowserConfig, no_system_browser: None
) -> None:
    manager = ConnectionManager(config, FakeDriver(remote=None, launched=None))

    with pytest.raises(ConnectionUnavailable) as excinfo:
        manager.acquire()

    message = str(excinfo.value)
    assert message.startswith("No Chrome/Chromium browser found.")
    assert "Option 1" in message and "Option 2" in message and "Option 3" in message
    assert len(excinfo.value.remediation) == len(REMEDIATION_OPTIONS) == 3
    assert "--remote-debugging-port=9222" in message
    assert manager.state is ConnectionState.DISCONNECTED


def test_launch_failure_with_system_browser_is_not_masked(config: BrowserConfig, monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(
        "mcp_servers.browser_automation.connection.find_browser_executable", lambda _cfg: "/usr/bin/chromium"
    )
    driver = FakeDriver(remote=None)
    driver.launch_error = DriverError("profile locked")
    manager = ConnectionManager(config, driver)

    with pytest.raises(DriverError, match="profile locked"):
        manager.acquire()


def test_stale_session_reconnects_from_the_top(config: BrowserConfig, driver: FakeDriver, handle: FakeHandle) -> None:
    manager = ConnectionManager(config, driver)
    resets: list[str] = []
    manager.add_reset_listener(lambda: resets.append("reset"))
    manager.acquire()

    handle.connected = False
    replacement = FakeHandle()
    driver.remote = replacement

    active = manager.acquire()

    assert resets == ["reset"]
    assert active.handle is replacement
    assert manager.state is ConnectionState.ATTACHED
    assert [c[0] for c in driver.calls] == ["connect_remote", "connect_remote"]


def test_health_check_exception_counts_as_stale(config: BrowserConfig, driver: FakeDriver, handle: FakeHandle) -> None:
    manager = ConnectionManager(config, driver)
    manager.acquire()

    def boom() -> bool:
        raise RuntimeError("socket closed")

    handle.is_connected = boom  # type: ignore[method-assign]
    driver.remote = FakeHandle()

    active = manager.acquire()
    assert active.handle is driver.remote


def test_stale_attach_falls_back_to_launch(config: BrowserConfig, no_system_browser: None) -> None:
    remote = FakeHandle()
    launched = FakeHandle()
    driver = FakeDriver(remote=remote, launched=launched)
    manager = ConnectionManager(config, driver)
    manager.acquire()

    remote.connected = False
    driver.remote = None

    active = manager.acquire()
    assert active.handle is launched
    assert manager.state is ConnectionState.LAUNCHED


def test_active_index_is_clamped_to_page_count(config: BrowserConfig) -> None:
    handle = FakeHandle(FakeContext(pages=3))
    manager = ConnectionManager(config, FakeDriver(remote=handle))
    manager.acquire()

    manager.set_active_page_index(2)
    assert manager.acquire().page is handle.context.pages[2]

    handle.context.pages[2].close()
    handle.context.pages[1].close()

    active = manager.acquire()
    assert active.index == 0
    assert manager.get_active_page_index() == 0


def test_set_active_index_before_connect_is_kept(config: BrowserConfig, driver: FakeDriver) -> None:
    manager = ConnectionManager(config, driver)
    manager.set_active_page_index(4)
    assert manager.get_active_page_index() == 4

    manager.acquire()
    assert manager.get_active_page_index() == 0


def test_status_never_acquires(config: BrowserConfig, driver: FakeDriver) -> None:
    manager = ConnectionManager(config, driver)

    status = manager.status()

    assert status == {"state": "disconnected", "activePageIndex": 0}
    assert driver.calls == []

    manager.acquire()
    status = manager.status()
    assert status["state"] == "attached"
    assert status["connected"] is True
    assert status["pages"] == 1


def test_close_is_best_effort(config: BrowserConfig, driver: FakeDriver, handle: FakeHandle) -> None:
    manager = ConnectionManager(config, driver)
    manager.acquire()
    handle.fail_close = True

    manager.close()

    assert manager.state is ConnectionState.DISCONNECTED
    assert driver.stopped is True


def test_close_without_session(config: BrowserConfig, driver: FakeDriver) -> None:
    manager = ConnectionManager(config, driver)
    manager.close()
    assert driver.stopped is True
