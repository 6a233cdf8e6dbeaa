from __future__ import annotations

import pytest
from fakes import FakeDriver, FakeHandle, FakePage

from mcp_servers.browser_automation.config import BrowserConfig
from mcp_servers.browser_automation.connection import ConnectionManager
from mcp_servers.browser_automation.server.registry import ToolRegistry
from mcp_servers.browser_automation.server.types import ToolContext
from mcp_servers.browser_automation.session_cdp import CDPSessionManager


@pytest.fixture
def config(tmp_path) -> BrowserConfig:  # noqa: ANN001
    return BrowserConfig(profile_path=str(tmp_path / "profile"), extensions_dir=None)


@pytest.fixture
def handle() -> FakeHandle:
    return FakeHandle()


@pytest.fixture
def driver(handle: FakeHandle) -> FakeDriver:
    return FakeDriver(remote=handle)


@pytest.fixture
def connection(config: BrowserConfig, driver: FakeDriver) -> ConnectionManager:
    return ConnectionManager(config, driver)


@pytest.fixture
def ctx(config: BrowserConfig, connection: ConnectionManager) -> ToolContext:
    registry = ToolRegistry(extensions_dir=None)
    return ToolContext(
        config=config,
        connection=connection,
        cdp=CDPSessionManager(connection),
        registry=registry,
    )


@pytest.fixture
def page(ctx: ToolContext) -> FakePage:
    return ctx.page()


@pytest.fixture
def no_system_browser(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr("mcp_servers.browser_automation.connection.find_browser_executable", lambda _cfg: None)
