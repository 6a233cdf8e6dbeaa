from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path


def expand_path(raw: str) -> str:
    return str(Path(raw).expanduser())


def _repo_root() -> Path:
    # mcp_servers/browser_automation/config.py -> repo root is parents[2]
    return Path(__file__).resolve().parents[2]


def default_profile_path() -> str:
    return str(Path(tempfile.gettempdir()) / "chrome-mcp-profile")


def default_extensions_dir() -> str:
    return str(_repo_root() / "plugins")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name) or default)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name) or default)
    except ValueError:
        return default


@dataclass
class BrowserConfig:
    profile_path: str
    binary_path: str | None = None
    cdp_host: str = "localhost"
    cdp_port: int = 9222
    headless: bool = False
    extra_flags: list[str] = field(default_factory=list)
    max_pages: int = 20
    extensions_dir: str | None = None
    connect_timeout: float = 2.0

    @property
    def cdp_endpoint(self) -> str:
        return f"http://{self.cdp_host}:{self.cdp_port}"

    @classmethod
    def from_env(cls) -> BrowserConfig:
        profile = os.environ.get("MCP_BROWSER_PROFILE") or default_profile_path()
        binary = os.environ.get("MCP_BROWSER_BINARY")
        flags_raw = os.environ.get("MCP_BROWSER_FLAGS", "")
        extra_flags = [flag.strip() for flag in flags_raw.split(",") if flag.strip()]
        extensions_dir = os.environ.get("MCP_BROWSER_EXTENSIONS_DIR") or default_extensions_dir()
        return cls(
            profile_path=expand_path(profile),
            binary_path=expand_path(binary) if binary else None,
            cdp_host=(os.environ.get("MCP_BROWSER_HOST") or "localhost").strip(),
            cdp_port=_env_int("MCP_BROWSER_PORT", 9222),
            headless=os.environ.get("MCP_HEADLESS", "0") == "1",
            extra_flags=extra_flags,
            max_pages=max(1, _env_int("MCP_BROWSER_MAX_PAGES", 20)),
            extensions_dir=expand_path(extensions_dir),
            connect_timeout=max(0.1, _env_float("MCP_CONNECT_TIMEOUT", 2.0)),
        )
