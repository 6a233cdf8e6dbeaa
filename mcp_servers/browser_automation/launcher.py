from __future__ import annotations

import logging
import os
import shutil
import sys
from pathlib import Path

from .config import BrowserConfig, expand_path

logger = logging.getLogger("mcp.browser.launcher")

LINUX_BINARY_CANDIDATES: list[str] = [
    "/usr/bin/google-chrome",
    "/usr/bin/google-chrome-stable",
    "/usr/bin/chromium",
    "/usr/bin/chromium-browser",
    "/usr/local/bin/chromium",
    "/opt/google/chrome/chrome",
    # Snap last: it ignores --user-data-dir outside of $HOME.
    "/snap/bin/chromium",
]

MACOS_BINARY_CANDIDATES: list[str] = [
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    "/Applications/Chromium.app/Contents/MacOS/Chromium",
]

WINDOWS_BINARY_CANDIDATES: list[str] = [
    "C:\\Program Files\\Google\\Chrome\\Application\\chrome.exe",
    "C:\\Program Files (x86)\\Google\\Chrome\\Application\\chrome.exe",
    "C:\\Program Files\\Chromium\\Application\\chrome.exe",
]

PATH_LOOKUP_NAMES: list[str] = ["google-chrome", "google-chrome-stable", "chromium", "chromium-browser", "chrome"]

# Isolation/stability flags; the debugging port keeps later attach possible.
BASE_LAUNCH_FLAGS: list[str] = [
    "--no-first-run",
    "--no-default-browser-check",
    "--disable-fre",
    "--disable-features=TranslateUI,OptGuideOnDeviceModel",
    "--disable-sync",
    "--disable-component-update",
    "--disable-background-networking",
    "--disable-breakpad",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
]


def binary_candidates(platform: str | None = None) -> list[str]:
    """Common install locations for the given platform (defaults to the running one)."""
    platform = platform or sys.platform
    if platform.startswith("win"):
        return list(WINDOWS_BINARY_CANDIDATES)
    if platform == "darwin":
        return list(MACOS_BINARY_CANDIDATES)
    return list(LINUX_BINARY_CANDIDATES)


def _is_executable(path: str) -> bool:
    p = Path(path)
    return p.is_file() and os.access(str(p), os.X_OK)


def find_browser_executable(config: BrowserConfig) -> str | None:
    """Locate a system Chrome/Chromium.

    Order: explicit MCP_BROWSER_BINARY, platform install paths, then PATH lookup.
    Returns None when nothing usable is found (the driver may still have a bundled browser).
    """
    if config.binary_path:
        explicit = expand_path(config.binary_path)
        if _is_executable(explicit):
            return explicit
        logger.warning("MCP_BROWSER_BINARY=%s is not an executable file; falling back to discovery", explicit)

    for candidate in binary_candidates():
        if _is_executable(candidate):
            logger.info("Found system browser at %s", candidate)
            return candidate

    for name in PATH_LOOKUP_NAMES:
        found = shutil.which(name)
        if found:
            logger.info("Found system browser via PATH lookup: %s", found)
            return found

    return None


def build_launch_flags(config: BrowserConfig) -> list[str]:
    flags = [f"--remote-debugging-port={config.cdp_port}", *BASE_LAUNCH_FLAGS]
    flags.extend(flag for flag in config.extra_flags if flag not in flags)
    return flags
