#!/usr/bin/env python3
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from mcp_servers.browser_automation.config import BrowserConfig  # noqa: E402
from mcp_servers.browser_automation.main import main  # noqa: E402

print(
    f"[mcp] binary={os.environ.get('MCP_BROWSER_BINARY', 'auto')} | "
    f"profile={BrowserConfig.from_env().profile_path} | "
    f"port={os.environ.get('MCP_BROWSER_PORT', '9222')} | "
    f"headless={os.environ.get('MCP_HEADLESS', '0')}",
    file=sys.stderr,
)

if __name__ == "__main__":
    main()
