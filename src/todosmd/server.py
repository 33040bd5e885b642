"""
todosmd MCP server entry point.

Startup sequence:
1. Load config (TODOSMD_CONFIG or the usual lookup) and resolve the file set
   (TODOSMD_FILES overrides the config's files)
2. Initialize IndexCache (full build)
3. Start IndexWatcher daemon thread (full rebuild on any file change)
4. Start REST API server in background thread (if API_ENABLED)
5. Register all MCP tools
6. Run MCP server (stdio transport)
"""

import logging
import os
import sys
import threading
from typing import List

from mcp.server.fastmcp import FastMCP

from todosmd.cache.index_cache import IndexCache
from todosmd.config import load_config
from todosmd.errors import ConfigError
from todosmd.tools import register_task_tools
from todosmd.watcher import IndexWatcher

log = logging.getLogger(__name__)


def _parse_files(raw: str) -> List[str]:
    """Parse a comma-separated list of markdown files."""
    return [part.strip() for part in raw.split(",") if part.strip()]


def _start_api_server(cache, port: int) -> None:
    """Run the FastAPI/uvicorn server in a daemon thread."""
    import uvicorn

    from todosmd.api.app import create_app

    app = create_app(cache)
    log.info("Starting REST API on port %d", port)
    uvicorn.run(app, host="127.0.0.1", port=port, log_level="warning")


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_config()
    except ConfigError as e:
        log.error("%s", e)
        sys.exit(1)

    files = _parse_files(os.environ.get("TODOSMD_FILES", "")) or config.files
    output = os.environ.get("TODOSMD_OUTPUT") or None
    log.info("Task files: %s", ", ".join(files))

    cache = IndexCache()
    cache.initialize(files, output=output)

    watcher = IndexWatcher(cache)
    watcher.start()

    api_enabled = os.environ.get("API_ENABLED", "true").lower() in ("true", "1", "yes")
    if api_enabled:
        api_port = int(os.environ.get("API_PORT", "9410"))
        api_thread = threading.Thread(
            target=_start_api_server, args=(cache, api_port), daemon=True
        )
        api_thread.start()

    mcp = FastMCP("todosmd")
    register_task_tools(mcp, cache)

    log.info("Starting todosmd server")
    try:
        mcp.run(transport="stdio")
    finally:
        watcher.stop()


if __name__ == "__main__":
    main()
