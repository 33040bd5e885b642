"""
Polling watcher for the indexed markdown files.

A daemon thread stats every configured file each poll interval. When any
file is modified, appears or disappears, the whole index is rebuilt once
through IndexCache.rebuild(); there is no per-file refresh.
"""

import logging
import os
import threading
from pathlib import Path
from typing import Dict, Optional

log = logging.getLogger(__name__)

_DEFAULT_POLL_INTERVAL = 5.0


class IndexWatcher:
    """
    Usage:
        watcher = IndexWatcher(cache)
        watcher.start()
        ...
        watcher.stop()
    """

    def __init__(self, cache, poll_interval: Optional[float] = None) -> None:
        self._cache = cache
        self._poll_interval = poll_interval or float(
            os.environ.get("POLL_INTERVAL", _DEFAULT_POLL_INTERVAL)
        )
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._known_files: Dict[Path, float] = {}

    def start(self) -> None:
        """Start the polling thread (daemon)."""
        log.info("Starting index watcher (polling every %.1fs)", self._poll_interval)
        self._known_files = self._snapshot()
        self._thread = threading.Thread(target=self._poll_loop, daemon=True, name="index-watcher")
        self._thread.start()

    def stop(self) -> None:
        """Signal the poll thread to stop and wait for it."""
        log.info("Stopping index watcher")
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=self._poll_interval + 2)

    def check_for_changes(self) -> bool:
        """
        Single poll cycle. Rebuilds the index if anything changed.

        Returns:
            True when a rebuild ran
        """
        current = self._snapshot()
        if current == self._known_files:
            return False

        for path in current.keys() - self._known_files.keys():
            log.debug("Task file appeared: %s", path)
        for path in self._known_files.keys() - current.keys():
            log.debug("Task file disappeared: %s", path)

        self._known_files = current
        self._cache.rebuild()
        return True

    def _poll_loop(self) -> None:
        while not self._stop_event.is_set():
            self._stop_event.wait(self._poll_interval)
            if self._stop_event.is_set():
                break
            try:
                self.check_for_changes()
            except Exception:
                log.exception("Error during poll cycle")

    def _snapshot(self) -> Dict[Path, float]:
        """{path: mtime} for every configured file that currently exists."""
        snapshot: Dict[Path, float] = {}
        for name in self._cache.files:
            path = Path(name)
            try:
                snapshot[path] = path.stat().st_mtime
            except OSError:
                pass
        return snapshot
