"""
Thread-safe holder of the most recently built task index.

The index itself is an immutable value, so the cache never patches it.
rebuild() runs a full build_index() under _build_lock, so builds never
overlap and each published result was read from disk after the one it
replaces. The whole IndexerResult is then swapped in one assignment
under _lock (threading.RLock). Readers take only _lock, and only long
enough to grab the current reference, so they never wait on a build.
"""

import logging
import threading
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional, Sequence, Union

from todosmd.indexer.index_file import write_index_file
from todosmd.indexer.indexer import IndexerResult, build_index
from todosmd.models.index import Task, TaskIndex
from todosmd.query.pipeline import QueryResult, run_query

log = logging.getLogger(__name__)


class IndexCache:
    """
    Call initialize() once with the files to index. Every later rebuild()
    re-reads all of them; there is no incremental path.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._build_lock = threading.Lock()
        self._files: List[str] = []
        self._output: Optional[Path] = None
        self._result: Optional[IndexerResult] = None
        self._last_build: Optional[datetime] = None
        self._build_count = 0

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def initialize(self, files: Sequence[Union[str, Path]], output: Union[str, Path, None] = None) -> IndexerResult:
        """
        Record the file set and run the first build.

        Args:
            files: Markdown files to index
            output: If given, every build is also written there as JSON
        """
        with self._lock:
            self._files = [str(f) for f in files]
            self._output = Path(output) if output else None
        return self.rebuild()

    def rebuild(self) -> IndexerResult:
        """Full rebuild from disk. Returns the new result."""
        with self._build_lock:
            with self._lock:
                files = list(self._files)
                output = self._output

            log.info("Rebuilding index from %d file(s)", len(files))
            result = build_index(files)
            if output is not None:
                write_index_file(result.index, output)

            with self._lock:
                self._result = result
                self._last_build = datetime.now()
                self._build_count += 1
            return result

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def files(self) -> List[str]:
        with self._lock:
            return list(self._files)

    @property
    def result(self) -> Optional[IndexerResult]:
        with self._lock:
            return self._result

    @property
    def index(self) -> Optional[TaskIndex]:
        result = self.result
        return result.index if result else None

    def all_tasks(self) -> List[Task]:
        index = self.index
        return list(index.tasks.values()) if index else []

    def get_task(self, global_id: str) -> Optional[Task]:
        index = self.index
        return index.tasks.get(global_id) if index else None

    def query(
        self,
        query: Union[str, List[str], None] = None,
        *,
        default_status: Optional[str] = "open",
        text: Optional[str] = None,
        sort: Sequence[str] = ("project",),
        priority_order: str = "high-first",
        limit: Optional[int] = None,
        today: Optional[date] = None,
    ) -> QueryResult:
        """Run the query pipeline against the current index. Raises QuerySyntaxError."""
        return run_query(
            self.all_tasks(),
            query,
            default_status=default_status,
            text=text,
            sort=sort,
            priority_order=priority_order,
            limit=limit,
            today=today,
        )

    def status(self) -> dict:
        with self._lock:
            result = self._result
            return {
                "files": list(self._files),
                "output": str(self._output) if self._output else None,
                "last_build": self._last_build.isoformat() if self._last_build else None,
                "build_count": self._build_count,
                "generated_at": result.index.generated_at if result else None,
                "stats": result.stats.to_dict() if result else None,
                "warnings": [w.to_dict() for w in result.warnings] if result else [],
            }
