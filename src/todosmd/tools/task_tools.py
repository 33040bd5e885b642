"""
Task tool handlers.

Core logic lives in handle_* functions (return dicts).
MCP wrappers in register_task_tools() serialize to JSON strings.
"""

import json
import logging
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from todosmd.editor.task_editor import TASK_STATUSES, cascade_done, set_task_status
from todosmd.errors import QuerySyntaxError, TaskEditError
from todosmd.formatting import task_to_dict
from todosmd.stats import calculate_stats

log = logging.getLogger(__name__)


def _split_sort(sort: str) -> List[str]:
    return [s.strip() for s in sort.split(",") if s.strip()] or ["project"]


DEFAULT_STATUSES = ("open", "done", "all", "none")


def _default_status(status: str) -> Optional[str]:
    """
    Map "none" to no default, so groups without a status match open and done.

    Raises:
        ValueError: status is not one of DEFAULT_STATUSES
    """
    if status not in DEFAULT_STATUSES:
        raise ValueError(f"Invalid status '{status}' (expected one of: {', '.join(DEFAULT_STATUSES)})")
    return None if status == "none" else status


# ---------------------------------------------------------------------------
# Handler functions (return dicts, shared by MCP tools and REST API)
# ---------------------------------------------------------------------------


def handle_task_query(
    cache,
    *,
    query: str = "",
    status: str = "open",
    sort: str = "project",
    priority_order: str = "high-first",
    limit: int = 200,
) -> dict:
    try:
        result = cache.query(
            query,
            default_status=_default_status(status),
            sort=_split_sort(sort),
            priority_order=priority_order,
            limit=limit,
        )
    except (QuerySyntaxError, ValueError) as e:
        return {"error": str(e)}
    return {
        "query": query,
        "filter_groups": result.filter_groups,
        "total": result.total,
        "count": len(result.tasks),
        "tasks": [task_to_dict(t) for t in result.tasks],
    }


def handle_task_search(
    cache,
    *,
    text: str,
    query: str = "",
    status: str = "open",
    limit: int = 200,
) -> dict:
    if not text.strip():
        return {"error": "Search text must not be empty"}
    try:
        result = cache.query(query, default_status=_default_status(status), text=text, limit=limit)
    except (QuerySyntaxError, ValueError) as e:
        return {"error": str(e)}
    return {
        "text": text,
        "query": query,
        "filter_groups": result.filter_groups,
        "total": result.total,
        "count": len(result.tasks),
        "tasks": [task_to_dict(t) for t in result.tasks],
    }


def handle_task_get(cache, *, global_id: str) -> dict:
    task = cache.get_task(global_id)
    if task is None:
        return {"error": f"Task '{global_id}' not found"}

    result = task_to_dict(task)
    children = [cache.get_task(cid) for cid in task.children_ids]
    result["children"] = [task_to_dict(c) for c in children if c is not None]
    if task.parent_id:
        parent = cache.get_task(task.parent_id)
        result["parent"] = task_to_dict(parent) if parent else None
    return result


def handle_task_set_status(cache, *, global_id: str, status: str) -> dict:
    """Check or uncheck a task in its file, cascading "done" to subtasks, then rebuild."""
    if status not in TASK_STATUSES:
        return {"error": f"Invalid status '{status}' (expected 'open' or 'done')"}
    task = cache.get_task(global_id)
    if task is None:
        return {"error": f"Task '{global_id}' not found"}

    previous = "done" if task.completed else "open"
    if previous == status:
        return {
            "global_id": global_id,
            "previous_status": previous,
            "new_status": status,
            "cascaded": [],
            "message": f"Task already {status}",
        }

    try:
        set_task_status(task.file_path, task.line_number, task.text, status)
        cascaded = cascade_done(cache.index, task) if status == "done" else []
    except TaskEditError as e:
        return {"error": str(e)}
    cache.rebuild()

    updated = cache.get_task(global_id)
    return {
        "global_id": global_id,
        "previous_status": previous,
        "new_status": status,
        "cascaded": [c.global_id for c in cascaded],
        "task": task_to_dict(updated) if updated else None,
    }


def handle_index_rebuild(cache) -> dict:
    result = cache.rebuild()
    return {
        "generated_at": result.index.generated_at,
        "stats": result.stats.to_dict(),
        "warnings": [w.to_dict() for w in result.warnings],
    }


def handle_index_status(cache) -> dict:
    return cache.status()


def handle_task_stats(
    cache,
    *,
    query: str = "",
    period: str = "last-7d",
    status: str = "all",
) -> dict:
    try:
        result = cache.query(query, default_status=_default_status(status))
        return calculate_stats(result.tasks, period=period).to_dict()
    except (QuerySyntaxError, ValueError) as e:
        return {"error": str(e)}


# ---------------------------------------------------------------------------
# MCP tool registration (thin wrappers)
# ---------------------------------------------------------------------------


def register_task_tools(mcp: FastMCP, cache) -> None:
    """Register all task-related MCP tools onto the FastMCP instance."""

    @mcp.tool()
    def task_query(
        query: str = "",
        status: str = "open",
        sort: str = "project",
        priority_order: str = "high-first",
        limit: int = 200,
    ) -> str:
        """
        Find tasks with the todosmd query language.

        Filters are key:value tokens, AND-ed when placed side by side and
        OR-ed with "|" or "OR". Parentheses group. Example:
        "(bucket:today | plan:today) energy:low,normal"

        Keys: project, area, energy, priority, due, plan, created, updated,
        bucket (prefix "!" to exclude), overdue:true, status, tags, parent,
        top-level:true, text. Date keys accept today, yesterday, tomorrow,
        this-week, next-week, last-week, last-7d, last-30d, YYYY-MM-DD or
        YYYY-MM-DD:YYYY-MM-DD.

        Args:
            query: Query string; empty matches everything
            status: Status applied to OR-branches that set none: "open", "done", "all" or "none"
            sort: Comma-separated sort fields (due, plan, created, updated, project, energy, priority, bucket)
            priority_order: "high-first" or "low-first"
            limit: Maximum number of results (default 200)

        Returns:
            JSON object with the matching tasks, or an error message
        """
        return json.dumps(
            handle_task_query(
                cache,
                query=query,
                status=status,
                sort=sort,
                priority_order=priority_order,
                limit=limit,
            ),
            indent=2,
        )

    @mcp.tool()
    def task_search(text: str, query: str = "", status: str = "open", limit: int = 200) -> str:
        """
        Case-insensitive full-text search over task text.

        Args:
            text: Substring to look for
            query: Optional query narrowing the search (same syntax as task_query)
            status: Default status, as in task_query
            limit: Maximum number of results (default 200)

        Returns:
            JSON object with the matching tasks, or an error message
        """
        return json.dumps(
            handle_task_search(cache, text=text, query=query, status=status, limit=limit),
            indent=2,
        )

    @mcp.tool()
    def task_get(global_id: str) -> str:
        """
        Get a single task by global ID with its parent and direct children.

        Args:
            global_id: "<project>:<local id>", e.g. "home:1.2"

        Returns:
            JSON task object, or error message
        """
        return json.dumps(handle_task_get(cache, global_id=global_id), indent=2)

    @mcp.tool()
    def task_stats(query: str = "", period: str = "last-7d", status: str = "all") -> str:
        """
        Task statistics: open/done counts, bucket/energy/priority breakdown,
        recent completions, overdue tasks and top projects.

        Args:
            query: Optional query restricting which tasks are counted
            period: "today", "last-7d", "last-30d" or "this-week"
            status: Default status, as in task_query (default "all")

        Returns:
            JSON statistics object, or error message
        """
        return json.dumps(handle_task_stats(cache, query=query, period=period, status=status), indent=2)

    @mcp.tool()
    def task_set_status(global_id: str, status: str) -> str:
        """
        Mark a task done or reopen it, editing the checkbox in its markdown file.

        Marking done also completes every open subtask. Reopening affects
        only the task itself. Either way an updated:<today> stamp is written
        and the index is rebuilt.

        Args:
            global_id: "<project>:<local id>", e.g. "home:1.2"
            status: "done" or "open"

        Returns:
            JSON object with previous/new status and cascaded subtask ids, or error message
        """
        return json.dumps(handle_task_set_status(cache, global_id=global_id, status=status), indent=2)

    @mcp.tool()
    def index_rebuild() -> str:
        """
        Re-read every configured markdown file and rebuild the task index.

        Returns:
            JSON object with build stats and any warnings
        """
        try:
            return json.dumps(handle_index_rebuild(cache), indent=2)
        except Exception as e:
            log.exception("Index rebuild failed")
            return json.dumps({"error": str(e)})

    @mcp.tool()
    def index_status() -> str:
        """
        Diagnostics: indexed files, last build time, stats and warnings.

        Returns:
            JSON status object
        """
        return json.dumps(handle_index_status(cache), indent=2)
