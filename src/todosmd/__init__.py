"""
todosmd - task graph and query engine for markdown todo files.

    result = build_index(["todos.md"])
    open_today = run_query(result.index.tasks.values(), "bucket:today")
"""

from todosmd.errors import (
    CliUsageError,
    ConfigError,
    IndexFormatError,
    IndexVersionError,
    QuerySyntaxError,
    TaskEditError,
    TodosmdError,
)
from todosmd.editor import mark_task_done, mark_task_undone, set_task_status
from todosmd.indexer import IndexerResult, IndexWarning, build_index, read_index_file, write_index_file
from todosmd.models import INDEX_VERSION, Project, Task, TaskIndex
from todosmd.parsers import parse_content, parse_file, parse_metadata_block, serialize_metadata
from todosmd.query import (
    compose_filter_groups,
    group_tasks,
    parse_query_to_filter_groups,
    run_query,
    sort_tasks_by_fields,
)

__version__ = "0.3.0"

__all__ = [
    "CliUsageError",
    "ConfigError",
    "IndexFormatError",
    "IndexVersionError",
    "QuerySyntaxError",
    "TaskEditError",
    "TodosmdError",
    "mark_task_done",
    "mark_task_undone",
    "set_task_status",
    "IndexerResult",
    "IndexWarning",
    "build_index",
    "read_index_file",
    "write_index_file",
    "INDEX_VERSION",
    "Project",
    "Task",
    "TaskIndex",
    "parse_content",
    "parse_file",
    "parse_metadata_block",
    "serialize_metadata",
    "compose_filter_groups",
    "group_tasks",
    "parse_query_to_filter_groups",
    "run_query",
    "sort_tasks_by_fields",
]
