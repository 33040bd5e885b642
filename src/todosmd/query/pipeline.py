"""
End-to-end query pipeline shared by the CLI, MCP tools and REST API.

    tokenize → parse → expand → default status → compile → filter → sort → limit
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional, Sequence, Union

from todosmd.models.index import Task
from todosmd.query.filters import build_filter_groups, compose_filter_groups, compose_filters, filter_by_text
from todosmd.query.parser import (
    apply_default_status_to_groups,
    normalize_filter_groups,
    parse_query_to_filter_groups,
)
from todosmd.query.sorting import sort_tasks_by_fields

SHORTHANDS = {
    "open": ["status:open"],
    "done": ["status:done"],
    "all": ["status:all"],
    "today": ["(", "bucket:today", "|", "plan:today", "|", "due:today", ")"],
}


@dataclass
class QueryResult:
    tasks: List[Task]
    filter_groups: List[List[str]]
    total: int = 0
    text: Optional[str] = None
    sort: List[str] = field(default_factory=list)


def expand_shorthands(words: Sequence[str]) -> List[str]:
    """Replace bare ``open``/``done``/``all``/``today`` words with their filter tokens."""
    out: List[str] = []
    for word in words:
        out.extend(SHORTHANDS.get(word, [word]))
    return out


def run_query(
    tasks: Iterable[Task],
    query: Union[str, List[str], None] = None,
    default_status: Optional[str] = "open",
    text: Optional[str] = None,
    sort: Sequence[str] = ("project",),
    priority_order: str = "high-first",
    limit: Optional[int] = None,
    today: Optional[date] = None,
) -> QueryResult:
    """
    Filter, sort and truncate tasks.

    Args:
        tasks: Candidate tasks, usually ``index.tasks.values()``
        query: Query string or pre-split words; empty means everything
        default_status: Status added to groups that set none; None adds nothing
        text: Extra substring every match must contain
        sort: Sort fields, compared left to right
        priority_order: "high-first" or "low-first"
        limit: Maximum tasks returned; ``total`` still counts all matches
        today: Reference day for date filters

    Raises:
        QuerySyntaxError: the query does not parse
        ValueError: unknown sort field
    """
    groups = parse_query_to_filter_groups(query or "")
    if default_status:
        groups = apply_default_status_to_groups(groups, default_status)
    else:
        groups = normalize_filter_groups(groups)

    group_filters = build_filter_groups(groups, today=today)
    if text:
        needle = filter_by_text(text)
        group_filters = [compose_filters([f, needle]) for f in group_filters]
    matcher = compose_filter_groups(group_filters)

    matched = sort_tasks_by_fields([t for t in tasks if matcher(t)], list(sort), priority_order)
    total = len(matched)
    if limit is not None and limit >= 0:
        matched = matched[:limit]
    return QueryResult(tasks=matched, filter_groups=groups, total=total, text=text, sort=list(sort))
