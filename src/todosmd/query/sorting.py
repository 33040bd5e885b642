"""
Sorting and grouping of query results.

Every sort is total: after the requested fields, ties are broken by project
id, then local id compared numerically ("1.2" < "1.10"), then the task's
position in the input. Missing values sort after present ones for every
field, whatever the direction of that field.
"""

import re
from typing import Callable, Dict, List, Sequence, Tuple

from todosmd.models.index import Task

SORT_FIELDS = ("due", "plan", "created", "updated", "project", "energy", "priority", "bucket")
GROUP_FIELDS = ("project", "area", "due", "plan", "bucket", "energy", "priority", "none")

ENERGY_ORDER = {"low": 0, "normal": 1, "high": 2}
PRIORITY_ORDER = {"high": 0, "normal": 1, "low": 2}
BUCKET_ORDER = {"now": 0, "today": 1, "upcoming": 2, "anytime": 3, "someday": 4}
_UNKNOWN_BUCKET = 5

_DIGITS_RE = re.compile(r"(\d+)")


def natural_key(value: str) -> Tuple:
    """Split digits out so numeric runs compare as numbers."""
    parts = _DIGITS_RE.split(value)
    # Even positions are always text, odd positions always digits
    return tuple(int(p) if i % 2 else p for i, p in enumerate(parts))


def _missing_last(value) -> Tuple:
    return (1, "") if value is None or value == "" else (0, value)


def _field_key(field: str, priority_order: str) -> Callable[[Task], Tuple]:
    if field in ("due", "plan", "created", "updated"):
        return lambda t: _missing_last(getattr(t, field))
    if field == "project":
        return lambda t: (t.project_id, natural_key(t.local_id))
    if field == "energy":
        return lambda t: _missing_last(ENERGY_ORDER.get(t.energy) if t.energy else None)
    if field == "priority":
        ranks = PRIORITY_ORDER
        if priority_order == "low-first":
            ranks = {k: len(PRIORITY_ORDER) - 1 - v for k, v in PRIORITY_ORDER.items()}
        return lambda t: _missing_last(ranks.get(t.priority) if t.priority else None)
    if field == "bucket":
        return lambda t: _missing_last(BUCKET_ORDER.get(t.bucket, _UNKNOWN_BUCKET) if t.bucket else None)
    raise ValueError(f"Unknown sort field: '{field}'. Use one of: {', '.join(SORT_FIELDS)}")


def sort_tasks_by_fields(
    tasks: Sequence[Task],
    fields: Sequence[str],
    priority_order: str = "high-first",
) -> List[Task]:
    """
    Stable multi-key sort, fields compared left to right.

    Args:
        tasks: Tasks in their original order
        fields: Sort fields, e.g. ["bucket", "plan", "due"]
        priority_order: "high-first" (default) or "low-first"

    Raises:
        ValueError: unknown sort field or priority order
    """
    if priority_order not in ("high-first", "low-first"):
        raise ValueError(f"Unknown priority order: '{priority_order}'")
    keys = [_field_key(f, priority_order) for f in fields]

    indexed = list(enumerate(tasks))
    indexed.sort(
        key=lambda pair: (
            *(k(pair[1]) for k in keys),
            pair[1].project_id,
            natural_key(pair[1].local_id),
            pair[0],
        )
    )
    return [task for _, task in indexed]


def sort_tasks(tasks: Sequence[Task], sort_by: str = "project") -> List[Task]:
    return sort_tasks_by_fields(tasks, [sort_by])


def group_tasks(tasks: Sequence[Task], group_by: str) -> Dict[str, List[Task]]:
    """
    Bucket tasks by a field, keeping their current order within each bucket.

    Groups appear in order of first occurrence, so sort first. Tasks with no
    value land under ``(no <field>)``. ``none`` returns one group keyed "".
    """
    if group_by == "none":
        return {"": list(tasks)}
    if group_by not in GROUP_FIELDS:
        raise ValueError(f"Unknown group field: '{group_by}'. Use one of: {', '.join(GROUP_FIELDS)}")

    attr = "project_id" if group_by == "project" else group_by
    groups: Dict[str, List[Task]] = {}
    for task in tasks:
        key = getattr(task, attr) or f"(no {group_by})"
        groups.setdefault(key, []).append(task)
    return groups
