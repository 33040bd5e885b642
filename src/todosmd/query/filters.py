"""
Filter compilation.

Raw ``key:value`` tokens are parsed once into ParsedFilter values tagged
with a FilterKind, then compiled into ``Task -> bool`` predicates through a
dispatch table keyed by kind. Unknown keys never make it past parsing, and
values that cannot mean anything (``energy:extreme``, ``due:someday``) are
dropped there too, so a query of only unknown filters matches everything.

Within one filter group:
- project, area, energy, priority, bucket and tags are multi-valued. Comma
  lists and repeated keys merge into one OR-of-equality predicate.
- Every other filter compiles on its own and is AND-ed with the rest.

Date specs are resolved against ``today`` (default: the current date) when
the predicates are built, not when they run.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple, Union

from todosmd.models.index import Task
from todosmd.utils.dates import is_date_in_range, is_overdue, parse_date_spec

TaskFilter = Callable[[Task], bool]

LEVELS = ("low", "normal", "high")
STATUSES = ("open", "done", "all")


class FilterKind(Enum):
    PROJECT = "project"
    AREA = "area"
    ENERGY = "energy"
    PRIORITY = "priority"
    DUE = "due"
    PLAN = "plan"
    CREATED = "created"
    UPDATED = "updated"
    BUCKET = "bucket"
    OVERDUE = "overdue"
    STATUS = "status"
    TAGS = "tags"
    PARENT = "parent"
    TOP_LEVEL = "top-level"
    TEXT = "text"


MULTI_VALUED = frozenset(
    {
        FilterKind.PROJECT,
        FilterKind.AREA,
        FilterKind.ENERGY,
        FilterKind.PRIORITY,
        FilterKind.BUCKET,
        FilterKind.TAGS,
    }
)
DATE_KINDS = frozenset({FilterKind.DUE, FilterKind.PLAN, FilterKind.CREATED, FilterKind.UPDATED})
_KINDS_BY_KEY = {kind.value: kind for kind in FilterKind}


@dataclass(frozen=True)
class ParsedFilter:
    kind: FilterKind
    value: str


@dataclass
class FilterOptions:
    """Flattened view of one filter group, for display and JSON output."""

    project: List[str] = field(default_factory=list)
    area: List[str] = field(default_factory=list)
    energy: List[str] = field(default_factory=list)
    priority: List[str] = field(default_factory=list)
    bucket: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    due: Optional[str] = None
    plan: Optional[str] = None
    created: Optional[str] = None
    updated: Optional[str] = None
    overdue: bool = False
    status: Optional[str] = None
    parent: Optional[str] = None
    top_level: bool = False
    text: Optional[str] = None

    def to_dict(self) -> dict:
        """Only the options that are actually set."""
        return {k: v for k, v in self.__dict__.items() if v not in (None, False, [])}


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _split_values(value: Union[str, Iterable[str]]) -> List[str]:
    parts = value.split(",") if isinstance(value, str) else list(value)
    return [p.strip() for p in parts if p.strip()]


def parse_filter_arg(arg: str) -> Optional[Tuple[str, str]]:
    """Split ``key:value`` at the first colon. None if either side is empty."""
    key, sep, value = arg.partition(":")
    if not sep or not key or not value:
        return None
    return key, value


def _validate(kind: FilterKind, value: str) -> Optional[str]:
    """Return the usable form of ``value`` for ``kind``, or None to drop it."""
    if kind in (FilterKind.ENERGY, FilterKind.PRIORITY):
        levels = [v for v in _split_values(value) if v in LEVELS]
        return ",".join(levels) or None
    if kind in DATE_KINDS:
        return value if parse_date_spec(value) is not None else None
    if kind == FilterKind.STATUS:
        return value if value in STATUSES else None
    if kind in (FilterKind.OVERDUE, FilterKind.TOP_LEVEL):
        return value if value == "true" else None
    return value


def parse_filters(tokens: Iterable[str]) -> List[ParsedFilter]:
    """Parse raw tokens into tagged filters, dropping unknown keys and unusable values."""
    parsed: List[ParsedFilter] = []
    for token in tokens:
        pair = parse_filter_arg(token)
        if pair is None:
            continue
        kind = _KINDS_BY_KEY.get(pair[0])
        if kind is None:
            continue
        value = _validate(kind, pair[1])
        if value is not None:
            parsed.append(ParsedFilter(kind, value))
    return parsed


def parse_filter_args(tokens: Iterable[str]) -> FilterOptions:
    """Collapse one group's tokens into FilterOptions. Later single values win."""
    options = FilterOptions()
    for pf in parse_filters(tokens):
        attr = pf.kind.value.replace("-", "_")
        if pf.kind in MULTI_VALUED:
            getattr(options, attr).extend(_split_values(pf.value))
        elif pf.kind in (FilterKind.OVERDUE, FilterKind.TOP_LEVEL):
            setattr(options, attr, True)
        else:
            setattr(options, attr, pf.value)
    return options


# ---------------------------------------------------------------------------
# Predicate factories
# ---------------------------------------------------------------------------

def filter_by_project(projects: Union[str, Iterable[str]]) -> TaskFilter:
    wanted = set(_split_values(projects))
    return lambda task: task.project_id in wanted


def filter_by_area(areas: Union[str, Iterable[str]]) -> TaskFilter:
    wanted = set(_split_values(areas))
    return lambda task: task.area in wanted


def filter_by_energy(levels: Union[str, Iterable[str]]) -> TaskFilter:
    wanted = set(_split_values(levels))
    return lambda task: (task.energy or "normal") in wanted


def filter_by_priority(levels: Union[str, Iterable[str]]) -> TaskFilter:
    wanted = set(_split_values(levels))
    return lambda task: task.priority in wanted


def filter_by_bucket(buckets: Union[str, Iterable[str]]) -> TaskFilter:
    """
    Match by bucket, with ``!name`` for exclusion.

    With any plain names present the task's bucket must be one of them and
    not excluded. With only exclusions, anything not excluded matches,
    tasks without a bucket included.
    """
    include: Set[str] = set()
    exclude: Set[str] = set()
    for value in _split_values(buckets):
        if value.startswith("!"):
            if value[1:]:
                exclude.add(value[1:])
        else:
            include.add(value)

    def predicate(task: Task) -> bool:
        if task.bucket in exclude:
            return False
        if include:
            return task.bucket in include
        return True

    return predicate


def filter_by_tags(tags: Union[str, Iterable[str]]) -> TaskFilter:
    """Any tag in common, case-insensitive."""
    wanted = {t.lower() for t in _split_values(tags)}

    def predicate(task: Task) -> bool:
        if not task.tags:
            return False
        return any(t.lower() in wanted for t in task.tags)

    return predicate


def _date_field_filter(field_name: str, date_spec: str, today: Optional[date]) -> TaskFilter:
    date_range = parse_date_spec(date_spec, today=today)
    if date_range is None:
        raise ValueError(f"Invalid {field_name} date filter: '{date_spec}'")
    return lambda task: is_date_in_range(getattr(task, field_name), date_range)


def filter_by_due(date_spec: str, today: Optional[date] = None) -> TaskFilter:
    """Raises ValueError for an unrecognized date spec."""
    return _date_field_filter("due", date_spec, today)


def filter_by_plan(date_spec: str, today: Optional[date] = None) -> TaskFilter:
    """Raises ValueError for an unrecognized date spec."""
    return _date_field_filter("plan", date_spec, today)


def filter_by_created(date_spec: str, today: Optional[date] = None) -> TaskFilter:
    return _date_field_filter("created", date_spec, today)


def filter_by_updated(date_spec: str, today: Optional[date] = None) -> TaskFilter:
    return _date_field_filter("updated", date_spec, today)


def filter_overdue(today: Optional[date] = None) -> TaskFilter:
    today = today or date.today()
    return lambda task: is_overdue(task.due, today=today)


def filter_by_status(status: str) -> TaskFilter:
    if status == "all":
        return lambda task: True
    completed = status == "done"
    return lambda task: task.completed is completed


def filter_by_parent(parent_id: str) -> TaskFilter:
    return lambda task: task.parent_id == parent_id


def filter_top_level() -> TaskFilter:
    return lambda task: task.parent_id is None


def filter_by_text(search_text: str) -> TaskFilter:
    """Case-insensitive substring match on task text."""
    needle = search_text.lower()
    return lambda task: needle in task.text.lower()


_COMPILERS: Dict[FilterKind, Callable[[str, Optional[date]], TaskFilter]] = {
    FilterKind.PROJECT: lambda v, _: filter_by_project(v),
    FilterKind.AREA: lambda v, _: filter_by_area(v),
    FilterKind.ENERGY: lambda v, _: filter_by_energy(v),
    FilterKind.PRIORITY: lambda v, _: filter_by_priority(v),
    FilterKind.BUCKET: lambda v, _: filter_by_bucket(v),
    FilterKind.TAGS: lambda v, _: filter_by_tags(v),
    FilterKind.DUE: filter_by_due,
    FilterKind.PLAN: filter_by_plan,
    FilterKind.CREATED: filter_by_created,
    FilterKind.UPDATED: filter_by_updated,
    FilterKind.OVERDUE: lambda _, today: filter_overdue(today),
    FilterKind.STATUS: lambda v, _: filter_by_status(v),
    FilterKind.PARENT: lambda v, _: filter_by_parent(v),
    FilterKind.TOP_LEVEL: lambda v, _: filter_top_level(),
    FilterKind.TEXT: lambda v, _: filter_by_text(v),
}


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------

def compile_filters(parsed: Iterable[ParsedFilter], today: Optional[date] = None) -> List[TaskFilter]:
    """Compile one group's ParsedFilters into predicates (AND semantics between them)."""
    merged: Dict[FilterKind, List[str]] = {}
    singles: List[ParsedFilter] = []
    for pf in parsed:
        if pf.kind in MULTI_VALUED:
            merged.setdefault(pf.kind, []).extend(_split_values(pf.value))
        else:
            singles.append(pf)

    filters = [_COMPILERS[kind](",".join(values), today) for kind, values in merged.items()]
    filters.extend(_COMPILERS[pf.kind](pf.value, today) for pf in singles)
    return filters


def compose_filters(filters: List[TaskFilter]) -> TaskFilter:
    """AND. No filters matches every task."""
    if not filters:
        return lambda task: True
    return lambda task: all(f(task) for f in filters)


def compose_filter_groups(group_filters: List[TaskFilter]) -> TaskFilter:
    """
    OR. No groups matches nothing.

    Callers that want "no query means everything" run the groups through
    normalize_filter_groups first, which turns ``[]`` into ``[[]]``.
    """
    if not group_filters:
        return lambda task: False
    return lambda task: any(f(task) for f in group_filters)


def build_filter_groups(groups: List[List[str]], today: Optional[date] = None) -> List[TaskFilter]:
    """One AND-composed predicate per filter group."""
    return [compose_filters(compile_filters(parse_filters(group), today)) for group in groups]
