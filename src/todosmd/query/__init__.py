from .parser import (
    MAX_FILTER_GROUPS,
    AndNode,
    FilterNode,
    OrNode,
    apply_default_status_to_groups,
    expand_to_dnf,
    normalize_filter_groups,
    parse_query,
    parse_query_to_filter_groups,
    tokenize_query,
)
from .filters import (
    FilterKind,
    FilterOptions,
    ParsedFilter,
    TaskFilter,
    build_filter_groups,
    compile_filters,
    compose_filter_groups,
    compose_filters,
    filter_by_area,
    filter_by_bucket,
    filter_by_created,
    filter_by_due,
    filter_by_energy,
    filter_by_parent,
    filter_by_plan,
    filter_by_priority,
    filter_by_project,
    filter_by_status,
    filter_by_tags,
    filter_by_text,
    filter_by_updated,
    filter_overdue,
    filter_top_level,
    parse_filter_arg,
    parse_filter_args,
    parse_filters,
)
from .sorting import group_tasks, natural_key, sort_tasks, sort_tasks_by_fields
from .pipeline import QueryResult, run_query

__all__ = [
    "MAX_FILTER_GROUPS",
    "AndNode",
    "FilterNode",
    "OrNode",
    "apply_default_status_to_groups",
    "expand_to_dnf",
    "normalize_filter_groups",
    "parse_query",
    "parse_query_to_filter_groups",
    "tokenize_query",
    "FilterKind",
    "FilterOptions",
    "ParsedFilter",
    "TaskFilter",
    "build_filter_groups",
    "compile_filters",
    "compose_filter_groups",
    "compose_filters",
    "filter_by_area",
    "filter_by_bucket",
    "filter_by_created",
    "filter_by_due",
    "filter_by_energy",
    "filter_by_parent",
    "filter_by_plan",
    "filter_by_priority",
    "filter_by_project",
    "filter_by_status",
    "filter_by_tags",
    "filter_by_text",
    "filter_by_updated",
    "filter_overdue",
    "filter_top_level",
    "parse_filter_arg",
    "parse_filter_args",
    "parse_filters",
    "group_tasks",
    "natural_key",
    "sort_tasks",
    "sort_tasks_by_fields",
    "QueryResult",
    "run_query",
]
