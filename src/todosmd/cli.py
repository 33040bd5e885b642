"""
tmd - command-line interface for markdown task files

Usage:
    tmd index [files...]
    tmd list [query...]
    tmd search <text> [query...]
    tmd stats [query...]
    tmd show <global-id>
    tmd done <global-id>
    tmd undone <global-id>

Queries are key:value filters. Words side by side are AND-ed, "|" or OR
separates alternatives and parentheses group:

    tmd list project:home energy:low
    tmd list "(bucket:today | plan:today)" priority:high
    tmd list today --sort due,priority

Shorthand words: open, done, all (status) and today
(bucket:today | plan:today | due:today).

Exit status is 1 on errors and 2 on usage errors (bad flags, bad query,
no index built yet).
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from todosmd.config import load_config, resolve_files, resolve_output
from todosmd.editor import cascade_done, set_task_status
from todosmd.errors import CliUsageError, QuerySyntaxError, TodosmdError
from todosmd.formatting import FORMAT_STYLES, format_grouped, format_json_listing, format_task_full, task_to_dict
from todosmd.indexer.index_file import read_index_file, write_index_file
from todosmd.indexer.indexer import build_index
from todosmd.models.index import TaskIndex
from todosmd.query.filters import parse_filter_args
from todosmd.query.pipeline import QueryResult, expand_shorthands, run_query
from todosmd.query.sorting import GROUP_FIELDS, group_tasks
from todosmd.stats import PERIODS, calculate_stats, format_stats

log = logging.getLogger(__name__)


# --- helpers ---

def _load_index(args) -> TaskIndex:
    index = read_index_file(args.output)
    if index is None:
        raise CliUsageError(f"No index found at {args.output}. Run `tmd index` first.")
    return index


def _run(args, index: TaskIndex, default_status: Optional[str], text: Optional[str] = None) -> QueryResult:
    # Quoted arguments may hold several filters, so re-split on whitespace
    query = " ".join(expand_shorthands(args.query))
    sort = [s.strip() for s in (args.sort or args.config.default_sort).split(",") if s.strip()]
    try:
        return run_query(
            index.tasks.values(),
            query,
            default_status=default_status,
            text=text,
            sort=sort,
            priority_order=args.priority_order,
            limit=args.limit,
        )
    except QuerySyntaxError as e:
        raise CliUsageError(str(e)) from e
    except ValueError as e:
        # Unknown sort field
        raise CliUsageError(str(e)) from e


def _first_group_filters(result: QueryResult) -> dict:
    groups = result.filter_groups
    return parse_filter_args(groups[0]).to_dict() if groups else {}


# --- index ---

def index_cmd(args) -> int:
    """Rebuild the index from markdown files and write it as JSON."""
    files = resolve_files(args.config, args.files)
    result = build_index(files)
    write_index_file(result.index, args.output)

    if args.json:
        print(json.dumps(
            {
                "output": args.output,
                "stats": result.stats.to_dict(),
                "warnings": [w.to_dict() for w in result.warnings],
            },
            indent=2,
        ))
        return 0

    stats = result.stats
    print(
        f"Indexed {stats.files_parsed} file(s): {stats.projects} project(s), "
        f"{stats.tasks.total} task(s) ({stats.tasks.open} open, {stats.tasks.done} done)"
    )
    print(f"Wrote {args.output}")
    if result.warnings:
        print(f"{len(result.warnings)} warning(s):")
        for w in result.warnings:
            print(f"  {w.location}: {w.message}")
    return 0


# --- list ---

def list_cmd(args) -> int:
    """List tasks matching a query (default status: open)."""
    index = _load_index(args)
    result = _run(args, index, default_status="open")

    if args.json:
        print(format_json_listing(result.tasks, result.filter_groups, filters=_first_group_filters(result)))
        return 0

    if not result.tasks:
        print("No tasks found matching filters.")
        return 0

    group_by = args.group_by or args.config.default_group_by
    print(format_grouped(group_tasks(result.tasks, group_by), index, group_by=group_by, style=args.format))
    return 0


# --- search ---

def search_cmd(args) -> int:
    """Case-insensitive text search, narrowed by an optional query."""
    index = _load_index(args)
    result = _run(args, index, default_status="open", text=args.text)

    if args.json:
        print(format_json_listing(
            result.tasks, result.filter_groups, filters=_first_group_filters(result), query=args.text
        ))
        return 0

    if not result.tasks:
        print(f'No tasks found matching "{args.text}"')
        return 0

    for task in result.tasks:
        print(f"[{task.global_id}] {task.text}")
        print(f"  file: {task.file_path}:{task.line_number}")
    print(f"{len(result.tasks)} task(s) found.")
    return 0


# --- stats ---

def stats_cmd(args) -> int:
    """Task statistics over a query (default status: all)."""
    index = _load_index(args)
    result = _run(args, index, default_status="all")
    stats = calculate_stats(result.tasks, period=args.period)

    if args.json:
        print(json.dumps(stats.to_dict(), indent=2))
    else:
        print(format_stats(stats), end="")
    return 0


# --- show ---

def show_cmd(args) -> int:
    """Show one task in full."""
    index = _load_index(args)
    task = index.tasks.get(args.global_id)
    if task is None:
        print(f"Error: Task '{args.global_id}' not found.", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(task_to_dict(task), indent=2))
    else:
        print(format_task_full(task, index))
    return 0


# --- done / undone ---

def _set_status(args, new_status: str) -> int:
    if ":" not in args.global_id:
        raise CliUsageError(
            f"Invalid task ID format: '{args.global_id}'. Expected 'project:localId' (e.g. 'home:1.2')."
        )
    index = _load_index(args)
    task = index.tasks.get(args.global_id)
    if task is None:
        raise CliUsageError(f"Task '{args.global_id}' not found.")

    previous = "done" if task.completed else "open"
    file_info = {"path": task.file_path, "line": task.line_number}

    if previous == new_status:
        message = f"Task already {new_status}"
        if args.json:
            print(json.dumps(
                {
                    "success": True,
                    "task": {"globalId": task.global_id, "text": task.text,
                             "previousStatus": previous, "newStatus": new_status},
                    "cascaded": [],
                    "file": file_info,
                    "reindexed": False,
                    "message": message,
                },
                indent=2,
            ))
        else:
            print(f"{message}: {task.global_id} ({task.text})")
        return 0

    set_task_status(task.file_path, task.line_number, task.text, new_status)
    cascaded = cascade_done(index, task) if new_status == "done" else []

    reindexed = False
    if not args.no_reindex:
        result = build_index(resolve_files(args.config, args.files))
        write_index_file(result.index, args.output)
        reindexed = True

    if args.json:
        print(json.dumps(
            {
                "success": True,
                "task": {"globalId": task.global_id, "text": task.text,
                         "previousStatus": previous, "newStatus": new_status},
                "cascaded": [
                    {"globalId": c.global_id, "text": c.text, "previousStatus": "open", "newStatus": "done"}
                    for c in cascaded
                ],
                "file": file_info,
                "reindexed": reindexed,
            },
            indent=2,
        ))
        return 0

    label = "Marked as done:" if new_status == "done" else "Marked as undone:"
    print(f"{label} {task.global_id} ({task.text})")
    if cascaded:
        print(f"  Also marked done: {len(cascaded)} subtask(s)")
        for c in cascaded:
            print(f"    - {c.global_id} ({c.text})")
    print(f"  File: {task.file_path}:{task.line_number}")
    return 0


def done_cmd(args) -> int:
    """Mark a task and its open subtasks done, then reindex."""
    return _set_status(args, "done")


def undone_cmd(args) -> int:
    """Reopen a single task (no cascade), then reindex."""
    return _set_status(args, "open")


def _add_edit_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("global_id", help="Task global ID, e.g. home:1.2")
    p.add_argument("--json", action="store_true", help="JSON output")
    p.add_argument("--no-reindex", action="store_true", help="Don't rewrite the index after the edit")
    p.add_argument("-f", "--file", dest="files", action="append",
                   help="Input file used when reindexing (repeatable, default from config)")


def _add_query_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("query", nargs="*", help="Filters, e.g. project:home energy:low")
    p.add_argument("--sort", help="Comma-separated sort fields (due, plan, created, updated, "
                                  "project, energy, priority, bucket)")
    p.add_argument("--priority-order", choices=["high-first", "low-first"], default="high-first")
    p.add_argument("--limit", type=int, help="Maximum number of tasks")
    p.add_argument("--json", action="store_true", help="JSON output")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tmd",
        description="Query markdown task files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("-c", "--config", help="Config file (default: .todosmd.json, searched upwards)")
    parser.add_argument("-o", "--output", help="Index file (default from config: todos.json)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # --- index ---
    index_p = subparsers.add_parser("index", help="Build the task index")
    index_p.add_argument("files", nargs="*", help="Markdown files (default from config)")
    index_p.add_argument("--json", action="store_true", help="JSON output")
    index_p.set_defaults(func=index_cmd)

    # --- list ---
    list_p = subparsers.add_parser("list", help="List tasks")
    _add_query_args(list_p)
    list_p.add_argument("--group-by", choices=GROUP_FIELDS, help="Group output (default from config)")
    list_p.add_argument("-f", "--format", choices=FORMAT_STYLES, default="compact")
    list_p.set_defaults(func=list_cmd)

    # --- search ---
    search_p = subparsers.add_parser("search", help="Full-text search")
    search_p.add_argument("text", help="Text to search for")
    _add_query_args(search_p)
    search_p.set_defaults(func=search_cmd)

    # --- stats ---
    stats_p = subparsers.add_parser("stats", help="Task statistics")
    _add_query_args(stats_p)
    stats_p.add_argument("--period", choices=PERIODS, default="last-7d")
    stats_p.set_defaults(func=stats_cmd)

    # --- show ---
    show_p = subparsers.add_parser("show", help="Show a task")
    show_p.add_argument("global_id", help="Task global ID, e.g. home:1.2")
    show_p.add_argument("--json", action="store_true", help="JSON output")
    show_p.set_defaults(func=show_cmd)

    # --- done ---
    done_p = subparsers.add_parser("done", help="Mark a task done (cascades to subtasks)")
    _add_edit_args(done_p)
    done_p.set_defaults(func=done_cmd)

    # --- undone ---
    undone_p = subparsers.add_parser("undone", help="Reopen a task")
    _add_edit_args(undone_p)
    undone_p.set_defaults(func=undone_cmd)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point. Returns the exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if not hasattr(args, "func"):
        parser.print_help()
        return 2

    try:
        args.config = load_config(args.config)
        args.output = resolve_output(args.config, args.output)
        return args.func(args)
    except CliUsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except TodosmdError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
