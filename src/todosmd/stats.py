"""
Task statistics.

calculate_stats() summarizes a (usually already filtered) task list:

    overview: total / open / done
    by_bucket: open tasks per bucket
    by_energy: open tasks per energy level
    by_priority: open tasks per priority
    completed: done tasks whose ``updated`` date falls today, in the last
      7 and 30 days, plus a per-day breakdown of the last 7 days
    top_projects: the five projects with the most open tasks
    overdue: open tasks due before today, in total and per project
    estimate: summed ``est`` of open tasks
"""

from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence

from todosmd.models.index import Task
from todosmd.utils.dates import (
    duration_to_minutes,
    format_date,
    is_date_in_range,
    is_overdue,
    minutes_to_duration,
    parse_date_spec,
)

PERIODS = ("today", "last-7d", "last-30d", "this-week")
TOP_PROJECT_COUNT = 5


@dataclass
class ProjectSummary:
    id: str
    open: int = 0
    due_this_week: int = 0
    overdue: int = 0


@dataclass
class TaskStats:
    period: str
    overview: Dict[str, int]
    by_bucket: Dict[str, int]
    by_energy: Dict[str, int]
    by_priority: Dict[str, int]
    completed: Dict[str, object]
    top_projects: List[ProjectSummary] = field(default_factory=list)
    overdue: Dict[str, object] = field(default_factory=dict)
    estimate: Dict[str, object] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


def _last_n_days(n: int, today: date) -> List[str]:
    return [format_date(today - timedelta(days=i)) for i in range(n)]


def calculate_stats(tasks: Sequence[Task], period: str = "last-7d", today: Optional[date] = None) -> TaskStats:
    """
    Summarize ``tasks``.

    Args:
        tasks: Tasks to summarize (filter first; nothing is excluded here)
        period: Reporting period label, one of PERIODS
        today: Reference day (default: the current date)

    Raises:
        ValueError: unknown period
    """
    if period not in PERIODS:
        raise ValueError(f"Invalid period: '{period}'. Use {', '.join(PERIODS)}.")
    today = today or date.today()
    today_str = format_date(today)

    open_tasks = [t for t in tasks if not t.completed]
    done_tasks = [t for t in tasks if t.completed]

    by_bucket = {"now": 0, "today": 0, "upcoming": 0, "anytime": 0, "someday": 0}
    by_energy = {"low": 0, "normal": 0, "high": 0}
    by_priority = {"high": 0, "normal": 0, "low": 0}
    for task in open_tasks:
        if task.bucket:
            by_bucket[task.bucket] = by_bucket.get(task.bucket, 0) + 1
        if task.energy:
            by_energy[task.energy] += 1
        if task.priority:
            by_priority[task.priority] += 1

    last_7 = _last_n_days(7, today)
    last_30 = set(_last_n_days(30, today))
    completed_days = Counter(t.updated for t in done_tasks if t.updated)
    completed = {
        "today": completed_days.get(today_str, 0),
        "last_7d": sum(completed_days.get(d, 0) for d in last_7),
        "last_30d": sum(n for d, n in completed_days.items() if d in last_30),
        "by_day": {d: completed_days.get(d, 0) for d in last_7},
    }

    this_week = parse_date_spec("this-week", today=today)
    projects: Dict[str, ProjectSummary] = {}
    overdue_by_project: Dict[str, int] = {}
    for task in open_tasks:
        summary = projects.setdefault(task.project_id, ProjectSummary(id=task.project_id))
        summary.open += 1
        if is_overdue(task.due, today=today):
            summary.overdue += 1
            overdue_by_project[task.project_id] = overdue_by_project.get(task.project_id, 0) + 1
        if this_week and is_date_in_range(task.due, this_week):
            summary.due_this_week += 1

    # sorted() is stable, so equal counts keep first-seen order
    top_projects = sorted(projects.values(), key=lambda p: -p.open)[:TOP_PROJECT_COUNT]

    est_minutes = sum(duration_to_minutes(t.est or "") or 0 for t in open_tasks)

    return TaskStats(
        period=period,
        overview={"total": len(tasks), "open": len(open_tasks), "done": len(done_tasks)},
        by_bucket=by_bucket,
        by_energy=by_energy,
        by_priority=by_priority,
        completed=completed,
        top_projects=top_projects,
        overdue={"total": sum(overdue_by_project.values()), "by_project": overdue_by_project},
        estimate={"open_minutes": est_minutes, "open": minutes_to_duration(est_minutes)},
    )


def format_stats(stats: TaskStats) -> str:
    """Plain-text report for the CLI."""
    labels = {"today": "today", "last-7d": "last 7 days", "last-30d": "last 30 days", "this-week": "this week"}
    lines = [f"Task Stats ({labels[stats.period]})", "=" * 24, ""]

    ov = stats.overview
    lines += ["Overview:", f"  Total: {ov['total']} tasks", f"  Open: {ov['open']} | Done: {ov['done']}", ""]

    for title, counts in (
        ("By Bucket (open):", stats.by_bucket),
        ("By Energy (open):", stats.by_energy),
        ("By Priority (open):", stats.by_priority),
    ):
        rows = [f"  {k:<10} {v}" for k, v in counts.items() if v > 0]
        if rows:
            lines += [title, *rows, ""]

    c = stats.completed
    lines += [
        "Completed:",
        f"  Today: {c['today']} | Last 7d: {c['last_7d']} | Last 30d: {c['last_30d']}",
        "",
    ]

    if stats.top_projects:
        lines.append("Top Projects (open):")
        for p in stats.top_projects:
            extra = []
            if p.due_this_week:
                extra.append(f"{p.due_this_week} due this week")
            if p.overdue:
                extra.append(f"{p.overdue} overdue")
            suffix = f" ({', '.join(extra)})" if extra else ""
            lines.append(f"  {p.id:<16} {p.open}{suffix}")
        lines.append("")

    if stats.overdue["total"]:
        lines.append(f"Overdue: {stats.overdue['total']}")
        for project_id, n in stats.overdue["by_project"].items():
            lines.append(f"  {project_id:<16} {n}")
        lines.append("")

    if stats.estimate["open"]:
        lines.append(f"Open estimate: {stats.estimate['open']}")

    return "\n".join(lines).rstrip() + "\n"
