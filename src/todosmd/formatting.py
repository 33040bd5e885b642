"""
Plain-text and JSON rendering of task listings.

Text output is uncoloured; terminal styling is left to the caller.
"""

import json
from typing import Dict, List, Optional, Sequence

from todosmd.models.index import Task, TaskIndex

FORMAT_STYLES = ("compact", "full")


def format_metadata(task: Task) -> str:
    parts = []
    if task.energy and task.energy != "normal":
        parts.append(f"energy:{task.energy}")
    if task.priority:
        parts.append(f"priority:{task.priority}")
    if task.est:
        parts.append(f"est:{task.est}")
    if task.due:
        parts.append(f"due:{task.due}")
    if task.plan:
        parts.append(f"plan:{task.plan}")
    if task.bucket:
        parts.append(f"bucket:{task.bucket}")
    return f"[{' '.join(parts)}]" if parts else ""


def format_task_compact(task: Task) -> str:
    """One line: padded global id, checkbox, text, metadata. Subtasks get a tree marker."""
    checkbox = "[x]" if task.completed else "[ ]"
    prefix = "└─ " if task.parent_id else ""
    meta = format_metadata(task)
    line = f"{task.global_id:<12} {prefix}{checkbox} {task.text}"
    return f"{line} {meta}" if meta else line


def format_task_full(task: Task, index: TaskIndex) -> str:
    project = index.projects.get(task.project_id)
    lines = [
        f"{task.global_id} - {task.text}",
        f"  Project: {f'{project.id} ({project.name})' if project else task.project_id}",
        f"  Status: {'done' if task.completed else 'open'}",
        f"  File: {task.file_path}:{task.line_number}",
    ]

    meta = []
    if task.energy:
        meta.append(f"Energy: {task.energy}")
    if task.priority:
        meta.append(f"Priority: {task.priority}")
    if task.est:
        meta.append(f"Est: {task.est}")
    if meta:
        lines.append(f"  {' | '.join(meta)}")

    for label, value in (
        ("Due", task.due),
        ("Plan", task.plan),
        ("Bucket", task.bucket),
        ("Area", task.area),
        ("Created", task.created),
        ("Updated", task.updated),
    ):
        if value:
            lines.append(f"  {label}: {value}")
    if task.tags:
        lines.append(f"  Tags: {', '.join(task.tags)}")

    if task.parent_id:
        parent = index.tasks.get(task.parent_id)
        suffix = f" ({parent.text})" if parent else ""
        lines.append(f"  Parent: {task.parent_id}{suffix}")
    if task.children_ids:
        lines.append(f"  Children: {', '.join(task.children_ids)}")
    return "\n".join(lines)


def summarize(tasks: Sequence[Task]) -> Dict[str, int]:
    done = sum(1 for t in tasks if t.completed)
    return {"total": len(tasks), "open": len(tasks) - done, "done": done}


def _group_heading(key: str, group_by: str, index: TaskIndex) -> Optional[str]:
    if not key:
        return None
    if group_by == "project":
        project = index.projects.get(key)
        if project:
            return f"## {project.id} ({project.name})"
    return f"## {key}"


def format_grouped(
    groups: Dict[str, List[Task]],
    index: TaskIndex,
    group_by: str = "project",
    style: str = "compact",
) -> str:
    """Render groups from group_tasks(), followed by a one-line summary."""
    lines: List[str] = []
    all_tasks: List[Task] = []
    for key, tasks in groups.items():
        heading = _group_heading(key, group_by, index)
        if heading:
            lines.append(heading)
        for task in tasks:
            lines.append(format_task_full(task, index) if style == "full" else format_task_compact(task))
        lines.append("")
        all_tasks.extend(tasks)

    s = summarize(all_tasks)
    lines.append(f"{s['total']} tasks ({s['open']} open, {s['done']} done)")
    return "\n".join(lines)


def task_to_dict(task: Task) -> dict:
    """camelCase dict, same shape as the persisted index entry."""
    return task.model_dump(by_alias=True)


def format_json_listing(
    tasks: Sequence[Task],
    filter_groups: List[List[str]],
    filters: Optional[dict] = None,
    query: Optional[str] = None,
) -> str:
    payload = {
        "filters": filters or {},
        "filterGroups": filter_groups,
        "tasks": [task_to_dict(t) for t in tasks],
        "summary": summarize(tasks),
    }
    if query is not None:
        payload["query"] = query
    return json.dumps(payload, indent=2)
