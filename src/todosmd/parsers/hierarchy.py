"""
Per-file hierarchy reconstruction.

Walks a ParsedFile's project headings and tasks in line order as a left fold,
threading a _ScanState through each step. Tasks are stored in an arena (a
plain list) and the open ancestors are a stack of arena indices, ordered by
strictly increasing indent.

Rules:
- A task's project is the last project heading above it (None if none yet).
- Before resolving a task, every open ancestor with indent >= the task's
  indent is closed. This handles indent dropping by several levels at once.
- The parent is the nearest remaining ancestor that has a local id. ID-less
  tasks stay on the stack, so their children chain past them to the next
  ID-bearing ancestor, but they are never anyone's parent.
- A project heading closes every open ancestor, so parents never cross
  project boundaries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from todosmd.models.parsed import ParsedFile, ParsedProject, ParsedTask, TaskWithHierarchy


@dataclass
class _ScanState:
    current_project_id: Optional[str] = None
    open_ancestors: List[int] = field(default_factory=list)


def _step_project(state: _ScanState, project: ParsedProject) -> _ScanState:
    return _ScanState(current_project_id=project.id, open_ancestors=[])


def _step_task(
    state: _ScanState,
    task: ParsedTask,
    arena: List[TaskWithHierarchy],
) -> _ScanState:
    stack = [i for i in state.open_ancestors if arena[i].indent_level < task.indent_level]

    parent_local_id = None
    for idx in reversed(stack):
        if arena[idx].local_id:
            parent_local_id = arena[idx].local_id
            break

    arena.append(
        TaskWithHierarchy(
            task=task,
            project_id=state.current_project_id,
            parent_local_id=parent_local_id,
        )
    )
    stack.append(len(arena) - 1)
    return _ScanState(current_project_id=state.current_project_id, open_ancestors=stack)


def build_hierarchy(parsed_file: ParsedFile) -> List[TaskWithHierarchy]:
    """
    Assign project context and parent/child links to every task in a file.

    Returns:
        One TaskWithHierarchy per parsed task, in source order
    """
    events: List[Union[ParsedProject, ParsedTask]] = [*parsed_file.projects, *parsed_file.tasks]
    # Projects sort ahead of a task on the same line (cannot happen in practice)
    events.sort(key=lambda e: (e.line_number, isinstance(e, ParsedTask)))

    arena: List[TaskWithHierarchy] = []
    state = _ScanState()
    for event in events:
        if isinstance(event, ParsedProject):
            state = _step_project(state, event)
        else:
            state = _step_task(state, event, arena)

    _link_children(arena)
    return arena


def _link_children(arena: List[TaskWithHierarchy]) -> None:
    """Populate children_local_ids from the completed parent links."""
    by_key: Dict[str, TaskWithHierarchy] = {}
    for node in arena:
        key = node.composite_key
        if key is not None:
            # First occurrence wins, matching the indexer's duplicate handling
            by_key.setdefault(key, node)

    for node in arena:
        if not node.parent_local_id or not node.project_id or not node.local_id:
            continue
        parent = by_key.get(f"{node.project_id}:{node.parent_local_id}")
        if parent is not None and node.local_id not in parent.children_local_ids:
            parent.children_local_ids.append(node.local_id)
