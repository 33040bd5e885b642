"""
In-place checkbox edits on markdown task lines.

Only the addressed line is rewritten, so line numbers recorded in the index
stay valid for every other task in the file. The line must still be a task
whose text (metadata block aside) matches what the index recorded;
otherwise the file changed since the last build and the edit is refused.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Union

from todosmd.errors import TaskEditError
from todosmd.models.index import Task, TaskIndex
from todosmd.parsers.markdown_parser import TASK_RE
from todosmd.parsers.metadata import parse_metadata_block, serialize_metadata

log = logging.getLogger(__name__)

TASK_STATUSES = ("open", "done")

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass
class EditResult:
    previous_status: str
    new_status: str
    already_in_state: bool = False


def _normalize_text(text: str) -> str:
    text = parse_metadata_block(text).text_without_metadata
    return _WHITESPACE_RE.sub(" ", text).strip().lower()


def _order_metadata(metadata: Dict[str, str]) -> Dict[str, str]:
    """``id`` first, then the remaining keys alphabetically."""
    ordered: Dict[str, str] = {}
    if metadata.get("id"):
        ordered["id"] = metadata["id"]
    for key in sorted(k for k in metadata if k != "id"):
        ordered[key] = metadata[key]
    return ordered


def set_task_status(
    file_path: Union[str, Path],
    line_number: int,
    expected_text: str,
    new_status: str,
    today: Optional[date] = None,
) -> EditResult:
    """
    Check or uncheck the task on ``line_number`` (1-based).

    A real change also stamps ``updated:<today>`` into the metadata block,
    which is re-emitted with ``id`` first and the other keys sorted.

    Raises:
        TaskEditError: missing file, line out of range, not a task line,
            or task text that no longer matches ``expected_text``
    """
    if new_status not in TASK_STATUSES:
        raise ValueError(f"Unknown task status: {new_status!r}")

    path = Path(file_path)
    if not path.is_file():
        raise TaskEditError(f"File not found: {path}")

    lines = path.read_text(encoding="utf-8").split("\n")
    index = line_number - 1
    if index < 0 or index >= len(lines):
        raise TaskEditError(f"Line {line_number} out of range ({path} has {len(lines)} lines)")

    line = lines[index]
    m = TASK_RE.match(line)
    if not m:
        raise TaskEditError(f'Line {line_number} is not a task: "{line}"')
    indent, checkbox, content = m.group(1), m.group(2), m.group(3)

    found = _normalize_text(content)
    expected = _normalize_text(expected_text)
    if found != expected:
        raise TaskEditError(
            f'Task text mismatch at line {line_number}. Expected "{expected}", found "{found}". '
            "Re-run `tmd index`."
        )

    current = "open" if checkbox == " " else "done"
    if current == new_status:
        return EditResult(previous_status=current, new_status=current, already_in_state=True)

    parsed = parse_metadata_block(content)
    metadata = dict(parsed.metadata)
    metadata["updated"] = (today or date.today()).isoformat()
    block = serialize_metadata(_order_metadata(metadata))
    text = parsed.text_without_metadata
    rebuilt = f"{text} {block}" if block else text

    mark = "[x]" if new_status == "done" else "[ ]"
    lines[index] = f"{indent}- {mark} {rebuilt}"
    path.write_text("\n".join(lines), encoding="utf-8")

    log.info("Marked %s:%d %s", path, line_number, new_status)
    return EditResult(previous_status=current, new_status=new_status)


def mark_task_done(file_path, line_number: int, expected_text: str, today: Optional[date] = None) -> EditResult:
    return set_task_status(file_path, line_number, expected_text, "done", today=today)


def mark_task_undone(file_path, line_number: int, expected_text: str, today: Optional[date] = None) -> EditResult:
    return set_task_status(file_path, line_number, expected_text, "open", today=today)


def cascade_done(index: TaskIndex, task: Task, today: Optional[date] = None) -> List[Task]:
    """
    Mark every open descendant of ``task`` done, depth first.

    Returns the descendants that were actually changed. A subtask whose
    line no longer matches the index is logged and skipped. Undone never
    cascades, so there is no counterpart for reopening.
    """
    changed: List[Task] = []

    def visit(parent: Task) -> None:
        for child_id in parent.children_ids:
            child = index.tasks.get(child_id)
            if child is None:
                continue
            if not child.completed:
                try:
                    result = mark_task_done(child.file_path, child.line_number, child.text, today=today)
                except TaskEditError as e:
                    log.warning("Skipped subtask %s: %s", child.global_id, e)
                else:
                    if not result.already_in_state:
                        changed.append(child)
            visit(child)

    visit(task)
    return changed
