"""
Task index assembler.

Main API:
    build_index(file_paths)        → IndexerResult
    index_parsed_files(parsed)     → IndexerResult

Every file is scanned and run through the hierarchy builder, then merged into
one global store:

    projects    Dict[str, Project]         first definition wins, duplicates warn
    areas       Dict[str, AreaHeading]     first heading wins, silently
    sections    Dict[str, SectionHeading]  non-addressable, nested by heading level
    tasks       Dict[str, Task]            keyed by "<project>:<local id>"

Parent and children links are rewritten from local ids to global ids only
after every file has been merged, so a reference is resolved against the
complete store. References that cannot be resolved are dropped without a
warning; whatever caused them (a duplicate id, a task outside any project)
has already produced one.

Nothing here raises on malformed input. Every anomaly becomes an
IndexWarning and the best-effort index is always returned.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from todosmd.models.index import (
    INDEX_VERSION,
    AreaHeading,
    Project,
    SectionHeading,
    Task,
    TaskIndex,
)
from todosmd.models.parsed import (
    ParsedAreaHeading,
    ParsedFile,
    ParsedProject,
    TaskWithHierarchy,
)
from todosmd.parsers.hierarchy import build_hierarchy
from todosmd.parsers.markdown_parser import parse_file

log = logging.getLogger(__name__)

_LEVELS = ("low", "normal", "high")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class IndexWarning:
    file: str
    message: str
    line: Optional[int] = None

    @property
    def location(self) -> str:
        return f"{self.file}:{self.line}" if self.line else self.file

    def to_dict(self) -> dict:
        return {"file": self.file, "line": self.line, "message": self.message}


@dataclass
class TaskCounts:
    total: int = 0
    open: int = 0
    done: int = 0


@dataclass
class IndexStats:
    files_parsed: int = 0
    projects: int = 0
    tasks: TaskCounts = field(default_factory=TaskCounts)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class IndexerResult:
    index: TaskIndex
    stats: IndexStats
    warnings: List[IndexWarning]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _fnv1a_base36(text: str) -> str:
    """32-bit FNV-1a hash of ``text`` rendered in base 36."""
    h = 0x811C9DC5
    for ch in text:
        h ^= ord(ch)
        h = (h * 0x01000193) & 0xFFFFFFFF
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    out = ""
    while True:
        h, rem = divmod(h, 36)
        out = digits[rem] + out
        if h == 0:
            return out


def make_section_id(project_id: str, file_path: str, line_number: int, heading_level: int) -> str:
    return f"sec:{project_id}:{_fnv1a_base36(file_path)}:{line_number}:{heading_level}"


def _parent_area(project: ParsedProject, area_headings: List[ParsedAreaHeading]) -> Optional[str]:
    """Area of the nearest enclosing area heading (earlier line, shallower level)."""
    best: Optional[ParsedAreaHeading] = None
    for heading in area_headings:
        if heading.file_path != project.file_path:
            continue
        if heading.line_number >= project.line_number or heading.heading_level >= project.heading_level:
            continue
        if best is None or heading.line_number > best.line_number:
            best = heading
    return best.area if best else None


def _project_at(line_number: int, projects: List[ParsedProject]) -> Optional[str]:
    """Id of the last project heading above ``line_number``."""
    project_id = None
    for project in sorted(projects, key=lambda p: p.line_number):
        if project.line_number < line_number:
            project_id = project.id
        else:
            break
    return project_id


def _build_sections(parsed: ParsedFile) -> List[SectionHeading]:
    by_project: Dict[str, List[dict]] = {}
    for heading in sorted(parsed.section_headings, key=lambda h: h.line_number):
        project_id = _project_at(heading.line_number, parsed.projects)
        if project_id is None:
            continue
        by_project.setdefault(project_id, []).append(
            {
                "id": make_section_id(project_id, parsed.file_path, heading.line_number, heading.heading_level),
                "project_id": project_id,
                "name": heading.name,
                "file_path": parsed.file_path,
                "line_number": heading.line_number,
                "heading_level": heading.heading_level,
                "parent_id": None,
            }
        )

    sections: List[SectionHeading] = []
    for entries in by_project.values():
        stack: List[dict] = []
        for entry in entries:
            while stack and stack[-1]["heading_level"] >= entry["heading_level"]:
                stack.pop()
            entry["parent_id"] = stack[-1]["id"] if stack else None
            stack.append(entry)
            sections.append(SectionHeading(**entry))
    return sections


def _level(value: Optional[str]) -> Optional[str]:
    return value if value in _LEVELS else None


def _split_tags(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    return [tag for tag in value.split(",") if tag]


# ---------------------------------------------------------------------------
# Assembler
# ---------------------------------------------------------------------------

@dataclass
class _PendingTask:
    global_id: str
    node: TaskWithHierarchy
    project_area: Optional[str]


class _IndexBuilder:
    """Accumulates files; nothing is frozen into the index until finish()."""

    def __init__(self) -> None:
        self.areas: Dict[str, AreaHeading] = {}
        self.projects: Dict[str, Project] = {}
        self.sections: Dict[str, SectionHeading] = {}
        self.pending: Dict[str, _PendingTask] = {}
        self.warnings: List[IndexWarning] = []
        self.files_parsed = 0

    def warn(self, file: str, message: str, line: Optional[int] = None) -> None:
        warning = IndexWarning(file=file, message=message, line=line)
        log.warning("%s: %s", warning.location, message)
        self.warnings.append(warning)

    def add_file(self, parsed: ParsedFile) -> None:
        path = parsed.file_path
        nodes = build_hierarchy(parsed)
        self.files_parsed += 1

        for heading in parsed.area_headings:
            if heading.area not in self.areas:
                self.areas[heading.area] = AreaHeading(
                    area=heading.area,
                    name=heading.name,
                    file_path=heading.file_path,
                    line_number=heading.line_number,
                    heading_level=heading.heading_level,
                )

        for project in parsed.projects:
            if project.id in self.projects:
                self.warn(path, f"Duplicate project ID '{project.id}'", project.line_number)
                continue
            parent_area = _parent_area(project, parsed.area_headings)
            self.projects[project.id] = Project(
                id=project.id,
                name=project.name,
                area=project.area or parent_area,
                parent_area=parent_area,
                file_path=project.file_path,
                line_number=project.line_number,
            )

        for section in _build_sections(parsed):
            if section.id in self.sections:
                self.warn(path, f"Duplicate section ID '{section.id}'", section.line_number)
                continue
            self.sections[section.id] = section

        for node in nodes:
            if not node.local_id:
                # ID-less tasks are a lint concern, not an index one
                continue
            if not node.project_id:
                self.warn(path, f"Task '{node.local_id}' has no project context", node.line_number)
                continue

            global_id = f"{node.project_id}:{node.local_id}"
            if global_id in self.pending:
                self.warn(path, f"Duplicate global ID '{global_id}'", node.line_number)
                continue

            project = self.projects.get(node.project_id)
            self.pending[global_id] = _PendingTask(
                global_id=global_id,
                node=node,
                project_area=project.area if project else None,
            )

        log.debug("Scanned %s: %d projects, %d tasks", path, len(parsed.projects), len(nodes))

    def _resolve_parent(self, pending: _PendingTask) -> Optional[str]:
        node = pending.node
        if not node.parent_local_id:
            return None
        parent_id = f"{node.project_id}:{node.parent_local_id}"
        parent = self.pending.get(parent_id)
        # A same-id task from another file is not this task's parent
        if parent is None or parent.node.task.file_path != node.task.file_path:
            return None
        return parent_id

    def _resolve_children(self, pending: _PendingTask, parents: Dict[str, Optional[str]]) -> List[str]:
        """Children whose own resolved parent is this task, in source order."""
        node = pending.node
        children: List[str] = []
        for local_id in node.children_local_ids:
            child_id = f"{node.project_id}:{local_id}"
            if parents.get(child_id) == pending.global_id and child_id not in children:
                children.append(child_id)
        return children

    def _to_task(self, pending: _PendingTask, parents: Dict[str, Optional[str]]) -> Task:
        node = pending.node
        meta = node.task.metadata
        return Task(
            global_id=pending.global_id,
            local_id=node.local_id,
            project_id=node.project_id,
            text=node.task.text,
            completed=node.task.completed,
            energy=_level(meta.get("energy")) or "normal",
            priority=_level(meta.get("priority")),
            est=meta.get("est"),
            due=meta.get("due"),
            plan=meta.get("plan"),
            bucket=meta.get("bucket"),
            area=meta.get("area") or pending.project_area,
            tags=_split_tags(meta.get("tags")),
            created=meta.get("created"),
            updated=meta.get("updated"),
            file_path=node.task.file_path,
            line_number=node.line_number,
            indent_level=node.indent_level,
            parent_id=parents[pending.global_id],
            children_ids=self._resolve_children(pending, parents),
        )

    def finish(self, files: List[str]) -> IndexerResult:
        parents = {gid: self._resolve_parent(p) for gid, p in self.pending.items()}
        tasks = {gid: self._to_task(p, parents) for gid, p in self.pending.items()}

        done = sum(1 for t in tasks.values() if t.completed)
        stats = IndexStats(
            files_parsed=self.files_parsed,
            projects=len(self.projects),
            tasks=TaskCounts(total=len(tasks), open=len(tasks) - done, done=done),
        )

        index = TaskIndex(
            version=INDEX_VERSION,
            generated_at=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            files=files,
            areas=self.areas,
            projects=self.projects,
            sections=self.sections,
            tasks=tasks,
        )
        log.info(
            "Indexed %d file(s): %d projects, %d tasks (%d open, %d done), %d warning(s)",
            stats.files_parsed,
            stats.projects,
            stats.tasks.total,
            stats.tasks.open,
            stats.tasks.done,
            len(self.warnings),
        )
        return IndexerResult(index=index, stats=stats, warnings=self.warnings)


def index_parsed_files(parsed_files: Iterable[ParsedFile]) -> IndexerResult:
    """Assemble an index from files that have already been scanned."""
    builder = _IndexBuilder()
    files: List[str] = []
    for parsed in parsed_files:
        files.append(parsed.file_path)
        builder.add_file(parsed)
    return builder.finish(files)


def build_index(file_paths: Iterable[Union[str, Path]]) -> IndexerResult:
    """
    Read, scan and merge markdown files into a fresh TaskIndex.

    A file that cannot be read is reported as a warning and skipped; it
    still counts towards ``files`` so the caller can see what was requested.

    Args:
        file_paths: Markdown files, in the order they should be merged

    Returns:
        IndexerResult with the index, summary stats and warnings
    """
    builder = _IndexBuilder()
    files: List[str] = []
    for path in file_paths:
        path_str = str(path)
        files.append(path_str)
        try:
            parsed = parse_file(path_str)
        except (OSError, UnicodeDecodeError) as e:
            builder.warn(path_str, f"Could not read file: {e}")
            continue
        builder.add_file(parsed)
    return builder.finish(files)
