"""
Intermediate data models produced by the line scanner and hierarchy builder.

These are per-file, plain dataclasses. They carry raw metadata maps and
local ids only; the indexer turns them into the frozen schema models in
models.index.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union


@dataclass
class Frontmatter:
    """Flat key/value frontmatter from the top of a markdown file."""

    raw: Dict[str, Union[str, int]] = field(default_factory=dict)

    @property
    def task_format_version(self) -> Optional[int]:
        value = self.raw.get("task_format_version")
        return value if isinstance(value, int) else None


@dataclass
class ParsedProject:
    """A heading carrying ``[project:<id>]`` metadata."""

    id: str
    name: str
    file_path: str
    line_number: int
    heading_level: int
    area: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class ParsedAreaHeading:
    """A heading carrying ``[area:<name>]`` metadata and no project."""

    area: str
    name: str
    file_path: str
    line_number: int
    heading_level: int
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class ParsedSectionHeading:
    """A heading with no metadata block."""

    name: str
    file_path: str
    line_number: int
    heading_level: int


@dataclass
class ParsedTask:
    """A single checkbox line."""

    local_id: Optional[str]
    text: str
    completed: bool
    file_path: str
    line_number: int
    indent_level: int
    raw_line: str
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class ParsedFile:
    """Everything the line scanner found in one file, in source order."""

    file_path: str
    projects: List[ParsedProject] = field(default_factory=list)
    area_headings: List[ParsedAreaHeading] = field(default_factory=list)
    section_headings: List[ParsedSectionHeading] = field(default_factory=list)
    tasks: List[ParsedTask] = field(default_factory=list)
    frontmatter: Frontmatter = field(default_factory=Frontmatter)

    @property
    def format_version(self) -> Optional[int]:
        return self.frontmatter.task_format_version


@dataclass
class TaskWithHierarchy:
    """A parsed task with its project context and local-id links resolved."""

    task: ParsedTask
    project_id: Optional[str]
    parent_local_id: Optional[str] = None
    children_local_ids: List[str] = field(default_factory=list)

    @property
    def local_id(self) -> Optional[str]:
        return self.task.local_id

    @property
    def line_number(self) -> int:
        return self.task.line_number

    @property
    def indent_level(self) -> int:
        return self.task.indent_level

    @property
    def composite_key(self) -> Optional[str]:
        """``project:local`` key, or None when either part is missing."""
        if self.project_id and self.task.local_id:
            return f"{self.project_id}:{self.task.local_id}"
        return None
