"""
Line scanner for todos markdown files.

Main API:
    parse_file(path)                  → ParsedFile
    parse_content(content, file_path) → ParsedFile

Each body line is classified independently:

- ``# Name [project:id ...]``  → ParsedProject
- ``# Name [area:x]``          → ParsedAreaHeading (area without project)
- ``# Name``                   → ParsedSectionHeading
- ``# Name [other:meta]``      → skipped here; the linter reports it
- ``- [ ] text [id:1 ...]``    → ParsedTask

Scanning is a pure function of the text. Hierarchy (project context and
parent links) is resolved afterwards by parsers.hierarchy.
"""

import re
from pathlib import Path
from typing import Optional, Tuple, Union

from todosmd.models.parsed import (
    ParsedAreaHeading,
    ParsedFile,
    ParsedProject,
    ParsedSectionHeading,
    ParsedTask,
)
from todosmd.parsers.frontmatter import parse_frontmatter
from todosmd.parsers.metadata import parse_metadata_block

HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")
TASK_RE = re.compile(r"^(\s*)- \[([ xX])\]\s+(.+)$")


# ---------------------------------------------------------------------------
# Low-level parsers
# ---------------------------------------------------------------------------

def indent_level(indent_str: str) -> int:
    """
    Indent width of a task line.

    Every leading whitespace character counts as one, tabs included. Anything
    that normalizes tabs elsewhere must use the same rule or parent links will
    disagree.
    """
    return len(indent_str)


def _parse_heading(line: str) -> Optional[Tuple[int, str]]:
    """Return (level, content) or None if line is not a heading."""
    m = HEADING_RE.match(line)
    if not m:
        return None
    return len(m.group(1)), m.group(2)


def _parse_task_line(line: str) -> Optional[dict]:
    """Return task dict or None if line is not a task."""
    m = TASK_RE.match(line)
    if not m:
        return None
    return {
        "indent_level": indent_level(m.group(1)),
        "completed": m.group(2).lower() == "x",
        "content": m.group(3),
    }


# ---------------------------------------------------------------------------
# Main parse API
# ---------------------------------------------------------------------------

def parse_content(content: str, file_path: Union[str, Path] = "") -> ParsedFile:
    """
    Scan markdown content into projects, headings and tasks.

    Args:
        content: Full file content as a string
        file_path: Source path, stored on every parsed item

    Returns:
        ParsedFile with items in source order. Line numbers are 1-based and
        refer to the original content, frontmatter included.
    """
    path_str = str(file_path)
    frontmatter, body, offset = parse_frontmatter(content)
    parsed = ParsedFile(file_path=path_str, frontmatter=frontmatter)

    for line_num, line in enumerate(body.split("\n"), start=offset + 1):
        line = line.rstrip("\r")

        heading = _parse_heading(line)
        if heading:
            level, heading_content = heading
            _classify_heading(parsed, heading_content, level, line_num)
            continue

        td = _parse_task_line(line)
        if td is None:
            continue

        meta = parse_metadata_block(td["content"])
        parsed.tasks.append(
            ParsedTask(
                local_id=meta.metadata.get("id"),
                text=meta.text_without_metadata.strip(),
                completed=td["completed"],
                file_path=path_str,
                line_number=line_num,
                indent_level=td["indent_level"],
                raw_line=line,
                metadata=meta.metadata,
            )
        )

    return parsed


def _classify_heading(parsed: ParsedFile, content: str, level: int, line_num: int) -> None:
    meta = parse_metadata_block(content)
    name = meta.text_without_metadata.strip()

    if not meta.has_metadata:
        parsed.section_headings.append(
            ParsedSectionHeading(
                name=name,
                file_path=parsed.file_path,
                line_number=line_num,
                heading_level=level,
            )
        )
    elif "project" in meta.metadata:
        parsed.projects.append(
            ParsedProject(
                id=meta.metadata["project"],
                name=name,
                area=meta.metadata.get("area"),
                file_path=parsed.file_path,
                line_number=line_num,
                heading_level=level,
                metadata=meta.metadata,
            )
        )
    elif "area" in meta.metadata:
        parsed.area_headings.append(
            ParsedAreaHeading(
                area=meta.metadata["area"],
                name=name,
                file_path=parsed.file_path,
                line_number=line_num,
                heading_level=level,
                metadata=meta.metadata,
            )
        )


def parse_file(file_path: Union[str, Path]) -> ParsedFile:
    """Read and scan a markdown file (UTF-8)."""
    return parse_content(Path(file_path).read_text(encoding="utf-8"), file_path)
