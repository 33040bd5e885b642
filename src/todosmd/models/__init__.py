from .parsed import (
    Frontmatter,
    ParsedAreaHeading,
    ParsedFile,
    ParsedProject,
    ParsedSectionHeading,
    ParsedTask,
    TaskWithHierarchy,
)
from .index import INDEX_VERSION, AreaHeading, Project, SectionHeading, Task, TaskIndex

__all__ = [
    "Frontmatter",
    "ParsedAreaHeading",
    "ParsedFile",
    "ParsedProject",
    "ParsedSectionHeading",
    "ParsedTask",
    "TaskWithHierarchy",
    "INDEX_VERSION",
    "AreaHeading",
    "Project",
    "SectionHeading",
    "Task",
    "TaskIndex",
]
