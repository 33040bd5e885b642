"""
Exception hierarchy.

Indexing never raises for malformed markdown (anomalies become warnings).
These exceptions cover the places that do fail loudly: query syntax,
index persistence, configuration, task edits and CLI usage.
"""

from typing import Optional


class TodosmdError(Exception):
    """Base class for all todosmd errors."""


class QuerySyntaxError(TodosmdError, ValueError):
    """A query string could not be parsed."""


class IndexFormatError(TodosmdError):
    """An index file exists but is not valid JSON or does not match the schema."""


class IndexVersionError(IndexFormatError):
    """An index file was written with a different schema version."""

    def __init__(self, found: Optional[object], expected: int) -> None:
        super().__init__(
            f"Unsupported index version {found!r} (expected {expected}). "
            "Re-run `tmd index` to rebuild it."
        )
        self.found = found
        self.expected = expected


class ConfigError(TodosmdError):
    """The configuration file is unreadable or invalid."""


class CliUsageError(TodosmdError):
    """Invalid command-line usage."""


class TaskEditError(TodosmdError):
    """A task line could not be rewritten in its markdown file."""
