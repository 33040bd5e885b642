"""
Persisted index schema.

The TaskIndex is the root aggregate produced by indexer.build_index. It is
always rebuilt wholesale and never patched, so every model here is frozen.
JSON uses camelCase keys; Python attributes are snake_case.

Hierarchy links are global-id strings rather than object references, which
keeps the serialized index acyclic.
"""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

INDEX_VERSION = 3

Energy = Literal["low", "normal", "high"]
Priority = Literal["high", "normal", "low"]


class _IndexModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class AreaHeading(_IndexModel):
    area: str
    name: str
    file_path: str
    line_number: int
    heading_level: int


class Project(_IndexModel):
    id: str
    name: str
    area: Optional[str] = None
    parent_area: Optional[str] = None
    file_path: str
    line_number: int


class SectionHeading(_IndexModel):
    id: str
    project_id: str
    name: str
    file_path: str
    line_number: int
    heading_level: int
    parent_id: Optional[str] = None


class Task(_IndexModel):
    global_id: str
    local_id: str
    project_id: str
    text: str
    completed: bool

    energy: Optional[Energy] = None
    priority: Optional[Priority] = None
    est: Optional[str] = None
    due: Optional[str] = None
    plan: Optional[str] = None
    bucket: Optional[str] = None
    area: Optional[str] = None
    tags: Optional[List[str]] = None
    created: Optional[str] = None
    updated: Optional[str] = None

    file_path: str
    line_number: int
    indent_level: int

    parent_id: Optional[str] = None
    children_ids: List[str] = []


class TaskIndex(_IndexModel):
    version: Literal[3] = INDEX_VERSION
    generated_at: str
    files: List[str]
    areas: Dict[str, AreaHeading] = {}
    projects: Dict[str, Project] = {}
    sections: Dict[str, SectionHeading] = {}
    tasks: Dict[str, Task] = {}

    def to_json(self, indent: Optional[int] = 2) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)
