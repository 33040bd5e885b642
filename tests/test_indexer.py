"""
Tests for indexer/indexer.py and indexer/index_file.py.

Covers:
- End-to-end build over two files, plus queries against the result
- Warnings: duplicate project, duplicate global id, task outside a project,
  unreadable file
- Area inheritance, metadata normalization, sections
- Index persistence: camelCase JSON, version rejection, bad JSON
"""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from todosmd.errors import IndexFormatError, IndexVersionError
from todosmd.indexer import build_index, index_parsed_files, make_section_id, read_index_file, write_index_file
from todosmd.parsers.markdown_parser import parse_content
from todosmd.query.filters import build_filter_groups, compose_filter_groups
from todosmd.query.parser import parse_query_to_filter_groups


def _write(tmp_path: Path, name: str, content: str) -> str:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return str(path)


def _index(content: str, name: str = "todos.md"):
    return index_parsed_files([parse_content(content, name)])


def _matching(index, query: str) -> set:
    matcher = compose_filter_groups(build_filter_groups(parse_query_to_filter_groups(query)))
    return {gid for gid, task in index.tasks.items() if matcher(task)}


@pytest.fixture
def two_files(tmp_path):
    a = _write(tmp_path, "a.md", "# A [project:a]\n- [ ] T1 [id:1]\n  - [ ] T2 [id:1.1]")
    b = _write(tmp_path, "b.md", "# B [project:b]\n- [ ] T3 [id:1]")
    return build_index([a, b])


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------

class TestEndToEnd:
    def test_links(self, two_files):
        tasks = two_files.index.tasks
        assert tasks["a:1"].children_ids == ["a:1.1"]
        assert tasks["a:1.1"].parent_id == "a:1"
        assert tasks["b:1"].parent_id is None
        assert two_files.warnings == []

    def test_project_query(self, two_files):
        assert _matching(two_files.index, "project:a") == {"a:1", "a:1.1"}

    def test_multi_value_query(self, two_files):
        assert _matching(two_files.index, "project:a,b") == {"a:1", "a:1.1", "b:1"}

    def test_top_level_query(self, two_files):
        assert _matching(two_files.index, "top-level:true") == {"a:1", "b:1"}

    def test_stats(self, two_files):
        stats = two_files.stats
        assert stats.files_parsed == 2
        assert stats.projects == 2
        assert (stats.tasks.total, stats.tasks.open, stats.tasks.done) == (3, 3, 0)

    def test_index_metadata(self, two_files):
        index = two_files.index
        assert index.version == 3
        assert index.generated_at.endswith("Z")
        assert [Path(f).name for f in index.files] == ["a.md", "b.md"]


# ---------------------------------------------------------------------------
# Warnings
# ---------------------------------------------------------------------------

class TestWarnings:
    def test_duplicate_global_id_first_wins(self):
        result = _index("# P [project:p]\n- [ ] First [id:1]\n- [ ] Second [id:1]\n")
        assert list(result.index.tasks) == ["p:1"]
        assert result.index.tasks["p:1"].text == "First"
        assert len(result.warnings) == 1
        assert "p:1" in result.warnings[0].message
        assert result.warnings[0].line == 3

    def test_duplicate_project_keeps_first(self, tmp_path):
        a = _write(tmp_path, "a.md", "# First [project:p]\n")
        b = _write(tmp_path, "b.md", "# Second [project:p]\n")
        result = build_index([a, b])
        assert result.index.projects["p"].name == "First"
        assert len(result.warnings) == 1
        assert result.warnings[0].file == b

    def test_task_without_project(self):
        result = _index("- [ ] Loose [id:1]\n")
        assert result.index.tasks == {}
        assert len(result.warnings) == 1
        assert "no project" in result.warnings[0].message

    def test_id_less_task_skipped_silently(self):
        result = _index("# P [project:p]\n- [ ] Nothing\n")
        assert result.index.tasks == {}
        assert result.warnings == []

    def test_unreadable_file(self, tmp_path):
        missing = str(tmp_path / "missing.md")
        result = build_index([missing])
        assert result.index.tasks == {}
        assert result.index.files == [missing]
        assert result.stats.files_parsed == 0
        assert len(result.warnings) == 1
        assert result.warnings[0].file == missing

    def test_global_ids_unique(self, tmp_path):
        a = _write(tmp_path, "a.md", "# P [project:p]\n- [ ] A [id:1]\n- [ ] B [id:2]\n")
        b = _write(tmp_path, "b.md", "# P2 [project:p]\n- [ ] C [id:1]\n- [ ] D [id:3]\n")
        result = build_index([a, b])
        ids = list(result.index.tasks)
        assert len(ids) == len(set(ids))
        assert set(ids) == {"p:1", "p:2", "p:3"}

    def test_cross_file_duplicate_does_not_adopt_children(self, tmp_path):
        a = _write(tmp_path, "a.md", "# P [project:p]\n- [ ] A [id:1]\n")
        b = _write(tmp_path, "b.md", "# P again [project:p]\n- [ ] Dup [id:1]\n  - [ ] Child [id:1.1]\n")
        result = build_index([a, b])
        tasks = result.index.tasks
        assert tasks["p:1"].children_ids == []
        assert tasks["p:1.1"].parent_id is None


# ---------------------------------------------------------------------------
# Field normalization
# ---------------------------------------------------------------------------

class TestFields:
    AREAS = (
        "# Work [area:work]\n"
        "## Site [project:site]\n"
        "- [ ] A [id:1]\n"
        "- [ ] B [id:2 area:home]\n"
        "## Other [project:other area:personal]\n"
        "- [ ] C [id:1]\n"
    )

    def test_project_parent_area(self):
        projects = _index(self.AREAS).index.projects
        assert projects["site"].area == "work"
        assert projects["site"].parent_area == "work"
        assert projects["other"].area == "personal"
        assert projects["other"].parent_area == "work"

    def test_task_area_inheritance(self):
        tasks = _index(self.AREAS).index.tasks
        assert tasks["site:1"].area == "work"
        assert tasks["site:2"].area == "home"
        assert tasks["other:1"].area == "personal"

    def test_areas_registered(self):
        areas = _index(self.AREAS).index.areas
        assert list(areas) == ["work"]
        assert areas["work"].name == "Work"

    def test_metadata_normalization(self):
        result = _index(
            "# P [project:p]\n"
            "- [ ] A [id:1 energy:extreme priority:urgent tags:a,b,,c est:2h due:2025-03-01]\n"
            "- [x] B [id:2 energy:low priority:high updated:2025-02-01]\n"
        )
        a = result.index.tasks["p:1"]
        assert a.energy == "normal"
        assert a.priority is None
        assert a.tags == ["a", "b", "c"]
        assert a.est == "2h"
        assert a.due == "2025-03-01"
        assert a.created is None

        b = result.index.tasks["p:2"]
        assert b.completed is True
        assert b.energy == "low"
        assert b.priority == "high"
        assert b.updated == "2025-02-01"
        assert b.tags is None

    def test_task_location(self):
        task = _index("# P [project:p]\n\n  - [ ] A [id:1]\n", "x.md").index.tasks["p:1"]
        assert task.file_path == "x.md"
        assert task.line_number == 3
        assert task.indent_level == 2
        assert task.local_id == "1"
        assert task.project_id == "p"


class TestSections:
    def test_nesting(self):
        result = _index(
            "## Intro\n"
            "# P [project:p]\n"
            "## Backlog\n"
            "### Later\n"
            "## Done\n",
            "s.md",
        )
        sections = list(result.index.sections.values())
        assert [s.name for s in sections] == ["Backlog", "Later", "Done"]
        backlog, later, done = sections
        assert backlog.id == make_section_id("p", "s.md", 3, 2)
        assert backlog.id.startswith("sec:p:")
        assert later.parent_id == backlog.id
        assert done.parent_id is None
        assert all(s.project_id == "p" for s in sections)

    def test_section_id_stable(self):
        assert make_section_id("p", "a.md", 3, 2) == make_section_id("p", "a.md", 3, 2)
        assert make_section_id("p", "a.md", 3, 2) != make_section_id("p", "b.md", 3, 2)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class TestIndexFile:
    def test_write_and_read(self, two_files, tmp_path):
        out = tmp_path / "nested" / "todos.json"
        write_index_file(two_files.index, out)

        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["version"] == 3
        assert "generatedAt" in data
        assert data["tasks"]["a:1"]["childrenIds"] == ["a:1.1"]
        assert data["tasks"]["a:1.1"]["parentId"] == "a:1"

        loaded = read_index_file(out)
        assert loaded.model_dump() == two_files.index.model_dump()

    def test_missing_file(self, tmp_path):
        assert read_index_file(tmp_path / "nope.json") is None

    def test_version_mismatch(self, tmp_path):
        path = tmp_path / "old.json"
        path.write_text(json.dumps({"version": 1, "projects": {}, "tasks": {}}), encoding="utf-8")
        with pytest.raises(IndexVersionError) as exc:
            read_index_file(path)
        assert exc.value.found == 1
        assert exc.value.expected == 3

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(IndexFormatError):
            read_index_file(path)

    def test_schema_mismatch(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"version": 3, "tasks": {"x": {"globalId": "x"}}}), encoding="utf-8")
        with pytest.raises(IndexFormatError):
            read_index_file(path)
