"""
Tests for the MCP task tools.

Tools are registered onto a fake FastMCP that records the decorated
functions, then called directly against a real IndexCache built from
temp markdown files.
"""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from todosmd.cache.index_cache import IndexCache
from todosmd.tools.task_tools import register_task_tools


TODOS = """\
# Errands [project:errands]
- [ ] Buy milk [id:1 bucket:today energy:low]
  - [ ] Check fridge first [id:1.1]
- [x] Post letter [id:2 updated:2025-03-10]
- [ ] Return books [id:3 priority:high due:2025-01-15]
"""


class _FakeMCP:
    """Minimal fake to capture tool registrations."""

    def __init__(self):
        self._tools = {}

    def tool(self, *args, **kwargs):
        """Decorator that records functions by name."""
        def decorator(fn):
            self._tools[fn.__name__] = fn
            return fn
        return decorator

    def get(self, name: str):
        return self._tools[name]


@pytest.fixture
def setup(tmp_path):
    todos = tmp_path / "todos.md"
    todos.write_text(TODOS, encoding="utf-8")

    cache = IndexCache()
    cache.initialize([todos])

    mcp = _FakeMCP()
    register_task_tools(mcp, cache)
    return mcp, cache, todos


def _call(mcp, name, **kwargs):
    return json.loads(mcp.get(name)(**kwargs))


class TestRegistration:
    def test_all_tools_registered(self, setup):
        mcp, _, _ = setup
        assert set(mcp._tools) == {
            "task_query",
            "task_search",
            "task_get",
            "task_stats",
            "task_set_status",
            "index_rebuild",
            "index_status",
        }


class TestTaskQuery:
    def test_default_open(self, setup):
        mcp, _, _ = setup
        data = _call(mcp, "task_query")
        assert [t["globalId"] for t in data["tasks"]] == ["errands:1", "errands:1.1", "errands:3"]
        assert data["filter_groups"] == [["status:open"]]
        assert data["count"] == data["total"] == 3

    def test_or_query(self, setup):
        mcp, _, _ = setup
        data = _call(mcp, "task_query", query="bucket:today | priority:high")
        assert [t["globalId"] for t in data["tasks"]] == ["errands:1", "errands:3"]

    def test_status_all(self, setup):
        mcp, _, _ = setup
        assert _call(mcp, "task_query", status="all")["total"] == 4

    def test_status_none_disables_default(self, setup):
        mcp, _, _ = setup
        data = _call(mcp, "task_query", status="none")
        assert data["total"] == 4
        assert data["filter_groups"] == [[]]

    def test_sort_and_limit(self, setup):
        mcp, _, _ = setup
        data = _call(mcp, "task_query", sort="priority", limit=1)
        assert [t["globalId"] for t in data["tasks"]] == ["errands:3"]
        assert data["total"] == 3
        assert data["count"] == 1

    def test_syntax_error(self, setup):
        mcp, _, _ = setup
        data = _call(mcp, "task_query", query="(bucket:today")
        assert "Expected ')'" in data["error"]

    def test_bad_sort(self, setup):
        mcp, _, _ = setup
        assert "Unknown sort field" in _call(mcp, "task_query", sort="color")["error"]

    @pytest.mark.parametrize("tool", ["task_query", "task_search", "task_stats"])
    def test_unknown_status_rejected(self, setup, tool):
        mcp, _, _ = setup
        kwargs = {"text": "milk"} if tool == "task_search" else {}
        data = _call(mcp, tool, status="bogus", **kwargs)
        assert "Invalid status 'bogus'" in data["error"]


class TestTaskSearch:
    def test_search(self, setup):
        mcp, _, _ = setup
        data = _call(mcp, "task_search", text="MILK")
        assert [t["globalId"] for t in data["tasks"]] == ["errands:1"]

    def test_search_narrowed(self, setup):
        mcp, _, _ = setup
        data = _call(mcp, "task_search", text="e", query="priority:high")
        assert [t["globalId"] for t in data["tasks"]] == ["errands:3"]

    def test_empty_text(self, setup):
        mcp, _, _ = setup
        assert "error" in _call(mcp, "task_search", text="  ")


class TestTaskGet:
    def test_with_children(self, setup):
        mcp, _, _ = setup
        data = _call(mcp, "task_get", global_id="errands:1")
        assert data["text"] == "Buy milk"
        assert [c["globalId"] for c in data["children"]] == ["errands:1.1"]
        assert "parent" not in data

    def test_with_parent(self, setup):
        mcp, _, _ = setup
        data = _call(mcp, "task_get", global_id="errands:1.1")
        assert data["parent"]["globalId"] == "errands:1"
        assert data["children"] == []

    def test_not_found(self, setup):
        mcp, _, _ = setup
        assert "not found" in _call(mcp, "task_get", global_id="errands:99")["error"]


class TestTaskStats:
    def test_stats(self, setup):
        mcp, _, _ = setup
        data = _call(mcp, "task_stats")
        assert data["overview"] == {"total": 4, "open": 3, "done": 1}
        assert data["period"] == "last-7d"

    def test_bad_period(self, setup):
        mcp, _, _ = setup
        assert "Invalid period" in _call(mcp, "task_stats", period="forever")["error"]


class TestTaskSetStatus:
    def test_done_cascades_to_subtasks(self, setup):
        mcp, cache, todos = setup
        data = _call(mcp, "task_set_status", global_id="errands:1", status="done")

        assert data["previous_status"] == "open"
        assert data["new_status"] == "done"
        assert data["cascaded"] == ["errands:1.1"]
        assert data["task"]["completed"] is True
        assert cache.get_task("errands:1.1").completed is True

        lines = todos.read_text(encoding="utf-8").splitlines()
        assert lines[1].startswith("- [x] Buy milk [id:1 bucket:today energy:low updated:")
        assert lines[2].startswith("  - [x] Check fridge first [id:1.1 updated:")

    def test_reopen_does_not_cascade(self, setup):
        mcp, cache, _ = setup
        _call(mcp, "task_set_status", global_id="errands:1", status="done")
        data = _call(mcp, "task_set_status", global_id="errands:1", status="open")

        assert data["cascaded"] == []
        assert cache.get_task("errands:1").completed is False
        assert cache.get_task("errands:1.1").completed is True

    def test_already_in_state(self, setup):
        mcp, cache, todos = setup
        before = todos.read_text(encoding="utf-8")
        data = _call(mcp, "task_set_status", global_id="errands:2", status="done")

        assert data["message"] == "Task already done"
        assert todos.read_text(encoding="utf-8") == before
        assert cache.status()["build_count"] == 1

    def test_stale_index_refused(self, setup):
        mcp, _, todos = setup
        todos.write_text(TODOS.replace("Buy milk", "Buy oat milk"), encoding="utf-8")
        data = _call(mcp, "task_set_status", global_id="errands:1", status="done")
        assert "Task text mismatch" in data["error"]
        assert "- [ ] Buy oat milk" in todos.read_text(encoding="utf-8")

    def test_errors(self, setup):
        mcp, _, _ = setup
        assert "not found" in _call(mcp, "task_set_status", global_id="errands:9", status="done")["error"]
        assert "Invalid status" in _call(mcp, "task_set_status", global_id="errands:1", status="closed")["error"]


class TestIndexTools:
    def test_rebuild_picks_up_changes(self, setup):
        mcp, cache, todos = setup
        todos.write_text(TODOS + "- [ ] Water plants [id:4]\n", encoding="utf-8")

        data = _call(mcp, "index_rebuild")
        assert data["stats"]["tasks"]["total"] == 5
        assert data["warnings"] == []
        assert cache.get_task("errands:4") is not None

    def test_status(self, setup):
        mcp, _, todos = setup
        data = _call(mcp, "index_status")
        assert data["files"] == [str(todos)]
        assert data["build_count"] == 1
        assert data["stats"]["projects"] == 1
