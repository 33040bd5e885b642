"""
Tests for the REST API routes.

Uses FastAPI TestClient against a real IndexCache built from temp files.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from fastapi.testclient import TestClient

from todosmd.api.app import create_app
from todosmd.cache.index_cache import IndexCache


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_files(tmp_path: Path) -> list:
    home = tmp_path / "home.md"
    home.write_text(
        "# Home [area:home]\n"
        "## Garden [project:garden]\n"
        "- [ ] Plant tulips [id:1 energy:low bucket:today]\n"
        "  - [ ] Buy bulbs [id:1.1]\n"
        "- [x] Mow lawn [id:2 updated:2025-03-10]\n",
        encoding="utf-8",
    )
    work = tmp_path / "work.md"
    work.write_text(
        "# Site [project:site area:work]\n"
        "- [ ] Fix header [id:1 priority:high]\n",
        encoding="utf-8",
    )
    return [home, work]


@pytest.fixture
def client(tmp_path):
    cache = IndexCache()
    cache.initialize(_make_files(tmp_path), output=tmp_path / "todos.json")
    return TestClient(create_app(cache))


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

class TestListTasks:
    def test_default_open(self, client):
        resp = client.get("/api/tasks")
        assert resp.status_code == 200
        data = resp.json()
        assert [t["globalId"] for t in data["tasks"]] == ["garden:1", "garden:1.1", "site:1"]

    def test_query(self, client):
        resp = client.get("/api/tasks", params={"q": "area:work | energy:low"})
        assert [t["globalId"] for t in resp.json()["tasks"]] == ["garden:1", "site:1"]

    def test_status_done(self, client):
        resp = client.get("/api/tasks", params={"status": "done"})
        assert [t["globalId"] for t in resp.json()["tasks"]] == ["garden:2"]

    def test_bad_query_is_400(self, client):
        resp = client.get("/api/tasks", params={"q": "project:garden |"})
        assert resp.status_code == 400
        assert "after '|'" in resp.json()["detail"]

    def test_bad_sort_is_400(self, client):
        assert client.get("/api/tasks", params={"sort": "color"}).status_code == 400

    def test_bad_status_is_400(self, client):
        resp = client.get("/api/tasks", params={"status": "bogus"})
        assert resp.status_code == 400
        assert "Invalid status" in resp.json()["detail"]


class TestGetTask:
    def test_found(self, client):
        resp = client.get("/api/tasks/garden:1")
        assert resp.status_code == 200
        data = resp.json()
        assert data["text"] == "Plant tulips"
        assert data["childrenIds"] == ["garden:1.1"]

    def test_missing_is_404(self, client):
        assert client.get("/api/tasks/garden:99").status_code == 404


class TestSetStatus:
    def test_done(self, client, tmp_path):
        resp = client.patch("/api/tasks/garden:1", json={"status": "done"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["cascaded"] == ["garden:1.1"]
        assert data["task"]["completed"] is True
        assert "- [x] Plant tulips" in (tmp_path / "home.md").read_text(encoding="utf-8")

        open_ids = [t["globalId"] for t in client.get("/api/tasks").json()["tasks"]]
        assert open_ids == ["site:1"]

    def test_reopen(self, client):
        resp = client.patch("/api/tasks/garden:2", json={"status": "open"})
        assert resp.status_code == 200
        assert resp.json()["task"]["completed"] is False

    def test_missing_is_404(self, client):
        assert client.patch("/api/tasks/garden:99", json={"status": "done"}).status_code == 404

    def test_bad_status_is_400(self, client):
        assert client.patch("/api/tasks/garden:1", json={"status": "closed"}).status_code == 400


class TestSearchAndStats:
    def test_search(self, client):
        resp = client.get("/api/search", params={"text": "bulbs"})
        assert [t["globalId"] for t in resp.json()["tasks"]] == ["garden:1.1"]

    def test_search_requires_text(self, client):
        assert client.get("/api/search").status_code == 422

    def test_stats(self, client):
        data = client.get("/api/stats", params={"q": "project:garden"}).json()
        assert data["overview"] == {"total": 3, "open": 2, "done": 1}

    def test_stats_bad_period(self, client):
        assert client.get("/api/stats", params={"period": "forever"}).status_code == 400


class TestIndex:
    def test_rebuild(self, client, tmp_path):
        (tmp_path / "work.md").write_text("# Site [project:site]\n", encoding="utf-8")
        resp = client.post("/api/index/rebuild")
        assert resp.status_code == 200
        assert resp.json()["stats"]["tasks"]["total"] == 3

    def test_status(self, client, tmp_path):
        data = client.get("/api/index/status").json()
        assert len(data["files"]) == 2
        assert data["output"] == str(tmp_path / "todos.json")
        assert data["build_count"] == 1
