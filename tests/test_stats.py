"""
Tests for stats.py.

Covers:
- Overview and open-only breakdowns
- Completion windows keyed on the updated date
- Top projects, overdue, estimates
- format_stats text output
"""

import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from todosmd.models.index import Task
from todosmd.stats import calculate_stats, format_stats

TODAY = date(2025, 3, 12)


def _task(local_id: str, project_id: str = "p", completed: bool = False, **fields) -> Task:
    return Task(
        global_id=f"{project_id}:{local_id}",
        local_id=local_id,
        project_id=project_id,
        text=f"Task {local_id}",
        completed=completed,
        file_path="todos.md",
        line_number=1,
        indent_level=0,
        **fields,
    )


@pytest.fixture
def tasks():
    return [
        _task("1", "a", bucket="today", energy="low", priority="high", est="1h", due="2025-03-01"),
        _task("2", "a", bucket="today", energy="normal", est="30m", due="2025-03-14"),
        _task("3", "b", bucket="someday", energy="high"),
        _task("4", "b", completed=True, bucket="today", updated="2025-03-12"),
        _task("5", "b", completed=True, updated="2025-03-08"),
        _task("6", "c", completed=True, updated="2025-02-20"),
        _task("7", "c", completed=True, updated="2024-12-01"),
    ]


class TestCalculateStats:
    def test_overview(self, tasks):
        stats = calculate_stats(tasks, today=TODAY)
        assert stats.overview == {"total": 7, "open": 3, "done": 4}

    def test_breakdowns_count_open_only(self, tasks):
        stats = calculate_stats(tasks, today=TODAY)
        assert stats.by_bucket["today"] == 2
        assert stats.by_bucket["someday"] == 1
        assert stats.by_energy == {"low": 1, "normal": 1, "high": 1}
        assert stats.by_priority == {"high": 1, "normal": 0, "low": 0}

    def test_completed_windows(self, tasks):
        completed = calculate_stats(tasks, today=TODAY).completed
        assert completed["today"] == 1
        assert completed["last_7d"] == 2
        assert completed["last_30d"] == 3
        assert list(completed["by_day"])[0] == "2025-03-12"
        assert completed["by_day"]["2025-03-08"] == 1
        assert len(completed["by_day"]) == 7

    def test_top_projects(self, tasks):
        top = calculate_stats(tasks, today=TODAY).top_projects
        assert [(p.id, p.open) for p in top] == [("a", 2), ("b", 1)]
        assert top[0].overdue == 1
        assert top[0].due_this_week == 1

    def test_overdue(self, tasks):
        overdue = calculate_stats(tasks, today=TODAY).overdue
        assert overdue == {"total": 1, "by_project": {"a": 1}}

    def test_estimate(self, tasks):
        estimate = calculate_stats(tasks, today=TODAY).estimate
        assert estimate == {"open_minutes": 90, "open": "1h30m"}

    def test_empty(self):
        stats = calculate_stats([], today=TODAY)
        assert stats.overview == {"total": 0, "open": 0, "done": 0}
        assert stats.top_projects == []
        assert stats.estimate == {"open_minutes": 0, "open": None}

    def test_invalid_period(self):
        with pytest.raises(ValueError, match="Invalid period"):
            calculate_stats([], period="forever")

    def test_to_dict(self, tasks):
        data = calculate_stats(tasks, period="today", today=TODAY).to_dict()
        assert data["period"] == "today"
        assert data["top_projects"][0] == {"id": "a", "open": 2, "due_this_week": 1, "overdue": 1}


class TestFormatStats:
    def test_report(self, tasks):
        text = format_stats(calculate_stats(tasks, today=TODAY))
        assert text.startswith("Task Stats (last 7 days)")
        assert "Open: 3 | Done: 4" in text
        assert "Today: 1 | Last 7d: 2 | Last 30d: 3" in text
        assert "1 due this week, 1 overdue" in text
        assert "Open estimate: 1h30m" in text

    def test_zero_rows_omitted(self):
        text = format_stats(calculate_stats([_task("1")], today=TODAY))
        assert "By Bucket" not in text
        assert "Overdue:" not in text
