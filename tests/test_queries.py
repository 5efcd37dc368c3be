"""Unit tests for snapshot queries and reports."""
from datetime import datetime, timedelta, timezone

import pytest

from app.modules.household import queries
from app.modules.household.enrichment import build_group_data
from app.modules.household.schemas import AssignedTask, Group, Image
from tests.conftest import GROUP_ID, make_task, make_user

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def data():
    users = [make_user(1, "Alice"), make_user(2, "Bob"), make_user(3, "Carol")]
    tasks = [
        make_task(10, "Dishes", completed=True, due_date=NOW - timedelta(days=1)),
        make_task(11, "Trash", due_date=NOW - timedelta(hours=2), assigned_to=3),
        make_task(12, "Vacuum", description="Living room rug", due_date=NOW + timedelta(days=2)),
        make_task(13, "Groceries", due_date=NOW + timedelta(days=10)),
    ]
    rows = [
        AssignedTask(task_id=10, user_id=1),
        AssignedTask(task_id=11, user_id=1),
        AssignedTask(task_id=11, user_id=2),
        AssignedTask(task_id=12, user_id=2),
    ]
    images = [
        Image(id=100, url="u1", title="Birthday party", category="events", group_id=GROUP_ID, user_id=1),
        Image(id=101, url="u2", title="Fridge", category="kitchen", group_id=GROUP_ID, user_id=2),
        Image(id=102, url="u3", title="Game night", category="events", group_id=GROUP_ID, user_id=1),
    ]
    return build_group_data(Group(id=GROUP_ID, building="Maple Hall", apt_num="4B"), users, images, tasks, rows)


def _ids(items):
    return [item.id for item in items]


class TestTaskFilters:
    def test_by_user(self, data):
        assert _ids(queries.get_tasks_by_user(data, 1)) == [10, 11]

    def test_completed_and_incomplete(self, data):
        assert _ids(queries.get_completed_tasks(data)) == [10]
        assert _ids(queries.get_incomplete_tasks(data)) == [11, 12, 13]

    def test_overdue_excludes_completed(self, data):
        assert _ids(queries.get_overdue_tasks(data, NOW)) == [11]

    def test_due_today(self, data):
        assert _ids(queries.get_tasks_due_today(data, NOW)) == [11]

    def test_due_within(self, data):
        assert _ids(queries.get_tasks_due_within(data, 3, NOW)) == [12]

    def test_unassigned(self, data):
        assert _ids(queries.get_unassigned_tasks(data)) == [13]

    def test_search(self, data):
        assert _ids(queries.search_tasks(data, "rug")) == [12]
        assert _ids(queries.search_tasks(data, "TRASH")) == [11]


class TestGroupings:
    def test_by_status(self, data):
        grouped = queries.group_tasks_by_status(data)

        assert _ids(grouped.completed) == [10]
        assert _ids(grouped.incomplete) == [11, 12, 13]

    def test_by_assignee(self, data):
        grouped = queries.group_tasks_by_assignee(data)

        assert {k: _ids(v) for k, v in grouped.items()} == {1: [10, 11], 2: [11, 12]}

    def test_images_by_category(self, data):
        grouped = queries.group_images_by_category(data)

        assert {k: _ids(v) for k, v in grouped.items()} == {"events": [100, 102], "kitchen": [101]}

    def test_images_by_creator(self, data):
        assert _ids(queries.get_images_by_creator(data, 1)) == [100, 102]
        assert set(queries.group_images_by_creator(data)) == {1, 2}


class TestStats:
    def test_user_stats(self, data):
        stats = queries.get_user_task_stats(data, 1, NOW)

        assert stats.total == 2
        assert stats.completed == 1
        assert stats.overdue == 1
        assert stats.completion_rate == 50.0

    def test_user_without_tasks(self, data):
        assert queries.get_user_task_stats(data, 3, NOW).completion_rate == 0.0

    def test_group_stats(self, data):
        stats = queries.get_group_stats(data, NOW)

        assert stats.total_users == 3
        assert stats.total_tasks == 4
        assert stats.completed_tasks == 1
        assert stats.overdue_tasks == 1
        assert stats.unassigned_tasks == 1
        assert stats.task_completion_rate == 25.0

    def test_leaderboard(self, data):
        board = queries.get_task_completion_leaderboard(data, NOW)

        assert [entry.user.name for entry in board] == ["Alice", "Bob", "Carol"]
        assert board[0].completed == 1


def test_divergences(data):
    divergences = queries.get_assignment_divergences(data)

    assert len(divergences) == 1
    assert divergences[0].task_id == 11
    assert divergences[0].assigned_to == 3


def test_search_users_and_images(data):
    assert _ids(queries.search_users(data, "bob@")) == [2]
    assert _ids(queries.search_images(data, "night")) == [102]


def test_summary_report(data):
    report = queries.generate_summary_report(data, NOW)

    assert "- Building: Maple Hall" in report
    assert "- Completed: 1 (25.0%)" in report
    assert "  - events: 2" in report
    assert "1. Alice: 1 completed (50.0%)" in report


def test_export_to_json(data):
    assert '"building": "Maple Hall"' in queries.export_to_json(data)
