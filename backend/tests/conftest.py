"""Shared fixtures for Sprint Dashboard tests."""

import os
import sys
from datetime import date, datetime, timezone

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from services.baseline_store import BaselineStore  # noqa: E402
from services.kv_store import MemoryStore  # noqa: E402
from services.work_items import Sprint, WorkItem  # noqa: E402

JIRA_HEADERS = {
    "X-Jira-Server": "https://test.atlassian.net",
    "X-Jira-Email": "test@example.com",
    "X-Jira-Token": "token123"
}


class FakeIssueSource:
    """In-memory issue source with the JiraClient contract."""

    def __init__(self, sprint, items, partial=False, boards=None):
        self.sprint = sprint
        self.items = items
        self.partial = partial
        self.boards = boards or []
        self.issue_calls = 0

    def list_boards(self):
        return self.boards

    def get_active_sprint(self, board_id):
        return self.sprint

    def list_sprint_issues(self, sprint_id):
        self.issue_calls += 1
        return list(self.items), self.partial


class FakeHistorySource:
    """In-memory history source; ``fail=True`` simulates an outage."""

    def __init__(self, changelogs=None, logged_by_day=None, fail=False):
        self.changelogs = changelogs or {}
        self.logged_by_day = logged_by_day or {}
        self.fail = fail
        self.changelog_requests = []

    def get_changelogs(self, keys):
        self.changelog_requests.append(list(keys))
        if self.fail:
            raise ConnectionError("history service down")
        return {k: self.changelogs[k] for k in keys if k in self.changelogs}

    def get_logged_hours_by_day(self, keys):
        if self.fail:
            raise ConnectionError("history service down")
        return dict(self.logged_by_day)


def make_item(key, **kwargs):
    """WorkItem with sensible defaults for tests."""
    defaults = {
        "summary": f"Summary {key}",
        "status": "In Progress",
        "priority": "Medium",
        "assignee": "Alice",
        "original_estimate_hours": 0.0,
        "remaining_estimate_hours": 0.0,
        "logged_hours": 0.0,
        "created_at": datetime(2023, 12, 28, 9, 0, tzinfo=timezone.utc)
    }
    defaults.update(kwargs)
    return WorkItem(key=key, **defaults)


@pytest.fixture
def sprint():
    """Two-week sprint, Mon 2024-01-01 to Fri 2024-01-12 (10 working days)."""
    return Sprint(id=42, name="TEAM Sprint 7", start_date=date(2024, 1, 1),
                  end_date=date(2024, 1, 12), state="active")


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def baseline_store(memory_store):
    fixed = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
    return BaselineStore(memory_store, clock=lambda: fixed)


@pytest.fixture
def parent_with_subtasks():
    """Parent story with two subtasks owned by different people."""
    parent = make_item(
        "PROJ-1", issue_type="Story", assignee="Alice",
        original_estimate_hours=6.0, remaining_estimate_hours=6.0,
        subtask_keys=["PROJ-2", "PROJ-3"]
    )
    sub_alice = make_item(
        "PROJ-2", issue_type="Sub-task", is_subtask=True, parent_key="PROJ-1",
        assignee="Alice", original_estimate_hours=3.0, remaining_estimate_hours=3.0,
        logged_hours=1.0
    )
    sub_bob = make_item(
        "PROJ-3", issue_type="Sub-task", is_subtask=True, parent_key="PROJ-1",
        assignee="Bob", original_estimate_hours=3.0, remaining_estimate_hours=3.0
    )
    return [parent, sub_alice, sub_bob]


@pytest.fixture
def sample_jira_issue():
    """Raw Jira issue as returned by the sprint issue endpoint."""
    return {
        "key": "PROJ-123",
        "fields": {
            "summary": "Implement feature X",
            "issuetype": {"name": "Story", "subtask": False},
            "status": {"name": "In Progress"},
            "priority": {"name": "High"},
            "assignee": {"displayName": "Alice"},
            "timeoriginalestimate": 28800,
            "timeestimate": 14400,
            "timespent": 18000,
            "duedate": "2024-01-10",
            "created": "2024-01-02T10:00:00.000+0000",
            "updated": "2024-01-05T15:30:00.000+0000",
            "parent": {"key": "PROJ-50"},
            "subtasks": [{"key": "PROJ-124"}],
            "fixVersions": [
                {"id": "10001", "name": "v1.0", "releaseDate": "2024-02-01", "released": False}
            ]
        }
    }


@pytest.fixture
def app(memory_store):
    """Create Flask test app backed by an in-memory store."""
    from app import create_app
    app = create_app({"TESTING": True, "DASHBOARD_STORE": memory_store})
    return app


@pytest.fixture
def client(app):
    """Create Flask test client."""
    return app.test_client()
