"""Work item and sprint records mapped from raw Jira JSON."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from services.time_utils import parse_date, seconds_to_hours, to_day

PRIORITY_RANK = {"Highest": 5, "High": 4, "Medium": 3, "Low": 2, "Lowest": 1}
DEFAULT_PRIORITY = "Medium"

# Matched as case-insensitive substrings of the status name
TERMINAL_STATUSES = ("done", "closed", "resolved", "complete")


def is_terminal_status(status: Optional[str]) -> bool:
    """Check if a status name means the work is finished."""
    lower = (status or "").lower()
    return any(s in lower for s in TERMINAL_STATUSES)


def priority_rank(priority: Optional[str]) -> int:
    return PRIORITY_RANK.get(priority or DEFAULT_PRIORITY, PRIORITY_RANK[DEFAULT_PRIORITY])


# In Progress -> To Do -> Done
STATUS_ORDER = (
    ("in progress", 1),
    ("to do", 2), ("open", 2), ("backlog", 2), ("hold", 2),
    ("done", 3), ("closed", 3), ("resolved", 3), ("complete", 3)
)


def status_order(status: Optional[str]) -> int:
    lower = (status or "").lower()
    for name, order in STATUS_ORDER:
        if name in lower:
            return order
    return 2


def sort_by_status(rows: list, status_field: str = "status") -> list:
    """Stable in-place sort of result rows by status group."""
    rows.sort(key=lambda row: status_order(row.get(status_field)))
    return rows


@dataclass
class WorkItem:
    key: str
    summary: str = ""
    status: str = "To Do"
    priority: str = DEFAULT_PRIORITY
    assignee: Optional[str] = None
    due_date: Optional[date] = None
    original_estimate_hours: float = 0.0
    remaining_estimate_hours: float = 0.0
    logged_hours: float = 0.0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_subtask: bool = False
    parent_key: Optional[str] = None
    issue_type: str = "Task"
    subtask_keys: list = field(default_factory=list)
    fix_versions: list = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return is_terminal_status(self.status)

    @classmethod
    def from_jira(cls, issue: dict) -> "WorkItem":
        """Build a WorkItem from a Jira search result."""
        fields = issue.get("fields", {}) or {}
        issue_type = fields.get("issuetype") or {}
        assignee = fields.get("assignee") or {}
        priority = fields.get("priority") or {}
        parent = fields.get("parent") or {}

        return cls(
            key=issue.get("key"),
            summary=fields.get("summary") or "",
            status=(fields.get("status") or {}).get("name") or "To Do",
            priority=priority.get("name") or DEFAULT_PRIORITY,
            assignee=assignee.get("displayName"),
            due_date=to_day(fields.get("duedate")),
            original_estimate_hours=seconds_to_hours(fields.get("timeoriginalestimate")),
            remaining_estimate_hours=max(0.0, seconds_to_hours(fields.get("timeestimate"))),
            logged_hours=seconds_to_hours(fields.get("timespent")),
            created_at=parse_date(fields.get("created")),
            updated_at=parse_date(fields.get("updated")),
            is_subtask=issue_type.get("subtask") is True,
            parent_key=parent.get("key"),
            issue_type=issue_type.get("name") or "Task",
            subtask_keys=[s.get("key") for s in fields.get("subtasks") or [] if s.get("key")],
            fix_versions=[
                {
                    "id": v.get("id"),
                    "name": v.get("name"),
                    "description": v.get("description") or "",
                    "releaseDate": v.get("releaseDate"),
                    "released": v.get("released", False)
                }
                for v in fields.get("fixVersions") or []
            ]
        )


@dataclass
class Sprint:
    id: int
    name: str
    start_date: Optional[date]
    end_date: Optional[date]
    state: str = "active"

    @property
    def is_active(self) -> bool:
        return self.state == "active"

    @classmethod
    def from_jira(cls, sprint: dict) -> "Sprint":
        return cls(
            id=sprint["id"],
            name=sprint.get("name", ""),
            start_date=to_day(sprint.get("startDate")),
            end_date=to_day(sprint.get("endDate")),
            state=sprint.get("state", "active")
        )


def filter_by_assignee(items: list, assignee: Optional[str]) -> list:
    """Filter to a single assignee. ``None`` or "All" keeps every item."""
    if not assignee or assignee == "All":
        return list(items)
    return [i for i in items if i.assignee == assignee]


def list_assignees(items: list) -> list:
    """Distinct assignee names in first-seen order."""
    seen = []
    for item in items:
        if item.assignee and item.assignee not in seen:
            seen.append(item.assignee)
    return seen
