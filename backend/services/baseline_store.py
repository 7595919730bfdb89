"""Sprint baseline snapshots.

A baseline is the sprint's work item set at first observation. It is the
reference point for scope-change detection and the burndown's opening
balance. Once created it is only replaced by an explicit reset or by the
corruption repair below.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from services.issue_classifier import IssueClassifier
from services.work_items import WorkItem, is_terminal_status

logger = logging.getLogger(__name__)

# A stored baseline smaller than 30% of the current active issue count,
# and below the absolute floor, is treated as stale
CORRUPTION_RATIO = 0.3
CORRUPTION_FLOOR = 10


def baseline_key(sprint_id) -> str:
    return f"baseline-{sprint_id}"


@dataclass
class Baseline:
    sprint_id: int
    captured_at: str
    issues: list = field(default_factory=list)
    _by_key: dict = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        self._by_key = {entry["key"]: entry for entry in self.issues}

    @property
    def issue_count(self) -> int:
        return len(self.issues)

    @property
    def keys(self) -> set:
        return set(self._by_key)

    def entry(self, key: str) -> Optional[dict]:
        return self._by_key.get(key)

    def work_items(self) -> list:
        """Baseline entries as WorkItems, so classifier rules apply to them."""
        return [
            WorkItem(
                key=entry["key"],
                summary=entry.get("summary", ""),
                status=entry.get("status") or "To Do",
                priority=entry.get("priority") or "Medium",
                assignee=entry.get("assignee"),
                original_estimate_hours=entry.get("originalEstimate") or 0.0,
                remaining_estimate_hours=entry.get("remainingEstimate") or 0.0,
                logged_hours=entry.get("timeSpent") or 0.0,
                is_subtask=bool(entry.get("isSubtask")),
                parent_key=entry.get("parentKey"),
                issue_type=entry.get("issueType") or "Task",
                subtask_keys=list(entry.get("subtaskKeys") or [])
            )
            for entry in self.issues
        ]

    def filter_by_assignee(self, assignee: Optional[str]) -> "Baseline":
        """A filtered view for per-assignee burndowns. Never persisted."""
        if not assignee or assignee == "All":
            return self
        return Baseline(
            sprint_id=self.sprint_id,
            captured_at=self.captured_at,
            issues=[e for e in self.issues if e.get("assignee") == assignee],
        )

    def to_dict(self) -> dict:
        return {
            "sprintId": self.sprint_id,
            "capturedAt": self.captured_at,
            "issueCount": self.issue_count,
            "issues": list(self.issues)
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Baseline":
        return cls(
            sprint_id=data.get("sprintId"),
            # Older snapshots used "createdAt"
            captured_at=data.get("capturedAt") or data.get("createdAt"),
            issues=list(data.get("issues") or []),
        )

    @classmethod
    def capture(cls, sprint_id, items: list, captured_at: str,
                classifier: IssueClassifier = None) -> "Baseline":
        """Snapshot the non-terminal items of the current set."""
        classifier = classifier or IssueClassifier()
        active = [i for i in items if not is_terminal_status(i.status)]

        return cls(
            sprint_id=sprint_id,
            captured_at=captured_at,
            issues=[
                {
                    "key": i.key,
                    "summary": i.summary,
                    "originalEstimate": i.original_estimate_hours,
                    "remainingEstimate": i.remaining_estimate_hours,
                    "timeSpent": i.logged_hours,
                    "priority": i.priority,
                    "assignee": i.assignee,
                    "status": i.status,
                    "issueType": i.issue_type,
                    "isSubtask": classifier.is_subtask(i),
                    "parentKey": i.parent_key,
                    "subtaskKeys": list(i.subtask_keys)
                }
                for i in active
            ],
        )


def is_corrupted(baseline: Baseline, current_active_count: int) -> bool:
    count = baseline.issue_count
    return count < current_active_count * CORRUPTION_RATIO and count < CORRUPTION_FLOOR


class BaselineStore:
    """Baseline persistence and recreate policy over a key-value store."""

    def __init__(self, store, classifier: IssueClassifier = None, clock=None):
        self.store = store
        self.classifier = classifier or IssueClassifier()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def get(self, sprint_id) -> Optional[Baseline]:
        data = self.store.get(baseline_key(sprint_id))
        if not data:
            return None
        return Baseline.from_dict(data)

    def set(self, sprint_id, baseline: Baseline) -> None:
        self.store.set(baseline_key(sprint_id), baseline.to_dict())

    def delete(self, sprint_id) -> None:
        self.store.delete(baseline_key(sprint_id))

    def _create(self, sprint_id, items: list) -> Baseline:
        baseline = Baseline.capture(
            sprint_id, items, self._clock().isoformat(), self.classifier
        )
        self.set(sprint_id, baseline)
        logger.info(
            f"Captured baseline for sprint {sprint_id} with {baseline.issue_count} issues"
        )
        return baseline

    def get_or_create(self, sprint_id, items: list) -> Baseline:
        """Return the stored baseline, capturing one from ``items`` if absent.

        Two requests racing on a never-seen sprint may both write; the
        content comes from the same source data so the last write wins.
        """
        baseline = self.get(sprint_id)
        if baseline is not None:
            return baseline
        return self._create(sprint_id, items)

    def repair_if_corrupted(self, baseline: Baseline, items: list) -> Baseline:
        active_count = sum(1 for i in items if not is_terminal_status(i.status))
        if not is_corrupted(baseline, active_count):
            return baseline

        logger.warning(
            f"Baseline for sprint {baseline.sprint_id} looks stale "
            f"({baseline.issue_count} entries vs {active_count} active issues), recreating"
        )
        self.delete(baseline.sprint_id)
        return self._create(baseline.sprint_id, items)

    def ensure(self, sprint_id, items: list, persist: bool = True) -> Baseline:
        """get_or_create followed by the corruption check.

        With ``persist=False`` (an incomplete issue list) a stored baseline
        is returned untouched and a missing one is captured without saving.
        """
        baseline = self.get(sprint_id)
        if not persist:
            if baseline is not None:
                return baseline
            return Baseline.capture(sprint_id, items, self._clock().isoformat(), self.classifier)
        if baseline is None:
            return self._create(sprint_id, items)
        return self.repair_if_corrupted(baseline, items)

    def reset(self, sprint_id, items: list) -> Baseline:
        """Unconditionally recreate the baseline from the current items."""
        self.delete(sprint_id)
        return self._create(sprint_id, items)
