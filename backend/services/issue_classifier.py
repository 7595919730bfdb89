"""Subtask-aware effective estimate calculation.

Jira pre-aggregates estimate fields on parent issues across *all* of their
subtasks, regardless of who they are assigned to. Summing parent + subtasks
double-counts, and using the parent's own field miscounts under an assignee
filter. The rules applied here:

- A subtask is never counted on its own when its parent is in the working
  set; it is folded into the parent.
- A parent with subtasks present in the working set counts the sum of only
  those subtasks.
- A parent whose subtasks are all outside the working set is skipped from
  totals (``skipped_in_total``).
- A subtask whose parent is outside the working set is counted once, as its
  own group.
- Plain items pass through unchanged.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional

from services.work_items import WorkItem

SUBTASK_TYPE_MARKERS = ("sub-task", "subtask")
PARENT_TYPE_MARKERS = ("main task",)


def default_is_subtask(item: WorkItem) -> bool:
    """Subtask detection by issue type flag or type name."""
    type_name = (item.issue_type or "").lower()
    return item.is_subtask or any(m in type_name for m in SUBTASK_TYPE_MARKERS)


def default_is_parent(item: WorkItem) -> bool:
    """Parent detection by the tracker's subtask list or type name.

    The subtask list shows every subtask, even ones outside the sprint or
    the current filter.
    """
    if item.subtask_keys:
        return True
    type_name = (item.issue_type or "").lower()
    return any(m in type_name for m in PARENT_TYPE_MARKERS)


@dataclass
class EffectiveItem:
    item: WorkItem
    original: float
    remaining: float
    logged: float
    counted: bool
    is_subtask: bool = False
    has_subtasks: bool = False
    skipped_in_total: bool = False
    subtasks_present: list = field(default_factory=list)

    def to_dict(self) -> dict:
        item = self.item
        return {
            "key": item.key,
            "summary": item.summary,
            "assignee": item.assignee or "Unassigned",
            "status": item.status,
            "priority": item.priority,
            "issueType": item.issue_type,
            "originalEstimate": round(self.original, 1),
            "remainingEstimate": round(self.remaining, 1),
            "timeSpent": round(self.logged, 1),
            "isSubtask": self.is_subtask,
            "hasSubtasks": self.has_subtasks,
            "skippedInTotal": self.skipped_in_total,
            "subtaskCount": len(item.subtask_keys),
            "parentKey": item.parent_key
        }


class IssueClassifier:
    """Applies the effective-value rule to a working set of work items."""

    def __init__(self, is_subtask: Optional[Callable[[WorkItem], bool]] = None,
                 is_parent: Optional[Callable[[WorkItem], bool]] = None):
        self.is_subtask = is_subtask or default_is_subtask
        self.is_parent = is_parent or default_is_parent

    def build_subtask_map(self, items: list) -> tuple:
        """Return (subtasks_by_parent, subtask_keys, parent_keys)."""
        subtasks_by_parent = {}
        subtask_keys = set()
        parent_keys = set()

        # Subtasks present in the list, grouped by their parent
        for item in items:
            if self.is_subtask(item) and item.parent_key:
                subtasks_by_parent.setdefault(item.parent_key, []).append(item)
                subtask_keys.add(item.key)
                parent_keys.add(item.parent_key)

        # Parents known to have subtasks, even if none are in the list
        for item in items:
            if self.is_parent(item) and item.key not in subtask_keys:
                parent_keys.add(item.key)

        return subtasks_by_parent, subtask_keys, parent_keys

    def has_subtasks_present(self, item: WorkItem, items: list) -> bool:
        return any(
            self.is_subtask(other) and other.parent_key == item.key
            for other in items
        )

    def classify(self, items: list) -> list:
        """Return an EffectiveItem for every item, in input order."""
        subtasks_by_parent, subtask_keys, parent_keys = self.build_subtask_map(items)
        present_keys = {i.key for i in items}
        results = []

        for item in items:
            if item.key in subtask_keys:
                # Folded into the parent when the parent is here
                orphaned = item.parent_key not in present_keys
                results.append(EffectiveItem(
                    item=item,
                    original=item.original_estimate_hours,
                    remaining=item.remaining_estimate_hours,
                    logged=item.logged_hours,
                    counted=orphaned,
                    is_subtask=True
                ))
            elif item.key in parent_keys:
                present = subtasks_by_parent.get(item.key, [])
                if present:
                    results.append(EffectiveItem(
                        item=item,
                        original=sum(s.original_estimate_hours for s in present),
                        remaining=sum(s.remaining_estimate_hours for s in present),
                        logged=sum(s.logged_hours for s in present),
                        counted=True,
                        has_subtasks=True,
                        subtasks_present=[s.key for s in present]
                    ))
                else:
                    # Raw values shown for transparency, never counted
                    results.append(EffectiveItem(
                        item=item,
                        original=item.original_estimate_hours,
                        remaining=item.remaining_estimate_hours,
                        logged=item.logged_hours,
                        counted=False,
                        has_subtasks=True,
                        skipped_in_total=True
                    ))
            else:
                results.append(EffectiveItem(
                    item=item,
                    original=item.original_estimate_hours,
                    remaining=item.remaining_estimate_hours,
                    logged=item.logged_hours,
                    counted=True,
                    is_subtask=self.is_subtask(item)
                ))

        return results

    def totals(self, items: list) -> dict:
        """Effective original/remaining/logged sums over the working set."""
        counted = [e for e in self.classify(items) if e.counted]
        return {
            "original": sum(e.original for e in counted),
            "remaining": sum(e.remaining for e in counted),
            "logged": sum(e.logged for e in counted)
        }

    def contributions(self, items: list) -> dict:
        """Map each key to the original estimate it adds to the effective total.

        Parents contribute nothing of their own; their hours arrive through
        their subtasks. Summing the map equals ``totals(items)["original"]``.
        """
        _, subtask_keys, parent_keys = self.build_subtask_map(items)
        return {
            item.key: 0.0 if (item.key in parent_keys and item.key not in subtask_keys)
            else item.original_estimate_hours
            for item in items
        }

    def countable_keys(self, items: list) -> list:
        """Keys whose own worklogs make up the effective logged time."""
        _, subtask_keys, parent_keys = self.build_subtask_map(items)
        return [
            i.key for i in items
            if i.key in subtask_keys or i.key not in parent_keys
        ]
