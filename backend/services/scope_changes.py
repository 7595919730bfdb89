"""Scope-change detection against a sprint baseline."""

import logging
from datetime import date
from typing import Optional

from services.baseline_store import Baseline
from services.issue_classifier import IssueClassifier
from services.time_utils import clamp_day, format_day, parse_date, to_day
from services.work_items import Sprint, sort_by_status

logger = logging.getLogger(__name__)

ADDED = "ADDED"
REMOVED = "REMOVED"
PRIORITY_CHANGED = "PRIORITY_CHANGED"


def _sprint_ids(value) -> set:
    """Jira stores sprint membership as comma-separated ids."""
    return {part.strip() for part in str(value or "").split(",") if part.strip()}


def analyze_sprint_changelog(histories: list, sprint: Sprint) -> tuple:
    """Find when an issue last entered and left the sprint.

    Returns (added_at, removed_at) as datetimes or None. Leaving the sprint
    clears any earlier entry.
    """
    added_at = None
    removed_at = None
    sprint_id = str(sprint.id)

    for history in sorted(histories or [], key=lambda h: h.get("created") or ""):
        for item in history.get("items", []):
            if item.get("field") != "Sprint":
                continue
            from_str = item.get("fromString") or ""
            to_str = item.get("toString") or ""

            was_in = (sprint.name and sprint.name in from_str) or sprint_id in _sprint_ids(item.get("from"))
            is_in = (sprint.name and sprint.name in to_str) or sprint_id in _sprint_ids(item.get("to"))

            if not was_in and is_in:
                added_at = parse_date(history.get("created"))
            if was_in and not is_in:
                removed_at = parse_date(history.get("created"))
                added_at = None

    return added_at, removed_at


def last_priority_change(histories: list):
    """Timestamp of the latest priority change, or None."""
    changed_at = None
    for history in histories or []:
        for item in history.get("items", []):
            if item.get("field") == "priority":
                created = parse_date(history.get("created"))
                if created and (changed_at is None or created > changed_at):
                    changed_at = created
    return changed_at


class ScopeChangeDetector:
    """Diffs the current work item set against the sprint baseline.

    History is optional: a dict of issue key -> changelog histories. Keys
    missing from it (or ``history=None``) fall back to creation dates and
    "today" attribution.
    """

    def __init__(self, classifier: IssueClassifier = None):
        self.classifier = classifier or IssueClassifier()

    def keys_needing_history(self, current_items: list, baseline: Baseline) -> list:
        """Keys whose changelog can improve date attribution."""
        baseline_keys = baseline.keys
        current_keys = {i.key for i in current_items}
        keys = [i.key for i in current_items if i.key not in baseline_keys]
        keys += [
            i.key for i in current_items
            if i.key in baseline_keys and baseline.entry(i.key).get("priority") != i.priority
        ]
        keys += [e["key"] for e in baseline.issues if e["key"] not in current_keys]
        return keys

    def detect(self, current_items: list, baseline: Baseline, sprint: Sprint,
               history: Optional[dict] = None, today: Optional[date] = None) -> dict:
        history = history or {}
        today = today or date.today()
        start, end = sprint.start_date, sprint.end_date
        baseline_keys = baseline.keys
        current_keys = {i.key for i in current_items}

        current_contrib = self.classifier.contributions(current_items)
        baseline_contrib = self.classifier.contributions(baseline.work_items())

        added = []
        priority_changed = []

        for item in current_items:
            histories = history.get(item.key)

            # Includes items that were already terminal at capture
            if item.key not in baseline_keys:
                day, source = self._attribute_added(item, histories, sprint)
                added.append({
                    "key": item.key,
                    "summary": item.summary,
                    "assignee": item.assignee or "Unassigned",
                    "priority": item.priority,
                    "status": item.status,
                    "type": ADDED,
                    "date": format_day(day),
                    "source": source,
                    "estimateHours": current_contrib.get(item.key, 0.0),
                    "originalEstimate": item.original_estimate_hours,
                    "remainingEstimate": item.remaining_estimate_hours
                })
                continue

            previous = baseline.entry(item.key).get("priority")
            if previous and previous != item.priority:
                changed_at = last_priority_change(histories)
                priority_changed.append({
                    "key": item.key,
                    "summary": item.summary,
                    "assignee": item.assignee or "Unassigned",
                    "priority": item.priority,
                    "previousPriority": previous,
                    "status": item.status,
                    "type": PRIORITY_CHANGED,
                    "date": format_day(to_day(changed_at)),
                    "source": "priority_changelog" if changed_at else "baseline",
                    "estimateHours": item.original_estimate_hours,
                    "originalEstimate": item.original_estimate_hours,
                    "remainingEstimate": item.remaining_estimate_hours
                })

        removed = []
        for entry in baseline.issues:
            if entry["key"] in current_keys:
                continue
            _, removed_at = analyze_sprint_changelog(history.get(entry["key"]), sprint)
            if removed_at:
                day, source = to_day(removed_at), "sprint_changelog"
            else:
                day, source = today, "assumed_today"
            if start and end:
                day = clamp_day(day, start, end)

            removed.append({
                "key": entry["key"],
                "summary": entry.get("summary", ""),
                "assignee": entry.get("assignee") or "Unassigned",
                "priority": entry.get("priority"),
                "status": entry.get("status") or "Removed from sprint",
                "type": REMOVED,
                "date": format_day(day),
                "source": source,
                "estimateHours": baseline_contrib.get(entry["key"], 0.0),
                "originalEstimate": entry.get("originalEstimate") or 0.0,
                "remainingEstimate": entry.get("remainingEstimate") or 0.0
            })

        sort_by_status(added)
        logger.debug(
            f"Sprint {sprint.id}: {len(added)} added, {len(removed)} removed, "
            f"{len(priority_changed)} priority changes"
        )

        return {
            "added": added,
            "removed": removed,
            "priorityChanged": priority_changed
        }

    def _attribute_added(self, item, histories, sprint: Sprint) -> tuple:
        """Pick the day an added item entered the sprint.

        Changelog entry date first, then creation date; either must fall
        after the sprint start day. Otherwise the change is unattributed.
        """
        start, end = sprint.start_date, sprint.end_date

        candidates = []
        if histories:
            added_at, _ = analyze_sprint_changelog(histories, sprint)
            if added_at:
                candidates.append((to_day(added_at), "sprint_changelog"))
        if item.created_at:
            candidates.append((to_day(item.created_at), "created_after_start"))

        for day, source in candidates:
            if start is None or day > start:
                if end and day > end:
                    day = end
                return day, source

        return None, "unattributed"


def summarize(changes: dict) -> dict:
    """Counts and hour totals for a detect() result."""
    added = changes["added"]
    removed = changes["removed"]
    return {
        "totalAdded": len(added),
        "totalRemoved": len(removed),
        "totalPriorityChanged": len(changes["priorityChanged"]),
        "addedHours": round(sum(e["estimateHours"] for e in added), 1),
        "removedHours": round(sum(e["estimateHours"] for e in removed), 1),
        "unattributedAddedHours": round(
            sum(e["estimateHours"] for e in added if e["date"] is None), 1
        )
    }
