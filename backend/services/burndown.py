"""Burndown series reconstruction.

The remaining line is a forward accumulation, not a snapshot: it opens at
the baseline's effective original estimate and each day subtracts the hours
logged that day and applies that day's scope changes. The ideal line is
anchored on team capacity, independent of the estimates.
"""

import logging
from datetime import date
from typing import Optional

from services.baseline_store import Baseline
from services.errors import InputError
from services.issue_classifier import IssueClassifier
from services.time_utils import (
    HOURS_PER_DAY, WORKING_DAYS_DEFAULT, count_working_days, iter_days,
    is_working_day, to_day, working_days_elapsed
)
from services.work_items import Sprint

module_logger = logging.getLogger(__name__)


def _round(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(value, 1)


def ideal_for_day(elapsed: int, max_capacity: float, working_days: int) -> float:
    """Ideal remaining capacity after ``elapsed`` working days."""
    if working_days <= 0:
        return 0.0
    return max(0.0, max_capacity - elapsed * max_capacity / working_days)


def scope_by_day(scope_changes: dict) -> dict:
    """Sum attributed ADDED/REMOVED hours per day. Unattributed events are skipped."""
    by_day = {}
    for kind, events in (("added", scope_changes.get("added", [])),
                         ("removed", scope_changes.get("removed", []))):
        for event in events:
            day = to_day(event.get("date"))
            if day is None:
                continue
            bucket = by_day.setdefault(day, {"added": 0.0, "removed": 0.0})
            bucket[kind] += event.get("estimateHours") or 0.0
    return by_day


class BurndownBuilder:
    """Builds the day-indexed burndown series for one sprint."""

    def __init__(self, classifier: IssueClassifier = None, logger: logging.Logger = None,
                 hours_per_day: int = HOURS_PER_DAY,
                 working_days_default: int = WORKING_DAYS_DEFAULT):
        self.classifier = classifier or IssueClassifier()
        self.logger = logger or module_logger
        self.hours_per_day = hours_per_day
        self.working_days_default = working_days_default

    def build(self, sprint: Sprint, items: list, baseline: Optional[Baseline],
              scope_changes: dict, logged_by_day: Optional[dict] = None,
              team_size: int = 1, today: Optional[date] = None,
              working_days_default: Optional[int] = None) -> dict:
        """Compute the series and summary figures.

        Args:
            sprint: Sprint with start and end dates (inclusive)
            items: Current working set (already assignee-filtered)
            baseline: Baseline for the same working set, or None
            scope_changes: Result of ScopeChangeDetector.detect()
            logged_by_day: Hours logged per day, keyed by date or ISO string
            team_size: Number of people, at least 1
            today: Date of computation; later days have null actuals
            working_days_default: Sprint length used when the range holds no
                working day; defaults to the builder's setting

        Returns:
            Dict with ``dataPoints`` and the summary fields. The first data point
            is the opening balance (``isOpening``) dated on the start day.

        Raises:
            InputError: sprint without start or end date, or team size below 1
        """
        if not sprint.start_date or not sprint.end_date:
            raise InputError(f"Sprint {sprint.name} has no start or end date")
        if team_size is None or int(team_size) < 1:
            raise InputError("Team size must be at least 1")

        team_size = int(team_size)
        today = today or date.today()
        start, end = sprint.start_date, sprint.end_date

        working_days = count_working_days(
            start, end, working_days_default or self.working_days_default
        )
        max_capacity = working_days * self.hours_per_day * team_size

        if baseline is not None and baseline.issues:
            total_original = self.classifier.totals(baseline.work_items())["original"]
        else:
            total_original = self.classifier.totals(items)["original"]

        current = self.classifier.totals(items)
        changes_by_day = scope_by_day(scope_changes)
        logged = {to_day(k): v for k, v in (logged_by_day or {}).items() if to_day(k)}

        self.logger.debug(
            f"Burndown {sprint.name}: workingDays={working_days} teamSize={team_size} "
            f"maxCapacity={max_capacity} totalOriginal={total_original:.1f}"
        )

        # Opening balance, before any of the start day's work or scope changes
        data_points = [{
            "date": start.isoformat(),
            "isOpening": True,
            "isWorkingDay": is_working_day(start),
            "idealRemainingHours": _round(max_capacity),
            "actualRemainingHours": _round(total_original),
            "cumulativeLoggedHours": 0.0,
            "loggedHours": 0.0,
            "scopeAddedHours": 0.0,
            "scopeRemovedHours": 0.0
        }]
        running_remaining = total_original
        cumulative_logged = 0.0

        for day in iter_days(start, end):
            elapsed = working_days_elapsed(start, day)
            ideal = ideal_for_day(elapsed, max_capacity, working_days)
            change = changes_by_day.get(day, {"added": 0.0, "removed": 0.0})
            is_past_or_today = day <= today

            if is_past_or_today:
                day_logged = logged.get(day, 0.0)
                cumulative_logged += day_logged
                running_remaining = (
                    running_remaining - day_logged + change["added"] - change["removed"]
                )
            else:
                day_logged = None

            data_points.append({
                "date": day.isoformat(),
                "isOpening": False,
                "isWorkingDay": is_working_day(day),
                "idealRemainingHours": _round(ideal),
                "actualRemainingHours": _round(running_remaining) if is_past_or_today else None,
                "cumulativeLoggedHours": _round(cumulative_logged) if is_past_or_today else None,
                "loggedHours": _round(day_logged),
                "scopeAddedHours": _round(change["added"]),
                # Removed scope is charted below the axis
                "scopeRemovedHours": -_round(change["removed"]) if change["removed"] else 0.0
            })

        added_total = sum(e.get("estimateHours") or 0.0 for e in scope_changes.get("added", []))
        removed_total = sum(e.get("estimateHours") or 0.0 for e in scope_changes.get("removed", []))
        unattributed = sum(
            e.get("estimateHours") or 0.0
            for e in scope_changes.get("added", []) if e.get("date") is None
        )

        if unattributed:
            self.logger.info(
                f"Burndown {sprint.name}: {unattributed:.1f}h of added scope has no date"
            )

        return {
            "dataPoints": data_points,
            "sprintName": sprint.name,
            "sprintStartDate": start.isoformat(),
            "sprintEndDate": end.isoformat(),
            "maxCapacityHours": _round(max_capacity),
            "totalOriginalEstimateHours": _round(total_original),
            # Point-in-time figures; may differ from the series' last value
            "currentRemainingHours": _round(current["remaining"]),
            "totalSpentHours": _round(current["logged"]),
            "scopeAddedTotal": _round(added_total),
            "scopeRemovedTotal": _round(removed_total),
            "unattributedAddedTotal": _round(unattributed),
            "workingDays": working_days,
            "teamSize": team_size
        }
