"""Sprint dashboard service: one call per dashboard endpoint.

Every public method returns a tagged result, ``{"success": True, "data": ...}``
or ``{"success": False, "error": ..., "statusCode": ...}``, and never raises.
"""

import logging
from datetime import date
from typing import Optional

from services.baseline_store import BaselineStore
from services.burndown import BurndownBuilder
from services.classification import at_risk_items, sprint_health
from services.errors import DashboardError, InputError, UpstreamError
from services.issue_classifier import IssueClassifier
from services.reports import high_priority_items, release_progress
from services.scope_changes import ScopeChangeDetector, summarize
from services.work_items import filter_by_assignee, list_assignees, sort_by_status

logger = logging.getLogger(__name__)


class SprintDashboardService:
    """Computes dashboard metrics for a board's active sprint."""

    def __init__(self, issue_source, baseline_store: BaselineStore,
                 history_source=None, classifier: IssueClassifier = None,
                 working_days_default: int = 10, clock=None):
        self.issue_source = issue_source
        self.history_source = history_source
        self.baseline_store = baseline_store
        self.classifier = classifier or IssueClassifier()
        self.detector = ScopeChangeDetector(self.classifier)
        self.builder = BurndownBuilder(
            self.classifier, logger=logger, working_days_default=working_days_default
        )
        self._clock = clock or date.today

    def _result(self, name: str, compute) -> dict:
        try:
            return {"success": True, "data": compute()}
        except DashboardError as e:
            logger.info(f"{name} failed: {e.message}")
            return {"success": False, "error": e.message, "statusCode": e.status_code}
        except Exception as e:
            logger.exception(f"{name} failed unexpectedly")
            return {"success": False, "error": str(e), "statusCode": 500}

    def _load_sprint(self, board_id) -> tuple:
        """Return (sprint, items, partial) for the board's active sprint."""
        if not board_id:
            raise InputError("Board ID is required")

        sprint = self.issue_source.get_active_sprint(board_id)
        if sprint is None:
            raise InputError("No active sprint found", 404)

        items, partial = self.issue_source.list_sprint_issues(sprint.id)
        return sprint, items, partial

    def _changelogs(self, keys: list) -> dict:
        if self.history_source is None or not keys:
            return {}
        try:
            return self.history_source.get_changelogs(keys)
        except Exception as e:
            logger.warning(f"Changelog history unavailable, using fallback dates: {e}")
            return {}

    def _logged_hours_by_day(self, keys: list) -> dict:
        if self.history_source is None or not keys:
            return {}
        try:
            return self.history_source.get_logged_hours_by_day(keys)
        except Exception as e:
            logger.warning(f"Worklog history unavailable, burndown has no logged hours: {e}")
            return {}

    def _detect_scope(self, sprint, items, baseline, today) -> dict:
        keys = self.detector.keys_needing_history(items, baseline)
        history = self._changelogs(keys)
        return self.detector.detect(items, baseline, sprint, history=history, today=today)

    # Endpoints

    def list_boards(self) -> dict:
        return self._result("list_boards", self.issue_source.list_boards)

    def get_burndown(self, board_id, assignee: Optional[str] = None,
                     team_size: Optional[int] = None, today: Optional[date] = None,
                     working_days_default: Optional[int] = None) -> dict:
        def compute():
            current_day = today or self._clock()
            sprint, all_items, partial = self._load_sprint(board_id)
            baseline = self.baseline_store.ensure(sprint.id, all_items, persist=not partial)

            assignees = list_assignees(all_items)
            items = filter_by_assignee(all_items, assignee)
            filtered_baseline = baseline.filter_by_assignee(assignee)

            if assignee and assignee != "All":
                size = 1
            elif team_size is not None:
                size = team_size
            else:
                size = len(assignees) or 1

            changes = self._detect_scope(sprint, items, filtered_baseline, current_day)
            logged = self._logged_hours_by_day(self.classifier.countable_keys(items))

            data = self.builder.build(
                sprint, items, filtered_baseline, changes,
                logged_by_day=logged, team_size=size, today=current_day,
                working_days_default=working_days_default
            )

            details = [e.to_dict() for e in self.classifier.classify(items)]
            sort_by_status(details)

            data.update({
                "assignees": assignees,
                "issueDetails": details,
                "addedIssues": changes["added"],
                "removedIssues": changes["removed"],
                "priorityChanged": changes["priorityChanged"],
                "baselineIssueCount": filtered_baseline.issue_count,
                "baselineCapturedAt": baseline.captured_at,
                "partial": partial
            })
            logger.info(
                f"Burndown for sprint {sprint.id}: {len(items)} issues, "
                f"{len(changes['added'])} added, {len(changes['removed'])} removed"
            )
            return data

        return self._result("get_burndown", compute)

    def get_sprint_health(self, board_id, assignee: Optional[str] = None) -> dict:
        def compute():
            sprint, items, partial = self._load_sprint(board_id)
            data = sprint_health(filter_by_assignee(items, assignee))
            data.update({"sprintName": sprint.name, "partial": partial})
            return data

        return self._result("get_sprint_health", compute)

    def get_at_risk_items(self, board_id, assignee: Optional[str] = None,
                          today: Optional[date] = None) -> dict:
        def compute():
            sprint, items, partial = self._load_sprint(board_id)
            data = at_risk_items(filter_by_assignee(items, assignee), today or self._clock())
            data.update({"sprintName": sprint.name, "partial": partial})
            return data

        return self._result("get_at_risk_items", compute)

    def get_scope_changes(self, board_id, assignee: Optional[str] = None,
                          today: Optional[date] = None) -> dict:
        def compute():
            sprint, all_items, partial = self._load_sprint(board_id)
            baseline = self.baseline_store.ensure(sprint.id, all_items, persist=not partial)
            items = filter_by_assignee(all_items, assignee)

            changes = self._detect_scope(
                sprint, items, baseline.filter_by_assignee(assignee), today or self._clock()
            )
            changes.update({
                "totals": summarize(changes),
                "sprintName": sprint.name,
                "sprintStartDate": sprint.start_date.isoformat() if sprint.start_date else None,
                "partial": partial
            })
            return changes

        return self._result("get_scope_changes", compute)

    def get_high_priority_items(self, board_id, assignee: Optional[str] = None,
                                expand: bool = False) -> dict:
        def compute():
            sprint, items, partial = self._load_sprint(board_id)
            data = high_priority_items(filter_by_assignee(items, assignee), expand)
            data.update({"sprintName": sprint.name, "partial": partial})
            return data

        return self._result("get_high_priority_items", compute)

    def get_release_data(self, board_id, assignee: Optional[str] = None) -> dict:
        def compute():
            sprint, items, partial = self._load_sprint(board_id)
            data = release_progress(filter_by_assignee(items, assignee))
            data.update({"sprintName": sprint.name, "partial": partial})
            return data

        return self._result("get_release_data", compute)

    def delete_baseline(self, board_id) -> dict:
        def compute():
            if not board_id:
                raise InputError("Board ID is required")
            sprint = self.issue_source.get_active_sprint(board_id)
            if sprint is None:
                raise InputError("No active sprint found", 404)
            self.baseline_store.delete(sprint.id)
            logger.info(f"Baseline for sprint {sprint.id} deleted")
            return {"message": f"Baseline for sprint {sprint.name} deleted."}

        return self._result("delete_baseline", compute)

    def reset_baseline(self, board_id) -> dict:
        def compute():
            sprint, items, partial = self._load_sprint(board_id)
            if partial:
                raise UpstreamError("Cannot reset baseline from a partial issue list, try again")
            baseline = self.baseline_store.reset(sprint.id, items)
            return {
                "message": f"Baseline for sprint {sprint.name} recreated.",
                "baselineIssueCount": baseline.issue_count,
                "baselineCapturedAt": baseline.captured_at
            }

        return self._result("reset_baseline", compute)
