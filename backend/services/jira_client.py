"""Jira REST client: the issue source and the (optional) history source."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Optional

import requests

from services.errors import InputError, UpstreamError
from services.time_utils import to_day
from services.work_items import Sprint, WorkItem

logger = logging.getLogger(__name__)

ISSUE_FIELDS = [
    "summary", "status", "priority", "assignee", "issuetype",
    "timeoriginalestimate", "timeestimate", "timespent",
    "duedate", "created", "updated", "fixVersions", "parent", "subtasks"
]

# Statuses worth another attempt; other errors fail immediately
RETRY_STATUSES = {429, 500, 502, 503, 504}


class JiraClient:
    """Client for the Jira Agile and Platform REST APIs."""

    def __init__(self, server: str, email: str, token: str, timeout: int = 30,
                 max_retries: int = 2, retry_delay: float = 0.5, batch_size: int = 5):
        self.server = server.rstrip("/")
        self.email = email
        self.token = token
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.batch_size = max(1, batch_size)

    def _sleep_backoff(self, attempt: int):
        if self.retry_delay:
            time.sleep(min(self.retry_delay * (2 ** (attempt - 1)), 6.0))

    def _request(self, endpoint: str, params: Optional[dict] = None):
        """Make authenticated request to Jira API, retrying transient failures."""
        url = f"{self.server}{endpoint}"
        attempts = self.max_retries + 1

        for attempt in range(1, attempts + 1):
            try:
                response = requests.get(
                    url,
                    auth=(self.email, self.token),
                    headers={"Accept": "application/json"},
                    params=params,
                    timeout=self.timeout
                )
            except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
                if attempt == attempts:
                    raise
                logger.warning(f"GET {endpoint} failed (attempt {attempt}/{attempts}): {e}")
                self._sleep_backoff(attempt)
                continue

            if response.status_code in RETRY_STATUSES and attempt < attempts:
                logger.warning(
                    f"GET {endpoint} returned {response.status_code} (attempt {attempt}/{attempts})"
                )
                self._sleep_backoff(attempt)
                continue

            response.raise_for_status()
            return response.json()

    # Issue source

    def list_boards(self) -> list:
        """List all Scrum boards accessible to the user."""
        all_boards = []
        start_at = 0
        max_results = 50

        try:
            while True:
                data = self._request(
                    "/rest/agile/1.0/board",
                    params={"startAt": start_at, "maxResults": max_results, "type": "scrum"}
                )
                boards = data.get("values", [])
                all_boards.extend(boards)

                if data.get("isLast", True) or len(boards) < max_results:
                    break
                start_at += max_results
        except requests.exceptions.RequestException as e:
            raise UpstreamError(f"Failed to fetch boards: {e}")

        return [
            {
                "id": board["id"],
                "name": board["name"],
                "projectKey": board.get("location", {}).get("projectKey"),
                "projectName": board.get("location", {}).get("displayName")
            }
            for board in all_boards
        ]

    def get_active_sprint(self, board_id) -> Optional[Sprint]:
        """Return the board's active sprint, or None if it has none."""
        try:
            data = self._request(
                f"/rest/agile/1.0/board/{board_id}/sprint",
                params={"state": "active"}
            )
        except requests.exceptions.HTTPError as e:
            if e.response is not None and e.response.status_code == 404:
                raise InputError("Board not found", 404)
            raise UpstreamError(f"Failed to fetch active sprint: {e}")
        except requests.exceptions.RequestException as e:
            raise UpstreamError(f"Failed to fetch active sprint: {e}")

        sprints = [s for s in data.get("values", []) if s.get("state", "active") == "active"]
        if not sprints:
            return None
        return Sprint.from_jira(sprints[0])

    def list_sprint_issues(self, sprint_id) -> tuple:
        """Get all issues in a sprint.

        Returns:
            Tuple of (work items, partial). A failure on the first page is
            fatal; a failure on a later page keeps what was collected and
            sets partial.
        """
        all_issues = []
        start_at = 0
        max_results = 100
        partial = False

        while True:
            try:
                data = self._request(
                    f"/rest/agile/1.0/sprint/{sprint_id}/issue",
                    params={
                        "startAt": start_at,
                        "maxResults": max_results,
                        "fields": ",".join(ISSUE_FIELDS)
                    }
                )
            except requests.exceptions.RequestException as e:
                if not all_issues:
                    raise UpstreamError(f"Failed to fetch issues: {e}")
                logger.warning(
                    f"Issue page at {start_at} failed for sprint {sprint_id}, "
                    f"returning {len(all_issues)} issues collected so far: {e}"
                )
                partial = True
                break

            issues = data.get("issues", [])
            all_issues.extend(issues)

            total = data.get("total")
            if len(issues) < max_results or (total is not None and len(all_issues) >= total):
                break
            start_at += max_results

        return [WorkItem.from_jira(issue) for issue in all_issues], partial

    # History source

    def _paginate_issue_resource(self, endpoint: str, list_field: str) -> list:
        values = []
        start_at = 0
        max_results = 100

        while True:
            data = self._request(endpoint, params={"startAt": start_at, "maxResults": max_results})
            page = data.get(list_field, [])
            values.extend(page)
            if not page or len(values) >= (data.get("total") or 0):
                break
            start_at += max_results

        return values

    def get_changelog(self, issue_key: str) -> list:
        """Change histories for an issue, oldest first as Jira returns them."""
        return self._paginate_issue_resource(
            f"/rest/api/3/issue/{issue_key}/changelog", "values"
        )

    def get_worklogs(self, issue_key: str) -> list:
        """Worklogs for an issue as ``{"date", "hours"}`` rows."""
        worklogs = self._paginate_issue_resource(
            f"/rest/api/3/issue/{issue_key}/worklog", "worklogs"
        )
        rows = []
        for wl in worklogs:
            day = to_day(wl.get("started"))
            if day:
                rows.append({"date": day, "hours": (wl.get("timeSpentSeconds") or 0) / 3600})
        return rows

    def _batch_fetch(self, issue_keys: list, fetch, label: str) -> dict:
        """Fetch per-issue history in parallel, at most ``batch_size`` at a time.

        Failed lookups degrade to an empty list and are logged; every
        result is collected before returning.
        """
        keys = list(dict.fromkeys(issue_keys))
        if not keys:
            return {}

        def fetch_one(issue_key):
            try:
                return issue_key, fetch(issue_key)
            except Exception as e:
                logger.warning(f"Failed to fetch {label} for {issue_key}: {e}")
                return issue_key, []

        results = {}
        with ThreadPoolExecutor(max_workers=self.batch_size) as executor:
            futures = {executor.submit(fetch_one, key): key for key in keys}
            for future in as_completed(futures):
                issue_key, value = future.result()
                results[issue_key] = value

        return results

    def get_changelogs(self, issue_keys: list) -> dict:
        """Dict mapping issue key to its change histories."""
        return self._batch_fetch(issue_keys, self.get_changelog, "changelog")

    def get_logged_hours_by_day(self, issue_keys: list) -> dict:
        """Hours logged per calendar day across the given issues."""
        by_day = {}
        for rows in self._batch_fetch(issue_keys, self.get_worklogs, "worklogs").values():
            for row in rows:
                by_day[row["date"]] = by_day.get(row["date"], 0.0) + row["hours"]
        return by_day
