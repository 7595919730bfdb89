"""Helpers shared by the API blueprints."""

from flask import current_app, jsonify, request

from services.baseline_store import BaselineStore
from services.gadget_config import GadgetConfigStore
from services.jira_client import JiraClient
from services.sprint_dashboard import SprintDashboardService


def get_jira_credentials():
    """Extract Jira credentials from request headers."""
    server = request.headers.get("X-Jira-Server", "").rstrip("/")
    email = request.headers.get("X-Jira-Email")
    token = request.headers.get("X-Jira-Token")

    if not all([server, email, token]):
        return None, None, None

    return server, email, token


def get_assignee():
    """Optional assignee filter; "All" means no filter."""
    assignee = request.args.get("assignee", "").strip()
    if not assignee or assignee == "All":
        return None
    return assignee


def gadget_config_store() -> GadgetConfigStore:
    """Gadget configuration store with defaults from app settings."""
    settings = current_app.config["DASHBOARD_SETTINGS"]
    defaults = {"workingDaysDefault": settings["workingDaysDefault"]}
    if settings.get("defaultTeamSize"):
        defaults["teamSize"] = settings["defaultTeamSize"]
    return GadgetConfigStore(current_app.config["DASHBOARD_STORE"], defaults)


def build_service(server, email, token) -> SprintDashboardService:
    """Wire a request-scoped dashboard service from app settings."""
    settings = current_app.config["DASHBOARD_SETTINGS"]
    client = JiraClient(
        server, email, token,
        timeout=settings["requestTimeout"],
        max_retries=settings["maxRetries"],
        batch_size=settings["historyBatchSize"]
    )
    return SprintDashboardService(
        issue_source=client,
        history_source=client,
        baseline_store=BaselineStore(current_app.config["DASHBOARD_STORE"]),
        working_days_default=settings["workingDaysDefault"]
    )


def respond(result: dict):
    """Turn a tagged service result into a JSON response."""
    status_code = result.pop("statusCode", 200) if not result.get("success") else 200
    return jsonify(result), status_code


def missing_credentials():
    return jsonify({"success": False, "error": "Missing Jira credentials in headers"}), 401
