"""Sprint metrics API endpoints."""

from flask import Blueprint, request

from app.api.common import (
    build_service, gadget_config_store, get_assignee, get_jira_credentials,
    missing_credentials, respond
)

bp = Blueprint("metrics", __name__, url_prefix="/api/metrics")


def get_team_size():
    """Get optional team size from query params.

    Returns:
        int, None when absent, or the raw string when it is not a number
        (the service rejects it with a readable message)
    """
    team_size = request.args.get("team_size")
    if team_size is None or team_size == "":
        return None
    try:
        return int(team_size)
    except ValueError:
        return team_size


@bp.route("/<int:board_id>/burndown", methods=["GET"])
def get_burndown(board_id):
    """Get the burndown series for the board's active sprint.

    Query params:
        - assignee: Optional assignee display name ("All" for everyone)
        - team_size: Optional team size (defaults to the gadget's saved team
          size, then the number of assignees)
        - gadget_id: Optional gadget whose saved teamSize and
          workingDaysDefault apply

    Returns:
        - Per-day ideal, remaining, logged and scope-change values
        - Capacity, estimate and scope totals
        - Per-issue effective values
    """
    server, email, token = get_jira_credentials()

    if not server:
        return missing_credentials()

    team_size = get_team_size()
    if isinstance(team_size, str):
        return respond({"success": False, "error": "team_size must be a whole number",
                        "statusCode": 400})

    working_days_default = None
    gadget_id = request.args.get("gadget_id")
    if gadget_id:
        config = gadget_config_store().get(gadget_id)
        if team_size is None:
            team_size = config.get("teamSize")
        working_days_default = config.get("workingDaysDefault")

    service = build_service(server, email, token)
    return respond(service.get_burndown(
        board_id, get_assignee(), team_size, working_days_default=working_days_default
    ))


@bp.route("/<int:board_id>/health", methods=["GET"])
def get_health(board_id):
    """Get estimate health counts (underestimated / normal / good)."""
    server, email, token = get_jira_credentials()

    if not server:
        return missing_credentials()

    service = build_service(server, email, token)
    return respond(service.get_sprint_health(board_id, get_assignee()))


@bp.route("/<int:board_id>/at-risk", methods=["GET"])
def get_at_risk(board_id):
    """Get unfinished items past their time box or due date."""
    server, email, token = get_jira_credentials()

    if not server:
        return missing_credentials()

    service = build_service(server, email, token)
    return respond(service.get_at_risk_items(board_id, get_assignee()))


@bp.route("/<int:board_id>/scope-changes", methods=["GET"])
def get_scope_changes(board_id):
    """Get items added, removed or re-prioritised since the sprint baseline."""
    server, email, token = get_jira_credentials()

    if not server:
        return missing_credentials()

    service = build_service(server, email, token)
    return respond(service.get_scope_changes(board_id, get_assignee()))


@bp.route("/<int:board_id>/priority", methods=["GET"])
def get_priority(board_id):
    """Get sprint items by priority.

    Query params:
        - expand: "true" to return every item instead of the top 5
    """
    server, email, token = get_jira_credentials()

    if not server:
        return missing_credentials()

    expand = request.args.get("expand", "").lower() in ("1", "true", "yes")
    service = build_service(server, email, token)
    return respond(service.get_high_priority_items(board_id, get_assignee(), expand))


@bp.route("/<int:board_id>/releases", methods=["GET"])
def get_releases(board_id):
    """Get fix version progress for the sprint's items."""
    server, email, token = get_jira_credentials()

    if not server:
        return missing_credentials()

    service = build_service(server, email, token)
    return respond(service.get_release_data(board_id, get_assignee()))


@bp.route("/<int:board_id>/baseline", methods=["DELETE"])
def delete_baseline(board_id):
    """Delete the active sprint's baseline; the next burndown captures a new one."""
    server, email, token = get_jira_credentials()

    if not server:
        return missing_credentials()

    service = build_service(server, email, token)
    return respond(service.delete_baseline(board_id))


@bp.route("/<int:board_id>/baseline/reset", methods=["POST"])
def reset_baseline(board_id):
    """Recreate the active sprint's baseline from its current items."""
    server, email, token = get_jira_credentials()

    if not server:
        return missing_credentials()

    service = build_service(server, email, token)
    return respond(service.reset_baseline(board_id))
