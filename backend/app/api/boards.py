"""Board API endpoints."""

from flask import Blueprint

from app.api.common import build_service, get_jira_credentials, missing_credentials, respond

bp = Blueprint("boards", __name__, url_prefix="/api/boards")


@bp.route("", methods=["GET"])
def list_boards():
    """List all Scrum boards accessible to the user.

    Requires headers:
        - X-Jira-Server: Jira server URL
        - X-Jira-Email: User's Jira email
        - X-Jira-Token: Jira API token
    """
    server, email, token = get_jira_credentials()

    if not server:
        return missing_credentials()

    service = build_service(server, email, token)
    return respond(service.list_boards())
