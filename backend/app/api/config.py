"""Per-gadget configuration API endpoints.

Stores the board choice, team size and sprint length fallback in the
dashboard key-value store. The burndown endpoint reads them back when called
with ``gadget_id``.
"""

from flask import Blueprint, jsonify, request

from app.api.common import gadget_config_store
from services.errors import InputError

bp = Blueprint("config", __name__, url_prefix="/api/config")


@bp.route("/<gadget_id>", methods=["GET"])
def get_config(gadget_id):
    """Get a gadget's configuration, with defaults for unset values."""
    return jsonify({"success": True, "data": gadget_config_store().get(gadget_id)})


@bp.route("/<gadget_id>", methods=["POST"])
def save_config(gadget_id):
    """Save a gadget's configuration.

    Expects JSON body with any of:
        - boardId: Selected board
        - teamSize: Team size (at least 1)
        - workingDaysDefault: Sprint length fallback in working days
    """
    try:
        config = gadget_config_store().save(gadget_id, request.get_json(silent=True))
    except InputError as e:
        return jsonify({"success": False, "error": e.message}), e.status_code

    return jsonify({"success": True, "data": config})
