"""
Bugs Blueprint — bug CRUD, status changes and activity history.

  GET    /api/v1/projects/<project_id>/bugs?status&assignee&page&limit
  GET    /api/v1/modules/<module_id>/bugs?status&assignee&page&limit
  POST   /api/v1/modules/<module_id>/bugs
  GET    /api/v1/bugs/<bug_id>
  PATCH  /api/v1/bugs/<bug_id>
  DELETE /api/v1/bugs/<bug_id>
  PATCH  /api/v1/bugs/<bug_id>/status      {from, to, note?}
  GET    /api/v1/bugs/<bug_id>/activities
"""

from flask import Blueprint, jsonify, request

from bugtracker.blueprints import list_response, page_args
from bugtracker.middleware.jwt_auth import current_principal, require_auth
from bugtracker.services import bug_service
from bugtracker.services.bug_lifecycle import transition_bug
from bugtracker.services.validators import (
    validate_bug_create,
    validate_bug_update,
    validate_status_change,
)

bugs_bp = Blueprint("bugs_bp", __name__, url_prefix="/api/v1")


def _list_filters():
    page, limit = page_args()
    return {
        "status": request.args.get("status"),
        "assignee": request.args.get("assignee"),
        "page": page,
        "limit": limit,
    }


@bugs_bp.route("/projects/<project_id>/bugs", methods=["GET"])
@require_auth
def list_project_bugs(project_id):
    items, total = bug_service.list_project_bugs(current_principal(), project_id, **_list_filters())
    return jsonify(list_response(items, total)), 200


@bugs_bp.route("/modules/<module_id>/bugs", methods=["GET"])
@require_auth
def list_module_bugs(module_id):
    items, total = bug_service.list_module_bugs(current_principal(), module_id, **_list_filters())
    return jsonify(list_response(items, total)), 200


@bugs_bp.route("/modules/<module_id>/bugs", methods=["POST"])
@require_auth
def create_bug(module_id):
    principal = current_principal()
    data = validate_bug_create(request.get_json(silent=True))
    bug = bug_service.create_bug(principal, module_id, data)
    return jsonify(bug_service.bug_detail(bug, principal)), 201


@bugs_bp.route("/bugs/<bug_id>", methods=["GET"])
@require_auth
def get_bug(bug_id):
    principal = current_principal()
    bug = bug_service.get_bug(principal, bug_id)
    return jsonify(bug_service.bug_detail(bug, principal)), 200


@bugs_bp.route("/bugs/<bug_id>", methods=["PATCH"])
@require_auth
def update_bug(bug_id):
    principal = current_principal()
    data = validate_bug_update(request.get_json(silent=True))
    bug = bug_service.update_bug(principal, bug_id, data)
    return jsonify(bug_service.bug_detail(bug, principal)), 200


@bugs_bp.route("/bugs/<bug_id>", methods=["DELETE"])
@require_auth
def delete_bug(bug_id):
    bug_service.delete_bug(current_principal(), bug_id)
    return "", 204


@bugs_bp.route("/bugs/<bug_id>/status", methods=["PATCH"])
@require_auth
def change_status(bug_id):
    """
    Move a bug through its lifecycle.

    Body: { "from": "<status the caller last saw>", "to": "...", "note": "..." }
    """
    principal = current_principal()
    data = validate_status_change(request.get_json(silent=True))
    result = transition_bug(
        bug_id,
        principal,
        from_status=data["from"],
        to_status=data["to"],
        note=data.get("note"),
    )
    return jsonify({
        "bug_id": result["bug_id"],
        "previous_status": result["previous_status"],
        "status": result["status"],
        "bug": bug_service.bug_detail(result["bug"], principal),
    }), 200


@bugs_bp.route("/bugs/<bug_id>/activities", methods=["GET"])
@require_auth
def list_activities(bug_id):
    return jsonify(list_response(bug_service.list_activities(current_principal(), bug_id))), 200
