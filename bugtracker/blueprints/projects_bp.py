"""
Projects Blueprint — project CRUD and membership.

  GET    /api/v1/projects?status&member&page&limit   (admin)
  POST   /api/v1/projects                            (admin)
  GET    /api/v1/projects/my-projects
  GET    /api/v1/projects/<project_id>               (member or admin)
  PATCH  /api/v1/projects/<project_id>               (admin)
  DELETE /api/v1/projects/<project_id>               (admin)
  PATCH  /api/v1/projects/<project_id>/members       (admin) {add?, remove?}
"""

from flask import Blueprint, jsonify, request

from bugtracker.blueprints import list_response, page_args
from bugtracker.middleware.jwt_auth import current_principal, require_auth
from bugtracker.services import project_service
from bugtracker.services.validators import (
    validate_project_create,
    validate_project_members,
    validate_project_update,
)

projects_bp = Blueprint("projects_bp", __name__, url_prefix="/api/v1/projects")


@projects_bp.route("", methods=["GET"])
@require_auth
def list_projects():
    page, limit = page_args()
    items, total = project_service.list_projects(
        current_principal(),
        status=request.args.get("status"),
        member=request.args.get("member"),
        page=page,
        limit=limit,
    )
    return jsonify(list_response(items, total)), 200


@projects_bp.route("/my-projects", methods=["GET"])
@require_auth
def my_projects():
    return jsonify(list_response(project_service.list_my_projects(current_principal()))), 200


@projects_bp.route("", methods=["POST"])
@require_auth
def create_project():
    data = validate_project_create(request.get_json(silent=True))
    project = project_service.create_project(current_principal(), data)
    return jsonify(project.to_dict()), 201


@projects_bp.route("/<project_id>", methods=["GET"])
@require_auth
def get_project(project_id):
    return jsonify(project_service.get_project(current_principal(), project_id).to_dict()), 200


@projects_bp.route("/<project_id>", methods=["PATCH"])
@require_auth
def update_project(project_id):
    data = validate_project_update(request.get_json(silent=True))
    project = project_service.update_project(current_principal(), project_id, data)
    return jsonify(project.to_dict()), 200


@projects_bp.route("/<project_id>", methods=["DELETE"])
@require_auth
def delete_project(project_id):
    project_service.delete_project(current_principal(), project_id)
    return "", 204


@projects_bp.route("/<project_id>/members", methods=["PATCH"])
@require_auth
def update_members(project_id):
    data = validate_project_members(request.get_json(silent=True))
    project = project_service.update_members(current_principal(), project_id, data)
    return jsonify(project.to_dict()), 200
