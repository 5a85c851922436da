"""
Modules Blueprint.

  GET  /api/v1/projects/<project_id>/modules
  POST /api/v1/projects/<project_id>/modules   {name}
  GET  /api/v1/modules/my-modules
"""

from flask import Blueprint, jsonify, request

from bugtracker.blueprints import list_response
from bugtracker.middleware.jwt_auth import current_principal, require_auth
from bugtracker.services import module_service
from bugtracker.services.validators import validate_module_create

modules_bp = Blueprint("modules_bp", __name__, url_prefix="/api/v1")


@modules_bp.route("/projects/<project_id>/modules", methods=["GET"])
@require_auth
def list_modules(project_id):
    return jsonify(list_response(module_service.list_modules(current_principal(), project_id))), 200


@modules_bp.route("/projects/<project_id>/modules", methods=["POST"])
@require_auth
def create_module(project_id):
    data = validate_module_create(request.get_json(silent=True))
    module = module_service.create_module(current_principal(), project_id, data)
    return jsonify(module.to_dict()), 201


@modules_bp.route("/modules/my-modules", methods=["GET"])
@require_auth
def my_modules():
    return jsonify(list_response(module_service.list_my_modules(current_principal()))), 200
