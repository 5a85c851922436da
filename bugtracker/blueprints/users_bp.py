"""
Users Blueprint — admin user management.

  GET    /api/v1/users?role&active&page&limit
  POST   /api/v1/users
  GET    /api/v1/users/<user_id>
  PATCH  /api/v1/users/<user_id>   — role, is_active, name
  DELETE /api/v1/users/<user_id>
"""

from flask import Blueprint, jsonify, request

from bugtracker.blueprints import list_response, page_args
from bugtracker.middleware.jwt_auth import current_principal, require_role
from bugtracker.models.auth import ROLE_ADMIN
from bugtracker.services import user_service
from bugtracker.services.validators import validate_user_create, validate_user_update
from bugtracker.utils.helpers import parse_bool

users_bp = Blueprint("users_bp", __name__, url_prefix="/api/v1/users")


@users_bp.route("", methods=["GET"])
@require_role(ROLE_ADMIN)
def list_users():
    page, limit = page_args()
    items, total = user_service.list_users(
        current_principal(),
        role=request.args.get("role"),
        active=parse_bool(request.args.get("active")),
        page=page,
        limit=limit,
    )
    return jsonify(list_response(items, total)), 200


@users_bp.route("", methods=["POST"])
@require_role(ROLE_ADMIN)
def create_user():
    data = validate_user_create(request.get_json(silent=True))
    user = user_service.register_user(current_principal(), data)
    return jsonify(user.to_dict()), 201


@users_bp.route("/<user_id>", methods=["GET"])
@require_role(ROLE_ADMIN)
def get_user(user_id):
    return jsonify(user_service.get_user(current_principal(), user_id).to_dict()), 200


@users_bp.route("/<user_id>", methods=["PATCH"])
@require_role(ROLE_ADMIN)
def update_user(user_id):
    data = validate_user_update(request.get_json(silent=True))
    user = user_service.update_user(current_principal(), user_id, data)
    return jsonify(user.to_dict()), 200


@users_bp.route("/<user_id>", methods=["DELETE"])
@require_role(ROLE_ADMIN)
def delete_user(user_id):
    user_service.delete_user(current_principal(), user_id)
    return "", 204
