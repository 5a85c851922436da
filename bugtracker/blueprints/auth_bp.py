"""
Auth Blueprint — JWT authentication endpoints.

  POST /api/v1/auth/login       — Email + password → access token
  POST /api/v1/auth/register    — Admin creates an account
  GET  /api/v1/auth/me          — Current user profile
"""

import logging

from flask import Blueprint, jsonify, request

from bugtracker.middleware.jwt_auth import current_principal, require_auth
from bugtracker.models.auth import User
from bugtracker.services import user_service
from bugtracker.services.jwt_service import generate_token_response
from bugtracker.services.validators import validate_login, validate_user_create
from bugtracker.utils.helpers import get_or_raise

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth_bp", __name__, url_prefix="/api/v1/auth")


@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Authenticate with email + password.

    Body: { "email": "...", "password": "..." }
    """
    data = validate_login(request.get_json(silent=True))
    user = user_service.authenticate_user(data["email"], data["password"])
    logger.info("User %s logged in", user.id)
    return jsonify(generate_token_response(user)), 200


@auth_bp.route("/register", methods=["POST"])
@require_auth
def register():
    """
    Create an account.  Admin only; there is no self-service signup.

    Body: { "email": "...", "password": "...", "role": "...", "name": "..." }
    """
    data = validate_user_create(request.get_json(silent=True))
    user = user_service.register_user(current_principal(), data)
    return jsonify(user.to_dict()), 201


@auth_bp.route("/me", methods=["GET"])
@require_auth
def me():
    user = get_or_raise(User, current_principal().id)
    return jsonify(user.to_dict()), 200
