"""
JWT Auth Middleware — parses the bearer token and sets ``g.principal``.

The hook never rejects a request on its own: it records what it found and
the ``require_auth`` / ``require_role`` decorators decide.  The role is
always re-read from the user record, so a demoted or deactivated account
loses access on its next request even with an unexpired token.

Usage:
    @bp.route("/api/v1/projects", methods=["POST"])
    @require_role("admin")
    def create_project():
        ...
"""

import functools
import logging

import jwt as pyjwt
from flask import g, request

from bugtracker.core.exceptions import AuthenticationError, ForbiddenError
from bugtracker.core.principal import Principal
from bugtracker.models import db
from bugtracker.models.auth import User
from bugtracker.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that never carry a token
JWT_SKIP_PREFIXES = (
    "/api/v1/auth/login",
    "/api/v1/health",
)


def _resolve_principal(token: str):
    """Return (principal, error_message)."""
    try:
        payload = decode_access_token(token)
    except pyjwt.ExpiredSignatureError:
        return None, "Token expired"
    except pyjwt.InvalidTokenError:
        return None, "Invalid token"

    user = db.session.get(User, payload["sub"])
    if user is None:
        return None, "Invalid token"
    if not user.is_active:
        return None, "Account is inactive"
    return Principal.from_user(user), None


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.principal = None
        g.auth_error = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        g.principal, g.auth_error = _resolve_principal(auth_header[7:])
        if g.auth_error:
            logger.debug("Bearer token rejected on %s: %s", path, g.auth_error)


def current_principal() -> Principal:
    """The authenticated principal, or AuthenticationError."""
    principal = getattr(g, "principal", None)
    if principal is None:
        raise AuthenticationError(getattr(g, "auth_error", None) or "Authentication required")
    return principal


def require_auth(f):
    """Decorator: any authenticated, active user."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        current_principal()
        return f(*args, **kwargs)
    return decorated


def require_role(*roles: str):
    """
    Decorator: authenticated user whose role is one of ``roles``.

    Coarse route-level gate only; per-resource checks live in the
    access policy service.
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            principal = current_principal()
            if principal.role not in roles:
                logger.warning(
                    "User %s denied: role %s not in %s on %s",
                    principal.id, principal.role, roles, f.__name__,
                )
                raise ForbiddenError(actor_id=principal.id, action=f.__name__)
            return f(*args, **kwargs)
        return decorated
    return decorator
