"""Standardised API error responses.

Usage
-----
    from bugtracker.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Bug not found")
    return api_error(E.VALIDATION_INVALID, "title is required", details={"title": "required"})
"""

from __future__ import annotations

from flask import jsonify


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (``ERR_`` prefix)."""

    # Validation – HTTP 400
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Authentication – HTTP 401
    UNAUTHORIZED = "ERR_UNAUTHORIZED"

    # Permissions – HTTP 403
    FORBIDDEN = "ERR_FORBIDDEN"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"

    # Routing / transport – HTTP 405, 413, 415
    METHOD_NOT_ALLOWED = "ERR_METHOD_NOT_ALLOWED"
    PAYLOAD_TOO_LARGE = "ERR_PAYLOAD_TOO_LARGE"
    UNSUPPORTED_MEDIA_TYPE = "ERR_UNSUPPORTED_MEDIA_TYPE"

    # Lifecycle – HTTP 422
    INVALID_TRANSITION = "ERR_INVALID_TRANSITION"

    # Throttling – HTTP 429
    RATE_LIMITED = "ERR_RATE_LIMITED"

    # Any other HTTP error raised by Flask / Werkzeug
    HTTP = "ERR_HTTP"

    # Server – HTTP 500
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_INVALID: 400,
    E.UNAUTHORIZED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.CONFLICT_STATE: 409,
    E.METHOD_NOT_ALLOWED: 405,
    E.PAYLOAD_TOO_LARGE: 413,
    E.UNSUPPORTED_MEDIA_TYPE: 415,
    E.INVALID_TRANSITION: 422,
    E.RATE_LIMITED: 429,
    E.INTERNAL: 500,
}

# Werkzeug status -> code for aborts and routing errors
_HTTP_CODES: dict[int, str] = {
    400: E.VALIDATION_INVALID,
    401: E.UNAUTHORIZED,
    403: E.FORBIDDEN,
    404: E.NOT_FOUND,
    405: E.METHOD_NOT_ALLOWED,
    413: E.PAYLOAD_TOO_LARGE,
    415: E.UNSUPPORTED_MEDIA_TYPE,
    429: E.RATE_LIMITED,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for the UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Field-level breakdown for validation failures.

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def register_error_handlers(app) -> None:
    """Map domain exceptions to JSON error responses for every blueprint."""
    import logging

    from flask import request
    from werkzeug.exceptions import HTTPException

    from bugtracker.core.exceptions import (
        AuthenticationError,
        ConflictError,
        ForbiddenError,
        InvalidTransitionError,
        NotFoundError,
        ValidationError,
    )

    logger = logging.getLogger(__name__)

    @app.errorhandler(ValidationError)
    def _validation(error: ValidationError):
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details)

    @app.errorhandler(AuthenticationError)
    def _unauthorized(error: AuthenticationError):
        return api_error(E.UNAUTHORIZED, str(error))

    @app.errorhandler(ForbiddenError)
    def _forbidden(error: ForbiddenError):
        logger.warning(
            "Forbidden: actor=%s action=%s path=%s",
            error.actor_id, error.action, request.path,
        )
        return api_error(E.FORBIDDEN, str(error))

    @app.errorhandler(NotFoundError)
    def _not_found(error: NotFoundError):
        logger.debug("%s id=%s not found", error.resource, error.resource_id)
        return api_error(E.NOT_FOUND, str(error))

    @app.errorhandler(ConflictError)
    def _conflict(error: ConflictError):
        code = E.CONFLICT_STATE if error.code == "state" else E.CONFLICT_DUPLICATE
        return api_error(code, str(error))

    @app.errorhandler(InvalidTransitionError)
    def _invalid_transition(error: InvalidTransitionError):
        return api_error(
            E.INVALID_TRANSITION,
            str(error),
            details={"from": error.from_status, "to": error.to_status},
        )

    @app.errorhandler(HTTPException)
    def _http(error: HTTPException):
        code = _HTTP_CODES.get(error.code, E.HTTP)
        return api_error(code, error.description or error.name, status=error.code)

    @app.errorhandler(Exception)
    def _unexpected(error: Exception):
        logger.exception("Unexpected error endpoint=%s", request.endpoint)
        return api_error(E.INTERNAL, "Internal server error")
