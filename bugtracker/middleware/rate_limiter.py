"""
Rate limiting configuration.

Applies per-blueprint limits using Flask-Limiter.  The Limiter instance is
created in bugtracker/__init__.py with no default limits; this module
applies limits per route category.

Usage:
    from bugtracker.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

LOGIN_LIMIT = "10/minute"
WRITE_LIMIT = "60/minute"

WRITE_METHODS = ["POST", "PUT", "PATCH", "DELETE"]


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Login:            10/minute  (credential guessing)
        - Write endpoints:  60/minute  (POST/PATCH/DELETE; reads unlimited)
        - Health check:     exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    login_view = app.view_functions.get("auth_bp.login")
    if login_view is not None:
        limiter.limit(LOGIN_LIMIT)(login_view)

    for bp_name in ("auth_bp", "users_bp", "projects_bp", "modules_bp", "bugs_bp"):
        bp = app.blueprints.get(bp_name)
        if bp is None:
            continue
        limiter.limit(WRITE_LIMIT, methods=WRITE_METHODS)(bp)

    bp = app.blueprints.get("health_bp")
    if bp:
        limiter.exempt(bp)

    logger.info("Rate limiter configured: login=%s write=%s", LOGIN_LIMIT, WRITE_LIMIT)
