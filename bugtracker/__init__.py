"""
Bug Tracker
Flask Application Factory.

Usage:
    from bugtracker import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask, abort, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from bugtracker.config import config
from bugtracker.middleware.jwt_auth import init_jwt_middleware
from bugtracker.middleware.logging_config import configure_logging
from bugtracker.middleware.rate_limiter import init_rate_limits
from bugtracker.middleware.security_headers import init_security_headers
from bugtracker.middleware.timing import init_request_timing
from bugtracker.models import db
from bugtracker.utils.errors import register_error_handlers

logger = logging.getLogger(__name__)


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # per-blueprint limits only
)  # storage from RATELIMIT_STORAGE_URI


def _init_request_guards(app):
    @app.before_request
    def _guard_request():
        max_len = app.config.get("MAX_CONTENT_LENGTH")
        if max_len and request.content_length and request.content_length > max_len:
            abort(413, description="Request body too large")
        # Content-Type validation for mutating methods
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if request.content_length and "json" not in ct:
                abort(415, description="Content-Type must be application/json")


def _register_cli(app):
    @app.cli.command("seed-admin")
    @click.option("--email", default=None, help="Defaults to ADMIN_EMAIL.")
    @click.option("--password", default=None, help="Defaults to ADMIN_PASSWORD.")
    @click.option("--name", default=None, help="Defaults to ADMIN_NAME.")
    def seed_admin_cmd(email, password, name):
        """Create the admin account, or reset its password if it exists."""
        from bugtracker.services.user_service import ensure_admin

        email = email or app.config.get("ADMIN_EMAIL")
        password = password or app.config.get("ADMIN_PASSWORD")
        name = name or app.config.get("ADMIN_NAME")
        if not email or not password:
            raise click.UsageError("ADMIN_EMAIL and ADMIN_PASSWORD (or --email/--password) are required")

        user, created = ensure_admin(email, password, name)
        logger.info("Admin %s %s", user.email, "created" if created else "updated")
        click.echo(f"Admin {user.email} {'created' if created else 'updated'} (id={user.id})")


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    os.makedirs(app.instance_path, exist_ok=True)
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Middleware ───────────────────────────────────────────────────────
    init_security_headers(app)
    init_request_timing(app)
    _init_request_guards(app)
    init_jwt_middleware(app)

    # ── Error handlers ───────────────────────────────────────────────────
    register_error_handlers(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from bugtracker.models import audit as _audit_models       # noqa: F401
    from bugtracker.models import auth as _auth_models         # noqa: F401
    from bugtracker.models import bug as _bug_models           # noqa: F401
    from bugtracker.models import project as _project_models   # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        try:
            db.create_all()
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from bugtracker.blueprints.auth_bp import auth_bp
    from bugtracker.blueprints.bugs_bp import bugs_bp
    from bugtracker.blueprints.health_bp import health_bp
    from bugtracker.blueprints.modules_bp import modules_bp
    from bugtracker.blueprints.projects_bp import projects_bp
    from bugtracker.blueprints.users_bp import users_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(projects_bp)
    app.register_blueprint(modules_bp)
    app.register_blueprint(bugs_bp)
    app.register_blueprint(health_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    _register_cli(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
