"""
Health check blueprint.

Endpoints:
    GET /api/v1/health        — liveness, always 200 if the app is running
    GET /api/v1/health/ready  — readiness, checks the database
"""

import logging
import time

from flask import Blueprint, jsonify

from bugtracker.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__, url_prefix="/api/v1/health")


@health_bp.route("", methods=["GET"])
def live():
    return jsonify({"status": "ok", "app": "bugtracker"}), 200


@health_bp.route("/ready", methods=["GET"])
def ready():
    """Readiness probe with database round-trip."""
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
    except Exception as exc:
        logger.error("Health check — database failed: %s", exc)
        return jsonify({"status": "error", "database": {"status": "error"}}), 503
    return jsonify({
        "status": "ok",
        "database": {"status": "ok", "latency_ms": round(db_ms, 1)},
    }), 200
