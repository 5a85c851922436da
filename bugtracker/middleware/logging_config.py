"""
Logging setup for the bug tracker.

Every record logged while a request is being served carries the request id
and the id of the authenticated user, so service-level lines (status changes,
membership edits, failed activity writes) can be joined with the per-request
line written by ``middleware/timing.py``.

Production writes one JSON object per line; everything else writes
``HH:MM:SS LEVEL logger: message [req=.. user=.. bug=..]``.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context

# Context keys rendered by both formatters, in output order
CONTEXT_FIELDS = ("request_id", "user_id", "project_id", "bug_id")
_REQUEST_FIELDS = ("method", "path", "status", "duration_ms", "remote_addr")

_SHORT_NAMES = {"request_id": "req", "user_id": "user", "project_id": "project", "bug_id": "bug"}


class RequestContextFilter(logging.Filter):
    """Stamp ``request_id`` and ``user_id`` from ``flask.g`` onto records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            if getattr(record, "request_id", None) is None:
                record.request_id = getattr(g, "request_id", None)
            if getattr(record, "user_id", None) is None:
                principal = getattr(g, "principal", None)
                record.user_id = principal.id if principal else None
        return True


def _context(record: logging.LogRecord, keys) -> dict:
    return {k: v for k in keys if (v := getattr(record, k, None)) is not None}


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(_context(record, _REQUEST_FIELDS + CONTEXT_FIELDS))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{ts} {record.levelname:<8} {record.name}: {record.getMessage()}"
        ctx = _context(record, CONTEXT_FIELDS)
        if ctx:
            line += " [" + " ".join(f"{_SHORT_NAMES[k]}={v}" for k, v in ctx.items()) + "]"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """
    Install one stderr handler on the root logger.

    JSON unless DEBUG or TESTING is set.  LOG_LEVEL overrides the level
    (INFO in production, DEBUG otherwise).
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if is_prod else "DEBUG").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if is_prod else ReadableFormatter())
    handler.addFilter(RequestContextFilter())

    # Cleared first so repeated factories don't stack handlers
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("werkzeug", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
