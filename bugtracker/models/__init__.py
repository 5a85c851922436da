"""
Bug Tracker
SQLAlchemy extension and shared model helpers.

Usage:
    from bugtracker.models import db, new_id
"""

import uuid
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def new_id() -> str:
    """Opaque, stable primary key for every entity."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
