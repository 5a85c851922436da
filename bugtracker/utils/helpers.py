"""Shared persistence helpers for the service layer.

get_or_raise:   id lookup that raises NotFoundError instead of returning None
paginate:       page/limit slicing that returns (items, total)
parse_bool:     query-string booleans ("true"/"false"/"1"/"0")
"""

from bugtracker.core.exceptions import NotFoundError
from bugtracker.models import db


DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def get_or_raise(model, pk, label=None):
    """Fetch a model instance by primary key or raise NotFoundError.

    Usage::

        bug = get_or_raise(Bug, bug_id)
    """
    label = label or model.__name__
    obj = db.session.get(model, str(pk)) if pk is not None else None
    if obj is None:
        raise NotFoundError(resource=label, resource_id=pk)
    return obj


def paginate(query, page=1, limit=DEFAULT_PAGE_SIZE):
    """Apply 1-based page/limit pagination to a SQLAlchemy query.

    Invalid values fall back to the defaults; ``limit`` is capped at
    MAX_PAGE_SIZE.

    Returns:
        (items_list, total_count)
    """
    try:
        page = max(int(page), 1)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = min(max(int(limit), 1), MAX_PAGE_SIZE)
    except (TypeError, ValueError):
        limit = DEFAULT_PAGE_SIZE

    total = query.order_by(None).count()
    items = query.limit(limit).offset((page - 1) * limit).all()
    return items, total


def parse_bool(value):
    """Parse a query-string boolean; returns None when absent or unrecognised."""
    if value is None:
        return None
    text = str(value).strip().lower()
    if text in ("true", "1", "yes"):
        return True
    if text in ("false", "0", "no"):
        return False
    return None
