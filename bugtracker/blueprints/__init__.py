"""
Bug Tracker
Blueprint registry and shared request helpers.
"""

from flask import request

from bugtracker.utils.helpers import DEFAULT_PAGE_SIZE


def page_args():
    """Read 1-based ``page`` / ``limit`` query params.

    Bad values are passed through; ``helpers.paginate`` falls back to the
    defaults and caps ``limit``.

    Returns:
        (page, limit)
    """
    return request.args.get("page", 1), request.args.get("limit", DEFAULT_PAGE_SIZE)


def list_response(items, total=None):
    """``{"data": [...], "total": n}``; ``total`` omitted for unpaginated lists."""
    body = {"data": [i if isinstance(i, dict) else i.to_dict() for i in items]}
    if total is not None:
        body["total"] = total
    return body
