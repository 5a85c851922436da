"""
Activity Service — append-only audit trail for bug and module mutations.

``log_activity`` is best-effort: it runs after the primary mutation has been
committed, in its own transaction, and swallows (but logs) any failure so
the caller's result is never affected.

Usage:
    from bugtracker.services.activity_service import log_activity

    log_activity(actor_id=principal.id, action="status_change",
                 bug_id=bug.id, from_value="open", to_value="solved")
"""

import json
import logging

from bugtracker.models import db
from bugtracker.models.audit import ACTIVITY_ACTIONS, Activity

logger = logging.getLogger(__name__)

_UNSET = object()


def _dump(value):
    if value is _UNSET:
        return None
    return json.dumps(value, default=str, sort_keys=True)


def log_activity(
    *,
    actor_id: str,
    action: str,
    bug_id: str | None = None,
    module_id: str | None = None,
    from_value=_UNSET,
    to_value=_UNSET,
    note: str | None = None,
) -> Activity | None:
    """
    Append one Activity row and commit it.

    Returns the Activity on success, ``None`` if the write failed.  Never
    raises.
    """
    try:
        if action not in ACTIVITY_ACTIONS:
            raise ValueError(f"Unknown activity action: {action}")
        activity = Activity(
            bug_id=bug_id,
            module_id=module_id,
            actor_id=str(actor_id),
            action=action,
            from_json=_dump(from_value),
            to_json=_dump(to_value),
            note=note,
        )
        db.session.add(activity)
        db.session.commit()
        return activity
    except Exception:
        db.session.rollback()
        logger.warning(
            "Activity log failed (action=%s bug=%s module=%s); main flow unaffected",
            action, bug_id, module_id, exc_info=True,
        )
        return None


def list_bug_activities(bug_id: str) -> list[Activity]:
    """Newest first."""
    return (
        Activity.query
        .filter(Activity.bug_id == str(bug_id))
        .order_by(Activity.created_at.desc(), Activity.id.desc())
        .all()
    )
