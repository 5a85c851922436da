"""
Bug Status Lifecycle Service

Manages bug status transitions with:
  - Stale-state guard (request carries the status the caller last saw)
  - Transition table validation
  - Per-transition actor guard (only testers close, never developers)
  - Activity log (status_change)

Transition table:
  open      -> solved
  solved    -> closed, reopened
  closed    -> reopened
  reopened  -> solved

There is no absorbing state; a closed bug can be reopened indefinitely.

Usage:
    from bugtracker.services.bug_lifecycle import transition_bug

    result = transition_bug(
        bug_id="9f1c...",
        principal=principal,
        from_status="open",
        to_status="solved",
        note="Fixed in build 42",
    )
"""

import logging
from types import MappingProxyType

from bugtracker.core.exceptions import ConflictError, ForbiddenError, InvalidTransitionError
from bugtracker.models import db, utcnow
from bugtracker.models.auth import ROLE_TESTER
from bugtracker.models.bug import BUG_STATUSES, Bug
from bugtracker.models.project import Project
from bugtracker.services.activity_service import log_activity
from bugtracker.services.membership import is_admin
from bugtracker.utils.helpers import get_or_raise

logger = logging.getLogger(__name__)


BUG_TRANSITIONS = MappingProxyType({
    "open": frozenset({"solved"}),
    "solved": frozenset({"closed", "reopened"}),
    "closed": frozenset({"reopened"}),
    "reopened": frozenset({"solved"}),
})

# Target states restricted to testers (admin always passes).
TESTER_ONLY_TARGETS = frozenset({"closed"})


def allowed_targets(status: str) -> frozenset:
    return BUG_TRANSITIONS.get(status, frozenset())


def validate_bug_transition(current_status: str, from_status: str, to_status: str) -> None:
    """
    Check the stale-state guard and the transition table.

    Raises:
        ConflictError: ``from_status`` is not the bug's current status.
        InvalidTransitionError: ``to_status`` is not reachable from ``from_status``.
    """
    if current_status != from_status:
        raise ConflictError(
            f"Bug status is '{current_status}', not '{from_status}'",
            code="state",
        )
    if to_status not in allowed_targets(from_status):
        raise InvalidTransitionError(from_status, to_status)


def can_perform_transition(principal, bug, to_status: str) -> bool:
    """Actor guard for one specific transition."""
    if is_admin(principal):
        return True
    uid = str(principal.id)
    involved = uid == str(bug.reported_by) or uid in bug.assignee_ids
    if not involved:
        return False
    if to_status in TESTER_ONLY_TARGETS and principal.role != ROLE_TESTER:
        return False
    return True


def available_transitions(bug, principal) -> list[str]:
    """Target states ``principal`` may request from the bug's current status."""
    return [
        to for to in BUG_STATUSES
        if to in allowed_targets(bug.status) and can_perform_transition(principal, bug, to)
    ]


def transition_bug(
    bug_id: str,
    principal,
    *,
    from_status: str,
    to_status: str,
    note: str | None = None,
) -> dict:
    """
    Execute a bug status transition.

    The write is a conditional UPDATE keyed on the expected ``from_status``
    so two concurrent requests against the same status cannot both succeed.

    Returns:
        {"bug_id", "previous_status", "status", "bug"} where ``bug`` is the
        refreshed model instance

    Raises:
        NotFoundError, ConflictError, InvalidTransitionError, ForbiddenError
    """
    bug = get_or_raise(Bug, bug_id)
    # A bug whose project was deleted is unreachable
    get_or_raise(Project, bug.project_id)

    # 1-2. Stale-state guard + transition table
    validate_bug_transition(bug.status, from_status, to_status)

    # 3. Actor guard
    if not can_perform_transition(principal, bug, to_status):
        logger.info(
            "Transition denied: actor=%s role=%s bug=%s %s->%s",
            principal.id, principal.role, bug.id, from_status, to_status,
        )
        raise ForbiddenError(
            "You are not allowed to perform this transition",
            actor_id=principal.id,
            action=f"bug.status.{to_status}",
        )

    # 4. Compare-and-swap write
    result = db.session.execute(
        db.update(Bug)
        .where(Bug.id == bug.id, Bug.status == from_status)
        .values(status=to_status, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.session.rollback()
        raise ConflictError(
            f"Bug status changed concurrently; expected '{from_status}'",
            code="state",
        )
    db.session.commit()
    db.session.refresh(bug)

    # 5. Activity (best-effort)
    log_activity(
        actor_id=principal.id,
        action="status_change",
        bug_id=bug.id,
        from_value=from_status,
        to_value=to_status,
        note=note,
    )

    logger.info("Bug %s: %s -> %s by %s", bug.id, from_status, to_status, principal.id)
    return {
        "bug_id": bug.id,
        "previous_status": from_status,
        "status": bug.status,
        "bug": bug,
    }
