"""
Access Policy Evaluator — the single authorization decision point for
project, module and bug operations.

Rules, in priority order:
  1. admin bypasses every membership and role restriction
  2. viewing a project / its modules / its bugs requires membership
  3. creating a module: tester who is a project member
  4. creating a bug: tester who is a project member
  5. editing bug fields (title, description, module_id): reporter or assignee
  6. editing bug assignees: reporter, assignee, or a tester who is a member
  7. (assignee subset check lives in bug_service as input validation)
  8. deleting a bug: reporter only
  9. listing a bug's activities: same as viewing the bug

Every rule is a pure function of (principal, project, bug); nothing here
touches the database or has side effects.  Deny-by-default: an unknown
action is never allowed.

Usage:
    from bugtracker.services.access_policy import authorize, BUG_DELETE

    authorize(principal, BUG_DELETE, project=project, bug=bug)  # raises ForbiddenError
"""

import logging
from types import MappingProxyType

from bugtracker.core.exceptions import ForbiddenError
from bugtracker.models.auth import ROLE_TESTER
from bugtracker.services.membership import is_admin, is_member

logger = logging.getLogger(__name__)

# ── Actions ──────────────────────────────────────────────────────────────────

PROJECT_VIEW = "project.view"
PROJECT_MANAGE = "project.manage"
MODULE_LIST = "module.list"
MODULE_CREATE = "module.create"
BUG_LIST = "bug.list"
BUG_VIEW = "bug.view"
BUG_CREATE = "bug.create"
BUG_UPDATE = "bug.update"
BUG_ASSIGN = "bug.assign"
BUG_DELETE = "bug.delete"
ACTIVITY_LIST = "activity.list"
USER_MANAGE = "user.manage"


# ── Predicates ───────────────────────────────────────────────────────────────

def _is_reporter(principal, bug) -> bool:
    return bug is not None and str(bug.reported_by) == str(principal.id)


def _is_assignee(principal, bug) -> bool:
    return bug is not None and str(principal.id) in bug.assignee_ids


def _is_tester_member(principal, project) -> bool:
    return principal.role == ROLE_TESTER and is_member(project, principal.id)


# ── Rules (admin already handled by evaluate) ────────────────────────────────

def _member_rule(principal, project, bug):
    return is_member(project, principal.id)


def _tester_member_rule(principal, project, bug):
    return _is_tester_member(principal, project)


def _bug_owner_rule(principal, project, bug):
    return _is_reporter(principal, bug) or _is_assignee(principal, bug)


def _bug_assign_rule(principal, project, bug):
    return _bug_owner_rule(principal, project, bug) or _is_tester_member(principal, project)


def _reporter_rule(principal, project, bug):
    return _is_reporter(principal, bug)


def _admin_only_rule(principal, project, bug):
    return False


_RULES = MappingProxyType({
    PROJECT_VIEW: _member_rule,
    MODULE_LIST: _member_rule,
    BUG_LIST: _member_rule,
    BUG_VIEW: _member_rule,
    ACTIVITY_LIST: _member_rule,
    MODULE_CREATE: _tester_member_rule,
    BUG_CREATE: _tester_member_rule,
    BUG_UPDATE: _bug_owner_rule,
    BUG_ASSIGN: _bug_assign_rule,
    BUG_DELETE: _reporter_rule,
    PROJECT_MANAGE: _admin_only_rule,
    USER_MANAGE: _admin_only_rule,
})

_DENY_MESSAGES = MappingProxyType({
    PROJECT_VIEW: "You are not assigned to this project",
    MODULE_LIST: "You are not assigned to this project",
    BUG_LIST: "You are not assigned to this project",
    BUG_VIEW: "You are not assigned to this project",
    ACTIVITY_LIST: "You are not assigned to this project",
    MODULE_CREATE: "Only a tester assigned to this project or an admin can create modules",
    BUG_CREATE: "Only a tester assigned to this project or an admin can report bugs",
    BUG_UPDATE: "Only the reporter, an assignee or an admin can edit this bug",
    BUG_ASSIGN: "You are not allowed to change the assignees of this bug",
    BUG_DELETE: "Only the reporter or an admin can delete this bug",
    PROJECT_MANAGE: "Admin role required",
    USER_MANAGE: "Admin role required",
})


# ── Public API ───────────────────────────────────────────────────────────────

def evaluate(principal, action: str, *, project=None, bug=None) -> dict:
    """
    Decide whether ``principal`` may perform ``action``.

    Args:
        principal: Authenticated ``Principal`` (id, role).
        action: One of the action constants in this module.
        project: The owning project (parent of the module/bug), if any.
        bug: The target bug for bug-level actions.

    Returns:
        {"allowed": bool, "decision": str, "action": str}
    """
    if principal is None:
        return {"allowed": False, "decision": "deny_unauthenticated", "action": action}

    rule = _RULES.get(action)
    if rule is None:
        return {"allowed": False, "decision": "deny_unknown_action", "action": action}

    if is_admin(principal):
        return {"allowed": True, "decision": "allow_admin", "action": action}

    allowed = bool(rule(principal, project, bug))
    return {
        "allowed": allowed,
        "decision": "allow_rule" if allowed else "deny_by_rule",
        "action": action,
    }


def is_allowed(principal, action: str, *, project=None, bug=None) -> bool:
    return evaluate(principal, action, project=project, bug=bug)["allowed"]


def authorize(principal, action: str, *, project=None, bug=None) -> None:
    """
    Assert ``principal`` may perform ``action``; raise ForbiddenError if not.

    Callers must invoke this before applying any mutation.
    """
    result = evaluate(principal, action, project=project, bug=bug)
    if result["allowed"]:
        return
    actor_id = getattr(principal, "id", None)
    logger.info(
        "Access denied: actor=%s role=%s action=%s decision=%s",
        actor_id, getattr(principal, "role", None), action, result["decision"],
    )
    raise ForbiddenError(
        _DENY_MESSAGES.get(action, "Forbidden"),
        actor_id=actor_id,
        action=action,
    )
