"""
Bug Service — orchestrates bug reads and writes.

Write sequence (every operation):
  1. resolve parents (module -> project, bug -> project)
  2. access policy check
  3. assignee subset check against current project members
  4. persist + commit
  5. best-effort activity append

Status changes go through ``bugtracker.services.bug_lifecycle``.
"""

from __future__ import annotations

import logging

from bugtracker.core.exceptions import NotFoundError, ValidationError
from bugtracker.models import db
from bugtracker.models.auth import User
from bugtracker.models.bug import Bug
from bugtracker.models.project import Module, Project
from bugtracker.services import access_policy as policy
from bugtracker.services.activity_service import list_bug_activities, log_activity
from bugtracker.services.bug_lifecycle import available_transitions
from bugtracker.utils.helpers import get_or_raise, paginate

logger = logging.getLogger(__name__)


def _project_of(bug: Bug) -> Project:
    project = db.session.get(Project, bug.project_id)
    if project is None:
        raise NotFoundError(resource="Project", resource_id=bug.project_id)
    return project


def _resolve_assignees(project: Project, assignee_ids: list[str]) -> list[User]:
    """
    Every id must be a current member of ``project``.

    Raises ValidationError listing the offenders; nothing is written.
    """
    if not assignee_ids:
        return []
    members = {u.id: u for u in project.members}
    bad = [a for a in assignee_ids if a not in members]
    if bad:
        raise ValidationError(
            "Assignees must be project members",
            details={"assignees": f"not project members: {', '.join(bad)}"},
        )
    return [members[a] for a in assignee_ids]


def bug_detail(bug: Bug, principal) -> dict:
    d = bug.to_dict()
    d["available_transitions"] = available_transitions(bug, principal)
    return d


# ── Reads ────────────────────────────────────────────────────────────────────

def _filtered(query, status=None, assignee=None):
    if status:
        query = query.filter(Bug.status == status)
    if assignee:
        query = query.filter(Bug.assignees.any(User.id == str(assignee)))
    return query.order_by(Bug.created_at.desc())


def list_project_bugs(principal, project_id: str, *, status=None, assignee=None,
                      page=1, limit=20) -> tuple[list[Bug], int]:
    project = get_or_raise(Project, project_id)
    policy.authorize(principal, policy.BUG_LIST, project=project)
    query = _filtered(Bug.query.filter(Bug.project_id == project.id), status, assignee)
    return paginate(query, page, limit)


def list_module_bugs(principal, module_id: str, *, status=None, assignee=None,
                     page=1, limit=20) -> tuple[list[Bug], int]:
    module = get_or_raise(Module, module_id)
    project = get_or_raise(Project, module.project_id)
    policy.authorize(principal, policy.BUG_LIST, project=project)
    query = _filtered(Bug.query.filter(Bug.module_id == module.id), status, assignee)
    return paginate(query, page, limit)


def get_bug(principal, bug_id: str) -> Bug:
    bug = get_or_raise(Bug, bug_id)
    policy.authorize(principal, policy.BUG_VIEW, project=_project_of(bug))
    return bug


def list_activities(principal, bug_id: str):
    bug = get_or_raise(Bug, bug_id)
    policy.authorize(principal, policy.ACTIVITY_LIST, project=_project_of(bug))
    return list_bug_activities(bug.id)


# ── Writes ───────────────────────────────────────────────────────────────────

def create_bug(principal, module_id: str, data: dict) -> Bug:
    """
    File a bug under a module.  The project comes from the module; status
    always starts at ``open`` and the reporter is the principal.
    """
    if data.get("module_id") and data["module_id"] != module_id:
        raise ValidationError(
            "module_id in body does not match the route",
            details={"module_id": "must match the module in the URL"},
        )
    module = get_or_raise(Module, module_id)
    project = get_or_raise(Project, module.project_id)
    policy.authorize(principal, policy.BUG_CREATE, project=project)
    assignees = _resolve_assignees(project, data.get("assignees") or [])

    bug = Bug(
        project_id=project.id,
        module_id=module.id,
        title=data["title"],
        description=data.get("description") or "",
        reported_by=principal.id,
        assignees=assignees,
    )
    db.session.add(bug)
    db.session.commit()

    log_activity(actor_id=principal.id, action="create", bug_id=bug.id, to_value=bug.snapshot())
    logger.info("Bug %s reported in module %s by %s", bug.id, module.id, principal.id)
    return bug


def update_bug(principal, bug_id: str, data: dict) -> Bug:
    """
    Patch title / description / module_id / assignees.

    General fields need reporter, assignee or admin.  An assignees-only
    patch is also open to testers who are project members.  Any invalid
    part rejects the whole patch.
    """
    bug = get_or_raise(Bug, bug_id)
    project = _project_of(bug)

    general = {k for k in ("title", "description", "module_id") if k in data}
    if general:
        policy.authorize(principal, policy.BUG_UPDATE, project=project, bug=bug)
    if "assignees" in data:
        policy.authorize(principal, policy.BUG_ASSIGN, project=project, bug=bug)

    new_assignees = None
    if "assignees" in data:
        new_assignees = _resolve_assignees(project, data["assignees"])

    new_module = None
    if "module_id" in data and data["module_id"] != bug.module_id:
        new_module = get_or_raise(Module, data["module_id"])
        if new_module.project_id != bug.project_id:
            raise ValidationError(
                "Module belongs to another project",
                details={"module_id": "must belong to the bug's project"},
            )

    before = bug.snapshot()
    if "title" in data:
        bug.title = data["title"]
    if "description" in data:
        bug.description = data["description"] or ""
    if new_module is not None:
        bug.module_id = new_module.id
    if new_assignees is not None:
        bug.assignees = new_assignees
    db.session.commit()

    log_activity(
        actor_id=principal.id,
        action="update",
        bug_id=bug.id,
        from_value=before,
        to_value=bug.snapshot(),
    )
    return bug


def delete_bug(principal, bug_id: str) -> None:
    bug = get_or_raise(Bug, bug_id)
    project = _project_of(bug)
    policy.authorize(principal, policy.BUG_DELETE, project=project, bug=bug)

    before = bug.snapshot()
    db.session.delete(bug)
    db.session.commit()

    log_activity(actor_id=principal.id, action="delete", bug_id=bug_id, from_value=before)
    logger.info("Bug %s deleted by %s", bug_id, principal.id)
