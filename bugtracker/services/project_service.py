"""Project service — admin CRUD, membership edits and member-scoped reads."""

from __future__ import annotations

import logging

from bugtracker.core.exceptions import ValidationError
from bugtracker.models import db
from bugtracker.models.auth import User
from bugtracker.models.project import Project, project_members
from bugtracker.services.access_policy import PROJECT_MANAGE, PROJECT_VIEW, authorize
from bugtracker.services.membership import is_admin
from bugtracker.utils.helpers import get_or_raise, paginate

logger = logging.getLogger(__name__)


def _resolve_users(user_ids: list[str], field: str) -> list[User]:
    """Load every id or raise ValidationError naming the missing ones."""
    if not user_ids:
        return []
    users = User.query.filter(User.id.in_(user_ids)).all()
    found = {u.id for u in users}
    missing = [uid for uid in user_ids if uid not in found]
    if missing:
        raise ValidationError(
            "One or more members do not exist",
            details={field: f"unknown user ids: {', '.join(missing)}"},
        )
    return users


def list_projects(principal, *, status=None, member=None, page=1, limit=20) -> tuple[list[Project], int]:
    """Admin listing of all projects, optionally filtered."""
    authorize(principal, PROJECT_MANAGE)
    query = Project.query
    if status:
        query = query.filter(Project.status == status)
    if member:
        query = query.filter(Project.members.any(User.id == str(member)))
    return paginate(query.order_by(Project.created_at.desc()), page, limit)


def list_my_projects(principal) -> list[Project]:
    """Projects the principal is a member of (admin: every project)."""
    query = Project.query
    if not is_admin(principal):
        query = query.join(project_members, project_members.c.project_id == Project.id).filter(
            project_members.c.user_id == str(principal.id)
        )
    return query.order_by(Project.created_at.desc()).all()


def get_project(principal, project_id: str) -> Project:
    project = get_or_raise(Project, project_id)
    authorize(principal, PROJECT_VIEW, project=project)
    return project


def create_project(principal, data: dict) -> Project:
    authorize(principal, PROJECT_MANAGE)
    members = _resolve_users(data.get("members") or [], "members")
    project = Project(
        name=data["name"],
        description=data.get("description") or "",
        members=members,
    )
    db.session.add(project)
    db.session.commit()
    logger.info("Project %s created by %s", project.id, principal.id)
    return project


def update_project(principal, project_id: str, data: dict) -> Project:
    authorize(principal, PROJECT_MANAGE)
    project = get_or_raise(Project, project_id)
    for attr in ("name", "description", "status"):
        if attr in data:
            setattr(project, attr, data[attr])
    db.session.commit()
    return project


def delete_project(principal, project_id: str) -> None:
    """Delete a project.  Its modules, bugs and activities are left in place."""
    authorize(principal, PROJECT_MANAGE)
    project = get_or_raise(Project, project_id)
    db.session.delete(project)
    db.session.commit()
    logger.info("Project %s deleted by %s", project_id, principal.id)


def update_members(principal, project_id: str, data: dict) -> Project:
    """
    Apply a membership edit: new set = (current ∪ add) \\ remove.

    All ``add`` ids must resolve to existing users; the whole edit is
    rejected otherwise.
    """
    authorize(principal, PROJECT_MANAGE)
    project = get_or_raise(Project, project_id)
    add_users = _resolve_users(data.get("add") or [], "add")
    remove_ids = set(data.get("remove") or [])

    by_id = {u.id: u for u in project.members}
    for user in add_users:
        by_id.setdefault(user.id, user)
    project.members = [u for uid, u in by_id.items() if uid not in remove_ids]
    db.session.commit()
    logger.info(
        "Project %s members updated by %s: +%d -%d",
        project.id, principal.id, len(add_users), len(remove_ids),
    )
    return project
