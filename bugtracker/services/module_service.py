"""Module service — listing and creation of project modules."""

from __future__ import annotations

import logging

from bugtracker.models import db
from bugtracker.models.project import Module, Project
from bugtracker.services.access_policy import MODULE_CREATE, MODULE_LIST, authorize
from bugtracker.services.activity_service import log_activity
from bugtracker.services.membership import is_admin, member_project_ids
from bugtracker.utils.helpers import get_or_raise

logger = logging.getLogger(__name__)


def _with_projects(modules: list[Module]) -> list[dict]:
    project_ids = {m.project_id for m in modules}
    projects = {
        p.id: p for p in Project.query.filter(Project.id.in_(project_ids)).all()
    } if project_ids else {}
    return [m.to_dict(project=projects.get(m.project_id)) for m in modules]


def list_modules(principal, project_id: str) -> list[dict]:
    project = get_or_raise(Project, project_id)
    authorize(principal, MODULE_LIST, project=project)
    modules = (
        Module.query
        .filter(Module.project_id == project.id)
        .order_by(Module.created_at.desc())
        .all()
    )
    return [m.to_dict(project=project) for m in modules]


def list_my_modules(principal) -> list[dict]:
    """Modules across every project the principal belongs to (admin: all)."""
    query = Module.query
    if not is_admin(principal):
        project_ids = member_project_ids(principal.id)
        if not project_ids:
            return []
        query = query.filter(Module.project_id.in_(project_ids))
    return _with_projects(query.order_by(Module.created_at.desc()).all())


def create_module(principal, project_id: str, data: dict) -> Module:
    project = get_or_raise(Project, project_id)
    authorize(principal, MODULE_CREATE, project=project)

    module = Module(project_id=project.id, name=data["name"], created_by=principal.id)
    db.session.add(module)
    db.session.commit()

    log_activity(
        actor_id=principal.id,
        action="create_module",
        module_id=module.id,
        to_value=module.to_dict(),
    )
    logger.info("Module %s created in project %s by %s", module.id, project.id, principal.id)
    return module
