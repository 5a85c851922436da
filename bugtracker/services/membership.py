"""
Membership Oracle — answers "is this user in this project?".

Pure lookups against ``Project.members``; ids are compared as strings.
The admin role is the only bypass and is checked by callers through
``is_admin``, never folded into ``is_member``.
"""

from bugtracker.models import db
from bugtracker.models.auth import ROLE_ADMIN
from bugtracker.models.project import project_members


def is_admin(principal) -> bool:
    return principal is not None and principal.role == ROLE_ADMIN


def is_member(project, user_id) -> bool:
    if project is None or user_id is None:
        return False
    return str(user_id) in project.member_ids


def member_project_ids(user_id) -> list[str]:
    """Ids of every project the user belongs to."""
    rows = db.session.execute(
        db.select(project_members.c.project_id).where(project_members.c.user_id == str(user_id))
    ).all()
    return sorted({r[0] for r in rows})
