"""Project domain model — projects, their membership set and modules."""

from bugtracker.models import db, iso, new_id, utcnow

PROJECT_STATUSES = frozenset({"active", "archived"})


project_members = db.Table(
    "project_members",
    db.Column("project_id", db.String(32), db.ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    db.Column("user_id", db.String(32), db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Project(db.Model):
    """Top-level container of work; membership scopes access."""

    __tablename__ = "projects"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    status = db.Column(db.String(20), nullable=False, default="active", index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    members = db.relationship("User", secondary=project_members, lazy="selectin")

    @property
    def member_ids(self) -> set[str]:
        return {str(u.id) for u in self.members}

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description or "",
            "status": self.status,
            "members": sorted(self.member_ids),
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Project {self.id}: {self.name}>"


class Module(db.Model):
    """Named sub-division of a project under which bugs are filed."""

    __tablename__ = "modules"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    # No FK constraint: deleting a project leaves its modules behind.
    project_id = db.Column(db.String(32), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    created_by = db.Column(db.String(32), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    def to_dict(self, project: Project | None = None):
        d = {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "created_by": self.created_by,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }
        if project is not None:
            d["project"] = {"id": project.id, "name": project.name}
        return d

    def __repr__(self):
        return f"<Module {self.id}: {self.name}>"
