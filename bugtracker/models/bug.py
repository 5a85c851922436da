"""
Bug domain model.

Status is driven exclusively by ``bugtracker.services.bug_lifecycle``;
nothing else writes ``Bug.status`` after creation.
"""

from bugtracker.models import db, iso, new_id, utcnow

BUG_STATUSES = ("open", "solved", "closed", "reopened")
INITIAL_BUG_STATUS = "open"


bug_assignees = db.Table(
    "bug_assignees",
    db.Column("bug_id", db.String(32), db.ForeignKey("bugs.id", ondelete="CASCADE"), primary_key=True),
    db.Column("user_id", db.String(32), db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Bug(db.Model):
    __tablename__ = "bugs"
    __table_args__ = (
        db.Index("ix_bugs_project_status", "project_id", "status"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    project_id = db.Column(db.String(32), nullable=False, index=True)
    module_id = db.Column(db.String(32), nullable=False, index=True)
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    status = db.Column(db.String(20), nullable=False, default=INITIAL_BUG_STATUS, index=True)
    reported_by = db.Column(db.String(32), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    assignees = db.relationship("User", secondary=bug_assignees, lazy="selectin")

    @property
    def assignee_ids(self) -> set[str]:
        return {str(u.id) for u in self.assignees}

    def snapshot(self) -> dict:
        """Field snapshot stored in activity ``from`` / ``to`` payloads."""
        return {
            "title": self.title,
            "description": self.description or "",
            "module_id": self.module_id,
            "status": self.status,
            "assignees": sorted(self.assignee_ids),
        }

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "module_id": self.module_id,
            "title": self.title,
            "description": self.description or "",
            "status": self.status,
            "reported_by": self.reported_by,
            "assignees": sorted(self.assignee_ids),
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Bug {self.id}: {self.status}>"
