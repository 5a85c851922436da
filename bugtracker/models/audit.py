"""
Bug Tracker
Audit domain model.

Models:
    - Activity: immutable, append-only history of bug and module mutations.
"""

import json

from bugtracker.models import db, iso, new_id, utcnow

ACTIVITY_ACTIONS = frozenset({
    "create",
    "update",
    "status_change",
    "delete",
    "create_module",
})


class Activity(db.Model):
    """
    One row per bug/module mutation.

    ``from_json`` / ``to_json`` carry opaque snapshots (a status string for
    status changes, a field dict for create/update).  Rows are never
    updated or deleted.
    """

    __tablename__ = "activities"
    __table_args__ = (
        db.Index("idx_activity_bug_ts", "bug_id", "created_at"),
        db.Index("idx_activity_module", "module_id"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    bug_id = db.Column(db.String(32), nullable=True)
    module_id = db.Column(db.String(32), nullable=True)
    actor_id = db.Column(db.String(32), nullable=False)
    action = db.Column(
        db.String(30), nullable=False,
        comment="create | update | status_change | delete | create_module",
    )
    from_json = db.Column(db.Text, nullable=True)
    to_json = db.Column(db.Text, nullable=True)
    note = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    @staticmethod
    def _load(raw):
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bug_id": self.bug_id,
            "module_id": self.module_id,
            "actor_id": self.actor_id,
            "action": self.action,
            "from": self._load(self.from_json),
            "to": self._load(self.to_json),
            "note": self.note,
            "created_at": iso(self.created_at),
        }

    def __repr__(self):
        target = self.bug_id or self.module_id
        return f"<Activity {self.id}: {self.action} on {target}>"
