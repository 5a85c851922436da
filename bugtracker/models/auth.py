"""
Auth Models — users and their fixed roles.

Roles are a closed set (admin, tester, developer); there is no role or
permission table. Email addresses are stored lower-cased so the unique
constraint is effectively case-insensitive.
"""

from bugtracker.models import db, iso, new_id, utcnow

ROLE_ADMIN = "admin"
ROLE_TESTER = "tester"
ROLE_DEVELOPER = "developer"

ROLES = frozenset({ROLE_ADMIN, ROLE_TESTER, ROLE_DEVELOPER})


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    name = db.Column(db.String(200))
    email = db.Column(db.String(200), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<User {self.id}: {self.email} ({self.role})>"
