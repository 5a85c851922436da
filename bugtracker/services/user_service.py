"""
User Service — registration, authentication and admin user management.
"""

import logging

from sqlalchemy.exc import IntegrityError

from bugtracker.core.exceptions import AuthenticationError, ConflictError
from bugtracker.models import db
from bugtracker.models.auth import User
from bugtracker.services.access_policy import USER_MANAGE, authorize
from bugtracker.utils.crypto import hash_password, verify_password
from bugtracker.utils.helpers import get_or_raise, paginate

logger = logging.getLogger(__name__)


def get_user_by_email(email: str) -> User | None:
    return User.query.filter(User.email == (email or "").strip().lower()).first()


def _create_user(email: str, password: str, role: str, name: str | None = None) -> User:
    if get_user_by_email(email):
        raise ConflictError("Email already registered")
    user = User(
        email=email.strip().lower(),
        password_hash=hash_password(password),
        role=role,
        name=name,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Email already registered")
    logger.info("User %s registered with role %s", user.id, role)
    return user


def register_user(principal, data: dict) -> User:
    """Admin-only registration of a new account."""
    authorize(principal, USER_MANAGE)
    return _create_user(data["email"], data["password"], data["role"], data.get("name"))


def authenticate_user(email: str, password: str) -> User:
    """
    Verify credentials.

    Unknown email and wrong password produce the same message.
    """
    user = get_user_by_email(email)
    if user is None or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid credentials")
    if not user.is_active:
        raise AuthenticationError("Account is inactive")
    return user


def list_users(principal, *, role=None, active=None, page=1, limit=20):
    authorize(principal, USER_MANAGE)
    query = User.query
    if role:
        query = query.filter(User.role == role)
    if active is not None:
        query = query.filter(User.is_active.is_(active))
    return paginate(query.order_by(User.created_at.desc()), page, limit)


def get_user(principal, user_id: str) -> User:
    authorize(principal, USER_MANAGE)
    return get_or_raise(User, user_id)


def update_user(principal, user_id: str, data: dict) -> User:
    """Admin edit: role, active flag, display name."""
    authorize(principal, USER_MANAGE)
    user = get_or_raise(User, user_id)
    for attr in ("role", "is_active", "name"):
        if attr in data:
            setattr(user, attr, data[attr])
    db.session.commit()
    logger.info("User %s updated by %s: %s", user.id, principal.id, sorted(data))
    return user


def delete_user(principal, user_id: str) -> None:
    """Hard delete.  Memberships and assignments go with the user."""
    authorize(principal, USER_MANAGE)
    user = get_or_raise(User, user_id)
    db.session.delete(user)
    db.session.commit()
    logger.info("User %s deleted by %s", user_id, principal.id)


def ensure_admin(email: str, password: str, name: str | None = None) -> tuple[User, bool]:
    """
    Create the admin account, or reset its password and role if it exists.

    Returns (user, created).
    """
    email = email.strip().lower()
    user = get_user_by_email(email)
    created = user is None
    if created:
        user = User(email=email, role="admin", name=name)
        db.session.add(user)
    user.password_hash = hash_password(password)
    user.role = "admin"
    user.is_active = True
    if name:
        user.name = name
    db.session.commit()
    return user, created
