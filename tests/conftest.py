"""
Shared pytest fixtures for the bug tracker test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_user / auth_headers: account + bearer token helpers
    - admin, tester, tester2, developer, developer2, outsider: users
    - project / module: a project with members and one module
"""

import pytest

from bugtracker import create_app
from bugtracker.models import db as _db
from bugtracker.models.auth import User
from bugtracker.models.project import Module, Project
from bugtracker.services.jwt_service import generate_access_token
from bugtracker.utils.crypto import hash_password

PASSWORD = "Secret123!"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Users & tokens ───────────────────────────────────────────────────────


@pytest.fixture()
def make_user():
    """Factory: persist a user with the shared test password."""
    def _make(role, email=None, name=None, is_active=True):
        user = User(
            email=email or f"{role}-{User.query.count() + 1}@example.com",
            name=name or role.title(),
            password_hash=hash_password(PASSWORD),
            role=role,
            is_active=is_active,
        )
        _db.session.add(user)
        _db.session.commit()
        return user
    return _make


def auth_headers(user):
    """Bearer header for ``user`` (requires an app context)."""
    return {"Authorization": f"Bearer {generate_access_token(user.id, user.role)}"}



@pytest.fixture()
def admin(make_user):
    return make_user("admin", email="admin@example.com")


@pytest.fixture()
def tester(make_user):
    return make_user("tester", email="tester@example.com")


@pytest.fixture()
def tester2(make_user):
    return make_user("tester", email="tester2@example.com")


@pytest.fixture()
def developer(make_user):
    return make_user("developer", email="dev@example.com")


@pytest.fixture()
def developer2(make_user):
    return make_user("developer", email="dev2@example.com")


@pytest.fixture()
def outsider(make_user):
    """Tester who belongs to no project."""
    return make_user("tester", email="outsider@example.com")


# ── Project fixtures ─────────────────────────────────────────────────────


@pytest.fixture()
def project(tester, tester2, developer, developer2):
    """Project P with members {tester, tester2, developer, developer2}."""
    p = Project(
        name="Project P",
        description="Payments",
        members=[tester, tester2, developer, developer2],
    )
    _db.session.add(p)
    _db.session.commit()
    return p


@pytest.fixture()
def module(project, tester):
    m = Module(project_id=project.id, name="Checkout", created_by=tester.id)
    _db.session.add(m)
    _db.session.commit()
    return m


@pytest.fixture()
def headers_for():
    """``headers_for(user)`` → Authorization header dict."""
    return auth_headers
