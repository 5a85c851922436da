"""
Auth tests.

Tests cover:
  - Password hashing (bcrypt)
  - JWT token generation / verification / expiry
  - Auth API: login, register, me
  - Middleware: inactive users, role re-read from the user record
  - Ambient: security headers, request id, health
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from flask import current_app

from bugtracker.models import db
from bugtracker.models.auth import User
from bugtracker.services.jwt_service import decode_access_token, generate_access_token
from bugtracker.utils.crypto import hash_password, verify_password

from conftest import PASSWORD


# ═══════════════════════════════════════════════════════════════
# UNIT
# ═══════════════════════════════════════════════════════════════

class TestPasswordHashing:
    def test_roundtrip(self):
        hashed = hash_password("hunter22")
        assert hashed != "hunter22"
        assert verify_password("hunter22", hashed)
        assert not verify_password("hunter23", hashed)

    def test_garbage_hash(self):
        assert not verify_password("hunter22", "not-a-bcrypt-hash")
        assert not verify_password("hunter22", "")


class TestJWT:
    def test_payload(self):
        payload = decode_access_token(generate_access_token("u1", "tester"))
        assert payload["sub"] == "u1"
        assert payload["role"] == "tester"
        assert payload["type"] == "access"
        assert payload["exp"] - payload["iat"] == current_app.config["JWT_ACCESS_EXPIRES"]
        assert payload["jti"]

    def test_expired(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "u1", "role": "tester", "type": "access",
             "iat": now - timedelta(hours=1), "exp": now - timedelta(minutes=1)},
            current_app.config["JWT_SECRET_KEY"], algorithm="HS256",
        )
        with pytest.raises(jwt.ExpiredSignatureError):
            decode_access_token(token)

    def test_wrong_type(self):
        token = jwt.encode({"sub": "u1", "type": "refresh"},
                           current_app.config["JWT_SECRET_KEY"], algorithm="HS256")
        with pytest.raises(jwt.InvalidTokenError):
            decode_access_token(token)


# ═══════════════════════════════════════════════════════════════
# LOGIN
# ═══════════════════════════════════════════════════════════════

class TestLogin:
    def test_success(self, client, tester):
        res = client.post("/api/v1/auth/login",
                          json={"email": "Tester@Example.com", "password": PASSWORD})
        assert res.status_code == 200
        body = res.get_json()
        assert body["token_type"] == "Bearer"
        assert body["role"] == "tester"
        assert body["user"]["id"] == tester.id
        assert "password_hash" not in body["user"]
        assert decode_access_token(body["access_token"])["sub"] == tester.id

    @pytest.mark.parametrize("email,password", [
        ("tester@example.com", "wrong-password"),
        ("nobody@example.com", PASSWORD),
    ])
    def test_bad_credentials(self, client, tester, email, password):
        res = client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert res.status_code == 401
        assert res.get_json()["error"] == "Invalid credentials"

    def test_inactive_account(self, client, make_user):
        make_user("tester", email="gone@example.com", is_active=False)
        res = client.post("/api/v1/auth/login",
                          json={"email": "gone@example.com", "password": PASSWORD})
        assert res.status_code == 401

    def test_missing_fields(self, client):
        res = client.post("/api/v1/auth/login", json={"email": "a@example.com"})
        assert res.status_code == 400
        assert "password" in res.get_json()["details"]


# ═══════════════════════════════════════════════════════════════
# REGISTER / ME
# ═══════════════════════════════════════════════════════════════

class TestRegister:
    def test_admin_registers(self, client, admin, headers_for):
        res = client.post("/api/v1/auth/register", json={
            "email": "New.Dev@Example.com", "password": "secret1",
            "role": "developer", "name": "New Dev",
        }, headers=headers_for(admin))
        assert res.status_code == 201
        assert res.get_json()["email"] == "new.dev@example.com"
        assert res.get_json()["role"] == "developer"

    def test_duplicate_email_any_case(self, client, admin, tester, headers_for):
        res = client.post("/api/v1/auth/register", json={
            "email": "TESTER@example.com", "password": "secret1", "role": "tester",
        }, headers=headers_for(admin))
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_DUPLICATE"

    def test_tester_cannot_register(self, client, tester, headers_for):
        res = client.post("/api/v1/auth/register", json={
            "email": "x@example.com", "password": "secret1", "role": "tester",
        }, headers=headers_for(tester))
        assert res.status_code == 403

    def test_validation(self, client, admin, headers_for):
        res = client.post("/api/v1/auth/register", json={
            "email": "not-an-email", "password": "123", "role": "boss",
        }, headers=headers_for(admin))
        assert res.status_code == 400
        assert set(res.get_json()["details"]) == {"email", "password", "role"}


class TestMiddleware:
    def test_me(self, client, developer, headers_for):
        res = client.get("/api/v1/auth/me", headers=headers_for(developer))
        assert res.status_code == 200
        assert res.get_json()["email"] == "dev@example.com"

    def test_garbage_token(self, client):
        res = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer nope"})
        assert res.status_code == 401
        assert res.get_json()["error"] == "Invalid token"

    def test_deactivated_after_issue(self, client, developer, headers_for):
        headers = headers_for(developer)
        developer.is_active = False
        db.session.commit()
        res = client.get("/api/v1/auth/me", headers=headers)
        assert res.status_code == 401

    def test_role_comes_from_user_record(self, client, developer, headers_for):
        # Token claims admin; stored role is developer
        token = generate_access_token(developer.id, "admin")
        res = client.get("/api/v1/users", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 403

    def test_deleted_user_token(self, client, developer, headers_for):
        headers = headers_for(developer)
        db.session.delete(db.session.get(User, developer.id))
        db.session.commit()
        assert client.get("/api/v1/auth/me", headers=headers).status_code == 401


class TestAmbient:
    def test_health(self, client):
        res = client.get("/api/v1/health")
        assert res.status_code == 200
        assert res.get_json()["status"] == "ok"
        assert client.get("/api/v1/health/ready").status_code == 200

    def test_security_headers_and_request_id(self, client):
        res = client.get("/api/v1/health", headers={"X-Request-ID": "abc123"})
        assert res.headers["X-Content-Type-Options"] == "nosniff"
        assert res.headers["X-Frame-Options"] == "DENY"
        assert res.headers["X-Request-ID"] == "abc123"
        assert "X-Request-Duration-Ms" in res.headers

    def test_unknown_route_json(self, client):
        res = client.get("/api/v1/nothing-here")
        assert res.status_code == 404
        body = res.get_json()
        assert body["code"] == "ERR_NOT_FOUND"
        assert body["error"]

    def test_wrong_method_json(self, client):
        res = client.delete("/api/v1/health")
        assert res.status_code == 405
        assert res.get_json()["code"] == "ERR_METHOD_NOT_ALLOWED"

    def test_seed_admin_cli(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["seed-admin", "--email", "Root@Example.com", "--password", "secret1"])
        assert result.exit_code == 0, result.output
        user = User.query.filter_by(email="root@example.com").one()
        assert user.role == "admin"
        assert verify_password("secret1", user.password_hash)

        # Re-running resets the password rather than duplicating
        result = runner.invoke(args=["seed-admin", "--email", "root@example.com", "--password", "secret2"])
        assert result.exit_code == 0, result.output
        assert User.query.filter_by(email="root@example.com").count() == 1
        assert verify_password("secret2", User.query.filter_by(email="root@example.com").one().password_hash)

    def test_rate_limit_storage_from_config(self, app):
        from bugtracker.config import Config, TestingConfig

        assert Config.RATELIMIT_STORAGE_URI
        assert TestingConfig.RATELIMIT_STORAGE_URI == "memory://"
        assert app.config["RATELIMIT_STORAGE_URI"] == "memory://"
