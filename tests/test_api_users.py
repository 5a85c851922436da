"""
Users API tests — admin-only account management.
"""

from bugtracker.models import db
from bugtracker.models.auth import User
from bugtracker.models.project import Project

BASE = "/api/v1/users"


class TestUsersAdmin:
    def test_list_and_filter(self, client, admin, tester, developer, headers_for):
        res = client.get(BASE, headers=headers_for(admin))
        assert res.status_code == 200
        assert res.get_json()["total"] == 3

        res = client.get(f"{BASE}?role=developer", headers=headers_for(admin))
        assert [u["id"] for u in res.get_json()["data"]] == [developer.id]

    def test_filter_active(self, client, admin, make_user, headers_for):
        idle = make_user("tester", email="idle@example.com", is_active=False)
        res = client.get(f"{BASE}?active=false", headers=headers_for(admin))
        assert [u["id"] for u in res.get_json()["data"]] == [idle.id]

    def test_create(self, client, admin, headers_for):
        res = client.post(BASE, json={
            "email": "qa@example.com", "password": "secret1", "role": "tester",
        }, headers=headers_for(admin))
        assert res.status_code == 201
        assert User.query.filter_by(email="qa@example.com").count() == 1

    def test_get_missing(self, client, admin, headers_for):
        assert client.get(f"{BASE}/missing", headers=headers_for(admin)).status_code == 404

    def test_update_role_and_deactivate(self, client, admin, developer, headers_for):
        res = client.patch(f"{BASE}/{developer.id}",
                           json={"role": "tester", "is_active": False},
                           headers=headers_for(admin))
        assert res.status_code == 200
        body = res.get_json()
        assert body["role"] == "tester"
        assert body["is_active"] is False

    def test_update_rejects_bad_flag(self, client, admin, developer, headers_for):
        res = client.patch(f"{BASE}/{developer.id}", json={"is_active": "no"},
                           headers=headers_for(admin))
        assert res.status_code == 400

    def test_delete_drops_memberships(self, client, admin, tester, project, headers_for):
        tester_id = tester.id
        res = client.delete(f"{BASE}/{tester_id}", headers=headers_for(admin))
        assert res.status_code == 204
        db.session.expire_all()
        assert tester_id not in db.session.get(Project, project.id).member_ids

    def test_non_admin_denied(self, client, tester, developer, headers_for):
        for user in (tester, developer):
            assert client.get(BASE, headers=headers_for(user)).status_code == 403
            assert client.get(f"{BASE}/{user.id}", headers=headers_for(user)).status_code == 403

    def test_anonymous(self, client):
        assert client.get(BASE).status_code == 401
