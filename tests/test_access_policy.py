"""
Access policy unit tests.

The evaluator is pure, so these use lightweight stand-ins instead of ORM
rows:  a project only needs ``member_ids``; a bug needs ``reported_by`` and
``assignee_ids``.
"""

from types import SimpleNamespace

import pytest

from bugtracker.core.exceptions import ForbiddenError
from bugtracker.core.principal import Principal
from bugtracker.services import access_policy as policy

ADMIN = Principal(id="a1", role="admin")
TESTER = Principal(id="t1", role="tester")
TESTER_OUT = Principal(id="t9", role="tester")
DEV = Principal(id="d1", role="developer")
DEV2 = Principal(id="d2", role="developer")

PROJECT = SimpleNamespace(member_ids={"t1", "d1", "d2"})


def _bug(reporter="t1", assignees=("d1",)):
    return SimpleNamespace(reported_by=reporter, assignee_ids=set(assignees))


ALL_ACTIONS = [
    policy.PROJECT_VIEW, policy.PROJECT_MANAGE, policy.MODULE_LIST,
    policy.MODULE_CREATE, policy.BUG_LIST, policy.BUG_VIEW, policy.BUG_CREATE,
    policy.BUG_UPDATE, policy.BUG_ASSIGN, policy.BUG_DELETE,
    policy.ACTIVITY_LIST, policy.USER_MANAGE,
]


class TestAdminBypass:
    @pytest.mark.parametrize("action", ALL_ACTIONS)
    def test_admin_allowed_everywhere(self, action):
        outside_project = SimpleNamespace(member_ids=set())
        result = policy.evaluate(ADMIN, action, project=outside_project, bug=_bug("x", ()))
        assert result == {"allowed": True, "decision": "allow_admin", "action": action}

    def test_unknown_action_denied_even_for_admin(self):
        result = policy.evaluate(ADMIN, "bug.explode", project=PROJECT)
        assert result["allowed"] is False
        assert result["decision"] == "deny_unknown_action"


class TestMembershipReads:
    @pytest.mark.parametrize("action", [
        policy.PROJECT_VIEW, policy.MODULE_LIST, policy.BUG_LIST,
        policy.BUG_VIEW, policy.ACTIVITY_LIST,
    ])
    def test_member_allowed_outsider_denied(self, action):
        assert policy.is_allowed(DEV, action, project=PROJECT)
        assert not policy.is_allowed(TESTER_OUT, action, project=PROJECT)

    def test_missing_project_denies(self):
        assert not policy.is_allowed(TESTER, policy.PROJECT_VIEW, project=None)

    def test_unauthenticated(self):
        result = policy.evaluate(None, policy.PROJECT_VIEW, project=PROJECT)
        assert result["decision"] == "deny_unauthenticated"


class TestCreateRules:
    @pytest.mark.parametrize("action", [policy.MODULE_CREATE, policy.BUG_CREATE])
    def test_only_member_testers(self, action):
        assert policy.is_allowed(TESTER, action, project=PROJECT)
        assert not policy.is_allowed(DEV, action, project=PROJECT)
        assert not policy.is_allowed(TESTER_OUT, action, project=PROJECT)


class TestBugRules:
    def test_update_reporter_or_assignee(self):
        bug = _bug(reporter="t1", assignees=("d1",))
        assert policy.is_allowed(TESTER, policy.BUG_UPDATE, project=PROJECT, bug=bug)
        assert policy.is_allowed(DEV, policy.BUG_UPDATE, project=PROJECT, bug=bug)
        assert not policy.is_allowed(DEV2, policy.BUG_UPDATE, project=PROJECT, bug=bug)

    def test_assign_open_to_member_testers(self):
        bug = _bug(reporter="t5", assignees=("d1",))
        assert policy.is_allowed(TESTER, policy.BUG_ASSIGN, project=PROJECT, bug=bug)
        assert policy.is_allowed(DEV, policy.BUG_ASSIGN, project=PROJECT, bug=bug)
        assert not policy.is_allowed(DEV2, policy.BUG_ASSIGN, project=PROJECT, bug=bug)
        assert not policy.is_allowed(TESTER_OUT, policy.BUG_ASSIGN, project=PROJECT, bug=bug)

    def test_delete_reporter_only(self):
        bug = _bug(reporter="t1", assignees=("d1",))
        assert policy.is_allowed(TESTER, policy.BUG_DELETE, project=PROJECT, bug=bug)
        assert not policy.is_allowed(DEV, policy.BUG_DELETE, project=PROJECT, bug=bug)

    def test_non_admin_cannot_manage(self):
        for p in (TESTER, DEV):
            assert not policy.is_allowed(p, policy.PROJECT_MANAGE, project=PROJECT)
            assert not policy.is_allowed(p, policy.USER_MANAGE)


class TestAuthorize:
    def test_raises_forbidden_with_context(self):
        with pytest.raises(ForbiddenError) as exc:
            policy.authorize(DEV, policy.BUG_CREATE, project=PROJECT)
        assert exc.value.actor_id == "d1"
        assert exc.value.action == policy.BUG_CREATE

    def test_returns_none_when_allowed(self):
        assert policy.authorize(TESTER, policy.BUG_CREATE, project=PROJECT) is None

    def test_rule_tables_are_read_only(self):
        with pytest.raises(TypeError):
            policy._RULES[policy.BUG_DELETE] = lambda *a: True
