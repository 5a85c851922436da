"""
Bug status state-machine tests.

    open      -> solved
    solved    -> closed | reopened
    closed    -> reopened
    reopened  -> solved

Covers every edge of the table (valid and invalid), the stale ``from``
guard, the tester-only close rule, and the activity written per change.
"""

from types import SimpleNamespace

import pytest

from bugtracker.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
)
from bugtracker.core.principal import Principal
from bugtracker.models import db
from bugtracker.models.audit import Activity
from bugtracker.models.bug import BUG_STATUSES, Bug
from bugtracker.services.bug_lifecycle import (
    BUG_TRANSITIONS,
    available_transitions,
    can_perform_transition,
    transition_bug,
    validate_bug_transition,
)

VALID_EDGES = [(f, t) for f, targets in BUG_TRANSITIONS.items() for t in sorted(targets)]
INVALID_EDGES = [
    (f, t) for f in BUG_STATUSES for t in BUG_STATUSES
    if t not in BUG_TRANSITIONS[f]
]


def _stub(status="open", reporter="t1", assignees=("d1",)):
    return SimpleNamespace(status=status, reported_by=reporter, assignee_ids=set(assignees))


def _bug(module, reporter, assignees, status="open"):
    bug = Bug(
        project_id=module.project_id,
        module_id=module.id,
        title="Checkout crashes",
        reported_by=reporter.id,
        assignees=list(assignees),
        status=status,
    )
    db.session.add(bug)
    db.session.commit()
    return bug


class TestTransitionTable:
    def test_every_state_has_an_exit(self):
        for status in BUG_STATUSES:
            assert BUG_TRANSITIONS[status], status

    def test_table_is_closed_over_known_states(self):
        for targets in BUG_TRANSITIONS.values():
            assert targets <= set(BUG_STATUSES)

    @pytest.mark.parametrize("from_status,to_status", VALID_EDGES)
    def test_valid_edges_pass(self, from_status, to_status):
        validate_bug_transition(from_status, from_status, to_status)

    @pytest.mark.parametrize("from_status,to_status", INVALID_EDGES)
    def test_invalid_edges_rejected(self, from_status, to_status):
        with pytest.raises(InvalidTransitionError):
            validate_bug_transition(from_status, from_status, to_status)

    def test_stale_from_is_conflict(self):
        with pytest.raises(ConflictError) as exc:
            validate_bug_transition("solved", "open", "solved")
        assert exc.value.code == "state"


class TestActorGuard:
    def test_developer_never_closes(self):
        dev = Principal(id="d1", role="developer")
        assert not can_perform_transition(dev, _stub("solved"), "closed")
        assert can_perform_transition(dev, _stub("solved"), "reopened")

    def test_tester_reporter_closes(self):
        tester = Principal(id="t1", role="tester")
        assert can_perform_transition(tester, _stub("solved"), "closed")

    def test_uninvolved_tester_denied(self):
        other = Principal(id="t2", role="tester")
        assert not can_perform_transition(other, _stub("solved"), "closed")

    def test_admin_always(self):
        admin = Principal(id="a1", role="admin")
        assert can_perform_transition(admin, _stub("solved", reporter="x", assignees=()), "closed")

    def test_available_transitions(self):
        bug = _stub("solved")
        assert available_transitions(bug, Principal(id="t1", role="tester")) == ["closed", "reopened"]
        assert available_transitions(bug, Principal(id="d1", role="developer")) == ["reopened"]
        assert available_transitions(bug, Principal(id="zz", role="developer")) == []


class TestTransitionBug:
    def test_open_to_solved_writes_activity(self, module, tester, developer):
        bug = _bug(module, tester, [developer])
        result = transition_bug(
            bug.id, Principal.from_user(developer),
            from_status="open", to_status="solved", note="fixed in build 42",
        )
        assert result["previous_status"] == "open"
        assert result["status"] == "solved"
        assert db.session.get(Bug, bug.id).status == "solved"

        acts = Activity.query.filter_by(bug_id=bug.id, action="status_change").all()
        assert len(acts) == 1
        assert acts[0].to_dict()["from"] == "open"
        assert acts[0].to_dict()["to"] == "solved"
        assert acts[0].note == "fixed in build 42"

    def test_full_cycle(self, module, tester, developer):
        bug = _bug(module, tester, [developer])
        t = Principal.from_user(tester)
        d = Principal.from_user(developer)
        transition_bug(bug.id, d, from_status="open", to_status="solved")
        transition_bug(bug.id, t, from_status="solved", to_status="closed")
        transition_bug(bug.id, t, from_status="closed", to_status="reopened")
        transition_bug(bug.id, d, from_status="reopened", to_status="solved")
        assert db.session.get(Bug, bug.id).status == "solved"
        assert Activity.query.filter_by(bug_id=bug.id).count() == 4

    def test_forbidden_leaves_status(self, module, tester, developer):
        bug = _bug(module, tester, [developer], status="solved")
        with pytest.raises(ForbiddenError):
            transition_bug(bug.id, Principal.from_user(developer),
                           from_status="solved", to_status="closed")
        assert db.session.get(Bug, bug.id).status == "solved"
        assert Activity.query.filter_by(bug_id=bug.id).count() == 0

    def test_second_identical_request_conflicts(self, module, tester, developer):
        bug = _bug(module, tester, [developer])
        d = Principal.from_user(developer)
        transition_bug(bug.id, d, from_status="open", to_status="solved")
        with pytest.raises(ConflictError):
            transition_bug(bug.id, d, from_status="open", to_status="solved")

    def test_row_changed_underneath_conflicts(self, module, tester, developer):
        bug = _bug(module, tester, [developer])
        assert bug.status == "open"  # loads the row into the session
        # Another writer moves the row; the loaded instance still reads "open"
        db.session.execute(
            db.update(Bug)
            .where(Bug.id == bug.id)
            .values(status="solved")
            .execution_options(synchronize_session=False)
        )
        assert bug.status == "open"

        with pytest.raises(ConflictError) as exc:
            transition_bug(bug.id, Principal.from_user(developer),
                           from_status="open", to_status="solved")
        assert exc.value.code == "state"
        assert Activity.query.filter_by(bug_id=bug.id, action="status_change").count() == 0

    def test_orphaned_bug_not_found(self, module, project, tester, developer):
        bug = _bug(module, tester, [developer])
        db.session.delete(project)
        db.session.commit()
        with pytest.raises(NotFoundError):
            transition_bug(bug.id, Principal.from_user(developer),
                           from_status="open", to_status="solved")
        assert db.session.get(Bug, bug.id).status == "open"
