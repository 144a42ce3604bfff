"""Tests for session handling when deletes and deassignments hit live sessions."""

from __future__ import annotations

import pytest

from rolegate import AccessControl, ImpactCause, SessionImpact, SessionPolicy
from rolegate.errors import FailureReason, InvalidArgumentError


def _assert_active_roles_assigned(ac: AccessControl) -> None:
    for session_id in ac.sessions():
        record = ac.session(session_id)
        if record.user in ac.users():
            assert record.active_roles <= ac.assigned_roles(record.user)
        else:
            assert record.expiring and not record.active_roles


def test_policy_is_required():
    with pytest.raises(ValueError, match="session policy is required"):
        AccessControl(policy=None)


# -- deassign_user ------------------------------------------------------------


class TestDeassign:
    def test_strip_role(self, make_populated):
        ac = make_populated(SessionPolicy.strip_role)
        ac.create_session("alice", "s1", ["editor", "viewer"])
        ac.deassign_user("alice", "editor")

        assert ac.session_roles("s1") == {"viewer"}
        assert ac.session("s1").expiring is False
        assert ac.check_access("s1", "write", "file1") is False
        _assert_active_roles_assigned(ac)

        # A stripped session may activate the role again once reassigned.
        ac.assign_user("alice", "editor")
        ac.add_active_role("alice", "s1", "editor")
        assert ac.check_access("s1", "write", "file1") is True

    def test_force_terminate(self, make_populated):
        ac = make_populated(SessionPolicy.force_terminate)
        ac.create_session("alice", "s1", ["editor"])
        ac.create_session("alice", "s2", ["viewer"])
        ac.deassign_user("alice", "editor")

        # Only the session with the role active is terminated.
        assert ac.sessions() == {"s2"}
        _assert_active_roles_assigned(ac)

    def test_allow_expiry(self, make_populated):
        ac = make_populated(SessionPolicy.allow_expiry)
        ac.create_session("alice", "s1", ["editor", "viewer"])
        ac.deassign_user("alice", "editor")

        record = ac.session("s1")
        assert record.expiring is True
        assert record.active_roles == {"viewer"}
        ac.assign_user("alice", "editor")
        with pytest.raises(InvalidArgumentError) as exc_info:
            ac.add_active_role("alice", "s1", "editor")
        assert exc_info.value.reason is FailureReason.session_expiring
        _assert_active_roles_assigned(ac)

    def test_expiring_session_ends_via_expire_session(self, make_populated):
        ac = make_populated(SessionPolicy.allow_expiry)
        ac.create_session("alice", "s1", ["editor"])
        ac.deassign_user("alice", "editor")
        ac.expire_session("s1")
        assert ac.sessions() == frozenset()

    def test_unaffected_sessions_untouched(self, make_populated):
        ac = make_populated(SessionPolicy.force_terminate)
        ac.create_session("alice", "s1", ["viewer"])
        ac.deassign_user("alice", "editor")
        assert ac.session("s1").active_roles == {"viewer"}


# -- delete_role --------------------------------------------------------------


class TestDeleteRole:
    @pytest.mark.parametrize("policy", list(SessionPolicy))
    def test_role_leaves_every_session(self, make_populated, policy):
        ac = make_populated(policy)
        ac.create_session("alice", "s1", ["viewer"])
        ac.create_session("bob", "s2", ["viewer"])
        ac.delete_role("viewer")

        assert "viewer" not in ac.roles()
        for session_id in ac.sessions():
            assert "viewer" not in ac.session_roles(session_id)
        _assert_active_roles_assigned(ac)

    def test_force_terminate_ends_sessions(self, make_populated):
        ac = make_populated(SessionPolicy.force_terminate)
        ac.create_session("alice", "s1", ["viewer", "editor"])
        ac.create_session("alice", "s2", ["editor"])
        ac.delete_role("viewer")
        assert ac.sessions() == {"s2"}

    def test_strip_role_keeps_session(self, make_populated):
        ac = make_populated(SessionPolicy.strip_role)
        ac.create_session("alice", "s1", ["viewer", "editor"])
        ac.delete_role("viewer")
        assert ac.session("s1").active_roles == {"editor"}
        assert ac.check_access("s1", "write", "file1") is True

    def test_allow_expiry_marks_session(self, make_populated):
        ac = make_populated(SessionPolicy.allow_expiry)
        ac.create_session("bob", "s2", ["viewer"])
        ac.delete_role("viewer")
        record = ac.session("s2")
        assert record.expiring is True
        assert record.active_roles == frozenset()


# -- delete_user --------------------------------------------------------------


class TestDeleteUser:
    @pytest.mark.parametrize("policy", [SessionPolicy.force_terminate, SessionPolicy.strip_role])
    def test_sessions_deleted(self, make_populated, policy):
        ac = make_populated(policy)
        ac.create_session("alice", "s1", ["editor"])
        ac.create_session("bob", "s2", ["viewer"])
        ac.delete_user("alice")

        assert ac.sessions() == {"s2"}
        assert "alice" not in ac.assigned_users("editor")

    def test_allow_expiry_orphans_sessions(self, make_populated):
        ac = make_populated(SessionPolicy.allow_expiry)
        ac.create_session("alice", "s1", ["editor", "viewer"])
        ac.delete_user("alice")

        record = ac.session("s1")
        assert record.user == "alice"
        assert record.expiring is True
        assert record.active_roles == frozenset()
        assert ac.check_access("s1", "read", "file1") is False
        _assert_active_roles_assigned(ac)

        ac.expire_session("s1")
        assert ac.sessions() == frozenset()

    def test_snapshot_with_orphaned_session_round_trips(self, make_populated):
        ac = make_populated(SessionPolicy.allow_expiry)
        ac.create_session("alice", "s1", ["editor"])
        ac.delete_user("alice")

        other = AccessControl(policy=SessionPolicy.allow_expiry)
        other.restore(ac.snapshot())
        assert other.snapshot() == ac.snapshot()


# -- Policy hooks -------------------------------------------------------------


class TestPolicyHook:
    def test_hook_sees_each_impact(self, make_populated):
        seen: list[SessionImpact] = []

        def hook(impact: SessionImpact) -> SessionPolicy:
            seen.append(impact)
            return SessionPolicy.strip_role

        ac = make_populated(hook)
        ac.create_session("alice", "s1", ["editor"])
        ac.create_session("alice", "s2", ["viewer"])
        ac.deassign_user("alice", "editor")

        assert seen == [
            SessionImpact(
                cause=ImpactCause.deassign_user, session_id="s1", user="alice", role="editor"
            )
        ]

    def test_hook_decides_per_session(self, make_populated):
        def hook(impact: SessionImpact) -> SessionPolicy:
            if impact.user == "alice":
                return SessionPolicy.force_terminate
            return SessionPolicy.allow_expiry

        ac = make_populated(hook)
        ac.create_session("alice", "s1", ["viewer"])
        ac.create_session("bob", "s2", ["viewer"])
        ac.delete_role("viewer")

        assert ac.sessions() == {"s2"}
        assert ac.session("s2").expiring is True

    def test_hook_with_bad_return_changes_nothing(self, make_populated):
        ac = make_populated(lambda impact: "strip_role-ish")
        ac.create_session("alice", "s1", ["editor"])
        before = ac.snapshot()

        with pytest.raises(TypeError, match="expected a SessionPolicy"):
            ac.delete_role("editor")
        assert ac.snapshot() == before

    def test_hook_exception_propagates_without_change(self, make_populated):
        def hook(impact: SessionImpact) -> SessionPolicy:
            raise RuntimeError("policy service down")

        ac = make_populated(hook)
        ac.create_session("alice", "s1", ["editor"])
        before = ac.snapshot()

        with pytest.raises(RuntimeError):
            ac.delete_user("alice")
        assert ac.snapshot() == before

    def test_hook_not_called_without_affected_sessions(self, make_populated):
        calls = []
        ac = make_populated(lambda impact: calls.append(impact) or SessionPolicy.strip_role)
        ac.deassign_user("alice", "editor")
        assert calls == []

    def test_hook_calling_back_into_engine_raises(self, make_populated):
        holder = {}

        def hook(impact: SessionImpact) -> SessionPolicy:
            holder["ac"].users()
            return SessionPolicy.strip_role

        ac = make_populated(hook)
        holder["ac"] = ac
        ac.create_session("alice", "s1", ["editor"])
        before = ac.snapshot()

        with pytest.raises(RuntimeError, match="not reentrant"):
            ac.deassign_user("alice", "editor")
        assert ac.snapshot() == before
