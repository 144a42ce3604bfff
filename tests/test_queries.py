"""Tests for review functions and check_access."""

from __future__ import annotations

import random

import pytest

from rolegate import AccessControl, SessionPolicy
from rolegate.errors import FailureReason, InvalidArgumentError
from rolegate.interfaces.models import Permission

READ_F1 = Permission(operation="read", object="file1")
WRITE_F1 = Permission(operation="write", object="file1")
READ_F2 = Permission(operation="read", object="file2")


# -- check_access -------------------------------------------------------------


def test_editor_can_read_but_not_write():
    ac = AccessControl(policy=SessionPolicy.strip_role)
    ac.add_user("alice")
    ac.add_role("editor")
    ac.add_permission("file1", "read")
    ac.add_permission("file1", "write")
    ac.grant_permission("file1", "read", "editor")
    ac.assign_user("alice", "editor")
    ac.create_session("alice", "s1", ["editor"])

    assert ac.check_access("s1", "read", "file1") is True
    assert ac.check_access("s1", "write", "file1") is False


def test_check_access_uses_active_roles_only(populated):
    populated.create_session("alice", "s1", ["viewer"])
    assert populated.check_access("s1", "read", "file1") is True
    assert populated.check_access("s1", "write", "file1") is False

    populated.add_active_role("alice", "s1", "editor")
    assert populated.check_access("s1", "write", "file1") is True


def test_check_access_with_no_active_roles(populated):
    populated.create_session("alice", "s1")
    assert populated.check_access("s1", "read", "file1") is False


def test_grant_then_revoke_restores_decision(populated):
    populated.create_session("bob", "s1", ["viewer"])
    before = populated.role_permissions("viewer")
    assert populated.check_access("s1", "write", "file1") is False
    populated.grant_permission("file1", "write", "viewer")
    assert populated.check_access("s1", "write", "file1") is True
    populated.revoke_permission("file1", "write", "viewer")
    assert populated.check_access("s1", "write", "file1") is False
    assert populated.role_permissions("viewer") == before


@pytest.mark.parametrize(
    ("args", "reason"),
    [
        (("missing", "read", "file1"), FailureReason.session_not_found),
        (("s1", "delete", "file1"), FailureReason.operation_not_found),
        (("s1", "read", "file9"), FailureReason.object_not_found),
    ],
)
def test_check_access_preconditions(populated, args, reason):
    populated.create_session("alice", "s1", ["editor"])
    with pytest.raises(InvalidArgumentError) as exc_info:
        populated.check_access(*args)
    assert exc_info.value.reason is reason


# -- Review functions ---------------------------------------------------------


class TestReview:
    def test_assigned_users_and_roles(self, populated):
        assert populated.assigned_users("viewer") == {"alice", "bob"}
        assert populated.assigned_roles("alice") == {"editor", "viewer"}

    def test_role_permissions(self, populated):
        assert populated.role_permissions("editor") == {READ_F1, WRITE_F1}

    def test_user_permissions_is_union(self, populated):
        assert populated.user_permissions("alice") == {READ_F1, WRITE_F1, READ_F2}
        assert populated.user_permissions("bob") == {READ_F1, READ_F2}

    def test_session_permissions(self, populated):
        populated.create_session("alice", "s1", ["editor"])
        assert populated.session_permissions("s1") == {READ_F1, WRITE_F1}

    def test_operations_on_object(self, populated):
        assert populated.role_operations_on_object("editor", "file1") == {"read", "write"}
        assert populated.role_operations_on_object("editor", "file2") == frozenset()
        assert populated.user_operations_on_object("bob", "file1") == {"read"}

    def test_permission_roles(self, populated):
        assert populated.permission_roles("file1", "read") == {"editor", "viewer"}

    def test_results_are_frozensets(self, populated):
        result = populated.assigned_roles("alice")
        assert isinstance(result, frozenset)
        populated.deassign_user("alice", "viewer")
        assert result == {"editor", "viewer"}

    @pytest.mark.parametrize(
        ("query", "args", "reason"),
        [
            ("assigned_users", ("admin",), FailureReason.role_not_found),
            ("assigned_roles", ("ghost",), FailureReason.user_not_found),
            ("role_permissions", ("admin",), FailureReason.role_not_found),
            ("user_permissions", ("ghost",), FailureReason.user_not_found),
            ("session_roles", ("s9",), FailureReason.session_not_found),
            ("session_permissions", ("s9",), FailureReason.session_not_found),
            ("role_operations_on_object", ("editor", "file9"), FailureReason.object_not_found),
            ("user_operations_on_object", ("ghost", "file1"), FailureReason.user_not_found),
            ("session_user", ("s9",), FailureReason.session_not_found),
            ("user_sessions", ("ghost",), FailureReason.user_not_found),
            ("permission_roles", ("file1", "delete"), FailureReason.permission_not_found),
        ],
    )
    def test_unknown_arguments(self, populated, query, args, reason):
        with pytest.raises(InvalidArgumentError) as exc_info:
            getattr(populated, query)(*args)
        assert exc_info.value.reason is reason
        assert exc_info.value.operation == query


# -- Randomized relations -----------------------------------------------------


def test_user_permissions_matches_union_over_random_relations():
    rng = random.Random(1234)
    ac = AccessControl(policy=SessionPolicy.strip_role)
    users = [f"u{i}" for i in range(8)]
    roles = [f"r{i}" for i in range(6)]
    perms = [(f"o{i % 4}", f"op{i % 3}") for i in range(12)]
    for u in users:
        ac.add_user(u)
    for r in roles:
        ac.add_role(r)
    for obj, op in set(perms):
        ac.add_permission(obj, op)

    for _ in range(60):
        u, r = rng.choice(users), rng.choice(roles)
        if r not in ac.assigned_roles(u):
            ac.assign_user(u, r)
        obj, op = rng.choice(perms)
        r = rng.choice(roles)
        if Permission(operation=op, object=obj) not in ac.role_permissions(r):
            ac.grant_permission(obj, op, r)

    for u in users:
        expected = set()
        for r in ac.assigned_roles(u):
            expected |= ac.role_permissions(r)
        assert ac.user_permissions(u) == expected

        ac.create_session(u, f"s-{u}", ac.assigned_roles(u))
        for obj, op in set(perms):
            granted = Permission(operation=op, object=obj) in expected
            assert ac.check_access(f"s-{u}", op, obj) is granted
