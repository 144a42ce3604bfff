"""Precondition checks for commands and queries.

Checks never raise: each returns a ``Verdict``. Commands and queries pass
the verdict to ``ensure``, which turns a failure into the one exception
callers see, ``InvalidArgumentError``. Every predicate is safe to evaluate against
entities that do not exist, so the per-operation checks can evaluate all
of their predicates and report the first failure in a fixed order.
"""

from __future__ import annotations

import logging
import functools
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from rolegate.errors import FailureReason, InvalidArgumentError
from rolegate.interfaces.models import (
    ObjectId,
    Operation,
    Permission,
    RoleId,
    SessionId,
    UserId,
)
from rolegate.interfaces.store import RelationStore


@dataclass(frozen=True)
class Verdict:
    """Outcome of a precondition check."""

    ok: bool
    reason: FailureReason | None = None
    detail: str = ""

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls) -> Verdict:
        return _SUCCESS

    @classmethod
    def failure(cls, reason: FailureReason, detail: str = "") -> Verdict:
        return cls(ok=False, reason=reason, detail=detail)

    @classmethod
    def all(cls, *verdicts: Verdict) -> Verdict:
        """Return the first failed verdict, or success."""
        for v in verdicts:
            if not v.ok:
                return v
        return _SUCCESS


_SUCCESS = Verdict(ok=True)

logger = logging.getLogger(__name__)


def ensure(operation: str, verdict: Verdict) -> None:
    """Raise InvalidArgumentError if ``verdict`` failed."""
    if verdict.ok:
        return
    logger.debug("%s rejected reason=%s %s", operation, verdict.reason.value, verdict.detail)
    raise InvalidArgumentError(operation, verdict.reason, verdict.detail)


def role_list(roles: Iterable[RoleId] | RoleId) -> tuple:
    """Normalise an initial active-role argument; a bare string names one role."""
    if isinstance(roles, str) or not isinstance(roles, Iterable):
        return (roles,)
    return tuple(roles)


def _identifiers(check: Callable[..., Verdict]) -> Callable[..., Verdict]:
    """Reject non-string arguments before ``check`` looks anything up."""

    @functools.wraps(check)
    def wrapper(self: Validator, *args) -> Verdict:
        verdict = self.identifiers(*args)
        if not verdict:
            return verdict
        return check(self, *args)

    return wrapper


def _perm_label(permission: Permission) -> str:
    return f"({permission.operation!r}, {permission.object!r})"


class Validator:
    """Stateless precondition predicates over a relation store."""

    def __init__(self, store: RelationStore) -> None:
        self._store = store

    # -- entity predicates -------------------------------------------------------

    def identifiers(self, *values: object) -> Verdict:
        for value in values:
            if not isinstance(value, str):
                return Verdict.failure(
                    FailureReason.invalid_identifier,
                    f"{value!r} is a {type(value).__name__}, not a str",
                )
        return Verdict.success()

    def user_exists(self, user: UserId) -> Verdict:
        if self._store.has_user(user):
            return Verdict.success()
        return Verdict.failure(FailureReason.user_not_found, f"user={user!r}")

    def user_absent(self, user: UserId) -> Verdict:
        if not self._store.has_user(user):
            return Verdict.success()
        return Verdict.failure(FailureReason.user_already_exists, f"user={user!r}")

    def role_exists(self, role: RoleId) -> Verdict:
        if self._store.has_role(role):
            return Verdict.success()
        return Verdict.failure(FailureReason.role_not_found, f"role={role!r}")

    def role_absent(self, role: RoleId) -> Verdict:
        if not self._store.has_role(role):
            return Verdict.success()
        return Verdict.failure(FailureReason.role_already_exists, f"role={role!r}")

    def permission_exists(self, permission: Permission) -> Verdict:
        if self._store.has_permission(permission):
            return Verdict.success()
        return Verdict.failure(FailureReason.permission_not_found, _perm_label(permission))

    def permission_absent(self, permission: Permission) -> Verdict:
        if not self._store.has_permission(permission):
            return Verdict.success()
        return Verdict.failure(FailureReason.permission_already_exists, _perm_label(permission))

    def operation_exists(self, operation: Operation) -> Verdict:
        if self._store.has_operation(operation):
            return Verdict.success()
        return Verdict.failure(FailureReason.operation_not_found, f"operation={operation!r}")

    def object_exists(self, obj: ObjectId) -> Verdict:
        if self._store.has_object(obj):
            return Verdict.success()
        return Verdict.failure(FailureReason.object_not_found, f"object={obj!r}")

    def session_exists(self, session: SessionId) -> Verdict:
        if self._store.has_session(session):
            return Verdict.success()
        return Verdict.failure(FailureReason.session_not_found, f"session={session!r}")

    def session_absent(self, session: SessionId) -> Verdict:
        if not self._store.has_session(session):
            return Verdict.success()
        return Verdict.failure(FailureReason.session_already_exists, f"session={session!r}")

    # -- relation predicates -----------------------------------------------------

    def assigned(self, user: UserId, role: RoleId) -> Verdict:
        if self._store.has_assignment(user, role):
            return Verdict.success()
        return Verdict.failure(FailureReason.assignment_not_found, f"user={user!r} role={role!r}")

    def not_assigned(self, user: UserId, role: RoleId) -> Verdict:
        if not self._store.has_assignment(user, role):
            return Verdict.success()
        return Verdict.failure(
            FailureReason.assignment_already_exists, f"user={user!r} role={role!r}"
        )

    def granted(self, role: RoleId, permission: Permission) -> Verdict:
        if self._store.has_grant(role, permission):
            return Verdict.success()
        return Verdict.failure(
            FailureReason.grant_not_found, f"role={role!r} permission={_perm_label(permission)}"
        )

    def role_assigned(self, user: UserId, role: RoleId) -> Verdict:
        if self._store.has_assignment(user, role):
            return Verdict.success()
        return Verdict.failure(FailureReason.role_not_assigned, f"user={user!r} role={role!r}")

    def owns_session(self, user: UserId, session: SessionId) -> Verdict:
        if self._store.has_session(session) and self._store.session_owner(session) == user:
            return Verdict.success()
        return Verdict.failure(FailureReason.not_session_owner, f"user={user!r} session={session!r}")

    def role_active(self, session: SessionId, role: RoleId) -> Verdict:
        if self._store.has_session(session) and role in self._store.active_roles(session):
            return Verdict.success()
        return Verdict.failure(FailureReason.role_not_active, f"session={session!r} role={role!r}")

    def session_live(self, session: SessionId) -> Verdict:
        if not self._store.has_session(session) or not self._store.is_expiring(session):
            return Verdict.success()
        return Verdict.failure(FailureReason.session_expiring, f"session={session!r}")

    def roles_assigned(self, user: UserId, roles: Iterable[RoleId]) -> Verdict:
        missing = set(roles) - self._store.roles_of_user(user)
        if not missing:
            return Verdict.success()
        return Verdict.failure(
            FailureReason.active_roles_not_subset,
            f"user={user!r} unassigned={sorted(missing)!r}",
        )

    # -- commands ----------------------------------------------------------------

    @_identifiers
    def add_user(self, user: UserId) -> Verdict:
        return self.user_absent(user)

    @_identifiers
    def delete_user(self, user: UserId) -> Verdict:
        return self.user_exists(user)

    @_identifiers
    def add_role(self, role: RoleId) -> Verdict:
        return self.role_absent(role)

    @_identifiers
    def delete_role(self, role: RoleId) -> Verdict:
        return self.role_exists(role)

    @_identifiers
    def add_permission(self, obj: ObjectId, operation: Operation) -> Verdict:
        return self.permission_absent(Permission(operation=operation, object=obj))

    @_identifiers
    def delete_permission(self, obj: ObjectId, operation: Operation) -> Verdict:
        return self.permission_exists(Permission(operation=operation, object=obj))

    @_identifiers
    def assign_user(self, user: UserId, role: RoleId) -> Verdict:
        return Verdict.all(
            self.user_exists(user),
            self.role_exists(role),
            self.not_assigned(user, role),
        )

    @_identifiers
    def deassign_user(self, user: UserId, role: RoleId) -> Verdict:
        return Verdict.all(
            self.user_exists(user),
            self.role_exists(role),
            self.assigned(user, role),
        )

    @_identifiers
    def grant_permission(self, obj: ObjectId, operation: Operation, role: RoleId) -> Verdict:
        # Granting a held permission again is allowed and changes nothing.
        return Verdict.all(
            self.permission_exists(Permission(operation=operation, object=obj)),
            self.role_exists(role),
        )

    @_identifiers
    def revoke_permission(self, obj: ObjectId, operation: Operation, role: RoleId) -> Verdict:
        permission = Permission(operation=operation, object=obj)
        return Verdict.all(
            self.permission_exists(permission),
            self.role_exists(role),
            self.granted(role, permission),
        )

    def create_session(
        self, user: UserId, session: SessionId, roles: Iterable[RoleId] | RoleId = ()
    ) -> Verdict:
        roles = role_list(roles)
        verdict = self.identifiers(user, session, *roles)
        if not verdict:
            return verdict
        return Verdict.all(
            self.user_exists(user),
            self.session_absent(session),
            self.roles_assigned(user, roles),
        )

    @_identifiers
    def delete_session(self, user: UserId, session: SessionId) -> Verdict:
        return Verdict.all(
            self.user_exists(user),
            self.session_exists(session),
            self.owns_session(user, session),
        )

    @_identifiers
    def add_active_role(self, user: UserId, session: SessionId, role: RoleId) -> Verdict:
        # Activating an already active role is allowed and changes nothing.
        return Verdict.all(
            self.user_exists(user),
            self.session_exists(session),
            self.role_exists(role),
            self.role_assigned(user, role),
            self.owns_session(user, session),
            self.session_live(session),
        )

    @_identifiers
    def drop_active_role(self, user: UserId, session: SessionId, role: RoleId) -> Verdict:
        return Verdict.all(
            self.user_exists(user),
            self.session_exists(session),
            self.role_exists(role),
            self.owns_session(user, session),
            self.role_active(session, role),
        )

    @_identifiers
    def expire_session(self, session: SessionId) -> Verdict:
        return self.session_exists(session)

    # -- queries -----------------------------------------------------------------

    @_identifiers
    def assigned_users(self, role: RoleId) -> Verdict:
        return self.role_exists(role)

    @_identifiers
    def assigned_roles(self, user: UserId) -> Verdict:
        return self.user_exists(user)

    @_identifiers
    def role_permissions(self, role: RoleId) -> Verdict:
        return self.role_exists(role)

    @_identifiers
    def user_permissions(self, user: UserId) -> Verdict:
        return self.user_exists(user)

    @_identifiers
    def session_roles(self, session: SessionId) -> Verdict:
        return self.session_exists(session)

    @_identifiers
    def session_permissions(self, session: SessionId) -> Verdict:
        return self.session_exists(session)

    @_identifiers
    def role_operations_on_object(self, role: RoleId, obj: ObjectId) -> Verdict:
        return Verdict.all(self.role_exists(role), self.object_exists(obj))

    @_identifiers
    def user_operations_on_object(self, user: UserId, obj: ObjectId) -> Verdict:
        return Verdict.all(self.user_exists(user), self.object_exists(obj))

    @_identifiers
    def check_access(self, session: SessionId, operation: Operation, obj: ObjectId) -> Verdict:
        return Verdict.all(
            self.session_exists(session),
            self.operation_exists(operation),
            self.object_exists(obj),
        )

    @_identifiers
    def session_user(self, session: SessionId) -> Verdict:
        return self.session_exists(session)

    @_identifiers
    def user_sessions(self, user: UserId) -> Verdict:
        return self.user_exists(user)

    @_identifiers
    def permission_roles(self, obj: ObjectId, operation: Operation) -> Verdict:
        return self.permission_exists(Permission(operation=operation, object=obj))

    @_identifiers
    def session(self, session: SessionId) -> Verdict:
        return self.session_exists(session)
