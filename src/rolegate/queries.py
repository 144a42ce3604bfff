"""Review and supporting system functions.

Everything here is read-only and returns frozensets built from the store,
never its internal containers.
"""

from __future__ import annotations

from rolegate.interfaces.models import (
    ObjectId,
    Operation,
    Permission,
    RoleId,
    SessionId,
    UserId,
)
from rolegate.interfaces.store import RelationStore
from rolegate.validation import Validator, ensure


class QueryEngine:
    """Derived views over the relation store."""

    def __init__(self, store: RelationStore, validator: Validator) -> None:
        self._store = store
        self._validator = validator

    # -- review functions --------------------------------------------------------

    def assigned_users(self, role: RoleId) -> frozenset[UserId]:
        ensure("assigned_users", self._validator.assigned_users(role))
        return self._store.users_of_role(role)

    def assigned_roles(self, user: UserId) -> frozenset[RoleId]:
        ensure("assigned_roles", self._validator.assigned_roles(user))
        return self._store.roles_of_user(user)

    def role_permissions(self, role: RoleId) -> frozenset[Permission]:
        ensure("role_permissions", self._validator.role_permissions(role))
        return self._permissions_of(self._authorized_roles({role}))

    def user_permissions(self, user: UserId) -> frozenset[Permission]:
        ensure("user_permissions", self._validator.user_permissions(user))
        return self._permissions_of(self._authorized_roles(self._store.roles_of_user(user)))

    def session_roles(self, session: SessionId) -> frozenset[RoleId]:
        ensure("session_roles", self._validator.session_roles(session))
        return self._store.active_roles(session)

    def session_permissions(self, session: SessionId) -> frozenset[Permission]:
        ensure("session_permissions", self._validator.session_permissions(session))
        return self._permissions_of(self._authorized_roles(self._store.active_roles(session)))

    def role_operations_on_object(self, role: RoleId, obj: ObjectId) -> frozenset[Operation]:
        ensure(
            "role_operations_on_object",
            self._validator.role_operations_on_object(role, obj),
        )
        return self._operations_on(self._authorized_roles({role}), obj)

    def user_operations_on_object(self, user: UserId, obj: ObjectId) -> frozenset[Operation]:
        ensure(
            "user_operations_on_object",
            self._validator.user_operations_on_object(user, obj),
        )
        return self._operations_on(self._authorized_roles(self._store.roles_of_user(user)), obj)

    # -- supporting system functions -------------------------------------------------

    def check_access(self, session: SessionId, operation: Operation, obj: ObjectId) -> bool:
        """True iff one of the session's active roles holds (operation, obj)."""
        ensure("check_access", self._validator.check_access(session, operation, obj))
        wanted = Permission(operation=operation, object=obj)
        return any(
            self._store.has_grant(role, wanted)
            for role in self._authorized_roles(self._store.active_roles(session))
        )

    def session_user(self, session: SessionId) -> UserId:
        ensure("session_user", self._validator.session_user(session))
        return self._store.session_owner(session)

    def user_sessions(self, user: UserId) -> frozenset[SessionId]:
        ensure("user_sessions", self._validator.user_sessions(user))
        return self._store.sessions_of_user(user)

    def permission_roles(self, obj: ObjectId, operation: Operation) -> frozenset[RoleId]:
        ensure("permission_roles", self._validator.permission_roles(obj, operation))
        return self._store.roles_of_permission(Permission(operation=operation, object=obj))

    # -- helpers ---------------------------------------------------------------

    def _authorized_roles(self, roles: frozenset[RoleId] | set[RoleId]) -> frozenset[RoleId]:
        """Roles whose permissions apply when ``roles`` are held.

        Core RBAC has no role hierarchy, so this is the identity; a
        hierarchical store would return the closure over junior roles here.
        """
        return frozenset(roles)

    def _permissions_of(self, roles: frozenset[RoleId]) -> frozenset[Permission]:
        perms: set[Permission] = set()
        for role in roles:
            perms |= self._store.permissions_of_role(role)
        return frozenset(perms)

    def _operations_on(self, roles: frozenset[RoleId], obj: ObjectId) -> frozenset[Operation]:
        return frozenset(p.operation for p in self._permissions_of(roles) if p.object == obj)
