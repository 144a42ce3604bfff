"""Relation store contract.

A store holds the Core RBAC entity sets (USERS, ROLES, PERMS, SESSIONS)
and the relations between them (UA, PA, session ownership and active
roles). Subclasses implement the primitives; the bulk accessors are built
on top of them here and are not meant to be overridden.

Primitives do not validate preconditions beyond refusing to corrupt the
data: inserting a present member raises ``ValueError``, removing or looking
up a missing one raises ``KeyError``. Callers are expected to validate
first (see ``rolegate.validation``).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator

from rolegate.interfaces.models import (
    ObjectId,
    Operation,
    Permission,
    RoleGrant,
    RoleId,
    SessionId,
    SessionRecord,
    StoreSnapshot,
    UserAssignment,
    UserId,
)


class RelationStore(ABC):
    """Abstract base class for RBAC relation stores."""

    # -- USERS -----------------------------------------------------------------

    @abstractmethod
    def has_user(self, user: UserId) -> bool: ...

    @abstractmethod
    def insert_user(self, user: UserId) -> None: ...

    @abstractmethod
    def remove_user(self, user: UserId) -> None:
        """Remove a user.

        Fails while the user still has assignments or owns a live session;
        sessions already marked expiring may outlive their owner.
        """
        ...

    @abstractmethod
    def iter_users(self) -> Iterator[UserId]: ...

    # -- ROLES -----------------------------------------------------------------

    @abstractmethod
    def has_role(self, role: RoleId) -> bool: ...

    @abstractmethod
    def insert_role(self, role: RoleId) -> None: ...

    @abstractmethod
    def remove_role(self, role: RoleId) -> None:
        """Remove a role. Fails while the role is assigned, granted or active."""
        ...

    @abstractmethod
    def iter_roles(self) -> Iterator[RoleId]: ...

    # -- PERMS (and the derived OPS / OBJS) -------------------------------------

    @abstractmethod
    def has_permission(self, permission: Permission) -> bool: ...

    @abstractmethod
    def insert_permission(self, permission: Permission) -> None: ...

    @abstractmethod
    def remove_permission(self, permission: Permission) -> None:
        """Remove a permission. Fails while any role holds it."""
        ...

    @abstractmethod
    def iter_permissions(self) -> Iterator[Permission]: ...

    @abstractmethod
    def has_operation(self, operation: Operation) -> bool:
        """True iff some permission carries this operation."""
        ...

    @abstractmethod
    def has_object(self, obj: ObjectId) -> bool:
        """True iff some permission targets this object."""
        ...

    # -- UA --------------------------------------------------------------------

    @abstractmethod
    def has_assignment(self, user: UserId, role: RoleId) -> bool: ...

    @abstractmethod
    def insert_assignment(self, user: UserId, role: RoleId) -> None: ...

    @abstractmethod
    def remove_assignment(self, user: UserId, role: RoleId) -> None: ...

    @abstractmethod
    def roles_of_user(self, user: UserId) -> frozenset[RoleId]: ...

    @abstractmethod
    def users_of_role(self, role: RoleId) -> frozenset[UserId]: ...

    # -- PA --------------------------------------------------------------------

    @abstractmethod
    def has_grant(self, role: RoleId, permission: Permission) -> bool: ...

    @abstractmethod
    def insert_grant(self, role: RoleId, permission: Permission) -> None: ...

    @abstractmethod
    def remove_grant(self, role: RoleId, permission: Permission) -> None: ...

    @abstractmethod
    def permissions_of_role(self, role: RoleId) -> frozenset[Permission]: ...

    @abstractmethod
    def roles_of_permission(self, permission: Permission) -> frozenset[RoleId]: ...

    # -- SESSIONS --------------------------------------------------------------

    @abstractmethod
    def has_session(self, session: SessionId) -> bool: ...

    @abstractmethod
    def insert_session(
        self,
        session: SessionId,
        user: UserId,
        roles: Iterable[RoleId] = (),
        expiring: bool = False,
    ) -> None: ...

    @abstractmethod
    def remove_session(self, session: SessionId) -> None: ...

    @abstractmethod
    def session_owner(self, session: SessionId) -> UserId: ...

    @abstractmethod
    def sessions_of_user(self, user: UserId) -> frozenset[SessionId]:
        """Sessions owned by ``user``; empty for unknown users."""
        ...

    @abstractmethod
    def active_roles(self, session: SessionId) -> frozenset[RoleId]: ...

    @abstractmethod
    def insert_active_role(self, session: SessionId, role: RoleId) -> None: ...

    @abstractmethod
    def remove_active_role(self, session: SessionId, role: RoleId) -> None: ...

    @abstractmethod
    def sessions_with_active_role(self, role: RoleId) -> frozenset[SessionId]: ...

    @abstractmethod
    def mark_expiring(self, session: SessionId) -> None: ...

    @abstractmethod
    def is_expiring(self, session: SessionId) -> bool: ...

    @abstractmethod
    def iter_sessions(self) -> Iterator[SessionId]: ...

    @abstractmethod
    def clear(self) -> None:
        """Drop every entity and relation."""
        ...

    # -- Bulk accessors ----------------------------------------------------------

    def users(self) -> frozenset[UserId]:
        return frozenset(self.iter_users())

    def roles(self) -> frozenset[RoleId]:
        return frozenset(self.iter_roles())

    def permissions(self) -> frozenset[Permission]:
        return frozenset(self.iter_permissions())

    def sessions(self) -> frozenset[SessionId]:
        return frozenset(self.iter_sessions())

    def user_role_assignments(self) -> frozenset[UserAssignment]:
        return frozenset(
            UserAssignment(user=u, role=r)
            for u in self.iter_users()
            for r in self.roles_of_user(u)
        )

    def role_permission_assignments(self) -> frozenset[RoleGrant]:
        return frozenset(
            RoleGrant(role=r, permission=p)
            for r in self.iter_roles()
            for p in self.permissions_of_role(r)
        )

    def session_record(self, session: SessionId) -> SessionRecord:
        return SessionRecord(
            session_id=session,
            user=self.session_owner(session),
            active_roles=self.active_roles(session),
            expiring=self.is_expiring(session),
        )

    def set_users(self, users: Iterable[UserId]) -> None:
        self.restore(self.snapshot().model_copy(update={"users": sorted(set(users))}))

    def set_roles(self, roles: Iterable[RoleId]) -> None:
        self.restore(self.snapshot().model_copy(update={"roles": sorted(set(roles))}))

    def set_permissions(self, permissions: Iterable[Permission]) -> None:
        perms = sorted(set(permissions), key=Permission.sort_key)
        self.restore(self.snapshot().model_copy(update={"permissions": perms}))

    def set_user_role_assignments(self, assignments: Iterable[UserAssignment]) -> None:
        rows = sorted(set(assignments), key=lambda a: (a.user, a.role))
        self.restore(self.snapshot().model_copy(update={"assignments": rows}))

    def set_role_permission_assignments(self, grants: Iterable[RoleGrant]) -> None:
        rows = sorted(set(grants), key=lambda g: (g.role, *g.permission.sort_key()))
        self.restore(self.snapshot().model_copy(update={"grants": rows}))

    def set_sessions(self, sessions: Iterable[SessionRecord]) -> None:
        rows = sorted(sessions, key=lambda s: s.session_id)
        self.restore(self.snapshot().model_copy(update={"sessions": rows}))

    def snapshot(self) -> StoreSnapshot:
        """Export every set and relation in a deterministic order."""
        return StoreSnapshot(
            users=sorted(self.iter_users()),
            roles=sorted(self.iter_roles()),
            permissions=sorted(self.iter_permissions(), key=Permission.sort_key),
            assignments=sorted(
                self.user_role_assignments(), key=lambda a: (a.user, a.role)
            ),
            grants=sorted(
                self.role_permission_assignments(),
                key=lambda g: (g.role, *g.permission.sort_key()),
            ),
            sessions=[self.session_record(s) for s in sorted(self.iter_sessions())],
        )

    def restore(self, snapshot: StoreSnapshot) -> None:
        """Replace the whole store with ``snapshot``.

        The snapshot is checked for dangling references first; a rejected
        snapshot leaves the store untouched.
        """
        problems = snapshot.dangling_references()
        if problems:
            raise ValueError("Inconsistent snapshot: " + "; ".join(problems))

        self.clear()
        for user in set(snapshot.users):
            self.insert_user(user)
        for role in set(snapshot.roles):
            self.insert_role(role)
        for permission in set(snapshot.permissions):
            self.insert_permission(permission)
        for a in set(snapshot.assignments):
            self.insert_assignment(a.user, a.role)
        for g in set(snapshot.grants):
            self.insert_grant(g.role, g.permission)
        for s in snapshot.sessions:
            self.insert_session(s.session_id, s.user, s.active_roles, expiring=s.expiring)
