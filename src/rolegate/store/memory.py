"""RelationStore backed by plain dicts and sets."""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Iterable, Iterator

from rolegate.interfaces.models import (
    ObjectId,
    Operation,
    Permission,
    RoleId,
    SessionId,
    UserId,
)
from rolegate.interfaces.store import RelationStore


class MemoryRelationStore(RelationStore):
    """In-memory relation store.

    Each relation is indexed in both directions so every membership test
    and lookup is an average O(1) dict/set operation. OPS and OBJS are kept
    as reference counts over PERMS.

    Not thread-safe on its own; ``AccessControl`` serialises access.
    """

    def __init__(self) -> None:
        self._reset()

    def _reset(self) -> None:
        self._users: set[UserId] = set()
        self._roles: set[RoleId] = set()
        self._permissions: set[Permission] = set()
        self._operations: Counter[Operation] = Counter()
        self._objects: Counter[ObjectId] = Counter()

        self._user_roles: defaultdict[UserId, set[RoleId]] = defaultdict(set)
        self._role_users: defaultdict[RoleId, set[UserId]] = defaultdict(set)
        self._role_perms: defaultdict[RoleId, set[Permission]] = defaultdict(set)
        self._perm_roles: defaultdict[Permission, set[RoleId]] = defaultdict(set)

        self._session_owner: dict[SessionId, UserId] = {}
        self._session_roles: dict[SessionId, set[RoleId]] = {}
        self._user_sessions: defaultdict[UserId, set[SessionId]] = defaultdict(set)
        self._role_sessions: defaultdict[RoleId, set[SessionId]] = defaultdict(set)
        self._expiring: set[SessionId] = set()

    # -- helpers ---------------------------------------------------------------

    @staticmethod
    def _discard(index: defaultdict, key, value) -> None:
        """Remove ``value`` from ``index[key]`` and drop the key once empty."""
        bucket = index.get(key)
        if bucket is None:
            return
        bucket.discard(value)
        if not bucket:
            del index[key]

    @staticmethod
    def _lookup(index: defaultdict, key) -> frozenset:
        # .get() so reads never create empty buckets.
        return frozenset(index.get(key, ()))

    # -- USERS -----------------------------------------------------------------

    def has_user(self, user: UserId) -> bool:
        return user in self._users

    def insert_user(self, user: UserId) -> None:
        if user in self._users:
            raise ValueError(f"User already present: {user!r}")
        self._users.add(user)

    def remove_user(self, user: UserId) -> None:
        if user not in self._users:
            raise KeyError(user)
        if self._user_roles.get(user):
            raise ValueError(f"User {user!r} still has role assignments")
        live = [s for s in self._user_sessions.get(user, ()) if s not in self._expiring]
        if live:
            raise ValueError(f"User {user!r} still owns sessions: {sorted(live)}")
        self._users.remove(user)

    def iter_users(self) -> Iterator[UserId]:
        return iter(list(self._users))

    # -- ROLES -----------------------------------------------------------------

    def has_role(self, role: RoleId) -> bool:
        return role in self._roles

    def insert_role(self, role: RoleId) -> None:
        if role in self._roles:
            raise ValueError(f"Role already present: {role!r}")
        self._roles.add(role)

    def remove_role(self, role: RoleId) -> None:
        if role not in self._roles:
            raise KeyError(role)
        if self._role_users.get(role) or self._role_perms.get(role) or self._role_sessions.get(role):
            raise ValueError(f"Role {role!r} is still referenced by a relation")
        self._roles.remove(role)

    def iter_roles(self) -> Iterator[RoleId]:
        return iter(list(self._roles))

    # -- PERMS -----------------------------------------------------------------

    def has_permission(self, permission: Permission) -> bool:
        return permission in self._permissions

    def insert_permission(self, permission: Permission) -> None:
        if permission in self._permissions:
            raise ValueError(f"Permission already present: {permission!r}")
        self._permissions.add(permission)
        self._operations[permission.operation] += 1
        self._objects[permission.object] += 1

    def remove_permission(self, permission: Permission) -> None:
        if permission not in self._permissions:
            raise KeyError(permission)
        if self._perm_roles.get(permission):
            raise ValueError(f"Permission {permission!r} is still granted to a role")
        self._permissions.remove(permission)
        for counter, key in ((self._operations, permission.operation), (self._objects, permission.object)):
            counter[key] -= 1
            if counter[key] <= 0:
                del counter[key]

    def iter_permissions(self) -> Iterator[Permission]:
        return iter(list(self._permissions))

    def has_operation(self, operation: Operation) -> bool:
        return operation in self._operations

    def has_object(self, obj: ObjectId) -> bool:
        return obj in self._objects

    # -- UA --------------------------------------------------------------------

    def has_assignment(self, user: UserId, role: RoleId) -> bool:
        return role in self._user_roles.get(user, ())

    def insert_assignment(self, user: UserId, role: RoleId) -> None:
        if user not in self._users:
            raise KeyError(user)
        if role not in self._roles:
            raise KeyError(role)
        if self.has_assignment(user, role):
            raise ValueError(f"User {user!r} already assigned to {role!r}")
        self._user_roles[user].add(role)
        self._role_users[role].add(user)

    def remove_assignment(self, user: UserId, role: RoleId) -> None:
        if not self.has_assignment(user, role):
            raise KeyError((user, role))
        active = [
            s for s in self._user_sessions.get(user, ())
            if role in self._session_roles[s]
        ]
        if active:
            raise ValueError(f"Role {role!r} is still active in sessions {sorted(active)}")
        self._discard(self._user_roles, user, role)
        self._discard(self._role_users, role, user)

    def roles_of_user(self, user: UserId) -> frozenset[RoleId]:
        return self._lookup(self._user_roles, user)

    def users_of_role(self, role: RoleId) -> frozenset[UserId]:
        return self._lookup(self._role_users, role)

    # -- PA --------------------------------------------------------------------

    def has_grant(self, role: RoleId, permission: Permission) -> bool:
        return permission in self._role_perms.get(role, ())

    def insert_grant(self, role: RoleId, permission: Permission) -> None:
        if role not in self._roles:
            raise KeyError(role)
        if permission not in self._permissions:
            raise KeyError(permission)
        if self.has_grant(role, permission):
            raise ValueError(f"Role {role!r} already holds {permission!r}")
        self._role_perms[role].add(permission)
        self._perm_roles[permission].add(role)

    def remove_grant(self, role: RoleId, permission: Permission) -> None:
        if not self.has_grant(role, permission):
            raise KeyError((role, permission))
        self._discard(self._role_perms, role, permission)
        self._discard(self._perm_roles, permission, role)

    def permissions_of_role(self, role: RoleId) -> frozenset[Permission]:
        return self._lookup(self._role_perms, role)

    def roles_of_permission(self, permission: Permission) -> frozenset[RoleId]:
        return self._lookup(self._perm_roles, permission)

    # -- SESSIONS --------------------------------------------------------------

    def has_session(self, session: SessionId) -> bool:
        return session in self._session_owner

    def insert_session(
        self,
        session: SessionId,
        user: UserId,
        roles: Iterable[RoleId] = (),
        expiring: bool = False,
    ) -> None:
        if session in self._session_owner:
            raise ValueError(f"Session already present: {session!r}")
        if user not in self._users and not expiring:
            raise KeyError(user)
        roles = set(roles)
        unassigned = roles - self._user_roles.get(user, set())
        if unassigned:
            raise ValueError(f"Roles {sorted(unassigned)} are not assigned to {user!r}")

        self._session_owner[session] = user
        self._session_roles[session] = roles
        self._user_sessions[user].add(session)
        for role in roles:
            self._role_sessions[role].add(session)
        if expiring:
            self._expiring.add(session)

    def remove_session(self, session: SessionId) -> None:
        user = self._session_owner.pop(session)
        for role in self._session_roles.pop(session):
            self._discard(self._role_sessions, role, session)
        self._discard(self._user_sessions, user, session)
        self._expiring.discard(session)

    def session_owner(self, session: SessionId) -> UserId:
        return self._session_owner[session]

    def sessions_of_user(self, user: UserId) -> frozenset[SessionId]:
        return self._lookup(self._user_sessions, user)

    def active_roles(self, session: SessionId) -> frozenset[RoleId]:
        return frozenset(self._session_roles[session])

    def insert_active_role(self, session: SessionId, role: RoleId) -> None:
        roles = self._session_roles[session]
        if role in roles:
            raise ValueError(f"Role {role!r} already active in {session!r}")
        if not self.has_assignment(self._session_owner[session], role):
            raise ValueError(f"Role {role!r} is not assigned to the owner of {session!r}")
        roles.add(role)
        self._role_sessions[role].add(session)

    def remove_active_role(self, session: SessionId, role: RoleId) -> None:
        roles = self._session_roles[session]
        if role not in roles:
            raise KeyError((session, role))
        roles.remove(role)
        self._discard(self._role_sessions, role, session)

    def sessions_with_active_role(self, role: RoleId) -> frozenset[SessionId]:
        return self._lookup(self._role_sessions, role)

    def mark_expiring(self, session: SessionId) -> None:
        if session not in self._session_owner:
            raise KeyError(session)
        self._expiring.add(session)

    def is_expiring(self, session: SessionId) -> bool:
        if session not in self._session_owner:
            raise KeyError(session)
        return session in self._expiring

    def iter_sessions(self) -> Iterator[SessionId]:
        return iter(list(self._session_owner))

    def clear(self) -> None:
        self._reset()
