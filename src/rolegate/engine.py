"""Thread-safe Core RBAC engine."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from rolegate.commands import CommandLayer
from rolegate.config.models import RolegateConfig, SeedConfig
from rolegate.interfaces.models import (
    ObjectId,
    Operation,
    Permission,
    RoleId,
    SessionId,
    SessionRecord,
    StoreSnapshot,
    UserId,
)
from rolegate.interfaces.store import RelationStore
from rolegate.locking import ReadWriteLock
from rolegate.policy import PolicyHook, SessionPolicy
from rolegate.queries import QueryEngine
from rolegate.store.memory import MemoryRelationStore
from rolegate.validation import Validator, Verdict, ensure

logger = logging.getLogger(__name__)

# Operations whose preconditions can be checked without running them.
_CHECKABLE = frozenset({
    "add_user", "delete_user", "add_role", "delete_role",
    "add_permission", "delete_permission", "assign_user", "deassign_user",
    "grant_permission", "revoke_permission",
    "create_session", "delete_session", "expire_session",
    "add_active_role", "drop_active_role",
    "assigned_users", "assigned_roles", "role_permissions", "user_permissions",
    "session_roles", "session_permissions",
    "role_operations_on_object", "user_operations_on_object", "check_access",
    "session_user", "user_sessions", "permission_roles", "session",
})


class AccessControl:
    """Core RBAC over one relation store.

    Commands take the write lock and queries the read lock, so a query
    never observes a cascade half-applied. The session policy has no
    default; see ``rolegate.policy``. Policy hooks run under the write lock
    and must not call back into the engine (``RuntimeError``).
    """

    def __init__(
        self,
        *,
        policy: SessionPolicy | PolicyHook,
        store: RelationStore | None = None,
    ) -> None:
        if policy is None:
            raise ValueError("A session policy is required")
        self._store = store if store is not None else MemoryRelationStore()
        self._lock = ReadWriteLock()
        self._validator = Validator(self._store)
        self._commands = CommandLayer(self._store, self._validator, policy)
        self._queries = QueryEngine(self._store, self._validator)
        self.policy = policy

    @classmethod
    def from_config(
        cls, config: RolegateConfig, store: RelationStore | None = None
    ) -> AccessControl:
        """Build an engine from config and apply its ``seed`` section."""
        if config.session_policy is None:
            raise ValueError(
                "session_policy must be set (force_terminate | allow_expiry | strip_role)"
            )
        engine = cls(policy=config.session_policy, store=store)
        engine.seed(config.seed)
        return engine

    def seed(self, seed: SeedConfig) -> None:
        """Create the seed's entities and relations through the normal commands."""
        for user in seed.users:
            self.add_user(user)
        for role in seed.roles:
            self.add_role(role)
        for p in seed.permissions:
            self.add_permission(p.object, p.operation)
        for a in seed.assignments:
            self.assign_user(a.user, a.role)
        for g in seed.grants:
            self.grant_permission(g.object, g.operation, g.role)
        logger.info(
            "seeded users=%d roles=%d permissions=%d",
            len(seed.users), len(seed.roles), len(seed.permissions),
        )

    # -- precondition checks -------------------------------------------------------

    def validate(self, operation: str, *args) -> Verdict:
        """Evaluate an operation's precondition without running it.

        Takes the same arguments as the operation and returns its
        ``Verdict`` instead of raising.
        """
        if operation not in _CHECKABLE:
            raise ValueError(f"Unknown operation: {operation!r}")
        with self._lock.read():
            return getattr(self._validator, operation)(*args)

    # -- administrative commands ---------------------------------------------------

    def add_user(self, user: UserId) -> None:
        with self._lock.write():
            self._commands.add_user(user)

    def delete_user(self, user: UserId) -> None:
        with self._lock.write():
            self._commands.delete_user(user)

    def add_role(self, role: RoleId) -> None:
        with self._lock.write():
            self._commands.add_role(role)

    def delete_role(self, role: RoleId) -> None:
        with self._lock.write():
            self._commands.delete_role(role)

    def add_permission(self, obj: ObjectId, operation: Operation) -> Permission:
        with self._lock.write():
            return self._commands.add_permission(obj, operation)

    def delete_permission(self, obj: ObjectId, operation: Operation) -> None:
        with self._lock.write():
            self._commands.delete_permission(obj, operation)

    def assign_user(self, user: UserId, role: RoleId) -> None:
        with self._lock.write():
            self._commands.assign_user(user, role)

    def deassign_user(self, user: UserId, role: RoleId) -> None:
        with self._lock.write():
            self._commands.deassign_user(user, role)

    def grant_permission(self, obj: ObjectId, operation: Operation, role: RoleId) -> None:
        with self._lock.write():
            self._commands.grant_permission(obj, operation, role)

    def revoke_permission(self, obj: ObjectId, operation: Operation, role: RoleId) -> None:
        with self._lock.write():
            self._commands.revoke_permission(obj, operation, role)

    # -- session functions ---------------------------------------------------------

    def create_session(
        self, user: UserId, session: SessionId, roles: Iterable[RoleId] = ()
    ) -> SessionRecord:
        with self._lock.write():
            return self._commands.create_session(user, session, roles)

    def delete_session(self, user: UserId, session: SessionId) -> None:
        with self._lock.write():
            self._commands.delete_session(user, session)

    def expire_session(self, session: SessionId) -> None:
        with self._lock.write():
            self._commands.expire_session(session)

    def add_active_role(self, user: UserId, session: SessionId, role: RoleId) -> None:
        with self._lock.write():
            self._commands.add_active_role(user, session, role)

    def drop_active_role(self, user: UserId, session: SessionId, role: RoleId) -> None:
        with self._lock.write():
            self._commands.drop_active_role(user, session, role)

    # -- queries -------------------------------------------------------------------

    def check_access(self, session: SessionId, operation: Operation, obj: ObjectId) -> bool:
        with self._lock.read():
            return self._queries.check_access(session, operation, obj)

    def assigned_users(self, role: RoleId) -> frozenset[UserId]:
        with self._lock.read():
            return self._queries.assigned_users(role)

    def assigned_roles(self, user: UserId) -> frozenset[RoleId]:
        with self._lock.read():
            return self._queries.assigned_roles(user)

    def role_permissions(self, role: RoleId) -> frozenset[Permission]:
        with self._lock.read():
            return self._queries.role_permissions(role)

    def user_permissions(self, user: UserId) -> frozenset[Permission]:
        with self._lock.read():
            return self._queries.user_permissions(user)

    def session_roles(self, session: SessionId) -> frozenset[RoleId]:
        with self._lock.read():
            return self._queries.session_roles(session)

    def session_permissions(self, session: SessionId) -> frozenset[Permission]:
        with self._lock.read():
            return self._queries.session_permissions(session)

    def role_operations_on_object(self, role: RoleId, obj: ObjectId) -> frozenset[Operation]:
        with self._lock.read():
            return self._queries.role_operations_on_object(role, obj)

    def user_operations_on_object(self, user: UserId, obj: ObjectId) -> frozenset[Operation]:
        with self._lock.read():
            return self._queries.user_operations_on_object(user, obj)

    def session_user(self, session: SessionId) -> UserId:
        with self._lock.read():
            return self._queries.session_user(session)

    def user_sessions(self, user: UserId) -> frozenset[SessionId]:
        with self._lock.read():
            return self._queries.user_sessions(user)

    def permission_roles(self, obj: ObjectId, operation: Operation) -> frozenset[RoleId]:
        with self._lock.read():
            return self._queries.permission_roles(obj, operation)

    def session(self, session: SessionId) -> SessionRecord:
        """Full record (owner, active roles, expiring flag) for one session."""
        with self._lock.read():
            ensure("session", self._validator.session(session))
            return self._store.session_record(session)

    # -- bulk access -----------------------------------------------------------------

    def users(self) -> frozenset[UserId]:
        with self._lock.read():
            return self._store.users()

    def roles(self) -> frozenset[RoleId]:
        with self._lock.read():
            return self._store.roles()

    def permissions(self) -> frozenset[Permission]:
        with self._lock.read():
            return self._store.permissions()

    def sessions(self) -> frozenset[SessionId]:
        with self._lock.read():
            return self._store.sessions()

    def snapshot(self) -> StoreSnapshot:
        with self._lock.read():
            return self._store.snapshot()

    def restore(self, snapshot: StoreSnapshot) -> None:
        """Replace all state. Inconsistent snapshots raise ValueError and change nothing."""
        with self._lock.write():
            self._store.restore(snapshot)
        logger.info(
            "restore users=%d roles=%d sessions=%d",
            len(snapshot.users), len(snapshot.roles), len(snapshot.sessions),
        )
