"""Value models shared by the store, the engine and its callers."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# Identifiers are opaque to the engine; only equality and hashing matter.
UserId = str
RoleId = str
SessionId = str
Operation = str
ObjectId = str


class Permission(BaseModel):
    """Approval to perform one operation on one object.

    The pair is the identity: two permissions are equal iff both the
    operation and the object match.
    """

    model_config = ConfigDict(frozen=True)

    operation: Operation
    object: ObjectId

    def sort_key(self) -> tuple[str, str]:
        return (self.operation, self.object)


class UserAssignment(BaseModel):
    """One row of the user-role assignment relation (UA)."""

    model_config = ConfigDict(frozen=True)

    user: UserId
    role: RoleId


class RoleGrant(BaseModel):
    """One row of the permission-role assignment relation (PA)."""

    model_config = ConfigDict(frozen=True)

    role: RoleId
    permission: Permission


class SessionRecord(BaseModel):
    """Point-in-time view of a session.

    ``expiring`` is set when a session-affecting change ran under the
    ``allow_expiry`` policy; such a session can no longer activate roles.
    """

    model_config = ConfigDict(frozen=True)

    session_id: SessionId
    user: UserId
    active_roles: frozenset[RoleId] = frozenset()
    expiring: bool = False


class StoreSnapshot(BaseModel):
    """Every entity set and relation of a store, for bulk export and import."""

    model_config = ConfigDict(frozen=True)

    users: list[UserId] = Field(default_factory=list)
    roles: list[RoleId] = Field(default_factory=list)
    permissions: list[Permission] = Field(default_factory=list)
    assignments: list[UserAssignment] = Field(default_factory=list)
    grants: list[RoleGrant] = Field(default_factory=list)
    sessions: list[SessionRecord] = Field(default_factory=list)

    def dangling_references(self) -> list[str]:
        """Describe every relation row that points at a missing entity."""
        users = set(self.users)
        roles = set(self.roles)
        permissions = set(self.permissions)
        problems: list[str] = []

        for a in self.assignments:
            if a.user not in users:
                problems.append(f"assignment references unknown user {a.user!r}")
            if a.role not in roles:
                problems.append(f"assignment references unknown role {a.role!r}")

        for g in self.grants:
            if g.role not in roles:
                problems.append(f"grant references unknown role {g.role!r}")
            if g.permission not in permissions:
                problems.append(
                    f"grant references unknown permission "
                    f"({g.permission.operation!r}, {g.permission.object!r})"
                )

        assigned = {(a.user, a.role) for a in self.assignments}
        seen: set[SessionId] = set()
        for s in self.sessions:
            if s.session_id in seen:
                problems.append(f"duplicate session {s.session_id!r}")
            seen.add(s.session_id)
            # Orphaned sessions (owner deleted under allow_expiry) carry no roles.
            if s.user not in users and not s.expiring:
                problems.append(f"session {s.session_id!r} owned by unknown user {s.user!r}")
            for role in s.active_roles:
                if (s.user, role) not in assigned:
                    problems.append(
                        f"session {s.session_id!r} has role {role!r} not assigned to {s.user!r}"
                    )
        return problems
