"""Administrative commands and session functions that mutate the store.

Every command validates first and mutates second. Nothing that can fail
(precondition checks, policy hooks) runs after the first mutation, so a
rejected command leaves the store exactly as it was.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from rolegate.interfaces.models import (
    ObjectId,
    Operation,
    Permission,
    RoleId,
    SessionId,
    SessionRecord,
    UserId,
)
from rolegate.interfaces.store import RelationStore
from rolegate.policy import (
    ImpactCause,
    PolicyHook,
    SessionImpact,
    SessionPolicy,
    resolve_policy,
)
from rolegate.validation import Validator, ensure, role_list

logger = logging.getLogger(__name__)


class CommandLayer:
    """Core RBAC administrative commands and session functions."""

    def __init__(
        self,
        store: RelationStore,
        validator: Validator,
        policy: SessionPolicy | PolicyHook,
    ) -> None:
        self._store = store
        self._validator = validator
        self._policy = policy

    # -- users and roles -------------------------------------------------------

    def add_user(self, user: UserId) -> None:
        ensure("add_user", self._validator.add_user(user))
        self._store.insert_user(user)
        logger.info("add_user user=%s", user)

    def delete_user(self, user: UserId) -> None:
        ensure("delete_user", self._validator.delete_user(user))
        decisions = self._decide(
            SessionImpact(cause=ImpactCause.delete_user, session_id=s, user=user)
            for s in self._store.sessions_of_user(user)
        )

        for impact, policy in decisions:
            if policy is SessionPolicy.allow_expiry:
                for role in self._store.active_roles(impact.session_id):
                    self._store.remove_active_role(impact.session_id, role)
                self._store.mark_expiring(impact.session_id)
            else:
                self._store.remove_session(impact.session_id)
        for role in self._store.roles_of_user(user):
            self._store.remove_assignment(user, role)
        self._store.remove_user(user)
        logger.info("delete_user user=%s sessions_affected=%d", user, len(decisions))

    def add_role(self, role: RoleId) -> None:
        ensure("add_role", self._validator.add_role(role))
        self._store.insert_role(role)
        logger.info("add_role role=%s", role)

    def delete_role(self, role: RoleId) -> None:
        ensure("delete_role", self._validator.delete_role(role))
        decisions = self._decide(
            SessionImpact(
                cause=ImpactCause.delete_role,
                session_id=s,
                user=self._store.session_owner(s),
                role=role,
            )
            for s in self._store.sessions_with_active_role(role)
        )

        self._apply_role_loss(decisions, role)
        for user in self._store.users_of_role(role):
            self._store.remove_assignment(user, role)
        for permission in self._store.permissions_of_role(role):
            self._store.remove_grant(role, permission)
        self._store.remove_role(role)
        logger.info("delete_role role=%s sessions_affected=%d", role, len(decisions))

    # -- permissions -----------------------------------------------------------

    def add_permission(self, obj: ObjectId, operation: Operation) -> Permission:
        ensure("add_permission", self._validator.add_permission(obj, operation))
        permission = Permission(operation=operation, object=obj)
        self._store.insert_permission(permission)
        logger.info("add_permission operation=%s object=%s", operation, obj)
        return permission

    def delete_permission(self, obj: ObjectId, operation: Operation) -> None:
        ensure("delete_permission", self._validator.delete_permission(obj, operation))
        permission = Permission(operation=operation, object=obj)
        for role in self._store.roles_of_permission(permission):
            self._store.remove_grant(role, permission)
        self._store.remove_permission(permission)
        logger.info("delete_permission operation=%s object=%s", operation, obj)

    # -- assignment relations --------------------------------------------------

    def assign_user(self, user: UserId, role: RoleId) -> None:
        ensure("assign_user", self._validator.assign_user(user, role))
        self._store.insert_assignment(user, role)
        logger.info("assign_user user=%s role=%s", user, role)

    def deassign_user(self, user: UserId, role: RoleId) -> None:
        ensure("deassign_user", self._validator.deassign_user(user, role))
        decisions = self._decide(
            SessionImpact(cause=ImpactCause.deassign_user, session_id=s, user=user, role=role)
            for s in self._store.sessions_of_user(user)
            if role in self._store.active_roles(s)
        )

        self._apply_role_loss(decisions, role)
        self._store.remove_assignment(user, role)
        logger.info(
            "deassign_user user=%s role=%s sessions_affected=%d", user, role, len(decisions)
        )

    def grant_permission(self, obj: ObjectId, operation: Operation, role: RoleId) -> None:
        ensure("grant_permission", self._validator.grant_permission(obj, operation, role))
        permission = Permission(operation=operation, object=obj)
        if self._store.has_grant(role, permission):
            return
        self._store.insert_grant(role, permission)
        logger.info("grant_permission operation=%s object=%s role=%s", operation, obj, role)

    def revoke_permission(self, obj: ObjectId, operation: Operation, role: RoleId) -> None:
        ensure("revoke_permission", self._validator.revoke_permission(obj, operation, role))
        permission = Permission(operation=operation, object=obj)
        self._store.remove_grant(role, permission)
        logger.info("revoke_permission operation=%s object=%s role=%s", operation, obj, role)

    # -- sessions --------------------------------------------------------------

    def create_session(
        self, user: UserId, session: SessionId, roles: Iterable[RoleId] = ()
    ) -> SessionRecord:
        roles = role_list(roles)
        ensure("create_session", self._validator.create_session(user, session, roles))
        roles = frozenset(roles)
        self._store.insert_session(session, user, roles)
        logger.info("create_session user=%s session=%s roles=%s", user, session, sorted(roles))
        return self._store.session_record(session)

    def delete_session(self, user: UserId, session: SessionId) -> None:
        ensure("delete_session", self._validator.delete_session(user, session))
        self._store.remove_session(session)
        logger.info("delete_session user=%s session=%s", user, session)

    def expire_session(self, session: SessionId) -> None:
        ensure("expire_session", self._validator.expire_session(session))
        self._store.remove_session(session)
        logger.info("expire_session session=%s", session)

    def add_active_role(self, user: UserId, session: SessionId, role: RoleId) -> None:
        ensure("add_active_role", self._validator.add_active_role(user, session, role))
        if role in self._store.active_roles(session):
            return
        self._store.insert_active_role(session, role)
        logger.info("add_active_role user=%s session=%s role=%s", user, session, role)

    def drop_active_role(self, user: UserId, session: SessionId, role: RoleId) -> None:
        ensure("drop_active_role", self._validator.drop_active_role(user, session, role))
        self._store.remove_active_role(session, role)
        logger.info("drop_active_role user=%s session=%s role=%s", user, session, role)

    # -- helpers ---------------------------------------------------------------

    def _decide(
        self, impacts: Iterable[SessionImpact]
    ) -> list[tuple[SessionImpact, SessionPolicy]]:
        """Resolve the policy for every affected session before anything changes."""
        return [(impact, resolve_policy(self._policy, impact)) for impact in impacts]

    def _apply_role_loss(
        self, decisions: list[tuple[SessionImpact, SessionPolicy]], role: RoleId
    ) -> None:
        for impact, policy in decisions:
            session = impact.session_id
            if policy is SessionPolicy.force_terminate:
                self._store.remove_session(session)
                logger.info("session terminated session=%s cause=%s", session, impact.cause.value)
                continue
            self._store.remove_active_role(session, role)
            if policy is SessionPolicy.allow_expiry:
                self._store.mark_expiring(session)
                logger.info("session expiring session=%s cause=%s", session, impact.cause.value)
