"""What happens to live sessions when deletions or deassignments hit them.

The standard leaves this to the implementation. The engine never picks a
default: callers pass a ``SessionPolicy`` or a hook that decides per
affected session.

Whatever the policy, a role that is deleted or deassigned always leaves
every active-role set it was part of. The policies differ only in what
happens to the session afterwards:

- ``force_terminate``: the session is deleted.
- ``strip_role``: the session continues without the role. Sessions of a
  deleted user have no owner left to continue for, so they are deleted.
- ``allow_expiry``: the session continues without the role but is marked
  expiring; it can no longer activate roles and ends through
  ``delete_session`` or ``expire_session``. Sessions of a deleted user are
  kept this way, with no roles, until expired.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel, ConfigDict

from rolegate.interfaces.models import RoleId, SessionId, UserId


class SessionPolicy(str, Enum):
    force_terminate = "force_terminate"
    allow_expiry = "allow_expiry"
    strip_role = "strip_role"


class ImpactCause(str, Enum):
    """The command that affected a session."""

    delete_user = "delete_user"
    delete_role = "delete_role"
    deassign_user = "deassign_user"


class SessionImpact(BaseModel):
    """A session about to lose its owner or one of its active roles."""

    model_config = ConfigDict(frozen=True)

    cause: ImpactCause
    session_id: SessionId
    user: UserId
    role: RoleId | None = None


PolicyHook = Callable[[SessionImpact], SessionPolicy]
"""Decides the policy for one affected session.

Hooks run while the engine holds its write lock, which is not reentrant.
A hook must not call back into the same ``AccessControl``; such a call
raises ``RuntimeError`` and the command that consulted the hook changes
nothing.
"""


def resolve_policy(policy: SessionPolicy | PolicyHook, impact: SessionImpact) -> SessionPolicy:
    """Decide the policy for one affected session."""
    if isinstance(policy, SessionPolicy):
        return policy
    decided = policy(impact)
    if not isinstance(decided, SessionPolicy):
        raise TypeError(
            f"Session policy hook returned {decided!r}, expected a SessionPolicy"
        )
    return decided
