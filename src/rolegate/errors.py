"""Error taxonomy for precondition failures."""

from __future__ import annotations

from enum import Enum


class FailureReason(str, Enum):
    """Why a command or query precondition did not hold."""

    invalid_identifier = "invalid_identifier"
    user_not_found = "user_not_found"
    user_already_exists = "user_already_exists"
    role_not_found = "role_not_found"
    role_already_exists = "role_already_exists"
    permission_not_found = "permission_not_found"
    permission_already_exists = "permission_already_exists"
    operation_not_found = "operation_not_found"
    object_not_found = "object_not_found"
    session_not_found = "session_not_found"
    session_already_exists = "session_already_exists"
    assignment_not_found = "assignment_not_found"
    assignment_already_exists = "assignment_already_exists"
    grant_not_found = "grant_not_found"
    not_session_owner = "not_session_owner"
    role_not_assigned = "role_not_assigned"
    role_not_active = "role_not_active"
    active_roles_not_subset = "active_roles_not_subset"
    session_expiring = "session_expiring"


class InvalidArgumentError(ValueError):
    """A command or query was called with a precondition that does not hold.

    This is the only failure callers need to handle. ``reason`` says which
    check failed, for logs and diagnostics; the operation had no effect.
    """

    def __init__(self, operation: str, reason: FailureReason, detail: str = "") -> None:
        self.operation = operation
        self.reason = reason
        self.detail = detail
        msg = f"{operation}: {reason.value}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)
