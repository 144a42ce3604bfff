"""Rolegate - in-memory Core RBAC (ANSI INCITS 359-2004) engine."""

from rolegate.config import RolegateConfig, load_config
from rolegate.engine import AccessControl
from rolegate.errors import FailureReason, InvalidArgumentError
from rolegate.interfaces import (
    Permission,
    RelationStore,
    RoleGrant,
    SessionRecord,
    StoreSnapshot,
    UserAssignment,
)
from rolegate.log import configure_logging
from rolegate.policy import ImpactCause, SessionImpact, SessionPolicy
from rolegate.store import MemoryRelationStore
from rolegate.validation import Verdict

__version__ = "0.1.0"

__all__ = [
    "AccessControl",
    "FailureReason",
    "ImpactCause",
    "InvalidArgumentError",
    "MemoryRelationStore",
    "Permission",
    "RelationStore",
    "RoleGrant",
    "RolegateConfig",
    "SessionImpact",
    "SessionPolicy",
    "SessionRecord",
    "StoreSnapshot",
    "UserAssignment",
    "Verdict",
    "configure_logging",
    "load_config",
]
