"""Store contract and value models."""

from rolegate.interfaces.models import (
    Permission,
    RoleGrant,
    SessionRecord,
    StoreSnapshot,
    UserAssignment,
)
from rolegate.interfaces.store import RelationStore

__all__ = [
    "Permission",
    "RelationStore",
    "RoleGrant",
    "SessionRecord",
    "StoreSnapshot",
    "UserAssignment",
]
