from .loader import DEFAULT_CONFIG_TEMPLATE, load_config
from .models import (
    AssignmentSeed,
    GrantSeed,
    PermissionSeed,
    RolegateConfig,
    SeedConfig,
)

__all__ = [
    "AssignmentSeed",
    "DEFAULT_CONFIG_TEMPLATE",
    "GrantSeed",
    "PermissionSeed",
    "RolegateConfig",
    "SeedConfig",
    "load_config",
]
