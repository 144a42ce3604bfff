from typing import Literal

from pydantic import BaseModel, Field

from rolegate.policy import SessionPolicy


class PermissionSeed(BaseModel):
    operation: str
    object: str


class AssignmentSeed(BaseModel):
    user: str
    role: str


class GrantSeed(BaseModel):
    role: str
    operation: str
    object: str


class SeedConfig(BaseModel):
    """Entities and relations created when an engine is built from config."""

    users: list[str] = Field(default_factory=list)
    roles: list[str] = Field(default_factory=list)
    permissions: list[PermissionSeed] = Field(default_factory=list)
    assignments: list[AssignmentSeed] = Field(default_factory=list)
    grants: list[GrantSeed] = Field(default_factory=list)


class RolegateConfig(BaseModel):
    # No default policy: the integrator has to choose one.
    session_policy: SessionPolicy | None = None
    seed: SeedConfig = Field(default_factory=SeedConfig)
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    log_format: Literal["text", "json"] = "text"
