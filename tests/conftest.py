"""Shared test fixtures for rolegate."""

import pytest

from rolegate.config.models import RolegateConfig
from rolegate.engine import AccessControl
from rolegate.policy import SessionPolicy
from rolegate.store.memory import MemoryRelationStore


@pytest.fixture
def store():
    return MemoryRelationStore()


@pytest.fixture
def engine():
    return AccessControl(policy=SessionPolicy.strip_role)


def build_editor_scenario(ac: AccessControl) -> AccessControl:
    """alice is an editor (read+write on file1); bob is a viewer (read on file1, file2)."""
    for user in ("alice", "bob"):
        ac.add_user(user)
    for role in ("editor", "viewer"):
        ac.add_role(role)
    ac.add_permission("file1", "read")
    ac.add_permission("file1", "write")
    ac.add_permission("file2", "read")

    ac.grant_permission("file1", "read", "editor")
    ac.grant_permission("file1", "write", "editor")
    ac.grant_permission("file1", "read", "viewer")
    ac.grant_permission("file2", "read", "viewer")

    ac.assign_user("alice", "editor")
    ac.assign_user("alice", "viewer")
    ac.assign_user("bob", "viewer")
    return ac


@pytest.fixture
def populated(engine):
    return build_editor_scenario(engine)


@pytest.fixture
def make_populated():
    """Factory: the editor scenario under a chosen policy or policy hook."""

    def _make(policy=SessionPolicy.strip_role):
        return build_editor_scenario(AccessControl(policy=policy))

    return _make


@pytest.fixture
def sample_config():
    return RolegateConfig()
