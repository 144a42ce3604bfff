"""YAML config loading with env var expansion."""

import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import RolegateConfig

# Only these variables may be referenced as ${VAR} in a config file.
_ALLOWED_ENV_VARS = frozenset({
    "ROLEGATE_SESSION_POLICY",
    "ROLEGATE_LOG_LEVEL",
    "ROLEGATE_LOG_FORMAT",
})

_ENV_REF_RE = re.compile(r"\$\{(\w+)\}")


def load_config(path: str | None = None) -> RolegateConfig:
    """Return the first non-empty config among ``path``, ``./rolegate.yaml`` and
    ``~/.rolegate/config.yaml``, or the defaults when none exists.
    """
    config_paths = [
        Path(path) if path else None,
        Path("./rolegate.yaml"),
        Path.home() / ".rolegate" / "config.yaml",
    ]

    for candidate in config_paths:
        if candidate and candidate.exists():
            try:
                with open(candidate) as f:
                    raw = yaml.safe_load(f)
                if raw is None:
                    continue
                raw = _expand_env_vars(raw)
                return RolegateConfig(**raw)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {candidate}: {e}") from e
            except ValidationError as e:
                raise ValueError(f"Invalid config in {candidate}: {e}") from e

    return RolegateConfig()


def _expand_var(match: re.Match) -> str:
    name = match.group(1)
    if name not in _ALLOWED_ENV_VARS:
        raise ValueError(f"Environment variable ${{{name}}} is not allowed in config")
    value = os.environ.get(name)
    if value is None:
        raise ValueError(f"Environment variable ${{{name}}} is not set")
    return value


def _expand_env_vars(obj: object) -> object:
    """Recursively expand ${VAR} references in strings."""
    if isinstance(obj, str):
        return _ENV_REF_RE.sub(_expand_var, obj)
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


# Default YAML template for a new rolegate.yaml
DEFAULT_CONFIG_TEMPLATE = """\
# rolegate.yaml

# What happens to sessions hit by delete_user, delete_role or deassign_user.
# Required; there is no default.
session_policy: "strip_role"   # force_terminate | allow_expiry | strip_role

# Entities and relations created at startup
seed:
  users: []
  roles: []
  # permissions:
  #   - {operation: "read", object: "file1"}
  # assignments:
  #   - {user: "alice", role: "editor"}
  # grants:
  #   - {role: "editor", operation: "read", object: "file1"}

# Logging
log_level: "info"              # debug | info | warn | error
log_format: "text"             # text | json
"""
