"""YAML input for the ``scopes sync`` command.

Example YAML structure:
    realm: celine

    clients:
      - id: 4f1c2a9e-0d5b-4c55-9d7e-2b1e3c4d5f60   # client UUID
        clientId: svc-forecast
        defaultClientScopes:
          - forecast.admin
          - dataset.query
          - ${EXTRA_SCOPE:-profile}                # env vars are supported
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from celine.keycloak_operator.keycloak.models import KeycloakAPIClient

# Pattern for ${VAR} and ${VAR:-default} interpolation
_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(:-([^}]*))?\}")


def _resolve_env_str(s: str) -> str:
    """Resolve environment variable placeholders in a string."""
    def repl(m: re.Match[str]) -> str:
        val = os.getenv(m.group(1))
        if val is None or val == "":
            return m.group(3) if m.group(3) is not None else ""
        return val

    return _ENV_PATTERN.sub(repl, s)


def _resolve_env(value: Any) -> Any:
    """Recursively resolve environment variables in a data structure."""
    if isinstance(value, str):
        return _resolve_env_str(value)
    if isinstance(value, list):
        return [_resolve_env(v) for v in value]
    if isinstance(value, dict):
        return {k: _resolve_env(v) for k, v in value.items()}
    return value


class ScopeSyncConfig(BaseModel):
    """Clients whose default scopes should be synced."""

    realm: str = Field(default="master", description="Target realm")
    clients: list[KeycloakAPIClient] = Field(default_factory=list)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ScopeSyncConfig":
        """Load configuration from a YAML file with env var interpolation."""
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        raw = yaml.safe_load(p.read_text())
        if not isinstance(raw, dict):
            raise ValueError(f"Config file must be a YAML mapping: {path}")

        return cls.model_validate(_resolve_env(raw))
