"""Keycloak Admin API client and client scope synchronization."""

from celine.keycloak_operator.keycloak.client import (
    KeycloakAdminClient,
    KeycloakAuthError,
    KeycloakConfigurationError,
    KeycloakConflictError,
    KeycloakError,
    KeycloakNotFoundError,
    KeycloakTransientError,
)
from celine.keycloak_operator.keycloak.models import (
    ClientScope,
    KeycloakAPIClient,
    KeycloakAPIRealm,
    KeycloakAPIUser,
    RemoteResource,
)
from celine.keycloak_operator.keycloak.sync import (
    ScopeDiff,
    ScopeSyncError,
    SyncResult,
    compute_scope_diff,
    sync_default_client_scopes,
)

__all__ = [
    "KeycloakAdminClient",
    "KeycloakError",
    "KeycloakAuthError",
    "KeycloakConfigurationError",
    "KeycloakConflictError",
    "KeycloakNotFoundError",
    "KeycloakTransientError",
    "RemoteResource",
    "ClientScope",
    "KeycloakAPIClient",
    "KeycloakAPIRealm",
    "KeycloakAPIUser",
    "ScopeDiff",
    "ScopeSyncError",
    "SyncResult",
    "compute_scope_diff",
    "sync_default_client_scopes",
]
