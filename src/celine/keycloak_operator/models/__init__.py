"""Custom resource models."""

from .keycloak import Keycloak, KeycloakSpec, KeycloakStatus, StatusPhase

__all__ = [
    "Keycloak",
    "KeycloakSpec",
    "KeycloakStatus",
    "StatusPhase",
]
