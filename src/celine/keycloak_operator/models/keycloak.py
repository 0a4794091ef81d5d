"""Keycloak custom resource models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StatusPhase(str, Enum):
    """Coarse-grained reconciliation phase of a Keycloak custom resource."""

    NONE = ""
    INITIALISING = "initialising"
    RECONCILING = "reconciling"
    FAILING = "failing"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class KeycloakRelatedImages(_CamelModel):
    """Image overrides."""

    keycloak: str | None = Field(
        default=None, description="Used instead of the operator's pinned Keycloak image"
    )
    image_pull_secrets: list[str] = Field(default_factory=list, alias="imagePullSecrets")


class KeycloakExternalAccess(_CamelModel):
    """External Ingress/Route settings."""

    enabled: bool = False
    hostname: str | None = None
    tls_enabled: bool = Field(default=False, alias="tlsEnabled")


class KeycloakScript(_CamelModel):
    """Startup script or CLI settings shipped in a ConfigMap."""

    enabled: bool = False
    content: str = ""


class KeycloakSpec(_CamelModel):
    """Desired state of Keycloak."""

    instances: int = Field(default=1, ge=0, description="Number of Keycloak instances")
    extensions: list[str] = Field(default_factory=list, description="Extension JAR URLs")
    extra_env: dict[str, str] = Field(default_factory=dict, alias="extraEnv")
    external_access: KeycloakExternalAccess = Field(
        default_factory=KeycloakExternalAccess, alias="externalAccess"
    )
    startup_script: KeycloakScript = Field(default_factory=KeycloakScript, alias="startupScript")
    keycloak_cli: KeycloakScript = Field(default_factory=KeycloakScript, alias="keycloakCli")
    serving_cert_disabled: bool = Field(default=False, alias="servingCertDisabled")
    profile: str = ""
    image_overrides: KeycloakRelatedImages = Field(
        default_factory=KeycloakRelatedImages, alias="imageOverrides"
    )


class KeycloakStatus(_CamelModel):
    """Observed state of Keycloak, written by the operator."""

    phase: StatusPhase = StatusPhase.NONE
    message: str = Field(default="", description="Details about the current phase or error")
    ready: bool = Field(default=False, description="All resources ready and all work done")
    secondary_resources: dict[str, list[str]] = Field(
        default_factory=dict,
        alias="secondaryResources",
        description='Secondary resources by kind, e.g. {"StatefulSet": ["keycloak"]}',
    )
    version: str = ""
    internal_url: str = Field(default="", alias="internalURL")
    credential_secret: str = Field(default="", alias="credentialSecret")


class Keycloak(_CamelModel):
    """The Keycloak custom resource."""

    api_version: str = Field(default="keycloak.org/v1alpha1", alias="apiVersion")
    kind: str = "Keycloak"
    metadata: dict[str, Any] = Field(default_factory=dict)
    spec: KeycloakSpec = Field(default_factory=KeycloakSpec)
    status: KeycloakStatus = Field(default_factory=KeycloakStatus)

    @property
    def name(self) -> str:
        return self.metadata.get("name", "")

    @property
    def namespace(self) -> str:
        return self.metadata.get("namespace", "")

    @property
    def image_override(self) -> str | None:
        return self.spec.image_overrides.keycloak or None
