"""Pydantic models for Keycloak Admin API representations.

Only the fields the operator reads or writes are declared; anything else the
server returns is kept as an extra field so that round-tripping a representation
(get -> update) never drops server-side data.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RemoteResource(BaseModel):
    """A named resource on the identity server.

    Resources are reconciled by ``name``; ``id`` is assigned by the server and is
    unknown until the resource has been created.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str | None = Field(default=None, description="Server-assigned identifier")
    name: str = Field(..., description="Resource name, unique within its realm")
    attributes: dict[str, Any] = Field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        """Serialize for a request body."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ClientScope(RemoteResource):
    """A client scope (reusable bundle of protocol claims)."""

    description: str | None = None
    protocol: str | None = Field(default="openid-connect")


class KeycloakAPIRealm(RemoteResource):
    """A realm representation.

    The realm name doubles as its identifier on the admin API.
    """

    name: str = Field(..., alias="realm")
    enabled: bool = False
    display_name: str | None = Field(default=None, alias="displayName")


class KeycloakAPIUser(RemoteResource):
    """A user representation."""

    name: str = Field(..., alias="username")
    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    email: str | None = None
    email_verified: bool = Field(default=False, alias="emailVerified")
    enabled: bool = False


class KeycloakAPIClient(BaseModel):
    """The client whose default client scopes are kept in sync.

    ``id`` is the server-side UUID used in admin API paths; ``client_id`` is the
    OAuth clientId. The two must not be confused.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(..., description="Client UUID")
    client_id: str = Field(default="", alias="clientId")
    default_client_scopes: list[str] = Field(
        default_factory=list,
        alias="defaultClientScopes",
        description="Scope names always included in tokens",
    )


class TokenResponse(BaseModel):
    """OpenID Connect token endpoint response."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    expires_in: float = 60.0
    refresh_token: str | None = None
    token_type: str = "bearer"
