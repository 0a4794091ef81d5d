"""Keycloak Admin API client.

Wraps the Keycloak Admin REST API for managing:
- Realms
- Users
- Client scopes
- Default client scope assignments

One client instance talks to one Keycloak endpoint and owns the bearer token
for it. Instances are never shared between endpoints.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

from celine.keycloak_operator.config import Settings
from celine.keycloak_operator.keycloak.models import (
    ClientScope,
    KeycloakAPIRealm,
    KeycloakAPIUser,
    TokenResponse,
)

logger = logging.getLogger(__name__)

SUCCESS_STATUS = (200, 201, 204)


class KeycloakError(Exception):
    """Base exception for Keycloak API errors.

    Carries the HTTP status and the resource context (kind, realm, name) of the
    failed call. ``retryable`` tells the caller whether backing off and trying
    again later can help.
    """

    retryable = False

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        kind: str | None = None,
        realm: str | None = None,
        name: str | None = None,
        response: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.kind = kind
        self.realm = realm
        self.name = name
        self.response = response

    @property
    def context(self) -> str:
        """Human-readable resource context, e.g. ``client-scope 'a' in realm 'r'``."""
        parts = []
        if self.kind:
            parts.append(self.kind)
        if self.name:
            parts.append(f"'{self.name}'")
        if self.realm:
            parts.append(f"in realm '{self.realm}'")
        return " ".join(parts)


class KeycloakAuthError(KeycloakError):
    """Authentication failed."""

    pass


class KeycloakNotFoundError(KeycloakError):
    """Resource not found."""

    pass


class KeycloakConflictError(KeycloakError):
    """Resource already exists."""

    pass


class KeycloakTransientError(KeycloakError):
    """Network failure or server-side error; safe to retry later."""

    retryable = True


class KeycloakConfigurationError(KeycloakError):
    """The desired state references a resource the realm does not define."""

    pass


@dataclass
class TokenInfo:
    """OAuth token information."""

    access_token: str
    expires_at: float
    refresh_token: str | None = None

    def is_valid(self, leeway: int = 10) -> bool:
        """Check if token is still valid."""
        return time.time() < (self.expires_at - leeway)


@dataclass
class _Context:
    kind: str
    realm: str | None = None
    name: str | None = None


class KeycloakAdminClient:
    """Async client for Keycloak Admin REST API."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._settings = settings
        self._transport = transport
        self._token: TokenInfo | None = None
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "KeycloakAdminClient":
        """Async context manager entry."""
        self._client = httpx.AsyncClient(
            timeout=self._settings.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def settings(self) -> Settings:
        """Get settings."""
        return self._settings

    @property
    def token(self) -> TokenInfo | None:
        """Current token, if any."""
        return self._token

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("KeycloakAdminClient must be used as an async context manager")
        return self._client

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    async def login(self) -> None:
        """Exchange admin credentials for an access token (master realm)."""
        if not self._settings.has_admin_credentials:
            raise KeycloakAuthError(
                "No credentials provided. Use --admin-user/--admin-password "
                "or CELINE_KEYCLOAK_ADMIN_USER/CELINE_KEYCLOAK_ADMIN_PASSWORD",
                kind="token",
            )

        data = {
            "grant_type": "password",
            "client_id": "admin-cli",
            "username": self._settings.admin_user,
            "password": self._settings.admin_password,
        }

        logger.debug("Authenticating with admin user: %s", self._settings.admin_user)

        try:
            response = await self._http().post(self._settings.token_url, data=data)
        except httpx.TransportError as e:
            raise KeycloakTransientError(
                f"Token request failed: {e}", kind="token", realm="master"
            ) from e

        if response.status_code != 200:
            raise KeycloakAuthError(
                f"Admin user authentication failed: {response.text}",
                status_code=response.status_code,
                kind="token",
                realm="master",
            )

        payload = TokenResponse.model_validate(response.json())
        self._token = TokenInfo(
            access_token=payload.access_token,
            expires_at=time.time() + payload.expires_in,
            refresh_token=payload.refresh_token,
        )
        logger.info("Authenticated as admin user: %s", self._settings.admin_user)

    async def _ensure_token(self) -> str:
        """Ensure we have a valid token."""
        if not self._token or not self._token.is_valid():
            await self.login()
        return self._token.access_token

    # -------------------------------------------------------------------------
    # HTTP helpers
    # -------------------------------------------------------------------------

    async def _send(
        self,
        method: str,
        path: str,
        ctx: _Context,
        json: Any = None,
    ) -> httpx.Response:
        """Send an authenticated request.

        A 401 drops the token and the request is retried once with a fresh
        login. A second 401 is fatal.
        """
        url = f"{self._settings.admin_url}{path}"

        for attempt in range(2):
            token = await self._ensure_token()
            headers = {
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            }
            try:
                response = await self._http().request(
                    method, url, headers=headers, json=json
                )
            except httpx.TransportError as e:
                raise KeycloakTransientError(
                    f"{method} {url} failed: {e}",
                    kind=ctx.kind,
                    realm=ctx.realm,
                    name=ctx.name,
                ) from e

            if response.status_code != 401:
                return response

            self._token = None
            if attempt == 0:
                logger.info("Token rejected on %s %s, logging in again", method, path)

        raise KeycloakAuthError(
            "Authentication expired or invalid",
            status_code=401,
            kind=ctx.kind,
            realm=ctx.realm,
            name=ctx.name,
        )

    def _handle_response(
        self,
        response: httpx.Response,
        ctx: _Context,
        allow_not_found: bool = False,
        allow_conflict: bool = False,
    ) -> httpx.Response | None:
        """Map a response to a typed error, or return it on success.

        Returns None for tolerated 404/409 responses.
        """
        status = response.status_code
        error_kwargs = dict(
            status_code=status,
            kind=ctx.kind,
            realm=ctx.realm,
            name=ctx.name,
            response=response.text,
        )

        if status in SUCCESS_STATUS:
            return response

        if status == 404:
            if allow_not_found:
                logger.debug("%s %s already absent", ctx.kind, ctx.name)
                return None
            raise KeycloakNotFoundError(
                f"Resource not found: {response.request.url}", **error_kwargs
            )

        if status == 409:
            if allow_conflict:
                logger.debug("%s %s already exists", ctx.kind, ctx.name)
                return None
            raise KeycloakConflictError(
                f"Resource already exists: {response.text}", **error_kwargs
            )

        if status == 403:
            raise KeycloakAuthError(
                f"Forbidden: {response.text}", **error_kwargs
            )

        if status == 429 or status >= 500:
            raise KeycloakTransientError(
                f"Server error {status}: {response.text}", **error_kwargs
            )

        raise KeycloakError(
            f"Unexpected response {status}: {response.text}", **error_kwargs
        )

    async def _get(self, path: str, ctx: _Context) -> Any:
        """Make GET request to admin API."""
        response = await self._send("GET", path, ctx)
        self._handle_response(response, ctx)
        if not response.content:
            return None
        return response.json()

    async def _post(
        self, path: str, ctx: _Context, json: Any, must_create: bool = False
    ) -> httpx.Response | None:
        """Make POST request to admin API.

        Returns None when the resource already existed.
        """
        response = await self._send("POST", path, ctx, json=json)
        return self._handle_response(response, ctx, allow_conflict=not must_create)

    async def _create(
        self, path: str, ctx: _Context, json: Any, must_create: bool = False
    ) -> str | None:
        """POST a new resource and return its id from the Location header.

        Returns None when the resource already existed. A created resource
        without a Location is an error only if the caller needs the id.
        """
        response = await self._post(path, ctx, json=json, must_create=must_create)
        if response is None:
            return None
        resource_id = _id_from_location(response)
        if resource_id is None and must_create:
            raise KeycloakError(
                f"Created {ctx.kind} but the response carried no Location header",
                status_code=response.status_code,
                kind=ctx.kind,
                realm=ctx.realm,
                name=ctx.name,
            )
        return resource_id

    async def _put(self, path: str, ctx: _Context, json: Any = None) -> None:
        """Make PUT request to admin API."""
        response = await self._send("PUT", path, ctx, json=json)
        self._handle_response(response, ctx)

    async def _delete(self, path: str, ctx: _Context) -> None:
        """Make DELETE request to admin API. A missing resource is not an error."""
        response = await self._send("DELETE", path, ctx)
        self._handle_response(response, ctx, allow_not_found=True)

    # -------------------------------------------------------------------------
    # Realms
    # -------------------------------------------------------------------------

    async def list_realms(self) -> list[KeycloakAPIRealm]:
        """List all realms."""
        data = await self._get("", _Context("realm"))
        return [KeycloakAPIRealm.model_validate(r) for r in data or []]

    async def get_realm(self, realm: str) -> KeycloakAPIRealm:
        """Get a realm by name."""
        data = await self._get(f"/{realm}", _Context("realm", realm, realm))
        return KeycloakAPIRealm.model_validate(data)

    async def create_realm(
        self, realm: KeycloakAPIRealm, must_create: bool = False
    ) -> str | None:
        """Create a realm.

        Returns the realm name, or None if it already existed.
        """
        logger.debug("Creating realm: %s", realm.name)
        created = await self._post(
            "",
            _Context("realm", realm.name, realm.name),
            json=realm.to_payload(),
            must_create=must_create,
        )
        if created is None:
            return None
        logger.info("Created realm: %s", realm.name)
        return realm.name

    async def delete_realm(self, realm: str) -> None:
        """Delete a realm."""
        logger.debug("Deleting realm: %s", realm)
        await self._delete(f"/{realm}", _Context("realm", realm, realm))
        logger.info("Deleted realm: %s", realm)

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def list_users(self, realm: str) -> list[KeycloakAPIUser]:
        """List users in a realm."""
        data = await self._get(f"/{realm}/users", _Context("user", realm))
        return [KeycloakAPIUser.model_validate(u) for u in data or []]

    async def get_user(self, realm: str, user_id: str) -> KeycloakAPIUser:
        """Get a user by ID."""
        data = await self._get(
            f"/{realm}/users/{user_id}", _Context("user", realm, user_id)
        )
        return KeycloakAPIUser.model_validate(data)

    async def create_user(
        self, realm: str, user: KeycloakAPIUser, must_create: bool = False
    ) -> str | None:
        """Create a user.

        Returns the new user ID, or None if the user already existed.
        """
        logger.debug("Creating user %s in realm %s", user.name, realm)
        user_id = await self._create(
            f"/{realm}/users",
            _Context("user", realm, user.name),
            json=user.to_payload(),
            must_create=must_create,
        )
        if user_id is not None:
            logger.info("Created user: %s (id=%s)", user.name, user_id)
        return user_id

    async def update_user(self, realm: str, user: KeycloakAPIUser) -> None:
        """Update an existing user."""
        if not user.id:
            raise ValueError(f"Cannot update user {user.name} without an id")
        logger.debug("Updating user %s in realm %s", user.name, realm)
        await self._put(
            f"/{realm}/users/{user.id}",
            _Context("user", realm, user.name),
            json=user.to_payload(),
        )

    async def delete_user(self, realm: str, user_id: str) -> None:
        """Delete a user."""
        logger.debug("Deleting user %s in realm %s", user_id, realm)
        await self._delete(f"/{realm}/users/{user_id}", _Context("user", realm, user_id))

    # -------------------------------------------------------------------------
    # Client Scopes
    # -------------------------------------------------------------------------

    async def list_client_scopes(self, realm: str) -> list[ClientScope]:
        """List all client scopes in the realm."""
        data = await self._get(f"/{realm}/client-scopes", _Context("client-scope", realm))
        return [ClientScope.model_validate(s) for s in data or []]

    async def get_client_scope(self, realm: str, scope_id: str) -> ClientScope:
        """Get a client scope by ID."""
        data = await self._get(
            f"/{realm}/client-scopes/{scope_id}",
            _Context("client-scope", realm, scope_id),
        )
        return ClientScope.model_validate(data)

    async def create_client_scope(
        self, realm: str, scope: ClientScope, must_create: bool = False
    ) -> str | None:
        """Create a client scope.

        Returns the scope ID, or None if a scope with that name already existed.
        """
        logger.debug("Creating client scope: %s", scope.name)
        scope_id = await self._create(
            f"/{realm}/client-scopes",
            _Context("client-scope", realm, scope.name),
            json=scope.to_payload(),
            must_create=must_create,
        )
        if scope_id is not None:
            logger.info("Created client scope: %s (id=%s)", scope.name, scope_id)
        return scope_id

    async def delete_client_scope(self, realm: str, scope_id: str) -> None:
        """Delete a client scope."""
        logger.debug("Deleting client scope: %s", scope_id)
        await self._delete(
            f"/{realm}/client-scopes/{scope_id}",
            _Context("client-scope", realm, scope_id),
        )

    # -------------------------------------------------------------------------
    # Client Scope Assignments
    # -------------------------------------------------------------------------

    async def list_default_client_scopes(
        self, realm: str, client_uuid: str
    ) -> list[ClientScope]:
        """Get default scopes assigned to a client."""
        data = await self._get(
            f"/{realm}/clients/{client_uuid}/default-client-scopes",
            _Context("default-client-scope", realm, client_uuid),
        )
        return [ClientScope.model_validate(s) for s in data or []]

    async def add_default_client_scope(
        self, realm: str, client_uuid: str, scope_id: str
    ) -> None:
        """Add a default scope to a client."""
        logger.debug("Adding default scope %s to client %s", scope_id, client_uuid)
        await self._put(
            f"/{realm}/clients/{client_uuid}/default-client-scopes/{scope_id}",
            _Context("default-client-scope", realm, scope_id),
            json={"realm": realm, "client": client_uuid, "clientScopeId": scope_id},
        )

    async def remove_default_client_scope(
        self, realm: str, client_uuid: str, scope_id: str
    ) -> None:
        """Remove a default scope from a client."""
        logger.debug("Removing default scope %s from client %s", scope_id, client_uuid)
        await self._delete(
            f"/{realm}/clients/{client_uuid}/default-client-scopes/{scope_id}",
            _Context("default-client-scope", realm, scope_id),
        )


def _id_from_location(response: httpx.Response) -> str | None:
    """Extract the created resource ID from the Location header."""
    location = response.headers.get("Location", "").rstrip("/")
    if not location:
        return None
    return location.rsplit("/", 1)[-1] or None
