"""Sync logic for client default scopes.

Computes a diff between the scope names declared for a client (desired state)
and the scopes currently assigned in Keycloak (actual state), then applies the
additions and removals to converge.

Desired and actual are always compared as sets of names. Scope IDs are only
looked up from the realm catalog when a call has to be made.

Every add/remove is attempted even if an earlier one failed. Failures are
collected and raised together at the end as a ScopeSyncError, so one bad scope
reference never blocks convergence of the others. Nothing is rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from celine.keycloak_operator.keycloak.client import (
    KeycloakAdminClient,
    KeycloakConfigurationError,
    KeycloakError,
)
from celine.keycloak_operator.keycloak.models import KeycloakAPIClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScopeDiff:
    """Scope names to add to and remove from a client."""

    to_add: frozenset[str] = frozenset()
    to_remove: frozenset[str] = frozenset()

    @property
    def has_changes(self) -> bool:
        """Check if there are any changes to apply."""
        return bool(self.to_add or self.to_remove)

    def summary(self) -> str:
        """Get a human-readable summary of the diff."""
        lines = []
        for name in sorted(self.to_add):
            lines.append(f"  + {name}")
        for name in sorted(self.to_remove):
            lines.append(f"  - {name}")
        if not lines:
            return "No changes needed - client scopes are in sync"
        return "\n".join(lines)


@dataclass
class SyncResult:
    """Result of synchronizing one client's default scopes."""

    client_id: str
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    errors: list[KeycloakError] = field(default_factory=list)
    dry_run: bool = False

    @property
    def success(self) -> bool:
        """Check if sync completed without errors."""
        return len(self.errors) == 0

    def summary(self) -> str:
        """Get a human-readable summary of the result."""
        prefix = "[DRY RUN] " if self.dry_run else ""
        lines = []

        if self.added:
            lines.append(f"{prefix}Added {len(self.added)} scopes to {self.client_id}: {', '.join(self.added)}")
        if self.removed:
            lines.append(f"{prefix}Removed {len(self.removed)} scopes from {self.client_id}: {', '.join(self.removed)}")

        if self.errors:
            lines.append(f"Errors: {len(self.errors)}")
            for err in self.errors:
                lines.append(f"  ! {err}")

        if not lines:
            lines.append(f"No changes applied to {self.client_id}")

        return "\n".join(lines)


class ScopeSyncError(KeycloakError):
    """One or more scope assignments could not be applied.

    Raised after every operation has been attempted. The message is the first
    failure; ``result`` holds the full outcome.
    """

    def __init__(self, result: SyncResult):
        first = result.errors[0]
        super().__init__(
            f"Failed to sync default scopes of client {result.client_id}: {first}",
            status_code=first.status_code,
            kind=first.kind,
            realm=first.realm,
            name=first.name,
        )
        self.result = result

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        """Retrying helps only if every failure was transient."""
        return all(e.retryable for e in self.result.errors)


def compute_scope_diff(desired: Iterable[str], actual: Iterable[str]) -> ScopeDiff:
    """Diff desired scope names against actual ones as sets.

    Duplicates collapse and ordering is irrelevant; a name present on both
    sides is never touched.
    """
    desired_set = frozenset(desired)
    actual_set = frozenset(actual)
    return ScopeDiff(
        to_add=desired_set - actual_set,
        to_remove=actual_set - desired_set,
    )


async def sync_default_client_scopes(
    client: KeycloakAdminClient,
    realm: str,
    api_client: KeycloakAPIClient,
    dry_run: bool = False,
) -> SyncResult:
    """Converge a client's default scopes to the names declared for it.

    Args:
        client: Keycloak admin client
        realm: Realm the client lives in
        api_client: Desired client, ``id`` is the client UUID
        dry_run: If True, compute and log but don't make changes

    Returns:
        SyncResult with details of what was done

    Raises:
        ScopeSyncError: if any single add/remove failed, after all were attempted
        KeycloakError: if the catalog or the current assignments can't be read
    """
    label = api_client.client_id or api_client.id
    result = SyncResult(client_id=label, dry_run=dry_run)

    # Scope name -> ID
    catalog = {
        scope.name: scope.id
        for scope in await client.list_client_scopes(realm)
        if scope.id
    }
    current = {
        scope.name for scope in await client.list_default_client_scopes(realm, api_client.id)
    }

    diff = compute_scope_diff(api_client.default_client_scopes, current)
    if not diff.has_changes:
        logger.debug("Default scopes of %s are in sync", label)
        return result

    logger.info("Default scopes of %s:\n%s", label, diff.summary())

    for name in sorted(diff.to_add):
        scope_id = catalog.get(name)
        if scope_id is None:
            result.errors.append(_missing_scope(realm, name))
            continue

        if dry_run:
            logger.info("[DRY RUN] Would add default scope %s to %s", name, label)
            result.added.append(name)
            continue

        try:
            await client.add_default_client_scope(realm, api_client.id, scope_id)
            result.added.append(name)
        except KeycloakError as e:
            logger.warning("Failed to add default scope %s to %s: %s", name, label, e)
            result.errors.append(e)

    for name in sorted(diff.to_remove):
        scope_id = catalog.get(name)
        if scope_id is None:
            result.errors.append(_missing_scope(realm, name))
            continue

        if dry_run:
            logger.info("[DRY RUN] Would remove default scope %s from %s", name, label)
            result.removed.append(name)
            continue

        try:
            await client.remove_default_client_scope(realm, api_client.id, scope_id)
            result.removed.append(name)
        except KeycloakError as e:
            logger.warning("Failed to remove default scope %s from %s: %s", name, label, e)
            result.errors.append(e)

    if not result.success:
        raise ScopeSyncError(result)

    return result


def _missing_scope(realm: str, name: str) -> KeycloakConfigurationError:
    logger.warning("Client scope %s is not defined in realm %s", name, realm)
    return KeycloakConfigurationError(
        f"Client scope '{name}' is not defined in realm '{realm}'",
        kind="client-scope",
        realm=realm,
        name=name,
    )
