"""One reconciliation pass for a Keycloak custom resource.

Reading and writing platform objects is left to the caller: the pass receives
the desired objects (built from the custom resource) and the observed ones
(read from the platform), and returns the objects to persist together with the
new status. Client scope synchronization is the only remote I/O done here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from celine.keycloak_operator.events import ReconcileEventLogger
from celine.keycloak_operator.keycloak.client import KeycloakAdminClient, KeycloakError
from celine.keycloak_operator.keycloak.models import KeycloakAPIClient
from celine.keycloak_operator.keycloak.sync import (
    ScopeSyncError,
    SyncResult,
    sync_default_client_scopes,
)
from celine.keycloak_operator.models.keycloak import Keycloak, KeycloakStatus
from celine.keycloak_operator.reconcile.image import ImageRef
from celine.keycloak_operator.reconcile.kinds import (
    KEYCLOAK_CONTAINER,
    find_container,
    reconcile,
    workload_ready,
)
from celine.keycloak_operator.status.tracker import StatusTracker

logger = logging.getLogger(__name__)


def object_key(obj: Mapping[str, Any]) -> tuple[str, str]:
    """(kind, name) identity of a platform object."""
    return obj.get("kind", ""), obj.get("metadata", {}).get("name", "")


@dataclass
class PassOutcome:
    """What a pass produced: objects to persist and the status to write."""

    objects: list[dict[str, Any]] = field(default_factory=list)
    status: KeycloakStatus = field(default_factory=KeycloakStatus)
    sync_results: list[SyncResult] = field(default_factory=list)
    initialised: bool = False


class KeycloakReconciler:
    """Drives reconciliation passes for Keycloak custom resources."""

    def __init__(self, events: ReconcileEventLogger | None = None):
        self._events = events or ReconcileEventLogger()

    async def run_pass(
        self,
        cr: Keycloak,
        desired: Sequence[Mapping[str, Any]],
        observed: Sequence[Mapping[str, Any]] = (),
        keycloak: KeycloakAdminClient | None = None,
        clients: Sequence[KeycloakAPIClient] = (),
        realm: str | None = None,
        dry_run: bool = False,
    ) -> PassOutcome:
        """Run one pass.

        An uninitialized resource is only moved to ``initialising``; the caller
        writes the status and requeues. Cancellation propagates without undoing
        calls already made.
        """
        tracker = StatusTracker(cr.status, resource=f"{cr.namespace}/{cr.name}", events=self._events)
        if tracker.initialise():
            return PassOutcome(status=tracker.status, initialised=True)

        outcome = PassOutcome()
        current = tracker.begin_pass()
        observed_by_key = {object_key(o): o for o in observed}
        version = tracker.status.version

        for obj in desired:
            kind, name = object_key(obj)
            reconciled = reconcile(observed_by_key.get((kind, name)), obj, cr.image_override)
            outcome.objects.append(reconciled)
            current.resource(kind, name, ready=workload_ready(reconciled))

            container = find_container(reconciled, KEYCLOAK_CONTAINER)
            if container and container.get("image"):
                version = ImageRef.parse(container["image"]).version

        if clients:
            if keycloak is None or not realm:
                raise ValueError("A Keycloak client and realm are required to sync client scopes")

            for api_client in clients:
                try:
                    result = await sync_default_client_scopes(
                        keycloak, realm, api_client, dry_run=dry_run
                    )
                except ScopeSyncError as e:
                    result = e.result
                    current.fail(e)
                except KeycloakError as e:
                    logger.warning("Scope sync of %s failed: %s", api_client.client_id, e)
                    current.fail(e)
                    result = SyncResult(
                        client_id=api_client.client_id or api_client.id,
                        errors=[e],
                        dry_run=dry_run,
                    )

                outcome.sync_results.append(result)
                self._events.scopes_synced(
                    client_id=result.client_id,
                    realm=realm,
                    added=result.added,
                    removed=result.removed,
                    errors=[str(err) for err in result.errors],
                )

        outcome.status = tracker.complete(current)
        outcome.status.version = version
        return outcome
