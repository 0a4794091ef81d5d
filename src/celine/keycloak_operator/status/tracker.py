"""Status and phase tracking for a Keycloak custom resource.

Phases:

    ""            -> initialising   first observation, no status recorded yet
    initialising  -> reconciling    first pass completed without error
    reconciling   -> failing        a pass returned an error
    failing       -> reconciling    the next pass completed without error

The published status only changes when a pass completes. A pass collects the
secondary resources it produced and any errors; ``complete`` turns that into the
new status in one step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from celine.keycloak_operator.events import ReconcileEventLogger
from celine.keycloak_operator.models.keycloak import KeycloakStatus, StatusPhase

logger = logging.getLogger(__name__)


@dataclass
class ReconcilePass:
    """Outcome of one reconciliation pass, collected while it runs."""

    resources: dict[str, set[str]] = field(default_factory=dict)
    unready: list[str] = field(default_factory=list)
    errors: list[Exception] = field(default_factory=list)

    def resource(self, kind: str, name: str, ready: bool = True) -> None:
        """Record a secondary resource produced by this pass."""
        self.resources.setdefault(kind, set()).add(name)
        if not ready:
            self.unready.append(f"{kind}/{name}")

    def fail(self, error: Exception) -> None:
        """Record an error; the pass still runs to the end."""
        self.errors.append(error)

    @property
    def failed(self) -> bool:
        return bool(self.errors)

    @property
    def ready(self) -> bool:
        return not self.errors and not self.unready

    def secondary_resources(self) -> dict[str, list[str]]:
        return {kind: sorted(names) for kind, names in sorted(self.resources.items())}


class StatusTracker:
    """Owns the phase, ready flag and secondary resource index of one resource."""

    def __init__(
        self,
        status: KeycloakStatus | None = None,
        resource: str = "",
        events: ReconcileEventLogger | None = None,
    ):
        self._status = status.model_copy(deep=True) if status else KeycloakStatus()
        self._resource = resource
        self._events = events or ReconcileEventLogger()

    @property
    def status(self) -> KeycloakStatus:
        return self._status

    @property
    def phase(self) -> StatusPhase:
        return self._status.phase

    def initialise(self) -> bool:
        """Move an uninitialized resource to ``initialising``.

        Returns True if the status changed and should be written back.
        """
        if self._status.phase is not StatusPhase.NONE:
            return False
        self._transition(StatusPhase.INITIALISING, ready=False, message="")
        return True

    def begin_pass(self) -> ReconcilePass:
        """Start collecting the outcome of a reconciliation pass."""
        return ReconcilePass()

    def complete(self, outcome: ReconcilePass) -> KeycloakStatus:
        """Fold a finished pass into the status and return it."""
        self._status.secondary_resources = outcome.secondary_resources()

        if outcome.failed:
            first = outcome.errors[0]
            message = str(first) or type(first).__name__
            self._transition(StatusPhase.FAILING, ready=False, message=message)
        else:
            self._transition(StatusPhase.RECONCILING, ready=outcome.ready, message="")
            if outcome.unready:
                logger.debug("Waiting for %s", ", ".join(outcome.unready))

        return self._status

    def _transition(self, phase: StatusPhase, ready: bool, message: str) -> None:
        previous = self._status.phase
        changed = previous is not phase or self._status.ready != ready
        self._status.phase = phase
        self._status.ready = ready
        self._status.message = message

        if changed or message:
            self._events.phase_changed(
                resource=self._resource,
                previous=previous.value,
                phase=phase.value,
                ready=ready,
                message=message,
            )
