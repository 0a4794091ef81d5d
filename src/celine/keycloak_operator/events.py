"""Structured event logging for reconciliation outcomes."""

from __future__ import annotations

import logging
from typing import Any

import structlog

from celine.keycloak_operator.logs import resolve_level


def configure_event_logging(
    *,
    log_level: str | int,
    json_format: bool,
    service_name: str | None = None,
) -> None:
    # Resolve log level via stdlib logging (NOT structlog)
    level = resolve_level(log_level)

    logging.basicConfig(level=level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if service_name:
        structlog.contextvars.bind_contextvars(service=service_name)


class ReconcileEventLogger:
    """Emits one structured event per phase transition or scope sync."""

    def __init__(self, logger: Any = None):
        self._logger = logger or structlog.get_logger("reconcile")

    def phase_changed(
        self,
        resource: str,
        previous: str,
        phase: str,
        ready: bool,
        message: str = "",
    ) -> None:
        log_data: dict[str, Any] = {
            "event": "phase_changed",
            "resource": resource,
            "previous": previous or "uninitialized",
            "phase": phase,
            "ready": ready,
        }
        if message:
            log_data["message"] = message

        if phase == "failing":
            self._logger.warning(**log_data)
        else:
            self._logger.info(**log_data)

    def scopes_synced(
        self,
        client_id: str,
        realm: str,
        added: list[str],
        removed: list[str],
        errors: list[str],
    ) -> None:
        log_data: dict[str, Any] = {
            "event": "scopes_synced",
            "client_id": client_id,
            "realm": realm,
            "added": added,
            "removed": removed,
        }

        if errors:
            log_data["errors"] = errors
            self._logger.error(**log_data)
        else:
            self._logger.info(**log_data)
