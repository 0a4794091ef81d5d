"""Operator CLI commands.

Commands:
    celine-keycloak-operator scopes sync <clients.yaml>
    celine-keycloak-operator image select --observed <image>
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer

from celine.keycloak_operator.config import Settings, get_settings
from celine.keycloak_operator.events import ReconcileEventLogger, configure_event_logging
from celine.keycloak_operator.keycloak.client import (
    KeycloakAdminClient,
    KeycloakAuthError,
    KeycloakError,
)
from celine.keycloak_operator.keycloak.sync import (
    ScopeSyncError,
    SyncResult,
    sync_default_client_scopes,
)
from celine.keycloak_operator.cli.models import ScopeSyncConfig
from celine.keycloak_operator.logs import configure_logging
from celine.keycloak_operator.reconcile.image import select_image

logger = logging.getLogger(__name__)

scopes_app = typer.Typer(
    name="scopes",
    help="Client scope synchronization",
    add_completion=False,
)

image_app = typer.Typer(
    name="image",
    help="Keycloak image selection",
    add_completion=False,
)


@scopes_app.command("sync")
def sync(
    config_path: Path = typer.Argument(
        help="Path to the clients YAML file",
        exists=True,
        dir_okay=False,
        readable=True,
        default=Path("./clients.yaml"),
    ),
    base_url: Annotated[
        Optional[str],
        typer.Option("--base-url", "-u", help="Keycloak base URL"),
    ] = None,
    realm: Annotated[
        Optional[str],
        typer.Option("--realm", "-r", help="Target realm (overrides the file)"),
    ] = None,
    admin_user: Annotated[
        Optional[str],
        typer.Option("--admin-user", help="Keycloak admin username"),
    ] = None,
    admin_password: Annotated[
        Optional[str],
        typer.Option("--admin-password", help="Keycloak admin password"),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run", "-n", help="Show what would be done without making changes"
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output"),
    ] = False,
) -> None:
    """Sync the default client scopes of each listed client.

    Scopes listed for a client but not assigned are added; assigned scopes not
    listed are removed. Running it twice in a row makes no calls the second time.

    Example:
        celine-keycloak-operator scopes sync clients.yaml --dry-run
    """
    configure_logging(verbose)

    settings = get_settings().with_overrides(
        base_url=base_url,
        admin_user=admin_user,
        admin_password=admin_password,
    )
    configure_event_logging(
        log_level="DEBUG" if verbose else settings.log_level,
        json_format=settings.log_json,
        service_name=settings.service_name,
    )

    try:
        config = ScopeSyncConfig.from_yaml(config_path)
    except Exception as e:
        typer.secho(f"Error loading config: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    target_realm = realm or config.realm
    typer.echo(f"Syncing to Keycloak: {settings.base_url} realm={target_realm}")

    try:
        results = asyncio.run(
            _async_sync(settings, config, target_realm, dry_run=dry_run)
        )
    except KeycloakAuthError as e:
        typer.secho(f"Authentication failed: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except KeycloakError as e:
        typer.secho(f"Keycloak error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    for result in results:
        typer.echo(result.summary())

    if not all(r.success for r in results):
        raise typer.Exit(1)


async def _async_sync(
    settings: Settings,
    config: ScopeSyncConfig,
    realm: str,
    dry_run: bool,
) -> list[SyncResult]:
    """Run the async sync operation for every client."""
    results: list[SyncResult] = []
    events = ReconcileEventLogger()

    async with KeycloakAdminClient(settings) as client:
        for api_client in config.clients:
            try:
                result = await sync_default_client_scopes(
                    client, realm, api_client, dry_run=dry_run
                )
            except ScopeSyncError as e:
                result = e.result
            results.append(result)
            events.scopes_synced(
                client_id=result.client_id,
                realm=realm,
                added=result.added,
                removed=result.removed,
                errors=[str(err) for err in result.errors],
            )

    return results


@image_app.command("select")
def select(
    observed: Annotated[
        Optional[str],
        typer.Option("--observed", help="Image currently running on the cluster"),
    ] = None,
    pinned: Annotated[
        Optional[str],
        typer.Option("--pinned", help="Pinned image (defaults to the configured one)"),
    ] = None,
    override: Annotated[
        Optional[str],
        typer.Option("--override", help="Image override from the custom resource"),
    ] = None,
) -> None:
    """Print the image the reconciled Keycloak workload would run."""
    typer.echo(select_image(observed, pinned or get_settings().keycloak_image, override))
