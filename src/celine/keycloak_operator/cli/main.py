"""Keycloak operator CLI - Main entrypoint.

Usage:
    celine-keycloak-operator scopes sync clients.yaml
    celine-keycloak-operator image select --observed quay.io/keycloak/keycloak:9.0.3
"""

from __future__ import annotations

import typer

from celine.keycloak_operator.cli.commands import image_app, scopes_app

app = typer.Typer(
    name="celine-keycloak-operator",
    help="Keycloak operator tools",
    add_completion=True,
)

app.add_typer(scopes_app, name="scopes")
app.add_typer(image_app, name="image")


def create_app() -> None:
    """CLI entrypoint."""
    app()


if __name__ == "__main__":
    create_app()
