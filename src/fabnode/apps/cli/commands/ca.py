"""Certificate authority CLI commands."""

from __future__ import annotations

import typer

from fabnode.apps.cli.context import get_cli_ctx
from fabnode.services.ca import CAStore

app = typer.Typer(help="Manage local certificate authorities")


@app.command("create")
def cmd_create(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="CA name, also its directory under cas/"),
    org: str = typer.Option(None, "--org", help="Organization written into the CA subjects"),
    force: bool = typer.Option(False, "--force", help="Replace an existing CA with new roots"),
):
    store = CAStore(get_cli_ctx(ctx).paths)
    if store.exists(name) and not force:
        typer.echo(f"CA '{name}' already exists at {store.ca_dir(name)}", err=True)
        raise typer.Exit(code=1)
    store.create(name, organization=org)
    typer.echo(f"created CA '{name}' at {store.ca_dir(name)}")


@app.command("list")
def cmd_list(ctx: typer.Context):
    for name in CAStore(get_cli_ctx(ctx).paths).names():
        typer.echo(name)
