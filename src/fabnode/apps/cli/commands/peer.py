"""Peer node CLI commands."""

from __future__ import annotations

import json
import time
from typing import List

import typer

from fabnode.apps.cli.context import get_cli_ctx
from fabnode.services.errors import NodeError
from fabnode.services.node import (
    PeerInitOptions,
    RunState,
    enroll_peer_certificates,
    list_peers,
    open_peer,
)

app = typer.Typer(help="Provision and run peer nodes")


@app.command("enroll")
def cmd_enroll(
    ctx: typer.Context,
    peer_id: str = typer.Argument(..., help="Node id, also its directory under peers/"),
    ca: str = typer.Option(..., "--ca", help="Name of the CA issuing the certificates"),
    msp_id: str = typer.Option(..., "--msp-id", help="Organization MSP id"),
    host: List[str] = typer.Option([], "--host", help="Hostname or IP for the TLS certificate (repeatable)"),
    remote: bool = typer.Option(False, "--remote", help="Use externally issued material"),
):
    cli = get_cli_ctx(ctx)
    opts = PeerInitOptions(id=peer_id, ca_name=ca, msp_id=msp_id, hosts=list(host), local=not remote)
    try:
        layout = enroll_peer_certificates(opts, paths=cli.paths)
    except NodeError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)
    typer.echo(f"enrolled peer '{peer_id}' at {layout.root}")


@app.command("config")
def cmd_config(
    ctx: typer.Context,
    peer_id: str = typer.Argument(...),
):
    try:
        node = open_peer(peer_id, paths=get_cli_ctx(ctx).paths)
        bundle = node.get_config()
    except NodeError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(bundle.as_dict(), indent=2))


@app.command("list")
def cmd_list(ctx: typer.Context):
    for peer_id in list_peers(get_cli_ctx(ctx).paths):
        typer.echo(peer_id)


@app.command("run")
def cmd_run(
    ctx: typer.Context,
    peer_id: str = typer.Argument(...),
    interval: float = typer.Option(5.0, "--interval", help="Seconds between status reports"),
    stop_timeout: float = typer.Option(None, "--stop-timeout", help="Give up waiting for exit after N seconds"),
):
    """Start the peer in the foreground; Ctrl+C stops it."""
    cli = get_cli_ctx(ctx)
    try:
        node = open_peer(peer_id, paths=cli.paths, peer_binary=cli.settings.peer_binary)
        node.start()
    except (NodeError, OSError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)

    try:
        while True:
            state = node.status()
            typer.echo(json.dumps(state.as_dict()))
            if state.run_state is RunState.ZOMBIE:
                break
            time.sleep(interval)
    except KeyboardInterrupt:
        pass
    finally:
        code = node.stop(timeout=stop_timeout)
        typer.echo(f"peer '{peer_id}' exited with code {code}")
