from __future__ import annotations

from pathlib import Path

import typer

from fabnode.adapters.fs.path_provider import PathProvider
from fabnode.apps.cli.commands import ca, peer
from fabnode.apps.cli.context import CliContext
from fabnode.services.logging import setup_logging
from fabnode.services.settings import Settings

app = typer.Typer(help="Fabric peer identity and lifecycle tooling", no_args_is_help=True)
app.add_typer(ca.app, name="ca")
app.add_typer(peer.app, name="peer")


@app.callback()
def main(
    ctx: typer.Context,
    base_dir: Path = typer.Option(None, "--base-dir", help="Overrides FABNODE_BASE_DIR"),
    log_level: str = typer.Option(None, "--log-level", help="Overrides FABNODE_LOG_LEVEL"),
):
    settings = Settings.from_sources().with_overrides(base_dir=base_dir, log_level=log_level)
    paths = PathProvider.from_settings(settings)
    paths.ensure_tree()
    setup_logging(settings.log_level, logfile=paths.logs_dir() / "fabnode.log")
    ctx.obj = CliContext(settings=settings, paths=paths)


if __name__ == "__main__":
    app()
