from __future__ import annotations

from dataclasses import dataclass

import typer

from fabnode.adapters.fs.path_provider import PathProvider
from fabnode.services.settings import Settings


@dataclass(slots=True)
class CliContext:
    settings: Settings
    paths: PathProvider


def get_cli_ctx(ctx: typer.Context) -> CliContext:
    root = ctx.find_root()
    if not isinstance(root.obj, CliContext):
        settings = Settings.from_sources()
        root.obj = CliContext(settings=settings, paths=PathProvider.from_settings(settings))
    return root.obj
