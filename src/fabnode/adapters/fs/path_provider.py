# src/fabnode/adapters/fs/path_provider.py
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from fabnode.config import const
from fabnode.services.errors import InvalidNodeIdError
from fabnode.services.settings import Settings

_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def validate_name(name: str) -> str:
    """Reject ids that would not map to exactly one child directory."""

    if not isinstance(name, str) or not _NAME_RE.match(name) or ".." in name:
        raise InvalidNodeIdError(str(name))
    return name


@dataclass(slots=True)
class PathProvider:
    """Single source of truth for on-disk locations. Always works with pathlib.Path."""

    base: Path

    # --- constructors ---
    @classmethod
    def from_settings(cls, settings: Settings) -> "PathProvider":
        return cls(base=Path(settings.base_dir).expanduser().resolve())

    @classmethod
    def default(cls) -> "PathProvider":
        return cls.from_settings(Settings.from_sources())

    # --- base directories ---
    def base_dir(self) -> Path:
        return self.base

    def peers_dir(self) -> Path:
        return (self.base / const.PEERS_DIRNAME).resolve()

    def cas_dir(self) -> Path:
        return (self.base / const.CAS_DIRNAME).resolve()

    def logs_dir(self) -> Path:
        return (self.base / const.LOGS_DIRNAME).resolve()

    # --- per-entity directories ---
    def node_dir(self, node_id: str) -> Path:
        return self.peers_dir() / validate_name(node_id)

    def ca_dir(self, name: str) -> Path:
        return self.cas_dir() / validate_name(name)

    def ensure_tree(self) -> None:
        for p in (
            self.base_dir(),
            self.peers_dir(),
            self.cas_dir(),
            self.logs_dir(),
        ):
            p.mkdir(parents=True, exist_ok=True)
