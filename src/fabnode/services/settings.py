# src/fabnode/services/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping

from fabnode.config import const


@dataclass(frozen=True, slots=True)
class Settings:
    """Runtime settings resolved from hard defaults and ``FABNODE_*`` variables."""

    base_dir: Path
    log_level: str = const.DEFAULT_LOG_LEVEL
    peer_binary: str = const.DEFAULT_PEER_BINARY

    @classmethod
    def from_sources(cls, env: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if env is None else env

        def _get(name: str, default: str) -> str:
            value = env.get(const.ENV_PREFIX + name)
            return value.strip() if value and value.strip() else default

        return cls(
            base_dir=Path(_get("BASE_DIR", const.DEFAULT_BASE_DIR)).expanduser(),
            log_level=_get("LOG_LEVEL", const.DEFAULT_LOG_LEVEL).upper(),
            peer_binary=_get("PEER_BINARY", const.DEFAULT_PEER_BINARY),
        )

    def with_overrides(self, **overrides: Any) -> "Settings":
        values = {k: v for k, v in overrides.items() if v is not None}
        if "base_dir" in values:
            values["base_dir"] = Path(values["base_dir"]).expanduser()
        return replace(self, **values)
