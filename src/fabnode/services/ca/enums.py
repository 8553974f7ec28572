"""Enumerations shared by the certificate authority and the provisioner."""
from __future__ import annotations

from enum import Enum

__all__ = ["CertKind"]


class _StrEnum(str, Enum):
    """Simple ``str``-backed enum compatible with Python 3.10."""

    def __str__(self) -> str:  # pragma: no cover - convenience for logging only
        return str(self.value)


class CertKind(_StrEnum):
    TLS = "tls"
    SIGN = "sign"
