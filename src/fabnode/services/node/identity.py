from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Mapping

__all__ = ["PeerInitOptions", "NodeIdentity", "PeerConfig"]


@dataclass(slots=True)
class PeerInitOptions:
    """Provisioning request; persisted verbatim as ``init.json``."""

    id: str
    ca_name: str
    msp_id: str
    hosts: list[str] = field(default_factory=list)
    local: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PeerInitOptions":
        hosts = data.get("hosts") or []
        return cls(
            id=str(data["id"]),
            ca_name=str(data["ca_name"]),
            msp_id=str(data["msp_id"]),
            hosts=[str(h) for h in hosts],
            local=bool(data.get("local", True)),
        )


@dataclass(frozen=True, slots=True)
class NodeIdentity:
    node_id: str
    organization_id: str
    tls_certificate: bytes
    tls_private_key: bytes
    signing_certificate: bytes
    signing_private_key: bytes
    ca_certificate_chain: bytes
    tls_ca_certificate_chain: bytes

    def to_document(self) -> dict[str, str]:
        return {
            "node_id": self.node_id,
            "organization_id": self.organization_id,
            "tls_cert": self.tls_certificate.decode("ascii"),
            "tls_key": self.tls_private_key.decode("ascii"),
            "sign_cert": self.signing_certificate.decode("ascii"),
            "sign_key": self.signing_private_key.decode("ascii"),
            "ca_cert": self.ca_certificate_chain.decode("ascii"),
            "tls_ca_cert": self.tls_ca_certificate_chain.decode("ascii"),
        }


@dataclass(frozen=True, slots=True)
class PeerConfig:
    """Public certificate bundle of a provisioned node."""

    tls_cert: str
    sign_cert: str
    tls_ca_cert: str
    sign_ca_cert: str

    def as_dict(self) -> dict[str, str]:
        return {
            "tlsCert": self.tls_cert,
            "signCert": self.sign_cert,
            "tlsCACert": self.tls_ca_cert,
            "signCACert": self.sign_ca_cert,
        }
