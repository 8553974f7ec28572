"""Fixed on-disk layout of a provisioned peer node.

```
peers/<node_id>/
    config.json             # identity document (all material + node id)
    config.yaml             # NodeOUs membership-unit descriptor
    core.yaml               # rendered runtime configuration
    init.json               # provisioning request, kept for replay
    tls.crt / tls.key       # TLS certificate and key
    keystore/key.pem        # signing private key
    signcerts/cert.pem      # signing certificate
    cacerts/cacert.pem      # signing CA chain
    tlscacerts/cacert.pem   # TLS CA chain
    data/                   # ledger data, referenced from core.yaml
```
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from fabnode.adapters.fs.path_provider import PathProvider


@dataclass(frozen=True, slots=True)
class NodeLayout:
    node_id: str
    root: Path

    @classmethod
    def for_node(cls, node_id: str, paths: PathProvider) -> "NodeLayout":
        return cls(node_id=node_id, root=paths.node_dir(node_id))

    @property
    def identity_document(self) -> Path:
        return self.root / "config.json"

    @property
    def ou_descriptor(self) -> Path:
        return self.root / "config.yaml"

    @property
    def runtime_config(self) -> Path:
        return self.root / "core.yaml"

    @property
    def init_request(self) -> Path:
        return self.root / "init.json"

    @property
    def tls_cert(self) -> Path:
        return self.root / "tls.crt"

    @property
    def tls_key(self) -> Path:
        return self.root / "tls.key"

    @property
    def keystore_dir(self) -> Path:
        return self.root / "keystore"

    @property
    def sign_key(self) -> Path:
        return self.keystore_dir / "key.pem"

    @property
    def sign_cert(self) -> Path:
        return self.root / "signcerts" / "cert.pem"

    @property
    def ca_cert(self) -> Path:
        return self.root / "cacerts" / "cacert.pem"

    @property
    def tls_ca_cert(self) -> Path:
        return self.root / "tlscacerts" / "cacert.pem"

    @property
    def data_dir(self) -> Path:
        return self.root / "data"

    def relative(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()
