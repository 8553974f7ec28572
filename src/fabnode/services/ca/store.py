from __future__ import annotations

import logging
from pathlib import Path

from cryptography import x509

from fabnode.adapters.fs.path_provider import PathProvider
from fabnode.services.crypto import pki
from fabnode.services.errors import CANotFoundError

from .authority import LocalCertificateAuthority, RootPair

_log = logging.getLogger("fabnode.ca.store")

CA_CERT_FILE = "ca.crt"
CA_KEY_FILE = "ca.key"
TLSCA_CERT_FILE = "tlsca.crt"
TLSCA_KEY_FILE = "tlsca.key"


class CAStore:
    """Persists local certificate authorities under ``<base>/cas/<name>/``."""

    def __init__(self, paths: PathProvider) -> None:
        self._paths = paths

    def ca_dir(self, name: str) -> Path:
        return self._paths.ca_dir(name)

    def exists(self, name: str) -> bool:
        return (self.ca_dir(name) / CA_CERT_FILE).exists()

    def names(self) -> list[str]:
        root = self._paths.cas_dir()
        if not root.exists():
            return []
        return sorted(p.name for p in root.iterdir() if p.is_dir() and (p / CA_CERT_FILE).exists())

    def save(self, ca: LocalCertificateAuthority) -> Path:
        target = self.ca_dir(ca.name)
        target.mkdir(parents=True, exist_ok=True)
        pki.write_pem(target / CA_CERT_FILE, ca.sign_root.certificate_pem)
        pki.write_private_key(target / CA_KEY_FILE, pki.encode_private_key(ca.sign_root.key))
        pki.write_pem(target / TLSCA_CERT_FILE, ca.tls_root.certificate_pem)
        pki.write_private_key(target / TLSCA_KEY_FILE, pki.encode_private_key(ca.tls_root.key))
        _log.info("saved certificate authority name=%s dir=%s", ca.name, target)
        return target

    def create(self, name: str, *, organization: str | None = None) -> LocalCertificateAuthority:
        ca = LocalCertificateAuthority.create(name, organization=organization)
        self.save(ca)
        return ca

    def load(self, name: str) -> LocalCertificateAuthority:
        source = self.ca_dir(name)
        if not (source / CA_CERT_FILE).exists():
            raise CANotFoundError(name, source)
        return LocalCertificateAuthority(
            name=name,
            sign_root=_load_pair(source / CA_CERT_FILE, source / CA_KEY_FILE),
            tls_root=_load_pair(source / TLSCA_CERT_FILE, source / TLSCA_KEY_FILE),
        )


def _load_pair(cert_path: Path, key_path: Path) -> RootPair:
    cert = x509.load_pem_x509_certificate(cert_path.read_bytes())
    key = pki.load_private_key(key_path.read_bytes())
    return RootPair(certificate=cert, key=key)
