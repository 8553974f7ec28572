"""Certificate authority collaborator used by node provisioning."""
from .enums import CertKind
from .authority import (
    CertificateAuthority,
    CertificateRequest,
    IssuedCertificate,
    LocalCertificateAuthority,
    RootPair,
)
from .store import CAStore

__all__ = [
    "CertKind",
    "CertificateAuthority",
    "CertificateRequest",
    "IssuedCertificate",
    "LocalCertificateAuthority",
    "RootPair",
    "CAStore",
]
