from __future__ import annotations

import ipaddress
import os
from pathlib import Path
from typing import Iterable, Sequence

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address


def generate_ec_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())


def encode_private_key(key: ec.EllipticCurvePrivateKey) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def encode_certificate(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(serialization.Encoding.PEM)


def load_private_key(pem: bytes) -> ec.EllipticCurvePrivateKey:
    key = serialization.load_pem_private_key(pem, password=None)
    if not isinstance(key, ec.EllipticCurvePrivateKey):
        raise TypeError("expected an EC private key")
    return key


def write_atomic(path: Path, data: bytes, *, mode: int | None = None) -> None:
    """Replace ``path`` with ``data`` so readers never see a half-written file.

    The temporary file is created with ``mode`` already applied, so key
    material is never readable under the process umask. It is removed again
    if the write or the final rename fails.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.tmp")
    # leftover from an interrupted write, possibly with wider permissions
    tmp.unlink(missing_ok=True)
    flags = os.O_WRONLY | os.O_CREAT | os.O_EXCL | getattr(os, "O_BINARY", 0)
    fd = os.open(tmp, flags, 0o666 if mode is None else mode)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp, path)
    finally:
        tmp.unlink(missing_ok=True)


def write_private_key(path: Path, pem: bytes) -> None:
    write_atomic(path, pem, mode=0o600)


def write_pem(path: Path, pem: bytes) -> None:
    if not pem.endswith(b"\n"):
        pem += b"\n"
    write_atomic(path, pem)


def partition_hosts(hosts: Iterable[str]) -> tuple[list[IPAddress], list[str]]:
    """Split ``hosts`` into IP literals and DNS names, keeping input order."""

    ips: list[IPAddress] = []
    dns_names: list[str] = []
    for host in hosts:
        host = host.strip()
        if not host:
            continue
        try:
            ips.append(ipaddress.ip_address(host))
        except ValueError:
            dns_names.append(host)
    return ips, dns_names


def make_csr(
    common_name: str,
    organizational_units: Sequence[str],
    key: ec.EllipticCurvePrivateKey,
) -> x509.CertificateSigningRequest:
    subject_attributes = [x509.NameAttribute(NameOID.COMMON_NAME, common_name)]
    for unit in organizational_units:
        subject_attributes.append(x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, unit))
    return x509.CertificateSigningRequestBuilder().subject_name(x509.Name(subject_attributes)).sign(key, hashes.SHA256())


__all__ = [
    "IPAddress",
    "generate_ec_key",
    "encode_private_key",
    "encode_certificate",
    "load_private_key",
    "write_atomic",
    "write_private_key",
    "write_pem",
    "partition_hosts",
    "make_csr",
]
