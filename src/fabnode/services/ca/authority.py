"""File-backed certificate authority used to issue node identities.

A :class:`LocalCertificateAuthority` holds two independent roots: the signing
CA, which issues enrollment certificates, and the TLS CA, which issues
transport certificates.  Callers only see the :class:`CertificateAuthority`
protocol: hand over a :class:`CertificateRequest`, receive a freshly generated
key together with the certificate issued for it.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Protocol, Sequence

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from fabnode.config import const
from fabnode.services.crypto import pki

from .enums import CertKind

__all__ = [
    "CertificateRequest",
    "IssuedCertificate",
    "CertificateAuthority",
    "LocalCertificateAuthority",
    "RootPair",
]


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass(frozen=True, slots=True)
class CertificateRequest:
    common_name: str
    kind: CertKind
    organizational_units: Sequence[str] = ()
    ip_addresses: Sequence[pki.IPAddress] = ()
    dns_names: Sequence[str] = ()


@dataclass(frozen=True, slots=True)
class IssuedCertificate:
    certificate_pem: bytes
    private_key_pem: bytes


class CertificateAuthority(Protocol):
    name: str

    def ca_certificate_pem(self, kind: CertKind) -> bytes: ...

    def sign(self, request: CertificateRequest) -> IssuedCertificate: ...


@dataclass(slots=True)
class RootPair:
    certificate: x509.Certificate
    key: ec.EllipticCurvePrivateKey

    @classmethod
    def self_signed(cls, common_name: str, organization: str, *, lifetime: timedelta) -> "RootPair":
        key = pki.generate_ec_key()
        subject = issuer = x509.Name(
            [
                x509.NameAttribute(NameOID.COMMON_NAME, common_name),
                x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization),
            ]
        )
        now = _utcnow()
        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(issuer)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - timedelta(minutes=1))
            .not_valid_after(now + lifetime)
            .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=True,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=True,
                    crl_sign=True,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False)
        )
        cert = builder.sign(private_key=key, algorithm=hashes.SHA256())
        return cls(certificate=cert, key=key)

    @property
    def certificate_pem(self) -> bytes:
        return pki.encode_certificate(self.certificate)


@dataclass(slots=True)
class LocalCertificateAuthority:
    """CA whose signing and TLS roots live in this process."""

    name: str
    sign_root: RootPair
    tls_root: RootPair
    cert_lifetime: timedelta = field(default_factory=lambda: timedelta(days=const.NODE_CERT_LIFETIME_DAYS))

    @classmethod
    def create(
        cls,
        name: str,
        *,
        organization: str | None = None,
        lifetime: timedelta | None = None,
    ) -> "LocalCertificateAuthority":
        lifetime = lifetime or timedelta(days=const.ROOT_CA_LIFETIME_DAYS)
        organization = organization or name
        return cls(
            name=name,
            sign_root=RootPair.self_signed(f"ca.{name}", organization, lifetime=lifetime),
            tls_root=RootPair.self_signed(f"tlsca.{name}", organization, lifetime=lifetime),
        )

    def root(self, kind: CertKind) -> RootPair:
        return self.tls_root if kind is CertKind.TLS else self.sign_root

    def ca_certificate_pem(self, kind: CertKind) -> bytes:
        return self.root(kind).certificate_pem

    def sign(self, request: CertificateRequest) -> IssuedCertificate:
        key = pki.generate_ec_key()
        csr = pki.make_csr(request.common_name, request.organizational_units, key)
        cert = self.sign_csr(csr, request)
        return IssuedCertificate(
            certificate_pem=pki.encode_certificate(cert),
            private_key_pem=pki.encode_private_key(key),
        )

    def sign_csr(self, csr: x509.CertificateSigningRequest, request: CertificateRequest) -> x509.Certificate:
        root = self.root(request.kind)
        now = _utcnow()
        builder = (
            x509.CertificateBuilder()
            .subject_name(csr.subject)
            .issuer_name(root.certificate.subject)
            .public_key(csr.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - timedelta(minutes=1))
            .not_valid_after(now + self.cert_lifetime)
            .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
            .add_extension(x509.SubjectKeyIdentifier.from_public_key(csr.public_key()), critical=False)
            .add_extension(
                x509.AuthorityKeyIdentifier.from_issuer_public_key(root.key.public_key()),
                critical=False,
            )
        )
        if request.kind is CertKind.TLS:
            builder = builder.add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=True,
                    data_encipherment=False,
                    key_agreement=True,
                    key_cert_sign=False,
                    crl_sign=False,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            ).add_extension(
                x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH, ExtendedKeyUsageOID.CLIENT_AUTH]),
                critical=False,
            )
            san_values: list[x509.GeneralName] = [x509.DNSName(name) for name in request.dns_names]
            san_values.extend(x509.IPAddress(ip) for ip in request.ip_addresses)
            if san_values:
                builder = builder.add_extension(x509.SubjectAlternativeName(san_values), critical=False)
        else:
            builder = builder.add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=False,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=False,
                    crl_sign=False,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
        return builder.sign(private_key=root.key, algorithm=hashes.SHA256())
