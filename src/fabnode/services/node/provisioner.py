"""Derive a peer's identity from a certificate authority and write it to disk.

Provisioning is not transactional across files, but every artifact is
rewritten on each run, so recovering from a partial failure means calling
:func:`enroll_peer_certificates` again with the same options.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from fabnode.adapters.fs.path_provider import PathProvider
from fabnode.config import const
from fabnode.services.ca import CAStore, CertificateAuthority, CertificateRequest, CertKind
from fabnode.services.crypto import pki
from fabnode.services.errors import UnsupportedModeError

from .config_materializer import ConfigMaterializer, get_config_materializer
from .identity import NodeIdentity, PeerInitOptions
from .layout import NodeLayout

_log = logging.getLogger("fabnode.node.provisioner")


def node_ou_descriptor(ca_cert_path: str = "cacerts/cacert.pem") -> dict[str, Any]:
    """NodeOUs section mapping organizational units to node roles."""

    node_ous: dict[str, Any] = {"Enable": True}
    for key, unit in const.NODE_OU_ROLES:
        node_ous[key] = {
            "Certificate": ca_cert_path,
            "OrganizationalUnitIdentifier": unit,
        }
    return {"NodeOUs": node_ous}


def issue_identity(opts: PeerInitOptions, ca: CertificateAuthority) -> NodeIdentity:
    ips, dns_names = pki.partition_hosts(opts.hosts)
    tls = ca.sign(
        CertificateRequest(
            common_name=const.PEER_COMMON_NAME,
            kind=CertKind.TLS,
            organizational_units=(const.PEER_ORGANIZATIONAL_UNIT,),
            ip_addresses=tuple(ips),
            dns_names=tuple(dns_names),
        )
    )
    enrollment = ca.sign(
        CertificateRequest(
            common_name=const.PEER_COMMON_NAME,
            kind=CertKind.SIGN,
            organizational_units=(const.PEER_ORGANIZATIONAL_UNIT,),
        )
    )
    return NodeIdentity(
        node_id=opts.id,
        organization_id=opts.msp_id,
        tls_certificate=tls.certificate_pem,
        tls_private_key=tls.private_key_pem,
        signing_certificate=enrollment.certificate_pem,
        signing_private_key=enrollment.private_key_pem,
        ca_certificate_chain=ca.ca_certificate_pem(CertKind.SIGN),
        tls_ca_certificate_chain=ca.ca_certificate_pem(CertKind.TLS),
    )


def write_identity(
    layout: NodeLayout,
    identity: NodeIdentity,
    opts: PeerInitOptions,
    *,
    materializer: ConfigMaterializer,
) -> None:
    layout.root.mkdir(parents=True, exist_ok=True)
    ou_descriptor = yaml.safe_dump(node_ou_descriptor(layout.relative(layout.ca_cert)), sort_keys=False)
    # (path, content, holds a private key)
    artifacts: list[tuple[Path, bytes, bool]] = [
        (layout.identity_document, json.dumps(identity.to_document(), indent=2).encode("utf-8"), True),
        (layout.sign_key, identity.signing_private_key, True),
        (layout.tls_ca_cert, identity.tls_ca_certificate_chain, False),
        (layout.ca_cert, identity.ca_certificate_chain, False),
        (layout.sign_cert, identity.signing_certificate, False),
        (layout.ou_descriptor, ou_descriptor.encode("utf-8"), False),
        (layout.tls_key, identity.tls_private_key, True),
        (layout.tls_cert, identity.tls_certificate, False),
    ]
    for path, content, private in artifacts:
        try:
            if private:
                pki.write_private_key(path, content)
            else:
                pki.write_pem(path, content)
        except OSError:
            _log.warning("failed to write %s for node=%s", layout.relative(path), layout.node_id)
            raise

    materializer.write(layout.runtime_config, layout.data_dir)
    pki.write_atomic(layout.init_request, opts.to_json().encode("utf-8"))


def enroll_peer_certificates(
    opts: PeerInitOptions,
    *,
    paths: PathProvider | None = None,
    ca: CertificateAuthority | None = None,
    materializer: ConfigMaterializer | None = None,
) -> NodeLayout:
    """Issue TLS and signing material for ``opts.id`` and materialize its directory.

    ``ca`` defaults to the local CA named ``opts.ca_name`` loaded from the CA
    store. Errors from the CA or the filesystem are not retried.
    """

    if not opts.local:
        raise UnsupportedModeError("provisioning with externally issued material is not supported")

    paths = paths or PathProvider.default()
    layout = NodeLayout.for_node(opts.id, paths)
    if ca is None:
        ca = CAStore(paths).load(opts.ca_name)

    _log.info("enrolling node=%s ca=%s hosts=%s", opts.id, opts.ca_name, opts.hosts)
    try:
        identity = issue_identity(opts, ca)
    except Exception:
        _log.warning("certificate issuance failed for node=%s ca=%s", opts.id, opts.ca_name)
        raise
    write_identity(layout, identity, opts, materializer=materializer or get_config_materializer())
    _log.info("node=%s provisioned at %s", opts.id, layout.root)
    return layout
