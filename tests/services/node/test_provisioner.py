from __future__ import annotations

import ipaddress
import json

import pytest
import yaml
from cryptography import x509
from cryptography.x509.oid import NameOID

from fabnode.adapters.fs.path_provider import PathProvider
from fabnode.services.ca import CAStore, CertKind
from fabnode.services.errors import CANotFoundError, InvalidNodeIdError, UnsupportedModeError
from fabnode.services.node import (
    ConfigMaterializer,
    NodeLayout,
    PeerInitOptions,
    enroll_peer_certificates,
    new_peer_node,
)


def _opts(**overrides) -> PeerInitOptions:
    values = {
        "id": "peer0",
        "ca_name": "org1",
        "msp_id": "Org1MSP",
        "hosts": ["10.0.0.5", "peer0.org1.example.com", "::1"],
    }
    values.update(overrides)
    return PeerInitOptions(**values)


def _cert(path) -> x509.Certificate:
    return x509.load_pem_x509_certificate(path.read_bytes())


def test_enroll_writes_full_layout(paths, local_ca):
    layout = enroll_peer_certificates(_opts(), paths=paths, ca=local_ca)

    assert layout.root == paths.peers_dir() / "peer0"
    for artifact in (
        layout.identity_document,
        layout.ou_descriptor,
        layout.runtime_config,
        layout.init_request,
        layout.tls_cert,
        layout.tls_key,
        layout.sign_key,
        layout.sign_cert,
        layout.ca_cert,
        layout.tls_ca_cert,
    ):
        assert artifact.is_file(), artifact

    assert layout.ca_cert.read_bytes() == local_ca.ca_certificate_pem(CertKind.SIGN)
    assert layout.tls_ca_cert.read_bytes() == local_ca.ca_certificate_pem(CertKind.TLS)


def test_tls_certificate_partitions_hosts(paths, local_ca):
    layout = enroll_peer_certificates(_opts(), paths=paths, ca=local_ca)

    san = _cert(layout.tls_cert).extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    assert set(san.get_values_for_type(x509.IPAddress)) == {
        ipaddress.ip_address("10.0.0.5"),
        ipaddress.ip_address("::1"),
    }
    assert san.get_values_for_type(x509.DNSName) == ["peer0.org1.example.com"]


def test_signing_certificate_has_no_addresses(paths, local_ca):
    layout = enroll_peer_certificates(_opts(), paths=paths, ca=local_ca)

    sign_cert = _cert(layout.sign_cert)
    with pytest.raises(x509.ExtensionNotFound):
        sign_cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    units = sign_cert.subject.get_attributes_for_oid(NameOID.ORGANIZATIONAL_UNIT_NAME)
    assert [attr.value for attr in units] == ["peer"]


def test_key_pairs_are_distinct(paths, local_ca):
    layout = enroll_peer_certificates(_opts(), paths=paths, ca=local_ca)

    assert layout.tls_key.read_bytes() != layout.sign_key.read_bytes()
    tls_pub = _cert(layout.tls_cert).public_key().public_numbers()
    sign_pub = _cert(layout.sign_cert).public_key().public_numbers()
    assert tls_pub != sign_pub


def test_reprovisioning_overwrites_and_stays_valid(paths, local_ca):
    first = enroll_peer_certificates(_opts(), paths=paths, ca=local_ca)
    first_tls = first.tls_cert.read_bytes()
    second = enroll_peer_certificates(_opts(), paths=paths, ca=local_ca)

    assert second.root == first.root
    assert second.tls_cert.read_bytes() != first_tls
    assert sorted(p.name for p in second.keystore_dir.iterdir()) == ["key.pem"]

    sign_root = x509.load_pem_x509_certificate(local_ca.ca_certificate_pem(CertKind.SIGN))
    tls_root = x509.load_pem_x509_certificate(local_ca.ca_certificate_pem(CertKind.TLS))
    _cert(second.sign_cert).verify_directly_issued_by(sign_root)
    _cert(second.tls_cert).verify_directly_issued_by(tls_root)
    _cert(second.ca_cert).verify_directly_issued_by(sign_root)
    _cert(second.tls_ca_cert).verify_directly_issued_by(tls_root)


def test_identity_document_and_request_record(paths, local_ca):
    opts = _opts()
    layout = enroll_peer_certificates(opts, paths=paths, ca=local_ca)

    document = json.loads(layout.identity_document.read_text(encoding="utf-8"))
    assert document["node_id"] == "peer0"
    assert document["organization_id"] == "Org1MSP"
    assert document["sign_cert"].encode("ascii") == layout.sign_cert.read_bytes()
    assert document["tls_key"].encode("ascii") == layout.tls_key.read_bytes()

    recorded = PeerInitOptions.from_dict(json.loads(layout.init_request.read_text(encoding="utf-8")))
    assert recorded == opts


def test_ou_descriptor_maps_roles(paths, local_ca):
    layout = enroll_peer_certificates(_opts(), paths=paths, ca=local_ca)

    node_ous = yaml.safe_load(layout.ou_descriptor.read_text(encoding="utf-8"))["NodeOUs"]
    assert node_ous["Enable"] is True
    assert node_ous["PeerOUIdentifier"] == {
        "Certificate": "cacerts/cacert.pem",
        "OrganizationalUnitIdentifier": "peer",
    }
    assert {v["OrganizationalUnitIdentifier"] for k, v in node_ous.items() if k != "Enable"} == {
        "client",
        "peer",
        "admin",
        "orderer",
    }


def test_runtime_config_points_at_data_dir(paths, local_ca):
    layout = enroll_peer_certificates(_opts(), paths=paths, ca=local_ca)

    core = yaml.safe_load(layout.runtime_config.read_text(encoding="utf-8"))
    data_dir = layout.data_dir.as_posix()
    assert core["peer"]["fileSystemPath"] == data_dir
    assert core["ledger"]["snapshots"]["rootDir"] == f"{data_dir}/snapshots"


def test_runtime_config_keeps_comment_characters_in_base_dir(tmp_path, local_ca):
    paths = PathProvider(base=tmp_path / "x #y")
    paths.ensure_tree()
    layout = enroll_peer_certificates(_opts(), paths=paths, ca=local_ca)

    core = yaml.safe_load(layout.runtime_config.read_text(encoding="utf-8"))
    assert core["peer"]["fileSystemPath"] == layout.data_dir.as_posix()
    assert core["peer"]["fileSystemPath"].endswith("x #y/peers/peer0/data")


def test_substitute_template_is_used(paths, local_ca):
    materializer = ConfigMaterializer("path: ${file_system_path}\n")
    layout = enroll_peer_certificates(_opts(), paths=paths, ca=local_ca, materializer=materializer)

    assert layout.runtime_config.read_text(encoding="utf-8") == f"path: {layout.data_dir.as_posix()}\n"


def test_remote_mode_is_rejected_before_touching_disk(paths, local_ca):
    with pytest.raises(UnsupportedModeError):
        enroll_peer_certificates(_opts(local=False), paths=paths, ca=local_ca)
    assert not (paths.peers_dir() / "peer0").exists()


def test_ca_loaded_from_store_by_name(paths):
    CAStore(paths).create("org1")
    layout = enroll_peer_certificates(_opts(), paths=paths)
    assert layout.tls_cert.exists()


def test_missing_ca_is_reported(paths):
    with pytest.raises(CANotFoundError) as excinfo:
        enroll_peer_certificates(_opts(ca_name="nope"), paths=paths)
    assert excinfo.value.name == "nope"


def test_ca_failure_propagates_unmodified(paths):
    error = ConnectionError("ca unavailable")

    class BrokenCA:
        name = "broken"

        def ca_certificate_pem(self, kind):
            raise AssertionError("not reached")

        def sign(self, request):
            raise error

    with pytest.raises(ConnectionError) as excinfo:
        enroll_peer_certificates(_opts(), paths=paths, ca=BrokenCA())
    assert excinfo.value is error


def test_filesystem_failure_propagates_and_retry_recovers(paths, local_ca, echo_factory):
    layout = NodeLayout.for_node("peer0", paths)
    layout.sign_cert.mkdir(parents=True)

    with pytest.raises(OSError):
        enroll_peer_certificates(_opts(), paths=paths, ca=local_ca)

    layout.sign_cert.rmdir()
    enroll_peer_certificates(_opts(), paths=paths, ca=local_ca)

    for artifact in (
        layout.identity_document,
        layout.ou_descriptor,
        layout.runtime_config,
        layout.init_request,
        layout.tls_cert,
        layout.tls_key,
        layout.sign_key,
        layout.sign_cert,
        layout.ca_cert,
        layout.tls_ca_cert,
    ):
        assert artifact.is_file(), artifact
    assert list(layout.root.rglob(".*.tmp")) == []

    bundle = new_peer_node("peer0", "Org1MSP", echo_factory, paths=paths).get_config()
    assert bundle.sign_cert.encode("utf-8") == layout.sign_cert.read_bytes()


@pytest.mark.parametrize("node_id", ["../escape", "", "a/b", ".hidden"])
def test_invalid_node_ids_are_rejected(paths, local_ca, node_id):
    with pytest.raises(InvalidNodeIdError):
        enroll_peer_certificates(_opts(id=node_id), paths=paths, ca=local_ca)


def test_layout_is_derived_from_node_id(paths):
    layout = NodeLayout.for_node("peer7", paths)
    assert layout.relative(layout.sign_cert) == "signcerts/cert.pem"
    assert layout.relative(layout.sign_key) == "keystore/key.pem"
    assert layout.relative(layout.ca_cert) == "cacerts/cacert.pem"
    assert layout.relative(layout.tls_ca_cert) == "tlscacerts/cacert.pem"
    assert layout == NodeLayout.for_node("peer7", paths)
