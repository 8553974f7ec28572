"""Peer node provisioning and process supervision."""
from .identity import NodeIdentity, PeerConfig, PeerInitOptions
from .layout import NodeLayout
from .config_materializer import ConfigMaterializer, load_template
from .provisioner import enroll_peer_certificates, issue_identity, node_ou_descriptor
from .supervisor import (
    CommandSpec,
    ProcessControl,
    ProcessState,
    ProcessSupervisor,
    RunState,
    SubprocessControl,
    map_run_state,
)
from .handle import NodeHandle, list_peers, new_peer_node, open_peer, peer_command_factory

__all__ = [
    "NodeIdentity",
    "PeerConfig",
    "PeerInitOptions",
    "NodeLayout",
    "ConfigMaterializer",
    "load_template",
    "enroll_peer_certificates",
    "issue_identity",
    "node_ou_descriptor",
    "CommandSpec",
    "ProcessControl",
    "ProcessState",
    "ProcessSupervisor",
    "RunState",
    "SubprocessControl",
    "map_run_state",
    "NodeHandle",
    "list_peers",
    "new_peer_node",
    "open_peer",
    "peer_command_factory",
]
