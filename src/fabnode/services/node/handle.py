from __future__ import annotations

import json
import logging
from pathlib import Path

from fabnode.adapters.fs.path_provider import PathProvider
from fabnode.services.errors import NodeNotProvisionedError
from fabnode.services.settings import Settings

from .identity import PeerConfig, PeerInitOptions
from .layout import NodeLayout
from .supervisor import CommandFactory, CommandSpec, ProcessControl, ProcessState, ProcessSupervisor

_log = logging.getLogger("fabnode.node.handle")


def _read_artifact(layout: NodeLayout, path: Path) -> str:
    try:
        return path.read_bytes().decode("utf-8")
    except FileNotFoundError as exc:
        raise NodeNotProvisionedError(layout.node_id, path) from exc


class NodeHandle:
    """Public face of one peer: identity read-back plus process control."""

    def __init__(
        self,
        node_id: str,
        msp_id: str,
        command_factory: CommandFactory,
        *,
        paths: PathProvider | None = None,
        control: ProcessControl | None = None,
    ) -> None:
        self._msp_id = msp_id
        self._layout = NodeLayout.for_node(node_id, paths or PathProvider.default())
        self._supervisor = ProcessSupervisor(node_id, command_factory, control=control)

    @property
    def layout(self) -> NodeLayout:
        return self._layout

    def get_id(self) -> str:
        return self._layout.node_id

    def get_organization_id(self) -> str:
        return self._msp_id

    def get_config(self) -> PeerConfig:
        layout = self._layout
        return PeerConfig(
            tls_cert=_read_artifact(layout, layout.tls_cert),
            sign_cert=_read_artifact(layout, layout.sign_cert),
            tls_ca_cert=_read_artifact(layout, layout.tls_ca_cert),
            sign_ca_cert=_read_artifact(layout, layout.ca_cert),
        )

    def start(self) -> int:
        return self._supervisor.start()

    def stop(self, *, timeout: float | None = None) -> int | None:
        return self._supervisor.stop(timeout=timeout)

    def status(self) -> ProcessState:
        return self._supervisor.status()


def peer_command_factory(
    layout: NodeLayout,
    msp_id: str,
    *,
    peer_binary: str | None = None,
    logs_dir: Path | None = None,
) -> CommandFactory:
    """Build the ``peer node start`` invocation pointing at ``layout``."""

    binary = peer_binary or Settings.from_sources().peer_binary

    def _factory() -> CommandSpec:
        if not layout.runtime_config.exists():
            raise NodeNotProvisionedError(layout.node_id, layout.runtime_config)
        root = layout.root
        env = {
            "FABRIC_CFG_PATH": str(root),
            "CORE_PEER_ID": layout.node_id,
            "CORE_PEER_LOCALMSPID": msp_id,
            "CORE_PEER_MSPCONFIGPATH": str(root),
            "CORE_PEER_FILESYSTEMPATH": str(layout.data_dir),
            "CORE_PEER_TLS_ENABLED": "true",
            "CORE_PEER_TLS_CERT_FILE": str(layout.tls_cert),
            "CORE_PEER_TLS_KEY_FILE": str(layout.tls_key),
            "CORE_PEER_TLS_ROOTCERT_FILE": str(layout.tls_ca_cert),
        }
        log_path = (logs_dir / f"peer.{layout.node_id}.log") if logs_dir else None
        return CommandSpec(argv=(binary, "node", "start"), cwd=root, env=env, log_path=log_path)

    return _factory


def new_peer_node(
    node_id: str,
    msp_id: str,
    command_factory: CommandFactory,
    *,
    paths: PathProvider | None = None,
    control: ProcessControl | None = None,
) -> NodeHandle:
    return NodeHandle(node_id, msp_id, command_factory, paths=paths, control=control)


def open_peer(
    node_id: str,
    *,
    paths: PathProvider | None = None,
    command_factory: CommandFactory | None = None,
    control: ProcessControl | None = None,
    peer_binary: str | None = None,
) -> NodeHandle:
    """Rebuild the handle of a provisioned node from its ``init.json``."""

    paths = paths or PathProvider.default()
    layout = NodeLayout.for_node(node_id, paths)
    try:
        raw = json.loads(layout.init_request.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise NodeNotProvisionedError(node_id, layout.init_request) from exc
    opts = PeerInitOptions.from_dict(raw)
    if command_factory is None:
        command_factory = peer_command_factory(
            layout, opts.msp_id, peer_binary=peer_binary, logs_dir=paths.logs_dir()
        )
    _log.debug("opened node=%s msp=%s", node_id, opts.msp_id)
    return new_peer_node(node_id, opts.msp_id, command_factory, paths=paths, control=control)


def list_peers(paths: PathProvider | None = None) -> list[str]:
    paths = paths or PathProvider.default()
    root = paths.peers_dir()
    if not root.exists():
        return []
    return sorted(p.name for p in root.iterdir() if p.is_dir() and (p / "init.json").exists())
