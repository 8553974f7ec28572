"""Error classes raised by node provisioning, supervision and the local CA."""

from __future__ import annotations

from pathlib import Path


class NodeError(RuntimeError):
    """Base error for node lifecycle operations."""


class StateConflictError(NodeError):
    """Raised when an operation does not match the supervisor state."""


class AlreadyRunningError(StateConflictError):
    """Raised by ``start()`` while a live process is held."""

    def __init__(self, node_id: str, pid: int) -> None:
        self.node_id = node_id
        self.pid = pid
        super().__init__(f"node '{node_id}' is already started (pid {pid})")


class NotRunningError(StateConflictError):
    """Raised by ``stop()`` when there is no live process."""

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"node '{node_id}' is already stopped")


class UnsupportedModeError(NodeError):
    """Raised when provisioning asks for material not issued by a local CA."""


class CollaboratorError(NodeError):
    """Base for failures attributed to an external collaborator."""


class CANotFoundError(CollaboratorError):
    """Raised when a named certificate authority has no material on disk."""

    def __init__(self, name: str, path: Path) -> None:
        self.name = name
        self.path = path
        super().__init__(f"certificate authority '{name}' not found at {path}")


class TemplateRenderError(NodeError):
    """Raised when the runtime configuration template is malformed."""


class PersistenceError(NodeError):
    """Base for node directory read/write problems raised by this package."""


class NodeNotProvisionedError(PersistenceError):
    """Raised when an expected identity artifact is missing."""

    def __init__(self, node_id: str, path: Path) -> None:
        self.node_id = node_id
        self.path = path
        super().__init__(f"node '{node_id}' is not provisioned: missing {path}")


class InvalidNodeIdError(PersistenceError, ValueError):
    """Raised when a node id cannot be mapped to its own directory."""

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        PersistenceError.__init__(self, f"invalid node id '{node_id}'")


__all__ = [
    "NodeError",
    "StateConflictError",
    "AlreadyRunningError",
    "NotRunningError",
    "UnsupportedModeError",
    "CollaboratorError",
    "CANotFoundError",
    "TemplateRenderError",
    "PersistenceError",
    "NodeNotProvisionedError",
    "InvalidNodeIdError",
]
