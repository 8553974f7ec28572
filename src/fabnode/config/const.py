# src/fabnode/config/const.py
from __future__ import annotations

# hard defaults; environment variables override them via Settings.from_sources()
DEFAULT_BASE_DIR: str = "~/.fabnode"
DEFAULT_LOG_LEVEL: str = "INFO"
DEFAULT_PEER_BINARY: str = "peer"

ENV_PREFIX: str = "FABNODE_"

PEERS_DIRNAME: str = "peers"
CAS_DIRNAME: str = "cas"
LOGS_DIRNAME: str = "logs"

# certificate lifetimes issued by the local CA
ROOT_CA_LIFETIME_DAYS: int = 3650
NODE_CERT_LIFETIME_DAYS: int = 365

PEER_COMMON_NAME: str = "peer"
PEER_ORGANIZATIONAL_UNIT: str = "peer"

# organizational-unit identifiers mapped to node roles in config.yaml
NODE_OU_ROLES: tuple[tuple[str, str], ...] = (
    ("ClientOUIdentifier", "client"),
    ("PeerOUIdentifier", "peer"),
    ("AdminOUIdentifier", "admin"),
    ("OrdererOUIdentifier", "orderer"),
)
