"""Lifecycle and identity tooling for Hyperledger Fabric peer nodes."""

__version__ = "0.1.0"
