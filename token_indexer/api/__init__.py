"""HTTP API around the ledger cache."""

from .server import create_app, start_server, stop_server

__all__ = ["create_app", "start_server", "stop_server"]
