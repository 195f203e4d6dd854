"""HTTP peer service mode for device-keyring.

Provides a lightweight stdlib-based HTTP API exposing a key and session
manager over the JSON wire vocabulary, without requiring any additional web
framework dependencies.
"""
from __future__ import annotations

from device_keyring.server.app import (
    PeerHTTPServer,
    PeerRequestHandler,
    create_server,
    run_server,
)

__all__ = ["PeerHTTPServer", "PeerRequestHandler", "create_server", "run_server"]
