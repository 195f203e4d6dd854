"""Elliptic-curve key pairs — value type and persisted lifecycle."""
from __future__ import annotations

from device_keyring.keys.keypair import (
    DEFAULT_CURVE,
    SUPPORTED_CURVES,
    CurveSpec,
    KeyPair,
    KeyRole,
    curve_spec,
)
from device_keyring.keys.persisted import PersistedKeyPair

__all__ = [
    "DEFAULT_CURVE",
    "SUPPORTED_CURVES",
    "CurveSpec",
    "KeyPair",
    "KeyRole",
    "PersistedKeyPair",
    "curve_spec",
]
