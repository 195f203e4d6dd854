"""Symmetric sealing and ECDSA signatures."""
from __future__ import annotations

from device_keyring.crypto.cipher import (
    KEY_LENGTH,
    NONCE_LENGTH,
    TAG_LENGTH,
    AuthenticatedCipher,
    SealedMessage,
    SealedMessageWire,
)
from device_keyring.crypto.signer import Signer

__all__ = [
    "KEY_LENGTH",
    "NONCE_LENGTH",
    "TAG_LENGTH",
    "AuthenticatedCipher",
    "SealedMessage",
    "SealedMessageWire",
    "Signer",
]
