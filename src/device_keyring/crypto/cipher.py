"""AuthenticatedCipher — AES-256-GCM sealing with detached nonce and tag.

Sealed messages are carried as three independent fields::

    {"ciphertext": "<base64>", "nonce": "<base64, 12 bytes>", "tag": "<base64, 16 bytes>"}

Every call to :meth:`AuthenticatedCipher.encrypt` draws a fresh random
96-bit nonce, so callers never choose nonces themselves.

An optional *associated_data* argument binds a context identifier (for
example a protocol or session name) to the ciphertext without encrypting
it. Peers that bind nothing interoperate by passing ``None`` on both sides.
"""
from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import (
    BaseModel,
    ConfigDict,
    StrictStr,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from device_keyring.encoding import b64_decode, b64_encode
from device_keyring.errors import DecodingFailed, DecryptionFailed, EncryptionFailed

logger = logging.getLogger(__name__)

KEY_LENGTH = 32
NONCE_LENGTH = 12
TAG_LENGTH = 16


@dataclass(frozen=True)
class SealedMessage:
    """Output of one encryption.

    Parameters
    ----------
    ciphertext:
        Encrypted payload, same length as the plaintext.
    nonce:
        The 12-byte nonce used for this message.
    tag:
        The 16-byte GCM authentication tag.
    """

    ciphertext: bytes
    nonce: bytes
    tag: bytes

    def to_wire(self) -> dict[str, str]:
        """Return the base64 transport form."""
        return {
            "ciphertext": b64_encode(self.ciphertext),
            "nonce": b64_encode(self.nonce),
            "tag": b64_encode(self.tag),
        }

    @classmethod
    def from_wire(cls, payload: Mapping[str, object]) -> "SealedMessage":
        """Decode the base64 transport form.

        Raises
        ------
        DecodingFailed
            If a field is missing, not a string, or not valid base64.
        """
        try:
            wire = SealedMessageWire.model_validate(payload)
        except ValidationError as exc:
            raise DecodingFailed(f"Malformed sealed message: {exc}") from exc
        return wire.to_sealed()


class SealedMessageWire(BaseModel):
    """Validated base64 wire representation of a :class:`SealedMessage`."""

    model_config = ConfigDict(extra="ignore")

    ciphertext: StrictStr
    nonce: StrictStr
    tag: StrictStr

    @field_validator("ciphertext", "nonce", "tag")
    @classmethod
    def _must_be_base64(cls, value: str, info: ValidationInfo) -> str:
        b64_decode(value, field=str(info.field_name))
        return value

    def to_sealed(self) -> SealedMessage:
        return SealedMessage(
            ciphertext=b64_decode(self.ciphertext, field="ciphertext"),
            nonce=b64_decode(self.nonce, field="nonce"),
            tag=b64_decode(self.tag, field="tag"),
        )


def _as_bytes(data: bytes | str) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else bytes(data)


class AuthenticatedCipher:
    """Seal and open payloads with AES-256-GCM.

    Stateless; one instance can be shared freely between threads.

    Example
    -------
    ::

        cipher = AuthenticatedCipher()
        sealed = cipher.encrypt(b"Hello, Secure World!", key)
        assert cipher.decrypt(sealed.ciphertext, sealed.nonce, sealed.tag, key) == b"Hello, Secure World!"
    """

    def encrypt(
        self,
        plaintext: bytes | str,
        key: bytes,
        associated_data: bytes | None = None,
    ) -> SealedMessage:
        """Encrypt *plaintext* under *key* with a fresh random nonce.

        Parameters
        ----------
        plaintext:
            Payload to seal. ``str`` values are UTF-8 encoded.
        key:
            The 32-byte symmetric key.
        associated_data:
            Optional data authenticated alongside the ciphertext.

        Raises
        ------
        EncryptionFailed
            If the key is not 32 bytes or no randomness is available.
        """
        if len(key) != KEY_LENGTH:
            raise EncryptionFailed(f"AES-256-GCM key must be {KEY_LENGTH} bytes, got {len(key)}")
        try:
            nonce = os.urandom(NONCE_LENGTH)
        except OSError as exc:
            raise EncryptionFailed(f"Could not generate a nonce: {exc}") from exc

        try:
            sealed = AESGCM(key).encrypt(nonce, _as_bytes(plaintext), associated_data)
        except (ValueError, OverflowError) as exc:
            raise EncryptionFailed(f"AES-GCM sealing failed: {exc}") from exc

        return SealedMessage(
            ciphertext=sealed[:-TAG_LENGTH],
            nonce=nonce,
            tag=sealed[-TAG_LENGTH:],
        )

    def decrypt(
        self,
        ciphertext: bytes,
        nonce: bytes,
        tag: bytes,
        key: bytes,
        associated_data: bytes | None = None,
    ) -> bytes:
        """Authenticate and decrypt a sealed payload.

        Raises
        ------
        DecryptionFailed
            If the key, nonce or tag has the wrong length, or authentication
            fails. No plaintext is returned on failure.
        """
        if len(key) != KEY_LENGTH:
            raise DecryptionFailed(f"AES-256-GCM key must be {KEY_LENGTH} bytes, got {len(key)}")
        if len(nonce) != NONCE_LENGTH:
            raise DecryptionFailed(f"Nonce must be {NONCE_LENGTH} bytes, got {len(nonce)}")
        if len(tag) != TAG_LENGTH:
            raise DecryptionFailed(f"Tag must be {TAG_LENGTH} bytes, got {len(tag)}")

        try:
            return AESGCM(key).decrypt(nonce, bytes(ciphertext) + bytes(tag), associated_data)
        except InvalidTag:
            logger.debug("AES-GCM authentication failed")
            raise DecryptionFailed(
                "Authentication failed: message was tampered with or the key is wrong"
            ) from None

    def open_sealed(
        self,
        message: SealedMessage,
        key: bytes,
        associated_data: bytes | None = None,
    ) -> bytes:
        """Decrypt a :class:`SealedMessage`."""
        return self.decrypt(message.ciphertext, message.nonce, message.tag, key, associated_data)

    def decrypt_wire(
        self,
        payload: Mapping[str, object],
        key: bytes,
        associated_data: bytes | None = None,
    ) -> bytes:
        """Decode a base64 ``{ciphertext, nonce, tag}`` mapping and decrypt it.

        Raises
        ------
        DecodingFailed
            If a field is missing or not valid base64. Raised before any
            decryption is attempted.
        DecryptionFailed
            If the decoded message fails authentication.
        """
        message = SealedMessage.from_wire(payload)
        return self.open_sealed(message, key, associated_data)


__all__ = [
    "KEY_LENGTH",
    "NONCE_LENGTH",
    "TAG_LENGTH",
    "AuthenticatedCipher",
    "SealedMessage",
    "SealedMessageWire",
]
