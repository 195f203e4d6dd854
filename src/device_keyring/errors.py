"""Error taxonomy for device-keyring.

Every cryptographic or storage failure surfaced by the key and session
manager is one of the classes below. All of them derive from
:class:`DeviceKeyringError` so callers can catch the whole family at once.

Signature verification has no error class: an invalid signature is
reported as ``False`` by
:meth:`~device_keyring.crypto.signer.Signer.verify`.
"""
from __future__ import annotations


class DeviceKeyringError(Exception):
    """Base class for all device-keyring failures."""


class KeyGenerationFailed(DeviceKeyringError):
    """Raised when a new key pair cannot be generated or persisted."""


class KeyRetrievalFailed(DeviceKeyringError):
    """Raised when persisted key material cannot be read or parsed.

    Distinct from absence: a missing record is reported as ``None`` by the
    key material store and never raises.
    """


class KeyStorageFailed(DeviceKeyringError):
    """Raised when key material cannot be written to or removed from the store."""


class KeyAgreementFailed(DeviceKeyringError):
    """Raised when the peer public key is invalid or the ECDH exchange fails."""


class SigningFailed(DeviceKeyringError):
    """Raised when a message cannot be signed."""


class EncryptionFailed(DeviceKeyringError):
    """Raised when a payload cannot be sealed."""


class DecryptionFailed(DeviceKeyringError):
    """Raised when a sealed payload fails authentication or is malformed.

    The message never contains any part of the decrypted data.
    """


class DecodingFailed(DeviceKeyringError, ValueError):
    """Raised when a wire value is missing or is not valid base64."""


__all__ = [
    "DecodingFailed",
    "DecryptionFailed",
    "DeviceKeyringError",
    "EncryptionFailed",
    "KeyAgreementFailed",
    "KeyGenerationFailed",
    "KeyRetrievalFailed",
    "KeyStorageFailed",
    "SigningFailed",
]
