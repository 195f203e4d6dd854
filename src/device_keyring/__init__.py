"""device-keyring — device key management, ECDH sessions, AES-GCM and ECDSA.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import device_keyring
>>> device_keyring.__version__
'0.1.0'

Quick start
-----------
::

    from device_keyring import InMemoryBlobStore, KeySessionManager

    manager = KeySessionManager(InMemoryBlobStore())
    peer = KeySessionManager(InMemoryBlobStore())

    manager.establish_session(peer.get_agreement_public_key())
    sealed = manager.encrypt("Hello, Secure World!")
    assert manager.decrypt(sealed.ciphertext, sealed.nonce, sealed.tag) == b"Hello, Secure World!"
"""
from __future__ import annotations

__version__: str = "0.1.0"

from device_keyring.config import ManagerConfig
from device_keyring.crypto.cipher import AuthenticatedCipher, SealedMessage
from device_keyring.crypto.signer import Signer
from device_keyring.errors import (
    DecodingFailed,
    DecryptionFailed,
    DeviceKeyringError,
    EncryptionFailed,
    KeyAgreementFailed,
    KeyGenerationFailed,
    KeyRetrievalFailed,
    KeyStorageFailed,
    SigningFailed,
)
from device_keyring.keys.keypair import KeyPair, KeyRole
from device_keyring.keys.persisted import PersistedKeyPair
from device_keyring.manager import KeySessionManager
from device_keyring.session.secret import SessionSecretManager
from device_keyring.store.base import (
    AccessPolicy,
    BlobAccessDenied,
    BlobStoreError,
    SecureBlobStore,
)
from device_keyring.store.filesystem import FilesystemBlobStore
from device_keyring.store.key_material import KeyMaterialStore
from device_keyring.store.memory import InMemoryBlobStore

__all__ = [
    "__version__",
    # manager
    "KeySessionManager",
    "ManagerConfig",
    # keys
    "KeyPair",
    "KeyRole",
    "PersistedKeyPair",
    # session / crypto
    "AuthenticatedCipher",
    "SealedMessage",
    "SessionSecretManager",
    "Signer",
    # storage
    "AccessPolicy",
    "BlobAccessDenied",
    "BlobStoreError",
    "FilesystemBlobStore",
    "InMemoryBlobStore",
    "KeyMaterialStore",
    "SecureBlobStore",
    # errors
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
