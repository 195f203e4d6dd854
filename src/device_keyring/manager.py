"""KeySessionManager — the device's key and session context.

The manager is an explicit context object: the application builds one at
start-up over a :class:`~device_keyring.store.base.SecureBlobStore` and
passes it to whatever needs cryptography. There is no module-level instance.

It owns:

* an agreement key pair (ECDH) and a signing key pair (ECDSA), both lazily
  loaded or generated once and then cached;
* the session secret derived from the agreement key and a peer public key;
* an AES-256-GCM cipher and an ECDSA signer.

Typical flow
------------
::

    manager = KeySessionManager(FilesystemBlobStore(Path("~/.device-keyring").expanduser()))
    my_key = manager.get_agreement_public_key_b64()   # send to the peer
    manager.establish_session(peer_key_b64)           # peer's reply
    sealed = manager.encrypt("Hello, Secure World!")  # uses the stored session key
    signature = manager.sign_b64("payload")
"""
from __future__ import annotations

import logging
from collections.abc import Mapping

from cryptography.hazmat.primitives.asymmetric import ec

from device_keyring.config import ManagerConfig
from device_keyring.crypto.cipher import AuthenticatedCipher, SealedMessage
from device_keyring.crypto.signer import Signer
from device_keyring.encoding import b64_encode
from device_keyring.errors import DecryptionFailed, EncryptionFailed
from device_keyring.keys.keypair import KeyPair, KeyRole
from device_keyring.keys.persisted import PersistedKeyPair
from device_keyring.session.secret import SessionSecretManager
from device_keyring.store.base import SecureBlobStore
from device_keyring.store.key_material import KeyMaterialStore

logger = logging.getLogger(__name__)

PeerPublicKey = bytes | str | ec.EllipticCurvePublicKey


class KeySessionManager:
    """Key pairs, session secret, sealing and signing for one device identity.

    Thread-safe: key pair initialisation is serialised, and every other
    operation works on immutable, already established keys.

    Parameters
    ----------
    store:
        Secure blob store holding the three records.
    config:
        Manager settings. Defaults to :class:`ManagerConfig` defaults.
    """

    def __init__(self, store: SecureBlobStore, config: ManagerConfig | None = None) -> None:
        self._config = config or ManagerConfig()
        self._key_store = KeyMaterialStore(store, policy=self._config.access_policy)

        self._agreement = PersistedKeyPair(
            self._key_store,
            tag=self._config.agreement_tag,
            role=KeyRole.AGREEMENT,
            curve=self._config.curve,
            regenerate_on_corrupt=self._config.regenerate_on_corrupt_key,
        )
        self._signing = PersistedKeyPair(
            self._key_store,
            tag=self._config.signing_tag,
            role=KeyRole.SIGNING,
            curve=self._config.curve,
            regenerate_on_corrupt=self._config.regenerate_on_corrupt_key,
        )
        self._session = SessionSecretManager(
            self._agreement,
            self._key_store,
            tag=self._config.shared_secret_tag,
            curve=self._config.curve,
        )
        self._cipher = AuthenticatedCipher()
        self._signer = Signer(self._signing, curve=self._config.curve)

    @property
    def config(self) -> ManagerConfig:
        return self._config

    @property
    def key_store(self) -> KeyMaterialStore:
        return self._key_store

    def initialize(self) -> None:
        """Load or generate both key pairs now instead of on first use."""
        self.get_or_create_agreement_key_pair()
        self.get_or_create_signing_key_pair()

    # ------------------------------------------------------------------
    # Agreement key pair
    # ------------------------------------------------------------------

    def get_or_create_agreement_key_pair(self) -> KeyPair:
        """Return the ECDH key pair, loading or generating it once."""
        return self._agreement.get_or_create()

    def get_agreement_public_key(self) -> bytes:
        """Return the agreement public key as a compressed X9.62 point."""
        return self.get_or_create_agreement_key_pair().public_bytes_compressed()

    def get_agreement_public_key_b64(self) -> str:
        """Return the agreement public key in base64 transport form."""
        public_key = b64_encode(self.get_agreement_public_key())
        logger.debug("Agreement public key (base64): %s", public_key)
        return public_key

    # ------------------------------------------------------------------
    # Signing key pair
    # ------------------------------------------------------------------

    def get_or_create_signing_key_pair(self) -> KeyPair:
        """Return the ECDSA key pair, loading or generating it once."""
        return self._signing.get_or_create()

    def get_signing_public_key(self) -> ec.EllipticCurvePublicKey:
        return self.get_or_create_signing_key_pair().public_key

    def export_signing_public_key(self) -> str:
        """Return the signing public key as base64 DER SubjectPublicKeyInfo."""
        return b64_encode(self.get_or_create_signing_key_pair().public_bytes_der())

    def reset_identity(self) -> None:
        """Delete both key pairs and the session secret.

        The next access generates a fresh identity.
        """
        self._session.clear_shared_secret()
        self._agreement.reset()
        self._signing.reset()

    # ------------------------------------------------------------------
    # Session secret
    # ------------------------------------------------------------------

    def derive_shared_secret(self, peer_public_key: PeerPublicKey) -> bytes:
        """Derive (without storing) the 32-byte key shared with the peer."""
        return self._session.derive_shared_secret(peer_public_key)

    def save_shared_secret(self, secret: bytes) -> None:
        self._session.save_shared_secret(secret)

    def load_shared_secret(self) -> bytes | None:
        return self._session.load_shared_secret()

    def establish_session(self, peer_public_key: PeerPublicKey) -> bytes:
        """Derive the key shared with the peer and make it the current session key."""
        secret = self._session.establish_session(peer_public_key)
        logger.info("Established session secret with peer")
        return secret

    def clear_session(self) -> None:
        self._session.clear_shared_secret()

    # ------------------------------------------------------------------
    # Authenticated encryption
    # ------------------------------------------------------------------

    def encrypt(
        self,
        plaintext: bytes | str,
        key: bytes | None = None,
        associated_data: bytes | None = None,
    ) -> SealedMessage:
        """Seal *plaintext* with *key*, or with the stored session key.

        Raises
        ------
        EncryptionFailed
            If no key is given and no session secret is established, or
            sealing fails.
        """
        if key is None:
            key = self._session.load_shared_secret()
            if key is None:
                raise EncryptionFailed(
                    "No session secret established; call establish_session() first"
                )
        return self._cipher.encrypt(plaintext, key, associated_data)

    def decrypt(
        self,
        ciphertext: bytes,
        nonce: bytes,
        tag: bytes,
        key: bytes | None = None,
        associated_data: bytes | None = None,
    ) -> bytes:
        """Open a sealed payload with *key*, or with the stored session key.

        Raises
        ------
        DecryptionFailed
            If no key is available, or the payload fails authentication.
        """
        return self._cipher.decrypt(
            ciphertext, nonce, tag, self._decryption_key(key), associated_data
        )

    def decrypt_wire(
        self,
        payload: Mapping[str, object],
        key: bytes | None = None,
        associated_data: bytes | None = None,
    ) -> bytes:
        """Decode a base64 ``{ciphertext, nonce, tag}`` mapping and open it.

        Raises
        ------
        DecodingFailed
            If the mapping is malformed; checked before any key lookup.
        DecryptionFailed
            If no key is available, or the payload fails authentication.
        """
        message = SealedMessage.from_wire(payload)
        return self._cipher.open_sealed(message, self._decryption_key(key), associated_data)

    def _decryption_key(self, key: bytes | None) -> bytes:
        if key is not None:
            return key
        stored = self._session.load_shared_secret()
        if stored is None:
            raise DecryptionFailed(
                "No session secret established; call establish_session() first"
            )
        return stored

    # ------------------------------------------------------------------
    # Signatures
    # ------------------------------------------------------------------

    def sign(self, message: bytes | str) -> bytes:
        """Return a DER ECDSA signature over *message* with the signing key."""
        return self._signer.sign(message)

    def sign_b64(self, message: bytes | str) -> str:
        return self._signer.sign_b64(message)

    def verify(
        self,
        message: bytes | str,
        signature: bytes | str,
        public_key: PeerPublicKey | None = None,
    ) -> bool:
        """Verify *signature* over *message*.

        *public_key* defaults to this device's own signing public key.
        Invalid signatures and undecodable keys yield False rather than an
        exception.
        """
        if public_key is None:
            public_key = self.get_signing_public_key()
        return self._signer.verify(message, signature, public_key)


__all__ = ["KeySessionManager"]
