"""SessionSecretManager — ECDH key agreement and session key persistence.

The session key is derived as::

    shared_x = ECDH(local_agreement_private_key, peer_public_key)
    session_key = HKDF-SHA256(shared_x, salt=b"", info=b"", length=32)

Derivation is deterministic: the same local key and peer key always yield
the same 32 bytes. The derived key is stored under a single tag; saving a
new key replaces the previous one, so there is at most one current session
secret per device.
"""
from __future__ import annotations

import logging

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from device_keyring.encoding import load_public_key
from device_keyring.errors import KeyAgreementFailed, KeyStorageFailed
from device_keyring.keys.keypair import KeyRole
from device_keyring.keys.persisted import PersistedKeyPair
from device_keyring.store.key_material import KeyMaterialStore

logger = logging.getLogger(__name__)

SESSION_KEY_LENGTH = 32

_HKDF_SALT = b""
_HKDF_INFO = b""


class SessionSecretManager:
    """Derive, save and load the device's current session key.

    Parameters
    ----------
    agreement_keys:
        The device's persisted agreement key pair. Must have the
        ``AGREEMENT`` role.
    store:
        Key material store used to persist the session key.
    tag:
        Record name for the session key; distinct from the key pair tags.
    curve:
        Curve that peer public keys must belong to.
    """

    def __init__(
        self,
        agreement_keys: PersistedKeyPair,
        store: KeyMaterialStore,
        tag: str,
        curve: str,
    ) -> None:
        if agreement_keys.role is not KeyRole.AGREEMENT:
            raise ValueError(
                f"Session secrets require an agreement key pair, got {agreement_keys.role.value!r}"
            )
        self._agreement_keys = agreement_keys
        self._store = store
        self._tag = tag
        self._curve = curve

    @property
    def tag(self) -> str:
        return self._tag

    def derive_shared_secret(
        self, peer_public_key: bytes | str | ec.EllipticCurvePublicKey
    ) -> bytes:
        """Derive the 32-byte session key shared with the peer.

        Parameters
        ----------
        peer_public_key:
            The peer's agreement public key: a key object, X9.62 or DER
            bytes, or base64 text of either.

        Returns
        -------
        bytes
            The 32-byte symmetric key.

        Raises
        ------
        KeyAgreementFailed
            If the peer key is undecodable, not on the configured curve, or
            the exchange fails.
        """
        try:
            peer_key = load_public_key(peer_public_key, curve=self._curve)
        except (TypeError, ValueError) as exc:
            raise KeyAgreementFailed(f"Invalid peer public key: {exc}") from exc

        local = self._agreement_keys.get_or_create()
        try:
            shared_x = local.private_key.exchange(ec.ECDH(), peer_key)
        except ValueError as exc:
            raise KeyAgreementFailed(f"ECDH exchange failed: {exc}") from exc

        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=SESSION_KEY_LENGTH,
            salt=_HKDF_SALT,
            info=_HKDF_INFO,
        )
        return hkdf.derive(shared_x)

    def save_shared_secret(self, secret: bytes) -> None:
        """Persist *secret* as the current session key, replacing any previous one.

        Raises
        ------
        KeyStorageFailed
            If *secret* is not 32 bytes or the store rejects the write.
        """
        if len(secret) != SESSION_KEY_LENGTH:
            raise KeyStorageFailed(
                f"Session key must be {SESSION_KEY_LENGTH} bytes, got {len(secret)}"
            )
        self._store.save(self._tag, secret)
        logger.info("Saved session secret under tag %r", self._tag)

    def load_shared_secret(self) -> bytes | None:
        """Return the current session key, or None if none has been saved."""
        return self._store.load(self._tag)

    def establish_session(
        self, peer_public_key: bytes | str | ec.EllipticCurvePublicKey
    ) -> bytes:
        """Derive the session key with the peer and persist it.

        The new key supersedes any previously stored session key.
        """
        secret = self.derive_shared_secret(peer_public_key)
        self.save_shared_secret(secret)
        return secret

    def clear_shared_secret(self) -> None:
        """Delete the stored session key, if any."""
        self._store.delete(self._tag)
        logger.info("Cleared session secret under tag %r", self._tag)


__all__ = ["SESSION_KEY_LENGTH", "SessionSecretManager"]
