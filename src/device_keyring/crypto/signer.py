"""Signer — ECDSA signatures with the device's signing key pair.

Signatures are DER encoded. The message is hashed with the curve's standard
digest (SHA-256 for P-256). Verification never raises: a malformed
signature, an undecodable or foreign public key, and a genuine mismatch all
yield ``False``.
"""
from __future__ import annotations

import logging

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import ec

from device_keyring.encoding import b64_decode, b64_encode, load_public_key
from device_keyring.errors import DeviceKeyringError, SigningFailed
from device_keyring.keys.keypair import KeyRole, curve_spec_for_key
from device_keyring.keys.persisted import PersistedKeyPair

logger = logging.getLogger(__name__)


def _as_bytes(data: bytes | str) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else bytes(data)


class Signer:
    """Sign and verify messages.

    Parameters
    ----------
    signing_keys:
        The device's persisted signing key pair. Must have the ``SIGNING``
        role; agreement keys are never used for signatures.
    curve:
        Curve name expected for verification keys given as bytes.
    """

    def __init__(self, signing_keys: PersistedKeyPair, curve: str) -> None:
        if signing_keys.role is not KeyRole.SIGNING:
            raise ValueError(
                f"Signer requires a signing key pair, got {signing_keys.role.value!r}"
            )
        self._signing_keys = signing_keys
        self._curve = curve

    def sign(self, message: bytes | str) -> bytes:
        """Return a DER-encoded ECDSA signature over *message*.

        Raises
        ------
        SigningFailed
            If the signing key cannot be obtained or the signature cannot be
            produced.
        """
        try:
            key_pair = self._signing_keys.get_or_create()
        except DeviceKeyringError as exc:
            raise SigningFailed(f"No signing key available: {exc}") from exc

        digest = key_pair.curve.new_digest()
        try:
            return key_pair.private_key.sign(_as_bytes(message), ec.ECDSA(digest))
        except ValueError as exc:
            raise SigningFailed(f"ECDSA signing failed: {exc}") from exc

    def sign_b64(self, message: bytes | str) -> str:
        """Return the base64 transport form of :meth:`sign`."""
        return b64_encode(self.sign(message))

    def verify(
        self,
        message: bytes | str,
        signature: bytes | str,
        public_key: bytes | str | ec.EllipticCurvePublicKey,
    ) -> bool:
        """Return True iff *signature* is a valid signature of *message*.

        Parameters
        ----------
        message:
            The signed data. ``str`` values are UTF-8 encoded.
        signature:
            DER signature bytes, or base64 text of them.
        public_key:
            Verification key: a key object, X9.62 or DER bytes, or base64
            text of either.
        """
        try:
            data = _as_bytes(message)
            key = load_public_key(public_key, curve=self._curve)
            if isinstance(signature, str):
                der = b64_decode(signature, field="signature")
            else:
                der = bytes(signature)
        except (TypeError, ValueError) as exc:
            logger.debug("Signature verification rejected undecodable input: %s", exc)
            return False

        digest = curve_spec_for_key(key).new_digest()
        try:
            key.verify(der, data, ec.ECDSA(digest))
        except InvalidSignature:
            return False
        return True


__all__ = ["Signer"]
