"""Tests for device_keyring.crypto.signer — ECDSA Signer."""
from __future__ import annotations

import base64

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec

from device_keyring.crypto.signer import Signer
from device_keyring.errors import SigningFailed
from device_keyring.keys.keypair import KeyPair, KeyRole
from device_keyring.keys.persisted import PersistedKeyPair
from device_keyring.store.base import AccessPolicy
from device_keyring.store.key_material import KeyMaterialStore
from device_keyring.store.memory import InMemoryBlobStore


@pytest.fixture()
def signing_keys() -> PersistedKeyPair:
    return PersistedKeyPair(
        KeyMaterialStore(InMemoryBlobStore()), tag="my_app.eccSigningKey", role=KeyRole.SIGNING
    )


@pytest.fixture()
def signer(signing_keys: PersistedKeyPair) -> Signer:
    return Signer(signing_keys, curve="P-256")


class TestConstruction:
    def test_rejects_agreement_keys(self) -> None:
        agreement = PersistedKeyPair(
            KeyMaterialStore(InMemoryBlobStore()), tag="agree", role=KeyRole.AGREEMENT
        )
        with pytest.raises(ValueError, match="signing"):
            Signer(agreement, curve="P-256")


class TestSign:
    def test_signature_is_der(self, signer: Signer) -> None:
        signature = signer.sign(b"payload")
        assert signature[0] == 0x30

    def test_verifies_with_cryptography(
        self, signer: Signer, signing_keys: PersistedKeyPair
    ) -> None:
        signature = signer.sign("payload")
        signing_keys.get_or_create().public_key.verify(
            signature, b"payload", ec.ECDSA(hashes.SHA256())
        )

    def test_sign_b64(self, signer: Signer, signing_keys: PersistedKeyPair) -> None:
        encoded = signer.sign_b64(b"payload")
        public_key = signing_keys.get_or_create().public_key
        assert signer.verify(b"payload", base64.b64decode(encoded), public_key)

    def test_unavailable_key_raises_signing_failed(self) -> None:
        blob_store = InMemoryBlobStore()
        key_store = KeyMaterialStore(blob_store, policy=AccessPolicy.WHEN_UNLOCKED)
        PersistedKeyPair(key_store, tag="sig", role=KeyRole.SIGNING).get_or_create()
        blob_store.lock()

        signer = Signer(PersistedKeyPair(key_store, tag="sig", role=KeyRole.SIGNING), "P-256")
        with pytest.raises(SigningFailed):
            signer.sign(b"payload")


class TestVerify:
    def test_round_trip(self, signer: Signer, signing_keys: PersistedKeyPair) -> None:
        public_key = signing_keys.get_or_create().public_key
        assert signer.verify(b"message", signer.sign(b"message"), public_key)

    def test_round_trip_b64_everything(
        self, signer: Signer, signing_keys: PersistedKeyPair
    ) -> None:
        der_b64 = base64.b64encode(signing_keys.get_or_create().public_bytes_der()).decode()
        assert signer.verify("message", signer.sign_b64("message"), der_b64)

    def test_compressed_public_key(self, signer: Signer, signing_keys: PersistedKeyPair) -> None:
        compressed = signing_keys.get_or_create().public_bytes_compressed()
        assert signer.verify(b"message", signer.sign(b"message"), compressed)

    def test_wrong_message(self, signer: Signer, signing_keys: PersistedKeyPair) -> None:
        public_key = signing_keys.get_or_create().public_key
        assert signer.verify(b"other", signer.sign(b"message"), public_key) is False

    def test_wrong_key(self, signer: Signer) -> None:
        stranger = KeyPair.generate(KeyRole.SIGNING).public_key
        assert signer.verify(b"message", signer.sign(b"message"), stranger) is False

    def test_malformed_der(self, signer: Signer, signing_keys: PersistedKeyPair) -> None:
        public_key = signing_keys.get_or_create().public_key
        assert signer.verify(b"message", b"\x30\x02\x00", public_key) is False

    def test_empty_signature(self, signer: Signer, signing_keys: PersistedKeyPair) -> None:
        public_key = signing_keys.get_or_create().public_key
        assert signer.verify(b"message", b"", public_key) is False

    def test_bad_base64_signature(self, signer: Signer, signing_keys: PersistedKeyPair) -> None:
        public_key = signing_keys.get_or_create().public_key
        assert signer.verify(b"message", "%%%", public_key) is False

    def test_unencodable_message(self, signer: Signer, signing_keys: PersistedKeyPair) -> None:
        public_key = signing_keys.get_or_create().public_key
        assert signer.verify("\ud800", signer.sign(b"hello"), public_key) is False

    def test_undecodable_public_key(self, signer: Signer) -> None:
        assert signer.verify(b"message", signer.sign(b"message"), b"\x04junk") is False

    def test_foreign_curve_key(self, signer: Signer) -> None:
        other = KeyPair.generate(KeyRole.SIGNING, curve="P-384")
        assert signer.verify(b"message", signer.sign(b"message"), other.public_key) is False

    def test_p384_signer_uses_sha384(self) -> None:
        keys = PersistedKeyPair(
            KeyMaterialStore(InMemoryBlobStore()),
            tag="sig",
            role=KeyRole.SIGNING,
            curve="P-384",
        )
        signer = Signer(keys, curve="P-384")
        signature = signer.sign(b"message")
        keys.get_or_create().public_key.verify(signature, b"message", ec.ECDSA(hashes.SHA384()))
        assert signer.verify(b"message", signature, keys.get_or_create().public_key)
