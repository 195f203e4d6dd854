"""Tests for device_keyring.manager — KeySessionManager end to end."""
from __future__ import annotations

import base64
from pathlib import Path

import pytest

from device_keyring.config import ManagerConfig
from device_keyring.errors import (
    DecodingFailed,
    DecryptionFailed,
    EncryptionFailed,
    KeyAgreementFailed,
    KeyRetrievalFailed,
)
from device_keyring.keys.keypair import KeyPair, KeyRole
from device_keyring.manager import KeySessionManager
from device_keyring.store.filesystem import FilesystemBlobStore
from device_keyring.store.memory import InMemoryBlobStore

_MESSAGE = "Hello, Secure World!"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture()
def manager(blob_store: InMemoryBlobStore) -> KeySessionManager:
    return KeySessionManager(blob_store)


@pytest.fixture()
def peer() -> KeySessionManager:
    return KeySessionManager(InMemoryBlobStore())


@pytest.fixture()
def paired(manager: KeySessionManager, peer: KeySessionManager) -> KeySessionManager:
    manager.establish_session(peer.get_agreement_public_key())
    peer.establish_session(manager.get_agreement_public_key())
    return manager


# ---------------------------------------------------------------------------
# Concrete scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_derive_encrypt_decrypt(self, manager: KeySessionManager) -> None:
        peer_public = KeyPair.generate(KeyRole.AGREEMENT).public_bytes_compressed()

        key = manager.derive_shared_secret(peer_public)
        sealed = manager.encrypt(_MESSAGE, key=key)

        assert len(key) == 32
        assert len(sealed.nonce) == 12
        assert len(sealed.tag) == 16
        plaintext = manager.decrypt(sealed.ciphertext, sealed.nonce, sealed.tag, key=key)
        assert plaintext.decode("utf-8") == _MESSAGE

    def test_signing_key_created_and_persisted(
        self, manager: KeySessionManager, blob_store: InMemoryBlobStore
    ) -> None:
        tag = manager.config.signing_tag
        assert blob_store.get(tag) is None

        pair = manager.get_or_create_signing_key_pair()

        raw = manager.key_store.load(tag)
        assert raw is not None
        rebuilt = KeyPair.from_raw_private_bytes(KeyRole.SIGNING, raw)
        assert rebuilt.public_bytes_compressed() == pair.public_bytes_compressed()


# ---------------------------------------------------------------------------
# Identity lifecycle
# ---------------------------------------------------------------------------


class TestIdentity:
    def test_public_key_is_compressed_point(self, manager: KeySessionManager) -> None:
        public = manager.get_agreement_public_key()
        assert len(public) == 33
        assert base64.b64decode(manager.get_agreement_public_key_b64()) == public

    def test_roles_use_distinct_keys(self, manager: KeySessionManager) -> None:
        agreement = manager.get_or_create_agreement_key_pair()
        signing = manager.get_or_create_signing_key_pair()
        assert agreement.raw_private_bytes() != signing.raw_private_bytes()
        assert agreement.role is KeyRole.AGREEMENT
        assert signing.role is KeyRole.SIGNING

    def test_identity_survives_restart(self, blob_store: InMemoryBlobStore) -> None:
        first = KeySessionManager(blob_store)
        agreement = first.get_agreement_public_key()
        signing = first.export_signing_public_key()

        second = KeySessionManager(blob_store)
        assert second.get_agreement_public_key() == agreement
        assert second.export_signing_public_key() == signing

    def test_identity_survives_restart_on_disk(self, tmp_path: Path) -> None:
        first = KeySessionManager(FilesystemBlobStore(tmp_path))
        agreement = first.get_agreement_public_key()

        second = KeySessionManager(FilesystemBlobStore(tmp_path))
        assert second.get_agreement_public_key() == agreement

    def test_initialize_creates_both_records(
        self, manager: KeySessionManager, blob_store: InMemoryBlobStore
    ) -> None:
        manager.initialize()
        assert blob_store.tags() == sorted(
            [manager.config.agreement_tag, manager.config.signing_tag]
        )

    def test_app_identifier_namespaces_records(self, blob_store: InMemoryBlobStore) -> None:
        a = KeySessionManager(blob_store, ManagerConfig(app_identifier="app_a"))
        b = KeySessionManager(blob_store, ManagerConfig(app_identifier="app_b"))
        assert a.get_agreement_public_key() != b.get_agreement_public_key()

    def test_reset_identity(self, paired: KeySessionManager) -> None:
        before = paired.get_agreement_public_key()
        paired.reset_identity()
        assert paired.load_shared_secret() is None
        assert paired.get_agreement_public_key() != before

    def test_corrupt_record_surfaces(self, blob_store: InMemoryBlobStore) -> None:
        manager = KeySessionManager(blob_store)
        manager.key_store.save(manager.config.agreement_tag, b"\xff" * 32)
        with pytest.raises(KeyRetrievalFailed):
            manager.get_agreement_public_key()

    def test_corrupt_record_regenerates_when_configured(
        self, blob_store: InMemoryBlobStore
    ) -> None:
        config = ManagerConfig(regenerate_on_corrupt_key=True)
        manager = KeySessionManager(blob_store, config)
        manager.key_store.save(config.agreement_tag, b"\xff" * 32)
        assert len(manager.get_agreement_public_key()) == 33


# ---------------------------------------------------------------------------
# Sessions and sealing
# ---------------------------------------------------------------------------


class TestSession:
    def test_both_sides_share_a_key(
        self, paired: KeySessionManager, peer: KeySessionManager
    ) -> None:
        assert paired.load_shared_secret() == peer.load_shared_secret()

    def test_peer_can_open_sealed_message(
        self, paired: KeySessionManager, peer: KeySessionManager
    ) -> None:
        wire = paired.encrypt(_MESSAGE).to_wire()
        assert peer.decrypt_wire(wire) == _MESSAGE.encode("utf-8")

    def test_base64_peer_key(self, manager: KeySessionManager, peer: KeySessionManager) -> None:
        secret = manager.establish_session(peer.get_agreement_public_key_b64())
        assert manager.load_shared_secret() == secret

    def test_session_survives_restart(
        self, paired: KeySessionManager, blob_store: InMemoryBlobStore
    ) -> None:
        sealed = paired.encrypt(_MESSAGE)
        restarted = KeySessionManager(blob_store)
        assert restarted.decrypt(sealed.ciphertext, sealed.nonce, sealed.tag) == (
            _MESSAGE.encode("utf-8")
        )

    def test_invalid_peer_key(self, manager: KeySessionManager) -> None:
        with pytest.raises(KeyAgreementFailed):
            manager.establish_session(b"\x02" + b"\xff" * 32)

    def test_encrypt_without_session(self, manager: KeySessionManager) -> None:
        with pytest.raises(EncryptionFailed, match="establish_session"):
            manager.encrypt(_MESSAGE)

    def test_decrypt_without_session(self, manager: KeySessionManager) -> None:
        with pytest.raises(DecryptionFailed):
            manager.decrypt(b"", b"\x00" * 12, b"\x00" * 16)

    def test_decrypt_wire_decodes_before_key_lookup(self, manager: KeySessionManager) -> None:
        with pytest.raises(DecodingFailed):
            manager.decrypt_wire({"ciphertext": "AA==", "nonce": "@@"})

    def test_clear_session(self, paired: KeySessionManager) -> None:
        paired.clear_session()
        assert paired.load_shared_secret() is None

    def test_associated_data(self, paired: KeySessionManager, peer: KeySessionManager) -> None:
        sealed = paired.encrypt(_MESSAGE, associated_data=b"chat-v1")
        with pytest.raises(DecryptionFailed):
            peer.decrypt(sealed.ciphertext, sealed.nonce, sealed.tag)
        assert peer.decrypt(
            sealed.ciphertext, sealed.nonce, sealed.tag, associated_data=b"chat-v1"
        ) == _MESSAGE.encode("utf-8")


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------


class TestSignatures:
    def test_verify_own_signature(self, manager: KeySessionManager) -> None:
        assert manager.verify("payload", manager.sign("payload"))

    def test_peer_verifies_with_exported_key(
        self, manager: KeySessionManager, peer: KeySessionManager
    ) -> None:
        signature = manager.sign_b64("payload")
        assert peer.verify("payload", signature, manager.export_signing_public_key())

    def test_wrong_message_is_false(self, manager: KeySessionManager) -> None:
        assert manager.verify("other", manager.sign("payload")) is False

    def test_agreement_key_does_not_verify(self, manager: KeySessionManager) -> None:
        signature = manager.sign("payload")
        assert manager.verify("payload", signature, manager.get_agreement_public_key()) is False
