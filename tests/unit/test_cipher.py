"""Tests for device_keyring.crypto.cipher — AuthenticatedCipher and SealedMessage."""
from __future__ import annotations

import base64
import os

import pytest
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from device_keyring.crypto.cipher import (
    NONCE_LENGTH,
    TAG_LENGTH,
    AuthenticatedCipher,
    SealedMessage,
)
from device_keyring.errors import DecodingFailed, DecryptionFailed, EncryptionFailed


@pytest.fixture()
def cipher() -> AuthenticatedCipher:
    return AuthenticatedCipher()


@pytest.fixture()
def key() -> bytes:
    return os.urandom(32)


def _flip_bit(data: bytes, index: int = 0) -> bytes:
    mutable = bytearray(data)
    mutable[index] ^= 0x01
    return bytes(mutable)


# ---------------------------------------------------------------------------
# Round trip
# ---------------------------------------------------------------------------


class TestRoundTrip:
    def test_bytes_round_trip(self, cipher: AuthenticatedCipher, key: bytes) -> None:
        sealed = cipher.encrypt(b"Hello, Secure World!", key)
        assert cipher.decrypt(sealed.ciphertext, sealed.nonce, sealed.tag, key) == (
            b"Hello, Secure World!"
        )

    def test_str_is_utf8_encoded(self, cipher: AuthenticatedCipher, key: bytes) -> None:
        sealed = cipher.encrypt("héllo", key)
        assert cipher.open_sealed(sealed, key) == "héllo".encode("utf-8")

    def test_empty_plaintext(self, cipher: AuthenticatedCipher, key: bytes) -> None:
        sealed = cipher.encrypt(b"", key)
        assert sealed.ciphertext == b""
        assert len(sealed.tag) == TAG_LENGTH
        assert cipher.open_sealed(sealed, key) == b""

    def test_field_lengths(self, cipher: AuthenticatedCipher, key: bytes) -> None:
        sealed = cipher.encrypt(b"x" * 100, key)
        assert len(sealed.ciphertext) == 100
        assert len(sealed.nonce) == NONCE_LENGTH
        assert len(sealed.tag) == TAG_LENGTH

    def test_interoperates_with_combined_aesgcm(
        self, cipher: AuthenticatedCipher, key: bytes
    ) -> None:
        sealed = cipher.encrypt(b"payload", key)
        combined = AESGCM(key).decrypt(sealed.nonce, sealed.ciphertext + sealed.tag, None)
        assert combined == b"payload"

    def test_associated_data_round_trip(self, cipher: AuthenticatedCipher, key: bytes) -> None:
        sealed = cipher.encrypt(b"payload", key, associated_data=b"session-1")
        assert cipher.open_sealed(sealed, key, associated_data=b"session-1") == b"payload"

    def test_nonces_are_unique(self, cipher: AuthenticatedCipher, key: bytes) -> None:
        nonces = {cipher.encrypt(b"same", key).nonce for _ in range(1000)}
        assert len(nonces) == 1000


# ---------------------------------------------------------------------------
# Tamper detection
# ---------------------------------------------------------------------------


class TestTamperDetection:
    def test_flipped_ciphertext_bit(self, cipher: AuthenticatedCipher, key: bytes) -> None:
        sealed = cipher.encrypt(b"sensitive", key)
        with pytest.raises(DecryptionFailed):
            cipher.decrypt(_flip_bit(sealed.ciphertext), sealed.nonce, sealed.tag, key)

    def test_flipped_nonce_bit(self, cipher: AuthenticatedCipher, key: bytes) -> None:
        sealed = cipher.encrypt(b"sensitive", key)
        with pytest.raises(DecryptionFailed):
            cipher.decrypt(sealed.ciphertext, _flip_bit(sealed.nonce, 5), sealed.tag, key)

    def test_flipped_tag_bit(self, cipher: AuthenticatedCipher, key: bytes) -> None:
        sealed = cipher.encrypt(b"sensitive", key)
        with pytest.raises(DecryptionFailed):
            cipher.decrypt(sealed.ciphertext, sealed.nonce, _flip_bit(sealed.tag, 15), key)

    def test_wrong_key(self, cipher: AuthenticatedCipher, key: bytes) -> None:
        sealed = cipher.encrypt(b"sensitive", key)
        with pytest.raises(DecryptionFailed):
            cipher.open_sealed(sealed, os.urandom(32))

    def test_associated_data_mismatch(self, cipher: AuthenticatedCipher, key: bytes) -> None:
        sealed = cipher.encrypt(b"payload", key, associated_data=b"session-1")
        with pytest.raises(DecryptionFailed):
            cipher.open_sealed(sealed, key, associated_data=b"session-2")

    def test_missing_associated_data(self, cipher: AuthenticatedCipher, key: bytes) -> None:
        sealed = cipher.encrypt(b"payload", key, associated_data=b"session-1")
        with pytest.raises(DecryptionFailed):
            cipher.open_sealed(sealed, key)

    def test_failure_message_has_no_plaintext(
        self, cipher: AuthenticatedCipher, key: bytes
    ) -> None:
        sealed = cipher.encrypt(b"top-secret-words", key)
        with pytest.raises(DecryptionFailed) as exc_info:
            cipher.decrypt(_flip_bit(sealed.ciphertext), sealed.nonce, sealed.tag, key)
        assert "top-secret" not in str(exc_info.value)


# ---------------------------------------------------------------------------
# Invalid parameters
# ---------------------------------------------------------------------------


class TestInvalidParameters:
    @pytest.mark.parametrize("length", [0, 16, 31, 33])
    def test_encrypt_wrong_key_length(self, cipher: AuthenticatedCipher, length: int) -> None:
        with pytest.raises(EncryptionFailed, match="32 bytes"):
            cipher.encrypt(b"data", b"k" * length)

    def test_decrypt_wrong_key_length(self, cipher: AuthenticatedCipher, key: bytes) -> None:
        sealed = cipher.encrypt(b"data", key)
        with pytest.raises(DecryptionFailed):
            cipher.decrypt(sealed.ciphertext, sealed.nonce, sealed.tag, key[:16])

    def test_decrypt_short_nonce(self, cipher: AuthenticatedCipher, key: bytes) -> None:
        sealed = cipher.encrypt(b"data", key)
        with pytest.raises(DecryptionFailed, match="Nonce"):
            cipher.decrypt(sealed.ciphertext, sealed.nonce[:8], sealed.tag, key)

    def test_decrypt_short_tag(self, cipher: AuthenticatedCipher, key: bytes) -> None:
        sealed = cipher.encrypt(b"data", key)
        with pytest.raises(DecryptionFailed, match="Tag"):
            cipher.decrypt(sealed.ciphertext, sealed.nonce, sealed.tag[:12], key)


# ---------------------------------------------------------------------------
# Wire form
# ---------------------------------------------------------------------------


class TestWireForm:
    def test_to_wire_is_base64(self, cipher: AuthenticatedCipher, key: bytes) -> None:
        sealed = cipher.encrypt(b"data", key)
        wire = sealed.to_wire()
        assert set(wire) == {"ciphertext", "nonce", "tag"}
        assert base64.b64decode(wire["nonce"]) == sealed.nonce

    def test_decrypt_wire(self, cipher: AuthenticatedCipher, key: bytes) -> None:
        wire = cipher.encrypt(b"over the wire", key).to_wire()
        assert cipher.decrypt_wire(wire, key) == b"over the wire"

    def test_from_wire_ignores_extra_fields(self, cipher: AuthenticatedCipher, key: bytes) -> None:
        wire = {**cipher.encrypt(b"data", key).to_wire(), "version": 1}
        assert isinstance(SealedMessage.from_wire(wire), SealedMessage)

    @pytest.mark.parametrize("field", ["ciphertext", "nonce", "tag"])
    def test_missing_field(self, cipher: AuthenticatedCipher, key: bytes, field: str) -> None:
        wire = cipher.encrypt(b"data", key).to_wire()
        del wire[field]
        with pytest.raises(DecodingFailed):
            cipher.decrypt_wire(wire, key)

    @pytest.mark.parametrize("field", ["ciphertext", "nonce", "tag"])
    def test_invalid_base64_field(
        self, cipher: AuthenticatedCipher, key: bytes, field: str
    ) -> None:
        wire = cipher.encrypt(b"data", key).to_wire()
        wire[field] = "***not-base64***"
        with pytest.raises(DecodingFailed):
            cipher.decrypt_wire(wire, key)

    def test_non_string_field(self, cipher: AuthenticatedCipher, key: bytes) -> None:
        wire: dict[str, object] = {**cipher.encrypt(b"data", key).to_wire(), "nonce": 12345}
        with pytest.raises(DecodingFailed):
            SealedMessage.from_wire(wire)

    def test_decoding_failure_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            SealedMessage.from_wire({})

    def test_tampered_wire_is_decryption_failure(
        self, cipher: AuthenticatedCipher, key: bytes
    ) -> None:
        sealed = cipher.encrypt(b"data", key)
        wire = SealedMessage(sealed.ciphertext, sealed.nonce, _flip_bit(sealed.tag)).to_wire()
        with pytest.raises(DecryptionFailed):
            cipher.decrypt_wire(wire, key)
