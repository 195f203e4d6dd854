"""Route handler functions for the device-keyring peer service.

Each function accepts the :class:`~device_keyring.manager.KeySessionManager`
serving the request plus the parsed request data, and returns a tuple of
(status_code, response_dict). The HTTP handler in app.py calls these
functions and serializes the results to JSON.
"""
from __future__ import annotations

import logging

from pydantic import ValidationError

from device_keyring import __version__
from device_keyring.errors import (
    DecodingFailed,
    DecryptionFailed,
    DeviceKeyringError,
    EncryptionFailed,
    KeyAgreementFailed,
    SigningFailed,
)
from device_keyring.manager import KeySessionManager
from device_keyring.server.models import (
    DecryptResponse,
    ErrorResponse,
    ExchangeRequest,
    ExchangeResponse,
    HealthResponse,
    PublicKeyResponse,
    SealedResponse,
    SignRequest,
    SignResponse,
    VerifyRequest,
    VerifyResponse,
)

logger = logging.getLogger(__name__)

Response = tuple[int, dict[str, object]]


def _error(status: int, error: str, detail: str = "") -> Response:
    return status, ErrorResponse(error=error, detail=detail).model_dump()


def _no_session() -> Response:
    return _error(409, "No session", "Exchange public keys via POST /exchange first.")


def handle_health(manager: KeySessionManager) -> Response:
    """Handle GET /health."""
    response = HealthResponse(
        version=__version__,
        session_established=manager.load_shared_secret() is not None,
    )
    return 200, response.model_dump(by_alias=True)


def handle_public_key(manager: KeySessionManager) -> Response:
    """Handle GET /public-key."""
    response = PublicKeyResponse(
        agreement_public_key=manager.get_agreement_public_key_b64(),
        signing_public_key=manager.export_signing_public_key(),
        curve=manager.config.curve,
    )
    return 200, response.model_dump(by_alias=True)


def handle_exchange(manager: KeySessionManager, body: dict[str, object]) -> Response:
    """Handle POST /exchange.

    Derives and stores the session key shared with the caller's agreement
    key, and replies with this side's agreement public key so the caller can
    derive the same key. The secret itself is never transmitted.
    """
    try:
        request = ExchangeRequest.model_validate(body)
    except ValidationError as exc:
        return _error(422, "Validation error", str(exc))

    try:
        manager.establish_session(request.public_key)
    except KeyAgreementFailed as exc:
        return _error(422, "Key agreement failed", str(exc))

    response = ExchangeResponse(public_key=manager.get_agreement_public_key_b64())
    return 200, response.model_dump(by_alias=True)


def handle_sign(manager: KeySessionManager, body: dict[str, object]) -> Response:
    """Handle POST /sign."""
    try:
        request = SignRequest.model_validate(body)
    except ValidationError as exc:
        return _error(422, "Validation error", str(exc))

    try:
        signature = manager.sign_b64(request.data)
    except SigningFailed as exc:
        return _error(500, "Signing failed", str(exc))

    response = SignResponse(signature=signature, public_key=manager.export_signing_public_key())
    return 200, response.model_dump(by_alias=True)


def handle_verify(manager: KeySessionManager, body: dict[str, object]) -> Response:
    """Handle POST /verify.

    An invalid signature is a normal outcome and is reported with status
    200 and ``{"status": "invalid"}``.
    """
    try:
        request = VerifyRequest.model_validate(body)
    except ValidationError as exc:
        return _error(422, "Validation error", str(exc))

    if manager.verify(request.data, request.signature, request.public_key):
        response = VerifyResponse(status="verified")
    else:
        response = VerifyResponse(status="invalid", error="Signature verification failed")
    return 200, response.model_dump(by_alias=True, exclude_none=True)


def handle_encrypt(manager: KeySessionManager, body: dict[str, object]) -> Response:
    """Handle POST /encrypt with the current session key."""
    try:
        request = SignRequest.model_validate(body)
    except ValidationError as exc:
        return _error(422, "Validation error", str(exc))

    if manager.load_shared_secret() is None:
        return _no_session()

    try:
        sealed = manager.encrypt(request.data)
    except EncryptionFailed as exc:
        return _error(500, "Encryption failed", str(exc))

    return 200, SealedResponse(**sealed.to_wire()).model_dump()


def handle_decrypt(manager: KeySessionManager, body: dict[str, object]) -> Response:
    """Handle POST /decrypt with the current session key.

    Malformed base64 fields yield 400; authentication failures yield 422.
    """
    if manager.load_shared_secret() is None:
        return _no_session()

    try:
        plaintext = manager.decrypt_wire(body)
    except DecodingFailed as exc:
        return _error(400, "Decoding failed", str(exc))
    except DecryptionFailed as exc:
        logger.info("Rejected sealed message: %s", exc)
        return _error(422, "Decryption failed", str(exc))

    try:
        text = plaintext.decode("utf-8")
    except UnicodeDecodeError:
        return _error(422, "Decryption failed", "Plaintext is not valid UTF-8 text.")
    return 200, DecryptResponse(plaintext=text).model_dump()


def handle_store_error(exc: DeviceKeyringError) -> Response:
    """Map an unexpected key store failure to a 503 response."""
    logger.error("Key store failure: %s", exc)
    return _error(503, "Key store unavailable", str(exc))


__all__ = [
    "handle_decrypt",
    "handle_encrypt",
    "handle_exchange",
    "handle_health",
    "handle_public_key",
    "handle_sign",
    "handle_store_error",
    "handle_verify",
]
