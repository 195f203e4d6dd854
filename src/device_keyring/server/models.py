"""Pydantic request/response models for the device-keyring peer service.

Field names on the wire use the camelCase spelling peers already send
(``publicKey``); Python attributes use snake_case.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ExchangeRequest(_WireModel):
    """Request body for POST /exchange."""

    public_key: str = Field(alias="publicKey")


class ExchangeResponse(_WireModel):
    """Response body for POST /exchange."""

    public_key: str = Field(alias="publicKey")
    status: str = "established"


class PublicKeyResponse(_WireModel):
    """Response body for GET /public-key."""

    agreement_public_key: str = Field(alias="agreementPublicKey")
    signing_public_key: str = Field(alias="signingPublicKey")
    curve: str


class SignRequest(_WireModel):
    """Request body for POST /sign and POST /encrypt."""

    data: str


class SignResponse(_WireModel):
    """Response body for POST /sign."""

    signature: str
    public_key: str = Field(alias="publicKey")


class VerifyRequest(_WireModel):
    """Request body for POST /verify."""

    data: str
    signature: str
    public_key: str = Field(alias="publicKey")


class VerifyResponse(_WireModel):
    """Response body for POST /verify."""

    status: str
    error: str | None = None


class SealedResponse(_WireModel):
    """Response body for POST /encrypt."""

    ciphertext: str
    nonce: str
    tag: str


class DecryptResponse(_WireModel):
    """Response body for POST /decrypt."""

    plaintext: str


class HealthResponse(_WireModel):
    """Response body for GET /health."""

    status: str = "ok"
    service: str = "device-keyring"
    version: str
    session_established: bool = Field(default=False, alias="sessionEstablished")


class ErrorResponse(_WireModel):
    """Standard error response body."""

    error: str
    detail: str = ""


__all__ = [
    "DecryptResponse",
    "ErrorResponse",
    "ExchangeRequest",
    "ExchangeResponse",
    "HealthResponse",
    "PublicKeyResponse",
    "SealedResponse",
    "SignRequest",
    "SignResponse",
    "VerifyRequest",
    "VerifyResponse",
]
