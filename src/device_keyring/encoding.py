"""Transport encodings: base64 and elliptic-curve public key codecs.

Public keys travel in one of two binary forms:

* X9.62 points (compressed ``0x02``/``0x03`` prefix, or uncompressed
  ``0x04``), which carry no curve identifier;
* DER SubjectPublicKeyInfo (leading ``0x30``), which does.

Either form may be base64 encoded for transport.
"""
from __future__ import annotations

import base64
import binascii

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from device_keyring.errors import DecodingFailed
from device_keyring.keys.keypair import DEFAULT_CURVE, curve_spec

_DER_SEQUENCE = 0x30


def b64_encode(data: bytes) -> str:
    """Encode *data* as standard base64 text."""
    return base64.b64encode(data).decode("ascii")


def b64_decode(text: str, field: str = "value") -> bytes:
    """Strictly decode standard base64 *text*.

    Parameters
    ----------
    text:
        The base64 string.
    field:
        Name used in the error message.

    Raises
    ------
    DecodingFailed
        If *text* is not a string or is not valid base64.
    """
    if not isinstance(text, str):
        raise DecodingFailed(f"{field} must be a base64 string, got {type(text).__name__}")
    try:
        return base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise DecodingFailed(f"{field} is not valid base64: {exc}") from exc


def load_public_key(
    data: bytes | str | ec.EllipticCurvePublicKey,
    curve: str = DEFAULT_CURVE,
) -> ec.EllipticCurvePublicKey:
    """Parse an elliptic-curve public key in any supported transport form.

    Parameters
    ----------
    data:
        A key object (returned as is), X9.62 or DER bytes, or base64 text of
        either.
    curve:
        Curve to assume for X9.62 points, and to require for DER keys.

    Raises
    ------
    ValueError
        If the input cannot be decoded, is not an EC key, is not a valid
        point, or belongs to a different curve. :class:`DecodingFailed` (a
        ``ValueError``) is raised for bad base64.
    """
    spec = curve_spec(curve)
    if isinstance(data, ec.EllipticCurvePublicKey):
        key = data
    else:
        raw = b64_decode(data, field="public key") if isinstance(data, str) else bytes(data)
        if not raw:
            raise ValueError("Public key is empty")
        if raw[0] == _DER_SEQUENCE:
            try:
                loaded = serialization.load_der_public_key(raw)
            except UnsupportedAlgorithm as exc:
                raise ValueError(f"Unsupported public key algorithm: {exc}") from exc
            if not isinstance(loaded, ec.EllipticCurvePublicKey):
                raise ValueError(f"Expected an EC public key, got {type(loaded).__name__}")
            key = loaded
        else:
            key = ec.EllipticCurvePublicKey.from_encoded_point(spec.new_curve(), raw)

    if key.curve.name != spec.curve.name:
        raise ValueError(f"Public key is on {key.curve.name}, expected {spec.curve.name}")
    return key


def compressed_point(public_key: ec.EllipticCurvePublicKey) -> bytes:
    """Return the compressed X9.62 encoding of *public_key*."""
    return public_key.public_bytes(
        serialization.Encoding.X962, serialization.PublicFormat.CompressedPoint
    )


__all__ = ["b64_decode", "b64_encode", "compressed_point", "load_public_key"]
