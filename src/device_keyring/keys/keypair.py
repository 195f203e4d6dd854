"""Elliptic-curve key pairs and their raw encodings.

A :class:`KeyPair` holds only a private key; the public key is always the
image of the private scalar and is therefore exposed as a derived property
rather than a stored field.

Raw private key encoding
------------------------
Persisted private keys are the big-endian private scalar, left-padded to the
curve's byte size (32 bytes for P-256). This is the same representation a
platform keychain stores for a NIST P-curve key.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec


class KeyRole(str, enum.Enum):
    """Cryptographic role of a key pair. Roles are never interchangeable."""

    AGREEMENT = "agreement"
    SIGNING = "signing"


@dataclass(frozen=True)
class CurveSpec:
    """Parameters for one supported NIST curve.

    Parameters
    ----------
    name:
        Public name used in configuration (e.g. ``"P-256"``).
    curve:
        The ``cryptography`` curve class.
    digest:
        Hash class used for ECDSA over this curve.
    byte_size:
        Length of the raw private scalar and of a coordinate, in bytes.
    order:
        Order of the base point; valid private scalars lie in [1, order).
    """

    name: str
    curve: type[ec.EllipticCurve]
    digest: type[hashes.HashAlgorithm]
    byte_size: int
    order: int

    def new_curve(self) -> ec.EllipticCurve:
        return self.curve()

    def new_digest(self) -> hashes.HashAlgorithm:
        return self.digest()


SUPPORTED_CURVES: dict[str, CurveSpec] = {
    "P-256": CurveSpec(
        "P-256",
        ec.SECP256R1,
        hashes.SHA256,
        32,
        0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551,
    ),
    "P-384": CurveSpec(
        "P-384",
        ec.SECP384R1,
        hashes.SHA384,
        48,
        0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFC7634D81F4372DDF581A0DB248B0A77AECEC196ACCC52973,
    ),
    "P-521": CurveSpec(
        "P-521",
        ec.SECP521R1,
        hashes.SHA512,
        66,
        int(
            "01FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFA"
            "51868783BF2F966B7FCC0148F709A5D03BB5C9B8899C47AEBB6FB71E91386409",
            16,
        ),
    ),
}

DEFAULT_CURVE = "P-256"


def curve_spec(name: str) -> CurveSpec:
    """Return the :class:`CurveSpec` registered under *name*.

    Raises
    ------
    ValueError
        If *name* is not a supported curve.
    """
    try:
        return SUPPORTED_CURVES[name]
    except KeyError:
        raise ValueError(
            f"Unsupported curve {name!r}; expected one of {sorted(SUPPORTED_CURVES)}"
        ) from None


def curve_spec_for_key(key: ec.EllipticCurvePublicKey | ec.EllipticCurvePrivateKey) -> CurveSpec:
    """Return the :class:`CurveSpec` matching the curve of *key*."""
    for spec in SUPPORTED_CURVES.values():
        if key.curve.name == spec.curve.name:
            return spec
    raise ValueError(f"Unsupported curve {key.curve.name!r}")


@dataclass(frozen=True)
class KeyPair:
    """An elliptic-curve key pair bound to one role.

    Parameters
    ----------
    role:
        Whether this pair is used for key agreement or for signing.
    private_key:
        The private key. The public key is derived from it.
    """

    role: KeyRole
    private_key: ec.EllipticCurvePrivateKey

    @classmethod
    def generate(cls, role: KeyRole, curve: str = DEFAULT_CURVE) -> "KeyPair":
        """Generate a fresh random key pair on *curve*."""
        return cls(role=role, private_key=ec.generate_private_key(curve_spec(curve).new_curve()))

    @classmethod
    def from_raw_private_bytes(
        cls, role: KeyRole, raw: bytes, curve: str = DEFAULT_CURVE
    ) -> "KeyPair":
        """Rebuild a key pair from a raw private scalar.

        Raises
        ------
        ValueError
            If *raw* has the wrong length or is not a valid scalar for the
            curve (zero, or not below the group order).
        """
        spec = curve_spec(curve)
        if len(raw) != spec.byte_size:
            raise ValueError(
                f"Raw {spec.name} private key must be {spec.byte_size} bytes, got {len(raw)}"
            )
        private_value = int.from_bytes(raw, "big")
        if not 0 < private_value < spec.order:
            raise ValueError(f"Private scalar is out of range for {spec.name}")
        return cls(role=role, private_key=ec.derive_private_key(private_value, spec.new_curve()))

    @property
    def curve(self) -> CurveSpec:
        return curve_spec_for_key(self.private_key)

    @property
    def public_key(self) -> ec.EllipticCurvePublicKey:
        return self.private_key.public_key()

    def raw_private_bytes(self) -> bytes:
        """Return the fixed-length big-endian private scalar."""
        value = self.private_key.private_numbers().private_value
        return value.to_bytes(self.curve.byte_size, "big")

    def public_bytes_compressed(self) -> bytes:
        """Return the compressed X9.62 encoding of the public key."""
        return self.public_key.public_bytes(
            serialization.Encoding.X962, serialization.PublicFormat.CompressedPoint
        )

    def public_bytes_der(self) -> bytes:
        """Return the DER SubjectPublicKeyInfo encoding of the public key."""
        return self.public_key.public_bytes(
            serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
        )

    def __repr__(self) -> str:
        # Never include the private scalar.
        return f"KeyPair(role={self.role.value!r}, curve={self.curve.name!r})"


__all__ = [
    "DEFAULT_CURVE",
    "SUPPORTED_CURVES",
    "CurveSpec",
    "KeyPair",
    "KeyRole",
    "curve_spec",
    "curve_spec_for_key",
]
