#!/usr/bin/env python3
"""Example: Quickstart

Demonstrates two devices establishing a session key over ECDH, exchanging a
sealed message, and signing a payload.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install device-keyring
"""
from __future__ import annotations

import device_keyring
from device_keyring import InMemoryBlobStore, KeySessionManager


def main() -> None:
    print(f"device-keyring version: {device_keyring.__version__}")

    # Step 1: Two devices, each with its own identity
    alice = KeySessionManager(InMemoryBlobStore())
    bob = KeySessionManager(InMemoryBlobStore())
    print(f"Alice agreement key: {alice.get_agreement_public_key_b64()}")
    print(f"Bob agreement key:   {bob.get_agreement_public_key_b64()}")

    # Step 2: Swap public keys and derive the same session key
    alice.establish_session(bob.get_agreement_public_key_b64())
    bob.establish_session(alice.get_agreement_public_key_b64())

    # Step 3: Seal on one side, open on the other
    wire = alice.encrypt("Hello, Secure World!").to_wire()
    print(f"Sealed: {wire}")
    print(f"Opened: {bob.decrypt_wire(wire).decode('utf-8')}")

    # Step 4: Sign and verify
    signature = alice.sign_b64("payload")
    valid = bob.verify("payload", signature, alice.export_signing_public_key())
    print(f"Signature valid: {valid}")

    print("\nQuickstart complete.")


if __name__ == "__main__":
    main()
