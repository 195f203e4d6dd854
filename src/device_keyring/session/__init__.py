"""Session secrets — ECDH-derived symmetric keys shared with a peer."""
from __future__ import annotations

from device_keyring.session.secret import SESSION_KEY_LENGTH, SessionSecretManager

__all__ = ["SESSION_KEY_LENGTH", "SessionSecretManager"]
