"""ManagerConfig — settings for a :class:`~device_keyring.manager.KeySessionManager`.

Record tags are namespaced by the application identifier, mirroring how a
platform keychain scopes items by bundle identifier::

    <app_identifier>.eccAgreementKey
    <app_identifier>.eccSigningKey
    <app_identifier>.sharedSecret
"""
from __future__ import annotations

import os
from dataclasses import dataclass

from device_keyring.keys.keypair import DEFAULT_CURVE, curve_spec
from device_keyring.store.base import AccessPolicy

DEFAULT_APP_IDENTIFIER = "my_app"

ENV_APP_IDENTIFIER = "DEVICE_KEYRING_APP_ID"
ENV_CURVE = "DEVICE_KEYRING_CURVE"


@dataclass(frozen=True)
class ManagerConfig:
    """Immutable manager configuration.

    Parameters
    ----------
    app_identifier:
        Namespace prefix for all record tags.
    curve:
        Curve used for both key pairs (``"P-256"``, ``"P-384"`` or ``"P-521"``).
    access_policy:
        Access policy applied to every persisted record.
    regenerate_on_corrupt_key:
        If True, an unparsable persisted private key is silently replaced by
        a new one (logged as a warning). If False, loading fails with
        :class:`~device_keyring.errors.KeyRetrievalFailed`.
    """

    app_identifier: str = DEFAULT_APP_IDENTIFIER
    curve: str = DEFAULT_CURVE
    access_policy: AccessPolicy = AccessPolicy.AFTER_FIRST_UNLOCK_ONLY
    regenerate_on_corrupt_key: bool = False

    def __post_init__(self) -> None:
        if not self.app_identifier or not self.app_identifier.strip():
            raise ValueError("app_identifier must not be empty")
        curve_spec(self.curve)
        if not isinstance(self.access_policy, AccessPolicy):
            raise ValueError(f"access_policy must be an AccessPolicy, got {self.access_policy!r}")

    @classmethod
    def from_env(cls, **overrides: object) -> "ManagerConfig":
        """Build a config from ``DEVICE_KEYRING_*`` environment variables.

        Explicit keyword *overrides* win over the environment.
        """
        values: dict[str, object] = {}
        if os.environ.get(ENV_APP_IDENTIFIER):
            values["app_identifier"] = os.environ[ENV_APP_IDENTIFIER]
        if os.environ.get(ENV_CURVE):
            values["curve"] = os.environ[ENV_CURVE]
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)  # type: ignore[arg-type]

    @property
    def agreement_tag(self) -> str:
        return f"{self.app_identifier}.eccAgreementKey"

    @property
    def signing_tag(self) -> str:
        return f"{self.app_identifier}.eccSigningKey"

    @property
    def shared_secret_tag(self) -> str:
        return f"{self.app_identifier}.sharedSecret"


__all__ = ["DEFAULT_APP_IDENTIFIER", "ManagerConfig"]
