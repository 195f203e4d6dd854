"""PersistedKeyPair — a named elliptic-curve key pair backed by the key store.

One class serves both roles (agreement and signing); the manager builds two
instances with distinct tags. The lifecycle is:

1. On first access, load the raw private scalar stored under the tag.
2. If a record exists and parses, rebuild the pair from it.
3. If no record exists, generate a new pair and save it.
4. Cache the pair; every later call returns the same instance.

Lazy initialisation is guarded by a lock so at most one key is generated per
tag, even when several threads race on first access.

A record that exists but does not parse is reported as
:class:`~device_keyring.errors.KeyRetrievalFailed` unless
``regenerate_on_corrupt`` is set, in which case a new identity replaces it
and a warning is logged.
"""
from __future__ import annotations

import logging
import threading

from device_keyring.errors import KeyGenerationFailed, KeyRetrievalFailed, KeyStorageFailed
from device_keyring.keys.keypair import DEFAULT_CURVE, KeyPair, KeyRole, curve_spec
from device_keyring.store.key_material import KeyMaterialStore

logger = logging.getLogger(__name__)


class PersistedKeyPair:
    """Lazily loaded or generated key pair stored under a fixed tag.

    Parameters
    ----------
    store:
        Key material store holding the raw private scalar.
    tag:
        Record name for this pair.
    role:
        Cryptographic role of the pair.
    curve:
        Curve name (``"P-256"`` by default).
    regenerate_on_corrupt:
        If True, an unparsable record is replaced by a newly generated key
        instead of raising.
    """

    def __init__(
        self,
        store: KeyMaterialStore,
        tag: str,
        role: KeyRole,
        curve: str = DEFAULT_CURVE,
        regenerate_on_corrupt: bool = False,
    ) -> None:
        curve_spec(curve)
        self._store = store
        self._tag = tag
        self._role = role
        self._curve = curve
        self._regenerate_on_corrupt = regenerate_on_corrupt
        self._key_pair: KeyPair | None = None
        self._lock = threading.Lock()

    @property
    def tag(self) -> str:
        return self._tag

    @property
    def role(self) -> KeyRole:
        return self._role

    @property
    def is_established(self) -> bool:
        """True once the pair has been loaded or generated in this process."""
        return self._key_pair is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def get_or_create(self) -> KeyPair:
        """Return the cached pair, loading or generating it on first use.

        Raises
        ------
        KeyRetrievalFailed
            If the store cannot be read, or the stored record is unparsable
            and regeneration is disabled.
        KeyGenerationFailed
            If a new pair cannot be generated or saved.
        """
        key_pair = self._key_pair
        if key_pair is not None:
            return key_pair

        with self._lock:
            if self._key_pair is None:
                self._key_pair = self._load_or_generate()
            return self._key_pair

    def _load_or_generate(self) -> KeyPair:
        raw = self._store.load(self._tag)
        if raw is not None:
            try:
                key_pair = KeyPair.from_raw_private_bytes(self._role, raw, curve=self._curve)
            except ValueError as exc:
                if not self._regenerate_on_corrupt:
                    raise KeyRetrievalFailed(
                        f"Stored {self._role.value} key under tag {self._tag!r} "
                        f"is not a valid {self._curve} private key: {exc}"
                    ) from exc
                logger.warning(
                    "Stored %s key under tag %r is unparsable; generating a new identity",
                    self._role.value,
                    self._tag,
                )
            else:
                logger.debug("Loaded %s key pair from tag %r", self._role.value, self._tag)
                return key_pair

        return self._generate_and_save()

    def _generate_and_save(self) -> KeyPair:
        try:
            key_pair = KeyPair.generate(self._role, curve=self._curve)
        except ValueError as exc:
            raise KeyGenerationFailed(
                f"Could not generate {self._curve} {self._role.value} key: {exc}"
            ) from exc

        try:
            self._store.save(self._tag, key_pair.raw_private_bytes())
        except KeyStorageFailed as exc:
            raise KeyGenerationFailed(
                f"Generated {self._role.value} key could not be persisted: {exc}"
            ) from exc

        logger.info(
            "Generated new %s %s key pair under tag %r",
            self._curve,
            self._role.value,
            self._tag,
        )
        return key_pair

    def reset(self) -> None:
        """Delete the stored record and drop the cached pair.

        The next call to :meth:`get_or_create` generates a new identity.
        """
        with self._lock:
            self._store.delete(self._tag)
            self._key_pair = None
        logger.info("Reset %s key pair under tag %r", self._role.value, self._tag)


__all__ = ["PersistedKeyPair"]
