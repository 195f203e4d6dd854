"""Secure blob storage — abstract interface and access policies.

SecureBlobStore defines the capability the key material layer depends on:
put, get and delete of a named binary blob under an access policy. The
backing technology (OS keychain, encrypted file, HSM) is left to the
implementation.

Stores model a simple device lock state so that access policies can be
enforced the way a platform keychain would:

* ``AFTER_FIRST_UNLOCK_ONLY`` — readable once the device has been unlocked
  at least once since the store was created.
* ``WHEN_UNLOCKED`` — readable only while the device is currently unlocked.
"""
from __future__ import annotations

import enum
import threading
from abc import ABC, abstractmethod


class AccessPolicy(str, enum.Enum):
    """Condition under which a persisted blob may be read back."""

    AFTER_FIRST_UNLOCK_ONLY = "afterFirstUnlockOnly"
    WHEN_UNLOCKED = "whenUnlocked"


class BlobStoreError(Exception):
    """Raised when the backing store fails to read, write or delete a blob."""


class BlobAccessDenied(BlobStoreError):
    """Raised when a blob exists but its access policy is not satisfied."""

    def __init__(self, tag: str, policy: AccessPolicy) -> None:
        super().__init__(
            f"Blob {tag!r} is not readable under policy {policy.value!r} "
            "in the current device lock state."
        )
        self.tag = tag
        self.policy = policy


class SecureBlobStore(ABC):
    """Abstract base class for secure blob storage backends.

    Parameters
    ----------
    unlocked:
        Initial device lock state. ``True`` (the default) counts as the
        first unlock since boot.
    """

    def __init__(self, unlocked: bool = True) -> None:
        self._state_lock = threading.Lock()
        self._unlocked = unlocked
        self._unlocked_since_boot = unlocked

    # ------------------------------------------------------------------
    # Storage contract
    # ------------------------------------------------------------------

    @abstractmethod
    def put(self, tag: str, data: bytes, policy: AccessPolicy) -> None:
        """Persist *data* under *tag*.

        Parameters
        ----------
        tag:
            Name of the blob.
        data:
            Raw bytes to store.
        policy:
            Access policy governing later reads.

        Raises
        ------
        BlobStoreError
            If the backend cannot write the blob.
        """

    @abstractmethod
    def get(self, tag: str) -> bytes | None:
        """Return the blob stored under *tag*, or ``None`` if there is none.

        Raises
        ------
        BlobAccessDenied
            If the blob exists but its policy forbids reading it now.
        BlobStoreError
            If the backend cannot read the blob.
        """

    @abstractmethod
    def delete(self, tag: str) -> None:
        """Remove the blob stored under *tag*. Unknown tags are ignored."""

    @abstractmethod
    def tags(self) -> list[str]:
        """Return a sorted list of all stored tags."""

    def exists(self, tag: str) -> bool:
        """Return True if a blob is stored under *tag*."""
        return tag in self.tags()

    # ------------------------------------------------------------------
    # Device lock state
    # ------------------------------------------------------------------

    def lock(self) -> None:
        """Mark the device as locked."""
        with self._state_lock:
            self._unlocked = False

    def unlock(self) -> None:
        """Mark the device as unlocked (and unlocked at least once)."""
        with self._state_lock:
            self._unlocked = True
            self._unlocked_since_boot = True

    @property
    def is_unlocked(self) -> bool:
        return self._unlocked

    def _check_readable(self, tag: str, policy: AccessPolicy) -> None:
        """Raise BlobAccessDenied if *policy* is not satisfied right now."""
        with self._state_lock:
            if policy is AccessPolicy.WHEN_UNLOCKED:
                allowed = self._unlocked
            else:
                allowed = self._unlocked_since_boot
        if not allowed:
            raise BlobAccessDenied(tag, policy)


__all__ = ["AccessPolicy", "BlobAccessDenied", "BlobStoreError", "SecureBlobStore"]
