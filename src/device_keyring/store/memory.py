"""In-memory secure blob store, used by tests and short-lived processes."""
from __future__ import annotations

import threading

from device_keyring.store.base import AccessPolicy, SecureBlobStore


class InMemoryBlobStore(SecureBlobStore):
    """Dictionary-backed :class:`SecureBlobStore`.

    Thread-safe. Blobs live only as long as the store instance, so a
    "process restart" can be simulated by building a new manager over the
    same store object.

    Example
    -------
    ::

        store = InMemoryBlobStore()
        store.put("demo", b"secret", AccessPolicy.AFTER_FIRST_UNLOCK_ONLY)
        assert store.get("demo") == b"secret"
    """

    def __init__(self, unlocked: bool = True) -> None:
        super().__init__(unlocked=unlocked)
        self._blobs: dict[str, tuple[bytes, AccessPolicy]] = {}
        self._lock = threading.Lock()

    def put(self, tag: str, data: bytes, policy: AccessPolicy) -> None:
        with self._lock:
            self._blobs[tag] = (bytes(data), policy)

    def get(self, tag: str) -> bytes | None:
        with self._lock:
            entry = self._blobs.get(tag)
        if entry is None:
            return None
        data, policy = entry
        self._check_readable(tag, policy)
        return data

    def delete(self, tag: str) -> None:
        with self._lock:
            self._blobs.pop(tag, None)

    def tags(self) -> list[str]:
        with self._lock:
            return sorted(self._blobs)

    def policy_for(self, tag: str) -> AccessPolicy | None:
        """Return the access policy recorded for *tag*, or None if absent."""
        with self._lock:
            entry = self._blobs.get(tag)
        return entry[1] if entry is not None else None


__all__ = ["InMemoryBlobStore"]
