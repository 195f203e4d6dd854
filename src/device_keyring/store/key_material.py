"""KeyMaterialStore — named private-key and session-key records.

A thin layer over :class:`~device_keyring.store.base.SecureBlobStore` that
owns no cryptography. It guarantees two things:

* ``save`` replaces any existing record for a tag (delete, then put), so a
  tag never holds two records. A crash between the delete and the put loses
  the record; the next start then behaves like a first run for that tag.
* ``load`` distinguishes *absence* (returns ``None``) from a *read error*
  (raises :class:`~device_keyring.errors.KeyRetrievalFailed`).

Whether the stored bytes parse as a valid key is the caller's concern.
"""
from __future__ import annotations

import logging

from device_keyring.errors import KeyRetrievalFailed, KeyStorageFailed
from device_keyring.store.base import AccessPolicy, BlobStoreError, SecureBlobStore

logger = logging.getLogger(__name__)


class KeyMaterialStore:
    """Save and load raw key bytes by tag.

    Parameters
    ----------
    blob_store:
        The secure store holding the records.
    policy:
        Access policy applied to every record written through this store.
    """

    def __init__(
        self,
        blob_store: SecureBlobStore,
        policy: AccessPolicy = AccessPolicy.AFTER_FIRST_UNLOCK_ONLY,
    ) -> None:
        self._blob_store = blob_store
        self._policy = policy

    @property
    def policy(self) -> AccessPolicy:
        return self._policy

    def save(self, tag: str, key_bytes: bytes) -> None:
        """Replace the record for *tag* with *key_bytes*.

        Raises
        ------
        KeyStorageFailed
            If the backing store rejects the delete or the put.
        """
        try:
            self._blob_store.delete(tag)
            self._blob_store.put(tag, bytes(key_bytes), self._policy)
        except BlobStoreError as exc:
            raise KeyStorageFailed(f"Could not save key material for tag {tag!r}: {exc}") from exc
        logger.debug("Saved key material for tag %r (%d bytes)", tag, len(key_bytes))

    def load(self, tag: str) -> bytes | None:
        """Return the bytes most recently saved for *tag*, or None if absent.

        Raises
        ------
        KeyRetrievalFailed
            If the store cannot be read, including when the record's access
            policy is not satisfied.
        """
        try:
            data = self._blob_store.get(tag)
        except BlobStoreError as exc:
            raise KeyRetrievalFailed(f"Could not load key material for tag {tag!r}: {exc}") from exc
        if data is None:
            logger.debug("No key material stored for tag %r", tag)
        return data

    def delete(self, tag: str) -> None:
        """Remove the record for *tag*, if any."""
        try:
            self._blob_store.delete(tag)
        except BlobStoreError as exc:
            raise KeyStorageFailed(f"Could not delete key material for tag {tag!r}: {exc}") from exc


__all__ = ["KeyMaterialStore"]
