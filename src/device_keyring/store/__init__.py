"""Secure storage — blob store capability, implementations and key records."""
from __future__ import annotations

from device_keyring.store.base import (
    AccessPolicy,
    BlobAccessDenied,
    BlobStoreError,
    SecureBlobStore,
)
from device_keyring.store.filesystem import FilesystemBlobStore
from device_keyring.store.key_material import KeyMaterialStore
from device_keyring.store.memory import InMemoryBlobStore

__all__ = [
    "AccessPolicy",
    "BlobAccessDenied",
    "BlobStoreError",
    "FilesystemBlobStore",
    "InMemoryBlobStore",
    "KeyMaterialStore",
    "SecureBlobStore",
]
