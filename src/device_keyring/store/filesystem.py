"""Filesystem-backed secure blob store.

Each blob is written as a single JSON document under *base_dir*::

    {
      "tag": "my_app.eccSigningKey",
      "policy": "afterFirstUnlockOnly",
      "stored_at": "2025-01-21T10:00:00+00:00",
      "data": "<base64>"
    }

File names are the percent-encoded tag. Writes are atomic (temporary file +
``os.replace``) and files are restricted to the owner (``chmod 600``) on a
best-effort basis. The directory itself should live on an encrypted volume;
this store adds no encryption of its own.
"""
from __future__ import annotations

import base64
import binascii
import datetime
import json
import os
import tempfile
import threading
import urllib.parse
from pathlib import Path

from device_keyring.store.base import AccessPolicy, BlobStoreError, SecureBlobStore

_FILE_SUFFIX = ".json"
_FILE_MODE = 0o600


class FilesystemBlobStore(SecureBlobStore):
    """Persist blobs as owner-only JSON files.

    Parameters
    ----------
    base_dir:
        Root directory for blob storage. Created if it does not exist.
    unlocked:
        Initial device lock state.
    """

    def __init__(self, base_dir: Path, unlocked: bool = True) -> None:
        super().__init__(unlocked=unlocked)
        self._base_dir = Path(base_dir)
        self._lock = threading.Lock()
        try:
            self._base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise BlobStoreError(f"Cannot create store directory {self._base_dir}: {exc}") from exc

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    # ------------------------------------------------------------------
    # SecureBlobStore interface
    # ------------------------------------------------------------------

    def put(self, tag: str, data: bytes, policy: AccessPolicy) -> None:
        """Atomically write *data* and its policy to ``<tag>.json``."""
        document = {
            "tag": tag,
            "policy": policy.value,
            "stored_at": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "data": base64.b64encode(data).decode("ascii"),
        }
        with self._lock:
            try:
                self._atomic_write(self._path_for(tag), document)
            except OSError as exc:
                raise BlobStoreError(f"Cannot write blob {tag!r}: {exc}") from exc

    def get(self, tag: str) -> bytes | None:
        """Read ``<tag>.json``; return None if the file does not exist."""
        path = self._path_for(tag)
        with self._lock:
            if not path.exists():
                return None
            try:
                document = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
                raise BlobStoreError(f"Cannot read blob {tag!r}: {exc}") from exc

        if not isinstance(document, dict) or document.get("tag") != tag:
            raise BlobStoreError(f"Blob file for {tag!r} records a different tag")

        try:
            policy = AccessPolicy(document["policy"])
            data = base64.b64decode(document["data"], validate=True)
        except (KeyError, TypeError, ValueError, binascii.Error) as exc:
            raise BlobStoreError(f"Blob {tag!r} has a malformed document: {exc}") from exc

        self._check_readable(tag, policy)
        return data

    def delete(self, tag: str) -> None:
        """Remove ``<tag>.json`` if present."""
        path = self._path_for(tag)
        with self._lock:
            try:
                path.unlink()
            except FileNotFoundError:
                return
            except OSError as exc:
                raise BlobStoreError(f"Cannot delete blob {tag!r}: {exc}") from exc

    def tags(self) -> list[str]:
        """Return the tags recorded in every stored document."""
        found: list[str] = []
        with self._lock:
            for path in self._base_dir.glob(f"*{_FILE_SUFFIX}"):
                try:
                    found.append(str(json.loads(path.read_text(encoding="utf-8"))["tag"]))
                except (OSError, json.JSONDecodeError, KeyError, TypeError):
                    continue
        return sorted(found)

    def exists(self, tag: str) -> bool:
        return self._path_for(tag).exists()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _path_for(self, tag: str) -> Path:
        """Return the file path for a given tag.

        The tag is percent-encoded, so distinct tags never share a file.
        """
        safe_name = urllib.parse.quote(tag, safe="")
        return self._base_dir / f"{safe_name}{_FILE_SUFFIX}"

    @staticmethod
    def _atomic_write(path: Path, document: dict[str, str]) -> None:
        fd, tmp = tempfile.mkstemp(prefix=".tmp.", dir=str(path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, indent=2)
                fh.flush()
                os.fsync(fh.fileno())
            try:
                os.chmod(tmp, _FILE_MODE)
            except OSError:
                pass
            os.replace(tmp, path)
        finally:
            if os.path.exists(tmp):
                os.unlink(tmp)


__all__ = ["FilesystemBlobStore"]
