"""Content-addressed blob storage for file snapshots."""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import tempfile
from pathlib import Path

from turnaround.errors import NotFoundError, StorageIOError

LOGGER = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


class ObjectStore:
    """Store blobs under ``objects/<hash[:2]>/<hash[2:]>``.

    A blob is written once per hash; later writes of the same hash are no-ops,
    which is what lets every commit record a complete file set while unchanged
    media is stored a single time.
    """

    def __init__(self, base_path: Path) -> None:
        """Initialize the store.

        Args:
            base_path: Directory that holds the object tree.
        """
        self._base_path = base_path

    @property
    def base_path(self) -> Path:
        return self._base_path

    def path_for(self, content_hash: str) -> Path:
        """Return the on-disk location for a hash."""
        if len(content_hash) < 3:
            raise ValueError(f"Invalid content hash: {content_hash!r}")
        return self._base_path / content_hash[:2] / content_hash[2:]

    def exists(self, content_hash: str) -> bool:
        return self.path_for(content_hash).is_file()

    def put(self, content_hash: str, data: bytes) -> bool:
        """Store ``data`` under ``content_hash``.

        Args:
            content_hash: Expected SHA-256 hex digest of ``data``.
            data: Blob content.

        Returns:
            bool: True when a new blob was written, False when already present.

        Raises:
            StorageIOError: If the digest does not match or the write fails.
        """
        if self.exists(content_hash):
            return False
        actual = hashlib.sha256(data).hexdigest()
        if actual != content_hash:
            raise StorageIOError(f"Content hash mismatch: expected {content_hash}, got {actual}")
        try:
            with self._staged(content_hash) as handle:
                handle.write(data)
        except OSError as exc:
            raise StorageIOError(f"Failed to write blob {content_hash}: {exc}") from exc
        return True

    def put_file(self, content_hash: str, source: Path) -> bool:
        """Copy ``source`` into the store, verifying it still hashes to ``content_hash``.

        Returns:
            bool: True when a new blob was written, False when already present.

        Raises:
            StorageIOError: If the file changed since it was hashed or cannot be copied.
        """
        if self.exists(content_hash):
            return False
        digest = hashlib.sha256()
        try:
            with source.open("rb") as reader, self._staged(content_hash) as handle:
                for chunk in iter(lambda: reader.read(_CHUNK_SIZE), b""):
                    digest.update(chunk)
                    handle.write(chunk)
                if digest.hexdigest() != content_hash:
                    raise StorageIOError(
                        f"{source} changed while being stored (expected {content_hash})."
                    )
        except OSError as exc:
            raise StorageIOError(f"Failed to store {source}: {exc}") from exc
        return True

    def get(self, content_hash: str) -> bytes:
        """Return blob content.

        Raises:
            NotFoundError: If no blob exists for the hash.
            StorageIOError: If the blob cannot be read.
        """
        path = self.path_for(content_hash)
        if not path.is_file():
            raise NotFoundError(f"Blob not found: {content_hash}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StorageIOError(f"Failed to read blob {content_hash}: {exc}") from exc

    def copy_to(self, content_hash: str, destination: Path) -> None:
        """Materialize a blob at ``destination`` via a temporary file and rename.

        Raises:
            NotFoundError: If no blob exists for the hash.
            StorageIOError: If the copy fails.
        """
        source = self.path_for(content_hash)
        if not source.is_file():
            raise NotFoundError(f"Blob not found: {content_hash}")
        tmp_name: str | None = None
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{destination.name}.", suffix=".tmp", dir=destination.parent
            )
            os.close(fd)
            shutil.copyfile(source, tmp_name)
            os.replace(tmp_name, destination)
        except OSError as exc:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise StorageIOError(f"Failed to write {destination}: {exc}") from exc

    def remove(self, content_hash: str) -> bool:
        """Delete a blob if present. Returns whether anything was removed."""
        path = self.path_for(content_hash)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as exc:
            raise StorageIOError(f"Failed to remove blob {content_hash}: {exc}") from exc
        try:
            path.parent.rmdir()
        except OSError:
            pass  # bucket still holds other blobs
        return True

    def release_unreferenced(self, candidates: set[str], referenced: set[str]) -> list[str]:
        """Remove candidate blobs that no remaining snapshot references.

        Failures are logged and skipped; the graph is already consistent when
        this runs, so a leftover blob only costs disk space.

        Returns:
            list[str]: Hashes that were removed.
        """
        removed: list[str] = []
        for content_hash in sorted(candidates - referenced):
            try:
                if self.remove(content_hash):
                    removed.append(content_hash)
            except StorageIOError as exc:
                LOGGER.warning("Could not release blob %s: %s", content_hash, exc)
        return removed

    def _staged(self, content_hash: str) -> "_StagedBlob":
        return _StagedBlob(self.path_for(content_hash))


class _StagedBlob:
    """Context manager writing to a temp file that is renamed into place on success."""

    def __init__(self, destination: Path) -> None:
        self._destination = destination
        self._tmp_path: Path | None = None
        self._handle = None

    def __enter__(self):
        self._destination.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".blob-", dir=self._destination.parent)
        self._tmp_path = Path(tmp_name)
        self._handle = os.fdopen(fd, "wb")
        return self._handle

    def __exit__(self, exc_type, exc, tb) -> None:
        assert self._handle is not None and self._tmp_path is not None
        self._handle.close()
        if exc_type is None:
            os.replace(self._tmp_path, self._destination)
        else:
            self._tmp_path.unlink(missing_ok=True)


__all__ = ["ObjectStore"]
