"""Working-directory data models."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel


class PendingFile(BaseModel):
    """A tracked file discovered on disk but not yet hashed.

    Attributes:
        path: Absolute path to the file.
        relative_path: Project-relative POSIX path.
        size_bytes: File size at scan time.
    """

    path: Path
    relative_path: str
    size_bytes: int


class WorkingFile(BaseModel):
    """A hashed working-directory file.

    Attributes:
        path: Project-relative POSIX path.
        absolute_path: Location on disk.
        size: File size in bytes.
        content_hash: SHA-256 hex digest of the content.
        file_type: Coarse type classification.
    """

    path: str
    absolute_path: Path
    size: int
    content_hash: str
    file_type: str


__all__ = ["PendingFile", "WorkingFile"]
