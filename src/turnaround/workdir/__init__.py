"""Access to a project's working directory."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path, PurePosixPath

from turnaround.config.models import TrackingOptions
from turnaround.errors import ValidationError

from .detectors import HashComputer, TypeDetector, extension_of
from .discovery import DirectoryScanner
from .models import PendingFile, WorkingFile

LOGGER = logging.getLogger(__name__)


class WorkingDirectory:
    """List, hash, and write tracked files below a project root."""

    def __init__(
        self,
        root: Path,
        tracking: TrackingOptions,
        *,
        state_dirname: str,
        hasher: HashComputer | None = None,
    ) -> None:
        self.root = root.expanduser().resolve()
        self.hasher = hasher or HashComputer()
        self.detector = TypeDetector(tracking.project_extensions)
        self.scanner = DirectoryScanner(
            extensions=tracking.tracked_extensions,
            include_hidden=tracking.include_hidden,
            follow_symlinks=tracking.follow_symlinks,
            state_dirname=state_dirname,
        )

    def list_files(self) -> list[WorkingFile]:
        """Return every tracked file with its size and content hash, sorted by path.

        Files that disappear or become unreadable between discovery and hashing
        are left out and logged.
        """
        files: list[WorkingFile] = []
        for pending in self.scanner.scan(self.root):
            try:
                content_hash = self.hasher.compute(pending.path)
            except OSError as exc:
                LOGGER.warning("Skipping unreadable file %s: %s", pending.relative_path, exc)
                continue
            files.append(
                WorkingFile(
                    path=pending.relative_path,
                    absolute_path=pending.path,
                    size=pending.size_bytes,
                    content_hash=content_hash,
                    file_type=self.detector.detect(pending.relative_path),
                )
            )
        return files

    def resolve(self, relative_path: str) -> Path:
        """Return the absolute path for a project-relative path.

        Raises:
            ValidationError: If the path is empty, absolute, or escapes the root.
        """
        if not relative_path:
            raise ValidationError("A project-relative path is required.")
        pure = PurePosixPath(relative_path)
        if pure.is_absolute() or ".." in pure.parts:
            raise ValidationError(f"Path escapes the project root: {relative_path}")
        return self.root.joinpath(*pure.parts)

    def file_hash(self, relative_path: str) -> str | None:
        """Return the content hash of a file, or None when it does not exist."""
        path = self.resolve(relative_path)
        if not path.is_file():
            return None
        return self.hasher.compute(path)

    def write_file(self, relative_path: str, data: bytes) -> Path:
        """Atomically replace a file's content."""
        path = self.resolve(relative_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return path

    def is_tracked(self, path: Path) -> bool:
        """Return whether an absolute path inside the root would be versioned."""
        try:
            relative = path.resolve().relative_to(self.root)
        except ValueError:
            return False
        return self.scanner.is_tracked(relative)


__all__ = [
    "WorkingDirectory",
    "WorkingFile",
    "PendingFile",
    "DirectoryScanner",
    "HashComputer",
    "TypeDetector",
    "extension_of",
]
