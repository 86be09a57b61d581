"""File type detection and hashing utilities."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Iterable

_CHUNK_SIZE = 1024 * 1024

_TYPE_BY_EXTENSION = {
    **dict.fromkeys(
        (
            "mp4", "mov", "avi", "mkv", "mxf", "webm", "wmv", "flv",
            "m4v", "mpg", "mpeg", "ts", "r3d", "braw", "ari",
        ),
        "video",
    ),
    **dict.fromkeys(
        ("wav", "mp3", "aac", "flac", "ogg", "m4a", "aiff", "aif", "wma"),
        "audio",
    ),
    **dict.fromkeys(
        (
            "png", "jpg", "jpeg", "tif", "tiff", "exr", "dpx", "bmp",
            "gif", "webp", "psd", "psb", "svg",
        ),
        "image",
    ),
    **dict.fromkeys(
        ("prproj", "drp", "fcpxml", "otio", "xml", "edl", "aaf", "sesx", "als", "flp", "ptx"),
        "project",
    ),
    **dict.fromkeys(("srt", "ass", "vtt"), "subtitle"),
    **dict.fromkeys(("lut", "cube"), "lut"),
    **dict.fromkeys(("json", "yaml", "yml", "ini", "cfg", "toml"), "config"),
}


def extension_of(path: Path | str) -> str:
    """Return the lower-cased extension of ``path`` without the leading dot."""
    return Path(path).suffix.lower().lstrip(".")


class TypeDetector:
    """Classify files into coarse media categories by extension."""

    def __init__(self, project_extensions: Iterable[str] | None = None) -> None:
        self._project_extensions = {ext.lower() for ext in project_extensions or ()}

    def detect(self, path: Path | str) -> str:
        """Return ``video``, ``audio``, ``image``, ``project``, ``subtitle``, ``lut``,
        ``config`` or ``other``."""
        ext = extension_of(path)
        if ext in self._project_extensions:
            return "project"
        return _TYPE_BY_EXTENSION.get(ext, "other")


class HashComputer:
    """Compute SHA-256 content hashes for change detection and deduplication."""

    def compute(self, path: Path) -> str:
        """Return a hex digest of the file contents, read in 1 MiB chunks."""
        digest = hashlib.sha256()
        with path.open("rb") as handle:
            for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
        return digest.hexdigest()
