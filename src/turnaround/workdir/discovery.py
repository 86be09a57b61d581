"""Working-directory discovery utilities."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator

from .models import PendingFile


def _is_hidden(path: Path) -> bool:
    return any(part.startswith(".") for part in path.parts if part not in (".", ".."))


class DirectoryScanner:
    """Discover tracked files within a project tree subject to configuration filters."""

    def __init__(
        self,
        *,
        extensions: Iterable[str],
        include_hidden: bool,
        follow_symlinks: bool,
        state_dirname: str,
    ) -> None:
        self.extensions = {ext.lower().lstrip(".") for ext in extensions}
        self.include_hidden = include_hidden
        self.follow_symlinks = follow_symlinks
        self.state_dirname = state_dirname

    def is_tracked(self, relative: Path) -> bool:
        """Return whether a project-relative path passes the tracking filters."""
        if self.state_dirname in relative.parts:
            return False
        if not self.include_hidden and _is_hidden(relative):
            return False
        return relative.suffix.lower().lstrip(".") in self.extensions

    def scan(self, root: Path) -> Iterator[PendingFile]:
        """Yield tracked files under root in sorted path order."""
        root = root.expanduser().resolve()
        if not root.is_dir():
            return

        candidates = sorted(
            self._iter_paths(root), key=lambda item: item.relative_to(root).as_posix()
        )
        for path in candidates:
            if path.is_symlink() and not self.follow_symlinks:
                continue
            if not path.is_file():
                continue
            relative = path.relative_to(root)
            if not self.is_tracked(relative):
                continue
            try:
                stat = path.stat()
            except OSError:
                continue
            yield PendingFile(
                path=path,
                relative_path=relative.as_posix(),
                size_bytes=stat.st_size,
            )

    def _iter_paths(self, root: Path) -> Iterable[Path]:
        """Internal helper to iterate candidate paths."""
        yield from root.rglob("*")
