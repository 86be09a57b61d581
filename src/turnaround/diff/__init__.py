"""File-level differences between two commits' snapshot sets."""

from __future__ import annotations

from typing import Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel, Field

from turnaround.state.models import FileSnapshot

FileDiffStatus = Literal["added", "modified", "removed", "unchanged"]

STATUS_ORDER: Dict[str, int] = {"added": 0, "modified": 1, "removed": 2, "unchanged": 3}


class FileDiffEntry(BaseModel):
    """Classification of one path between two commits.

    Attributes:
        file_path: Project-relative path.
        status: One of ``added``, ``modified``, ``removed``, ``unchanged``.
        old_file: Snapshot in the older commit, if any.
        new_file: Snapshot in the newer commit, if any.
        size_change: Byte delta from old to new.
    """

    file_path: str
    status: FileDiffStatus
    old_file: Optional[FileSnapshot] = None
    new_file: Optional[FileSnapshot] = None
    size_change: int = 0


class FileDiffSummary(BaseModel):
    added: int = 0
    removed: int = 0
    modified: int = 0
    unchanged: int = 0


class FileDiff(BaseModel):
    """Sorted entries plus per-status counts."""

    entries: List[FileDiffEntry] = Field(default_factory=list)
    summary: FileDiffSummary = Field(default_factory=FileDiffSummary)

    def entry(self, file_path: str) -> Optional[FileDiffEntry]:
        for entry in self.entries:
            if entry.file_path == file_path:
                return entry
        return None

    def changed(self) -> List[FileDiffEntry]:
        return [entry for entry in self.entries if entry.status != "unchanged"]


def diff_files(
    snapshots_a: Iterable[FileSnapshot],
    snapshots_b: Iterable[FileSnapshot],
) -> FileDiff:
    """Compare two snapshot sets by path and content hash.

    Paths are visited in union order (A's paths, then paths only in B) and the
    result is stably sorted by status: added, modified, removed, unchanged.
    """
    files_a = {snapshot.file_path: snapshot for snapshot in snapshots_a}
    files_b = {snapshot.file_path: snapshot for snapshot in snapshots_b}
    all_paths = list(files_a) + [path for path in files_b if path not in files_a]

    result = FileDiff()
    for path in all_paths:
        old = files_a.get(path)
        new = files_b.get(path)
        if old is not None and new is None:
            result.summary.removed += 1
            entry = FileDiffEntry(
                file_path=path, status="removed", old_file=old, size_change=-old.file_size
            )
        elif old is None and new is not None:
            result.summary.added += 1
            entry = FileDiffEntry(
                file_path=path, status="added", new_file=new, size_change=new.file_size
            )
        elif old is not None and new is not None and old.content_hash == new.content_hash:
            result.summary.unchanged += 1
            entry = FileDiffEntry(
                file_path=path, status="unchanged", old_file=old, new_file=new
            )
        else:
            assert old is not None and new is not None
            result.summary.modified += 1
            entry = FileDiffEntry(
                file_path=path,
                status="modified",
                old_file=old,
                new_file=new,
                size_change=new.file_size - old.file_size,
            )
        result.entries.append(entry)

    result.entries.sort(key=lambda entry: STATUS_ORDER[entry.status])
    return result


__all__ = [
    "FileDiff",
    "FileDiffEntry",
    "FileDiffStatus",
    "FileDiffSummary",
    "STATUS_ORDER",
    "diff_files",
]
