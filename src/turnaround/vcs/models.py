"""Result models returned by version-control operations."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from turnaround.state.models import Commit, FileSnapshot


class CommitDetail(BaseModel):
    """A commit together with its complete file snapshot list."""

    commit: Commit
    files: List[FileSnapshot] = Field(default_factory=list)


class ChangeSet(BaseModel):
    """Paths whose existence or content differs from the branch head.

    Attributes:
        added: Paths present on disk but not in the head commit.
        removed: Paths recorded in the head commit but missing on disk.
        modified: Paths whose content hash differs from the head commit.
    """

    added: List[str] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)
    modified: List[str] = Field(default_factory=list)

    @property
    def paths(self) -> List[str]:
        """Return every changed path, sorted."""
        return sorted({*self.added, *self.removed, *self.modified})

    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.modified)


class RestoreReport(BaseModel):
    """Outcome of materialising a commit into the working directory.

    Attributes:
        commit_id: Commit that was restored.
        total: Number of snapshots considered.
        restored_count: Files rewritten.
        skipped_count: Files already matching the commit on disk.
        failed_count: Files that could not be restored.
        restored: Paths rewritten.
        skipped: Paths left untouched because their content already matched.
        failed: Paths whose blob was unavailable or could not be written.
        cancelled: Whether the restore stopped early on request.
    """

    commit_id: str
    total: int = 0
    restored_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    restored: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)
    cancelled: bool = False


class ExportReport(BaseModel):
    """Outcome of copying a commit's files to an external folder."""

    commit_id: str
    commit_message: str
    dest_path: str
    total: int = 0
    exported_count: int = 0
    skipped_count: int = 0
    exported: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    cancelled: bool = False


__all__ = ["CommitDetail", "ChangeSet", "RestoreReport", "ExportReport"]
