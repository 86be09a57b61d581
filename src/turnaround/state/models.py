"""Persisted commit-graph models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


def new_id() -> str:
    """Return a fresh opaque identifier."""
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Project(BaseModel):
    """A versioned project directory.

    Attributes:
        id: Project identifier.
        name: Display name, defaults to the directory name.
        root_path: Absolute path of the working directory.
        created_at: Initialisation timestamp.
        active_branch_id: Identifier of the branch currently checked out.
    """

    id: str = Field(default_factory=new_id)
    name: str
    root_path: str
    created_at: datetime = Field(default_factory=utc_now)
    active_branch_id: Optional[str] = None


class Branch(BaseModel):
    """A named, linear line of commits.

    Attributes:
        id: Branch identifier.
        project_id: Owning project.
        name: Human readable name, unique within the project.
        head_commit_id: Newest commit on the branch, or None when empty.
        is_active: Whether this is the project's active branch.
    """

    id: str = Field(default_factory=new_id)
    project_id: str
    name: str
    head_commit_id: Optional[str] = None
    is_active: bool = False


class Commit(BaseModel):
    """An immutable, complete record of the tracked files at one point in time."""

    id: str = Field(default_factory=new_id)
    project_id: str
    branch_id: str
    parent_id: Optional[str] = None
    message: str
    is_milestone: bool = False
    created_at: datetime = Field(default_factory=utc_now)


class FileSnapshot(BaseModel):
    """State of one tracked file within a commit.

    Attributes:
        id: Snapshot identifier.
        commit_id: Owning commit.
        file_path: Project-relative POSIX path.
        content_hash: SHA-256 hex digest of the file bytes.
        file_size: Size in bytes.
        file_type: Coarse classification derived from the extension.
        stored: Whether the bytes were copied into the snapshot store.
    """

    id: str = Field(default_factory=new_id)
    commit_id: str
    file_path: str
    content_hash: str
    file_size: int
    file_type: str = "other"
    stored: bool = True


class ProjectGraph(BaseModel):
    """Everything persisted for one project: branches, commits, and snapshots."""

    project: Project
    branches: Dict[str, Branch] = Field(default_factory=dict)
    commits: Dict[str, Commit] = Field(default_factory=dict)
    snapshots: Dict[str, List[FileSnapshot]] = Field(default_factory=dict)
    updated_at: datetime = Field(default_factory=utc_now)

    def referenced_hashes(self) -> set[str]:
        """Return every content hash referenced by a stored snapshot."""
        return {
            snapshot.content_hash
            for snapshots in self.snapshots.values()
            for snapshot in snapshots
            if snapshot.stored
        }


__all__ = [
    "Project",
    "Branch",
    "Commit",
    "FileSnapshot",
    "ProjectGraph",
    "new_id",
    "utc_now",
]
