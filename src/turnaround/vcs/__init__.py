"""Version-control core: commit graph, commit engine, and restore/export."""

from turnaround.errors import (
    InvalidOperationError,
    NameConflictError,
    NoChangesError,
    NotFoundError,
    StorageIOError,
    ValidationError,
    VcsError,
)

from .commit import CommitEngine
from .graph import CommitGraph
from .models import ChangeSet, CommitDetail, ExportReport, RestoreReport
from .restore import RestoreEngine
from .session import ProjectLock, ProjectSession, project_lock

__all__ = [
    "ChangeSet",
    "CommitDetail",
    "CommitEngine",
    "CommitGraph",
    "ExportReport",
    "InvalidOperationError",
    "NameConflictError",
    "NoChangesError",
    "NotFoundError",
    "ProjectLock",
    "ProjectSession",
    "RestoreEngine",
    "RestoreReport",
    "StorageIOError",
    "ValidationError",
    "VcsError",
    "project_lock",
]
