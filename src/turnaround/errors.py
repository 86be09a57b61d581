"""Errors raised by Turnaround version-control operations."""


class VcsError(Exception):
    """Base exception for version-control operations."""

    code = "vcs_error"


class ValidationError(VcsError):
    """Raised when caller input is rejected before any state is touched."""

    code = "validation_error"


class NotFoundError(VcsError):
    """Raised when a commit, branch, or blob does not exist."""

    code = "not_found"


class InvalidOperationError(VcsError):
    """Raised when an operation is refused by a graph invariant."""

    code = "invalid_operation"


class NameConflictError(InvalidOperationError):
    """Raised when a branch name is already taken within the project."""

    code = "name_conflict"


class NoChangesError(InvalidOperationError):
    """Raised when a commit would record nothing new."""

    code = "no_changes"


class StorageIOError(VcsError):
    """Raised when the snapshot store cannot read or write a blob."""

    code = "storage_io"


__all__ = [
    "VcsError",
    "ValidationError",
    "NotFoundError",
    "InvalidOperationError",
    "NameConflictError",
    "NoChangesError",
    "StorageIOError",
]
