"""State management errors."""


class StateError(Exception):
    """Base exception for commit-graph persistence."""


class MissingStateError(StateError):
    """Raised when a directory has not been initialised as a project."""
