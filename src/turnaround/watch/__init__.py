"""Working-directory change notifications and polling."""

from .poller import ChangePoller, ChangeSource, DismissalCooldown
from .service import ChangeEvent, ChangeHints, ChangeKind, WatchService

__all__ = [
    "ChangeEvent",
    "ChangeHints",
    "ChangeKind",
    "ChangePoller",
    "ChangeSource",
    "DismissalCooldown",
    "WatchService",
]
