"""Timeline parsing and clip-level comparison between commits."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from turnaround.errors import NotFoundError, StorageIOError
from turnaround.state import MissingStateError, StateError

from .diff import ClipDiff, DiffStatus, DiffSummary, TimelineDiff, TrackDiff, diff_timelines
from .models import Clip, RationalTime, TimeRange, Timeline, Track, TrackKind
from .parser import (
    TIMELINE_EXTENSIONS,
    TimelineParseError,
    find_timeline_snapshot,
    is_timeline_path,
    parse_timeline,
    timeline_candidates,
)

if TYPE_CHECKING:
    from turnaround.vcs.session import ProjectSession

LOGGER = logging.getLogger(__name__)


def load_commit_timeline(session: "ProjectSession", commit_id: str) -> Optional[Timeline]:
    """Parse the timeline document stored with ``commit_id``.

    Candidates are tried in :func:`timeline_candidates` order and the first
    one that parses wins, so a stray XML sidecar does not hide the real
    timeline. Returns None, after logging why, when no candidate is stored and
    parseable.
    """
    try:
        graph = session.load_graph()
    except (MissingStateError, StateError) as exc:
        LOGGER.warning("Cannot read commit graph for timeline lookup: %s", exc)
        return None
    candidates = timeline_candidates(graph.snapshots.get(commit_id, []))
    if not candidates:
        LOGGER.debug("Commit %s has no timeline document", commit_id[:8])
        return None
    for snapshot in candidates:
        if not snapshot.stored:
            LOGGER.info(
                "Timeline %s in %s was recorded by hash only", snapshot.file_path, commit_id[:8]
            )
            continue
        try:
            data = session.store.get(snapshot.content_hash)
            return parse_timeline(snapshot.file_path, data)
        except (NotFoundError, StorageIOError, TimelineParseError) as exc:
            LOGGER.warning(
                "Cannot load timeline %s from %s: %s", snapshot.file_path, commit_id[:8], exc
            )
    return None


def diff_commit_timelines(
    session: "ProjectSession",
    commit_a: str,
    commit_b: str,
) -> TimelineDiff:
    """Diff the timelines of two commits, treating an unavailable side as empty."""
    old = load_commit_timeline(session, commit_a)
    new = load_commit_timeline(session, commit_b)
    return diff_timelines(old, new)


__all__ = [
    "Clip",
    "ClipDiff",
    "DiffStatus",
    "DiffSummary",
    "RationalTime",
    "TIMELINE_EXTENSIONS",
    "TimeRange",
    "Timeline",
    "TimelineDiff",
    "TimelineParseError",
    "Track",
    "TrackDiff",
    "TrackKind",
    "diff_commit_timelines",
    "diff_timelines",
    "find_timeline_snapshot",
    "is_timeline_path",
    "load_commit_timeline",
    "parse_timeline",
    "timeline_candidates",
]
