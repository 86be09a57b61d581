"""Clip-level differences between two timelines."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .models import Clip, TimeRange, Timeline, Track, TrackKind


class DiffStatus(str, Enum):
    ADDED = "Added"
    REMOVED = "Removed"
    MODIFIED = "Modified"
    UNCHANGED = "Unchanged"


class ClipDiff(BaseModel):
    """Change record for the clip at ``clip_index`` on a matched track.

    The old and new ranges are kept side by side so a renderer can draw the
    clip's placement before and after.
    """

    name: str
    status: DiffStatus
    media_ref: Optional[str] = None
    old_range: Optional[TimeRange] = None
    new_range: Optional[TimeRange] = None
    old_trimmed_range: Optional[TimeRange] = None
    new_trimmed_range: Optional[TimeRange] = None
    track_index: int
    clip_index: int


class TrackDiff(BaseModel):
    name: str
    kind: TrackKind
    track_index: int
    clips: List[ClipDiff] = Field(default_factory=list)

    def count(self, status: DiffStatus) -> int:
        return sum(1 for clip in self.clips if clip.status == status)


class DiffSummary(BaseModel):
    clips_added: int = 0
    clips_removed: int = 0
    clips_modified: int = 0
    clips_unchanged: int = 0
    tracks_added: int = 0
    tracks_removed: int = 0

    @property
    def has_changes(self) -> bool:
        return bool(
            self.clips_added
            or self.clips_removed
            or self.clips_modified
            or self.tracks_added
            or self.tracks_removed
        )


class TimelineDiff(BaseModel):
    old_name: Optional[str] = None
    new_name: Optional[str] = None
    tracks: List[TrackDiff] = Field(default_factory=list)
    summary: DiffSummary = Field(default_factory=DiffSummary)


def diff_timelines(old: Optional[Timeline], new: Optional[Timeline]) -> TimelineDiff:
    """Compare two timelines track by track and clip by clip.

    Tracks are paired by kind and by their index among tracks of that kind;
    clips are paired by their index on the track. A missing timeline counts
    as one with no tracks. Video tracks are reported before audio tracks.

    Args:
        old: Timeline of the older commit, or None.
        new: Timeline of the newer commit, or None.

    Returns:
        TimelineDiff: Per-track clip changes with aggregate counts.
    """
    result = TimelineDiff(
        old_name=old.name if old is not None else None,
        new_name=new.name if new is not None else None,
    )
    for kind in (TrackKind.VIDEO, TrackKind.AUDIO):
        old_tracks = old.tracks_of(kind) if old is not None else []
        new_tracks = new.tracks_of(kind) if new is not None else []
        for index in range(max(len(old_tracks), len(new_tracks))):
            old_track = old_tracks[index] if index < len(old_tracks) else None
            new_track = new_tracks[index] if index < len(new_tracks) else None
            if old_track is None:
                result.summary.tracks_added += 1
            elif new_track is None:
                result.summary.tracks_removed += 1
            track_diff = _diff_track(kind, index, old_track, new_track)
            _accumulate(result.summary, track_diff)
            result.tracks.append(track_diff)
    return result


def _diff_track(
    kind: TrackKind,
    index: int,
    old: Optional[Track],
    new: Optional[Track],
) -> TrackDiff:
    reference = new if new is not None else old
    assert reference is not None
    old_clips = old.clips if old is not None else []
    new_clips = new.clips if new is not None else []

    diff = TrackDiff(name=reference.name, kind=kind, track_index=index)
    for clip_index in range(max(len(old_clips), len(new_clips))):
        old_clip = old_clips[clip_index] if clip_index < len(old_clips) else None
        new_clip = new_clips[clip_index] if clip_index < len(new_clips) else None
        diff.clips.append(_diff_clip(index, clip_index, old_clip, new_clip))
    return diff


def _diff_clip(
    track_index: int,
    clip_index: int,
    old: Optional[Clip],
    new: Optional[Clip],
) -> ClipDiff:
    if old is None:
        assert new is not None
        status = DiffStatus.ADDED
    elif new is None:
        status = DiffStatus.REMOVED
    elif _same_clip(old, new):
        status = DiffStatus.UNCHANGED
    else:
        status = DiffStatus.MODIFIED

    current = new if new is not None else old
    assert current is not None
    return ClipDiff(
        name=current.name,
        status=status,
        media_ref=current.media_ref,
        old_range=old.source_range if old is not None else None,
        new_range=new.source_range if new is not None else None,
        old_trimmed_range=old.trimmed_range if old is not None else None,
        new_trimmed_range=new.trimmed_range if new is not None else None,
        track_index=track_index,
        clip_index=clip_index,
    )


def _same_clip(old: Clip, new: Clip) -> bool:
    # Names are labels only; a rename alone is not an edit.
    return (
        old.media_ref == new.media_ref
        and old.source_range == new.source_range
        and old.trimmed_range == new.trimmed_range
    )


def _accumulate(summary: DiffSummary, track: TrackDiff) -> None:
    summary.clips_added += track.count(DiffStatus.ADDED)
    summary.clips_removed += track.count(DiffStatus.REMOVED)
    summary.clips_modified += track.count(DiffStatus.MODIFIED)
    summary.clips_unchanged += track.count(DiffStatus.UNCHANGED)


__all__ = [
    "ClipDiff",
    "DiffStatus",
    "DiffSummary",
    "TimelineDiff",
    "TrackDiff",
    "diff_timelines",
]
