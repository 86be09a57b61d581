"""Timeline diff tests."""

from __future__ import annotations

from pathlib import Path

from conftest import otio_document, write_file
from turnaround.timeline import (
    Clip,
    DiffStatus,
    RationalTime,
    TimeRange,
    Timeline,
    Track,
    TrackKind,
    diff_commit_timelines,
    diff_timelines,
)
from turnaround.vcs import CommitEngine, ProjectSession


def _clip(name: str, media: str, start: int = 0, duration: int = 24) -> Clip:
    return Clip(
        name=name,
        media_ref=media,
        source_range=TimeRange(
            start=RationalTime(value=start, rate=24),
            duration=RationalTime(value=duration, rate=24),
        ),
    )


def _timeline(*tracks: Track) -> Timeline:
    return Timeline(name="Cut", tracks=list(tracks))


def test_positional_matching_reports_each_slot() -> None:
    old = _timeline(Track(name="V1", clips=[_clip("A", "a.mov"), _clip("B", "b.mov")]))
    new = _timeline(
        Track(
            name="V1",
            clips=[_clip("A", "a.mov"), _clip("B", "b.mov", 12), _clip("C", "c.mov")],
        )
    )

    result = diff_timelines(old, new)

    statuses = [clip.status for clip in result.tracks[0].clips]
    assert statuses == [DiffStatus.UNCHANGED, DiffStatus.MODIFIED, DiffStatus.ADDED]
    modified = result.tracks[0].clips[1]
    assert modified.old_range.start.value == 0
    assert modified.new_range.start.value == 12
    assert result.summary.clips_added == 1
    assert result.summary.has_changes is True


def test_clip_counts_balance() -> None:
    old = _timeline(
        Track(name="V1", clips=[_clip("A", "a.mov"), _clip("B", "b.mov"), _clip("C", "c.mov")]),
        Track(name="A1", kind=TrackKind.AUDIO, clips=[_clip("M", "m.wav")]),
    )
    new = _timeline(Track(name="V1", clips=[_clip("B", "b.mov")]))

    summary = diff_timelines(old, new).summary

    assert summary.tracks_removed == 1
    assert old.clip_count + summary.clips_added == new.clip_count + summary.clips_removed
    assert summary.clips_modified == 1
    assert summary.clips_removed == 3


def test_missing_side_counts_every_clip() -> None:
    new = _timeline(Track(name="V1", clips=[_clip("A", "a.mov"), _clip("B", "b.mov")]))

    added = diff_timelines(None, new)
    removed = diff_timelines(new, None)

    assert added.old_name is None
    assert added.summary.clips_added == 2
    assert added.summary.tracks_added == 1
    assert removed.summary.clips_removed == 2
    assert removed.tracks[0].clips[0].old_range is not None
    assert removed.tracks[0].clips[0].new_range is None
    assert diff_timelines(None, None).summary.has_changes is False


def test_video_tracks_are_listed_before_audio() -> None:
    old = _timeline(
        Track(name="A1", kind=TrackKind.AUDIO, clips=[_clip("M", "m.wav")]),
        Track(name="V1", clips=[_clip("A", "a.mov")]),
    )
    new = _timeline(
        Track(name="Music", kind=TrackKind.AUDIO, clips=[_clip("M", "m.wav")]),
        Track(name="V1", clips=[_clip("A", "a.mov")]),
        Track(name="V2", clips=[_clip("T", "title.mov")]),
    )

    result = diff_timelines(old, new)

    assert [(t.name, t.kind, t.track_index) for t in result.tracks] == [
        ("V1", TrackKind.VIDEO, 0),
        ("V2", TrackKind.VIDEO, 1),
        ("Music", TrackKind.AUDIO, 0),
    ]
    assert result.summary.tracks_added == 1


def test_rename_alone_is_unchanged() -> None:
    old = _timeline(Track(name="V1", clips=[_clip("Take 1", "a.mov")]))
    new = _timeline(Track(name="V1", clips=[_clip("Hero take", "a.mov")]))

    result = diff_timelines(old, new)

    clip = result.tracks[0].clips[0]
    assert clip.status == DiffStatus.UNCHANGED
    assert clip.name == "Hero take"
    assert result.summary.has_changes is False


def test_diff_commit_timelines_reads_stored_documents(
    session: ProjectSession, project_root: Path
) -> None:
    engine = CommitEngine(session)
    first = engine.create_commit("first")
    write_file(
        project_root,
        "cut.otio",
        otio_document(
            [
                {"name": "Intro", "url": "media/a.mov", "start": 0, "duration": 36},
                {"name": "Outro", "url": "media/b.mov", "start": 0, "duration": 24},
            ]
        ),
    )
    second = engine.create_commit("trim intro, add outro")

    result = diff_commit_timelines(session, first.id, second.id)

    assert result.summary.clips_modified == 1
    assert result.summary.clips_added == 1
    assert result.tracks[0].clips[0].new_range.duration.value == 36


def test_diff_commit_timelines_treats_unreadable_side_as_empty(
    session: ProjectSession, project_root: Path
) -> None:
    engine = CommitEngine(session)
    write_file(project_root, "cut.otio", "{broken")
    broken = engine.create_commit("broken timeline")
    write_file(project_root, "cut.otio", otio_document([]))
    empty = engine.create_commit("empty timeline")

    result = diff_commit_timelines(session, broken.id, empty.id)

    assert result.old_name is None
    assert result.new_name == "Cut"
    assert result.summary.tracks_added == 1
    assert result.summary.clips_added == 0


def test_diff_commit_timelines_skips_unparseable_xml_sidecar(
    session: ProjectSession, project_root: Path
) -> None:
    engine = CommitEngine(session)
    write_file(project_root, "Audio.xml", "<xmeml version='4'/>")
    write_file(project_root, "00-notes.otio", "{not json")
    first = engine.create_commit("with sidecar")
    write_file(
        project_root,
        "cut.otio",
        otio_document([{"name": "Intro", "url": "media/a.mov", "start": 0, "duration": 36}]),
    )
    second = engine.create_commit("trim intro")

    result = diff_commit_timelines(session, first.id, second.id)

    assert result.old_name == "Cut"
    assert result.new_name == "Cut"
    assert result.summary.clips_modified == 1


def test_diff_commit_timelines_treats_misshapen_json_as_empty(
    session: ProjectSession, project_root: Path
) -> None:
    engine = CommitEngine(session)
    valid = engine.create_commit("valid timeline")
    misshapen_document = '{"OTIO_SCHEMA": "Timeline.1", "name": "X", "tracks": [1]}'
    write_file(project_root, "cut.otio", misshapen_document)
    misshapen = engine.create_commit("misshapen timeline")

    result = diff_commit_timelines(session, valid.id, misshapen.id)

    assert result.old_name == "Cut"
    assert result.new_name is None
    assert result.summary.clips_removed == 1
