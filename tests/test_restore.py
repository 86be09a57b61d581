"""Restore and export tests."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from conftest import write_file
from turnaround.errors import NotFoundError, ValidationError
from turnaround.vcs import CommitEngine, CommitGraph, ProjectSession, RestoreEngine


def test_restore_rewrites_modified_files(session: ProjectSession, project_root: Path) -> None:
    first = CommitEngine(session).create_commit("first")
    write_file(project_root, "media/a.mov", b"overwritten")

    report = RestoreEngine(session).restore_commit(first.id)

    assert report.restored == ["media/a.mov"]
    assert report.skipped == ["cut.otio", "media/b.wav"]
    assert report.failed_count == 0
    assert (project_root / "media" / "a.mov").read_bytes() == b"video-a"


def test_second_restore_writes_nothing(session: ProjectSession, project_root: Path) -> None:
    engine = CommitEngine(session)
    first = engine.create_commit("first")
    write_file(project_root, "media/a.mov", b"v2")
    (project_root / "media" / "b.wav").unlink()
    engine.create_commit("second")
    restorer = RestoreEngine(session)

    initial = restorer.restore_commit(first.id)
    repeat = restorer.restore_commit(first.id)

    assert initial.restored == ["media/a.mov", "media/b.wav"]
    assert repeat.restored_count == 0
    assert repeat.skipped_count == repeat.total == 3


def test_restore_leaves_untracked_extra_files(session: ProjectSession, project_root: Path) -> None:
    first = CommitEngine(session).create_commit("first")
    extra = write_file(project_root, "media/new.mov", b"later")

    RestoreEngine(session).restore_commit(first.id)

    assert extra.read_bytes() == b"later"


def test_restore_reports_missing_blob_as_failed(
    session: ProjectSession, project_root: Path
) -> None:
    first = CommitEngine(session).create_commit("first")
    snapshot = next(
        s for s in CommitGraph(session).get_snapshots(first.id) if s.file_path == "media/b.wav"
    )
    session.store.remove(snapshot.content_hash)
    (project_root / "media" / "b.wav").unlink()

    report = RestoreEngine(session).restore_commit(first.id)

    assert report.failed == ["media/b.wav"]
    assert report.skipped_count == 2
    assert not (project_root / "media" / "b.wav").exists()


def test_restore_unknown_commit_raises(session: ProjectSession) -> None:
    with pytest.raises(NotFoundError):
        RestoreEngine(session).restore_commit("missing")


def test_restore_honours_cancellation(session: ProjectSession, project_root: Path) -> None:
    first = CommitEngine(session).create_commit("first")
    write_file(project_root, "media/a.mov", b"changed")
    cancel = threading.Event()
    cancel.set()

    report = RestoreEngine(session).restore_commit(first.id, cancel_event=cancel)

    assert report.cancelled is True
    assert report.restored == []
    assert (project_root / "media" / "a.mov").read_bytes() == b"changed"


def test_export_copies_commit_tree(session: ProjectSession, tmp_path: Path) -> None:
    first = CommitEngine(session).create_commit("Picture lock")
    destination = tmp_path / "exports" / "lock"

    report = RestoreEngine(session).export_commit(first.id, destination)

    assert report.commit_message == "Picture lock"
    assert report.exported_count == 3
    assert (destination / "media" / "a.mov").read_bytes() == b"video-a"
    assert (destination / "cut.otio").is_file()


def test_export_skips_unavailable_blobs(session: ProjectSession, tmp_path: Path) -> None:
    first = CommitEngine(session).create_commit("first")
    snapshot = next(
        s for s in CommitGraph(session).get_snapshots(first.id) if s.file_path == "media/a.mov"
    )
    session.store.remove(snapshot.content_hash)

    report = RestoreEngine(session).export_commit(first.id, tmp_path / "out")

    assert report.skipped == ["media/a.mov"]
    assert report.exported == ["cut.otio", "media/b.wav"]


def test_export_into_metadata_directory_is_rejected(session: ProjectSession) -> None:
    first = CommitEngine(session).create_commit("first")

    with pytest.raises(ValidationError):
        RestoreEngine(session).export_commit(first.id, session.state_dir / "exports")
