"""File diff tests."""

from __future__ import annotations

from turnaround.diff import diff_files
from turnaround.state import FileSnapshot


def _snap(path: str, content_hash: str, size: int = 10) -> FileSnapshot:
    return FileSnapshot(
        commit_id="c", file_path=path, content_hash=content_hash * 64, file_size=size
    )


def test_diff_classifies_each_path_once() -> None:
    old = [_snap("cut.otio", "a"), _snap("media/a.mov", "b", 100), _snap("media/old.wav", "c")]
    new = [_snap("cut.otio", "a"), _snap("media/a.mov", "d", 150), _snap("media/new.wav", "e", 7)]

    result = diff_files(old, new)

    assert [(e.file_path, e.status) for e in result.entries] == [
        ("media/new.wav", "added"),
        ("media/a.mov", "modified"),
        ("media/old.wav", "removed"),
        ("cut.otio", "unchanged"),
    ]
    assert result.summary.model_dump() == {"added": 1, "removed": 1, "modified": 1, "unchanged": 1}
    assert result.entry("media/a.mov").size_change == 50
    assert result.entry("media/old.wav").size_change == -10
    assert [e.file_path for e in result.changed()] == [
        "media/new.wav",
        "media/a.mov",
        "media/old.wav",
    ]


def test_diff_is_antisymmetric() -> None:
    old = [_snap("a.mov", "a", 10), _snap("b.mov", "b", 10)]
    new = [_snap("b.mov", "c", 25), _snap("c.mov", "d", 4)]

    forward = diff_files(old, new)
    backward = diff_files(new, old)

    assert forward.summary.added == backward.summary.removed == 1
    assert forward.summary.removed == backward.summary.added == 1
    assert forward.entry("a.mov").status == "removed"
    assert backward.entry("a.mov").status == "added"
    assert backward.entry("b.mov").status == "modified"
    for path in ("a.mov", "b.mov", "c.mov"):
        assert forward.entry(path).size_change == -backward.entry(path).size_change
    assert forward.entry("b.mov").size_change == 15


def test_diff_keeps_union_order_within_status() -> None:
    old = [_snap("z.mov", "a"), _snap("m.mov", "b")]
    new = [_snap("z.mov", "a"), _snap("m.mov", "b"), _snap("b.mov", "c"), _snap("a.mov", "d")]

    result = diff_files(old, new)

    assert [e.file_path for e in result.entries] == ["b.mov", "a.mov", "z.mov", "m.mov"]


def test_diff_of_empty_sets() -> None:
    result = diff_files([], [])

    assert result.entries == []
    assert result.changed() == []


def test_disjoint_sets_are_all_added_or_removed() -> None:
    old = [_snap("a.mov", "a"), _snap("b.wav", "b")]
    new = [_snap("c.mov", "a"), _snap("d.otio", "c"), _snap("e.wav", "d")]

    summary = diff_files(old, new).summary

    assert summary.added + summary.removed == len(old) + len(new)
    assert summary.added == 3
    assert summary.modified == summary.unchanged == 0
