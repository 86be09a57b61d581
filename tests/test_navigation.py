"""History navigator tests."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from conftest import otio_document, write_file
from turnaround.errors import InvalidOperationError
from turnaround.navigation import HistoryNavigator, NavigationMode
from turnaround.vcs import CommitEngine, ProjectSession


@pytest.fixture
def navigator(session: ProjectSession) -> Iterator[HistoryNavigator]:
    with HistoryNavigator(session) as nav:
        yield nav


@pytest.fixture
def two_commits(session: ProjectSession, project_root: Path) -> tuple[str, str]:
    engine = CommitEngine(session)
    first = engine.create_commit("first")
    write_file(
        project_root,
        "cut.otio",
        otio_document(
            [
                {"name": "Intro", "url": "media/a.mov", "start": 0, "duration": 48},
                {"name": "Outro", "url": "media/c.mov", "start": 0, "duration": 24},
            ]
        ),
    )
    write_file(project_root, "media/c.mov", b"video-c")
    second = engine.create_commit("second")
    return first.id, second.id


def test_ghost_compares_against_head(
    navigator: HistoryNavigator, two_commits: tuple[str, str]
) -> None:
    first, second = two_commits

    future = navigator.set_ghost(first)
    ghost = future.result(timeout=5)

    assert navigator.mode == NavigationMode.GHOST
    assert ghost.head_commit_id == second
    assert ghost.summary.added == 1
    assert ghost.summary.modified == 1
    assert ghost.timeline.summary.clips_added == 1
    assert navigator.ghost_diff == ghost

    assert navigator.set_ghost(None) is None
    assert navigator.mode == NavigationMode.NORMAL
    assert navigator.ghost_diff is None


def test_ghost_failure_resolves_to_none(
    navigator: HistoryNavigator, session: ProjectSession
) -> None:
    CommitEngine(session).create_commit("first")

    future = navigator.set_ghost("does-not-exist")

    assert future.result(timeout=5) is None
    assert navigator.mode == NavigationMode.GHOST
    assert navigator.ghost_diff is None


def test_select_commit_loads_detail(
    navigator: HistoryNavigator, two_commits: tuple[str, str]
) -> None:
    first, _ = two_commits

    detail = navigator.select_commit(first).result(timeout=5)

    assert detail.commit.id == first
    assert navigator.selected_detail == detail

    assert navigator.select_commit("missing").result(timeout=5) is None
    assert navigator.selected_commit_id == "missing"
    assert navigator.selected_detail is None


def test_compare_requires_two_distinct_commits(
    navigator: HistoryNavigator, two_commits: tuple[str, str]
) -> None:
    first, _ = two_commits

    assert navigator.run_compare() is None

    navigator.enter_compare()
    assert navigator.run_compare() is None
    navigator.set_compare_a(first)
    navigator.set_compare_b(first)
    assert navigator.run_compare() is None
    assert navigator.compare_result is None


def test_compare_combines_file_and_timeline_diffs(
    navigator: HistoryNavigator, two_commits: tuple[str, str]
) -> None:
    first, second = two_commits
    navigator.enter_compare()
    navigator.set_compare_a(first)
    navigator.set_compare_b(second)

    result = navigator.run_compare().result(timeout=5)

    assert result.commit_a.commit.id == first
    assert result.commit_b.commit.message == "second"
    assert [entry.file_path for entry in result.files if entry.status == "added"] == [
        "media/c.mov"
    ]
    assert result.timeline.summary.clips_added == 1
    assert navigator.compare_result == result
    assert navigator.compare_error is None


def test_compare_failure_is_recorded(
    navigator: HistoryNavigator, two_commits: tuple[str, str]
) -> None:
    first, _ = two_commits
    navigator.enter_compare()
    navigator.set_compare_a(first)
    navigator.set_compare_b("missing")

    assert navigator.run_compare().result(timeout=5) is None
    assert navigator.compare_result is None
    assert "missing" in navigator.compare_error


def test_compare_mode_clears_and_blocks_browsing(
    navigator: HistoryNavigator, two_commits: tuple[str, str]
) -> None:
    first, second = two_commits
    navigator.set_ghost(second).result(timeout=5)
    navigator.select_commit(first).result(timeout=5)

    navigator.enter_compare()

    assert navigator.mode == NavigationMode.COMPARE
    assert navigator.ghost_commit_id is None
    assert navigator.ghost_diff is None
    assert navigator.selected_commit_id is None
    assert navigator.selected_detail is None
    with pytest.raises(InvalidOperationError):
        navigator.set_ghost(first)
    with pytest.raises(InvalidOperationError):
        navigator.select_commit(first)

    navigator.exit_compare()
    assert navigator.mode == NavigationMode.NORMAL
    assert navigator.compare_a is None


def test_compare_sides_need_compare_mode(navigator: HistoryNavigator) -> None:
    with pytest.raises(InvalidOperationError):
        navigator.set_compare_a("anything")
