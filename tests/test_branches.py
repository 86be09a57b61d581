"""Branch and history tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import write_file
from turnaround.errors import (
    InvalidOperationError,
    NameConflictError,
    NotFoundError,
    ValidationError,
)
from turnaround.vcs import CommitEngine, CommitGraph, ProjectSession


def _active_names(graph_api: CommitGraph) -> list[str]:
    return [branch.name for branch in graph_api.get_branches() if branch.is_active]


def test_init_creates_single_active_branch(session: ProjectSession) -> None:
    graph_api = CommitGraph(session)

    branches = graph_api.get_branches()

    assert [branch.name for branch in branches] == ["main"]
    assert branches[0].is_active is True
    assert branches[0].head_commit_id is None
    assert session.load_graph().project.active_branch_id == branches[0].id


def test_create_branch_is_empty_and_inactive(session: ProjectSession) -> None:
    CommitEngine(session).create_commit("first")
    graph_api = CommitGraph(session)

    branch = graph_api.create_branch("  alt-ending ")

    assert branch.name == "alt-ending"
    assert branch.is_active is False
    assert branch.head_commit_id is None
    assert _active_names(graph_api) == ["main"]


def test_create_branch_rejects_blank_and_duplicate_names(session: ProjectSession) -> None:
    graph_api = CommitGraph(session)

    with pytest.raises(ValidationError):
        graph_api.create_branch("   ")
    with pytest.raises(NameConflictError):
        graph_api.create_branch("main")

    assert len(graph_api.get_branches()) == 1


def test_switch_keeps_exactly_one_active_branch(session: ProjectSession) -> None:
    graph_api = CommitGraph(session)
    alt = graph_api.create_branch("alt")
    graph_api.create_branch("director")

    graph_api.switch_branch(alt.id)

    assert _active_names(graph_api) == ["alt"]
    assert session.load_graph().project.active_branch_id == alt.id

    graph_api.switch_branch(graph_api.find_branch("main").id)
    assert _active_names(graph_api) == ["main"]


def test_commits_land_on_active_branch(session: ProjectSession, project_root: Path) -> None:
    engine = CommitEngine(session)
    graph_api = CommitGraph(session)
    main_head = engine.create_commit("on main")
    alt = graph_api.create_branch("alt")
    graph_api.switch_branch(alt.id)

    write_file(project_root, "media/a.mov", b"alt take")
    alt_commit = engine.create_commit("on alt")

    assert alt_commit.branch_id == alt.id
    assert alt_commit.parent_id is None
    assert graph_api.find_branch("main").head_commit_id == main_head.id
    assert [c.id for c in graph_api.get_history(alt.id)] == [alt_commit.id]


def test_delete_branch_guards_active_and_last(session: ProjectSession) -> None:
    graph_api = CommitGraph(session)
    main = graph_api.get_active_branch()

    with pytest.raises(InvalidOperationError):
        graph_api.delete_branch(main.id)

    with pytest.raises(NotFoundError):
        graph_api.delete_branch("missing")


def test_delete_branch_removes_its_commits(session: ProjectSession, project_root: Path) -> None:
    engine = CommitEngine(session)
    graph_api = CommitGraph(session)
    engine.create_commit("on main")
    alt = graph_api.create_branch("alt")
    graph_api.switch_branch(alt.id)
    write_file(project_root, "media/a.mov", b"alt only")
    alt_commit = engine.create_commit("on alt")
    graph_api.switch_branch(graph_api.find_branch("main").id)

    graph_api.delete_branch(alt.id)

    graph = session.load_graph()
    assert alt_commit.id not in graph.commits
    assert alt_commit.id not in graph.snapshots
    assert [branch.name for branch in graph_api.get_branches()] == ["main"]
    assert len(graph.referenced_hashes()) == 3


def test_history_is_newest_first_and_limited(session: ProjectSession, project_root: Path) -> None:
    engine = CommitEngine(session)
    graph_api = CommitGraph(session)
    commits = []
    for index in range(3):
        write_file(project_root, "media/a.mov", f"take {index}".encode())
        commits.append(engine.create_commit(f"take {index}"))
    branch_id = graph_api.get_active_branch().id

    history = graph_api.get_history(branch_id)
    limited = graph_api.get_history(branch_id, limit=2)

    assert [c.id for c in history] == [c.id for c in reversed(commits)]
    assert [c.id for c in limited] == [commits[2].id, commits[1].id]
    assert graph_api.walk_history(commits[1].id, 10)[-1].id == commits[0].id


def test_resolve_commit_references(session: ProjectSession, project_root: Path) -> None:
    engine = CommitEngine(session)
    graph_api = CommitGraph(session)
    first = engine.create_commit("first")
    write_file(project_root, "media/a.mov", b"second")
    second = engine.create_commit("second")

    assert graph_api.resolve_commit("HEAD").id == second.id
    assert graph_api.resolve_commit("HEAD~1").id == first.id
    assert graph_api.resolve_commit(first.id[:10]).id == first.id

    with pytest.raises(NotFoundError):
        graph_api.resolve_commit("HEAD~2")
    with pytest.raises(ValidationError):
        graph_api.resolve_commit("HEAD~x")
    with pytest.raises(ValidationError):
        graph_api.resolve_commit("HEAD~-1")


def test_get_commit_returns_stored_record(session: ProjectSession) -> None:
    graph_api = CommitGraph(session)
    commit = CommitEngine(session).create_commit("first")

    assert graph_api.get_commit(commit.id).message == "first"
    with pytest.raises(NotFoundError):
        graph_api.get_commit("missing")
