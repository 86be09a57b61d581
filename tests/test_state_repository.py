"""Graph repository tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from turnaround.state import (
    DEFAULT_STATE_DIRNAME,
    Branch,
    Commit,
    FileSnapshot,
    GraphRepository,
    MissingStateError,
    Project,
    ProjectGraph,
    StateError,
)


def _graph(tmp_path: Path) -> ProjectGraph:
    """Return a sample graph with one branch and one commit.

    Args:
        tmp_path: Temporary directory provided by pytest.

    Returns:
        ProjectGraph: Graph whose single branch points at its only commit.
    """
    project = Project(name="demo", root_path=str(tmp_path))
    branch = Branch(project_id=project.id, name="main", is_active=True)
    commit = Commit(project_id=project.id, branch_id=branch.id, message="first")
    branch.head_commit_id = commit.id
    project.active_branch_id = branch.id
    snapshot = FileSnapshot(
        commit_id=commit.id, file_path="cut.otio", content_hash="ab" * 32, file_size=10
    )
    return ProjectGraph(
        project=project,
        branches={branch.id: branch},
        commits={commit.id: commit},
        snapshots={commit.id: [snapshot]},
    )


def test_initialize_creates_expected_structure(tmp_path: Path) -> None:
    """Ensure initialize prepares the metadata directory structure.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    repo = GraphRepository()

    directory = repo.initialize(tmp_path)

    assert directory == tmp_path / DEFAULT_STATE_DIRNAME
    assert (directory / "objects").is_dir()
    assert not repo.exists(tmp_path)


def test_save_and_load_round_trip(tmp_path: Path) -> None:
    """Ensure save followed by load returns the same graph.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    repo = GraphRepository()
    graph = _graph(tmp_path)

    repo.save(tmp_path, graph)
    loaded = repo.load(tmp_path)

    assert repo.exists(tmp_path)
    assert loaded.project.id == graph.project.id
    assert loaded.branches.keys() == graph.branches.keys()
    assert loaded.snapshots == graph.snapshots
    assert loaded.updated_at >= loaded.project.created_at
    leftovers = [path.name for path in (tmp_path / DEFAULT_STATE_DIRNAME).iterdir()]
    assert not [name for name in leftovers if name.startswith(".graph-")]


def test_referenced_hashes_ignore_hash_only_snapshots(tmp_path: Path) -> None:
    """Hash-only snapshots do not keep blobs alive.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    graph = _graph(tmp_path)
    commit_id = next(iter(graph.commits))
    graph.snapshots[commit_id].append(
        FileSnapshot(
            commit_id=commit_id,
            file_path="media/huge.mov",
            content_hash="cd" * 32,
            file_size=10,
            stored=False,
        )
    )

    assert graph.referenced_hashes() == {"ab" * 32}


def test_load_missing_state_raises(tmp_path: Path) -> None:
    """Verify loading without a graph raises MissingStateError.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    repo = GraphRepository()

    with pytest.raises(MissingStateError):
        repo.load(tmp_path)


def test_load_invalid_state_raises(tmp_path: Path) -> None:
    """Ensure invalid JSON payload raises StateError on load.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    repo = GraphRepository()
    directory = repo.initialize(tmp_path)
    (directory / "graph.json").write_text("not json", encoding="utf-8")

    with pytest.raises(StateError):
        repo.load(tmp_path)


def test_load_structurally_invalid_state_raises(tmp_path: Path) -> None:
    """Ensure well-formed JSON with the wrong shape raises StateError.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    repo = GraphRepository()
    directory = repo.initialize(tmp_path)
    (directory / "graph.json").write_text('{"branches": []}', encoding="utf-8")

    with pytest.raises(StateError):
        repo.load(tmp_path)
