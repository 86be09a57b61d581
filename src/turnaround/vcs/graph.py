"""Branch and history operations over a project's commit graph."""

from __future__ import annotations

import logging
from typing import List

from turnaround.errors import (
    InvalidOperationError,
    NameConflictError,
    NotFoundError,
    ValidationError,
)
from turnaround.state import Branch, Commit, FileSnapshot, ProjectGraph

from .models import CommitDetail
from .session import ProjectSession

LOGGER = logging.getLogger(__name__)


def active_branch(graph: ProjectGraph) -> Branch:
    """Return the project's active branch.

    Raises:
        NotFoundError: If no branch is flagged active.
    """
    for branch in graph.branches.values():
        if branch.is_active:
            return branch
    raise NotFoundError("Project has no active branch.")


def require_branch(graph: ProjectGraph, branch_id: str) -> Branch:
    branch = graph.branches.get(branch_id)
    if branch is None:
        raise NotFoundError(f"Branch not found: {branch_id}")
    return branch


def require_commit(graph: ProjectGraph, commit_id: str) -> Commit:
    commit = graph.commits.get(commit_id)
    if commit is None:
        raise NotFoundError(f"Commit not found: {commit_id}")
    return commit


def walk(
    graph: ProjectGraph,
    start_commit_id: str | None,
    max_depth: int | None = None,
) -> List[Commit]:
    """Follow parent pointers from ``start_commit_id``, newest first."""
    history: List[Commit] = []
    current = start_commit_id
    seen: set[str] = set()
    while current is not None and current not in seen:
        if max_depth is not None and len(history) >= max_depth:
            break
        commit = graph.commits.get(current)
        if commit is None:
            break
        seen.add(current)
        history.append(commit)
        current = commit.parent_id
    return history


class CommitGraph:
    """Read and mutate branches of a single project.

    Reads load the graph fresh from disk. Mutations hold the project writer
    lock from load to save.
    """

    def __init__(self, session: ProjectSession) -> None:
        self._session = session

    # Queries ----------------------------------------------------------

    def get_branches(self) -> List[Branch]:
        graph = self._session.load_graph()
        return sorted(graph.branches.values(), key=lambda branch: branch.name)

    def get_active_branch(self) -> Branch:
        return active_branch(self._session.load_graph())

    def find_branch(self, name_or_id: str) -> Branch:
        """Resolve a branch by identifier or by name."""
        graph = self._session.load_graph()
        if name_or_id in graph.branches:
            return graph.branches[name_or_id]
        for branch in graph.branches.values():
            if branch.name == name_or_id:
                return branch
        raise NotFoundError(f"Branch not found: {name_or_id}")

    def get_history(self, branch_id: str, limit: int | None = None) -> List[Commit]:
        """Return up to ``limit`` commits of a branch, newest first.

        Raises:
            NotFoundError: If the branch does not exist.
        """
        graph = self._session.load_graph()
        branch = require_branch(graph, branch_id)
        if limit is None:
            limit = self._session.config.history.default_limit
        return walk(graph, branch.head_commit_id, max(0, limit))

    def walk_history(self, start_commit_id: str, max_depth: int) -> List[Commit]:
        graph = self._session.load_graph()
        require_commit(graph, start_commit_id)
        return walk(graph, start_commit_id, max_depth)

    def get_commit(self, commit_id: str) -> Commit:
        return require_commit(self._session.load_graph(), commit_id)

    def resolve_commit(self, ref: str) -> Commit:
        """Resolve a full commit id, a unique id prefix, ``HEAD`` or ``HEAD~N``."""
        graph = self._session.load_graph()
        if ref == "HEAD" or ref.startswith("HEAD~"):
            depth = 0
            if ref != "HEAD":
                try:
                    depth = int(ref[len("HEAD~") :])
                except ValueError as exc:
                    raise ValidationError(f"Invalid commit reference: {ref}") from exc
                if depth < 0:
                    raise ValidationError(f"Invalid commit reference: {ref}")
            history = walk(graph, active_branch(graph).head_commit_id, depth + 1)
            if len(history) <= depth:
                raise NotFoundError(f"Commit not found: {ref}")
            return history[depth]
        if ref in graph.commits:
            return graph.commits[ref]
        matches = [
            commit for commit_id, commit in graph.commits.items() if commit_id.startswith(ref)
        ]
        if len(matches) == 1:
            return matches[0]
        if len(matches) > 1:
            raise ValidationError(f"Commit reference {ref} is ambiguous.")
        raise NotFoundError(f"Commit not found: {ref}")

    def get_snapshots(self, commit_id: str) -> List[FileSnapshot]:
        graph = self._session.load_graph()
        require_commit(graph, commit_id)
        return list(graph.snapshots.get(commit_id, []))

    def get_commit_detail(self, commit_id: str) -> CommitDetail:
        graph = self._session.load_graph()
        commit = require_commit(graph, commit_id)
        return CommitDetail(commit=commit, files=list(graph.snapshots.get(commit_id, [])))

    # Mutations --------------------------------------------------------

    def create_branch(self, name: str) -> Branch:
        """Create an empty, inactive branch.

        Raises:
            ValidationError: If the name is blank.
            NameConflictError: If a branch with that name already exists.
        """
        cleaned = name.strip()
        if not cleaned:
            raise ValidationError("Branch name must not be empty.")
        with self._session.lock:
            graph = self._session.load_graph()
            if any(branch.name == cleaned for branch in graph.branches.values()):
                raise NameConflictError(f"A branch named '{cleaned}' already exists.")
            branch = Branch(project_id=graph.project.id, name=cleaned)
            graph.branches[branch.id] = branch
            self._session.save_graph(graph)
        LOGGER.info("Created branch %s", cleaned)
        return branch

    def switch_branch(self, branch_id: str) -> Branch:
        """Make ``branch_id`` the only active branch in one graph write."""
        with self._session.lock:
            graph = self._session.load_graph()
            target = require_branch(graph, branch_id)
            for branch in graph.branches.values():
                branch.is_active = branch.id == target.id
            graph.project.active_branch_id = target.id
            self._session.save_graph(graph)
        LOGGER.info("Switched to branch %s", target.name)
        return target

    def delete_branch(self, branch_id: str) -> None:
        """Delete an inactive branch together with its commits and snapshots.

        Raises:
            NotFoundError: If the branch does not exist.
            InvalidOperationError: If the branch is active or the last one left.
        """
        with self._session.lock:
            graph = self._session.load_graph()
            target = require_branch(graph, branch_id)
            if target.is_active:
                raise InvalidOperationError(
                    "Cannot delete the active branch; switch to another branch first."
                )
            if len(graph.branches) <= 1:
                raise InvalidOperationError("Cannot delete the last remaining branch.")

            released: set[str] = set()
            doomed = [cid for cid, commit in graph.commits.items() if commit.branch_id == branch_id]
            for commit_id in doomed:
                del graph.commits[commit_id]
                for snapshot in graph.snapshots.pop(commit_id, []):
                    released.add(snapshot.content_hash)
            del graph.branches[branch_id]
            self._session.save_graph(graph)
            self._session.store.release_unreferenced(released, graph.referenced_hashes())
        LOGGER.info("Deleted branch %s", target.name)


__all__ = [
    "CommitGraph",
    "active_branch",
    "require_branch",
    "require_commit",
    "walk",
]
