"""Commit creation and deletion."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from turnaround.errors import InvalidOperationError, NoChangesError, ValidationError
from turnaround.state import Commit, FileSnapshot, ProjectGraph
from turnaround.workdir import WorkingFile

from .graph import active_branch, require_commit
from .models import ChangeSet
from .session import ProjectSession

LOGGER = logging.getLogger(__name__)


def compare_to_head(files: Iterable[WorkingFile], head: Iterable[FileSnapshot]) -> ChangeSet:
    """Classify working files against the head commit by path and hash."""
    head_by_path = {snapshot.file_path: snapshot for snapshot in head}
    changes = ChangeSet()
    seen: set[str] = set()
    for working in files:
        seen.add(working.path)
        previous = head_by_path.get(working.path)
        if previous is None:
            changes.added.append(working.path)
        elif previous.content_hash != working.content_hash:
            changes.modified.append(working.path)
    changes.removed.extend(sorted(path for path in head_by_path if path not in seen))
    return changes


def head_snapshots(graph: ProjectGraph) -> List[FileSnapshot]:
    head_id = active_branch(graph).head_commit_id
    if head_id is None:
        return []
    return list(graph.snapshots.get(head_id, []))


class CommitEngine:
    """Record the working directory as a new commit on the active branch."""

    def __init__(self, session: ProjectSession) -> None:
        self._session = session

    def changed_files(self) -> ChangeSet:
        """Return the uncommitted changes of the working directory."""
        graph = self._session.load_graph()
        return compare_to_head(self._session.workdir.list_files(), head_snapshots(graph))

    def create_commit(
        self,
        message: str,
        is_milestone: bool = False,
        *,
        allow_empty: bool = False,
    ) -> Commit:
        """Create a commit holding the complete tracked file set.

        Blobs are written before the graph is touched; the commit record, its
        snapshots, and the advanced branch head are then persisted in a single
        graph write. A storage failure therefore aborts the commit without
        leaving a record that points at missing blobs.

        Args:
            message: Commit message; must contain non-whitespace text.
            is_milestone: Flag the commit as a milestone.
            allow_empty: Record a commit even when nothing changed.

        Returns:
            Commit: The new commit.

        Raises:
            ValidationError: If the message is blank.
            NoChangesError: If nothing changed and ``allow_empty`` is False.
            StorageIOError: If a blob cannot be written.
        """
        cleaned = message.strip()
        if not cleaned:
            raise ValidationError("Commit message must not be empty.")

        with self._session.lock:
            graph = self._session.load_graph()
            branch = active_branch(graph)
            files = self._session.workdir.list_files()
            changes = compare_to_head(files, head_snapshots(graph))
            if changes.is_empty() and not allow_empty:
                raise NoChangesError("No changes to commit.")

            stored_flags = self._store_blobs(files)

            commit = Commit(
                project_id=graph.project.id,
                branch_id=branch.id,
                parent_id=branch.head_commit_id,
                message=cleaned,
                is_milestone=is_milestone,
            )
            graph.commits[commit.id] = commit
            graph.snapshots[commit.id] = [
                FileSnapshot(
                    commit_id=commit.id,
                    file_path=working.path,
                    content_hash=working.content_hash,
                    file_size=working.size,
                    file_type=working.file_type,
                    stored=stored_flags[working.path],
                )
                for working in files
            ]
            graph.branches[branch.id].head_commit_id = commit.id
            self._session.save_graph(graph)

        LOGGER.info(
            "Created commit %s on %s (%d files, %d added, %d modified, %d removed)",
            commit.id[:8],
            branch.name,
            len(files),
            len(changes.added),
            len(changes.modified),
            len(changes.removed),
        )
        return commit

    def delete_commit(self, commit_id: str) -> None:
        """Delete the head commit of its branch and move the head to its parent.

        Raises:
            NotFoundError: If the commit does not exist.
            InvalidOperationError: If the commit is not its branch's head.
        """
        with self._session.lock:
            graph = self._session.load_graph()
            commit = require_commit(graph, commit_id)
            branch = graph.branches.get(commit.branch_id)
            if branch is None or branch.head_commit_id != commit_id:
                raise InvalidOperationError(
                    "Only the latest commit on a branch can be deleted."
                )
            released = {snapshot.content_hash for snapshot in graph.snapshots.pop(commit_id, [])}
            del graph.commits[commit_id]
            branch.head_commit_id = commit.parent_id
            self._session.save_graph(graph)
            self._session.store.release_unreferenced(released, graph.referenced_hashes())
        LOGGER.info("Deleted commit %s from %s", commit_id[:8], branch.name)

    def _store_blobs(self, files: Iterable[WorkingFile]) -> Dict[str, bool]:
        limit_mb = self._session.config.store.full_copy_limit_mb
        limit_bytes = limit_mb * 1024 * 1024 if limit_mb > 0 else None
        store = self._session.store
        stored: Dict[str, bool] = {}
        for working in files:
            if (
                limit_bytes is not None
                and working.size > limit_bytes
                and working.file_type != "project"
            ):
                LOGGER.info("Recording %s by hash only (%d bytes)", working.path, working.size)
                stored[working.path] = False
                continue
            if store.put_file(working.content_hash, working.absolute_path):
                LOGGER.debug("Stored blob %s for %s", working.content_hash[:12], working.path)
            stored[working.path] = True
        return stored


__all__ = ["CommitEngine", "compare_to_head", "head_snapshots"]
