"""History navigation: ghost previews, commit detail selection and compare mode."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from turnaround.diff import FileDiffEntry, FileDiffSummary, diff_files
from turnaround.errors import InvalidOperationError
from turnaround.timeline import TimelineDiff, diff_commit_timelines
from turnaround.vcs.graph import CommitGraph
from turnaround.vcs.models import CommitDetail
from turnaround.vcs.session import ProjectSession

LOGGER = logging.getLogger(__name__)


class NavigationMode(str, Enum):
    NORMAL = "Normal"
    GHOST = "Ghost"
    COMPARE = "Compare"


class GhostDiff(BaseModel):
    """Difference between a previewed commit and the active branch head."""

    ghost_commit_id: str
    head_commit_id: Optional[str] = None
    files: List[FileDiffEntry] = Field(default_factory=list)
    summary: FileDiffSummary = Field(default_factory=FileDiffSummary)
    timeline: TimelineDiff = Field(default_factory=TimelineDiff)


class CompareResult(BaseModel):
    """Combined outcome of an explicit two-commit comparison.

    Attributes:
        commit_a: Detail of the first (older side) commit.
        commit_b: Detail of the second (newer side) commit.
        files: File diff entries from A to B.
        summary: Per-status file counts.
        timeline: Clip-level diff of the two commits' timelines.
    """

    commit_a: CommitDetail
    commit_b: CommitDetail
    files: List[FileDiffEntry] = Field(default_factory=list)
    summary: FileDiffSummary = Field(default_factory=FileDiffSummary)
    timeline: TimelineDiff = Field(default_factory=TimelineDiff)


class HistoryNavigator:
    """Drive history browsing for one project.

    The navigator is in exactly one of three modes. Background work is
    submitted to a thread pool and every operation that starts work returns
    the :class:`~concurrent.futures.Future`. Results are written back only if
    the navigator state that requested them is still current, so a slow fetch
    never overwrites a newer selection.
    """

    def __init__(
        self,
        session: ProjectSession,
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        self._session = session
        self._graph = CommitGraph(session)
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=4, thread_name_prefix="turnaround-nav"
        )
        self._lock = threading.Lock()
        self._tokens: Dict[str, int] = {"ghost": 0, "detail": 0, "compare": 0}

        self.mode = NavigationMode.NORMAL
        self.ghost_commit_id: Optional[str] = None
        self.ghost_diff: Optional[GhostDiff] = None
        self.selected_commit_id: Optional[str] = None
        self.selected_detail: Optional[CommitDetail] = None
        self.compare_a: Optional[str] = None
        self.compare_b: Optional[str] = None
        self.compare_result: Optional[CompareResult] = None
        self.compare_error: Optional[str] = None

    # Ghost ------------------------------------------------------------

    def set_ghost(self, commit_id: Optional[str]) -> Optional["Future[Optional[GhostDiff]]"]:
        """Preview ``commit_id`` against the active head, or return to normal browsing.

        Diff failures are logged and the future resolves to None.

        Raises:
            InvalidOperationError: If compare mode is active.
        """
        with self._lock:
            if self.mode == NavigationMode.COMPARE:
                raise InvalidOperationError("Exit compare mode before previewing a commit.")
            token = self._bump("ghost")
            self.ghost_diff = None
            if commit_id is None:
                self.mode = NavigationMode.NORMAL
                self.ghost_commit_id = None
                return None
            self.mode = NavigationMode.GHOST
            self.ghost_commit_id = commit_id
        return self._executor.submit(self._load_ghost_diff, commit_id, token)

    def _load_ghost_diff(self, commit_id: str, token: int) -> Optional[GhostDiff]:
        try:
            head_id = self._graph.get_active_branch().head_commit_id
            ghost_files = self._graph.get_snapshots(commit_id)
            head_files = self._graph.get_snapshots(head_id) if head_id else []
            file_diff = diff_files(ghost_files, head_files)
            timeline = (
                diff_commit_timelines(self._session, commit_id, head_id)
                if head_id
                else TimelineDiff()
            )
        except Exception as exc:
            LOGGER.warning("Ghost diff for %s failed: %s", commit_id[:8], exc)
            return None

        result = GhostDiff(
            ghost_commit_id=commit_id,
            head_commit_id=head_id,
            files=file_diff.entries,
            summary=file_diff.summary,
            timeline=timeline,
        )
        with self._lock:
            if token == self._tokens["ghost"]:
                self.ghost_diff = result
        return result

    # Selection --------------------------------------------------------

    def select_commit(self, commit_id: Optional[str]) -> Optional["Future[Optional[CommitDetail]]"]:
        """Load the detail view for ``commit_id``; None clears the selection.

        Raises:
            InvalidOperationError: If compare mode is active.
        """
        with self._lock:
            if self.mode == NavigationMode.COMPARE:
                raise InvalidOperationError("Commit selection is unavailable in compare mode.")
            token = self._bump("detail")
            self.selected_commit_id = commit_id
            self.selected_detail = None
            if commit_id is None:
                return None
        return self._executor.submit(self._load_detail, commit_id, token)

    def _load_detail(self, commit_id: str, token: int) -> Optional[CommitDetail]:
        try:
            detail = self._graph.get_commit_detail(commit_id)
        except Exception as exc:
            LOGGER.warning("Could not load commit %s: %s", commit_id[:8], exc)
            detail = None
        with self._lock:
            if token == self._tokens["detail"]:
                self.selected_detail = detail
        return detail

    # Compare ----------------------------------------------------------

    def enter_compare(self) -> None:
        with self._lock:
            for kind in self._tokens:
                self._bump(kind)
            self.mode = NavigationMode.COMPARE
            self.ghost_commit_id = None
            self.ghost_diff = None
            self.selected_commit_id = None
            self.selected_detail = None
            self.compare_result = None
            self.compare_error = None

    def set_compare_a(self, commit_id: Optional[str]) -> None:
        self._set_compare_side("a", commit_id)

    def set_compare_b(self, commit_id: Optional[str]) -> None:
        self._set_compare_side("b", commit_id)

    def _set_compare_side(self, side: str, commit_id: Optional[str]) -> None:
        with self._lock:
            if self.mode != NavigationMode.COMPARE:
                raise InvalidOperationError("Enter compare mode before choosing commits.")
            if side == "a":
                self.compare_a = commit_id
            else:
                self.compare_b = commit_id

    def run_compare(self) -> Optional["Future[Optional[CompareResult]]"]:
        """Compare the two chosen commits in the background.

        Returns None without doing anything unless compare mode is active and
        both sides are set to different commits. Failures are stored in
        ``compare_error`` and the future resolves to None.
        """
        with self._lock:
            commit_a, commit_b = self.compare_a, self.compare_b
            if (
                self.mode != NavigationMode.COMPARE
                or commit_a is None
                or commit_b is None
                or commit_a == commit_b
            ):
                return None
            token = self._bump("compare")
            self.compare_result = None
            self.compare_error = None

        # Both fetches are queued ahead of the combining job, so it never
        # waits on work that has not been scheduled.
        fetch_a = self._executor.submit(self._graph.get_commit_detail, commit_a)
        fetch_b = self._executor.submit(self._graph.get_commit_detail, commit_b)
        return self._executor.submit(self._combine_compare, fetch_a, fetch_b, token)

    def _combine_compare(
        self,
        fetch_a: "Future[CommitDetail]",
        fetch_b: "Future[CommitDetail]",
        token: int,
    ) -> Optional[CompareResult]:
        try:
            detail_a = fetch_a.result()
            detail_b = fetch_b.result()
            file_diff = diff_files(detail_a.files, detail_b.files)
            timeline = diff_commit_timelines(
                self._session, detail_a.commit.id, detail_b.commit.id
            )
        except Exception as exc:
            LOGGER.warning("Compare failed: %s", exc)
            with self._lock:
                if token == self._tokens["compare"]:
                    self.compare_error = str(exc)
            return None

        result = CompareResult(
            commit_a=detail_a,
            commit_b=detail_b,
            files=file_diff.entries,
            summary=file_diff.summary,
            timeline=timeline,
        )
        with self._lock:
            if token == self._tokens["compare"]:
                self.compare_result = result
        return result

    def exit_compare(self) -> None:
        with self._lock:
            self._bump("compare")
            self.mode = NavigationMode.NORMAL
            self.compare_a = None
            self.compare_b = None
            self.compare_result = None
            self.compare_error = None

    def _bump(self, kind: str) -> int:
        # Caller holds self._lock.
        self._tokens[kind] += 1
        return self._tokens[kind]

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def __enter__(self) -> "HistoryNavigator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["CompareResult", "GhostDiff", "HistoryNavigator", "NavigationMode"]
