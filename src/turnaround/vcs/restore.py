"""Materialise a commit's file set into the working directory or an export folder."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from turnaround.errors import NotFoundError, StorageIOError, ValidationError

from .graph import require_commit
from .models import ExportReport, RestoreReport
from .session import ProjectSession

LOGGER = logging.getLogger(__name__)


class RestoreEngine:
    """Copy stored blobs back out of the snapshot store.

    Both operations are best effort per file: a missing blob or a failed write
    is recorded in the report and the loop moves on. Nothing is rolled back.
    """

    def __init__(self, session: ProjectSession) -> None:
        self._session = session

    def restore_commit(
        self,
        commit_id: str,
        cancel_event: threading.Event | None = None,
    ) -> RestoreReport:
        """Overwrite working-directory files so they match ``commit_id``.

        Files whose on-disk hash already equals the snapshot are skipped, so a
        second restore of the same commit writes nothing. Files that exist on
        disk but not in the commit are left alone.

        Raises:
            NotFoundError: If the commit does not exist.
        """
        workdir = self._session.workdir
        with self._session.lock:
            graph = self._session.load_graph()
            require_commit(graph, commit_id)
            snapshots = list(graph.snapshots.get(commit_id, []))
            report = RestoreReport(commit_id=commit_id, total=len(snapshots))

            for snapshot in snapshots:
                if cancel_event is not None and cancel_event.is_set():
                    report.cancelled = True
                    LOGGER.info("Restore of %s cancelled", commit_id[:8])
                    break
                try:
                    if workdir.file_hash(snapshot.file_path) == snapshot.content_hash:
                        report.skipped.append(snapshot.file_path)
                        continue
                    self._session.store.copy_to(
                        snapshot.content_hash, workdir.resolve(snapshot.file_path)
                    )
                except (NotFoundError, StorageIOError, ValidationError, OSError) as exc:
                    LOGGER.warning("Could not restore %s: %s", snapshot.file_path, exc)
                    report.failed.append(snapshot.file_path)
                    continue
                report.restored.append(snapshot.file_path)

        report.restored_count = len(report.restored)
        report.skipped_count = len(report.skipped)
        report.failed_count = len(report.failed)
        LOGGER.info(
            "Restored %s: %d written, %d unchanged, %d failed",
            commit_id[:8],
            report.restored_count,
            report.skipped_count,
            report.failed_count,
        )
        return report

    def export_commit(
        self,
        commit_id: str,
        dest_path: Path,
        cancel_event: threading.Event | None = None,
    ) -> ExportReport:
        """Copy a commit's files below ``dest_path``.

        Raises:
            NotFoundError: If the commit does not exist.
            ValidationError: If the destination is inside the project's state directory.
            StorageIOError: If the destination directory cannot be created.
        """
        graph = self._session.load_graph()
        commit = require_commit(graph, commit_id)
        snapshots = list(graph.snapshots.get(commit_id, []))
        destination = dest_path.expanduser().resolve()
        if destination == self._session.state_dir or self._session.state_dir in destination.parents:
            raise ValidationError("Cannot export into the project's metadata directory.")
        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageIOError(f"Cannot create export folder {destination}: {exc}") from exc

        report = ExportReport(
            commit_id=commit_id,
            commit_message=commit.message,
            dest_path=str(destination),
            total=len(snapshots),
        )
        for snapshot in snapshots:
            if cancel_event is not None and cancel_event.is_set():
                report.cancelled = True
                break
            try:
                target = self._session.workdir.resolve(snapshot.file_path)
                relative = target.relative_to(self._session.root)
                self._session.store.copy_to(snapshot.content_hash, destination / relative)
            except (NotFoundError, StorageIOError, ValidationError) as exc:
                LOGGER.warning("Skipping %s during export: %s", snapshot.file_path, exc)
                report.skipped.append(snapshot.file_path)
                continue
            report.exported.append(snapshot.file_path)

        report.exported_count = len(report.exported)
        report.skipped_count = len(report.skipped)
        LOGGER.info(
            "Exported %s to %s: %d copied, %d skipped",
            commit_id[:8],
            destination,
            report.exported_count,
            report.skipped_count,
        )
        return report


__all__ = ["RestoreEngine"]
