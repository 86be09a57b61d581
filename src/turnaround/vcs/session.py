"""Project context threaded through every version-control entry point."""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path
from types import TracebackType
from typing import IO, Optional

from turnaround.config import TurnaroundConfig
from turnaround.errors import InvalidOperationError, StorageIOError, ValidationError
from turnaround.state import (
    DEFAULT_STATE_DIRNAME,
    Branch,
    GraphRepository,
    Project,
    ProjectGraph,
)
from turnaround.store import ObjectStore
from turnaround.workdir import WorkingDirectory

if sys.platform == "win32":
    import msvcrt
else:
    import fcntl

LOGGER = logging.getLogger(__name__)

LOCK_FILENAME = "lock"

_LOCKS: dict[Path, "ProjectLock"] = {}
_LOCKS_GUARD = threading.Lock()


def _lock_file(path: Path) -> Optional[IO[bytes]]:
    if not path.parent.is_dir():
        return None
    try:
        handle = path.open("a+b")
    except OSError as exc:
        raise StorageIOError(f"Cannot open lock file {path}: {exc}") from exc
    try:
        if sys.platform == "win32":
            handle.seek(0)
            msvcrt.locking(handle.fileno(), msvcrt.LK_LOCK, 1)
        else:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
    except OSError as exc:
        handle.close()
        raise StorageIOError(f"Cannot lock {path}: {exc}") from exc
    return handle


def _unlock_file(handle: IO[bytes]) -> None:
    try:
        if sys.platform == "win32":
            handle.seek(0)
            msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)
        else:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
    finally:
        handle.close()


class ProjectLock:
    """Reentrant writer lock for one project, shared by threads and processes.

    Threads of this process serialise on an ``RLock``. The outermost holder
    also takes an exclusive OS lock on ``<state dir>/lock`` so separate
    ``turnaround`` processes cannot interleave their read-modify-write cycles
    on ``graph.json``. The file lock is skipped while the state directory does
    not exist yet.
    """

    def __init__(self, lock_path: Path) -> None:
        self.lock_path = lock_path
        self._thread_lock = threading.RLock()
        self._depth = 0
        self._handle: Optional[IO[bytes]] = None

    def acquire(self) -> None:
        self._thread_lock.acquire()
        if self._depth == 0:
            try:
                self._handle = _lock_file(self.lock_path)
            except BaseException:
                self._thread_lock.release()
                raise
        self._depth += 1

    def release(self) -> None:
        self._depth -= 1
        try:
            if self._depth == 0 and self._handle is not None:
                handle, self._handle = self._handle, None
                _unlock_file(handle)
        finally:
            self._thread_lock.release()

    def __enter__(self) -> "ProjectLock":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.release()


def project_lock(root: Path, state_dirname: str = DEFAULT_STATE_DIRNAME) -> ProjectLock:
    """Return the writer lock shared by every session on ``root``."""
    key = root.expanduser().resolve()
    with _LOCKS_GUARD:
        lock = _LOCKS.get(key)
        if lock is None:
            lock = ProjectLock(key / state_dirname / LOCK_FILENAME)
            _LOCKS[key] = lock
        return lock


class ProjectSession:
    """Bundle the root, configuration, graph repository, store, and working directory.

    Sessions are cheap; the commit graph is always re-read from disk inside the
    writer lock before a mutation so two sessions on the same project never
    overwrite each other's head pointer.
    """

    def __init__(
        self,
        root: Path,
        config: TurnaroundConfig | None = None,
        *,
        repository: GraphRepository | None = None,
    ) -> None:
        self.root = root.expanduser().resolve()
        self.config = config or TurnaroundConfig()
        self.repository = repository or GraphRepository()
        self.state_dir = self.repository.state_dir(self.root)
        self.store = ObjectStore(self.state_dir / "objects")
        self.workdir = WorkingDirectory(
            self.root,
            self.config.tracking,
            state_dirname=self.repository.base_dirname,
        )
        self.lock = project_lock(self.root, self.repository.base_dirname)

    @classmethod
    def init(
        cls,
        root: Path,
        config: TurnaroundConfig | None = None,
        *,
        name: str | None = None,
        repository: GraphRepository | None = None,
    ) -> "ProjectSession":
        """Initialise ``root`` as a project with a single active, empty branch.

        Raises:
            ValidationError: If ``root`` is not a directory.
            InvalidOperationError: If the directory is already a project.
        """
        session = cls(root, config, repository=repository)
        if not session.root.is_dir():
            raise ValidationError(f"Project path is not a directory: {session.root}")
        with session.lock:
            if session.repository.exists(session.root):
                raise InvalidOperationError(f"{session.root} is already a Turnaround project.")
            project = Project(name=name or session.root.name, root_path=str(session.root))
            branch = Branch(
                project_id=project.id,
                name=session.config.branches.default_branch,
                is_active=True,
            )
            project.active_branch_id = branch.id
            graph = ProjectGraph(project=project, branches={branch.id: branch})
            session.repository.save(session.root, graph)
        LOGGER.info("Initialised project %s at %s", project.name, session.root)
        return session

    def load_graph(self) -> ProjectGraph:
        return self.repository.load(self.root)

    def save_graph(self, graph: ProjectGraph) -> None:
        self.repository.save(self.root, graph)


__all__ = ["LOCK_FILENAME", "ProjectLock", "ProjectSession", "project_lock"]
