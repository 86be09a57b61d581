"""Filesystem change notifications for a project working directory."""

from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Literal, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from turnaround.workdir import WorkingDirectory

LOGGER = logging.getLogger(__name__)

ChangeKind = Literal["created", "modified", "removed", "moved"]


@dataclass(slots=True, frozen=True)
class ChangeEvent:
    """A tracked file changed on disk.

    Attributes:
        path: Project-relative POSIX path after the change.
        kind: One of ``created``, ``modified``, ``removed`` or ``moved``.
        src_path: Project-relative path before a move, when ``kind`` is ``moved``.
    """

    path: str
    kind: ChangeKind
    src_path: Optional[str] = None


ChangeCallback = Callable[[list[ChangeEvent]], None]


class ChangeHints:
    """Project-relative paths reported as changed since the last drain.

    Each path appears once; re-reporting a path moves it to the end so the
    most recent change is always last.
    """

    def __init__(self) -> None:
        self._paths: dict[str, None] = {}
        self._lock = threading.Lock()

    def record(self, path: str) -> None:
        with self._lock:
            self._paths.pop(path, None)
            self._paths[path] = None

    def record_events(self, events: list[ChangeEvent]) -> None:
        for event in events:
            if event.src_path is not None:
                self.record(event.src_path)
            self.record(event.path)

    def paths(self) -> list[str]:
        with self._lock:
            return list(self._paths)

    def drain(self) -> list[str]:
        """Return the recorded paths and forget them."""
        with self._lock:
            paths = list(self._paths)
            self._paths.clear()
            return paths

    def __len__(self) -> int:
        with self._lock:
            return len(self._paths)


class WatchService:
    """Observe a project root and deliver debounced change batches to subscribers."""

    def __init__(
        self,
        workdir: WorkingDirectory,
        *,
        debounce_seconds: float = 0.5,
    ) -> None:
        """Initialize the watch service.

        Args:
            workdir: Working directory whose tracked files are observed.
            debounce_seconds: Quiet period before pending events are flushed.
        """
        self._workdir = workdir
        self._debounce_seconds = max(0.05, debounce_seconds)
        self._queue: queue.Queue[Optional[ChangeEvent]] = queue.Queue()
        self._stop_event = threading.Event()
        self._observer: Optional[Observer] = None
        self._dispatcher: Optional[threading.Thread] = None
        self._subscribers: list[ChangeCallback] = []
        self._subscribers_lock = threading.Lock()
        self.hints = ChangeHints()

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    @property
    def running(self) -> bool:
        return self._observer is not None

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        """Register ``callback`` for change batches and return an unsubscribe function."""
        with self._subscribers_lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._subscribers_lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def start(self) -> None:
        """Start observing in the background.

        Raises:
            RuntimeError: If the service is already running.
        """
        self._start_observer()
        self._dispatcher = threading.Thread(
            target=self._run_loop, name="turnaround-watch", daemon=True
        )
        self._dispatcher.start()

    def watch(self, callback: Optional[ChangeCallback] = None) -> None:
        """Observe in the calling thread until :meth:`stop` is called.

        Args:
            callback: Optional subscriber registered for the duration of the call.
        """
        unsubscribe = self.subscribe(callback) if callback is not None else None
        self._start_observer()
        try:
            self._run_loop()
        finally:
            if unsubscribe is not None:
                unsubscribe()
            self.stop()

    def stop(self) -> None:
        """Stop the observer and the dispatch loop."""
        self._stop_event.set()
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
        # Unblock the queue to allow the processing loop to exit cleanly.
        self._queue.put(None)
        dispatcher = self._dispatcher
        self._dispatcher = None
        if dispatcher is not None and dispatcher is not threading.current_thread():
            dispatcher.join(timeout=5)

    def notify(self, event: ChangeEvent) -> None:
        """Queue an event as if the observer had reported it."""
        self._queue.put(event)

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _start_observer(self) -> None:
        if self._observer is not None:
            raise RuntimeError("WatchService is already running.")
        self._stop_event.clear()
        # Drop the stop sentinel left behind by a previous run.
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
        observer = Observer()
        handler = _WatchEventHandler(self._workdir, self._queue)
        observer.schedule(handler, str(self._workdir.root), recursive=True)
        observer.start()
        self._observer = observer
        LOGGER.info("Watching %s", self._workdir.root)

    def _run_loop(self) -> None:
        """Consume queued events and flush them once the debounce window passes.

        Events still pending when the loop stops are flushed before returning.
        """
        pending: dict[str, ChangeEvent] = {}
        flush_deadline: Optional[float] = None

        try:
            while not self._stop_event.is_set():
                timeout: Optional[float] = None
                if flush_deadline is not None:
                    timeout = max(0.0, flush_deadline - time.monotonic())

                try:
                    event = self._queue.get(timeout=timeout)
                except queue.Empty:
                    if pending:
                        self._dispatch(list(pending.values()))
                        pending.clear()
                    flush_deadline = None
                    continue

                if event is None:
                    break

                pending.pop(event.path, None)
                pending[event.path] = event
                flush_deadline = time.monotonic() + self._debounce_seconds
        finally:
            while True:
                try:
                    event = self._queue.get_nowait()
                except queue.Empty:
                    break
                if event is not None:
                    pending.pop(event.path, None)
                    pending[event.path] = event
            if pending:
                self._dispatch(list(pending.values()))

    def _dispatch(self, events: list[ChangeEvent]) -> None:
        self.hints.record_events(events)
        with self._subscribers_lock:
            subscribers = list(self._subscribers)
        for subscriber in subscribers:
            try:
                subscriber(events)
            except Exception as exc:
                LOGGER.warning("Change subscriber %r failed: %s", subscriber, exc)


class _WatchEventHandler(FileSystemEventHandler):
    """Forward tracked-file events into the service queue."""

    def __init__(
        self,
        workdir: WorkingDirectory,
        queue_handle: queue.Queue[Optional[ChangeEvent]],
    ) -> None:
        self._workdir = workdir
        self._queue = queue_handle

    def on_created(self, event: FileSystemEvent) -> None:
        """Handle a filesystem create event."""
        self._enqueue(event, "created")

    def on_modified(self, event: FileSystemEvent) -> None:
        """Handle a filesystem modify event."""
        self._enqueue(event, "modified")

    def on_deleted(self, event: FileSystemEvent) -> None:
        """Handle a filesystem delete event."""
        self._enqueue(event, "removed")

    def on_moved(self, event: FileSystemEvent) -> None:  # pragma: no cover - watchdog-specific
        """Handle a filesystem move event."""
        if event.is_directory:
            return
        source = self._relative(Path(str(event.src_path)))
        destination = self._relative(Path(str(event.dest_path)))
        if destination is None:
            if source is not None:
                self._queue.put(ChangeEvent(path=source, kind="removed"))
            return
        self._queue.put(ChangeEvent(path=destination, kind="moved", src_path=source))

    def _enqueue(self, event: FileSystemEvent, kind: ChangeKind) -> None:
        if event.is_directory:
            return
        relative = self._relative(Path(str(event.src_path)))
        if relative is not None:
            self._queue.put(ChangeEvent(path=relative, kind=kind))

    def _relative(self, path: Path) -> Optional[str]:
        """Return the project-relative path when ``path`` is a tracked file."""
        path = path.expanduser()
        if not self._workdir.is_tracked(path):
            return None
        return path.resolve().relative_to(self._workdir.root).as_posix()


__all__ = ["ChangeEvent", "ChangeHints", "ChangeKind", "WatchService"]
