"""Periodic "are there uncommitted changes?" checks with prompt suppression."""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Protocol

from turnaround.config.models import WatchOptions
from turnaround.vcs.models import ChangeSet

LOGGER = logging.getLogger(__name__)


class ChangeSource(Protocol):
    def changed_files(self) -> ChangeSet: ...


class DismissalCooldown:
    """Rate limiter keyed on the time the change prompt was last dismissed."""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._seconds = max(0.0, seconds)
        self._clock = clock
        self._dismissed_at: Optional[float] = None

    def dismiss(self) -> None:
        self._dismissed_at = self._clock()

    def reset(self) -> None:
        self._dismissed_at = None

    def remaining(self) -> float:
        if self._dismissed_at is None:
            return 0.0
        return max(0.0, self._dismissed_at + self._seconds - self._clock())

    def is_active(self) -> bool:
        return self.remaining() > 0


class ChangePoller:
    """Poll a change source on a fixed interval and report non-empty change sets.

    Polls are skipped while a commit is in flight and while the dismissal
    cooldown is active. Errors raised by the source are logged and the next
    poll proceeds normally.
    """

    def __init__(
        self,
        source: ChangeSource,
        on_changes: Callable[[ChangeSet], None],
        *,
        interval_seconds: float = WatchOptions().poll_interval_seconds,
        cooldown: DismissalCooldown | None = None,
    ) -> None:
        """Initialize the poller.

        Args:
            source: Object exposing ``changed_files()``, usually a ``CommitEngine``.
            on_changes: Called with each non-empty change set.
            interval_seconds: Delay between polls.
            cooldown: Suppression window applied after :meth:`dismiss`.
        """
        self._source = source
        self._on_changes = on_changes
        self._interval = max(0.01, interval_seconds)
        self.cooldown = cooldown or DismissalCooldown(WatchOptions().dismiss_cooldown_seconds)
        self._in_flight = 0
        self._in_flight_lock = threading.Lock()
        self._cancel_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def from_config(
        cls,
        source: ChangeSource,
        on_changes: Callable[[ChangeSet], None],
        options: WatchOptions,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> "ChangePoller":
        """Build a poller using the ``watch`` section's interval and dismissal cooldown."""
        return cls(
            source,
            on_changes,
            interval_seconds=options.poll_interval_seconds,
            cooldown=DismissalCooldown(options.dismiss_cooldown_seconds, clock=clock),
        )

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def suppressed(self) -> bool:
        with self._in_flight_lock:
            if self._in_flight:
                return True
        return self.cooldown.is_active()

    @contextmanager
    def commit_in_flight(self) -> Iterator[None]:
        """Suppress polling for the duration of the block."""
        with self._in_flight_lock:
            self._in_flight += 1
        try:
            yield
        finally:
            with self._in_flight_lock:
                self._in_flight -= 1

    def dismiss(self) -> None:
        """Record that the user dismissed the change prompt."""
        self.cooldown.dismiss()

    def poll_once(self) -> Optional[ChangeSet]:
        """Run one poll and return the reported change set, if any."""
        if self.suppressed:
            LOGGER.debug("Change poll suppressed")
            return None
        try:
            changes = self._source.changed_files()
        except Exception as exc:
            LOGGER.warning("Change poll failed: %s", exc)
            return None
        if changes.is_empty():
            return None
        try:
            self._on_changes(changes)
        except Exception as exc:
            LOGGER.warning("Change callback failed: %s", exc)
        return changes

    def start(self) -> None:
        """Begin polling on a background thread.

        Raises:
            RuntimeError: If the poller is already running.
        """
        if self.running:
            raise RuntimeError("ChangePoller is already running.")
        self._cancel_event.clear()
        self._thread = threading.Thread(target=self._run, name="turnaround-poll", daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        """Stop polling; an in-progress poll finishes first."""
        self._cancel_event.set()
        thread = self._thread
        self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._interval + 5)

    def _run(self) -> None:
        while not self._cancel_event.wait(self._interval):
            self.poll_once()


__all__ = ["ChangePoller", "ChangeSource", "DismissalCooldown"]
