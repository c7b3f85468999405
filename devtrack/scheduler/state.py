"""Transient scheduler state."""

import threading
from datetime import datetime


class ScanState:
    """Started flag, passes in flight and last-scan time, read and written under one lock.

    Not persisted: a new process starts stopped and never scanned.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._started = False
        self._active_passes = 0
        self._last_scan: datetime | None = None

    def try_start(self) -> bool:
        """Flip to started. Returns False if already started."""
        with self._lock:
            if self._started:
                return False
            self._started = True
            return True

    def request_stop(self) -> bool:
        """Flip to stopped. Returns False if already stopped."""
        with self._lock:
            was_started = self._started
            self._started = False
            return was_started

    @property
    def started(self) -> bool:
        with self._lock:
            return self._started

    def begin_pass(self) -> None:
        with self._lock:
            self._active_passes += 1

    def end_pass(self, finished_at: datetime | None) -> None:
        """Close a pass. finished_at is None when the pass aborted before completing."""
        with self._lock:
            self._active_passes = max(0, self._active_passes - 1)
            if finished_at is not None:
                self._last_scan = finished_at

    @property
    def scanning(self) -> bool:
        with self._lock:
            return self._active_passes > 0

    @property
    def last_scan(self) -> datetime | None:
        with self._lock:
            return self._last_scan
