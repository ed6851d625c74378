"""Batch progress display."""

from __future__ import annotations

import sys
import threading
from typing import TextIO


class ProgressTracker:
    """Thread-safe progress tracking for parallel file processing.

    Displays aggregate progress using in-place updates on stderr.
    """

    def __init__(
        self, total: int, enabled: bool = True, stream: TextIO | None = None
    ) -> None:
        """Initialize progress tracker.

        Args:
            total: Total number of files to process.
            enabled: If False, suppresses output (JSON or per-file output).
            stream: Output stream. Defaults to sys.stderr.
        """
        self.total = total
        self.completed = 0
        self.active = 0
        self.enabled = enabled
        self._stream = stream
        self._lock = threading.Lock()

    def start_file(self) -> None:
        with self._lock:
            self.active += 1
            completed, active = self.completed, self.active
        # I/O outside lock to avoid blocking workers if stderr is slow
        self._update_display(completed, active)

    def complete_file(self) -> None:
        with self._lock:
            self.active -= 1
            self.completed += 1
            completed, active = self.completed, self.active
        self._update_display(completed, active)

    def finish(self) -> None:
        """Terminate the progress line."""
        if self.enabled:
            stream = self._stream or sys.stderr
            stream.write("\n")
            stream.flush()

    def _update_display(self, completed: int, active: int) -> None:
        if self.enabled:
            stream = self._stream or sys.stderr
            stream.write(f"\rSwapping: {completed}/{self.total} [{active} active]")
            stream.flush()
