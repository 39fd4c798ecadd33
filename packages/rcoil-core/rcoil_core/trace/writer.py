"""
rcoil Trace Writer - JSONL output.
"""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional, TextIO

from .models import TraceEvent

logger = logging.getLogger(__name__)


class TraceWriter:
    """
    Writes trace events to a JSONL file.

    Flushes after each event by default so a crashed run still leaves a
    readable trace. Writes are serialized with a lock.
    """

    def __init__(self, path: str | Path, auto_flush: bool = True):
        self.path = Path(path)
        self.auto_flush = auto_flush
        self._file: Optional[TextIO] = None
        self._lock = threading.Lock()
        self._event_count = 0

        self.path.parent.mkdir(parents=True, exist_ok=True)

    def open(self) -> "TraceWriter":
        """Open the trace file for writing."""
        if self._file is None:
            self._file = open(self.path, "a", encoding="utf-8")
            logger.debug(f"Opened trace file: {self.path}")
        return self

    def close(self) -> None:
        """Close the trace file."""
        with self._lock:
            if self._file is not None:
                self._file.flush()
                self._file.close()
                self._file = None
                logger.debug(f"Closed trace file: {self.path} ({self._event_count} events)")

    def write(self, event: TraceEvent) -> None:
        """Write a single trace event."""
        with self._lock:
            if self._file is None:
                self.open()
            self._file.write(event.to_jsonl() + "\n")
            self._event_count += 1
            if self.auto_flush:
                self._file.flush()

    @property
    def event_count(self) -> int:
        """Number of events written."""
        return self._event_count

    def __enter__(self) -> "TraceWriter":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()
