"""
Throttled download progress logging.

Fed the same chunks as the digest accumulators. Purely informational.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 5.0


def _format_duration(seconds: float) -> str:
    seconds = int(seconds)
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}h{minutes:02d}m{secs:02d}s"
    if minutes:
        return f"{minutes}m{secs:02d}s"
    return f"{secs}s"


class DownloadProgress:
    """
    Byte counter that logs at most once per ``interval`` seconds.

    The first chunk always produces a line so short downloads still log.
    """

    def __init__(
        self,
        total_size: int | None = None,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        label: str = "",
    ):
        """
        Initialize progress tracking.

        Args:
            total_size: Declared content length, if the server sent one.
            interval: Minimum seconds between log lines.
            clock: Monotonic time source.
            label: Prefix for log lines (usually the file name).
        """
        self.total_size = total_size if total_size and total_size > 0 else None
        self.interval = interval
        self.clock = clock
        self.label = label
        self.bytes_seen = 0
        self.started_at: float | None = None
        self.last_emit: float | None = None
        self.last_message: str | None = None
        self.emit_count = 0

    def update(self, chunk: bytes) -> None:
        """Account for ``chunk`` and log if the interval has elapsed."""
        now = self.clock()
        if self.started_at is None:
            self.started_at = now
        self.bytes_seen += len(chunk)

        if self.last_emit is not None and now - self.last_emit < self.interval:
            return

        self.last_emit = now
        self.last_message = self.format(now)
        self.emit_count += 1
        logger.info("%s", self.last_message)

    def format(self, now: float) -> str:
        """Build a progress line for time ``now``."""
        elapsed = now - (self.started_at if self.started_at is not None else now)
        percent = "unknown%"
        total = "unknown"
        eta = "unknown"

        if self.total_size is not None:
            percent = f"{int(100 * self.bytes_seen / self.total_size):03d}%"
            total = f"{self.total_size // 1024} kb"
            if elapsed >= 1 and self.bytes_seen > 0:
                rate = self.bytes_seen / elapsed
                remaining = max(self.total_size - self.bytes_seen, 0)
                eta = _format_duration(remaining / rate)

        line = (
            f"{percent} {self.bytes_seen // 1024} kb / {total} "
            f"({_format_duration(elapsed)} / {eta})"
        )
        return f"{self.label}: {line}" if self.label else line
