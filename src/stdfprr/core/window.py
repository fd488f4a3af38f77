from __future__ import annotations

import logging
from dataclasses import dataclass

log = logging.getLogger(__name__)


def format_position(pos: int) -> str:
    """`0x1A2B (6699 bytes)`; negative positions keep their sign in both forms."""
    sign = "-" if pos < 0 else ""
    return f"{sign}0x{abs(pos):X} ({pos} bytes)"


@dataclass(frozen=True)
class ExtractionWindow:
    """Half-open byte range `[start, end)` for one extraction call."""

    start: int
    end: int

    @property
    def empty(self) -> bool:
        return self.start >= self.end

    @property
    def span(self) -> int:
        return max(0, self.end - self.start)

    def contains_record(self, offset: int, total_len: int) -> bool:
        """True when `[offset, offset + total_len)` lies entirely inside the window."""
        return offset >= self.start and offset + total_len <= self.end

    def shrink_end(self, new_end: int) -> ExtractionWindow:
        return ExtractionWindow(self.start, min(self.end, new_end))

    def __str__(self) -> str:
        return f"{format_position(self.start)} to {format_position(self.end)} ({self.span} bytes)"


def normalize_window(
    start: int, end: int, file_size: int, *, logger: logging.Logger | None = None
) -> ExtractionWindow:
    """Clamp a requested range to the file.

    - Negative `start` becomes 0.
    - Negative `end`, or one past `file_size`, becomes `file_size`.
    - The result may be empty (`start >= end`); callers treat that as
      "nothing to do", not as an error.
    """
    logger = logger or log
    if start < 0:
        logger.warning("Negative start position %d specified, using 0 instead", start)
        start = 0
    if end < 0 or end > file_size:
        logger.info("Using file end as end position: %s", format_position(file_size))
        end = file_size
    window = ExtractionWindow(int(start), int(end))
    if window.empty:
        logger.error(
            "Invalid range: start position %s >= end position %s",
            format_position(window.start),
            format_position(window.end),
        )
    return window
