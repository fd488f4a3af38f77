"""Turn rsync progress output into downstream sync messages.

The transfer runs as `rsync --progress --itemize-changes
--out-format='%i %n %M' ...`. Two kinds of line matter:

    >f.st...... lot_A.stdf_open 2025/02/27-13:41:21
        1,234,567 100%   12.34MB/s    0:00:00 (xfr#1, to-chk=0/1)

The first names the file being transferred; the second reports that the
current pass finished and how many bytes are now on disk.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Iterable, Iterator

from stdfprr.core.messages import SyncMessage, parse_position

log = logging.getLogger(__name__)

ITEMIZE_RE = re.compile(r">f.*\s([^\s]+)\s\d{4}/\d{2}/\d{2}-\d{2}:\d{2}:\d{2}")
COMPLETION_RE = re.compile(r"\s(\d+(?:,\d+)*)\s100%\s+([0-9.]+[A-Za-z]?B/s)")


class TransferProgress:
    """Stateful line parser; one instance follows a transfer across runs.

    Remembers the last reported byte count per file so each message carries
    the previous count as `previous_position`. A count smaller than the last
    one means the file was replaced, and the window restarts at 0.
    """

    def __init__(
        self,
        *,
        file_name: str | None = None,
        sync_time: int | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._default_name = file_name
        self._file_name = file_name
        self._sync_time = int(time.time()) if sync_time is None else int(sync_time)
        self._positions: dict[str, int] = {}
        self._log = logger or log

    @property
    def file_name(self) -> str | None:
        return self._file_name

    def last_position(self, file_name: str) -> int:
        return self._positions.get(file_name, 0)

    def start_run(self, sync_time: int | None = None) -> None:
        """Begin a new transfer pass; positions carry over, the sync time does not."""
        self._sync_time = int(time.time()) if sync_time is None else int(sync_time)
        self._file_name = self._default_name

    def feed(self, line: str) -> SyncMessage | None:
        """Consume one output line; return a message when a pass completes."""
        self._log.debug("Rsync Output: %s", line.rstrip("\n"))

        match = ITEMIZE_RE.search(line)
        if match:
            self._file_name = match.group(1)
            self._log.debug("Matched File: %s", self._file_name)

        match = COMPLETION_RE.search(line)
        if not match:
            return None
        transferred = parse_position(match.group(1), -1)
        self._log.info("Read position: %s at %s", match.group(1), match.group(2))
        if transferred < 0:
            return None
        if not self._file_name:
            self._log.warning("Transfer completed but no file name seen yet; dropping progress")
            return None

        previous = self._positions.get(self._file_name, 0)
        if transferred < previous:
            self._log.warning(
                "Transferred size of %s went backwards (%d < %d); restarting at 0",
                self._file_name,
                transferred,
                previous,
            )
            previous = 0
        self._positions[self._file_name] = transferred

        message = SyncMessage(
            file_name=self._file_name,
            previous_position=previous,
            read_position=transferred,
            sync_time=self._sync_time,
        )
        self._log.info("Generated JSON Message: %s", message.to_json())
        return message

    def iter_messages(self, lines: Iterable[str]) -> Iterator[SyncMessage]:
        for line in lines:
            message = self.feed(line)
            if message is not None:
                yield message
