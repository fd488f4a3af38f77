from __future__ import annotations

import logging
from collections.abc import Iterator

from stdfprr.core.stdf import PartResult

log = logging.getLogger(__name__)


class SinkReleased(RuntimeError):
    """Raised when a released sink is used again."""


class RecordSink:
    """Exclusive owner of the PartResults decoded during one extraction call.

    Records are appended during the scan, read by the serializer, and dropped
    together by `release()` (or on leaving a `with` block). There is no way
    to release a single record.
    """

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._records: list[PartResult] = []
        self._released = False
        self._log = logger or log

    def append(self, record: PartResult) -> None:
        self._check_live()
        self._records.append(record)

    def __len__(self) -> int:
        return len(self._records)

    def __bool__(self) -> bool:
        return bool(self._records)

    def __iter__(self) -> Iterator[PartResult]:
        self._check_live()
        return iter(tuple(self._records))

    @property
    def records(self) -> tuple[PartResult, ...]:
        self._check_live()
        return tuple(self._records)

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Drop every retained record. Safe to call more than once."""
        if self._released:
            return
        self._log.debug("Releasing %d PRR records", len(self._records))
        self._records.clear()
        self._released = True

    def _check_live(self) -> None:
        if self._released:
            raise SinkReleased("record sink has already been released")

    def __enter__(self) -> RecordSink:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
