from __future__ import annotations

import logging
import threading
from collections import Counter

log = logging.getLogger(__name__)


class TypeFrequency:
    """Diagnostic frequency table of record type codes.

    Lives as long as its owner wants it to; one instance may be shared by
    many extraction calls to surface type codes the classifier does not
    recognize. Every `report_every` observations it logs the `top` codes seen
    more than `min_count` times. Nothing here feeds back into classification.
    """

    def __init__(
        self,
        *,
        report_every: int = 1000,
        min_count: int = 50,
        top: int = 3,
        logger: logging.Logger | None = None,
    ) -> None:
        if report_every <= 0:
            raise ValueError("report_every must be positive")
        self._counts: Counter[int] = Counter()
        self._total = 0
        self._report_every = report_every
        self._min_count = min_count
        self._top = top
        self._lock = threading.Lock()
        self._log = logger or log

    @property
    def total(self) -> int:
        return self._total

    def count(self, type_code: int) -> int:
        return self._counts[type_code]

    def observe(self, type_code: int) -> None:
        with self._lock:
            self._counts[type_code] += 1
            self._total += 1
            due = self._total % self._report_every == 0
            common = self._most_common_locked() if due else []
        if common:
            self._log.info("Most common record types: %s", format_type_counts(common))

    def most_common(self) -> list[tuple[int, int]]:
        """(type_code, count) pairs above `min_count`, most frequent first."""
        with self._lock:
            return self._most_common_locked()

    def _most_common_locked(self) -> list[tuple[int, int]]:
        ranked = [(code, n) for code, n in self._counts.most_common() if n > self._min_count]
        return ranked[: self._top]

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()
            self._total = 0


def format_type_counts(pairs: list[tuple[int, int]]) -> str:
    return ", ".join(f"type {code} ({n} times)" for code, n in pairs)
