from __future__ import annotations

import logging
from collections.abc import Iterable

from stdfprr.config import ExtractorConfig
from stdfprr.core.frequency import TypeFrequency
from stdfprr.core.stdf import PRR_SUB, PRR_TYPE

log = logging.getLogger(__name__)


class TypeClassifier:
    """Decides whether a record header denotes a Part Results Record.

    The producing toolchain does not always emit the canonical code, so a
    record is a PRR when its REC_TYP is in `codes`. The canonical REC_TYP is
    shared with other record kinds (PIR is 5/10), so it only matches together
    with `canonical_subtype`; every other code in `codes` matches on REC_TYP
    alone. Unrecognized records are offered to the optional `diagnostics`
    table and otherwise ignored.
    """

    def __init__(
        self,
        codes: Iterable[int],
        *,
        canonical_type: int = PRR_TYPE,
        canonical_subtype: int = PRR_SUB,
        diagnostics: TypeFrequency | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._codes = frozenset(int(c) for c in codes)
        self._canonical_type = canonical_type
        self._canonical_subtype = canonical_subtype
        self._diagnostics = diagnostics
        self._log = logger or log

    @classmethod
    def from_config(
        cls,
        config: ExtractorConfig,
        *,
        diagnostics: TypeFrequency | None = None,
        logger: logging.Logger | None = None,
    ) -> TypeClassifier:
        return cls(
            config.target_type_codes,
            canonical_type=config.canonical_type,
            canonical_subtype=config.canonical_subtype,
            diagnostics=diagnostics,
            logger=logger,
        )

    @property
    def codes(self) -> frozenset[int]:
        return self._codes

    @property
    def canonical(self) -> tuple[int, int]:
        return self._canonical_type, self._canonical_subtype

    def is_target(self, type_code: int, subtype: int) -> bool:
        if type_code in self._codes:
            if type_code != self._canonical_type:
                self._log.debug("Found alternative PRR record (type %d)", type_code)
                return True
            if subtype == self._canonical_subtype:
                self._log.debug("Found standard PRR record (type %d)", type_code)
                return True
        if self._diagnostics is not None:
            self._diagnostics.observe(type_code)
        return False
