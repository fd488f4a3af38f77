"""Sequential record scanner over a byte window of an STDF file."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from stdfprr.config import ExtractorConfig
from stdfprr.core.classify import TypeClassifier
from stdfprr.core.endian import Endian, endian_for_cpu_type
from stdfprr.core.io import InvalidOffset, PagedReader, ShortRead
from stdfprr.core.sink import RecordSink
from stdfprr.core.stdf import (
    HEADER_SIZE,
    PartResult,
    RecordDecodeError,
    RecordHeader,
    decode_prr,
    read_header,
    read_payload,
)
from stdfprr.core.window import ExtractionWindow, format_position

log = logging.getLogger(__name__)


class ScanState(Enum):
    SCANNING = "scanning"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class ScanReport:
    """What one pass of the scanner did. Records themselves live in the sink."""

    state: ScanState
    window: ExtractionWindow
    records_scanned: int = 0
    targets_found: int = 0
    rejected: int = 0
    decode_errors: int = 0
    invalid_positions: int = 0
    stop_offset: int | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def aborted(self) -> bool:
        return self.state is ScanState.ABORTED


class RecordScanner:
    """Walks records in `[window.start, window.end)` and keeps the PRRs.

    The cursor only ever moves by a record's declared length. A record is
    decoded only when all of its bytes lie inside the window, so a record
    straddling the edge of an in-flight transfer is skipped, not read.
    """

    def __init__(
        self,
        config: ExtractorConfig,
        classifier: TypeClassifier,
        *,
        endian: Endian | None = None,
        on_header: Callable[[RecordHeader], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._classifier = classifier
        self._endian = endian or endian_for_cpu_type(config.supported_cpu_type)
        self._on_header = on_header
        self._log = logger or log

    def is_plausible(self, prr: PartResult) -> bool:
        cfg = self._config
        return (
            prr.hard_bin >= cfg.min_bin
            and prr.soft_bin >= cfg.min_bin
            and prr.head_number <= cfg.max_head_site
            and prr.site_number <= cfg.max_head_site
        )

    def _abort(self, report: ScanReport, message: str, offset: int | None = None) -> None:
        self._log.error(message)
        report.errors.append(message)
        report.state = ScanState.ABORTED
        report.stop_offset = offset

    def _length_ok(self, length: int) -> bool:
        return 0 <= length <= self._config.max_record_length

    def scan(self, reader: PagedReader, window: ExtractionWindow, sink: RecordSink) -> ScanReport:
        report = ScanReport(state=ScanState.SCANNING, window=window)
        consecutive_invalid = 0
        resume_at = window.start
        reader.seek(window.start)
        self._log.info("Beginning record parsing")

        while report.state is ScanState.SCANNING:
            # 1. Cursor validity
            try:
                pos = reader.tell()
            except InvalidOffset as e:
                consecutive_invalid += 1
                report.invalid_positions += 1
                msg = f"Invalid file position detected: {e}"
                self._log.error(msg)
                report.errors.append(msg)
                if consecutive_invalid >= self._config.max_invalid_positions:
                    self._abort(report, "Too many consecutive invalid positions, stopping extraction")
                    break
                true_eof = reader.probe_size()
                if 0 < true_eof < report.window.end:
                    self._log.info(
                        "Adjusting end position to actual end of file: %s",
                        format_position(true_eof),
                    )
                    report.window = report.window.shrink_end(true_eof)
                if resume_at >= report.window.end:
                    report.state = ScanState.DONE
                    break
                # resume_at is the end of the last good record, never negative
                reader.seek(resume_at)
                continue
            consecutive_invalid = 0

            # A header cut by the window end cannot start a complete record,
            # and the bytes after the end may not have arrived yet.
            if pos + HEADER_SIZE > report.window.end:
                report.state = ScanState.DONE
                report.stop_offset = pos
                break

            # 2. Header
            try:
                header = read_header(reader, self._endian)
            except ShortRead as e:
                if e.got == 0:
                    report.state = ScanState.DONE  # EOF
                    report.stop_offset = pos
                else:
                    self._abort(report, f"File read error at position {format_position(pos)}", pos)
                break
            except OSError as e:
                self._abort(report, f"File read error at position {format_position(pos)}: {e}", pos)
                break

            report.records_scanned += 1
            if self._on_header is not None:
                self._on_header(header)

            # 3. Corrupt length and window bounds
            if not self._length_ok(header.length):
                self._abort(
                    report,
                    f"Suspicious record length {header.length} bytes at {format_position(pos)}, "
                    "stopping extraction",
                    pos,
                )
                break
            if not report.window.contains_record(pos, HEADER_SIZE + header.length):
                self._log.debug(
                    "Record at %s extends beyond extraction range, skipping",
                    format_position(pos),
                )
                if not self._advance(reader, header, report):
                    break
                resume_at = header.end
                continue

            # 4-6. Classify, then decode or skip
            if self._classifier.is_target(header.type, header.subtype):
                self._take_target(reader, header, sink, report)
                if report.aborted:
                    break
            elif report.records_scanned % 1000 == 0:
                self._log.debug(
                    "Processing record %d, found %d PRR records so far",
                    report.records_scanned,
                    report.targets_found,
                )

            if not self._advance(reader, header, report):
                break
            resume_at = header.end

        self._log.info(
            "Extraction complete. Parsed %d records, found %d PRR records",
            report.records_scanned,
            report.targets_found,
        )
        return report

    def _advance(self, reader: PagedReader, header: RecordHeader, report: ScanReport) -> bool:
        """Move the cursor past `header`'s record. False (and aborted) on failure."""
        try:
            reader.seek(header.end)
        except (InvalidOffset, OSError) as e:
            self._abort(
                report,
                f"Failed to skip to next record from {format_position(header.offset)}: {e}",
                header.offset,
            )
            return False
        return True

    def _take_target(
        self,
        reader: PagedReader,
        header: RecordHeader,
        sink: RecordSink,
        report: ScanReport,
    ) -> None:
        self._log.debug(
            "Found potential PRR record (type %d) at position %s with length %d",
            header.type,
            format_position(header.offset),
            header.length,
        )
        try:
            prr = decode_prr(read_payload(reader, header), header.offset, self._endian)
        except RecordDecodeError as e:
            report.decode_errors += 1
            msg = f"Failed to parse PRR record at {format_position(header.offset)}: {e}"
            self._log.error(msg)
            report.errors.append(msg)
            return
        except (ShortRead, OSError) as e:
            self._abort(
                report,
                f"File read error in PRR payload at {format_position(header.offset)}: {e}",
                header.offset,
            )
            return

        self._log.debug(
            "PRR content: head=%d, site=%d, hardbin=%d, softbin=%d",
            prr.head_number,
            prr.site_number,
            prr.hard_bin,
            prr.soft_bin,
        )
        if not self.is_plausible(prr):
            report.rejected += 1
            self._log.warning(
                "Suspicious PRR record values at %s, discarding record",
                format_position(header.offset),
            )
            return

        sink.append(prr)
        report.targets_found += 1
        if report.targets_found == 1 or report.targets_found % 100 == 0:
            self._log.info("Extracted %d PRR records so far", report.targets_found)
