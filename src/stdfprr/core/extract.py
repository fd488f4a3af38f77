"""One extraction call: clamp the window, gate the FAR, scan, and report."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from stdfprr.config import ExtractorConfig
from stdfprr.core.classify import TypeClassifier
from stdfprr.core.frequency import TypeFrequency
from stdfprr.core.header_gate import StructuralError, check_file_header
from stdfprr.core.io import PagedReader
from stdfprr.core.messages import SyncMessage
from stdfprr.core.scanner import RecordScanner, ScanState
from stdfprr.core.serialize import write_results
from stdfprr.core.sink import RecordSink
from stdfprr.core.stdf import PartResult
from stdfprr.core.window import ExtractionWindow, format_position, normalize_window

log = logging.getLogger(__name__)


class ScanOutcome(Enum):
    COMPLETE = "complete"
    EMPTY_WINDOW = "empty_window"
    CONFIG_ERROR = "config_error"
    STRUCTURAL_ERROR = "structural_error"
    ABORTED = "aborted"


# Outcomes whose records (possibly none) are a usable answer for the window.
_USABLE = frozenset({ScanOutcome.COMPLETE, ScanOutcome.EMPTY_WINDOW, ScanOutcome.ABORTED})


@dataclass
class ExtractionResult:
    """Records from one call plus how the call ended.

    Owns its sink: leaving a `with` block (or calling `release()`) drops the
    records. An ABORTED result still carries every record decoded before the
    failure point.
    """

    path: str
    outcome: ScanOutcome
    sink: RecordSink
    window: ExtractionWindow | None = None
    records_scanned: int = 0
    rejected: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.outcome in (ScanOutcome.COMPLETE, ScanOutcome.EMPTY_WINDOW)

    @property
    def usable(self) -> bool:
        return self.outcome in _USABLE

    @property
    def records(self) -> tuple[PartResult, ...]:
        return self.sink.records

    def __len__(self) -> int:
        return len(self.sink)

    def release(self) -> None:
        self.sink.release()

    def __enter__(self) -> ExtractionResult:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


def extract_part_results(
    path: str | Path,
    start: int = 0,
    end: int = -1,
    *,
    config: ExtractorConfig | None = None,
    diagnostics: TypeFrequency | None = None,
    logger: logging.Logger | None = None,
) -> ExtractionResult:
    """Extract the PRRs whose bytes lie entirely in `[start, end)`.

    `end < 0` (or past EOF) means "through the current end of file". Never
    raises for call-scoped problems; they come back as the result's outcome.
    """
    config = config or ExtractorConfig()
    # components keep their own module loggers unless the caller supplied one
    shared = logger
    logger = logger or log
    path = str(path)
    sink = RecordSink(logger=shared)
    logger.info("Starting PRR extraction from file: %s", path)

    try:
        reader = PagedReader(path)
    except OSError as e:
        msg = f"Failed to open file: {path}: {e}"
        logger.error(msg)
        return ExtractionResult(path, ScanOutcome.CONFIG_ERROR, sink, errors=[msg])

    try:
        with reader:
            logger.debug("File Size: %s", format_position(reader.size))
            window = normalize_window(start, end, reader.size, logger=shared)
            if window.empty:
                return ExtractionResult(path, ScanOutcome.EMPTY_WINDOW, sink, window=window)
            logger.info("Extraction range: %s", window)

            if window.start == 0:
                try:
                    check_file_header(reader, config, logger=shared)
                except StructuralError as e:
                    logger.error("%s", e)
                    return ExtractionResult(
                        path, ScanOutcome.STRUCTURAL_ERROR, sink, window=window, errors=[str(e)]
                    )
            else:
                logger.info(
                    "Starting from position %s, skipping FAR validation",
                    format_position(window.start),
                )

            classifier = TypeClassifier.from_config(config, diagnostics=diagnostics, logger=shared)
            scanner = RecordScanner(config, classifier, logger=shared)
            report = scanner.scan(reader, window, sink)
    except BaseException:
        sink.release()
        raise

    outcome = ScanOutcome.COMPLETE if report.state is ScanState.DONE else ScanOutcome.ABORTED
    return ExtractionResult(
        path,
        outcome,
        sink,
        window=report.window,
        records_scanned=report.records_scanned,
        rejected=report.rejected,
        errors=list(report.errors),
    )


def default_output_path(message: SyncMessage, output_dir: str | Path) -> Path:
    name = Path(message.file_name).name
    return Path(output_dir) / f"{name}_{message.previous_position}_{message.read_position}.json"


@dataclass(frozen=True)
class ProcessSummary:
    outcome: ScanOutcome
    record_count: int
    output_path: Path | None
    errors: tuple[str, ...] = ()

    @property
    def written(self) -> bool:
        return self.output_path is not None


def process_message(
    message: SyncMessage,
    *,
    output_path: str | Path | None = None,
    output_dir: str | Path = ".",
    base_dir: str | Path | None = None,
    config: ExtractorConfig | None = None,
    diagnostics: TypeFrequency | None = None,
    logger: logging.Logger | None = None,
) -> ProcessSummary:
    """Handle one upstream message end to end.

    Extracts `[previous_position, read_position)` of the named file (relative
    names resolve against `base_dir`) and writes the result document stamped
    with the message's sync time. Nothing is written for configuration or
    structural failures. Raises `OutputError` if the artifact cannot be
    written; the extracted records are released either way.
    """
    config = config or ExtractorConfig()
    source = Path(message.file_name)
    if base_dir is not None and not source.is_absolute():
        source = Path(base_dir) / source

    with extract_part_results(
        source,
        message.previous_position,
        message.read_position,
        config=config,
        diagnostics=diagnostics,
        logger=logger,
    ) as result:
        errors = tuple(result.errors)
        if not result.usable:
            return ProcessSummary(result.outcome, 0, None, errors)
        target = Path(output_path) if output_path else default_output_path(message, output_dir)
        written = write_results(
            result.records,
            target,
            message.sync_time,
            annotate_empty=config.annotate_empty,
            logger=logger,
        )
        return ProcessSummary(result.outcome, len(result), written, errors)
