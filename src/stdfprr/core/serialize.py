"""Map retained PartResults to the JSON result document and write it out."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from stdfprr.core.stdf import PartResult
from stdfprr.core.strings import sanitize_text

log = logging.getLogger(__name__)

EMPTY_COMMENT = "// No PRR records found in the processed file range"
INDENT = 4


class OutputError(OSError):
    """The result artifact could not be created or written."""


def part_result_to_dict(prr: PartResult, sync_time: int) -> dict[str, Any]:
    """One output element. Key order is part of the format."""
    doc: dict[str, Any] = {
        "head_number": prr.head_number,
        "site_number": prr.site_number,
        "test_count": prr.test_count,
        "hard_bin": prr.hard_bin,
        "soft_bin": prr.soft_bin,
    }
    if prr.x_coord is not None:
        doc["x_coord"] = prr.x_coord
    if prr.y_coord is not None:
        doc["y_coord"] = prr.y_coord
    doc["test_time_ms"] = prr.elapsed_ms
    doc["part_flags"] = {
        "superseded": prr.superseded,
        "abnormal": prr.abnormal,
        "failed": prr.failed,
        "invalid_flag": prr.invalid,
    }
    if prr.part_id is not None:
        doc["part_id"] = sanitize_text(prr.part_id)
    if prr.part_text is not None:
        doc["part_text"] = sanitize_text(prr.part_text)

    doc["last_modified"] = sync_time
    doc["sot"] = sync_time - prr.elapsed_ms // 1000
    doc["eot"] = sync_time
    return doc


def result_document(records: Iterable[PartResult], sync_time: int) -> list[dict[str, Any]]:
    return [part_result_to_dict(prr, int(sync_time)) for prr in records]


def render_json(
    records: Iterable[PartResult], sync_time: int, *, annotate_empty: bool = True
) -> str:
    """Render the document as text.

    An empty result is still a valid array, optionally preceded by a `//`
    comment line for the humans tailing the output directory.
    """
    doc = result_document(records, sync_time)
    body = json.dumps(doc, indent=INDENT)
    if not doc and annotate_empty:
        return f"{EMPTY_COMMENT}\n{body}"
    return body


def load_results(text: str) -> list[dict[str, Any]]:
    """Parse a rendered document, tolerating the leading comment line."""
    lines = [ln for ln in text.splitlines() if not ln.lstrip().startswith("//")]
    return json.loads("\n".join(lines))


def write_results(
    records: Iterable[PartResult],
    output_path: Path | str,
    sync_time: int,
    *,
    annotate_empty: bool = True,
    logger: logging.Logger | None = None,
) -> Path:
    """Write the document to `output_path`, creating parent directories.

    Raises `OutputError` if the directory or file cannot be written.
    """
    logger = logger or log
    path = Path(output_path)
    records = list(records)
    text = render_json(records, sync_time, annotate_empty=annotate_empty)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        logger.error("Failed to write output JSON file %s: %s", path, e)
        raise OutputError(f"Failed to write output JSON file {path}: {e}") from e

    if records:
        logger.info("Saved %d PRR records to JSON file: %s", len(records), path)
    else:
        logger.warning("No PRR records to save; wrote empty result to %s", path)
    return path
