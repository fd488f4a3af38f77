from __future__ import annotations

import logging

from stdfprr.config import ExtractorConfig
from stdfprr.core.io import PagedReader, ShortRead
from stdfprr.core.stdf import FileAttributes, RecordDecodeError, decode_far, read_header, read_payload

log = logging.getLogger(__name__)


class StructuralError(ValueError):
    """The file does not start with a usable FAR for a supported platform/version."""


def check_file_header(
    reader: PagedReader,
    config: ExtractorConfig,
    *,
    logger: logging.Logger | None = None,
) -> FileAttributes:
    """Validate the FAR at offset 0 and rewind the cursor to 0.

    Raises `StructuralError` when the first record is not a FAR, cannot be
    read, or names a CPU type / STDF version other than the supported pair.
    """
    logger = logger or log
    logger.debug("Starting from file beginning, verifying FAR record")
    reader.seek(0)
    try:
        header = read_header(reader)
        if (header.type, header.subtype) != (config.file_header_type, config.file_header_subtype):
            raise StructuralError(
                "File does not start with a FAR record, "
                f"found type: {header.type}, subtype: {header.subtype}"
            )
        far = decode_far(read_payload(reader, header))
    except (ShortRead, RecordDecodeError) as e:
        raise StructuralError(f"Unreadable FAR record: {e}") from e

    logger.debug("FAR record: CPU type=%d, STDF version=%d", far.cpu_type, far.stdf_version)
    if far.cpu_type != config.supported_cpu_type:
        raise StructuralError(f"Unsupported CPU type: {far.cpu_type}")
    if far.stdf_version != config.supported_stdf_version:
        raise StructuralError(f"Unsupported STDF version: {far.stdf_version}")

    reader.seek(0)
    return far
