"""STDF V4 record codec: the 4-byte record header, FAR and PRR.

Only the record kinds the extractor touches are modelled. Everything else is
skipped by its declared length and never decoded.
"""

from __future__ import annotations

from dataclasses import dataclass

from stdfprr.core.endian import Endian, decode_int, encode_int
from stdfprr.core.io import PagedReader, ShortRead

# Header: [REC_LEN U2 | REC_TYP U1 | REC_SUB U1]
HEADER_SIZE = 4

FAR_TYPE = 0
FAR_SUB = 10
PRR_TYPE = 5
PRR_SUB = 20

MISSING_COORD = -32768

# PART_FLG bits
_FLG_SUPERSEDES_ID = 0x01
_FLG_SUPERSEDES_XY = 0x02
_FLG_ABNORMAL = 0x04
_FLG_FAILED = 0x08
_FLG_INVALID = 0x10


class RecordDecodeError(ValueError):
    """Raised when a record payload does not hold the fields its kind requires."""


@dataclass(frozen=True)
class RecordHeader:
    """Header of one record. `length` counts payload bytes only."""

    offset: int
    length: int
    type: int
    subtype: int

    @property
    def payload_offset(self) -> int:
        return self.offset + HEADER_SIZE

    @property
    def end(self) -> int:
        """Offset of the first byte after this record."""
        return self.offset + HEADER_SIZE + self.length


@dataclass(frozen=True)
class FileAttributes:
    cpu_type: int
    stdf_version: int


@dataclass(frozen=True)
class PartResult:
    """One decoded Part Results Record."""

    offset: int
    head_number: int
    site_number: int
    test_count: int
    hard_bin: int
    soft_bin: int
    elapsed_ms: int
    x_coord: int | None = None
    y_coord: int | None = None
    superseded: bool = False
    abnormal: bool = False
    failed: bool = False
    invalid: bool = False
    part_id: str | None = None
    part_text: str | None = None


class _FieldCursor:
    """Sequential field reader over one payload.

    STDF writers may drop trailing fields; reading past the end of the
    payload yields the caller's default instead of failing.
    """

    def __init__(self, payload: bytes, endian: Endian) -> None:
        self._data = payload
        self._pos = 0
        self._endian = endian

    @property
    def exhausted(self) -> bool:
        return self._pos >= len(self._data)

    def _take(self, width: int) -> bytes | None:
        if self._pos + width > len(self._data):
            self._pos = len(self._data)
            return None
        chunk = self._data[self._pos : self._pos + width]
        self._pos += width
        return chunk

    def uint(self, width: int, default: int) -> int:
        raw = self._take(width)
        return default if raw is None else decode_int(raw, self._endian, signed=False)

    def sint(self, width: int, default: int) -> int:
        raw = self._take(width)
        return default if raw is None else decode_int(raw, self._endian, signed=True)

    def cn(self) -> str | None:
        """C*n: one length byte followed by that many characters."""
        if self.exhausted:
            return None
        count = self.uint(1, 0)
        raw = self._take(count)
        if raw is None:
            raise RecordDecodeError(f"string field truncated (declared {count} bytes)")
        # latin-1 keeps a 1:1 byte to code point mapping for the sanitizer
        return raw.decode("latin-1")


def decode_header(data: bytes, offset: int, endian: Endian = "little") -> RecordHeader:
    if len(data) != HEADER_SIZE:
        raise RecordDecodeError(f"header needs {HEADER_SIZE} bytes, got {len(data)}")
    return RecordHeader(
        offset=offset,
        length=decode_int(data[0:2], endian, signed=False),
        type=data[2],
        subtype=data[3],
    )


def read_header(reader: PagedReader, endian: Endian = "little") -> RecordHeader:
    """Read the header at the reader's cursor and leave the cursor on its payload.

    Propagates `ShortRead` when fewer than four bytes remain.
    """
    offset = reader.tell()
    return decode_header(reader.read_exact(HEADER_SIZE), offset, endian)


def read_payload(reader: PagedReader, header: RecordHeader) -> bytes:
    """Read `header`'s payload by absolute offset; the cursor does not move."""
    data = reader.read(header.payload_offset, header.length)
    if len(data) != header.length:
        raise ShortRead(header.payload_offset, header.length, len(data))
    return data


def decode_far(payload: bytes) -> FileAttributes:
    if len(payload) < 2:
        raise RecordDecodeError(f"FAR payload needs 2 bytes, got {len(payload)}")
    return FileAttributes(cpu_type=payload[0], stdf_version=payload[1])


def decode_prr(payload: bytes, offset: int = 0, endian: Endian = "little") -> PartResult:
    """Decode a PRR payload.

    HEAD_NUM, SITE_NUM and PART_FLG are required; later fields fall back to
    their STDF missing values when the writer truncated the record. Bins are
    read as signed so negative writer sentinels survive to the validity guard.
    """
    if len(payload) < 3:
        raise RecordDecodeError(f"PRR payload needs at least 3 bytes, got {len(payload)}")
    cur = _FieldCursor(payload, endian)
    head = cur.uint(1, 0)
    site = cur.uint(1, 0)
    flags = cur.uint(1, 0)
    test_count = cur.uint(2, 0)
    hard_bin = cur.sint(2, 0)
    soft_bin = cur.sint(2, -1)
    x = cur.sint(2, MISSING_COORD)
    y = cur.sint(2, MISSING_COORD)
    elapsed = cur.uint(4, 0)
    part_id = cur.cn()
    part_text = cur.cn()
    return PartResult(
        offset=offset,
        head_number=head,
        site_number=site,
        test_count=test_count,
        hard_bin=hard_bin,
        soft_bin=soft_bin,
        elapsed_ms=elapsed,
        x_coord=None if x == MISSING_COORD else x,
        y_coord=None if y == MISSING_COORD else y,
        superseded=bool(flags & (_FLG_SUPERSEDES_ID | _FLG_SUPERSEDES_XY)),
        abnormal=bool(flags & _FLG_ABNORMAL),
        failed=bool(flags & _FLG_FAILED),
        invalid=bool(flags & _FLG_INVALID),
        part_id=part_id,
        part_text=part_text,
    )


# Encoders (fixtures and test data generation)


def encode_record(
    rec_type: int, rec_sub: int, payload: bytes, endian: Endian = "little"
) -> bytes:
    return encode_int(len(payload), 2, endian, signed=False) + bytes((rec_type, rec_sub)) + payload


def encode_far(cpu_type: int = 2, stdf_version: int = 4) -> bytes:
    return encode_record(FAR_TYPE, FAR_SUB, bytes((cpu_type, stdf_version)))


def _encode_cn(text: str | bytes) -> bytes:
    raw = text.encode("latin-1") if isinstance(text, str) else bytes(text)
    if len(raw) > 255:
        raise ValueError("C*n field longer than 255 bytes")
    return bytes((len(raw),)) + raw


def encode_prr(
    *,
    head: int = 1,
    site: int = 1,
    flags: int = 0,
    test_count: int = 0,
    hard_bin: int = 1,
    soft_bin: int = 1,
    x: int = MISSING_COORD,
    y: int = MISSING_COORD,
    elapsed_ms: int = 0,
    part_id: str | bytes | None = None,
    part_text: str | bytes | None = None,
    rec_type: int = PRR_TYPE,
    endian: Endian = "little",
) -> bytes:
    payload = bytes((head, site, flags))
    payload += encode_int(test_count, 2, endian, signed=False)
    payload += encode_int(hard_bin, 2, endian, signed=True)
    payload += encode_int(soft_bin, 2, endian, signed=True)
    payload += encode_int(x, 2, endian, signed=True)
    payload += encode_int(y, 2, endian, signed=True)
    payload += encode_int(elapsed_ms, 4, endian, signed=False)
    if part_id is not None or part_text is not None:
        payload += _encode_cn(part_id or "")
    if part_text is not None:
        payload += _encode_cn(part_text)
    return encode_record(rec_type, PRR_SUB, payload, endian)
