"""Sync messages exchanged with the transfer side.

Upstream producers are loose about types: byte positions come as ints or as
comma-grouped strings ("1,234,567"), and the sync time as an epoch number or
a local timestamp string. Everything is normalized here, field by field, so
the extractor only ever sees ints.
"""

from __future__ import annotations

import json
import math
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any

THROUGH_EOF = -1

_TIMESTAMP_FORMATS = (
    "%Y/%m/%d %H:%M:%S.%f",
    "%Y/%m/%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
)

# Older producers name the field after the temporary rsync file.
_FILE_NAME_KEYS = ("file_name", "temp_file_name")


class MessageError(ValueError):
    """The message cannot be used at all (not an object, no file name)."""


def try_parse_position(value: Any) -> int | None:
    """A byte position from an int, integral float or grouped string, else None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip().replace(",", ""))
        except ValueError:
            return None
    return None


def parse_position(value: Any, default: int) -> int:
    """Normalize a byte position; unusable values give `default`.

    >>> parse_position("1,234,567", 0)
    1234567
    """
    position = try_parse_position(value)
    return default if position is None else position


def parse_sync_time(value: Any, *, now: float | None = None) -> int:
    """Seconds since the epoch from an epoch number or a local timestamp.

    Falls back to `now` (default: the current time) when nothing parses.
    """
    fallback = int(time.time() if now is None else now)
    if value is None or isinstance(value, bool):
        return fallback
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else fallback
    if not isinstance(value, str):
        return fallback

    text = value.strip()
    try:
        epoch = float(text)
    except ValueError:
        pass
    else:
        # "nan", "inf" and "1e999" parse as floats but are not times
        return int(epoch) if math.isfinite(epoch) else fallback
    for fmt in _TIMESTAMP_FORMATS:
        try:
            return int(datetime.strptime(text, fmt).timestamp())
        except (ValueError, OverflowError, OSError):
            continue
    try:
        return int(datetime.fromisoformat(text).timestamp())
    except (ValueError, OverflowError, OSError):
        return fallback


@dataclass(frozen=True)
class SyncMessage:
    """`{file_name, previous_position, read_position, sync_time}`

    `[previous_position, read_position)` is the byte window newly made valid
    by the transfer; `read_position == -1` means "through end of file".
    """

    file_name: str
    previous_position: int = 0
    read_position: int = THROUGH_EOF
    sync_time: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, now: float | None = None) -> SyncMessage:
        if not isinstance(data, dict):
            raise MessageError(f"message must be a JSON object, got {type(data).__name__}")
        name = next((data[k] for k in _FILE_NAME_KEYS if data.get(k)), None)
        if not isinstance(name, str) or not name.strip():
            raise MessageError("message has no file_name")
        return cls(
            file_name=name.strip(),
            previous_position=parse_position(data.get("previous_position"), 0),
            read_position=parse_position(data.get("read_position"), THROUGH_EOF),
            sync_time=parse_sync_time(data.get("sync_time"), now=now),
        )

    @classmethod
    def from_json(cls, text: str | bytes, *, now: float | None = None) -> SyncMessage:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MessageError(f"message is not valid JSON: {e}") from e
        return cls.from_dict(data, now=now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_name": self.file_name,
            "previous_position": self.previous_position,
            "read_position": self.read_position,
            "sync_time": self.sync_time,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())
