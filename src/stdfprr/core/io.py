from __future__ import annotations

import os
from collections import OrderedDict
from contextlib import suppress
from dataclasses import dataclass


class InvalidOffset(ValueError):
    """Raised when an invalid (e.g., negative) offset is provided."""


class ShortRead(EOFError):
    """Raised when fewer bytes than requested are available at the cursor."""

    def __init__(self, offset: int, wanted: int, got: int) -> None:
        super().__init__(f"short read at offset {offset:#x}: wanted {wanted}, got {got}")
        self.offset = offset
        self.wanted = wanted
        self.got = got


@dataclass(frozen=True)
class _Page:
    index: int
    data: bytes


class PagedReader:
    """Bounds-checked, cursor-bearing reader for a file that may still be growing.

    Reads go through a small LRU page cache; the full file is never loaded into
    memory at once. The size is sampled once at open. Another process may keep
    appending while the reader is open, so callers that need the live size use
    `probe_size()`. The handle is opened read-only and never locked.
    """

    def __init__(
        self,
        path: str,
        *,
        page_size: int = 64 * 1024,
        cache_pages: int = 16,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        if cache_pages <= 0:
            raise ValueError("cache_pages must be positive")

        self._path = str(path)
        try:
            self._fh = open(self._path, "rb", buffering=0)  # noqa: SIM115
        except FileNotFoundError:
            raise FileNotFoundError(f"File not found: {self._path}") from None

        self._size = int(os.fstat(self._fh.fileno()).st_size)
        self._page_size = int(page_size)
        self._cache_limit = int(cache_pages)
        self._cache: OrderedDict[int, _Page] = OrderedDict()
        self._pos = 0

    def close(self) -> None:
        self._cache.clear()
        with suppress(OSError):
            self._fh.close()

    @property
    def closed(self) -> bool:
        return self._fh.closed

    def __enter__(self) -> PagedReader:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def size(self) -> int:
        """File size in bytes, as sampled when the reader was opened."""
        return self._size

    @property
    def path(self) -> str:
        return self._path

    def probe_size(self) -> int:
        """Re-stat the open handle and return the current on-disk size."""
        return int(os.fstat(self._fh.fileno()).st_size)

    # Cursor
    def tell(self) -> int:
        if self._pos < 0:
            raise InvalidOffset(f"cursor is at invalid position {self._pos}")
        return self._pos

    def seek(self, offset: int) -> int:
        """Move the cursor to an absolute offset.

        Seeking beyond EOF is allowed (like a regular file); reads there return
        nothing. Negative offsets raise `InvalidOffset`.
        """
        if offset < 0:
            raise InvalidOffset("offset must be >= 0")
        self._pos = int(offset)
        return self._pos

    def skip(self, length: int) -> int:
        """Advance the cursor by `length` bytes relative to the current position."""
        return self.seek(self.tell() + int(length))

    def read_exact(self, length: int) -> bytes:
        """Read exactly `length` bytes at the cursor and advance past them.

        Raises `ShortRead` (cursor unchanged) if EOF comes first.
        """
        pos = self.tell()
        data = self.read(pos, length)
        if len(data) != length:
            raise ShortRead(pos, length, len(data))
        self._pos = pos + length
        return data

    # Internal: fetch a page (LRU-cached)
    def _get_page(self, index: int) -> _Page:
        if index in self._cache:
            page = self._cache.pop(index)
            self._cache[index] = page  # move to end (most-recent)
            return page

        start = index * self._page_size
        if start >= self._size:
            data = b""
        else:
            to_read = min(self._page_size, self._size - start)
            self._fh.seek(start)
            data = self._fh.read(to_read)
        page = _Page(index=index, data=data)

        self._cache[index] = page
        if len(self._cache) > self._cache_limit:
            self._cache.popitem(last=False)  # evict LRU
        return page

    def read(self, offset: int, length: int) -> bytes:
        """Read up to `length` bytes starting at `offset`.

        - Negative `offset` or `length` raises `InvalidOffset`.
        - If `offset` >= size, returns b"".
        - Reading past the sampled size returns the truncated data, so bytes
          appended after open are never observed.
        """
        if offset < 0:
            raise InvalidOffset("offset must be >= 0")
        if length < 0:
            raise InvalidOffset("length must be >= 0")
        if length == 0 or offset >= self._size:
            return b""

        end = min(self._size, offset + length)
        result = bytearray()
        pos = offset
        while pos < end:
            page_index = pos // self._page_size
            page = self._get_page(page_index)
            within = pos - (page_index * self._page_size)
            take = min(len(page.data) - within, end - pos)
            if take <= 0:
                break
            result += page.data[within : within + take]
            pos += take
        return bytes(result)
