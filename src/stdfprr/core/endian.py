"""Byte-order support for STDF: types, CPU-type resolution, and integer decoding."""

from __future__ import annotations

from typing import Literal

# Type alias for endianness
Endian = Literal["little", "big"]

# STDF FAR.CPU_TYPE values and the byte order their writers use.
# 0 (VAX/PDP-11) has its own mixed layout and is not listed.
_CPU_TYPE_ENDIAN: dict[int, Endian] = {
    1: "big",  # Sun 1/2/3 (680x0)
    2: "little",  # Sun 386i, DEC/Intel x86
}


def endian_for_cpu_type(cpu_type: int) -> Endian:
    """Resolve the byte order implied by a FAR CPU_TYPE.

    Raises:
        ValueError: If the CPU type has no plain little/big layout.
    """
    try:
        return _CPU_TYPE_ENDIAN[cpu_type]
    except KeyError:
        raise ValueError(f"Unsupported CPU type {cpu_type}") from None


def decode_int(data: bytes, endian: Endian, signed: bool) -> int:
    """Decode integer from bytes with specified endianness."""
    return int.from_bytes(data, byteorder=endian, signed=signed)


def encode_int(value: int, width: int, endian: Endian, signed: bool) -> bytes:
    """Encode integer to exactly `width` bytes with specified endianness."""
    return int(value).to_bytes(width, byteorder=endian, signed=signed)
