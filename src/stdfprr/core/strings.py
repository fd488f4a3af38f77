from __future__ import annotations

PRINTABLE_MIN = 32
PRINTABLE_MAX = 126
PLACEHOLDER = "?"

# Characters with special meaning inside a JSON string literal
_ESCAPED = frozenset('\\"/')


def _glyph(c: str) -> str:
    code = ord(c)
    if code < PRINTABLE_MIN or code > PRINTABLE_MAX:
        return PLACEHOLDER
    if c in _ESCAPED:
        return "\\" + c
    return c


def sanitize_text(value: str | bytes | None) -> str:
    """Printable-ASCII rendition of a record string field.

    - Bytes (or code points) outside 32..126 become `?`.
    - Backslash, double quote and forward slash get a leading backslash.
    - None yields "".
    """
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("latin-1")
    return "".join(_glyph(c) for c in value)
