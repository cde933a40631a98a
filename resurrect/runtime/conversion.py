"""Conversion between field values and their wire representation.

Text kinds (string, number, boolean, enum) travel as UTF-8 text, ``bytes``
as a raw blob and fixed-width kinds as big-endian binary.
"""

import math
import re
import struct
from typing import Any

from ..compiler.types import FIXED_WIDTH_TYPES, canonical_kind

_INT_RE = re.compile(r"[+-]?[0-9]+")
_DECIMAL_RE = re.compile(r"[+-]?([0-9]+\.[0-9]*|\.[0-9]+|[0-9]+(?=[eE]))([eE][+-]?[0-9]+)?")


class ConversionError(RuntimeError):
    """Raised when a value cannot be converted to or from the wire."""

    def __init__(
        self,
        message: str,
        expected: str | None = None,
        actual: str | None = None,
        field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual
        self.field = field


def decode_text(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


def integer_range(kind: str) -> tuple[int, int] | None:
    """Return the inclusive value range of a fixed-width integer kind."""
    kind = canonical_kind(kind)
    if kind not in FIXED_WIDTH_TYPES or kind.startswith("float"):
        return None
    bits = FIXED_WIDTH_TYPES[kind][1] * 8
    if kind.startswith("uint"):
        return 0, 2**bits - 1
    return -(2 ** (bits - 1)), 2 ** (bits - 1) - 1


def unpack_fixed(kind: str, raw: bytes) -> int | float:
    fmt, size = FIXED_WIDTH_TYPES[canonical_kind(kind)]
    if len(raw) != size:
        raise ConversionError(f"Expected {size} bytes for {kind}, got {len(raw)}", kind, raw.hex())
    return struct.unpack(f">{fmt}", raw)[0]


def pack_fixed(kind: str, value: int | float) -> bytes:
    fmt, _ = FIXED_WIDTH_TYPES[canonical_kind(kind)]
    try:
        return struct.pack(f">{fmt}", value)
    except (struct.error, OverflowError) as e:
        raise ConversionError(f"Cannot pack {value!r} as {kind}: {e}", kind, repr(value)) from e


def parse_number(text: str) -> int | float | None:
    """Parse base-10 integer, decimal or exponent text, returning None if it is none of them."""
    if _INT_RE.fullmatch(text):
        try:
            return int(text, 10)
        except ValueError:
            # more digits than the interpreter converts
            return None
    if _DECIMAL_RE.fullmatch(text):
        value = float(text)
        return value if math.isfinite(value) else None
    return None


def decode_value(raw: bytes, kind: str, field_name: str, required: bool = True) -> Any:
    """Convert the raw bytes of a field to a Python value.

    Returns None for an empty non-required number, meaning the field is left
    unset.

    Raises:
        ConversionError: If the bytes are not a valid value of the kind.
    """
    kind = canonical_kind(kind)

    if kind in FIXED_WIDTH_TYPES:
        return unpack_fixed(kind, raw)
    if kind == "bytes":
        return bytes(raw)

    text = decode_text(raw)
    if kind == "number":
        if text == "" and not required:
            return None
        number = parse_number(text)
        if number is None:
            raise ConversionError(f'Field "{field_name}" is not a valid number', "number", text)
        return number
    if kind == "boolean":
        return text in ("true", "1")

    # string, enum; enum membership is checked on validation only
    return text


def format_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def encode_value(value: Any, kind: str) -> bytes:
    """Convert a validated value to its wire bytes.

    Raises:
        ConversionError: If a fixed-width value cannot be packed.
    """
    kind = canonical_kind(kind)

    if kind in FIXED_WIDTH_TYPES:
        return pack_fixed(kind, value)
    if kind == "bytes":
        return bytes(value)
    if kind == "boolean":
        return b"true" if value else b"false"
    if kind == "number":
        return format_number(value).encode("utf-8")
    return str(value).encode("utf-8")
