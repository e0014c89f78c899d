"""An outgoing stream of JSON tokens written to a binary writer."""

from __future__ import annotations

import math
import struct
from decimal import Decimal
from typing import Protocol

_INT32_RANGE = (-(1 << 31), (1 << 31) - 1)
_UINT32_RANGE = (0, (1 << 32) - 1)

_SIMPLE_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}


class BinaryWriter(Protocol):
    """Anything with a ``write`` method that accepts bytes."""

    def write(self, data: bytes, /) -> int | None: ...


def _escape(ch: str) -> str:
    escaped = _SIMPLE_ESCAPES.get(ch)
    if escaped is not None:
        return escaped
    if ch.isprintable():
        return ch
    code = ord(ch)
    if code < 0x20 or code == 0x7F:
        return f"\\x{code:02x}"
    if code < 0x10000:
        return f"\\u{code:04x}"
    return f"\\U{code:08x}"


def quote(value: str) -> str:
    """Return ``value`` as a double-quoted string with escapes."""
    return '"' + "".join(map(_escape, value)) + '"'


def _to_float32(value: float) -> float:
    """Round ``value`` to the nearest single-precision float."""
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def _special_float(value: float) -> str | None:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return None


def _plain_decimal(text: str) -> str:
    digits = format(Decimal(text), "f")
    if "." in digits:
        digits = digits.rstrip("0").rstrip(".")
    return digits


def _format_float64(value: float) -> str:
    value = float(value)
    special = _special_float(value)
    if special is not None:
        return special
    return _plain_decimal(repr(value))


def _format_float32(value: float) -> str:
    single = _to_float32(float(value))
    special = _special_float(single)
    if special is not None:
        return special
    for precision in range(1, 10):
        text = f"{single:.{precision}g}"
        if _to_float32(float(text)) == single:
            return _plain_decimal(text)
    return _plain_decimal(repr(single))


def _format_ranged(value: int, bounds: tuple[int, int], kind: str) -> str:
    number = int(value)
    low, high = bounds
    if not low <= number <= high:
        raise ValueError(f"value {number} out of range for {kind}")
    return str(number)


class JsonStream:
    """Writes JSON tokens to a binary writer, remembering the first write error."""

    def __init__(self, writer: BinaryWriter) -> None:
        self._writer = writer
        self._error: Exception | None = None

    @property
    def error(self) -> Exception | None:
        """The first error raised by the writer, if any."""
        return self._error

    def _emit(self, text: str) -> None:
        if self._error is not None:
            return
        try:
            self._writer.write(text.encode("utf-8"))
        except (OSError, ValueError) as exc:
            self._error = exc

    def write(self, data: bytes) -> int:
        """Write raw bytes and return how many were written."""
        if self._error is not None:
            raise self._error
        payload = bytes(data)
        try:
            written = self._writer.write(payload)
        except (OSError, ValueError) as exc:
            self._error = exc
            raise
        return len(payload) if written is None else written

    def write_string(self, value: str) -> None:
        """Write a quoted string."""
        self._emit(quote(value))

    def write_float32(self, value: float) -> None:
        """Write the shortest decimal form of a single-precision float."""
        self._emit(_format_float32(value))

    def write_float64(self, value: float) -> None:
        """Write the shortest decimal form of a double-precision float."""
        self._emit(_format_float64(value))

    def write_int32(self, value: int) -> None:
        """Write a signed 32-bit integer."""
        self._emit(_format_ranged(value, _INT32_RANGE, "int32"))

    def write_uint32(self, value: int) -> None:
        """Write an unsigned 32-bit integer."""
        self._emit(_format_ranged(value, _UINT32_RANGE, "uint32"))

    def write_bool(self, value: bool) -> None:
        """Write ``true`` or ``false``."""
        self._emit("true" if value else "false")

    def write_nil(self) -> None:
        """Write ``null``."""
        self._emit("null")

    def write_object_start(self) -> None:
        """Write the opening brace of an object."""
        self._emit("{")

    def write_object_field(self, field: str) -> None:
        """Write a quoted field name followed by a colon."""
        self.write_string(field)
        self._emit(":")

    def write_object_end(self) -> None:
        """Write the closing brace of an object."""
        self._emit("}")

    def write_array_start(self) -> None:
        """Write the opening bracket of an array."""
        self._emit("[")

    def write_array_end(self) -> None:
        """Write the closing bracket of an array."""
        self._emit("]")

    def write_more(self) -> None:
        """Write a comma separating two elements."""
        self._emit(",")