"""A pull parser that reads JSON values one token at a time."""

from __future__ import annotations

import enum
import re
from collections.abc import Callable
from typing import NoReturn

from protolite.stream import _to_float32

_WHITESPACE = frozenset(" \t\n\r")
_NUMBER = re.compile(r"-?(?:0|[1-9][0-9]*)(\.[0-9]+)?([eE][+-]?[0-9]+)?")
_STRING_CHUNK = re.compile(r'[^"\\\x00-\x1f]*')
_HEX4 = re.compile(r"[0-9a-fA-F]{4}")
_ESCAPES = {
    '"': '"',
    "\\": "\\",
    "/": "/",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}

_INT32 = (-(1 << 31), (1 << 31) - 1)
_INT64 = (-(1 << 63), (1 << 63) - 1)
_UINT32 = (0, (1 << 32) - 1)
_UINT64 = (0, (1 << 64) - 1)


class ValueType(enum.Enum):
    """The kind of the next JSON value."""

    INVALID = 0
    STRING = 1
    NUMBER = 2
    NIL = 3
    BOOL = 4
    ARRAY = 5
    OBJECT = 6


_TYPE_NAMES = {
    ValueType.STRING: "String",
    ValueType.NUMBER: "Number",
    ValueType.NIL: "Null",
    ValueType.BOOL: "Bool",
    ValueType.ARRAY: "Array",
    ValueType.OBJECT: "Object",
}

_FIRST_CHAR = {
    '"': ValueType.STRING,
    "-": ValueType.NUMBER,
    "n": ValueType.NIL,
    "t": ValueType.BOOL,
    "f": ValueType.BOOL,
    "[": ValueType.ARRAY,
    "{": ValueType.OBJECT,
    **{digit: ValueType.NUMBER for digit in "0123456789"},
}


def value_type_name(value_type: ValueType) -> str:
    """Return the display name of a value type, or ``"unknown"``."""
    return _TYPE_NAMES.get(value_type, "unknown")


class JsonSyntaxError(ValueError):
    """The JSON input is malformed or does not hold the expected value."""

    def __init__(self, message: str, offset: int) -> None:
        super().__init__(f"{message} at offset {offset}")
        self.offset = offset


class JsonIterator:
    """Reads JSON values from text, one at a time, in document order."""

    def __init__(self, data: bytes | bytearray | str) -> None:
        if isinstance(data, str):
            self._text = data
        else:
            self._text = bytes(data).decode("utf-8", errors="replace")
        self._pos = 0
        self._error: JsonSyntaxError | None = None

    @property
    def error(self) -> JsonSyntaxError | None:
        """The first syntax error met, if any."""
        return self._error

    @property
    def offset(self) -> int:
        """The current read position in characters."""
        return self._pos

    def _fail(self, message: str) -> NoReturn:
        error = JsonSyntaxError(message, self._pos)
        if self._error is None:
            self._error = error
        raise error

    def _peek(self) -> str:
        text = self._text
        pos = self._pos
        while pos < len(text) and text[pos] in _WHITESPACE:
            pos += 1
        self._pos = pos
        return text[pos] if pos < len(text) else ""

    def _next_token(self, context: str) -> str:
        char = self._peek()
        if not char:
            self._fail(f"{context}: unexpected end of input")
        self._pos += 1
        return char

    def _expect(self, expected: str, context: str) -> None:
        char = self._next_token(context)
        if char != expected:
            self._pos -= 1
            self._fail(f"{context}: expect {expected!r}, but found {char!r}")

    def _expect_literal(self, word: str, context: str) -> None:
        self._peek()
        if not self._text.startswith(word, self._pos):
            self._fail(f"{context}: expect {word}")
        self._pos += len(word)

    def what_is_next(self) -> ValueType:
        """Return the type of the next value without consuming it."""
        return _FIRST_CHAR.get(self._peek(), ValueType.INVALID)

    def read_nil(self) -> bool:
        """Consume a ``null`` if one comes next; return whether it did."""
        if self._peek() != "n":
            return False
        self._expect_literal("null", "read_nil")
        return True

    def read_bool(self) -> bool:
        """Read ``true`` or ``false``."""
        char = self._peek()
        if char == "t":
            self._expect_literal("true", "read_bool")
            return True
        if char == "f":
            self._expect_literal("false", "read_bool")
            return False
        self._fail("read_bool: expect t or f")

    def read_string(self) -> str:
        """Read a string; ``null`` reads as the empty string."""
        char = self._peek()
        if char == '"':
            return self._parse_string()
        if char == "n":
            self._expect_literal("null", "read_string")
            return ""
        self._fail('read_string: expect " or n')

    def _parse_string(self) -> str:
        text = self._text
        pos = self._pos + 1
        parts: list[str] = []
        while True:
            chunk = _STRING_CHUNK.match(text, pos)
            parts.append(chunk.group())
            pos = chunk.end()
            if pos >= len(text):
                self._pos = pos
                self._fail("read_string: unterminated string")
            char = text[pos]
            if char == '"':
                self._pos = pos + 1
                return "".join(parts)
            if char == "\\":
                decoded, pos = self._parse_escape(pos + 1)
                parts.append(decoded)
            else:
                self._pos = pos
                self._fail("read_string: control character in string")

    def _read_hex4(self, pos: int) -> int:
        match = _HEX4.fullmatch(self._text, pos, pos + 4)
        if match is None:
            self._pos = pos
            self._fail("read_string: invalid unicode escape")
        return int(match.group(), 16)

    def _parse_escape(self, pos: int) -> tuple[str, int]:
        text = self._text
        if pos >= len(text):
            self._pos = pos
            self._fail("read_string: unterminated escape")
        char = text[pos]
        if char in _ESCAPES:
            return _ESCAPES[char], pos + 1
        if char != "u":
            self._pos = pos
            self._fail(f"read_string: invalid escape {char!r}")
        code = self._read_hex4(pos + 1)
        pos += 5
        if 0xD800 <= code < 0xDC00 and text.startswith("\\u", pos):
            low = _HEX4.fullmatch(text, pos + 2, pos + 6)
            if low is not None:
                low_code = int(low.group(), 16)
                if 0xDC00 <= low_code < 0xE000:
                    combined = 0x10000 + ((code - 0xD800) << 10) + (low_code - 0xDC00)
                    return chr(combined), pos + 6
        if 0xD800 <= code < 0xE000:
            return "\ufffd", pos
        return chr(code), pos

    def _read_number(self, context: str) -> re.Match[str]:
        self._peek()
        match = _NUMBER.match(self._text, self._pos)
        if match is None:
            self._fail(f"{context}: expect number")
        self._pos = match.end()
        return match

    def _read_integer(self, context: str, bounds: tuple[int, int]) -> int:
        match = self._read_number(context)
        if match.group(1) or match.group(2):
            self._pos = match.start()
            self._fail(f"{context}: expect integer")
        value = int(match.group())
        low, high = bounds
        if not low <= value <= high:
            self._pos = match.start()
            self._fail(f"{context}: overflow")
        return value

    def read_float32(self) -> float:
        """Read a number rounded to single precision."""
        return _to_float32(float(self._read_number("read_float32").group()))

    def read_float64(self) -> float:
        """Read a number as a double-precision float."""
        return float(self._read_number("read_float64").group())

    def read_int32(self) -> int:
        """Read a signed 32-bit integer."""
        return self._read_integer("read_int32", _INT32)

    def read_int64(self) -> int:
        """Read a signed 64-bit integer."""
        return self._read_integer("read_int64", _INT64)

    def read_uint32(self) -> int:
        """Read an unsigned 32-bit integer."""
        return self._read_integer("read_uint32", _UINT32)

    def read_uint64(self) -> int:
        """Read an unsigned 64-bit integer."""
        return self._read_integer("read_uint64", _UINT64)

    def _read_key(self, context: str) -> str:
        if self._peek() != '"':
            self._fail(f"{context}: expect field name")
        key = self._parse_string()
        self._expect(":", context)
        return key

    def read_object(self) -> str:
        """Read the next field name of an object, entering it if needed.

        Returns the empty string at the end of the object or on ``null``.
        """
        char = self._next_token("read_object")
        if char == "n":
            self._pos -= 1
            self._expect_literal("null", "read_object")
            return ""
        if char == "{":
            char = self._next_token("read_object")
            if char == '"':
                self._pos -= 1
                return self._read_key("read_object")
            if char == "}":
                return ""
            self._pos -= 1
            self._fail("read_object: expect \" after {")
        if char == ",":
            return self._read_key("read_object")
        if char == "}":
            return ""
        self._pos -= 1
        self._fail(f"read_object: expect {{ or , or }} or n, but found {char!r}")

    def read_object_cb(self, callback: Callable[[str], bool]) -> bool:
        """Call ``callback(key)`` for each field; it must read the field's value.

        Returning ``False`` from the callback stops early. Returns ``False``
        if stopped early, ``True`` otherwise.
        """
        char = self._next_token("read_object_cb")
        if char == "n":
            self._pos -= 1
            self._expect_literal("null", "read_object_cb")
            return True
        if char != "{":
            self._pos -= 1
            self._fail("read_object_cb: expect { or n")
        if self._peek() == "}":
            self._pos += 1
            return True
        while True:
            key = self._read_key("read_object_cb")
            if callback(key) is False:
                return False
            char = self._next_token("read_object_cb")
            if char == "}":
                return True
            if char != ",":
                self._pos -= 1
                self._fail("read_object_cb: expect , or }")

    def read_array_cb(self, callback: Callable[[], bool]) -> bool:
        """Call ``callback()`` for each element; it must read the element.

        Returning ``False`` from the callback stops early. Returns ``False``
        if stopped early, ``True`` otherwise.
        """
        char = self._next_token("read_array_cb")
        if char == "n":
            self._pos -= 1
            self._expect_literal("null", "read_array_cb")
            return True
        if char != "[":
            self._pos -= 1
            self._fail("read_array_cb: expect [ or n")
        if self._peek() == "]":
            self._pos += 1
            return True
        while True:
            if callback() is False:
                return False
            char = self._next_token("read_array_cb")
            if char == "]":
                return True
            if char != ",":
                self._pos -= 1
                self._fail("read_array_cb: expect , or ]")

    def skip(self) -> None:
        """Consume the next value, whatever its type."""
        value_type = self.what_is_next()
        if value_type is ValueType.STRING:
            self._parse_string()
        elif value_type is ValueType.NUMBER:
            self._read_number("skip")
        elif value_type is ValueType.NIL:
            self._expect_literal("null", "skip")
        elif value_type is ValueType.BOOL:
            self.read_bool()
        elif value_type is ValueType.ARRAY:
            self.read_array_cb(self._skip_element)
        elif value_type is ValueType.OBJECT:
            self.read_object_cb(self._skip_field)
        else:
            self._fail("skip: invalid value")

    def _skip_element(self) -> bool:
        self.skip()
        return True

    def _skip_field(self, _key: str) -> bool:
        self.skip()
        return True

    def skip_and_return_bytes(self) -> bytes:
        """Consume the next value and return its raw JSON encoding."""
        self._peek()
        start = self._pos
        self.skip()
        return self._text[start:self._pos].encode("utf-8")