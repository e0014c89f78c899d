"""Protocol buffer wire-format helpers and message comparison utilities."""

from __future__ import annotations

import abc
from collections.abc import Callable, Iterable, Sequence
from typing import Any

_MASK64 = (1 << 64) - 1


class DecodeError(ValueError):
    """Raised when binary protobuf data cannot be decoded."""


class InvalidLengthError(DecodeError):
    """A negative length was found while decoding."""

    def __init__(self, message: str = "proto: negative length found during unmarshaling") -> None:
        super().__init__(message)


class IntOverflowError(DecodeError):
    """A varint does not fit in 64 bits."""

    def __init__(self, message: str = "proto: integer overflow") -> None:
        super().__init__(message)


class UnexpectedEndOfGroupError(DecodeError):
    """A group end was found without a matching group start."""

    def __init__(self, message: str = "proto: unexpected end of group") -> None:
        super().__init__(message)


class UnexpectedEOFError(DecodeError):
    """The data ended in the middle of a value."""

    def __init__(self, message: str = "unexpected EOF") -> None:
        super().__init__(message)


class Message(abc.ABC):
    """Base interface of a message with binary marshalling."""

    @abc.abstractmethod
    def size(self) -> int:
        """Return the size of the message when marshalled."""

    @abc.abstractmethod
    def marshal(self) -> bytes:
        """Return the binary encoding of the message."""

    @abc.abstractmethod
    def unmarshal(self, data: bytes) -> None:
        """Decode the message from binary data."""

    @abc.abstractmethod
    def reset(self) -> None:
        """Reset the message to its empty state."""


def clone_slice(items: Iterable[Any]) -> list[Any]:
    """Clone every item of a sequence, keeping ``None`` entries as ``None``."""
    return [None if item is None else item.clone() for item in items]


def compare_comparable() -> Callable[[Any, Any], bool]:
    """Return a function comparing two values with ``==``."""

    def compare(first: Any, second: Any) -> bool:
        return first == second

    return compare


def compare_equal() -> Callable[[Any, Any], bool]:
    """Return a function comparing two messages with :func:`is_equal`."""
    return is_equal


def is_equal(a: Any, b: Any) -> bool:
    """Compare two messages, treating ``None`` as the empty message pointer."""
    if (a is None) != (b is None):
        return False
    if a is None:
        return True
    return bool(a == b)


def is_equal_slice(s1: Sequence[Any] | None, s2: Sequence[Any] | None) -> bool:
    """Compare two sequences of messages element by element."""
    first = list(s1 or ())
    second = list(s2 or ())
    if len(first) != len(second):
        return False
    return all(is_equal(a, b) for a, b in zip(first, second))


def _check_uint64(value: int) -> None:
    if not 0 <= value <= _MASK64:
        raise ValueError(f"value {value} does not fit in an unsigned 64-bit integer")


def append_varint(buf: bytearray, value: int) -> bytearray:
    """Append ``value`` to ``buf`` as a varint and return ``buf``."""
    _check_uint64(value)
    while value >= 0x80:
        buf.append((value & 0x7F) | 0x80)
        value >>= 7
    buf.append(value)
    return buf


def encode_varint(value: int) -> bytes:
    """Return the varint encoding of an unsigned 64-bit value."""
    return bytes(append_varint(bytearray(), value))


def consume_varint(data: bytes) -> tuple[int, int]:
    """Parse a varint from the start of ``data``; return ``(value, length)``."""
    value = 0
    for index, byte in enumerate(data[:10]):
        if index == 9:
            if byte >= 2:
                raise IntOverflowError()
            return value | (byte << 63), 10
        value |= (byte & 0x7F) << (7 * index)
        if byte < 0x80:
            return value, index + 1
    raise UnexpectedEOFError()


def size_of_varint(value: int) -> int:
    """Return the number of bytes the varint encoding of ``value`` takes."""
    return ((value | 1).bit_length() + 6) // 7


def size_of_zigzag(value: int) -> int:
    """Return the size of the zigzag varint encoding of a 64-bit value."""
    bits = value & _MASK64
    sign = _MASK64 if bits >> 63 else 0
    return size_of_varint(((bits << 1) & _MASK64) ^ sign)


def _read_raw_varint(data: bytes, pos: int) -> tuple[int, int]:
    result = 0
    shift = 0
    while True:
        if shift >= 64:
            raise IntOverflowError()
        if pos >= len(data):
            raise UnexpectedEOFError()
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if byte < 0x80:
            return result & _MASK64, pos
        shift += 7


def skip(data: bytes) -> int:
    """Skip the first record of ``data`` and return the offset of the next one."""
    length = len(data)
    pos = 0
    depth = 0
    while pos < length:
        wire, pos = _read_raw_varint(data, pos)
        wire_type = wire & 0x7
        if wire_type == 0:
            _, pos = _read_raw_varint(data, pos)
        elif wire_type == 1:
            pos += 8
        elif wire_type == 2:
            raw, pos = _read_raw_varint(data, pos)
            size = raw - (1 << 64) if raw >> 63 else raw
            if size < 0:
                raise InvalidLengthError()
            pos += size
        elif wire_type == 3:
            depth += 1
        elif wire_type == 4:
            if depth == 0:
                raise UnexpectedEndOfGroupError()
            depth -= 1
        elif wire_type == 5:
            pos += 4
        else:
            raise DecodeError(f"proto: illegal wireType {wire_type}")
        if depth == 0:
            return pos
    raise UnexpectedEOFError()