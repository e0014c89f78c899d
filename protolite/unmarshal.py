"""State machine for reading protobuf JSON."""

from __future__ import annotations

import base64
import binascii
import copy
import math
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol, TypeVar

from protolite.fieldmask import FieldPath, PathList
from protolite.iterator import JsonIterator, JsonSyntaxError, ValueType, value_type_name
from protolite.resolver import AnyTypeResolver, ErrorAnyTypeResolver, NoAnyTypeResolverError
from protolite.stream import _to_float32, quote

T = TypeVar("T")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_NANOS_PER_SECOND = 1_000_000_000
_MAX_DURATION = 1 << 63

_INT_BOUNDS = {
    (32, True): (-(1 << 31), (1 << 31) - 1),
    (64, True): (-(1 << 63), (1 << 63) - 1),
    (32, False): (0, (1 << 32) - 1),
    (64, False): (0, (1 << 64) - 1),
}
_SIGNED_INT = re.compile(r"[+-]?[0-9]+")
_UNSIGNED_INT = re.compile(r"[0-9]+")
_INFINITY = re.compile(r"[+-]?(?:inf|infinity)", re.IGNORECASE)
_NAN = re.compile(r"nan", re.IGNORECASE)
_DECIMAL_FLOAT = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_HEX_FLOAT = re.compile(
    r"[+-]?0[xX](?:[0-9a-fA-F]+\.?[0-9a-fA-F]*|\.[0-9a-fA-F]+)[pP][+-]?[0-9]+"
)
_TIMESTAMP = re.compile(
    r"([0-9]{4})-([0-9]{2})-([0-9]{2})T([0-9]{2}):([0-9]{2}):([0-9]{2})(?:\.([0-9]{1,9}))?Z"
)
_DURATION_PART = re.compile(r"([0-9]*)(\.([0-9]*))?([^0-9.]*)")
_DURATION_UNITS = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": _NANOS_PER_SECOND,
    "m": 60 * _NANOS_PER_SECOND,
    "h": 3600 * _NANOS_PER_SECOND,
}
_BOOL_WORDS = {
    "1": True, "t": True, "T": True, "TRUE": True, "true": True, "True": True,
    "0": False, "f": False, "F": False, "FALSE": False, "false": False, "False": False,
}


class Unmarshaler(Protocol):
    """A message that can read itself from protobuf JSON."""

    def unmarshal_proto_json(self, state: UnmarshalState) -> None: ...


class UnmarshalError(Exception):
    """An error raised while unmarshalling, with the field path it occurred at."""

    def __init__(self, error: Exception, path: FieldPath | None = None) -> None:
        self.error = error
        self.path = path
        if path is not None:
            text = f"unmarshal error at path {quote(str(path))}: {error}"
        else:
            text = f"unmarshal error: {error}"
        super().__init__(text)
        self.__cause__ = error


@dataclass(frozen=True)
class UnmarshalerConfig:
    """Configuration of JSON unmarshalling."""

    any_type_resolver: AnyTypeResolver | None = None

    def unmarshal(self, data: bytes | str, message: Unmarshaler) -> None:
        """Read ``message`` from ``data``, raising the first error met."""
        state = UnmarshalState(data, self)
        message.unmarshal_proto_json(state)
        error = state.err()
        if error is not None:
            raise error


DEFAULT_UNMARSHALER_CONFIG = UnmarshalerConfig()


def _parse_int(text: str, bits: int, signed: bool) -> int:
    pattern = _SIGNED_INT if signed else _UNSIGNED_INT
    if not pattern.fullmatch(text):
        raise ValueError(f"parsing {quote(text)}: invalid syntax")
    value = int(text)
    low, high = _INT_BOUNDS[(bits, signed)]
    if not low <= value <= high:
        raise ValueError(f"parsing {quote(text)}: value out of range")
    return value


def _parse_float(text: str, single: bool) -> float:
    if _INFINITY.fullmatch(text):
        return -math.inf if text.startswith("-") else math.inf
    if _NAN.fullmatch(text):
        return math.nan
    try:
        if _HEX_FLOAT.fullmatch(text):
            value = float.fromhex(text)
        elif _DECIMAL_FLOAT.fullmatch(text):
            value = float(text)
        else:
            raise ValueError(f"parsing {quote(text)}: invalid syntax")
    except OverflowError:
        value = math.inf
    if single:
        value = _to_float32(value)
    if math.isinf(value):
        raise ValueError(f"parsing {quote(text)}: value out of range")
    return value


def parse_enum_string(value: str, *value_maps: Mapping[str, int]) -> int:
    """Return the enum number for a name from the first map that has it.

    Falls back to parsing ``value`` as a 32-bit integer; raises ``ValueError``
    when that fails too.
    """
    for value_map in value_maps:
        if value in value_map:
            return value_map[value]
    return _parse_int(value, 32, True)


def _parse_timestamp(text: str) -> int:
    match = _TIMESTAMP.fullmatch(text)
    if match is None:
        raise ValueError(f"parsing time {quote(text)}: cannot parse as a UTC timestamp")
    year, month, day, hour, minute, second = (int(part) for part in match.groups()[:6])
    try:
        moment = datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
    except ValueError as exc:
        raise ValueError(f"parsing time {quote(text)}: {exc}") from exc
    delta = moment - _EPOCH
    seconds = delta.days * 86400 + delta.seconds
    nanos = int((match.group(7) or "").ljust(9, "0"))
    return seconds * _NANOS_PER_SECOND + nanos


def _leading_fraction(digits: str) -> tuple[int, float]:
    fraction = 0
    scale = 1.0
    overflow = False
    for char in digits:
        if overflow:
            continue
        if fraction > ((1 << 63) - 1) // 10:
            overflow = True
            continue
        candidate = fraction * 10 + int(char)
        if candidate > _MAX_DURATION:
            overflow = True
            continue
        fraction = candidate
        scale *= 10
    return fraction, scale


def _parse_duration(text: str) -> int:
    """Parse a duration such as ``"1h2m3.5s"`` into nanoseconds."""
    invalid = ValueError(f"time: invalid duration {quote(text)}")
    rest = text
    negative = False
    if rest[:1] in ("+", "-"):
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return 0
    if not rest:
        raise invalid
    total = 0
    while rest:
        if rest[0] != "." and not "0" <= rest[0] <= "9":
            raise invalid
        match = _DURATION_PART.match(rest)
        whole, fraction_digits, unit = match.group(1), match.group(3) or "", match.group(4)
        if not whole and not fraction_digits:
            raise invalid
        value = int(whole or "0")
        if value > _MAX_DURATION:
            raise invalid
        fraction, scale = _leading_fraction(fraction_digits)
        if not unit:
            raise ValueError(f"time: missing unit in duration {quote(text)}")
        if unit not in _DURATION_UNITS:
            raise ValueError(f"time: unknown unit {quote(unit)} in duration {quote(text)}")
        multiplier = _DURATION_UNITS[unit]
        if value > _MAX_DURATION // multiplier:
            raise invalid
        value *= multiplier
        if fraction > 0:
            value += int(float(fraction) * (float(multiplier) / scale))
            if value > _MAX_DURATION:
                raise invalid
        total += value
        if total > _MAX_DURATION:
            raise invalid
        rest = rest[match.end():]
    if negative:
        return -total
    if total > _MAX_DURATION - 1:
        raise invalid
    return total


@dataclass
class _ErrorSlot:
    value: UnmarshalError | None = None


class UnmarshalState:
    """Reads JSON values and tracks the field path, field mask and first error."""

    def __init__(self, data: bytes | str, config: UnmarshalerConfig | None = None) -> None:
        self._inner = JsonIterator(data)
        self._config = config if config is not None else DEFAULT_UNMARSHALER_CONFIG
        self._slot = _ErrorSlot()
        self._path: FieldPath | None = None
        self._paths = PathList()

    def _derive(self, inner: JsonIterator, path: FieldPath | None, paths: PathList) -> UnmarshalState:
        child = copy.copy(self)
        child._inner = inner
        child._path = path
        child._paths = paths
        return child

    def _push(self, field: str) -> FieldPath:
        return FieldPath(self._path, field)

    def _failed(self) -> bool:
        return self.err() is not None

    def _guard(self, read: Callable[[], T], default: T) -> T:
        # The iterator records its own syntax errors; err() reports them.
        try:
            return read()
        except JsonSyntaxError:
            return default

    @property
    def config(self) -> UnmarshalerConfig:
        """The unmarshaller configuration."""
        return self._config

    def what_is_next(self) -> ValueType:
        """Return the type of the next JSON value."""
        return self._inner.what_is_next()

    def any_type_resolver(self) -> AnyTypeResolver:
        """Return the configured Any resolver, or one that always fails."""
        if self._config.any_type_resolver is not None:
            return self._config.any_type_resolver
        return ErrorAnyTypeResolver(NoAnyTypeResolverError())

    def sub(self, data: bytes | str) -> UnmarshalState:
        """Return a state reading ``data`` that shares config, error and path."""
        return self._derive(JsonIterator(data), self._path, PathList())

    def err(self) -> Exception | None:
        """Return the first error met, or ``None``."""
        if self._slot.value is not None:
            return self._slot.value
        return self._inner.error

    def set_error(self, error: Exception | str) -> None:
        """Record an error; later reads do nothing. Only the first error is kept."""
        if self._failed():
            return
        if isinstance(error, str):
            error = ValueError(error)
        self._slot.value = UnmarshalError(error, self._path)

    def with_field(self, field: str, mask: bool) -> UnmarshalState:
        """Return a state for the subfield ``field``, sharing the mask if ``mask``."""
        paths = self._paths if mask else PathList()
        return self._derive(self._inner, self._push(field), paths)

    def add_field(self, field: str) -> None:
        """Register ``field`` below the current path in the field mask."""
        self._paths.add(self._push(field))

    def field_mask(self) -> PathList:
        """Return the field mask of the fields read so far."""
        return self._paths

    def _read_scalar(
        self,
        kind: str,
        read_number: Callable[[], T],
        parse_text: Callable[[str], T],
        default: T,
    ) -> T:
        if self._failed():
            return default
        next_type = self._inner.what_is_next()
        if next_type is ValueType.NUMBER:
            return self._guard(read_number, default)
        if next_type is ValueType.STRING:
            text = self._guard(self._inner.read_string, "")
            if self._failed():
                return default
            try:
                return parse_text(text)
            except ValueError as exc:
                self.set_error(f"invalid value for {kind}: {exc}")
                return default
        self.set_error(f"invalid value type for {kind}: {value_type_name(next_type)}")
        return default

    def _read_wrapped(self, kind: str, read: Callable[[], T], default: T) -> T:
        if self._failed():
            return default
        if self._inner.what_is_next() is not ValueType.OBJECT:
            return read()
        key = self.read_object_field()
        if key != "value":
            self.set_error(f"first field in wrapped {kind} is not value, but {quote(key)}")
            return default
        value = read()
        field = self.read_object_field()
        if field:
            self.set_error(f"unexpected {quote(field)} field in wrapped {kind}")
            return default
        return value

    def _read_list(self, read: Callable[[], Any]) -> list[Any]:
        items: list[Any] = []

        def element() -> None:
            value = read()
            if not self._failed():
                items.append(value)

        self.read_array(element)
        return [] if self._failed() else items

    def read_float32(self) -> float:
        """Read a single-precision float, also from a string."""
        return self._read_scalar(
            "float32", self._inner.read_float32, lambda text: _parse_float(text, True), 0.0
        )

    def read_wrapped_float32(self) -> float:
        """Read a float32, also wrapped as ``{"value": ...}``."""
        return self._read_wrapped("float32", self.read_float32, 0.0)

    def read_float64(self) -> float:
        """Read a double-precision float, also from a string."""
        return self._read_scalar(
            "float64", self._inner.read_float64, lambda text: _parse_float(text, False), 0.0
        )

    def read_wrapped_float64(self) -> float:
        """Read a float64, also wrapped as ``{"value": ...}``."""
        return self._read_wrapped("float64", self.read_float64, 0.0)

    def read_float32_array(self) -> list[float]:
        """Read an array of float32 values."""
        return self._read_list(self.read_float32)

    def read_float64_array(self) -> list[float]:
        """Read an array of float64 values."""
        return self._read_list(self.read_float64)

    def read_int32(self) -> int:
        """Read a signed 32-bit integer, also from a string."""
        return self._read_scalar(
            "int32", self._inner.read_int32, lambda text: _parse_int(text, 32, True), 0
        )

    def read_wrapped_int32(self) -> int:
        """Read an int32, also wrapped as ``{"value": ...}``."""
        return self._read_wrapped("int32", self.read_int32, 0)

    def read_int64(self) -> int:
        """Read a signed 64-bit integer, also from a string."""
        return self._read_scalar(
            "int64", self._inner.read_int64, lambda text: _parse_int(text, 64, True), 0
        )

    def read_wrapped_int64(self) -> int:
        """Read an int64, also wrapped as ``{"value": ...}``."""
        return self._read_wrapped("int64", self.read_int64, 0)

    def read_int32_array(self) -> list[int]:
        """Read an array of int32 values."""
        return self._read_list(self.read_int32)

    def read_int64_array(self) -> list[int]:
        """Read an array of int64 values."""
        return self._read_list(self.read_int64)

    def read_uint32(self) -> int:
        """Read an unsigned 32-bit integer, also from a string."""
        return self._read_scalar(
            "uint32", self._inner.read_uint32, lambda text: _parse_int(text, 32, False), 0
        )

    def read_wrapped_uint32(self) -> int:
        """Read a uint32, also wrapped as ``{"value": ...}``."""
        return self._read_wrapped("uint32", self.read_uint32, 0)

    def read_uint64(self) -> int:
        """Read an unsigned 64-bit integer, also from a string."""
        return self._read_scalar(
            "uint64", self._inner.read_uint64, lambda text: _parse_int(text, 64, False), 0
        )

    def read_wrapped_uint64(self) -> int:
        """Read a uint64, also wrapped as ``{"value": ...}``."""
        return self._read_wrapped("uint64", self.read_uint64, 0)

    def read_uint32_array(self) -> list[int]:
        """Read an array of uint32 values."""
        return self._read_list(self.read_uint32)

    def read_uint64_array(self) -> list[int]:
        """Read an array of uint64 values."""
        return self._read_list(self.read_uint64)

    def read_bool(self) -> bool:
        """Read a boolean."""
        if self._failed():
            return False
        return self._guard(self._inner.read_bool, False)

    def read_wrapped_bool(self) -> bool:
        """Read a boolean, also wrapped as ``{"value": ...}``."""
        return self._read_wrapped("bool", self.read_bool, False)

    def read_bool_array(self) -> list[bool]:
        """Read an array of booleans."""
        return self._read_list(self.read_bool)

    def read_string(self) -> str:
        """Read a string."""
        if self._failed():
            return ""
        return self._guard(self._inner.read_string, "")

    def read_wrapped_string(self) -> str:
        """Read a string, also wrapped as ``{"value": ...}``."""
        return self._read_wrapped("string", self.read_string, "")

    def read_string_array(self) -> list[str]:
        """Read an array of strings."""
        return self._read_list(self.read_string)

    def read_bytes(self) -> bytes | None:
        """Read base64 bytes: standard or URL alphabet, padded or not."""
        if self._failed():
            return None
        text = self._guard(self._inner.read_string, "")
        if self._failed():
            return None
        text = text.rstrip("=").replace("_", "/").replace("-", "+")
        try:
            return base64.b64decode(text + "=" * (-len(text) % 4), validate=True)
        except (binascii.Error, ValueError) as exc:
            self.set_error(f"invalid value: {exc}")
            return None

    def read_wrapped_bytes(self) -> bytes | None:
        """Read bytes, also wrapped as ``{"value": ...}``."""
        return self._read_wrapped("bytes", self.read_bytes, None)

    def read_bytes_array(self) -> list[bytes | None]:
        """Read an array of base64 values."""
        if self._failed():
            return []
        return self._read_list(self.read_bytes)

    def read_nil(self) -> bool:
        """Consume a ``null`` if one comes next; return whether it did."""
        return self._guard(self._inner.read_nil, False)

    def read_object_field(self) -> str:
        """Read one object field name; the empty string ends the object."""
        if self._failed():
            return ""
        return self._guard(self._inner.read_object, "")

    def read_object(self, callback: Callable[[str], Any]) -> None:
        """Call ``callback(key)`` for each field; it must read the value."""
        if self._failed():
            return

        def visit(key: str) -> bool:
            if self._failed():
                return False
            callback(key)
            return True

        self._guard(lambda: self._inner.read_object_cb(visit), None)

    def _read_map(self, kind: str, parse_key: Callable[[str], Any], callback: Callable[[Any], Any]) -> None:
        def visit(key_text: str) -> None:
            try:
                key = parse_key(key_text)
            except ValueError:
                self.set_error(f"invalid map key {quote(key_text)} for {kind} map")
                return
            callback(key)

        self.read_object(visit)

    def read_bool_map(self, callback: Callable[[bool], Any]) -> None:
        """Read an object keyed by booleans, calling ``callback(key)`` per field."""

        def parse(text: str) -> bool:
            if text not in _BOOL_WORDS:
                raise ValueError(text)
            return _BOOL_WORDS[text]

        self._read_map("bool", parse, callback)

    def read_int32_map(self, callback: Callable[[int], Any]) -> None:
        """Read an object keyed by int32 values."""
        self._read_map("int32", lambda text: _parse_int(text, 32, True), callback)

    def read_uint32_map(self, callback: Callable[[int], Any]) -> None:
        """Read an object keyed by uint32 values."""
        self._read_map("uint32", lambda text: _parse_int(text, 32, False), callback)

    def read_int64_map(self, callback: Callable[[int], Any]) -> None:
        """Read an object keyed by int64 values."""
        self._read_map("int64", lambda text: _parse_int(text, 64, True), callback)

    def read_uint64_map(self, callback: Callable[[int], Any]) -> None:
        """Read an object keyed by uint64 values."""
        self._read_map("uint64", lambda text: _parse_int(text, 64, False), callback)

    def read_string_map(self, callback: Callable[[str], Any]) -> None:
        """Read an object keyed by strings."""
        self.read_object(callback)

    def read_array(self, callback: Callable[[], Any]) -> None:
        """Call ``callback()`` for each element; it must read the element."""
        if self._failed():
            return

        def visit() -> bool:
            if self._failed():
                return False
            callback()
            return True

        self._guard(lambda: self._inner.read_array_cb(visit), None)

    def read_enum(self, *value_maps: Mapping[str, int]) -> int:
        """Read an enum given as a number or as a name."""
        if self._failed():
            return 0
        next_type = self._inner.what_is_next()
        if next_type is ValueType.NUMBER:
            return self._guard(self._inner.read_int32, 0)
        if next_type is ValueType.STRING:
            text = self._guard(self._inner.read_string, "")
            if self._failed():
                return 0
            try:
                return parse_enum_string(text, *value_maps)
            except ValueError:
                self.set_error(f"unknown value for enum: {quote(text)}")
                return 0
        self.set_error(f"invalid value type for enum: {value_type_name(next_type)}")
        return 0

    def read_time(self) -> int | None:
        """Read a timestamp as nanoseconds since the Unix epoch.

        Accepts a UTC timestamp string or a number of milliseconds; ``null``
        reads as ``None``.
        """
        if self._failed() or self.read_nil():
            return None
        next_type = self.what_is_next()
        if next_type is ValueType.STRING:
            text = self._guard(self._inner.read_string, "")
            if self._failed():
                return None
            try:
                return _parse_timestamp(text)
            except ValueError as exc:
                self.set_error(f"invalid time: {exc}")
                return None
        if next_type is ValueType.NUMBER:
            millis = self._guard(self._inner.read_int64, 0)
            if self._failed():
                return None
            return millis * 1_000_000
        self.set_error(f"invalid value type for duration: {value_type_name(next_type)}")
        return None

    def read_duration(self) -> int | None:
        """Read a duration string such as ``"3.5s"`` as nanoseconds; ``null`` is ``None``."""
        if self._failed() or self.read_nil():
            return None
        text = self._guard(self._inner.read_string, "")
        if self._failed():
            return None
        try:
            return _parse_duration(text)
        except ValueError as exc:
            self.set_error(f"invalid duration: {exc}")
            return 0

    def read_field_mask(self) -> PathList | None:
        """Read a field mask as a comma-separated string or a ``paths`` object."""
        if self._failed():
            return None
        next_type = self._inner.what_is_next()
        if next_type is ValueType.STRING:
            mask = PathList(self.read_string().split(","))
            return None if self._failed() else mask
        if next_type is ValueType.OBJECT:
            field = self.read_object_field()
            if field != "paths":
                self.set_error(f"unexpected {quote(field)} field in FieldMask object")
                return None
            mask = PathList(self.read_string_array())
            if self._failed():
                return None
            field = self.read_object_field()
            if field:
                self.set_error(f"unexpected {quote(field)} field in FieldMask object")
                return None
            return mask
        self.set_error(f"invalid value type for field mask: {value_type_name(next_type)}")
        return None

    def skip(self) -> None:
        """Skip the next value."""
        self._guard(self._inner.skip, None)

    def skip_and_return_bytes(self) -> bytes:
        """Skip the next value and return its raw JSON."""
        return self._guard(self._inner.skip_and_return_bytes, b"")