"""State machine for writing protobuf JSON."""

from __future__ import annotations

import base64
import copy
import io
import math
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from protolite.fieldmask import FieldPath, PathList
from protolite.resolver import AnyTypeResolver, ErrorAnyTypeResolver, NoAnyTypeResolverError
from protolite.stream import JsonStream, _to_float32, quote

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_NANOS_PER_SECOND = 1_000_000_000


class Marshaler(Protocol):
    """A message that can write itself as protobuf JSON."""

    def marshal_proto_json(self, state: MarshalState) -> None: ...


class FieldMask(Protocol):
    """Anything that lists field paths."""

    def get_paths(self) -> list[str]: ...


class MarshalError(Exception):
    """An error raised while marshalling, with the field path it occurred at."""

    def __init__(self, error: Exception, path: FieldPath | None = None) -> None:
        self.error = error
        self.path = path
        if path is not None:
            text = f"marshal error at path {quote(str(path))}: {error}"
        else:
            text = f"marshal error: {error}"
        super().__init__(text)
        self.__cause__ = error


@dataclass(frozen=True)
class MarshalerConfig:
    """Configuration of JSON marshalling."""

    enums_as_ints: bool = True
    any_type_resolver: AnyTypeResolver | None = None

    def marshal(self, message: Marshaler) -> bytes:
        """Marshal ``message`` with this configuration."""
        return marshal(self, message)


DEFAULT_MARSHALER_CONFIG = MarshalerConfig()


def marshal(config: MarshalerConfig, message: Marshaler) -> bytes:
    """Marshal a message to JSON bytes, raising the first error met."""
    buf = io.BytesIO()
    state = MarshalState(config, JsonStream(buf))
    message.marshal_proto_json(state)
    error = state.err()
    if error is not None:
        raise error
    return buf.getvalue()


def marshal_slice(config: MarshalerConfig, messages: Iterable[Marshaler]) -> bytes:
    """Marshal messages into a JSON array."""
    buf = io.BytesIO()
    state = MarshalState(config, JsonStream(buf))
    state.write_array_start()
    for index, message in enumerate(messages):
        if index:
            state.write_more()
        message.marshal_proto_json(state)
    state.write_array_end()
    error = state.err()
    if error is not None:
        raise error
    return buf.getvalue()


def get_enum_string(value: int, *value_maps: Mapping[int, str]) -> str:
    """Return the enum name from the first map that knows ``value``, else its number."""
    for value_map in value_maps:
        if value in value_map:
            return value_map[value]
    return str(int(value))


def _trim_fraction(text: str) -> str:
    # Fractions are written with 3, 6 or 9 digits.
    return text.removesuffix("000").removesuffix("000").removesuffix(".000")


def _format_timestamp(value: datetime | int) -> str:
    if isinstance(value, datetime):
        moment = value.astimezone(timezone.utc) if value.tzinfo else value.replace(tzinfo=timezone.utc)
        nanos = moment.microsecond * 1000
    elif isinstance(value, int):
        seconds, nanos = divmod(value, _NANOS_PER_SECOND)
        moment = _EPOCH + timedelta(seconds=seconds)
    else:
        raise TypeError(f"cannot write {type(value).__name__} as a timestamp")
    text = (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}.{nanos:09d}"
    )
    return _trim_fraction(text) + "Z"


def _format_duration(value: timedelta | int) -> str:
    if isinstance(value, timedelta):
        total = (value.days * 86400 + value.seconds) * _NANOS_PER_SECOND + value.microseconds * 1000
    elif isinstance(value, int):
        total = value
    else:
        raise TypeError(f"cannot write {type(value).__name__} as a duration")
    sign = "-" if total < 0 else ""
    seconds, nanos = divmod(abs(total), _NANOS_PER_SECOND)
    return _trim_fraction(f"{sign}{seconds}.{nanos:09d}") + "s"


@dataclass
class _ErrorSlot:
    value: MarshalError | None = None


class MarshalState:
    """Writes JSON values and tracks the field path and the first error."""

    def __init__(self, config: MarshalerConfig, stream: JsonStream) -> None:
        self._inner = stream
        self._config = config
        self._slot = _ErrorSlot()
        self._path: FieldPath | None = None
        self._paths = PathList()

    def _derive(self, stream: JsonStream, path: FieldPath | None, paths: PathList) -> MarshalState:
        child = copy.copy(self)
        child._inner = stream
        child._path = path
        child._paths = paths
        return child

    def _push(self, field: str) -> FieldPath:
        return FieldPath(self._path, field)

    def _failed(self) -> bool:
        return self.err() is not None

    @property
    def config(self) -> MarshalerConfig:
        """The marshaller configuration."""
        return self._config

    def any_type_resolver(self) -> AnyTypeResolver:
        """Return the configured Any resolver, or one that always fails."""
        if self._config.any_type_resolver is not None:
            return self._config.any_type_resolver
        return ErrorAnyTypeResolver(NoAnyTypeResolverError())

    def sub(self, stream: JsonStream) -> MarshalState:
        """Return a state writing to ``stream`` that shares config, error and path."""
        return self._derive(stream, self._path, PathList())

    def err(self) -> Exception | None:
        """Return the first error met, or ``None``."""
        if self._slot.value is not None:
            return self._slot.value
        return self._inner.error

    def set_error(self, error: Exception | str) -> None:
        """Record an error; later writes do nothing. Only the first error is kept."""
        if self._failed():
            return
        if isinstance(error, str):
            error = ValueError(error)
        self._slot.value = MarshalError(error, self._path)

    def with_field_mask(self, *paths: str) -> MarshalState:
        """Return a state that uses the given field mask."""
        return self._derive(self._inner, self._path, PathList(paths))

    def with_field(self, field: str) -> MarshalState:
        """Return a state for the subfield ``field``."""
        return self._derive(self._inner, self._push(field), self._paths)

    def has_field(self, field: str) -> bool:
        """Return whether the field mask contains ``field`` below the current path."""
        return self._paths.contains(self._push(field))

    def write(self, data: bytes) -> int:
        """Write raw bytes."""
        if self._failed():
            return 0
        return self._inner.write(data)

    def _write_array(self, values: Iterable[Any], write_item: Callable[[Any], None]) -> None:
        if self._failed():
            return
        self.write_array_start()
        for index, value in enumerate(values):
            if index:
                self.write_more()
            write_item(value)
        self.write_array_end()

    def _write_special_float(self, value: float) -> bool:
        if math.isnan(value):
            self._inner.write_string("NaN")
        elif math.isinf(value):
            self._inner.write_string("Infinity" if value > 0 else "-Infinity")
        else:
            return False
        return True

    def write_float32(self, value: float) -> None:
        """Write a single-precision float; NaN and infinities are strings."""
        if self._failed():
            return
        single = _to_float32(float(value))
        if not self._write_special_float(single):
            self._inner.write_float32(single)

    def write_float64(self, value: float) -> None:
        """Write a double-precision float; NaN and infinities are strings."""
        if self._failed():
            return
        value = float(value)
        if not self._write_special_float(value):
            self._inner.write_float64(value)

    def write_float32_array(self, values: Iterable[float]) -> None:
        """Write an array of single-precision floats."""
        self._write_array(values, self.write_float32)

    def write_float64_array(self, values: Iterable[float]) -> None:
        """Write an array of double-precision floats."""
        self._write_array(values, self.write_float64)

    def write_int32(self, value: int) -> None:
        """Write a 32-bit integer as a number."""
        if self._failed():
            return
        self._inner.write_int32(value)

    def write_int64(self, value: int) -> None:
        """Write a 64-bit integer as a string."""
        if self._failed():
            return
        self._inner.write_string(str(int(value)))

    def write_int32_array(self, values: Iterable[int]) -> None:
        """Write an array of 32-bit integers."""
        self._write_array(values, self.write_int32)

    def write_int64_array(self, values: Iterable[int]) -> None:
        """Write an array of 64-bit integers."""
        self._write_array(values, self.write_int64)

    def write_uint32(self, value: int) -> None:
        """Write an unsigned 32-bit integer as a number."""
        if self._failed():
            return
        self._inner.write_uint32(value)

    def write_uint64(self, value: int) -> None:
        """Write an unsigned 64-bit integer as a string."""
        if self._failed():
            return
        self._inner.write_string(str(int(value)))

    def write_uint32_array(self, values: Iterable[int]) -> None:
        """Write an array of unsigned 32-bit integers."""
        self._write_array(values, self.write_uint32)

    def write_uint64_array(self, values: Iterable[int]) -> None:
        """Write an array of unsigned 64-bit integers."""
        self._write_array(values, self.write_uint64)

    def write_bool(self, value: bool) -> None:
        """Write a boolean."""
        if self._failed():
            return
        self._inner.write_bool(value)

    def write_bool_array(self, values: Iterable[bool]) -> None:
        """Write an array of booleans."""
        self._write_array(values, self.write_bool)

    def write_string(self, value: str) -> None:
        """Write a string."""
        if self._failed():
            return
        self._inner.write_string(value)

    def write_string_array(self, values: Iterable[str]) -> None:
        """Write an array of strings."""
        self._write_array(values, self.write_string)

    def write_bytes(self, value: bytes | None) -> None:
        """Write bytes as standard base64, or ``null`` for ``None``."""
        if self._failed():
            return
        if value is None:
            self.write_nil()
            return
        self.write_string(base64.b64encode(bytes(value)).decode("ascii"))

    def write_bytes_array(self, values: Iterable[bytes | None]) -> None:
        """Write an array of base64 strings."""
        self._write_array(values, self.write_bytes)

    def write_nil(self) -> None:
        """Write ``null``."""
        if self._failed():
            return
        self._inner.write_nil()

    def write_object_start(self) -> None:
        """Write the opening brace of an object."""
        if self._failed():
            return
        self._inner.write_object_start()

    def write_object_field(self, field: str) -> None:
        """Write a field name and colon."""
        if self._failed():
            return
        self._inner.write_object_field(field)

    def write_object_bool_field(self, field: bool) -> None:
        """Write a boolean map key and colon."""
        if self._failed():
            return
        self._inner.write_object_field("true" if field else "false")

    def write_object_int_field(self, field: int) -> None:
        """Write an integer map key and colon."""
        if self._failed():
            return
        self._inner.write_object_field(str(int(field)))

    def write_object_end(self) -> None:
        """Write the closing brace of an object."""
        if self._failed():
            return
        self._inner.write_object_end()

    def write_array_start(self) -> None:
        """Write the opening bracket of an array."""
        if self._failed():
            return
        self._inner.write_array_start()

    def write_array_end(self) -> None:
        """Write the closing bracket of an array."""
        if self._failed():
            return
        self._inner.write_array_end()

    def write_more(self) -> None:
        """Write a comma."""
        if self._failed():
            return
        self._inner.write_more()

    def write_more_if(self, started: bool) -> bool:
        """Write a comma if ``started`` is true; return the new ``started`` flag."""
        if self._failed():
            return started
        if started:
            self.write_more()
        return True

    def write_enum(self, value: int, *value_maps: Mapping[int, str]) -> None:
        """Write an enum as a number or, if configured, as its name."""
        if self._failed():
            return
        if self._config.enums_as_ints:
            self.write_enum_number(value)
        else:
            self.write_enum_string(value, *value_maps)

    def write_enum_string(self, value: int, *value_maps: Mapping[int, str]) -> None:
        """Write an enum as its name, falling back to its number as a string."""
        if self._failed():
            return
        self.write_string(get_enum_string(value, *value_maps))

    def write_enum_number(self, value: int) -> None:
        """Write an enum as a number."""
        if self._failed():
            return
        self.write_int32(value)

    def write_time(self, value: datetime | int) -> None:
        """Write a timestamp: a datetime or nanoseconds since the Unix epoch."""
        if self._failed():
            return
        self._inner.write_string(_format_timestamp(value))

    def write_duration(self, value: timedelta | int) -> None:
        """Write a duration: a timedelta or a number of nanoseconds."""
        if self._failed():
            return
        self._inner.write_string(_format_duration(value))

    def write_field_mask(self, mask: FieldMask) -> None:
        """Write a field mask as a comma-separated string."""
        if self._failed():
            return
        self._inner.write_string(",".join(mask.get_paths()))

    def write_legacy_field_mask(self, mask: FieldMask) -> None:
        """Write a field mask as an object with a ``paths`` array."""
        if self._failed():
            return
        self._inner.write_object_start()
        self._inner.write_object_field("paths")
        self._inner.write_array_start()
        for index, path in enumerate(mask.get_paths()):
            if index:
                self._inner.write_more()
            self._inner.write_string(path)
        self._inner.write_array_end()
        self._inner.write_object_end()