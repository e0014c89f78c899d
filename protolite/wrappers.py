"""Wrapper messages around single scalar values, with JSON support."""

from __future__ import annotations

import base64
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from protolite.marshal import DEFAULT_MARSHALER_CONFIG, MarshalState
from protolite.stream import _to_float32, quote
from protolite.unmarshal import DEFAULT_UNMARSHALER_CONFIG, UnmarshalState

_INT32_MIN, _INT32_MAX = -(1 << 31), (1 << 31) - 1
_UINT32_MAX = (1 << 32) - 1


def _shortest_text(value: float, single: bool) -> str:
    if not single:
        return repr(value)
    for precision in range(1, 10):
        text = f"{value:.{precision}g}"
        if _to_float32(float(text)) == value:
            return text
    return repr(value)


def _format_g(value: float, single: bool) -> str:
    """Format a float in the shortest form, switching to exponent notation like %g."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    sign = "-" if math.copysign(1.0, value) < 0 else ""
    if value == 0:
        return sign + "0"
    _, digit_tuple, exponent = Decimal(_shortest_text(abs(value), single)).normalize().as_tuple()
    digits = "".join(map(str, digit_tuple))
    point = len(digits) + exponent
    exp = point - 1
    if exp < -4 or exp >= 6:
        mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
        exp_sign = "-" if exp < 0 else "+"
        return f"{sign}{mantissa}e{exp_sign}{abs(exp):02d}"
    if point <= 0:
        return f"{sign}0.{'0' * -point}{digits}"
    if point >= len(digits):
        return sign + digits + "0" * (point - len(digits))
    return f"{sign}{digits[:point]}.{digits[point:]}"


class WrapperValue:
    """Base of the wrapper messages: one ``value`` field with JSON support."""

    value: Any

    def _read(self, state: UnmarshalState) -> Any:
        raise NotImplementedError

    def _write(self, state: MarshalState) -> None:
        raise NotImplementedError

    def _assign(self, state: UnmarshalState) -> None:
        self.value = self._read(state)

    def marshal_json(self) -> bytes:
        """Marshal the wrapper to JSON with the default configuration."""
        return DEFAULT_MARSHALER_CONFIG.marshal(self)

    def unmarshal_json(self, data: bytes | str) -> None:
        """Read the wrapper from JSON with the default configuration."""
        DEFAULT_UNMARSHALER_CONFIG.unmarshal(data, self)

    def marshal_proto_json(self, state: MarshalState) -> None:
        """Write the wrapped value."""
        self._write(state)

    def unmarshal_proto_json(self, state: UnmarshalState) -> None:
        """Read the wrapped value; ``null`` leaves the wrapper unchanged."""
        if state.read_nil():
            return
        self._assign(state)

    def marshal_proto_text(self) -> str:
        """Format the wrapper as proto text."""
        return str(self)


@dataclass
class DoubleValue(WrapperValue):
    """A wrapped double."""

    value: float = 0.0

    def _read(self, state: UnmarshalState) -> float:
        return state.read_float64()

    def _write(self, state: MarshalState) -> None:
        state.write_float64(self.value)

    def __str__(self) -> str:
        return _format_g(float(self.value), single=False)


@dataclass
class FloatValue(WrapperValue):
    """A wrapped single-precision float."""

    value: float = 0.0

    def __post_init__(self) -> None:
        self.value = _to_float32(float(self.value))

    def _read(self, state: UnmarshalState) -> float:
        return _to_float32(state.read_float64())

    def _write(self, state: MarshalState) -> None:
        state.write_float64(self.value)

    def __str__(self) -> str:
        return _format_g(self.value, single=True)


@dataclass
class Int64Value(WrapperValue):
    """A wrapped signed 64-bit integer."""

    value: int = 0

    def _read(self, state: UnmarshalState) -> int:
        return state.read_int64()

    def _write(self, state: MarshalState) -> None:
        state.write_int64(self.value)

    def __str__(self) -> str:
        return str(int(self.value))


@dataclass
class UInt64Value(WrapperValue):
    """A wrapped unsigned 64-bit integer."""

    value: int = 0

    def _read(self, state: UnmarshalState) -> int:
        return state.read_uint64()

    def _write(self, state: MarshalState) -> None:
        state.write_uint64(self.value)

    def __str__(self) -> str:
        return str(int(self.value))


@dataclass
class Int32Value(WrapperValue):
    """A wrapped signed 32-bit integer."""

    value: int = 0

    def _read(self, state: UnmarshalState) -> int:
        return state.read_int64()

    def _assign(self, state: UnmarshalState) -> None:
        number = self._read(state)
        if not _INT32_MIN <= number <= _INT32_MAX:
            state.set_error(f"value out of range for int32: {number}")
            return
        self.value = number

    def _write(self, state: MarshalState) -> None:
        state.write_int64(self.value)

    def __str__(self) -> str:
        return str(int(self.value))


@dataclass
class UInt32Value(WrapperValue):
    """A wrapped unsigned 32-bit integer."""

    value: int = 0

    def _read(self, state: UnmarshalState) -> int:
        return state.read_uint64()

    def _assign(self, state: UnmarshalState) -> None:
        number = self._read(state)
        if number > _UINT32_MAX:
            state.set_error(f"value out of range for uint32: {number}")
            return
        self.value = number

    def _write(self, state: MarshalState) -> None:
        state.write_uint64(self.value)

    def __str__(self) -> str:
        return str(int(self.value))


@dataclass
class BoolValue(WrapperValue):
    """A wrapped boolean."""

    value: bool = False

    def _read(self, state: UnmarshalState) -> bool:
        return state.read_bool()

    def _write(self, state: MarshalState) -> None:
        state.write_bool(self.value)

    def __str__(self) -> str:
        return "true" if self.value else "false"


@dataclass
class StringValue(WrapperValue):
    """A wrapped string."""

    value: str = ""

    def _read(self, state: UnmarshalState) -> str:
        return state.read_string()

    def _write(self, state: MarshalState) -> None:
        state.write_string(self.value)

    def __str__(self) -> str:
        return self.value

    def marshal_proto_text(self) -> str:
        return quote(str(self))


@dataclass
class BytesValue(WrapperValue):
    """A wrapped byte string."""

    value: bytes | None = None

    def _read(self, state: UnmarshalState) -> bytes | None:
        return state.read_bytes()

    def _write(self, state: MarshalState) -> None:
        state.write_bytes(self.value)

    def __str__(self) -> str:
        return base64.b64encode(bytes(self.value or b"")).decode("ascii")

    def marshal_proto_text(self) -> str:
        return quote(str(self))