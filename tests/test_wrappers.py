import math

import pytest

from protolite.unmarshal import UnmarshalError
from protolite.wrappers import (
    BoolValue,
    BytesValue,
    DoubleValue,
    FloatValue,
    Int32Value,
    Int64Value,
    StringValue,
    UInt32Value,
    UInt64Value,
)


def test_int64_marshals_as_string():
    assert Int64Value(-12).marshal_json() == b'"-12"'


def test_int64_unmarshal_from_number_and_string():
    for data in (b"-12", b'"-12"'):
        wrapper = Int64Value()
        wrapper.unmarshal_json(data)
        assert wrapper.value == -12


def test_uint64_round_trip():
    wrapper = UInt64Value((1 << 64) - 1)
    restored = UInt64Value()
    restored.unmarshal_json(wrapper.marshal_json())
    assert restored == wrapper


def test_int32_round_trip():
    restored = Int32Value()
    restored.unmarshal_json(Int32Value(-12).marshal_json())
    assert restored.value == -12


def test_int32_out_of_range():
    wrapper = Int32Value(5)
    with pytest.raises(UnmarshalError, match="value out of range for int32"):
        wrapper.unmarshal_json(b"2147483648")
    assert wrapper.value == 5


def test_uint32_out_of_range():
    with pytest.raises(UnmarshalError, match="value out of range for uint32"):
        UInt32Value().unmarshal_json(b"4294967296")


def test_uint32_reads_max():
    wrapper = UInt32Value()
    wrapper.unmarshal_json(b"4294967295")
    assert wrapper.value == (1 << 32) - 1


def test_bool_round_trip():
    for flag in (True, False):
        restored = BoolValue(not flag)
        restored.unmarshal_json(BoolValue(flag).marshal_json())
        assert restored.value is flag


def test_string_round_trip():
    restored = StringValue()
    restored.unmarshal_json(StringValue("foo").marshal_json())
    assert restored.value == "foo"
    assert StringValue("foo").marshal_json() == b'"foo"'


def test_bytes_json():
    assert BytesValue(b"foob").marshal_json() == b'"Zm9vYg=="'
    wrapper = BytesValue()
    wrapper.unmarshal_json(b'"Zm9vYg=="')
    assert wrapper.value == b"foob"


def test_bytes_none_marshals_null():
    assert BytesValue(None).marshal_json() == b"null"


def test_double_special_values():
    assert DoubleValue(math.nan).marshal_json() == b'"NaN"'
    assert DoubleValue(-math.inf).marshal_json() == b'"-Infinity"'


def test_double_round_trip():
    restored = DoubleValue()
    restored.unmarshal_json(DoubleValue(-12.34).marshal_json())
    assert restored.value == -12.34


def test_float_round_trip_keeps_single_precision():
    original = FloatValue(-12.34)
    restored = FloatValue()
    restored.unmarshal_json(original.marshal_json())
    assert restored.value == original.value


def test_null_leaves_value_unchanged():
    wrapper = Int64Value(7)
    wrapper.unmarshal_json(b"null")
    assert wrapper.value == 7


def test_wrong_type_raises():
    with pytest.raises(UnmarshalError):
        DoubleValue().unmarshal_json(b"[1]")


def test_integer_text():
    assert str(Int64Value(-12)) == "-12"
    assert UInt64Value(12).marshal_proto_text() == "12"


def test_bool_text():
    assert BoolValue(True).marshal_proto_text() == "true"


def test_double_text():
    assert str(DoubleValue(0.5)) == "0.5"
    assert str(DoubleValue(1234567.0)) == "1.234567e+06"
    assert str(DoubleValue(1e-05)) == "1e-05"


def test_float_text_is_shortest():
    assert str(FloatValue(0.1)) == "0.1"


def test_string_text_is_quoted():
    assert StringValue('a"b').marshal_proto_text() == '"a\\"b"'
    assert str(StringValue('a"b')) == 'a"b'


def test_bytes_text():
    assert str(BytesValue(b"foob")) == "Zm9vYg=="
    assert BytesValue(b"foob").marshal_proto_text() == '"Zm9vYg=="'