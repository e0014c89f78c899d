import json
import struct

import pytest

from protolite.iterator import (
    JsonIterator,
    JsonSyntaxError,
    ValueType,
    value_type_name,
)


@pytest.mark.parametrize(
    ("value_type", "name"),
    [
        (ValueType.STRING, "String"),
        (ValueType.NUMBER, "Number"),
        (ValueType.NIL, "Null"),
        (ValueType.BOOL, "Bool"),
        (ValueType.ARRAY, "Array"),
        (ValueType.OBJECT, "Object"),
        (ValueType.INVALID, "unknown"),
    ],
)
def test_value_type_name(value_type, name):
    assert value_type_name(value_type) == name


@pytest.mark.parametrize(
    ("doc", "expected"),
    [
        ('"x"', ValueType.STRING),
        ("-1", ValueType.NUMBER),
        ("7", ValueType.NUMBER),
        ("null", ValueType.NIL),
        ("true", ValueType.BOOL),
        ("false", ValueType.BOOL),
        ("[]", ValueType.ARRAY),
        ("{}", ValueType.OBJECT),
        ("  \n{", ValueType.OBJECT),
        ("", ValueType.INVALID),
        ("?", ValueType.INVALID),
    ],
)
def test_what_is_next(doc, expected):
    assert JsonIterator(doc).what_is_next() is expected


def test_what_is_next_does_not_consume():
    it = JsonIterator('"foo"')
    assert it.what_is_next() is ValueType.STRING
    assert it.what_is_next() is ValueType.STRING
    assert it.read_string() == "foo"


def test_read_nil():
    assert JsonIterator("null").read_nil() is True
    it = JsonIterator("1")
    assert it.read_nil() is False
    assert it.read_int32() == 1


def test_read_bool():
    assert JsonIterator("true").read_bool() is True
    assert JsonIterator("false").read_bool() is False
    with pytest.raises(JsonSyntaxError):
        JsonIterator("1").read_bool()


@pytest.mark.parametrize(
    "doc",
    [
        '"foo"',
        '"a\\"b\\\\c\\/d"',
        '"\\b\\f\\n\\r\\t"',
        '"\\u00e9t\\u00e9"',
        '"\\ud83d\\ude00"',
        '""',
    ],
)
def test_read_string_matches_json_decoder(doc):
    assert JsonIterator(doc).read_string() == json.loads(doc)


def test_read_string_from_utf8_bytes():
    text = "caf\u00e9"
    it = JsonIterator(json.dumps(text, ensure_ascii=False).encode("utf-8"))
    assert it.read_string() == text


def test_read_string_null_is_empty():
    assert JsonIterator("null").read_string() == ""


def test_unterminated_string_sets_error():
    it = JsonIterator('"abc')
    with pytest.raises(JsonSyntaxError) as info:
        it.read_string()
    assert it.error is info.value


def test_read_string_rejects_number():
    with pytest.raises(JsonSyntaxError):
        JsonIterator("12").read_string()


def test_read_integers():
    assert JsonIterator("-12").read_int32() == -12
    assert JsonIterator("-12").read_int64() == -12
    assert JsonIterator("12").read_uint32() == 12
    assert JsonIterator("12").read_uint64() == 12


def test_read_integer_limits():
    assert JsonIterator("18446744073709551615").read_uint64() == (1 << 64) - 1
    assert JsonIterator("-9223372036854775808").read_int64() == -(1 << 63)
    with pytest.raises(JsonSyntaxError):
        JsonIterator("2147483648").read_int32()
    with pytest.raises(JsonSyntaxError):
        JsonIterator("-1").read_uint32()
    with pytest.raises(JsonSyntaxError):
        JsonIterator("18446744073709551616").read_uint64()


def test_read_integer_rejects_fraction():
    with pytest.raises(JsonSyntaxError):
        JsonIterator("1.5").read_int64()
    with pytest.raises(JsonSyntaxError):
        JsonIterator("1e3").read_int32()


def test_read_floats():
    assert JsonIterator("-12.34").read_float64() == -12.34
    single = JsonIterator("-12.34").read_float32()
    assert single == pytest.approx(-12.34, rel=1e-6)
    assert struct.unpack("<f", struct.pack("<f", single))[0] == single


def test_read_float_rejects_string():
    with pytest.raises(JsonSyntaxError):
        JsonIterator('"1.5"').read_float64()


def test_read_object_field_by_field():
    it = JsonIterator('{"value": 5, "other": "x"}')
    assert it.read_object() == "value"
    assert it.read_int32() == 5
    assert it.read_object() == "other"
    assert it.read_string() == "x"
    assert it.read_object() == ""


def test_read_object_empty_and_null():
    assert JsonIterator("{}").read_object() == ""
    assert JsonIterator("null").read_object() == ""


def test_read_object_rejects_array():
    with pytest.raises(JsonSyntaxError):
        JsonIterator("[1]").read_object()


def test_read_object_cb_collects_fields():
    it = JsonIterator('{"a": 1, "b": 2}')
    seen = []

    def on_field(key):
        seen.append((key, it.read_int32()))
        return True

    assert it.read_object_cb(on_field) is True
    assert seen == [("a", 1), ("b", 2)]


def test_read_object_cb_stops_early():
    it = JsonIterator('{"a": 1, "b": 2}')
    seen = []

    def on_field(key):
        seen.append(key)
        it.read_int32()
        return False

    assert it.read_object_cb(on_field) is False
    assert seen == ["a"]


def test_read_object_cb_empty_and_null():
    calls = []
    assert JsonIterator("{}").read_object_cb(calls.append) is True
    assert JsonIterator("null").read_object_cb(calls.append) is True
    assert calls == []


def test_read_array_cb_collects_elements():
    it = JsonIterator("[1, 2, 3]")
    values = []

    def on_element():
        values.append(it.read_int32())
        return True

    assert it.read_array_cb(on_element) is True
    assert values == [1, 2, 3]


def test_read_array_cb_null_and_empty():
    calls = []

    def on_element():
        calls.append(1)
        return True

    assert JsonIterator("null").read_array_cb(on_element) is True
    assert JsonIterator("[ ]").read_array_cb(on_element) is True
    assert calls == []


def test_read_array_cb_missing_comma():
    it = JsonIterator("[1 2]")
    with pytest.raises(JsonSyntaxError):
        it.read_array_cb(lambda: bool(it.read_int32() or True))


def test_skip_nested_value():
    it = JsonIterator('{"a": [1, {"b": null}, true], "c": "x"} 5')
    it.skip()
    assert it.read_int32() == 5


def test_skip_and_return_bytes():
    raw = '{"a": [1, 2]}'
    it = JsonIterator(" " + raw + " , 3")
    captured = it.skip_and_return_bytes()
    assert captured == raw.encode("utf-8")
    assert json.loads(captured) == json.loads(raw)
    sub = JsonIterator(captured)
    assert sub.read_object() == "a"


def test_skip_malformed():
    with pytest.raises(JsonSyntaxError):
        JsonIterator("[1,").skip()
    with pytest.raises(JsonSyntaxError):
        JsonIterator("}").skip()


def test_error_keeps_first_failure():
    it = JsonIterator("x y")
    with pytest.raises(JsonSyntaxError) as first:
        it.read_bool()
    with pytest.raises(JsonSyntaxError):
        it.read_int32()
    assert it.error is first.value
    assert first.value.offset == 0