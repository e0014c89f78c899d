from dataclasses import dataclass

import pytest

from protolite.wire import (
    DecodeError,
    IntOverflowError,
    InvalidLengthError,
    Message,
    UnexpectedEndOfGroupError,
    UnexpectedEOFError,
    append_varint,
    clone_slice,
    compare_comparable,
    compare_equal,
    consume_varint,
    encode_varint,
    is_equal,
    is_equal_slice,
    size_of_varint,
    size_of_zigzag,
    skip,
)


@dataclass
class Case:
    val: int

    def clone(self):
        return Case(self.val)


def test_compare_equal():
    t1, t2 = Case(1), Case(2)
    cmp = compare_equal()
    assert cmp(t1, t2) is False
    assert cmp(t1, t1) is True
    assert cmp(None, None) is True
    assert cmp(t1, None) is False


@pytest.mark.parametrize(
    "s1, s2, expect",
    [
        ([Case(1), Case(2)], [Case(1), Case(2)], True),
        ([Case(1), Case(2)], [Case(1), Case(3)], False),
        ([Case(1), Case(2)], [Case(1), Case(2), Case(3)], False),
        ([Case(1), None], [Case(1), None], True),
        ([Case(1), None], [Case(1), Case(2)], False),
        ([], [], True),
        (None, None, True),
    ],
)
def test_is_equal_slice(s1, s2, expect):
    assert is_equal_slice(s1, s2) is expect


def test_is_equal_none_handling():
    assert is_equal(None, Case(1)) is False
    assert is_equal(Case(4), Case(4)) is True


def test_compare_comparable():
    cmp = compare_comparable()
    assert cmp(3, 3) is True
    assert cmp("a", "b") is False


def test_clone_slice_copies_and_keeps_none():
    items = [Case(1), None, Case(2)]
    cloned = clone_slice(items)
    assert cloned == items
    assert cloned[0] is not items[0]
    assert cloned[1] is None


def test_message_is_abstract():
    with pytest.raises(TypeError):
        Message()


def test_encode_varint_known_value():
    assert encode_varint(300) == b"\xac\x02"
    assert encode_varint(0) == b"\x00"


@pytest.mark.parametrize("value", [0, 1, 127, 128, 300, 2**35, 2**63 - 1, 2**63, 2**64 - 1])
def test_varint_round_trip(value):
    encoded = encode_varint(value)
    assert consume_varint(encoded) == (value, len(encoded))
    assert size_of_varint(value) == len(encoded)


def test_append_varint_extends_buffer():
    buf = bytearray(b"x")
    result = append_varint(buf, 300)
    assert result is buf
    assert bytes(buf) == b"x\xac\x02"


def test_encode_varint_rejects_out_of_range():
    with pytest.raises(ValueError):
        encode_varint(-1)
    with pytest.raises(ValueError):
        encode_varint(2**64)


def test_max_varint_is_ten_bytes():
    assert len(encode_varint(2**64 - 1)) == 10
    assert size_of_varint(2**64 - 1) == 10


def test_consume_varint_errors():
    with pytest.raises(UnexpectedEOFError):
        consume_varint(b"")
    with pytest.raises(UnexpectedEOFError):
        consume_varint(b"\x80\x80")
    with pytest.raises(IntOverflowError):
        consume_varint(b"\xff" * 9 + b"\x02")


def test_consume_varint_ignores_trailing_bytes():
    assert consume_varint(b"\xac\x02\x05") == (300, 2)


def test_size_of_zigzag():
    assert size_of_zigzag(0) == 1
    assert size_of_zigzag(-1) == 1
    assert size_of_zigzag(-64) == 1
    assert size_of_zigzag(-65) == 2
    assert size_of_zigzag(64) == 2
    assert size_of_zigzag(-(2**63)) == 10


def test_skip_varint_record():
    assert skip(b"\x08\x96\x01\x10\x01") == 3


def test_skip_length_delimited():
    assert skip(b"\x12\x02ab\x08\x01") == 4


def test_skip_fixed():
    assert skip(b"\x09" + b"\x00" * 8) == 9
    assert skip(b"\x0d" + b"\x00" * 4) == 5


def test_skip_group():
    assert skip(b"\x0b\x08\x01\x0c\x08\x02") == 4


def test_skip_errors():
    with pytest.raises(UnexpectedEOFError):
        skip(b"")
    with pytest.raises(UnexpectedEndOfGroupError):
        skip(b"\x0c")
    with pytest.raises(DecodeError, match="illegal wireType 6"):
        skip(b"\x0e")
    with pytest.raises(UnexpectedEOFError):
        skip(b"\x0b\x08\x01")
    with pytest.raises(InvalidLengthError):
        skip(b"\x12" + b"\xff" * 9 + b"\x01")
    with pytest.raises(IntOverflowError):
        skip(b"\x08" + b"\xff" * 10)