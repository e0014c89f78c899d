from dataclasses import dataclass

import pytest

from protolite.any_message import (
    AnyMessage,
    MessageNotFoundError,
    marshal_from,
    new_any,
    unmarshal_new,
    unmarshal_to,
)
from protolite.marshal import MarshalError, MarshalerConfig
from protolite.resolver import ErrorAnyTypeResolver, FuncAnyTypeResolver, NoAnyTypeResolverError
from protolite.unmarshal import UnmarshalError, UnmarshalerConfig

NOTE_URL = "type.example.com/Note"
WORD_URL = "type.example.com/Word"


@dataclass
class Note:
    text: str = ""

    def size(self):
        return len(self.marshal())

    def marshal(self):
        return self.text.encode()

    def unmarshal(self, data):
        self.text = bytes(data).decode()

    def reset(self):
        self.text = ""

    def marshal_proto_json(self, state):
        state.write_object_start()
        state.write_object_field("text")
        state.write_string(self.text)
        state.write_object_end()

    def unmarshal_proto_json(self, state):
        def field(key):
            if key == "text":
                self.text = state.read_string()
            else:
                state.skip()

        state.read_object(field)


@dataclass
class Word(Note):
    any_value_field = True

    def marshal_proto_json(self, state):
        state.write_string(self.text)

    def unmarshal_proto_json(self, state):
        self.text = state.read_string()


def _lookup(url):
    return {NOTE_URL: Note, WORD_URL: Word}.get(url)


RESOLVER = FuncAnyTypeResolver(_lookup)


def test_new_any_packs_message():
    packed = new_any(Note("hi"), NOTE_URL)
    assert packed == AnyMessage(NOTE_URL, b"hi")
    assert packed.message_is(NOTE_URL)
    assert not packed.message_is(WORD_URL)


def test_new_any_none_is_empty():
    assert new_any(None, NOTE_URL) == AnyMessage()


def test_marshal_from_none_resets():
    packed = AnyMessage(NOTE_URL, b"x")
    marshal_from(packed, None, NOTE_URL)
    assert packed == AnyMessage()


def test_unmarshal_to_round_trip():
    packed = AnyMessage()
    packed.marshal_from(Note("hello"), NOTE_URL)
    note = Note()
    packed.unmarshal_to(note, NOTE_URL)
    assert note.text == "hello"


def test_unmarshal_to_mismatch():
    with pytest.raises(ValueError, match="mismatched message type"):
        unmarshal_to(AnyMessage(NOTE_URL, b"x"), Note(), WORD_URL)


def test_unmarshal_to_none_resets_destination():
    note = Note("keep")
    unmarshal_to(None, note, NOTE_URL)
    assert note.text == ""


def test_unmarshal_new():
    message = AnyMessage(NOTE_URL, b"hi").unmarshal_new(NOTE_URL, RESOLVER)
    assert message == Note("hi")


def test_unmarshal_new_errors():
    with pytest.raises(ValueError, match="invalid empty type URL"):
        unmarshal_new(AnyMessage(), NOTE_URL, RESOLVER)
    with pytest.raises(ValueError, match="resolver cannot be empty"):
        unmarshal_new(AnyMessage(NOTE_URL, b""), NOTE_URL, None)
    with pytest.raises(MessageNotFoundError):
        unmarshal_new(AnyMessage("type.example.com/Other", b""), NOTE_URL, RESOLVER)
    with pytest.raises(LookupError, match="could not resolve"):
        unmarshal_new(AnyMessage(NOTE_URL, b""), NOTE_URL, ErrorAnyTypeResolver())


def test_marshal_json_without_resolver_fails():
    with pytest.raises(MarshalError) as info:
        AnyMessage(NOTE_URL, b"hi").marshal_json()
    assert isinstance(info.value.error, NoAnyTypeResolverError)


def test_marshal_with_resolver():
    config = MarshalerConfig(any_type_resolver=RESOLVER)
    assert config.marshal(AnyMessage(NOTE_URL, b"hi")) == (
        b'{"@type":"type.example.com/Note","value":{"text":"hi"}}'
    )


def test_marshal_unknown_type():
    config = MarshalerConfig(any_type_resolver=RESOLVER)
    with pytest.raises(MarshalError) as info:
        config.marshal(AnyMessage("type.example.com/Other", b""))
    assert isinstance(info.value.error, MessageNotFoundError)


def test_unmarshal_inline_fields():
    config = UnmarshalerConfig(any_type_resolver=RESOLVER)
    packed = AnyMessage()
    config.unmarshal(b'{"@type":"type.example.com/Note","text":"hi"}', packed)
    assert packed == AnyMessage(NOTE_URL, b"hi")


def test_value_wrapped_round_trip():
    original = AnyMessage(WORD_URL, b"hi")
    data = MarshalerConfig(any_type_resolver=RESOLVER).marshal(original)
    assert data == b'{"@type":"type.example.com/Word","value":"hi"}'
    restored = AnyMessage()
    UnmarshalerConfig(any_type_resolver=RESOLVER).unmarshal(data, restored)
    assert restored == original


def test_value_wrapped_extra_field():
    config = UnmarshalerConfig(any_type_resolver=RESOLVER)
    with pytest.raises(UnmarshalError, match='unexpected "extra" field in Any'):
        config.unmarshal(b'{"@type":"type.example.com/Word","value":"hi","extra":1}', AnyMessage())


def test_first_field_must_be_type():
    config = UnmarshalerConfig(any_type_resolver=RESOLVER)
    with pytest.raises(UnmarshalError, match='first field in Any is not @type, but "value"'):
        config.unmarshal(b'{"value":"hi"}', AnyMessage())


def test_unmarshal_without_resolver_fails():
    with pytest.raises(UnmarshalError) as info:
        AnyMessage().unmarshal_json(b'{"@type":"type.example.com/Note"}')
    assert isinstance(info.value.error, NoAnyTypeResolverError)


def test_unmarshal_unknown_type():
    config = UnmarshalerConfig(any_type_resolver=RESOLVER)
    with pytest.raises(UnmarshalError) as info:
        config.unmarshal(b'{"@type":"type.example.com/Other"}', AnyMessage())
    assert isinstance(info.value.error, MessageNotFoundError)


def test_unmarshal_null_leaves_message():
    packed = AnyMessage(NOTE_URL, b"hi")
    packed.unmarshal_json(b"null")
    assert packed == AnyMessage(NOTE_URL, b"hi")