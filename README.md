# protolite

A small toolkit for protocol buffers that needs only the standard library.

- `protolite.wire`: varint encoding and decoding, varint and zigzag sizes,
  skipping one encoded record, and equality and cloning helpers for lists
  of messages. It also defines the abstract `Message` base class.
- `protolite.stream`, `protolite.marshal`: a JSON token writer and
  `MarshalState`, which writes values with the ProtoJSON conventions.
- `protolite.iterator`, `protolite.unmarshal`: a pull parser for JSON and
  `UnmarshalState`, which reads values with the same conventions.
- `protolite.fieldmask`: field paths and field masks.
- `protolite.resolver`: resolvers that map an `Any` type URL to a message
  constructor.
- `protolite.wrappers`, `protolite.empty`, `protolite.any_message`: JSON
  support for the wrapper values, `Empty` and `AnyMessage`.

## Installation

```
pip install protolite
```

## Varints

```python
from protolite.wire import append_varint, consume_varint, size_of_varint

buf = append_varint(bytearray(), 300)
value, length = consume_varint(bytes(buf))
assert (value, length) == (300, 2)
assert size_of_varint(300) == 2
```

`encode_varint(value)` returns the encoding as `bytes`; values outside the
unsigned 64-bit range raise `ValueError`. `consume_varint` raises
`UnexpectedEOFError` on truncated input and `IntOverflowError` when the value
does not fit in 64 bits. `skip(data)` returns the offset just after the first
record (groups included) and raises those errors, as well as
`InvalidLengthError`, `UnexpectedEndOfGroupError` or a plain `DecodeError`
for an illegal wire type. All of them are subclasses of `DecodeError`, itself
a `ValueError`.

## Writing ProtoJSON

A message writes itself by providing `marshal_proto_json(state)`:

```python
from protolite.marshal import MarshalerConfig, marshal_slice

class Point:
    def __init__(self, x):
        self.x = x

    def marshal_proto_json(self, state):
        state.write_object_start()
        state.write_object_field("x")
        state.write_int32(self.x)
        state.write_object_end()

config = MarshalerConfig()
assert config.marshal(Point(1)) == b'{"x":1}'
assert marshal_slice(config, [Point(1), Point(2)]) == b'[{"x":1},{"x":2}]'
```

What `MarshalState` writes:

- 32-bit integers as numbers; 64-bit integers (`write_int64`,
  `write_uint64`) as strings.
- Floats in their shortest decimal form; NaN and the infinities as the
  strings `"NaN"`, `"Infinity"` and `"-Infinity"`.
- Bytes as standard, padded base64; `None` as `null`.
- Enums as numbers by default. With `MarshalerConfig(enums_as_ints=False)`
  they are written as names looked up in the maps given to `write_enum`,
  falling back to the number as a string.
- `write_time` takes a `datetime` or nanoseconds since the Unix epoch and
  writes a UTC string such as `"2006-01-02T08:04:05.123Z"`, with 0, 3, 6 or
  9 fraction digits.
- `write_duration` takes a `timedelta` or nanoseconds and writes a string
  such as `"3723.123s"`.
- `write_field_mask` writes a comma-separated string;
  `write_legacy_field_mask` writes `{"paths": [...]}`.

Once an error is recorded with `set_error`, every later write does nothing,
and `marshal` raises a `MarshalError` that carries the field path (set with
`with_field`) where it happened.

## Reading ProtoJSON

A message reads itself by providing `unmarshal_proto_json(state)`:

```python
from protolite.unmarshal import UnmarshalerConfig

class Point:
    x = 0

    def unmarshal_proto_json(self, state):
        def field(key):
            if key == "x":
                self.x = state.read_int32()
            else:
                state.skip()
        state.read_object(field)

point = Point()
UnmarshalerConfig().unmarshal(b'{"x":"7"}', point)
assert point.x == 7
```

`UnmarshalState` accepts numbers given as numbers or as strings,
`{"value": ...}` for the `read_wrapped_*` readers, base64 bytes in either the
standard or the URL alphabet with or without padding, enums as numbers or
names, maps keyed by booleans, integers or strings, and field masks in both
forms. `read_time` returns nanoseconds since the Unix epoch from a UTC
string ending in `Z` or from a number of milliseconds; `read_duration`
returns nanoseconds from a string such as `"3723.5s"` or `"1h2m"`. Both
return `None` for `null`.

A value that is well-formed JSON but not acceptable (a bad base64 string, an
integer out of range, an unknown enum name, a value of the wrong type) makes
`unmarshal` raise an `UnmarshalError` with the field path. Malformed JSON
makes it raise `protolite.iterator.JsonSyntaxError`, which carries the offset
where reading stopped.

## Well-known types

The wrapper classes `DoubleValue`, `FloatValue`, `Int64Value`,
`UInt64Value`, `Int32Value`, `UInt32Value`, `BoolValue`, `StringValue` and
`BytesValue` hold one `value` and have `marshal_json`, `unmarshal_json` and
`marshal_proto_text`:

```python
from protolite.wrappers import Int64Value

value = Int64Value(value=42)
assert value.marshal_json() == b'"42"'
assert value.marshal_proto_text() == "42"
```

`Empty` is written as `{}` and rejects any key when read.

`AnyMessage` holds a `type_url` and the binary `value` of a message.
Messages stored in it need `marshal()` and `unmarshal(data)`; to appear in
JSON they also need `marshal_proto_json` and `unmarshal_proto_json`. Types
whose `any_value_field` attribute is true are written under a `"value"` key;
others have their fields read inline next to `"@type"`. Type URLs are looked
up through the `any_type_resolver` of the configuration:

```python
from protolite.any_message import AnyMessage, new_any
from protolite.marshal import MarshalerConfig
from protolite.resolver import FuncAnyTypeResolver
from protolite.unmarshal import UnmarshalerConfig
from protolite.wrappers import StringValue

URL = "type.example.com/Note"

class Note(StringValue):
    any_value_field = True

    def marshal(self):
        return self.value.encode()

    def unmarshal(self, data):
        self.value = bytes(data).decode()

resolver = FuncAnyTypeResolver(lambda url: Note if url == URL else None)
packed = new_any(Note(value="hi"), URL)

data = MarshalerConfig(any_type_resolver=resolver).marshal(packed)
assert data == b'{"@type":"type.example.com/Note","value":"hi"}'

restored = AnyMessage()
UnmarshalerConfig(any_type_resolver=resolver).unmarshal(data, restored)
assert restored == packed
```

Without a resolver, `AnyMessage` JSON fails with `NoAnyTypeResolverError`;
a resolver that finds nothing gives `MessageNotFoundError`.

## What is not included

- No command-line tool; this is a library only.
- No code generator and no `.proto` parsing: messages are Python classes
  that call `MarshalState` and `UnmarshalState` themselves.
- No message classes for `Duration`, `Timestamp`, `Struct`, `Value` or
  `ListValue`, although `MarshalState` and `UnmarshalState` read and write
  durations and timestamps as values.
- The wrapper classes and `Empty` have JSON and text forms only, no binary
  encoding.