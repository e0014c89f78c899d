"""The Any message: a serialized message tagged with its type URL."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from protolite.marshal import DEFAULT_MARSHALER_CONFIG, MarshalState
from protolite.resolver import AnyTypeResolver
from protolite.stream import quote
from protolite.unmarshal import DEFAULT_UNMARSHALER_CONFIG, UnmarshalState


class MessageNotFoundError(LookupError):
    """The message type was not found in Any."""

    def __init__(self, message: str = "message type not found in Any") -> None:
        super().__init__(message)


@dataclass
class AnyMessage:
    """A message in binary form together with the URL of its type.

    Message types whose ``any_value_field`` attribute is true appear in JSON
    under a ``"value"`` key; all others have their fields inlined beside
    ``"@type"``.
    """

    type_url: str = ""
    value: bytes = b""

    def reset(self) -> None:
        """Clear the type URL and the value."""
        self.type_url = ""
        self.value = b""

    def message_is(self, type_url: str) -> bool:
        """Return whether the held message has the given type URL."""
        return self.type_url == type_url

    def marshal_from(self, message: Any, type_url: str) -> None:
        """Store ``message`` in this Any."""
        marshal_from(self, message, type_url)

    def unmarshal_to(self, message: Any, type_url: str) -> None:
        """Decode the held message into ``message``."""
        unmarshal_to(self, message, type_url)

    def unmarshal_new(self, type_url: str, resolver: AnyTypeResolver | None) -> Any:
        """Decode the held message into a new message of the resolved type."""
        return unmarshal_new(self, type_url, resolver)

    def marshal_json(self) -> bytes:
        """Marshal to JSON with the default configuration."""
        return DEFAULT_MARSHALER_CONFIG.marshal(self)

    def unmarshal_json(self, data: bytes | str) -> None:
        """Read from JSON with the default configuration."""
        DEFAULT_UNMARSHALER_CONFIG.unmarshal(data, self)

    def marshal_proto_json(self, state: MarshalState) -> None:
        """Write ``{"@type": ..., "value": ...}`` using the state's resolver."""
        state.write_object_start()
        state.write_object_field("@type")
        state.write_string(self.type_url)
        try:
            factory = state.any_type_resolver().find_message_by_url(self.type_url)
            message = factory() if factory is not None else None
            if message is None:
                raise MessageNotFoundError()
            self.unmarshal_to(message, self.type_url)
        except Exception as exc:
            state.set_error(exc)
            return
        state.write_more()
        state.write_object_field("value")
        if hasattr(message, "marshal_proto_json"):
            message.marshal_proto_json(state)
        else:
            state.set_error("message in Any does not support JSON marshalling")
        state.write_object_end()

    def unmarshal_proto_json(self, state: UnmarshalState) -> None:
        """Read an Any object whose first field is ``@type``."""
        if state.read_nil():
            return
        data = state.skip_and_return_bytes()
        if state.err() is not None:
            return
        sub = state.sub(data)
        key = sub.read_object_field()
        if key != "@type":
            state.set_error(f"first field in Any is not @type, but {quote(key)}")
            return
        type_url = sub.read_string()
        if _propagate(state, sub):
            return
        try:
            factory = state.any_type_resolver().find_message_by_url(type_url)
        except Exception as exc:
            state.set_error(exc)
            return
        message = factory() if factory is not None else None
        if message is None or not hasattr(message, "unmarshal_proto_json"):
            state.set_error(MessageNotFoundError())
            return
        value_wrapped = bool(getattr(message, "any_value_field", False))
        if value_wrapped:
            field = sub.read_object_field()
            if field != "value":
                state.set_error(f"unexpected {quote(field)} field in Any")
                return
        else:
            sub = state.sub(data)
        message.unmarshal_proto_json(sub)
        if _propagate(state, sub):
            return
        if value_wrapped:
            field = sub.read_object_field()
            if _propagate(state, sub):
                return
            if field:
                state.set_error(f"unexpected {quote(field)} field in Any")
                return
        try:
            packed = new_any(message, type_url)
        except Exception as exc:
            state.set_error(exc)
            return
        self.type_url = packed.type_url
        self.value = packed.value


def _propagate(state: UnmarshalState, sub: UnmarshalState) -> bool:
    error = sub.err()
    if error is None:
        return False
    if state.err() is None:
        state.set_error(error)
    return True


def new_any(src: Any, type_url: str) -> AnyMessage:
    """Pack ``src`` into a new Any."""
    dst = AnyMessage()
    marshal_from(dst, src, type_url)
    return dst


def marshal_from(dst: AnyMessage, src: Any, type_url: str) -> None:
    """Store ``src`` in ``dst``; ``None`` resets ``dst``."""
    if src is None:
        dst.reset()
        return
    payload = bytes(src.marshal())
    dst.type_url = type_url
    dst.value = payload


def unmarshal_to(src: AnyMessage | None, dst: Any, type_url: str) -> None:
    """Decode the message held in ``src`` into ``dst``.

    Raises ``ValueError`` if ``src`` holds a different type.
    """
    if src is None:
        dst.reset()
        return
    if not src.message_is(type_url):
        raise ValueError(
            f"mismatched message type: got {quote(type_url)}, want {quote(src.type_url)}"
        )
    dst.unmarshal(src.value)


def unmarshal_new(src: AnyMessage | None, type_url: str, resolver: AnyTypeResolver | None) -> Any:
    """Create a message of the type named in ``src`` and decode into it."""
    source_url = src.type_url if src is not None else ""
    if not source_url:
        raise ValueError("invalid empty type URL")
    if resolver is None:
        raise ValueError("message type resolver cannot be empty")
    try:
        factory = resolver.find_message_by_url(source_url)
    except MessageNotFoundError:
        raise
    except Exception as exc:
        raise LookupError(f"could not resolve {quote(source_url)}: {exc}") from exc
    message = factory() if factory is not None else None
    if message is None:
        raise MessageNotFoundError()
    message.unmarshal(src.value)
    return message