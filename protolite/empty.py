"""The empty message with JSON support."""

from __future__ import annotations

from dataclasses import dataclass

from protolite.marshal import DEFAULT_MARSHALER_CONFIG, MarshalState
from protolite.stream import quote
from protolite.unmarshal import DEFAULT_UNMARSHALER_CONFIG, UnmarshalState


@dataclass
class Empty:
    """A message with no fields; its JSON form is ``{}``."""

    def marshal_json(self) -> bytes:
        """Marshal to JSON with the default configuration."""
        return DEFAULT_MARSHALER_CONFIG.marshal(self)

    def unmarshal_json(self, data: bytes | str) -> None:
        """Read from JSON with the default configuration."""
        DEFAULT_UNMARSHALER_CONFIG.unmarshal(data, self)

    def marshal_proto_json(self, state: MarshalState) -> None:
        """Write an empty object."""
        state.write_object_start()
        state.write_object_end()

    def unmarshal_proto_json(self, state: UnmarshalState) -> None:
        """Read an empty object; any key is an error."""
        if state.read_nil():
            return
        state.read_object(lambda key: state.set_error(f"unexpected key {quote(key)} in Empty"))