"""Protobuf varint and wire helpers, a ProtoJSON reader and writer, and JSON support for wrapper, Empty and Any messages."""

__version__ = "0.1.0"