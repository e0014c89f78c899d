"""Resolvers that map Any type URLs to message constructors."""

from __future__ import annotations

import abc
from collections.abc import Callable

from protolite.wire import Message

MessageFactory = Callable[[], Message]


class NoAnyTypeResolverError(LookupError):
    """No resolver was provided for the Any type."""

    def __init__(self, message: str = "no resolver provided for the Any type") -> None:
        super().__init__(message)


class AnyTypeResolver(abc.ABC):
    """Looks up message constructors by type URL."""

    @abc.abstractmethod
    def find_message_by_url(self, url: str) -> MessageFactory | None:
        """Return the constructor for the message identified by ``url``."""


class ErrorAnyTypeResolver(AnyTypeResolver):
    """A resolver that always raises the given error."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error if error is not None else NoAnyTypeResolverError()

    def find_message_by_url(self, url: str) -> MessageFactory | None:
        raise self.error


class FuncAnyTypeResolver(AnyTypeResolver):
    """A resolver that delegates to a callable."""

    def __init__(self, func: Callable[[str], MessageFactory | None] | None) -> None:
        self.func = func

    def find_message_by_url(self, url: str) -> MessageFactory | None:
        if self.func is None:
            return None
        return self.func(url)