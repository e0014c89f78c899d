"""Field paths and field masks used while marshalling JSON."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from functools import reduce


@dataclass(frozen=True)
class FieldPath:
    """A dotted field path, stored as a chain of elements."""

    parent: FieldPath | None
    element: str

    def push(self, field: str) -> FieldPath:
        """Return the path of ``field`` nested below this path."""
        return FieldPath(self, field)

    def __str__(self) -> str:
        if self.parent is None:
            return self.element
        return f"{self.parent}.{self.element}"


def parse_path(text: str) -> FieldPath:
    """Parse a dotted path such as ``"a.b.c"``."""
    first, *rest = text.split(".")
    return reduce(FieldPath.push, rest, FieldPath(None, first))


class PathList:
    """An ordered collection of field paths acting as a field mask."""

    def __init__(self, paths: Iterable[str] = ()) -> None:
        self._paths: list[FieldPath] = [parse_path(p) for p in paths]

    def add(self, path: FieldPath) -> None:
        """Append a path to the mask."""
        self._paths.append(path)

    def contains(self, path: FieldPath) -> bool:
        """Return whether the mask holds ``path``."""
        return path in self._paths

    def get_paths(self) -> list[str]:
        """Return the paths as dotted strings."""
        return [str(p) for p in self._paths]

    def __iter__(self) -> Iterator[FieldPath]:
        return iter(self._paths)

    def __len__(self) -> int:
        return len(self._paths)