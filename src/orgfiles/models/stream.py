"""Restartable, lazily evaluated record sequences."""

from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any, Protocol, runtime_checkable

Record = dict[str, Any]


@runtime_checkable
class RecordSource(Protocol):
    """Anything that names its fields and yields one mapping per record."""

    fields: tuple[str, ...]

    def __iter__(self) -> Iterator[Mapping[str, Any]]: ...


class RecordStream:
    """A named-field sequence whose producer runs again on every iteration.

    Nothing is computed at construction. Each ``iter()`` calls the producer,
    so consumers that need current data just iterate again.
    """

    def __init__(self, fields: Iterable[str], producer: Callable[[], Iterable[Mapping[str, Any]]]) -> None:
        self.fields = tuple(fields)
        self._producer = producer

    def __iter__(self) -> Iterator[Record]:
        for record in self._producer():
            yield dict(record)

    def __repr__(self) -> str:
        return f"RecordStream(fields={self.fields!r})"

    def select(self, *fields: str) -> "RecordStream":
        """Project each record onto ``fields``, in that order."""
        unknown = [field for field in fields if field not in self.fields]
        if unknown:
            raise KeyError(f"unknown fields: {unknown}")
        return RecordStream(fields, lambda: ({f: record[f] for f in fields} for record in self))

    def where(self, predicate: Callable[[Record], bool]) -> "RecordStream":
        return RecordStream(self.fields, lambda: (record for record in self if predicate(record)))

    def to_list(self) -> list[Record]:
        return list(self)


__all__ = ["Record", "RecordSource", "RecordStream"]
