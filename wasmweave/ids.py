"""Typed identifiers and the tombstone arenas that hand them out."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Iterator, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, order=True)
class Id:
    """Identifier of an item in an :class:`Arena`.

    ``kind`` names the arena's item kind, so ids of different kinds never
    compare equal even when their indices match.
    """

    kind: str
    index: int

    def __str__(self) -> str:
        return f"{self.kind}#{self.index}"


class Arena(Generic[T]):
    """An append-only store whose items can be deleted but never reused.

    Deleting an item leaves a tombstone behind: its id stays allocated, the
    item's ``on_delete`` hook (if it has one) is called, and the item no
    longer shows up in lookups or iteration.
    """

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self._items: list[T] = []
        self._deleted: set[int] = set()

    def next_id(self) -> Id:
        """The id the next allocated item will receive."""
        return Id(self.kind, len(self._items))

    def alloc(self, item: T) -> Id:
        """Store ``item`` and return its new id."""
        new_id = self.next_id()
        self._items.append(item)
        return new_id

    def alloc_with_id(self, factory: Callable[[Id], T]) -> Id:
        """Build an item from its future id, store it and return the id."""
        new_id = self.next_id()
        item = factory(new_id)
        if len(self._items) != new_id.index:
            raise RuntimeError("arena was modified while building an item")
        self._items.append(item)
        return new_id

    def delete(self, id: Id) -> None:
        """Tombstone the item with ``id``; raises KeyError if it is not live."""
        item = self[id]
        on_delete = getattr(item, "on_delete", None)
        if callable(on_delete):
            on_delete()
        self._deleted.add(id.index)

    def get(self, id: Id) -> T | None:
        """The live item with ``id``, or None."""
        if id in self:
            return self._items[id.index]
        return None

    def items(self) -> Iterator[tuple[Id, T]]:
        """Yield ``(id, item)`` for every live item, in allocation order."""
        for index, item in enumerate(self._items):
            if index not in self._deleted:
                yield Id(self.kind, index), item

    def __len__(self) -> int:
        return len(self._items) - len(self._deleted)

    def __contains__(self, id: object) -> bool:
        return (
            isinstance(id, Id)
            and id.kind == self.kind
            and 0 <= id.index < len(self._items)
            and id.index not in self._deleted
        )

    def __getitem__(self, id: Id) -> T:
        if id not in self:
            raise KeyError(id)
        return self._items[id.index]

    def __repr__(self) -> str:
        return f"Arena(kind={self.kind!r}, live={len(self)})"