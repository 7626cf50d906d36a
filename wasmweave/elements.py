"""Element segments of a module, used to initialise tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

from .ids import Arena, Id


class ElementMode(Enum):
    """Whether a segment is passive, declared or active."""

    PASSIVE = "passive"
    DECLARED = "declared"
    ACTIVE = "active"


@dataclass(frozen=True)
class ElementKind:
    """The mode of a segment and, for active ones, its table and offset."""

    mode: ElementMode
    table: Id | None = None
    offset: Any = None

    def __post_init__(self) -> None:
        if self.mode is ElementMode.ACTIVE:
            if self.table is None or self.offset is None:
                raise ValueError("active segments need a table and an offset")
        elif self.table is not None or self.offset is not None:
            raise ValueError(f"{self.mode.value} segments have no table or offset")

    @classmethod
    def passive(cls) -> ElementKind:
        return cls(ElementMode.PASSIVE)

    @classmethod
    def declared(cls) -> ElementKind:
        return cls(ElementMode.DECLARED)

    @classmethod
    def active(cls, table: Id, offset: Any) -> ElementKind:
        return cls(ElementMode.ACTIVE, table, offset)


@dataclass
class Element:
    """An element segment: a list of function ids, where None is a null."""

    id: Id
    kind: ElementKind
    ty: Any
    members: list[Id | None] = field(default_factory=list)

    def on_delete(self) -> None:
        self.members = []


class ModuleElements:
    """All element segments of a module."""

    def __init__(self) -> None:
        self._arena: Arena[Element] = Arena("element")

    def get(self, id: Id) -> Element:
        """The segment with ``id``; raises KeyError if there is none."""
        return self._arena[id]

    def delete(self, id: Id) -> None:
        """Delete a segment; references to it are left for the caller to remove."""
        self._arena.delete(id)

    def iter(self) -> Iterator[Element]:
        """Yield the live segments in the order they were added."""
        for _, element in self._arena.items():
            yield element

    def add(self, kind: ElementKind, ty: Any, members: list[Id | None]) -> Id:
        """Add a segment and return its id."""
        return self._arena.alloc_with_id(
            lambda new_id: Element(new_id, kind, ty, list(members))
        )

    def __iter__(self) -> Iterator[Element]:
        return self.iter()

    def __len__(self) -> int:
        return len(self._arena)