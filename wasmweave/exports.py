"""Items a module exports by name."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from .ids import Arena, Id


class ExportKind(Enum):
    """What kind of item an export names; the value is the item's id kind."""

    FUNCTION = "function"
    TABLE = "table"
    MEMORY = "memory"
    GLOBAL = "global"


@dataclass(frozen=True)
class ExportItem:
    """An exported function, table, memory or global."""

    kind: ExportKind
    id: Id

    def __post_init__(self) -> None:
        if self.id.kind != self.kind.value:
            raise ValueError(f"{self.id} is not a {self.kind.value} id")

    @classmethod
    def from_id(cls, id: Id) -> ExportItem:
        """The export item for ``id``, chosen by the id's kind."""
        try:
            kind = ExportKind(id.kind)
        except ValueError:
            raise ValueError(f"{id.kind} items cannot be exported") from None
        return cls(kind, id)


@dataclass
class Export:
    """An item made visible outside the module under a name."""

    id: Id
    name: str
    item: ExportItem

    def on_delete(self) -> None:
        self.name = ""


class ModuleExports:
    """All exports of a module."""

    def __init__(self) -> None:
        self._arena: Arena[Export] = Arena("export")

    def get(self, id: Id) -> Export:
        """The export with ``id``; raises KeyError if there is none."""
        return self._arena[id]

    def delete(self, id: Id) -> None:
        """Delete an export."""
        self._arena.delete(id)

    def iter(self) -> Iterator[Export]:
        """Yield the live exports in the order they were added."""
        for _, export in self._arena.items():
            yield export

    def add(self, name: str, item: ExportItem | Id) -> Id:
        """Export ``item`` (an export item or a bare id) under ``name``."""
        if not isinstance(item, ExportItem):
            item = ExportItem.from_id(item)
        return self._arena.alloc_with_id(lambda new_id: Export(new_id, name, item))

    def _find(self, kind: ExportKind, id: Id) -> Export | None:
        return next(
            (e for e in self.iter() if e.item.kind is kind and e.item.id == id),
            None,
        )

    def get_exported_func(self, func: Id) -> Export | None:
        """The export of function ``func``, or None."""
        return self._find(ExportKind.FUNCTION, func)

    def get_exported_table(self, table: Id) -> Export | None:
        """The export of table ``table``, or None."""
        return self._find(ExportKind.TABLE, table)

    def get_exported_memory(self, memory: Id) -> Export | None:
        """The export of memory ``memory``, or None."""
        return self._find(ExportKind.MEMORY, memory)

    def get_exported_global(self, global_id: Id) -> Export | None:
        """The export of global ``global_id``, or None."""
        return self._find(ExportKind.GLOBAL, global_id)

    def __iter__(self) -> Iterator[Export]:
        return self.iter()

    def __len__(self) -> int:
        return len(self._arena)