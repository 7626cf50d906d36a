"""Data segments of a module, copied into linear memories."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from .ids import Arena, Id

_U32_LIMIT = 1 << 32


@dataclass(frozen=True)
class ActiveDataLocation:
    """Where an active segment is placed.

    The place is either a fixed ``address`` or the value of the i32 global
    ``global_id``.
    """

    address: int | None = None
    global_id: Id | None = None

    def __post_init__(self) -> None:
        if (self.address is None) == (self.global_id is None):
            raise ValueError("a location is either an address or a global, exactly one")
        if self.address is not None and not 0 <= self.address < _U32_LIMIT:
            raise ValueError(f"address {self.address} does not fit in 32 bits")

    @classmethod
    def absolute(cls, address: int) -> ActiveDataLocation:
        """A fixed address within the memory."""
        return cls(address=address)

    @classmethod
    def relative(cls, global_id: Id) -> ActiveDataLocation:
        """An address held by a global."""
        return cls(global_id=global_id)

    def is_absolute(self) -> bool:
        return self.address is not None


@dataclass(frozen=True)
class ActiveData:
    """The memory and location an active segment is copied to on instantiation."""

    memory: Id
    location: ActiveDataLocation


@dataclass
class Data:
    """A data segment.

    Active segments (``active`` is set) are copied into memory when the module
    is instantiated; passive ones (``active`` is None) are copied on demand by
    ``memory.init`` and released by ``data.drop``.
    """

    id: Id
    value: bytes = b""
    active: ActiveData | None = None

    def is_passive(self) -> bool:
        """Whether this is a passive segment."""
        return self.active is None

    def on_delete(self) -> None:
        self.value = b""


class ModuleData:
    """All data segments of a module."""

    def __init__(self) -> None:
        self._arena: Arena[Data] = Arena("data")

    def get(self, id: Id) -> Data:
        """The segment with ``id``; raises KeyError if there is none."""
        return self._arena[id]

    def delete(self, id: Id) -> None:
        """Delete a segment.

        References to it, such as ``memory.init`` and ``data.drop``
        instructions, are left for the caller to remove.
        """
        self._arena.delete(id)

    def iter(self) -> Iterator[Data]:
        """Yield the live segments in the order they were added."""
        for _, data in self._arena.items():
            yield data

    def add(self, active: ActiveData | None, value: bytes) -> Id:
        """Add a segment, passive when ``active`` is None, and return its id."""
        payload = bytes(value)
        return self._arena.alloc_with_id(lambda new_id: Data(new_id, payload, active))

    def __iter__(self) -> Iterator[Data]:
        return self.iter()

    def __len__(self) -> int:
        return len(self._arena)