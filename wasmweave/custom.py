"""Custom sections of a module and the collection that holds them."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Generic, Iterator, TypeVar, Union

from .ids import Arena, Id

S = TypeVar("S", bound="CustomSection")


class CustomSection(ABC):
    """A custom section of a module.

    Subclasses provide ``name`` (an attribute or a property) and
    :meth:`payload`. The payload excludes the section header, the section's
    name and its length; those are added when the module is written out.
    """

    name: str

    @abstractmethod
    def payload(self, ids_to_indices: Any) -> bytes:
        """The section's data, given the map from ids to emitted indices."""

    def _attribute_values(self) -> list[Any]:
        return list(getattr(self, "__dict__", {}).values())

    def add_gc_roots(self, roots: Any) -> None:
        """Add the module items this section refers to into ``roots``.

        ``roots`` takes ids through its ``add`` method. The default adds
        every id held directly in the section's attributes; a section that
        holds none adds nothing.
        """
        for value in self._attribute_values():
            if isinstance(value, Id):
                roots.add(value)

    def apply_code_transform(self, transform: Any) -> None:
        """Update code offsets held by this section after code was rewritten.

        Only called for modules configured to preserve code transforms. The
        default passes the transform on to attributes that accept one; a
        section without such attributes is left as it is.
        """
        for value in self._attribute_values():
            apply = getattr(value, "apply_code_transform", None)
            if value is not self and callable(apply):
                apply(transform)


@dataclass
class RawCustomSection(CustomSection):
    """A custom section kept as its raw, unparsed bytes."""

    name: str
    data: bytes = b""

    def __post_init__(self) -> None:
        self.data = bytes(self.data)

    def payload(self, ids_to_indices: Any) -> bytes:
        return self.data


@dataclass(frozen=True)
class UntypedCustomSectionId:
    """Identifier of a custom section of any type."""

    id: Id


@dataclass(frozen=True)
class TypedCustomSectionId(Generic[S]):
    """Identifier of a custom section whose type is known.

    Two typed ids are equal when they name the same section.
    """

    id: Id
    section_type: type[S] = field(compare=False)

    @property
    def untyped(self) -> UntypedCustomSectionId:
        """The same section's identifier without its type."""
        return UntypedCustomSectionId(self.id)


SectionId = Union[UntypedCustomSectionId, TypedCustomSectionId]


class _Slot:
    """Holds a section; emptied when its arena entry is deleted."""

    __slots__ = ("section",)

    def __init__(self, section: CustomSection | None) -> None:
        self.section = section

    def on_delete(self) -> None:
        self.section = None


def _matches(section_id: SectionId, section: CustomSection) -> bool:
    if isinstance(section_id, TypedCustomSectionId):
        return isinstance(section, section_id.section_type)
    return True


class ModuleCustomSections:
    """All custom sections of a module.

    To work with a section of your own, take the raw section out with
    :meth:`remove_raw`, parse it into your :class:`CustomSection` subclass,
    work on it, and :meth:`add` it back so the updated form is written out.
    """

    def __init__(self) -> None:
        self._arena: Arena[_Slot] = Arena("custom_section")

    def add(self, section: S) -> TypedCustomSectionId[S]:
        """Add ``section`` and return its typed id."""
        if not isinstance(section, CustomSection):
            raise TypeError(f"{section!r} is not a custom section")
        new_id = self._arena.alloc(_Slot(section))
        return TypedCustomSectionId(new_id, type(section))

    def _live(self, section_id: SectionId) -> CustomSection | None:
        slot = self._arena.get(section_id.id)
        return None if slot is None else slot.section

    def delete(self, id: SectionId) -> CustomSection | None:
        """Remove a section and return it.

        Returns None if the section is already gone. With a typed id the
        section is removed even if it is not of that type, but then None is
        returned.
        """
        section = self._live(id)
        if section is None:
            return None
        self._arena.delete(id.id)
        return section if _matches(id, section) else None

    def remove_raw(self, name: str) -> RawCustomSection | None:
        """Take out the first raw section called ``name``, or return None."""
        found = next(
            (
                (section_id, section)
                for section_id, section in self.iter()
                if isinstance(section, RawCustomSection) and section.name == name
            ),
            None,
        )
        if found is None:
            return None
        section_id, section = found
        self._arena.delete(section_id.id)
        return section

    def get(self, id: SectionId) -> CustomSection | None:
        """The section with ``id``.

        Returns None if it was deleted, or if ``id`` is typed and the section
        is not of that type.
        """
        section = self._live(id)
        if section is None or not _matches(id, section):
            return None
        return section

    def iter(self) -> Iterator[tuple[UntypedCustomSectionId, CustomSection]]:
        """Yield ``(id, section)`` for the live sections in order of addition."""
        for arena_id, slot in self._arena.items():
            if slot.section is not None:
                yield UntypedCustomSectionId(arena_id), slot.section

    def delete_typed(self, section_type: type[S]) -> S | None:
        """Remove and return the first section of ``section_type``, or None."""
        found = next(
            (sid for sid, s in self.iter() if isinstance(s, section_type)), None
        )
        if found is None:
            return None
        section = self.delete(found)
        return section if isinstance(section, section_type) else None

    def get_typed(self, section_type: type[S]) -> S | None:
        """The first section of ``section_type``, or None."""
        return next(
            (s for _, s in self.iter() if isinstance(s, section_type)), None
        )

    def __iter__(self) -> Iterator[tuple[UntypedCustomSectionId, CustomSection]]:
        return self.iter()

    def __len__(self) -> int:
        return sum(1 for _ in self.iter())