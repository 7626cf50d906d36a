from dataclasses import dataclass

import pytest

from wasmweave.custom import (
    CustomSection,
    ModuleCustomSections,
    RawCustomSection,
    TypedCustomSectionId,
    UntypedCustomSectionId,
)


@dataclass
class MySection(CustomSection):
    counter: int = 0

    @property
    def name(self) -> str:
        return "my"

    def payload(self, ids_to_indices):
        return bytes([self.counter])


@dataclass
class OtherSection(CustomSection):
    name: str = "other"

    def payload(self, ids_to_indices):
        return b""


def test_raw_section_payload_is_its_data():
    raw = RawCustomSection("name", bytearray(b"\x01\x02"))
    assert raw.payload(None) == b"\x01\x02"
    assert raw.name == "name"


def test_custom_section_is_abstract():
    with pytest.raises(TypeError):
        CustomSection()


def test_add_rejects_non_sections():
    sections = ModuleCustomSections()
    with pytest.raises(TypeError):
        sections.add("not a section")


def test_add_and_get_returns_same_section():
    sections = ModuleCustomSections()
    section = MySection(3)
    sid = sections.add(section)
    assert sid.section_type is MySection
    assert sections.get(sid) is section
    assert sections.get(sid.untyped) is section


def test_typed_get_with_wrong_type_returns_none():
    sections = ModuleCustomSections()
    sid = sections.add(MySection())
    wrong = TypedCustomSectionId(sid.id, OtherSection)
    assert sections.get(wrong) is None


def test_typed_ids_compare_by_section():
    sections = ModuleCustomSections()
    sid = sections.add(MySection())
    assert TypedCustomSectionId(sid.id, OtherSection) == sid
    assert sid.untyped == UntypedCustomSectionId(sid.id)


def test_delete_returns_section_once():
    sections = ModuleCustomSections()
    section = MySection(1)
    sid = sections.add(section)
    assert sections.delete(sid) is section
    assert sections.get(sid) is None
    assert sections.delete(sid) is None
    assert len(sections) == 0


def test_delete_with_wrong_type_still_removes():
    sections = ModuleCustomSections()
    sid = sections.add(MySection())
    assert sections.delete(TypedCustomSectionId(sid.id, OtherSection)) is None
    assert sections.get(sid.untyped) is None


def test_remove_raw_takes_matching_raw_section():
    sections = ModuleCustomSections()
    sections.add(RawCustomSection("a", b"x"))
    b_id = sections.add(RawCustomSection("b", b"y"))
    removed = sections.remove_raw("b")
    assert removed == RawCustomSection("b", b"y")
    assert sections.get(b_id) is None
    assert sections.remove_raw("b") is None
    assert [s.name for _, s in sections.iter()] == ["a"]


def test_remove_raw_ignores_parsed_sections_with_same_name():
    sections = ModuleCustomSections()
    sections.add(OtherSection("producers"))
    assert sections.remove_raw("producers") is None
    assert len(sections) == 1


def test_iter_yields_live_sections_in_order():
    sections = ModuleCustomSections()
    first = sections.add(RawCustomSection("one"))
    second = sections.add(MySection())
    third = sections.add(RawCustomSection("three"))
    sections.delete(second)
    ids = [sid for sid, _ in sections.iter()]
    assert ids == [first.untyped, third.untyped]


def test_get_typed_returns_first_of_type():
    sections = ModuleCustomSections()
    sections.add(RawCustomSection("raw"))
    first = MySection(1)
    sections.add(first)
    sections.add(MySection(2))
    assert sections.get_typed(MySection) is first
    assert sections.get_typed(OtherSection) is None


def test_delete_typed_removes_only_first():
    sections = ModuleCustomSections()
    first = MySection(1)
    second = MySection(2)
    sections.add(first)
    sections.add(second)
    assert sections.delete_typed(MySection) is first
    assert sections.get_typed(MySection) is second
    assert sections.delete_typed(MySection) is second
    assert sections.delete_typed(MySection) is None


def test_default_hooks_leave_their_arguments_alone():
    sections = ModuleCustomSections()
    sid = sections.add(MySection(5))
    raw_id = sections.add(RawCustomSection("raw", b"\x09"))
    roots = ["kept"]
    transform = {"offset": 1}
    for _, section in sections.iter():
        section.add_gc_roots(roots)
        section.apply_code_transform(transform)
    assert roots == ["kept"]
    assert transform == {"offset": 1}
    assert sections.get(sid).payload(None) == b"\x05"
    assert sections.get(raw_id).payload(None) == b"\x09"


def test_section_with_on_delete_method_is_not_disturbed():
    @dataclass
    class Hooked(CustomSection):
        name: str = "hooked"
        deleted: bool = False

        def payload(self, ids_to_indices):
            return b""

        def on_delete(self):
            self.deleted = True

    sections = ModuleCustomSections()
    section = Hooked()
    sid = sections.add(section)
    assert sections.delete(sid) is section
    assert section.deleted is False